# main.py
"""
Portal de Suprimento de Fundos (TJPA) - Aplicação FastAPI Principal

Unifica:
- Autenticação e gestão de usuários (papéis do fluxo)
- Suprimento de Fundos (solicitações, tramitação, documentos, lote ordinário)
- Base de servidores do RH

Com autenticação centralizada via JWT.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import os

from slowapi.errors import RateLimitExceeded

from database.init_db import init_database
from middleware import RequestIDMiddleware
from utils.logging_config import setup_logging, get_logger
from utils.rate_limit import limiter, rate_limit_exceeded_handler
from auth.router import router as auth_router
from users.router import router as users_router

# Import dos sistemas
from sistemas.suprimento_fundos.router import router as suprimento_router
from sistemas.servidores.router import router as servidores_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle events da aplicação.
    Executa na inicialização e no shutdown.
    """
    # Startup
    setup_logging()
    logger.info("Iniciando Portal de Suprimento de Fundos...")
    init_database()
    yield
    # Shutdown
    logger.info("Encerrando Portal de Suprimento de Fundos...")


# Cria a aplicação FastAPI
app = FastAPI(
    title="Portal de Suprimento de Fundos",
    description="Concessão e prestação de contas de suprimento de fundos do TJPA",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiting (slowapi)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Correlação de logs por requisição
app.add_middleware(RequestIDMiddleware)

# Configuração de CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================================================
# ROTAS DO PORTAL
# ==================================================

@app.get("/health")
async def health_check():
    """Health check para monitoramento"""
    return {
        "status": "ok",
        "service": "suprimento-fundos",
        "has_database_url": bool(os.getenv("DATABASE_URL", "")),
    }


# ==================================================
# ROUTERS DE AUTENTICAÇÃO E USUÁRIOS
# ==================================================

app.include_router(auth_router)
app.include_router(users_router)


# ==================================================
# ROUTERS DOS SISTEMAS
# ==================================================

app.include_router(suprimento_router)
app.include_router(servidores_router)


# ==================================================
# EXECUÇÃO DIRETA
# ==================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
