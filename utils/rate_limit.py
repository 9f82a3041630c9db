# utils/rate_limit.py
# -*- coding: utf-8 -*-
"""
Rate Limiting do Portal de Suprimento de Fundos

Protege login e PIN de assinatura contra força bruta.

Limites padrão:
- Geral: 100 requests/minuto por IP
- Login: 5 tentativas/minuto por IP
- PIN de assinatura: 5 tentativas/minuto por usuário
- Lote: 3 execuções/minuto por usuário

Uso:
    from utils.rate_limit import limiter, rate_limit_exceeded_handler

    # No main.py
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Nos routers
    @router.post("/endpoint")
    @limiter.limit(LIMITS["pin"], key_func=get_user_identifier)
    async def endpoint(request: Request):
        ...
"""

import os
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from fastapi.responses import JSONResponse

from utils.logging_config import get_logger

logger = get_logger(__name__)


def get_real_ip(request: Request) -> str:
    """
    Obtém IP real do cliente, considerando headers de proxy.

    Prioridade:
    1. X-Forwarded-For (primeiro IP da lista)
    2. X-Real-IP
    3. IP direto da conexão
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


def get_user_identifier(request: Request) -> str:
    """
    Identificador para rate limiting: user_id do token quando presente, senão IP.
    """
    from auth.security import decode_token

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        payload = decode_token(auth_header[7:])
        if payload and "user_id" in payload:
            return f"user:{payload['user_id']}"

    return f"ip:{get_real_ip(request)}"


# ==================================================
# LIMITER INSTANCE
# ==================================================

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "100/minute")
RATE_LIMIT_LOGIN = os.getenv("RATE_LIMIT_LOGIN", "5/minute")
RATE_LIMIT_PIN = os.getenv("RATE_LIMIT_PIN", "5/minute")
RATE_LIMIT_LOTE = os.getenv("RATE_LIMIT_LOTE", "3/minute")

# Storage: memória por padrão; RATE_LIMIT_STORAGE aceita qualquer URI do pacote limits
RATE_LIMIT_STORAGE = os.getenv("RATE_LIMIT_STORAGE", "memory://")

limiter = Limiter(
    key_func=get_real_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=RATE_LIMIT_ENABLED,
    storage_uri=RATE_LIMIT_STORAGE,
)


async def rate_limit_exceeded_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handler para rate limit excedido, resposta JSON em português.
    """
    logger.warning(
        "Rate limit excedido",
        ip=get_real_ip(request),
        path=request.url.path,
        detail=str(getattr(exc, "detail", exc)),
    )

    return JSONResponse(
        status_code=429,
        content={
            "detail": "Limite de requisições excedido. Tente novamente em alguns minutos.",
            "error": "rate_limit_exceeded",
            "retry_after": "60"
        },
        headers={"Retry-After": "60"}
    )


# Para usar com @limiter.limit() diretamente
LIMITS = {
    "default": RATE_LIMIT_DEFAULT,
    "login": RATE_LIMIT_LOGIN,
    "pin": RATE_LIMIT_PIN,
    "lote": RATE_LIMIT_LOTE,
}
