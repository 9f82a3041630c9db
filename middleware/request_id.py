# middleware/request_id.py
"""
Middleware que atribui um Request ID a cada requisição.

- Aceita ID externo via header X-Request-ID (tracing distribuído)
- Armazena em request.state e em ContextVar
- Devolve o ID no header X-Request-ID da resposta

Uso em outros módulos:
    from middleware.request_id import get_request_id

    request_id = get_request_id()  # ID da requisição atual ou None
"""

import uuid
import logging
from contextvars import ContextVar
from typing import Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"

_request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# stdlib aqui: logging_config importa este módulo
logger = logging.getLogger(__name__)


def get_request_id() -> Optional[str]:
    """
    Retorna o Request ID da requisição atual.

    Retorna None fora do contexto de uma requisição (scripts, testes de serviço).
    """
    return _request_id_ctx.get()


def set_request_id(request_id: Optional[str]) -> None:
    _request_id_ctx.set(request_id)


def generate_request_id() -> str:
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware FastAPI para gerenciamento de Request ID.

    Uso:
        app.add_middleware(RequestIDMiddleware)
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        existing_request_id = request.headers.get(REQUEST_ID_HEADER)

        if existing_request_id:
            request_id = existing_request_id[:64]  # Limita tamanho
        else:
            request_id = generate_request_id()

        request.state.request_id = request_id
        set_request_id(request_id)

        try:
            response: Response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        except Exception as e:
            logger.error(f"[{request_id}] Erro durante requisição: {e}")
            raise

        finally:
            set_request_id(None)
