# utils/audit.py
"""
Audit logging de eventos sensíveis do portal.

Eventos registrados:
- AUTH_LOGIN_SUCCESS/FAILURE, AUTH_PASSWORD_CHANGE: autenticação
- PIN_DEFINIDO, PIN_FALHA: gestão e uso do PIN de assinatura
- TRAMITACAO: toda mudança de status/destino de uma solicitação
- DOCUMENTO_ASSINADO: assinatura de documento
- LOTE_EXECUTADO, TITULAR_NOMEADO, SERVIDORES_IMPORTADOS: operações em lote
- ACCESS_DENIED: tentativa de ação sem papel adequado

O histórico de tramitação no banco é a trilha oficial; este log é a trilha
operacional (IP, request_id, user-agent).
"""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request

from utils.logging_config import get_logger

audit_logger = get_logger("security.audit")

# Arquivo opcional de auditoria (em produção, preferir coletor centralizado)
AUDIT_LOG_FILE = os.getenv("AUDIT_LOG_FILE")
if AUDIT_LOG_FILE:
    _handler = logging.FileHandler(AUDIT_LOG_FILE, encoding="utf-8")
    _handler.setLevel(logging.INFO)
    _handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logging.getLogger("security.audit").addHandler(_handler)


class AuditEvent(str, Enum):
    """Tipos de eventos de auditoria"""
    # Autenticação
    AUTH_LOGIN_SUCCESS = "AUTH_LOGIN_SUCCESS"
    AUTH_LOGIN_FAILURE = "AUTH_LOGIN_FAILURE"
    AUTH_PASSWORD_CHANGE = "AUTH_PASSWORD_CHANGE"

    # PIN de assinatura
    PIN_DEFINIDO = "PIN_DEFINIDO"
    PIN_FALHA = "PIN_FALHA"

    # Suprimento de fundos
    TRAMITACAO = "TRAMITACAO"
    DOCUMENTO_ASSINADO = "DOCUMENTO_ASSINADO"
    LOTE_EXECUTADO = "LOTE_EXECUTADO"
    TITULAR_NOMEADO = "TITULAR_NOMEADO"

    # Identidade
    SERVIDORES_IMPORTADOS = "SERVIDORES_IMPORTADOS"
    SERVIDORES_MESCLADOS = "SERVIDORES_MESCLADOS"
    USUARIO_PAPEL_ALTERADO = "USUARIO_PAPEL_ALTERADO"

    # Controle de acesso
    ACCESS_DENIED = "ACCESS_DENIED"


def get_client_ip(request: Optional[Request]) -> str:
    """Extrai IP real do cliente considerando proxies."""
    if not request:
        return "unknown"

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


def mask_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Remove ou mascara dados sensíveis antes de logar."""
    sensitive_keys = {
        "password", "senha", "secret", "token", "pin", "hashed_password", "assinatura"
    }

    masked = {}
    for key, value in data.items():
        key_lower = key.lower()

        if any(s in key_lower for s in sensitive_keys):
            masked[key] = "***MASKED***"
        elif isinstance(value, dict):
            masked[key] = mask_sensitive_data(value)
        elif isinstance(value, str) and len(value) > 100:
            masked[key] = value[:100] + "...[truncated]"
        else:
            masked[key] = value

    return masked


def log_audit_event(
    event: AuditEvent,
    user_id: Optional[int] = None,
    username: Optional[str] = None,
    request: Optional[Request] = None,
    details: Optional[Dict[str, Any]] = None,
    success: bool = True,
    severity: str = "INFO"
):
    """
    Registra evento de auditoria.

    Args:
        event: Tipo do evento (AuditEvent enum)
        user_id: ID do usuário (se aplicável)
        username: Nome do usuário (se aplicável)
        request: Request do FastAPI (para extrair IP e user-agent)
        details: Detalhes adicionais do evento
        success: Se a ação foi bem sucedida
        severity: INFO, WARNING, ERROR ou CRITICAL

    Example:
        log_audit_event(
            AuditEvent.TRAMITACAO,
            user_id=user.id,
            username=user.username,
            details={"solicitacao_id": 10, "evento": "ATESTAR"}
        )
    """
    record = {
        "success": success,
        "user_id": user_id,
        "username": username,
        "ip_address": get_client_ip(request),
        "user_agent": request.headers.get("User-Agent", "unknown") if request else "unknown",
        "path": str(request.url.path) if request else None,
        "method": request.method if request else None,
    }

    if details:
        record["details"] = mask_sensitive_data(details)

    level = severity.lower() if severity in ("WARNING", "ERROR", "CRITICAL") else "info"
    getattr(audit_logger, level)(event.value, **record)


# ============================================
# Funções de conveniência para eventos comuns
# ============================================

def log_login_success(user_id: int, username: str, request: Request):
    """Registra login bem sucedido"""
    log_audit_event(
        AuditEvent.AUTH_LOGIN_SUCCESS,
        user_id=user_id,
        username=username,
        request=request
    )


def log_login_failure(username: str, request: Request, reason: str = "invalid_credentials"):
    """Registra falha de login"""
    log_audit_event(
        AuditEvent.AUTH_LOGIN_FAILURE,
        username=username,
        request=request,
        details={"reason": reason},
        success=False,
        severity="WARNING"
    )


def log_password_change(user_id: int, username: str, request: Request):
    log_audit_event(
        AuditEvent.AUTH_PASSWORD_CHANGE,
        user_id=user_id,
        username=username,
        request=request
    )


def log_pin_failure(user_id: int, username: str, request: Optional[Request], documento_id: Optional[int] = None):
    """Registra PIN de assinatura incorreto"""
    log_audit_event(
        AuditEvent.PIN_FALHA,
        user_id=user_id,
        username=username,
        request=request,
        details={"documento_id": documento_id},
        success=False,
        severity="WARNING"
    )


def log_access_denied(user_id: Optional[int], username: Optional[str], request: Optional[Request], reason: str):
    """Registra tentativa de acesso negado"""
    log_audit_event(
        AuditEvent.ACCESS_DENIED,
        user_id=user_id,
        username=username,
        request=request,
        details={"reason": reason},
        success=False,
        severity="WARNING"
    )
