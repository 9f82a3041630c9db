# utils/timezone.py
"""
POLÍTICA GLOBAL DE TIMEZONE DO SISTEMA

REGRAS:
1. GRAVAÇÃO NO BANCO: Sempre UTC (timezone-aware)
2. EXIBIÇÃO E PRAZOS: America/Belem (UTC-3)
3. SERIALIZAÇÃO JSON: ISO 8601 com timezone explícito

USO:
    from utils.timezone import now_utc, to_local, hoje_local, get_utc_now

    created_at = now_utc()
    prazo = hoje_local() + timedelta(days=30)

IMPORTANTE:
- Nunca use datetime.utcnow() ou datetime.now() diretamente
- Prazos (aplicação, prestação de contas) são contados em datas locais
"""

from datetime import date, datetime, timezone
from typing import Optional
import pytz

# Timezone local do sistema (Pará)
TIMEZONE_LOCAL_NAME = "America/Belem"
TIMEZONE_LOCAL = pytz.timezone(TIMEZONE_LOCAL_NAME)

# Offset fixo para referência (UTC-3, sem horário de verão)
TIMEZONE_OFFSET_HOURS = -3

UTC = timezone.utc


def now_utc() -> datetime:
    """
    Retorna o datetime atual em UTC com timezone-aware.

    USE ESTA FUNÇÃO para gravar timestamps no banco de dados.
    """
    return datetime.now(UTC)


def now_local() -> datetime:
    """Retorna o datetime atual em America/Belem."""
    return datetime.now(TIMEZONE_LOCAL)


def hoje_local() -> date:
    """Data corrente no fuso local, base para contagem de prazos."""
    return now_local().date()


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Converte um datetime para o timezone local.

    - Se naive: assume que está em UTC (SQLite devolve datetimes naive)
    - Se aware: converte para o timezone local
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return dt.astimezone(TIMEZONE_LOCAL)


def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Converte um datetime para UTC.

    - Se naive: assume que está no timezone local
    - Se aware: converte para UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = TIMEZONE_LOCAL.localize(dt)

    return dt.astimezone(UTC)


def format_local(dt: Optional[datetime], format: str = "%d/%m/%Y %H:%M:%S") -> str:
    """
    Formata um datetime no timezone local para exibição em documentos.

    Returns:
        str: Data formatada (ou "-" se None)
    """
    if dt is None:
        return "-"

    return to_local(dt).strftime(format)


def format_iso_utc(dt: Optional[datetime]) -> Optional[str]:
    """
    ISO 8601 em UTC, sem microssegundos.

    Usado como componente estável da mensagem assinada (naive é tratado como UTC).
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC).replace(microsecond=0).isoformat()


def get_utc_now():
    """
    Função callable para uso em Column(default=...).

    USE EM MODELS:
        created_at = Column(DateTime(timezone=True), default=get_utc_now)
    """
    return now_utc()
