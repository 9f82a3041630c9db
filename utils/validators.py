# utils/validators.py
"""
Validadores centralizados do Portal de Suprimento de Fundos.

Fornece funções de validação reutilizáveis para:
- CPF
- NUP (número de protocolo TJPA)
- PIN de assinatura
- Competência de lote (quadrimestre)
- Elementos de despesa
- Valores monetários

USO:
    from utils.validators import validate_cpf, validate_pin, parse_currency_br

    if not validate_cpf(cpf):
        raise ValueError("CPF inválido")
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Tuple, Union


CENTAVO = Decimal("0.01")


# ============================================
# CPF
# ============================================

def only_digits(value: str) -> str:
    return re.sub(r'[^\d]', '', str(value or ''))


def validate_cpf(cpf: str) -> bool:
    """
    Valida um CPF brasileiro.

    Args:
        cpf: CPF com ou sem formatação

    Returns:
        True se válido, False caso contrário
    """
    cpf = only_digits(cpf)

    if len(cpf) != 11:
        return False

    # Todos os dígitos iguais passam no cálculo mas são inválidos
    if cpf == cpf[0] * 11:
        return False

    soma = sum(int(cpf[i]) * (10 - i) for i in range(9))
    resto = soma % 11
    digito1 = 0 if resto < 2 else 11 - resto

    if int(cpf[9]) != digito1:
        return False

    soma = sum(int(cpf[i]) * (11 - i) for i in range(10))
    resto = soma % 11
    digito2 = 0 if resto < 2 else 11 - resto

    return int(cpf[10]) == digito2


def format_cpf(cpf: str) -> str:
    """Formata CPF: 123.456.789-00"""
    cpf = only_digits(cpf)
    if len(cpf) != 11:
        return cpf
    return f"{cpf[:3]}.{cpf[3:6]}.{cpf[6:9]}-{cpf[9:]}"


# ============================================
# NUP
# ============================================

# TJPA-SOL-2026-00012 (solicitação avulsa) ou TJPA-ORD-2026-0007 (lote ordinário)
NUP_PATTERN = re.compile(r'^TJPA-(SOL|ORD|JUR|EXT)-(\d{4})-(\d{4,6})$')


def validate_nup(nup: str) -> bool:
    if not nup or not isinstance(nup, str):
        return False
    return bool(NUP_PATTERN.match(nup.strip()))


def format_nup(prefixo: str, ano: int, sequencial: int) -> str:
    """
    Monta o NUP a partir do sequencial anual.

    Solicitações avulsas usam 5 dígitos, lotes ordinários 4.
    """
    largura = 4 if prefixo == "ORD" else 5
    return f"TJPA-{prefixo}-{ano}-{sequencial:0{largura}d}"


# ============================================
# PIN DE ASSINATURA
# ============================================

PIN_MIN_LEN = 4
PIN_MAX_LEN = 6


def validate_pin(pin: str) -> Tuple[bool, Optional[str]]:
    """
    Valida formato do PIN de assinatura.

    Returns:
        Tuple (is_valid, mensagem_erro)
    """
    if not pin:
        return False, "PIN é obrigatório"
    if not pin.isdigit() or not pin.isascii():
        return False, "PIN deve conter apenas números"
    if len(pin) < PIN_MIN_LEN or len(pin) > PIN_MAX_LEN:
        return False, f"PIN deve ter entre {PIN_MIN_LEN} e {PIN_MAX_LEN} dígitos"
    return True, None


# ============================================
# COMPETÊNCIA (QUADRIMESTRE)
# ============================================

COMPETENCIA_PATTERN = re.compile(r'^(\d{4})-([123])Q$')


def validate_competencia(competencia: str) -> bool:
    """Competência no formato AAAA-NQ, N de 1 a 3 (quadrimestres)."""
    if not competencia or not isinstance(competencia, str):
        return False
    return bool(COMPETENCIA_PATTERN.match(competencia))


def parse_competencia(competencia: str) -> Tuple[int, int]:
    """
    Returns:
        (ano, quadrimestre)

    Raises:
        ValueError: formato inválido
    """
    match = COMPETENCIA_PATTERN.match(competencia or "")
    if not match:
        raise ValueError(f"Competência inválida: {competencia!r} (esperado AAAA-1Q, AAAA-2Q ou AAAA-3Q)")
    return int(match.group(1)), int(match.group(2))


# ============================================
# ELEMENTOS DE DESPESA
# ============================================

ELEMENTO_PATTERN = re.compile(r'^\d\.\d\.\d{2}\.\d{2}(\.\d{2})?$')


def validate_elemento(codigo: str, permitidos=None) -> bool:
    """
    Valida código de elemento de despesa (ex: 3.3.90.30 ou 3.3.90.30.01).

    Se `permitidos` for informado, o elemento (sem subelemento) deve estar na lista.
    """
    if not codigo or not ELEMENTO_PATTERN.match(codigo):
        return False
    if permitidos is None:
        return True
    return elemento_base(codigo) in permitidos


def elemento_base(codigo: str) -> str:
    """3.3.90.30.01 -> 3.3.90.30"""
    return ".".join(codigo.split(".")[:4])


# ============================================
# VALORES MONETÁRIOS
# ============================================

def to_decimal(value: Union[str, int, float, Decimal, None]) -> Optional[Decimal]:
    """Converte para Decimal com 2 casas (ROUND_HALF_UP). None se inválido."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value)).quantize(CENTAVO, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return None


def parse_currency_br(value: str) -> Optional[Decimal]:
    """
    Parse de valor monetário brasileiro.

    Aceita: R$ 1.234,56 ou 1234.56 ou 1234,56

    Returns:
        Decimal ou None se inválido
    """
    if not value:
        return None

    value = str(value).replace("R$", "").strip()

    if "," in value and "." in value:
        value = value.replace(".", "").replace(",", ".")
    elif "," in value:
        value = value.replace(",", ".")

    return to_decimal(value)


def format_currency_br(value: Union[Decimal, float, None]) -> str:
    """
    Formata valor para moeda brasileira: R$ 1.234,56
    """
    if value is None:
        return ""

    formatted = f"{Decimal(str(value)).quantize(CENTAVO, rounding=ROUND_HALF_UP):,.2f}"
    formatted = formatted.replace(",", "X").replace(".", ",").replace("X", ".")

    return f"R$ {formatted}"


__all__ = [
    "only_digits",
    "validate_cpf",
    "format_cpf",
    "validate_nup",
    "format_nup",
    "validate_pin",
    "validate_competencia",
    "parse_competencia",
    "validate_elemento",
    "elemento_base",
    "to_decimal",
    "parse_currency_br",
    "format_currency_br",
]
