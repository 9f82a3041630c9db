# auth/schemas.py
"""
Schemas Pydantic para autenticação e PIN de assinatura
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional

from utils.validators import validate_pin


# ==========================================
# Schemas de Token
# ==========================================

class Token(BaseModel):
    """Token JWT retornado no login"""
    access_token: str
    token_type: str = "bearer"


# ==========================================
# Schemas de Senha
# ==========================================

class ChangePasswordRequest(BaseModel):
    """Request de troca de senha"""
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=4, max_length=100)


# ==========================================
# PIN de assinatura
# ==========================================

class SignaturePinRequest(BaseModel):
    """
    Definição ou troca do PIN de assinatura.

    - **pin**: 4 a 6 dígitos numéricos
    - **confirmacao**: deve ser igual ao PIN
    - **pin_atual**: obrigatório quando já existe PIN cadastrado
    """
    pin: str
    confirmacao: str
    pin_atual: Optional[str] = None

    @field_validator("pin")
    @classmethod
    def pin_formato(cls, v: str) -> str:
        ok, erro = validate_pin(v)
        if not ok:
            raise ValueError(erro)
        return v

    @model_validator(mode="after")
    def confirmacao_confere(self):
        if self.pin != self.confirmacao:
            raise ValueError("Confirmação não confere com o PIN")
        return self


# ==========================================
# Schemas de Usuário
# ==========================================

class UserMe(BaseModel):
    """Schema para /auth/me - dados do usuário logado"""
    id: int
    username: str
    email: Optional[str] = None
    full_name: str
    role: str
    papel: str
    matricula: Optional[str] = None
    cargo: Optional[str] = None
    lotacao: Optional[str] = None
    must_change_password: bool
    has_signature_pin: bool

    model_config = {"from_attributes": True}


# ==========================================
# Gestão de usuários (admin)
# ==========================================

PAPEIS_VALIDOS = ("SUPRIDO", "GESTOR", "SOSFU", "SEFIN", "AJSEFIN", "SGP")


class UserCreate(BaseModel):
    """Criação manual de usuário (fora da importação de RH)"""
    username: str = Field(..., min_length=3, max_length=50)
    full_name: str = Field(..., min_length=2, max_length=200)
    email: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, min_length=4, max_length=100)
    role: str = Field("user", pattern="^(admin|user)$")
    papel: str = "SUPRIDO"
    matricula: Optional[str] = Field(None, max_length=20)
    lotacao: Optional[str] = Field(None, max_length=200)

    @field_validator("papel")
    @classmethod
    def papel_valido(cls, v: str) -> str:
        v = v.upper()
        if v not in PAPEIS_VALIDOS:
            raise ValueError(f"Papel inválido. Use: {', '.join(PAPEIS_VALIDOS)}")
        return v


class UserUpdate(BaseModel):
    """Campos editáveis pelo admin"""
    email: Optional[str] = Field(None, max_length=100)
    full_name: Optional[str] = Field(None, min_length=2, max_length=200)
    role: Optional[str] = Field(None, pattern="^(admin|user)$")
    papel: Optional[str] = None
    lotacao: Optional[str] = Field(None, max_length=200)
    is_active: Optional[bool] = None

    @field_validator("papel")
    @classmethod
    def papel_valido(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.upper()
        if v not in PAPEIS_VALIDOS:
            raise ValueError(f"Papel inválido. Use: {', '.join(PAPEIS_VALIDOS)}")
        return v


class UserResponse(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    full_name: str
    role: str
    papel: str
    matricula: Optional[str] = None
    cargo: Optional[str] = None
    lotacao: Optional[str] = None
    categoria: Optional[str] = None
    is_active: bool
    must_change_password: bool

    model_config = {"from_attributes": True}
