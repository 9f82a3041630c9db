# auth/models.py
"""
Modelo de usuário: tabela canônica de identidade do portal.

Dados funcionais (matrícula, cargo, lotação) chegam pela importação de RH
(sistemas.servidores) e são mesclados aqui; não há sincronização no login.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from database.connection import Base
from utils.timezone import get_utc_now


class User(Base):
    """Modelo de usuário do sistema"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=True)
    full_name = Column(String(200), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")  # 'admin' ou 'user'
    must_change_password = Column(Boolean, default=True)
    is_active = Column(Boolean, default=True)

    # Papel operacional no fluxo de suprimento (SUPRIDO, GESTOR, SOSFU, SEFIN, AJSEFIN, SGP)
    papel = Column(String(20), nullable=False, default="SUPRIDO", index=True)

    # Dados funcionais
    matricula = Column(String(20), unique=True, index=True, nullable=True)
    cpf = Column(String(11), nullable=True)
    cargo = Column(String(200), nullable=True)
    lotacao = Column(String(200), nullable=True)
    categoria = Column(String(20), nullable=True)  # SERVIDOR, MAGISTRADO, ESTAGIARIO

    # PIN de assinatura (hash bcrypt, nunca em claro)
    signature_pin_hash = Column(String(255), nullable=True)
    signature_pin_updated_at = Column(DateTime(timezone=True), nullable=True)

    # Última importação de RH que alterou este registro
    origem_importacao_id = Column(Integer, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=get_utc_now)
    updated_at = Column(DateTime(timezone=True), default=get_utc_now, onupdate=get_utc_now)

    @property
    def has_signature_pin(self) -> bool:
        return bool(self.signature_pin_hash)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', papel='{self.papel}')>"
