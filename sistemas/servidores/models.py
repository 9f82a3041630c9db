# sistemas/servidores/models.py
"""
Modelos da base de servidores importada do RH.

- ServidorTJ: tabela de staging (uma linha por matrícula)
- ImportacaoServidores: cada carga versionada e sua mesclagem em `users`
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, ForeignKey

from database.connection import Base
from utils.timezone import get_utc_now


class ImportacaoServidores(Base):
    """Carga de planilha do RH (versão incremental)"""
    __tablename__ = "importacoes_servidores"

    id = Column(Integer, primary_key=True, index=True)
    versao = Column(Integer, unique=True, nullable=False)
    arquivo = Column(String(300), nullable=True)
    executado_por = Column(Integer, ForeignKey("users.id"), nullable=True)

    total_registros = Column(Integer, default=0)
    inseridos = Column(Integer, default=0)
    atualizados = Column(Integer, default=0)
    ignorados = Column(Integer, default=0)

    status = Column(String(20), nullable=False, default="PROCESSADA")  # PROCESSADA, MESCLADA
    mesclados_criados = Column(Integer, default=0)
    mesclados_atualizados = Column(Integer, default=0)
    conflitos = Column(Integer, default=0)
    erros = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=get_utc_now)
    mesclado_em = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<ImportacaoServidores(versao={self.versao}, status='{self.status}')>"


class ServidorTJ(Base):
    """Servidor, magistrado ou estagiário conforme a planilha do RH"""
    __tablename__ = "servidores_tj"

    id = Column(Integer, primary_key=True, index=True)
    matricula = Column(String(20), unique=True, nullable=False, index=True)
    nome = Column(String(200), nullable=False)
    email = Column(String(100), nullable=True, index=True)
    cpf = Column(String(11), nullable=True)

    vinculo = Column(String(100), nullable=True)
    categoria = Column(String(20), nullable=False, default="SERVIDOR")  # SERVIDOR, MAGISTRADO, ESTAGIARIO
    cargo = Column(String(200), nullable=True)
    lotacao = Column(String(200), nullable=True)
    lotacao_cumulativa = Column(String(200), nullable=True)
    teletrabalho = Column(String(50), nullable=True)
    tipo_afastamento = Column(String(100), nullable=True)
    tipo_estagio = Column(String(100), nullable=True)
    curso = Column(String(200), nullable=True)
    grau = Column(String(5), nullable=False, default="1G")
    ativo = Column(Boolean, default=True)

    importacao_id = Column(Integer, ForeignKey("importacoes_servidores.id"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=get_utc_now)
    updated_at = Column(DateTime(timezone=True), default=get_utc_now, onupdate=get_utc_now)

    def __repr__(self):
        return f"<ServidorTJ(matricula='{self.matricula}', nome='{self.nome}')>"
