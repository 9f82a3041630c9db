# sistemas/suprimento_fundos/models.py
"""
Modelos de dados do módulo Suprimento de Fundos

- Comarca / UnidadeTitular / HistoricoTitular: unidades e seus supridos titulares
- Solicitacao / ItemDespesa: pedido de suprimento e seus elementos de despesa
- HistoricoTramitacao: trilha de tramitação (somente inclusão)
- Documento: artefato textual do processo, imutável depois de assinado
- Notificacao: avisos ao novo dono da fila
- SequenciaDocumental: numeração anual de NUP, certidões e portarias
- LoteConcessao: execução do lote ordinário
"""

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Date, Numeric,
    JSON, ForeignKey, Index, UniqueConstraint, PrimaryKeyConstraint, event, inspect
)
from sqlalchemy.orm import relationship

from database.connection import Base
from auth.models import User  # noqa: F401  (registra "users" para as FKs)
from utils.timezone import get_utc_now
from sistemas.suprimento_fundos.constants import StatusDocumento
from sistemas.suprimento_fundos.exceptions import DocumentoAssinadoError, HistoricoImutavelError


class Comarca(Base):
    """Comarca (unidade judiciária)"""
    __tablename__ = "comarcas"

    id = Column(Integer, primary_key=True, index=True)
    codigo = Column(String(20), unique=True, nullable=False)
    nome = Column(String(200), nullable=False)
    ativo = Column(Boolean, default=True)

    def __repr__(self):
        return f"<Comarca(id={self.id}, nome='{self.nome}')>"


class UnidadeTitular(Base):
    """
    Suprido titular de uma comarca para um tipo de suprimento (ORDINARIO ou JURI).

    Guarda também os parâmetros financeiros usados pelo lote ordinário.
    """
    __tablename__ = "unidade_titulares"

    id = Column(Integer, primary_key=True, index=True)
    comarca_id = Column(Integer, ForeignKey("comarcas.id"), nullable=False, index=True)
    comarca = relationship("Comarca")
    tipo = Column(String(20), nullable=False, default="ORDINARIO")

    suprido_atual_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    suprido_atual = relationship("User", foreign_keys=[suprido_atual_id])

    portaria_numero = Column(String(50), nullable=True)
    portaria_data = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="SEM_TITULAR", index=True)

    # Parâmetros do lote ordinário
    valor_custeio = Column(Numeric(12, 2), nullable=False, default=500)
    valor_capital = Column(Numeric(12, 2), nullable=False, default=0)
    teto_anual = Column(Numeric(12, 2), nullable=True)
    distribuicao = Column(JSON, nullable=True)  # {"3.3.90.30": 60, "3.3.90.39": 40}
    ptres = Column(String(10), nullable=True)

    created_at = Column(DateTime(timezone=True), default=get_utc_now)
    updated_at = Column(DateTime(timezone=True), default=get_utc_now, onupdate=get_utc_now)

    historico = relationship(
        "HistoricoTitular", back_populates="unidade", order_by="HistoricoTitular.id"
    )

    __table_args__ = (
        UniqueConstraint("comarca_id", "tipo", name="uq_unidade_titular_comarca_tipo"),
    )

    def __repr__(self):
        return f"<UnidadeTitular(comarca_id={self.comarca_id}, tipo='{self.tipo}', status='{self.status}')>"


class HistoricoTitular(Base):
    """Registro de cada troca de titular (somente inclusão)"""
    __tablename__ = "historico_titulares"

    id = Column(Integer, primary_key=True, index=True)
    unidade_id = Column(Integer, ForeignKey("unidade_titulares.id"), nullable=False, index=True)
    unidade = relationship("UnidadeTitular", back_populates="historico")
    titular_anterior_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    titular_novo_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    portaria_numero = Column(String(50), nullable=False)
    portaria_data = Column(Date, nullable=True)
    motivo = Column(Text, nullable=True)
    registrado_por = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=get_utc_now)


class Solicitacao(Base):
    """
    Pedido de suprimento de fundos.

    O par (status, destino_atual) só muda por services.tramitar. `versao` é o
    token de concorrência otimista: todo UPDATE confere e incrementa.
    """
    __tablename__ = "solicitacoes"

    id = Column(Integer, primary_key=True, index=True)
    nup = Column(String(30), unique=True, nullable=False, index=True)
    tipo = Column(String(20), nullable=False)

    status = Column(String(40), nullable=False, default="RASCUNHO", index=True)
    destino_atual = Column(String(20), nullable=False, default="SUPRIDO", index=True)

    # Requerente / suprido
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user = relationship("User", foreign_keys=[user_id])

    comarca_id = Column(Integer, ForeignKey("comarcas.id"), nullable=True, index=True)
    comarca = relationship("Comarca")
    competencia = Column(String(10), nullable=True)
    lote_id = Column(Integer, ForeignKey("lotes_concessao.id"), nullable=True)

    descricao = Column(Text, nullable=True)
    justificativa = Column(Text, nullable=True)
    valor_solicitado = Column(Numeric(12, 2), nullable=False, default=0)
    ptres = Column(String(10), nullable=True)
    dados_extras = Column(JSON, nullable=True)  # júri: participantes, refeições etc.

    # Marcos do fluxo
    atestado_por = Column(Integer, ForeignKey("users.id"), nullable=True)
    data_atesto = Column(DateTime(timezone=True), nullable=True)
    autorizado_por = Column(Integer, ForeignKey("users.id"), nullable=True)
    data_autorizacao = Column(DateTime(timezone=True), nullable=True)
    data_recebimento = Column(DateTime(timezone=True), nullable=True)
    prazo_aplicacao = Column(Date, nullable=True)
    prazo_prestacao = Column(Date, nullable=True)

    versao = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=get_utc_now, index=True)
    updated_at = Column(DateTime(timezone=True), default=get_utc_now, onupdate=get_utc_now)

    itens = relationship(
        "ItemDespesa", back_populates="solicitacao",
        cascade="all, delete-orphan", order_by="ItemDespesa.ordem"
    )
    documentos = relationship("Documento", back_populates="solicitacao", order_by="Documento.id")
    historico = relationship(
        "HistoricoTramitacao", back_populates="solicitacao",
        order_by="HistoricoTramitacao.id"
    )

    __mapper_args__ = {"version_id_col": versao}

    __table_args__ = (
        # Idempotência do lote: uma solicitação por unidade e competência.
        # Solicitações avulsas têm competencia NULL e não colidem.
        UniqueConstraint("comarca_id", "competencia", "tipo", name="uq_solicitacao_unidade_competencia"),
        Index("ix_solicitacoes_destino_status", "destino_atual", "status"),
    )

    def __repr__(self):
        return f"<Solicitacao(id={self.id}, nup='{self.nup}', status='{self.status}', destino='{self.destino_atual}')>"


class ItemDespesa(Base):
    """Linha de despesa (elemento + valor) de uma solicitação"""
    __tablename__ = "itens_despesa"

    id = Column(Integer, primary_key=True, index=True)
    solicitacao_id = Column(Integer, ForeignKey("solicitacoes.id"), nullable=False, index=True)
    solicitacao = relationship("Solicitacao", back_populates="itens")
    ordem = Column(Integer, nullable=False, default=0)
    elemento = Column(String(20), nullable=False)
    descricao = Column(String(300), nullable=True)
    valor = Column(Numeric(12, 2), nullable=False)


class HistoricoTramitacao(Base):
    """
    Uma linha por transição bem sucedida.

    Gravada na mesma transação da mudança de estado. Nunca é alterada.
    """
    __tablename__ = "historico_tramitacao"

    id = Column(Integer, primary_key=True, index=True)
    solicitacao_id = Column(Integer, ForeignKey("solicitacoes.id"), nullable=False, index=True)
    solicitacao = relationship("Solicitacao", back_populates="historico")
    origem = Column(String(20), nullable=True)
    destino = Column(String(20), nullable=False)
    status_anterior = Column(String(40), nullable=True)  # NULL quando criada pelo lote
    status_novo = Column(String(40), nullable=False)
    evento = Column(String(30), nullable=True)
    observacao = Column(Text, nullable=True)
    tramitado_por = Column(Integer, ForeignKey("users.id"), nullable=False)
    usuario = relationship("User", foreign_keys=[tramitado_por])
    data_tramitacao = Column(DateTime(timezone=True), default=get_utc_now, nullable=False)

    def __repr__(self):
        return f"<HistoricoTramitacao({self.status_anterior} -> {self.status_novo}, destino={self.destino})>"


class Documento(Base):
    """
    Documento textual gerado a partir de template.

    Depois de ASSINADO, nome/conteúdo/status/assinatura ficam congelados
    (conferido no flush, ver listeners abaixo).
    """
    __tablename__ = "documentos"

    id = Column(Integer, primary_key=True, index=True)
    solicitacao_id = Column(Integer, ForeignKey("solicitacoes.id"), nullable=True, index=True)
    solicitacao = relationship("Solicitacao", back_populates="documentos")
    unidade_titular_id = Column(Integer, ForeignKey("unidade_titulares.id"), nullable=True)

    tipo = Column(String(40), nullable=False, index=True)
    nome = Column(String(300), nullable=False)
    conteudo = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="MINUTA")
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Assinatura
    hash_conteudo = Column(String(64), nullable=True)
    assinatura = Column(String(64), nullable=True)
    codigo_validacao = Column(String(20), nullable=True, unique=True, index=True)
    assinado_por = Column(Integer, ForeignKey("users.id"), nullable=True)
    assinado_por_nome = Column(String(200), nullable=True)
    assinado_por_papel = Column(String(20), nullable=True)
    data_assinatura = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=get_utc_now)
    updated_at = Column(DateTime(timezone=True), default=get_utc_now, onupdate=get_utc_now)

    def __repr__(self):
        return f"<Documento(id={self.id}, tipo='{self.tipo}', status='{self.status}')>"


class Notificacao(Base):
    """Aviso para um usuário específico ou para todos de um papel"""
    __tablename__ = "system_notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    papel = Column(String(20), nullable=True, index=True)
    tipo = Column(String(20), nullable=False, default="INFO")
    categoria = Column(String(20), nullable=False, default="PROCESS")
    titulo = Column(String(200), nullable=False)
    mensagem = Column(Text, nullable=True)
    link = Column(String(300), nullable=True)
    metadados = Column("metadata", JSON, nullable=True)
    lida = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=get_utc_now, index=True)


class SequenciaDocumental(Base):
    """Último número emitido por prefixo e ano (NUP, certidões, portarias)"""
    __tablename__ = "sequencias_documentais"

    prefixo = Column(String(10), nullable=False)
    ano = Column(Integer, nullable=False)
    ultimo = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        PrimaryKeyConstraint("prefixo", "ano"),
    )


class LoteConcessao(Base):
    """Execução do lote ordinário para uma competência"""
    __tablename__ = "lotes_concessao"

    id = Column(Integer, primary_key=True, index=True)
    competencia = Column(String(10), nullable=False, index=True)
    tipo = Column(String(20), nullable=False, default="ORDINARIO")
    executado_por = Column(Integer, ForeignKey("users.id"), nullable=False)
    total_unidades = Column(Integer, default=0)
    sucessos = Column(Integer, default=0)
    erros = Column(Integer, default=0)
    ignorados = Column(Integer, default=0)
    valor_total = Column(Numeric(14, 2), default=0)
    resultados = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=get_utc_now)
    finalizado_em = Column(DateTime(timezone=True), nullable=True)


# ==================================================
# REGRAS DE IMUTABILIDADE
# ==================================================

def _somente_inclusao(mapper, connection, target):
    raise HistoricoImutavelError(
        f"{target.__class__.__name__} é somente inclusão (id={target.id})"
    )


for _modelo in (HistoricoTramitacao, HistoricoTitular):
    event.listen(_modelo, "before_update", _somente_inclusao)
    event.listen(_modelo, "before_delete", _somente_inclusao)


CAMPOS_CONGELADOS_DOCUMENTO = (
    "tipo", "nome", "conteudo", "status", "hash_conteudo", "assinatura",
    "assinado_por", "data_assinatura", "solicitacao_id",
)


def _status_persistido(documento: Documento) -> str:
    historico = inspect(documento).attrs.status.history
    if historico.deleted:
        return historico.deleted[0]
    return documento.status


@event.listens_for(Documento, "before_update")
def _documento_assinado_imutavel(mapper, connection, target):
    if _status_persistido(target) != StatusDocumento.ASSINADO:
        return
    estado = inspect(target)
    alterados = [c for c in CAMPOS_CONGELADOS_DOCUMENTO if estado.attrs[c].history.has_changes()]
    if alterados:
        raise DocumentoAssinadoError(
            f"Documento {target.id} está assinado; campos bloqueados: {', '.join(alterados)}"
        )


@event.listens_for(Documento, "before_delete")
def _documento_assinado_nao_exclui(mapper, connection, target):
    if _status_persistido(target) == StatusDocumento.ASSINADO:
        raise DocumentoAssinadoError(f"Documento {target.id} está assinado e não pode ser excluído")
