# sistemas/suprimento_fundos/schemas.py
"""
Schemas Pydantic para validação de requisições e respostas
do módulo Suprimento de Fundos
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator

from sistemas.suprimento_fundos.constants import ELEMENTOS_PERMITIDOS, Evento, TipoSolicitacao
from utils.validators import validate_competencia, validate_elemento


# ==========================================
# Solicitações
# ==========================================

class ItemDespesaIn(BaseModel):
    """Linha de despesa informada pelo requerente"""
    elemento: str = Field(..., description="Elemento de despesa, ex: 3.3.90.30")
    descricao: Optional[str] = Field(None, max_length=300)
    valor: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)

    @field_validator("elemento")
    @classmethod
    def elemento_permitido(cls, v: str) -> str:
        v = v.strip()
        if not validate_elemento(v, ELEMENTOS_PERMITIDOS):
            raise ValueError(
                f"Elemento {v} não permitido. Permitidos: {', '.join(ELEMENTOS_PERMITIDOS)}"
            )
        return v


class ItemDespesaResponse(BaseModel):
    id: int
    ordem: int
    elemento: str
    descricao: Optional[str] = None
    valor: Decimal

    model_config = {"from_attributes": True}


class SolicitacaoCreate(BaseModel):
    """
    Criação de solicitação.

    O valor total é sempre a soma dos itens; com `submeter=True` a solicitação
    já segue para atesto da chefia.
    """
    tipo: TipoSolicitacao = TipoSolicitacao.EXTRA_EMERGENCIAL
    descricao: Optional[str] = Field(None, max_length=5000)
    justificativa: Optional[str] = Field(None, max_length=10000)
    comarca_id: Optional[int] = None
    ptres: Optional[str] = Field(None, max_length=10)
    itens: List[ItemDespesaIn] = Field(default_factory=list)
    dados_extras: Optional[Dict[str, Any]] = None
    submeter: bool = False


class SolicitacaoUpdate(BaseModel):
    """Edição de rascunho ou de solicitação devolvida ao suprido"""
    descricao: Optional[str] = Field(None, max_length=5000)
    justificativa: Optional[str] = Field(None, max_length=10000)
    ptres: Optional[str] = Field(None, max_length=10)
    itens: Optional[List[ItemDespesaIn]] = None
    dados_extras: Optional[Dict[str, Any]] = None
    versao_esperada: Optional[int] = None


class TramitarRequest(BaseModel):
    evento: Evento
    observacao: Optional[str] = Field(None, max_length=5000)
    versao_esperada: Optional[int] = Field(None, description="Versão lida pelo cliente; 409 se mudou")


class SolicitacaoResponse(BaseModel):
    id: int
    nup: str
    tipo: str
    status: str
    destino_atual: str
    user_id: int
    comarca_id: Optional[int] = None
    competencia: Optional[str] = None
    descricao: Optional[str] = None
    justificativa: Optional[str] = None
    valor_solicitado: Decimal
    ptres: Optional[str] = None
    dados_extras: Optional[Dict[str, Any]] = None
    prazo_aplicacao: Optional[date] = None
    prazo_prestacao: Optional[date] = None
    versao: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    itens: List[ItemDespesaResponse] = []
    eventos_disponiveis: List[str] = []

    model_config = {"from_attributes": True}


class HistoricoTramitacaoResponse(BaseModel):
    id: int
    origem: Optional[str] = None
    destino: str
    status_anterior: Optional[str] = None
    status_novo: str
    evento: Optional[str] = None
    observacao: Optional[str] = None
    tramitado_por: int
    data_tramitacao: datetime

    model_config = {"from_attributes": True}


# ==========================================
# Documentos
# ==========================================

class GerarDocumentoRequest(BaseModel):
    tipo: str = Field(..., min_length=1, max_length=40)


class DocumentoUpdate(BaseModel):
    nome: Optional[str] = Field(None, min_length=1, max_length=300)
    conteudo: Optional[str] = None


class AssinarDocumentoRequest(BaseModel):
    pin: str = Field(..., min_length=4, max_length=6)


class DocumentoResponse(BaseModel):
    id: int
    solicitacao_id: Optional[int] = None
    unidade_titular_id: Optional[int] = None
    tipo: str
    nome: str
    conteudo: Optional[str] = None
    status: str
    created_by: Optional[int] = None
    hash_conteudo: Optional[str] = None
    codigo_validacao: Optional[str] = None
    assinado_por_nome: Optional[str] = None
    assinado_por_papel: Optional[str] = None
    data_assinatura: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class VerificacaoAssinaturaResponse(BaseModel):
    documento_id: int
    assinado: bool
    integro: bool
    assinatura_valida: bool
    codigo_validacao: Optional[str] = None
    assinado_por_nome: Optional[str] = None
    assinado_por_papel: Optional[str] = None
    data_assinatura: Optional[datetime] = None


# ==========================================
# Notificações
# ==========================================

class NotificacaoResponse(BaseModel):
    id: int
    tipo: str
    categoria: str
    titulo: str
    mensagem: Optional[str] = None
    link: Optional[str] = None
    metadados: Optional[Dict[str, Any]] = None
    lida: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ==========================================
# Lote ordinário
# ==========================================

class LoteUnidadeEntrada(BaseModel):
    """
    Unidade incluída no lote.

    Sem `itens`, a distribuição é calculada a partir dos parâmetros da unidade.
    """
    unidade_id: int
    valor_autorizado: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    itens: Optional[List[ItemDespesaIn]] = None


class LoteExecutarRequest(BaseModel):
    competencia: str = Field(..., description="Quadrimestre no formato AAAA-NQ, ex: 2026-2Q")
    unidades: List[LoteUnidadeEntrada] = Field(..., min_length=1)

    @field_validator("competencia")
    @classmethod
    def competencia_valida(cls, v: str) -> str:
        if not validate_competencia(v):
            raise ValueError("Competência deve estar no formato AAAA-1Q, AAAA-2Q ou AAAA-3Q")
        return v


class UnidadeElegivelResponse(BaseModel):
    unidade_id: int
    comarca_id: int
    comarca_nome: str
    suprido_id: Optional[int] = None
    suprido_nome: Optional[str] = None
    status: str
    valor_autorizado: Decimal
    processado: bool
    apto: bool
    motivo: Optional[str] = None


class LoteResultadoUnidade(BaseModel):
    unidade_id: int
    situacao: str  # CRIADA, JA_EXISTENTE, ERRO
    solicitacao_id: Optional[int] = None
    nup: Optional[str] = None
    valor: Optional[Decimal] = None
    mensagem: Optional[str] = None


class LoteResponse(BaseModel):
    lote_id: int
    competencia: str
    total_unidades: int
    sucessos: int
    erros: int
    ignorados: int
    valor_total: Decimal
    resultados: List[LoteResultadoUnidade]


# ==========================================
# Titulares
# ==========================================

class NomeacaoTitularRequest(BaseModel):
    comarca_id: int
    tipo: TipoSolicitacao = TipoSolicitacao.ORDINARIO
    servidor_id: int = Field(..., description="Usuário nomeado como suprido titular")
    portaria_numero: Optional[str] = Field(None, max_length=50, description="Se vazio, numera automaticamente")
    portaria_data: Optional[date] = None
    motivo: Optional[str] = Field(None, max_length=2000)


class UnidadeTitularResponse(BaseModel):
    id: int
    comarca_id: int
    tipo: str
    suprido_atual_id: Optional[int] = None
    portaria_numero: Optional[str] = None
    portaria_data: Optional[date] = None
    status: str
    valor_custeio: Decimal
    valor_capital: Decimal
    teto_anual: Optional[Decimal] = None
    distribuicao: Optional[Dict[str, Any]] = None
    ptres: Optional[str] = None

    model_config = {"from_attributes": True}


class HistoricoTitularResponse(BaseModel):
    id: int
    titular_anterior_id: Optional[int] = None
    titular_novo_id: int
    portaria_numero: str
    portaria_data: Optional[date] = None
    motivo: Optional[str] = None
    registrado_por: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class NomeacaoTitularResponse(BaseModel):
    unidade: UnidadeTitularResponse
    historico_id: int
    documento_id: int
