# sistemas/suprimento_fundos/router.py
"""
Router do módulo Suprimento de Fundos.

Endpoints para:
- Solicitações e tramitação (fila por papel, histórico)
- Documentos e assinatura com PIN
- Notificações
- Lote ordinário (SOSFU)
- Supridos titulares (SOSFU)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from database.connection import get_db
from auth.models import User
from auth.dependencies import get_current_active_user
from sistemas.suprimento_fundos import (
    services,
    services_documentos,
    services_lote,
    services_notificacoes,
    services_titulares,
)
from sistemas.suprimento_fundos.constants import Papel
from sistemas.suprimento_fundos.dependencies import require_papel
from sistemas.suprimento_fundos.exceptions import SuprimentoError
from sistemas.suprimento_fundos.schemas import (
    AssinarDocumentoRequest, DocumentoResponse, DocumentoUpdate, GerarDocumentoRequest,
    HistoricoTitularResponse, HistoricoTramitacaoResponse, LoteExecutarRequest, LoteResponse,
    NomeacaoTitularRequest, NomeacaoTitularResponse, NotificacaoResponse, SolicitacaoCreate,
    SolicitacaoResponse, SolicitacaoUpdate, TramitarRequest, UnidadeElegivelResponse,
    UnidadeTitularResponse, VerificacaoAssinaturaResponse,
)
from utils.rate_limit import LIMITS, get_user_identifier, limiter

router = APIRouter(prefix="/suprimento", tags=["Suprimento de Fundos"])


def _http(e: SuprimentoError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.mensagem)


def _solicitacao_response(user: User, solicitacao) -> SolicitacaoResponse:
    resposta = SolicitacaoResponse.model_validate(solicitacao)
    return resposta.model_copy(update={"eventos_disponiveis": services.eventos_para_usuario(user, solicitacao)})


# ==========================================
# Solicitações
# ==========================================

@router.post("/solicitacoes", response_model=SolicitacaoResponse, status_code=status.HTTP_201_CREATED)
async def criar_solicitacao(
    dados: SolicitacaoCreate,
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    Cria uma solicitação em RASCUNHO.

    Com `submeter=true` a solicitação já segue para atesto (PENDENTE ATESTO / GESTOR).
    """
    try:
        solicitacao = services.criar_solicitacao(db, current_user, dados, request=request)
    except SuprimentoError as e:
        raise _http(e)
    return _solicitacao_response(current_user, solicitacao)


@router.get("/fila", response_model=List[SolicitacaoResponse])
async def listar_fila(
    papel: Optional[Papel] = Query(None, description="Padrão: papel do usuário"),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Fila de trabalho do papel (solicitações com destino_atual == papel)."""
    try:
        solicitacoes = services.listar_fila(db, current_user, papel.value if papel else None)
    except SuprimentoError as e:
        raise _http(e)
    return [_solicitacao_response(current_user, s) for s in solicitacoes]


@router.get("/solicitacoes/nup/{nup}", response_model=SolicitacaoResponse)
async def obter_solicitacao_por_nup(
    nup: str,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    try:
        solicitacao = services.obter_solicitacao_por_nup(db, current_user, nup)
    except SuprimentoError as e:
        raise _http(e)
    return _solicitacao_response(current_user, solicitacao)


@router.get("/solicitacoes/{solicitacao_id}", response_model=SolicitacaoResponse)
async def obter_solicitacao(
    solicitacao_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    try:
        solicitacao = services.obter_solicitacao_para_usuario(db, current_user, solicitacao_id)
    except SuprimentoError as e:
        raise _http(e)
    return _solicitacao_response(current_user, solicitacao)


@router.put("/solicitacoes/{solicitacao_id}", response_model=SolicitacaoResponse)
async def atualizar_solicitacao(
    solicitacao_id: int,
    dados: SolicitacaoUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Edita rascunho ou solicitação devolvida. Envie `versao_esperada` para evitar sobrescrita."""
    try:
        solicitacao = services.atualizar_solicitacao(db, current_user, solicitacao_id, dados)
    except SuprimentoError as e:
        raise _http(e)
    return _solicitacao_response(current_user, solicitacao)


@router.post("/solicitacoes/{solicitacao_id}/tramitar", response_model=SolicitacaoResponse)
async def tramitar_solicitacao(
    solicitacao_id: int,
    dados: TramitarRequest,
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    Executa um evento do fluxo (SUBMETER, ATESTAR, DEVOLVER, AUTORIZAR...).

    - 409: evento inválido para o estado atual ou versão desatualizada
    - 403: usuário sem o papel exigido
    - 422: guarda do evento não satisfeita
    """
    try:
        solicitacao = services.tramitar(
            db, current_user, solicitacao_id, dados.evento,
            observacao=dados.observacao,
            versao_esperada=dados.versao_esperada,
            request=request,
        )
    except SuprimentoError as e:
        raise _http(e)
    return _solicitacao_response(current_user, solicitacao)


@router.get("/solicitacoes/{solicitacao_id}/historico", response_model=List[HistoricoTramitacaoResponse])
async def historico_solicitacao(
    solicitacao_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    try:
        return services.obter_historico(db, current_user, solicitacao_id)
    except SuprimentoError as e:
        raise _http(e)


# ==========================================
# Documentos
# ==========================================

@router.get("/solicitacoes/{solicitacao_id}/documentos", response_model=List[DocumentoResponse])
async def listar_documentos(
    solicitacao_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    try:
        return services_documentos.listar_documentos(db, current_user, solicitacao_id)
    except SuprimentoError as e:
        raise _http(e)


@router.post(
    "/solicitacoes/{solicitacao_id}/documentos",
    response_model=DocumentoResponse,
    status_code=status.HTTP_201_CREATED,
)
async def gerar_documento(
    solicitacao_id: int,
    dados: GerarDocumentoRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Gera minuta do tipo informado (CERTIDAO_ATESTO, PORTARIA, ...)."""
    try:
        return services_documentos.gerar_documento(db, current_user, solicitacao_id, dados.tipo)
    except SuprimentoError as e:
        raise _http(e)


@router.get("/documentos/validar/{codigo}", response_model=VerificacaoAssinaturaResponse)
async def validar_por_codigo(codigo: str, db: Session = Depends(get_db)):
    """Validação pública de documento assinado pelo código impresso no rodapé."""
    try:
        documento = services_documentos.buscar_por_codigo(db, codigo)
        return services_documentos.verificar_assinatura(db, documento.id)
    except SuprimentoError as e:
        raise _http(e)


@router.get("/documentos/{documento_id}", response_model=DocumentoResponse)
async def obter_documento(
    documento_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    try:
        return services_documentos.obter_documento_para_usuario(db, current_user, documento_id)
    except SuprimentoError as e:
        raise _http(e)


@router.put("/documentos/{documento_id}", response_model=DocumentoResponse)
async def editar_documento(
    documento_id: int,
    dados: DocumentoUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Só o autor edita, e nunca depois de assinado (409)."""
    try:
        return services_documentos.editar_documento(
            db, current_user, documento_id, nome=dados.nome, conteudo=dados.conteudo
        )
    except SuprimentoError as e:
        raise _http(e)


@router.delete("/documentos/{documento_id}")
async def excluir_documento(
    documento_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    try:
        services_documentos.excluir_documento(db, current_user, documento_id)
    except SuprimentoError as e:
        raise _http(e)
    return {"message": "Documento excluído com sucesso"}


@router.post("/documentos/{documento_id}/assinar", response_model=DocumentoResponse)
@limiter.limit(LIMITS["pin"], key_func=get_user_identifier)
async def assinar_documento(
    documento_id: int,
    dados: AssinarDocumentoRequest,
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    Assina o documento com o PIN de assinatura.

    Tentativas com PIN incorreto são auditadas e limitadas por usuário.
    """
    try:
        return services_documentos.assinar_documento(
            db, current_user, documento_id, dados.pin, request=request
        )
    except SuprimentoError as e:
        raise _http(e)


@router.get("/documentos/{documento_id}/verificar", response_model=VerificacaoAssinaturaResponse)
async def verificar_documento(
    documento_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    try:
        services_documentos.obter_documento_para_usuario(db, current_user, documento_id)
        return services_documentos.verificar_assinatura(db, documento_id)
    except SuprimentoError as e:
        raise _http(e)


# ==========================================
# Notificações
# ==========================================

@router.get("/notificacoes", response_model=List[NotificacaoResponse])
async def listar_notificacoes(
    apenas_nao_lidas: bool = False,
    limite: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return services_notificacoes.listar_notificacoes(
        db, current_user, apenas_nao_lidas=apenas_nao_lidas, limite=limite
    )


@router.post("/notificacoes/{notificacao_id}/lida", response_model=NotificacaoResponse)
async def marcar_notificacao_lida(
    notificacao_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    try:
        return services_notificacoes.marcar_como_lida(db, current_user, notificacao_id)
    except SuprimentoError as e:
        raise _http(e)


# ==========================================
# Lote ordinário
# ==========================================

@router.get("/lote/elegiveis", response_model=List[UnidadeElegivelResponse])
async def unidades_elegiveis(
    competencia: str = Query(..., description="AAAA-NQ, ex: 2026-2Q"),
    current_user: User = Depends(require_papel(Papel.SOSFU)),
    db: Session = Depends(get_db)
):
    try:
        return services_lote.listar_unidades_elegiveis(db, competencia)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.post("/lote/executar", response_model=LoteResponse)
@limiter.limit(LIMITS["lote"], key_func=get_user_identifier)
async def executar_lote(
    dados: LoteExecutarRequest,
    request: Request,
    current_user: User = Depends(require_papel(Papel.SOSFU)),
    db: Session = Depends(get_db)
):
    """
    Concede o suprimento ordinário da competência para as unidades informadas.

    Idempotente: unidades já processadas na competência voltam como JA_EXISTENTE.
    """
    try:
        return services_lote.executar_lote(
            db, current_user, dados.competencia, dados.unidades, request=request
        )
    except SuprimentoError as e:
        raise _http(e)


# ==========================================
# Supridos titulares
# ==========================================

@router.get("/titulares", response_model=List[UnidadeTitularResponse])
async def listar_titulares(
    tipo: Optional[str] = None,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return services_titulares.listar_titulares(db, tipo)


@router.post("/titulares/nomear", response_model=NomeacaoTitularResponse, status_code=status.HTTP_201_CREATED)
async def nomear_titular(
    dados: NomeacaoTitularRequest,
    request: Request,
    current_user: User = Depends(require_papel(Papel.SOSFU)),
    db: Session = Depends(get_db)
):
    try:
        return services_titulares.nomear_titular(
            db, current_user,
            comarca_id=dados.comarca_id,
            tipo=dados.tipo,
            servidor_id=dados.servidor_id,
            portaria_numero=dados.portaria_numero,
            portaria_data=dados.portaria_data,
            motivo=dados.motivo,
            request=request,
        )
    except SuprimentoError as e:
        raise _http(e)


@router.get("/titulares/{unidade_id}/historico", response_model=List[HistoricoTitularResponse])
async def historico_titular(
    unidade_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    try:
        return services_titulares.historico_titular(db, unidade_id)
    except SuprimentoError as e:
        raise _http(e)
