# sistemas/suprimento_fundos/services.py
"""
Serviço de solicitações e tramitação.

Toda mudança de (status, destino_atual) passa por `tramitar`, que numa única
transação:
1. resolve a transição na tabela do workflow e confere o papel do ator
2. executa as guardas do evento (atesto, limites, observação)
3. atualiza a solicitação (versão otimista)
4. grava uma linha em historico_tramitacao
5. grava a notificação para o novo dono da fila

Qualquer falha desfaz tudo: não existe histórico sem mudança de estado nem
mudança de estado sem histórico.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

from fastapi import Request
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from auth.models import User
from config import (
    LIMITE_ORDINARIO, PRAZO_APLICACAO_ORDINARIO_DIAS,
    PRAZO_APLICACAO_EXTRAORDINARIO_DIAS, PRAZO_PRESTACAO_DIAS,
)
from sistemas.suprimento_fundos.constants import (
    CategoriaNotificacao, Evento, Papel, PREFIXO_NUP_AVULSO, StatusSolicitacao,
    STATUS_TERMINAIS, TIPOS_DOCUMENTO_ATESTO, TipoNotificacao, TipoSolicitacao,
)
from sistemas.suprimento_fundos.exceptions import (
    ConcorrenciaError, PermissaoNegadaError, SolicitacaoNaoEncontradaError,
    SuprimentoError, TransicaoInvalidaError, ValidacaoError,
)
from sistemas.suprimento_fundos.models import (
    Documento, HistoricoTramitacao, ItemDespesa, Solicitacao,
)
from sistemas.suprimento_fundos.services_notificacoes import criar_notificacao
from sistemas.suprimento_fundos.services_numeracao import gerar_nup
from sistemas.suprimento_fundos.workflow import Transicao, eventos_disponiveis, resolver_transicao
from utils.audit import AuditEvent, log_access_denied, log_audit_event
from utils.logging_config import get_logger
from utils.timezone import hoje_local, now_utc
from utils.validators import CENTAVO, format_currency_br, validate_nup

logger = get_logger(__name__)

# Eventos em que o motivo é obrigatório
EVENTOS_COM_OBSERVACAO = {Evento.DEVOLVER.value, Evento.CANCELAR.value}

# Papéis que consultam solicitações de terceiros
PAPEIS_INTERNOS = {p.value for p in Papel if p != Papel.SUPRIDO}


# ==================================================
# CONSULTAS
# ==================================================

def is_admin(user: User) -> bool:
    return user.role == "admin"


def obter_solicitacao(db: Session, solicitacao_id: int) -> Solicitacao:
    solicitacao = db.query(Solicitacao).filter(Solicitacao.id == solicitacao_id).first()
    if not solicitacao:
        raise SolicitacaoNaoEncontradaError(f"Solicitação {solicitacao_id} não encontrada")
    return solicitacao


def verificar_acesso_leitura(user: User, solicitacao: Solicitacao) -> None:
    """Requerente, equipe interna (qualquer papel exceto SUPRIDO) ou admin."""
    if is_admin(user) or solicitacao.user_id == user.id or user.papel in PAPEIS_INTERNOS:
        return
    raise PermissaoNegadaError("Solicitação de outro suprido")


def obter_solicitacao_para_usuario(db: Session, user: User, solicitacao_id: int) -> Solicitacao:
    solicitacao = obter_solicitacao(db, solicitacao_id)
    verificar_acesso_leitura(user, solicitacao)
    return solicitacao


def obter_solicitacao_por_nup(db: Session, user: User, nup: str) -> Solicitacao:
    """Busca pelo NUP (TJPA-SOL-2026-00012), com a mesma regra de leitura por id."""
    if not validate_nup(nup):
        raise ValidacaoError(f"NUP inválido: {nup}")
    solicitacao = db.query(Solicitacao).filter(Solicitacao.nup == nup.strip()).first()
    if not solicitacao:
        raise SolicitacaoNaoEncontradaError(f"Processo {nup} não encontrado")
    verificar_acesso_leitura(user, solicitacao)
    return solicitacao


def listar_fila(db: Session, user: User, papel: Optional[str] = None) -> List[Solicitacao]:
    """
    Fila de trabalho de um papel.

    - SUPRIDO: as próprias solicitações (exceto excluídas)
    - Demais: solicitações com destino_atual == papel, fora dos estados terminais
    """
    papel = papel or user.papel
    if papel != user.papel and not is_admin(user):
        raise PermissaoNegadaError(f"Usuário com papel {user.papel} não acessa a fila {papel}")

    query = db.query(Solicitacao)
    if papel == Papel.SUPRIDO.value:
        query = query.filter(
            Solicitacao.user_id == user.id,
            Solicitacao.status != StatusSolicitacao.EXCLUIDO.value,
        )
    else:
        query = query.filter(
            Solicitacao.destino_atual == papel,
            Solicitacao.status.notin_(list(STATUS_TERMINAIS)),
        )
    return query.order_by(Solicitacao.updated_at.desc(), Solicitacao.id.desc()).all()


def obter_historico(db: Session, user: User, solicitacao_id: int) -> List[HistoricoTramitacao]:
    obter_solicitacao_para_usuario(db, user, solicitacao_id)
    return (
        db.query(HistoricoTramitacao)
        .filter(HistoricoTramitacao.solicitacao_id == solicitacao_id)
        .order_by(HistoricoTramitacao.id)
        .all()
    )


def eventos_para_usuario(user: User, solicitacao: Solicitacao) -> List[str]:
    """Eventos que o usuário pode disparar agora (usado pela interface)."""
    permitidos = []
    for evento in eventos_disponiveis(solicitacao.status, solicitacao.destino_atual):
        transicao = resolver_transicao(solicitacao.status, solicitacao.destino_atual, evento)
        if _ator_autorizado(user, solicitacao, transicao):
            permitidos.append(evento.value)
    return permitidos


# ==================================================
# VALORES E ITENS
# ==================================================

def somar_itens(itens: Iterable) -> Decimal:
    total = sum((Decimal(str(item.valor)) for item in itens), Decimal("0"))
    return total.quantize(CENTAVO)


def _substituir_itens(solicitacao: Solicitacao, itens_in) -> None:
    solicitacao.itens = [
        ItemDespesa(
            ordem=ordem,
            elemento=item.elemento,
            descricao=item.descricao,
            valor=Decimal(str(item.valor)).quantize(CENTAVO),
        )
        for ordem, item in enumerate(itens_in, start=1)
    ]
    solicitacao.valor_solicitado = somar_itens(solicitacao.itens)


def _conferir_versao(solicitacao: Solicitacao, versao_esperada: Optional[int]) -> None:
    if versao_esperada is not None and versao_esperada != solicitacao.versao:
        raise ConcorrenciaError(
            f"Solicitação {solicitacao.nup} está na versão {solicitacao.versao}, "
            f"cliente enviou {versao_esperada}. Recarregue antes de continuar."
        )


def _commit(db: Session, solicitacao: Solicitacao) -> None:
    """Commit que traduz conflito de versão em ConcorrenciaError."""
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        raise ConcorrenciaError(
            f"Solicitação {solicitacao.id} foi alterada por outro usuário"
        ) from e


# ==================================================
# CRIAÇÃO E EDIÇÃO
# ==================================================

def criar_solicitacao(db: Session, user: User, dados, request: Optional[Request] = None) -> Solicitacao:
    """
    Cria a solicitação em RASCUNHO; com `dados.submeter` aplica SUBMETER na
    mesma transação (uma única linha de histórico).
    """
    try:
        solicitacao = Solicitacao(
            nup=gerar_nup(db, PREFIXO_NUP_AVULSO),
            tipo=TipoSolicitacao(dados.tipo).value,
            status=StatusSolicitacao.RASCUNHO.value,
            destino_atual=Papel.SUPRIDO.value,
            user_id=user.id,
            comarca_id=dados.comarca_id,
            descricao=dados.descricao,
            justificativa=dados.justificativa,
            ptres=dados.ptres,
            dados_extras=dados.dados_extras,
        )
        _substituir_itens(solicitacao, dados.itens)
        db.add(solicitacao)
        db.flush()

        if dados.submeter:
            transicao = resolver_transicao(solicitacao.status, solicitacao.destino_atual, Evento.SUBMETER)
            _aplicar_transicao(db, user, solicitacao, transicao, observacao=None)

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(solicitacao)
    logger.info(
        f"[SUPRIMENTO] Solicitação {solicitacao.nup} criada",
        solicitacao_id=solicitacao.id,
        status=solicitacao.status,
        valor=str(solicitacao.valor_solicitado),
    )
    if dados.submeter:
        _auditar_tramitacao(user, solicitacao, Evento.SUBMETER.value, request)
    return solicitacao


def atualizar_solicitacao(db: Session, user: User, solicitacao_id: int, dados) -> Solicitacao:
    """
    Edita rascunho ou solicitação devolvida ao suprido. Só o requerente.
    """
    solicitacao = obter_solicitacao(db, solicitacao_id)

    if solicitacao.user_id != user.id:
        raise PermissaoNegadaError("Apenas o requerente pode editar a solicitação")

    editavel = solicitacao.destino_atual == Papel.SUPRIDO.value and solicitacao.status in (
        StatusSolicitacao.RASCUNHO.value, StatusSolicitacao.DEVOLVIDO.value
    )
    if not editavel:
        raise TransicaoInvalidaError(
            f"Solicitação em '{solicitacao.status}' com destino {solicitacao.destino_atual} não pode ser editada"
        )

    _conferir_versao(solicitacao, dados.versao_esperada)

    campos = dados.model_dump(exclude_unset=True, exclude={"itens", "versao_esperada"})
    for campo, valor in campos.items():
        setattr(solicitacao, campo, valor)
    if dados.itens is not None:
        _substituir_itens(solicitacao, dados.itens)
    # Garante UPDATE na linha pai (e incremento de versão) mesmo se só os itens mudaram
    solicitacao.updated_at = now_utc()

    try:
        _commit(db, solicitacao)
    except SuprimentoError:
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(solicitacao)
    logger.info(f"[SUPRIMENTO] Solicitação {solicitacao.nup} editada", versao=solicitacao.versao)
    return solicitacao


# ==================================================
# TRAMITAÇÃO
# ==================================================

def _ator_autorizado(user: User, solicitacao: Solicitacao, transicao: Transicao) -> bool:
    if is_admin(user):
        return True
    if transicao.ator_e_requerente:
        return solicitacao.user_id == user.id
    return user.papel == transicao.papel_autorizado.value


def _guarda_submeter(db: Session, user: User, solicitacao: Solicitacao, observacao: Optional[str]) -> None:
    if not solicitacao.itens:
        raise ValidacaoError("Informe ao menos um item de despesa antes de enviar")
    total = somar_itens(solicitacao.itens)
    if total <= 0:
        raise ValidacaoError("Valor total deve ser maior que zero")
    if solicitacao.tipo == TipoSolicitacao.ORDINARIO.value and total > LIMITE_ORDINARIO:
        raise ValidacaoError(
            f"Valor {format_currency_br(total)} excede o limite do suprimento ordinário "
            f"({format_currency_br(LIMITE_ORDINARIO)})"
        )


def _guarda_atestar(db: Session, user: User, solicitacao: Solicitacao, observacao: Optional[str]) -> None:
    # Gestor que é o próprio requerente dispensa certidão (auto-atesto)
    if user.id == solicitacao.user_id:
        return
    possui_certidao = (
        db.query(Documento.id)
        .filter(
            Documento.solicitacao_id == solicitacao.id,
            Documento.tipo.in_(list(TIPOS_DOCUMENTO_ATESTO)),
        )
        .first()
    )
    if not possui_certidao:
        raise ValidacaoError("Gere a Certidão de Atesto antes de atestar a solicitação")


def _guarda_observacao(db: Session, user: User, solicitacao: Solicitacao, observacao: Optional[str]) -> None:
    if not (observacao or "").strip():
        raise ValidacaoError("Informe o motivo na observação")


GUARDAS: Dict[str, Callable] = {
    Evento.SUBMETER.value: _guarda_submeter,
    Evento.ATESTAR.value: _guarda_atestar,
    Evento.DEVOLVER.value: _guarda_observacao,
    Evento.CANCELAR.value: _guarda_observacao,
}


def _efeitos(user: User, solicitacao: Solicitacao, transicao: Transicao) -> None:
    """Campos de marco gravados junto com a transição."""
    evento = transicao.evento
    agora = now_utc()

    if evento == Evento.ATESTAR:
        solicitacao.atestado_por = user.id
        solicitacao.data_atesto = agora
    elif evento == Evento.AUTORIZAR:
        solicitacao.autorizado_por = user.id
        solicitacao.data_autorizacao = agora
    elif evento == Evento.CONFIRMAR_RECEBIMENTO:
        hoje = hoje_local()
        dias_aplicacao = (
            PRAZO_APLICACAO_ORDINARIO_DIAS
            if solicitacao.tipo == TipoSolicitacao.ORDINARIO.value
            else PRAZO_APLICACAO_EXTRAORDINARIO_DIAS
        )
        solicitacao.data_recebimento = agora
        solicitacao.prazo_aplicacao = hoje + timedelta(days=dias_aplicacao)
        # Prestação de contas conta a partir do fim da aplicação
        solicitacao.prazo_prestacao = solicitacao.prazo_aplicacao + timedelta(days=PRAZO_PRESTACAO_DIAS)


def _notificar_novo_dono(
    db: Session,
    user: User,
    solicitacao: Solicitacao,
    transicao: Transicao,
    observacao: Optional[str] = None,
) -> None:
    destino = transicao.destino_novo
    evento = transicao.evento

    if destino == Papel.SUPRIDO:
        if solicitacao.user_id == user.id:
            return
        alvo = {"user_id": solicitacao.user_id}
    else:
        alvo = {"papel": destino.value}

    if evento == Evento.DEVOLVER:
        tipo = TipoNotificacao.WARNING
    elif evento in (Evento.AUTORIZAR, Evento.LIBERAR_RECURSO):
        tipo = TipoNotificacao.SUCCESS
    else:
        tipo = TipoNotificacao.INFO

    categoria = CategoriaNotificacao.FINANCE if evento == Evento.LIBERAR_RECURSO else CategoriaNotificacao.PROCESS

    mensagem = f"{user.full_name} ({user.papel}) tramitou o processo para {destino.value}."
    metadados = {
        "solicitacao_id": solicitacao.id,
        "nup": solicitacao.nup,
        "evento": evento.value,
        "status_anterior": transicao.status_origem.value,
        "status_novo": transicao.status_novo.value,
    }
    if observacao:
        mensagem = f"{mensagem} Motivo: {observacao.strip()}"
        metadados["observacao"] = observacao.strip()

    criar_notificacao(
        db,
        titulo=f"Processo {solicitacao.nup}: {transicao.status_novo.value}",
        mensagem=mensagem,
        tipo=tipo,
        categoria=categoria,
        link=f"/solicitacoes/{solicitacao.id}",
        metadados=metadados,
        **alvo,
    )


def _aplicar_transicao(
    db: Session,
    user: User,
    solicitacao: Solicitacao,
    transicao: Transicao,
    observacao: Optional[str],
) -> HistoricoTramitacao:
    """
    Aplica a transição dentro da transação corrente (sem commit).
    """
    if not _ator_autorizado(user, solicitacao, transicao):
        raise PermissaoNegadaError(
            f"Evento {transicao.evento.value} exige papel {transicao.papel_autorizado.value}"
            + (" (requerente)" if transicao.ator_e_requerente else "")
        )

    guarda = GUARDAS.get(transicao.evento.value)
    if guarda:
        guarda(db, user, solicitacao, observacao)

    _efeitos(user, solicitacao, transicao)
    solicitacao.status = transicao.status_novo.value
    solicitacao.destino_atual = transicao.destino_novo.value

    historico = HistoricoTramitacao(
        solicitacao_id=solicitacao.id,
        origem=transicao.destino_origem.value,
        destino=transicao.destino_novo.value,
        status_anterior=transicao.status_origem.value,
        status_novo=transicao.status_novo.value,
        evento=transicao.evento.value,
        observacao=observacao,
        tramitado_por=user.id,
    )
    db.add(historico)

    _notificar_novo_dono(db, user, solicitacao, transicao, observacao)

    db.flush()
    return historico


def tramitar(
    db: Session,
    user: User,
    solicitacao_id: int,
    evento,
    observacao: Optional[str] = None,
    versao_esperada: Optional[int] = None,
    request: Optional[Request] = None,
) -> Solicitacao:
    """
    Executa um evento de tramitação de forma atômica.

    Raises:
        SolicitacaoNaoEncontradaError: id inexistente
        TransicaoInvalidaError: evento não permitido no par atual
        PermissaoNegadaError: usuário sem o papel exigido
        ValidacaoError: guarda do evento não satisfeita
        ConcorrenciaError: versão divergente ou escrita concorrente
    """
    solicitacao = obter_solicitacao(db, solicitacao_id)
    evento_valor = evento.value if hasattr(evento, "value") else str(evento)

    try:
        _conferir_versao(solicitacao, versao_esperada)
        transicao = resolver_transicao(solicitacao.status, solicitacao.destino_atual, evento_valor)
        _aplicar_transicao(db, user, solicitacao, transicao, observacao)
        db.commit()
    except StaleDataError as e:
        db.rollback()
        raise ConcorrenciaError(f"Solicitação {solicitacao_id} foi alterada por outro usuário") from e
    except PermissaoNegadaError as e:
        db.rollback()
        log_access_denied(user.id, user.username, request, str(e))
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(solicitacao)
    logger.info(
        f"[SUPRIMENTO] {solicitacao.nup}: {evento_valor} -> {solicitacao.status}/{solicitacao.destino_atual}",
        solicitacao_id=solicitacao.id,
        user_id=user.id,
        versao=solicitacao.versao,
    )
    _auditar_tramitacao(user, solicitacao, evento_valor, request)
    return solicitacao


def _auditar_tramitacao(user: User, solicitacao: Solicitacao, evento: str, request: Optional[Request]) -> None:
    log_audit_event(
        AuditEvent.TRAMITACAO,
        user_id=user.id,
        username=user.username,
        request=request,
        details={
            "solicitacao_id": solicitacao.id,
            "nup": solicitacao.nup,
            "evento": evento,
            "status": solicitacao.status,
            "destino": solicitacao.destino_atual,
        },
    )
