# sistemas/suprimento_fundos/services_titulares.py
"""
Nomeação de supridos titulares por comarca.

O ponteiro UnidadeTitular.suprido_atual_id é sobrescrito; a trilha fica em
historico_titulares (somente inclusão) junto com a portaria gerada.
"""

from datetime import date
from typing import List, Optional

from fastapi import Request
from sqlalchemy.orm import Session, joinedload

from auth.models import User
from sistemas.suprimento_fundos.constants import (
    DOCUMENTOS, Papel, PREFIXO_PORTARIA, StatusDocumento, StatusTitular,
    TipoDocumento, TIPOS_COM_TITULAR,
)
from sistemas.suprimento_fundos.exceptions import (
    PermissaoNegadaError, RecursoNaoEncontradoError, ValidacaoError,
)
from sistemas.suprimento_fundos.models import Comarca, Documento, HistoricoTitular, UnidadeTitular
from sistemas.suprimento_fundos.services import is_admin
from sistemas.suprimento_fundos.services_documentos import renderizar
from sistemas.suprimento_fundos.services_numeracao import proximo_numero
from utils.audit import AuditEvent, log_audit_event
from utils.logging_config import get_logger
from utils.timezone import hoje_local

logger = get_logger(__name__)


def nomear_titular(
    db: Session,
    user: User,
    comarca_id: int,
    tipo: str,
    servidor_id: int,
    portaria_numero: Optional[str] = None,
    portaria_data: Optional[date] = None,
    motivo: Optional[str] = None,
    request: Optional[Request] = None,
) -> dict:
    """
    Nomeia (ou substitui) o suprido titular da comarca.

    Uma transação: ponteiro, histórico e minuta da portaria de nomeação.
    """
    if not is_admin(user) and user.papel != Papel.SOSFU.value:
        raise PermissaoNegadaError("Apenas a SOSFU nomeia supridos titulares")

    tipo = getattr(tipo, "value", tipo)
    if tipo not in TIPOS_COM_TITULAR:
        raise ValidacaoError(f"Tipo {tipo} não possui suprido titular")

    comarca = db.query(Comarca).filter(Comarca.id == comarca_id).first()
    if not comarca:
        raise RecursoNaoEncontradoError(f"Comarca {comarca_id} não encontrada")

    servidor = db.query(User).filter(User.id == servidor_id, User.is_active.is_(True)).first()
    if not servidor:
        raise RecursoNaoEncontradoError(f"Servidor {servidor_id} não encontrado ou inativo")

    try:
        unidade = (
            db.query(UnidadeTitular)
            .filter(UnidadeTitular.comarca_id == comarca_id, UnidadeTitular.tipo == tipo)
            .first()
        )
        if unidade is None:
            unidade = UnidadeTitular(comarca_id=comarca_id, tipo=tipo, status=StatusTitular.SEM_TITULAR)
            db.add(unidade)
            db.flush()

        if unidade.suprido_atual_id == servidor.id and unidade.status == StatusTitular.REGULAR:
            raise ValidacaoError(f"{servidor.full_name} já é o titular desta unidade")

        portaria_data = portaria_data or hoje_local()
        if not portaria_numero:
            numero = proximo_numero(db, PREFIXO_PORTARIA, portaria_data.year)
            portaria_numero = f"{numero:03d}/{portaria_data.year}"

        titular_anterior = unidade.suprido_atual

        unidade.suprido_atual_id = servidor.id
        unidade.portaria_numero = portaria_numero
        unidade.portaria_data = portaria_data
        unidade.status = StatusTitular.REGULAR

        historico = HistoricoTitular(
            unidade_id=unidade.id,
            titular_anterior_id=titular_anterior.id if titular_anterior else None,
            titular_novo_id=servidor.id,
            portaria_numero=portaria_numero,
            portaria_data=portaria_data,
            motivo=motivo,
            registrado_por=user.id,
        )
        db.add(historico)

        nome, template = DOCUMENTOS[TipoDocumento.PORTARIA_NOMEACAO]
        documento = Documento(
            unidade_titular_id=unidade.id,
            tipo=TipoDocumento.PORTARIA_NOMEACAO,
            nome=f"{nome} Nº {portaria_numero}",
            conteudo=renderizar(
                template,
                portaria_numero=portaria_numero,
                portaria_data=portaria_data,
                comarca_nome=comarca.nome,
                servidor=servidor,
                titular_anterior=titular_anterior,
                tipo=tipo,
            ),
            status=StatusDocumento.MINUTA,
            created_by=user.id,
        )
        db.add(documento)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(unidade)
    logger.info(
        f"[SUPRIMENTO] Titular {servidor.full_name} nomeado para {comarca.nome} ({tipo})",
        unidade_id=unidade.id,
        portaria=portaria_numero,
    )
    log_audit_event(
        AuditEvent.TITULAR_NOMEADO,
        user_id=user.id,
        username=user.username,
        request=request,
        details={
            "unidade_id": unidade.id,
            "servidor_id": servidor.id,
            "titular_anterior_id": historico.titular_anterior_id,
            "portaria": portaria_numero,
        },
    )
    return {"unidade": unidade, "historico_id": historico.id, "documento_id": documento.id}


def listar_titulares(db: Session, tipo: Optional[str] = None) -> List[UnidadeTitular]:
    query = db.query(UnidadeTitular).options(joinedload(UnidadeTitular.comarca))
    if tipo:
        query = query.filter(UnidadeTitular.tipo == getattr(tipo, "value", tipo))
    return query.order_by(UnidadeTitular.comarca_id, UnidadeTitular.tipo).all()


def historico_titular(db: Session, unidade_id: int) -> List[HistoricoTitular]:
    unidade = db.query(UnidadeTitular).filter(UnidadeTitular.id == unidade_id).first()
    if not unidade:
        raise RecursoNaoEncontradoError(f"Unidade {unidade_id} não encontrada")
    return (
        db.query(HistoricoTitular)
        .filter(HistoricoTitular.unidade_id == unidade_id)
        .order_by(HistoricoTitular.id)
        .all()
    )
