# sistemas/suprimento_fundos/services_notificacoes.py
"""
Notificações do sistema.

`criar_notificacao` só adiciona à sessão: quem chama decide o commit, para que
o aviso entre na mesma transação da mudança que o originou.
"""

from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from auth.models import User
from sistemas.suprimento_fundos.constants import CategoriaNotificacao, TipoNotificacao
from sistemas.suprimento_fundos.exceptions import RecursoNaoEncontradoError
from sistemas.suprimento_fundos.models import Notificacao


def criar_notificacao(
    db: Session,
    titulo: str,
    mensagem: str,
    user_id: Optional[int] = None,
    papel: Optional[str] = None,
    tipo: str = TipoNotificacao.INFO,
    categoria: str = CategoriaNotificacao.PROCESS,
    link: Optional[str] = None,
    metadados: Optional[dict] = None,
) -> Notificacao:
    if user_id is None and papel is None:
        raise ValueError("Notificação precisa de user_id ou papel")

    notificacao = Notificacao(
        user_id=user_id,
        papel=papel,
        tipo=tipo,
        categoria=categoria,
        titulo=titulo,
        mensagem=mensagem,
        link=link,
        metadados=metadados,
    )
    db.add(notificacao)
    return notificacao


def listar_notificacoes(db: Session, user: User, apenas_nao_lidas: bool = False, limite: int = 50) -> List[Notificacao]:
    """Notificações diretas do usuário e as do seu papel."""
    query = db.query(Notificacao).filter(
        or_(Notificacao.user_id == user.id, Notificacao.papel == user.papel)
    )
    if apenas_nao_lidas:
        query = query.filter(Notificacao.lida.is_(False))
    return query.order_by(Notificacao.created_at.desc(), Notificacao.id.desc()).limit(limite).all()


def marcar_como_lida(db: Session, user: User, notificacao_id: int) -> Notificacao:
    notificacao = db.query(Notificacao).filter(Notificacao.id == notificacao_id).first()
    if not notificacao or (notificacao.user_id != user.id and notificacao.papel != user.papel):
        raise RecursoNaoEncontradoError("Notificação não encontrada")

    notificacao.lida = True
    db.commit()
    return notificacao
