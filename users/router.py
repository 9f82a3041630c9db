# users/router.py
"""
Endpoints de gestão de usuários (somente admin)

O papel (SUPRIDO, GESTOR, SOSFU, SEFIN, AJSEFIN, SGP) define a fila que o
usuário atende no fluxo de suprimento de fundos.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database.connection import get_db
from auth.models import User
from auth.schemas import UserCreate, UserUpdate, UserResponse
from auth.security import get_password_hash
from auth.dependencies import require_admin
from config import DEFAULT_USER_PASSWORD
from utils.audit import AuditEvent, log_audit_event

router = APIRouter(prefix="/users", tags=["Usuários"])


def _obter_usuario(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Usuário não encontrado"
        )
    return user


@router.get("", response_model=List[UserResponse])
async def list_users(
    skip: int = 0,
    limit: int = 100,
    papel: Optional[str] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Lista os usuários do sistema, opcionalmente filtrando por papel.

    **Acesso:** Apenas administradores
    """
    query = db.query(User)
    if papel:
        query = query.filter(User.papel == papel.upper())
    return query.order_by(User.full_name).offset(skip).limit(limit).all()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Cria um usuário manualmente.

    **Acesso:** Apenas administradores

    - Sem **password**, usa a senha padrão configurada
    - O usuário será forçado a trocar a senha no primeiro acesso
    """
    if db.query(User).filter(User.username == user_data.username).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Usuário '{user_data.username}' já existe"
        )

    if user_data.email:
        if db.query(User).filter(User.email == user_data.email).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Email '{user_data.email}' já cadastrado"
            )

    if user_data.matricula:
        if db.query(User).filter(User.matricula == user_data.matricula).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Matrícula '{user_data.matricula}' já cadastrada"
            )

    password = user_data.password if user_data.password else DEFAULT_USER_PASSWORD

    new_user = User(
        username=user_data.username,
        email=user_data.email,
        full_name=user_data.full_name,
        hashed_password=get_password_hash(password),
        role=user_data.role,
        papel=user_data.papel,
        matricula=user_data.matricula,
        lotacao=user_data.lotacao,
        must_change_password=True,
        is_active=True
    )

    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    return new_user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Retorna detalhes de um usuário específico."""
    return _obter_usuario(db, user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Atualiza dados de um usuário.

    **Acesso:** Apenas administradores

    Campos: email, full_name, role, papel, lotacao, is_active.
    A troca de papel é registrada na auditoria.
    """
    user = _obter_usuario(db, user_id)

    if user.id == admin.id and user_data.is_active is False:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Você não pode desativar sua própria conta"
        )

    if user.id == admin.id and user_data.role == "user":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Você não pode remover seu próprio acesso de administrador"
        )

    if user_data.email and user_data.email != user.email:
        if db.query(User).filter(User.email == user_data.email).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Email '{user_data.email}' já cadastrado"
            )

    papel_anterior = user.papel
    update_data = user_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)

    if user.papel != papel_anterior:
        log_audit_event(
            AuditEvent.USUARIO_PAPEL_ALTERADO,
            user_id=admin.id,
            username=admin.username,
            request=request,
            details={"usuario_id": user.id, "de": papel_anterior, "para": user.papel},
        )

    return user


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Desativa um usuário (soft delete).

    O registro permanece no banco porque é referenciado pelo histórico de
    tramitação e pelas assinaturas.
    """
    user = _obter_usuario(db, user_id)

    if user.id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Você não pode desativar sua própria conta"
        )

    user.is_active = False
    db.commit()

    return {"message": f"Usuário '{user.username}' desativado com sucesso"}


@router.post("/{user_id}/reset-password")
async def reset_password(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Reseta a senha de um usuário para a senha padrão.

    O usuário será forçado a trocar no próximo acesso.
    """
    user = _obter_usuario(db, user_id)

    user.hashed_password = get_password_hash(DEFAULT_USER_PASSWORD)
    user.must_change_password = True
    db.commit()

    return {
        "message": f"Senha do usuário '{user.username}' resetada com sucesso",
        "new_password": DEFAULT_USER_PASSWORD
    }
