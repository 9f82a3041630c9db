# auth/router.py
"""
Endpoints de autenticação: login, troca de senha e PIN de assinatura
"""

from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, status, Request, Response
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from database.connection import get_db
from auth.models import User
from auth.schemas import Token, ChangePasswordRequest, SignaturePinRequest, UserMe
from auth.security import (
    verify_password, get_password_hash, create_access_token,
    hash_signature_pin, verify_signature_pin,
)
from auth.dependencies import get_current_active_user
from config import ACCESS_TOKEN_EXPIRE_MINUTES, IS_PRODUCTION
from utils.rate_limit import limiter, LIMITS, get_user_identifier
from utils.audit import (
    AuditEvent, log_audit_event, log_login_success, log_login_failure,
    log_password_change, log_pin_failure,
)
from utils.timezone import now_utc

router = APIRouter(prefix="/auth", tags=["Autenticação"])

AUTH_COOKIE_NAME = "access_token"


@router.post("/login", response_model=Token)
@limiter.limit(LIMITS["login"])
async def login(
    request: Request,  # Necessário para rate limiting
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """
    Autentica o usuário e retorna um token JWT.

    - **username**: Nome de usuário
    - **password**: Senha

    O token é retornado no body e também definido como cookie HttpOnly.
    """
    user = db.query(User).filter(User.username == form_data.username).first()

    if not user or not verify_password(form_data.password, user.hashed_password):
        log_login_failure(form_data.username, request, "user_not_found" if not user else "invalid_password")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuário ou senha incorretos",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        log_login_failure(form_data.username, request, "user_inactive")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Usuário desativado. Contate o administrador."
        )

    access_token = create_access_token(
        data={
            "sub": user.username,
            "user_id": user.id,
            "role": user.role,
            "papel": user.papel,
            "must_change_password": user.must_change_password
        },
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=f"Bearer {access_token}",
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/"
    )

    log_login_success(user.id, user.username, request)

    return Token(access_token=access_token, token_type="bearer")


@router.get("/me", response_model=UserMe)
async def get_me(current_user: User = Depends(get_current_active_user)):
    """
    Retorna os dados do usuário autenticado.
    """
    return current_user


@router.post("/change-password")
@limiter.limit(LIMITS["login"])
async def change_password(
    request: Request,
    password_request: ChangePasswordRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    Altera a senha do usuário autenticado.
    """
    if not verify_password(password_request.current_password, current_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Senha atual incorreta"
        )

    if password_request.current_password == password_request.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Nova senha deve ser diferente da atual"
        )

    current_user.hashed_password = get_password_hash(password_request.new_password)
    current_user.must_change_password = False
    db.commit()

    log_password_change(current_user.id, current_user.username, request)

    return {"message": "Senha alterada com sucesso"}


@router.post("/signature-pin")
@limiter.limit(LIMITS["pin"], key_func=get_user_identifier)
async def set_signature_pin(
    request: Request,
    pin_request: SignaturePinRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    Define ou altera o PIN de assinatura eletrônica.

    - **pin**: 4 a 6 dígitos
    - **confirmacao**: repetição do PIN
    - **pin_atual**: exigido se o usuário já possui PIN
    """
    if current_user.has_signature_pin:
        if not pin_request.pin_atual:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Informe o PIN atual para alterá-lo"
            )
        if not verify_signature_pin(pin_request.pin_atual, current_user.signature_pin_hash):
            log_pin_failure(current_user.id, current_user.username, request)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="PIN atual incorreto"
            )

    alterado = current_user.has_signature_pin
    current_user.signature_pin_hash = hash_signature_pin(pin_request.pin)
    current_user.signature_pin_updated_at = now_utc()
    db.commit()

    log_audit_event(
        AuditEvent.PIN_DEFINIDO,
        user_id=current_user.id,
        username=current_user.username,
        request=request,
        details={"alterado": alterado}
    )

    return {"message": "PIN alterado com sucesso" if alterado else "PIN definido com sucesso"}
