# sistemas/suprimento_fundos/dependencies.py
"""
Dependencies de acesso do módulo Suprimento de Fundos.

- Admin: sempre tem acesso
- Demais usuários: papel operacional (users.papel) deve estar na lista exigida
"""

from fastapi import Depends, HTTPException, Request, status

from auth.dependencies import get_current_active_user
from auth.models import User
from utils.audit import log_access_denied


def usuario_tem_papel(user: User, *papeis) -> bool:
    if user.role == "admin":
        return True
    return user.papel in {getattr(p, "value", p) for p in papeis}


def require_papel(*papeis):
    """
    Fábrica de dependency que exige um dos papéis informados.

    Uso:
        @router.post("/lote/executar")
        def rota(user: User = Depends(require_papel(Papel.SOSFU))):
            ...
    """
    async def _dependency(
        request: Request,
        current_user: User = Depends(get_current_active_user),
    ) -> User:
        if not usuario_tem_papel(current_user, *papeis):
            exigidos = ", ".join(getattr(p, "value", p) for p in papeis)
            log_access_denied(current_user.id, current_user.username, request, f"papel exigido: {exigidos}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Acesso restrito aos papéis: {exigidos}",
            )
        return current_user

    return _dependency
