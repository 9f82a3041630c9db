# sistemas/servidores/router.py
"""
Endpoints de importação da base de servidores do RH (somente admin)
"""

from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session

from database.connection import get_db
from auth.models import User
from auth.dependencies import require_admin
from sistemas.servidores import services
from sistemas.servidores.schemas import ImportacaoResponse, MesclagemRequest

router = APIRouter(prefix="/servidores", tags=["Servidores (RH)"])


@router.post("/importacoes", response_model=ImportacaoResponse, status_code=status.HTTP_201_CREATED)
async def importar_csv(
    request: Request,
    file: UploadFile = File(...),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Importa a planilha CSV do RH para a base de staging `servidores_tj`.

    **Acesso:** Apenas administradores

    Colunas reconhecidas: Matrícula, Nome, E-mail, CPF, Vínculo, Cargo, Lotação,
    Lotação Cumulativa, Teletrabalho, Tipo de afastamento, Tipo de estágio, Curso.
    """
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Apenas arquivos .csv são aceitos")

    conteudo = await file.read()
    try:
        texto = conteudo.decode("utf-8")
    except UnicodeDecodeError:
        texto = conteudo.decode("latin-1")

    registros = services.parse_csv(texto)
    if not registros:
        raise HTTPException(status_code=400, detail="Nenhum registro com matrícula encontrado no arquivo")

    return services.importar_servidores(
        db, registros, arquivo=file.filename, executado_por=admin.id, request=request
    )


@router.get("/importacoes", response_model=List[ImportacaoResponse])
async def listar_importacoes(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return services.listar_importacoes(db)


@router.post("/importacoes/{importacao_id}/mesclar", response_model=ImportacaoResponse)
async def mesclar_importacao(
    importacao_id: int,
    request: Request,
    dados: MesclagemRequest = MesclagemRequest(),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Mescla a importação na tabela de usuários (por matrícula ou e-mail).

    Pode ser repetida: usuários já mesclados são apenas atualizados.
    """
    try:
        return services.mesclar_em_usuarios(
            db, importacao_id,
            criar_usuarios=dados.criar_usuarios,
            executado_por=admin.id,
            request=request,
        )
    except services.ImportacaoNaoEncontradaError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
