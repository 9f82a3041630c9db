# sistemas/servidores/services.py
"""
Importação da base de servidores do RH e mesclagem na tabela canônica `users`.

Fluxo:
1. parse_csv: lê a planilha exportada pelo RH (vírgula ou ponto e vírgula)
2. importar_servidores: grava/atualiza `servidores_tj` por matrícula, em lotes
3. mesclar_em_usuarios: cria ou atualiza `users` por matrícula (ou e-mail)

A mesclagem é idempotente: rodar duas vezes a mesma importação não cria
usuários duplicados.
"""

import csv
import io
import unicodedata
from typing import Dict, Iterable, List, Optional

from fastapi import Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from auth.models import User
from auth.security import get_password_hash
from config import DEFAULT_USER_PASSWORD, IMPORTACAO_BATCH_SIZE
from sistemas.servidores.models import ImportacaoServidores, ServidorTJ
from utils.audit import AuditEvent, log_audit_event
from utils.logging_config import get_logger
from utils.timezone import now_utc
from utils.validators import only_digits, validate_cpf

logger = get_logger(__name__)


class ImportacaoError(Exception):
    """Erro de importação/mesclagem de servidores"""


class ImportacaoNaoEncontradaError(ImportacaoError):
    """Importação não encontrada"""


STATUS_PROCESSADA = "PROCESSADA"
STATUS_MESCLADA = "MESCLADA"

# Cabeçalho normalizado (minúsculo, sem acento) -> coluna de servidores_tj
COLUNAS = {
    "matricula": "matricula",
    "nome": "nome",
    "email": "email",
    "e-mail": "email",
    "cpf": "cpf",
    "vinculo": "vinculo",
    "cargo": "cargo",
    "lotacao": "lotacao",
    "lotacao cumulativa": "lotacao_cumulativa",
    "teletrabalho": "teletrabalho",
    "tipo de afastamento": "tipo_afastamento",
    "tipo de estagio": "tipo_estagio",
    "curso": "curso",
    "grau": "grau",
}

CAMPOS_SERVIDOR = (
    "nome", "email", "cpf", "vinculo", "categoria", "cargo", "lotacao",
    "lotacao_cumulativa", "teletrabalho", "tipo_afastamento", "tipo_estagio",
    "curso", "grau",
)


def _normalizar(texto: str) -> str:
    sem_acento = unicodedata.normalize("NFKD", texto or "").encode("ascii", "ignore").decode("ascii")
    return " ".join(sem_acento.strip().lower().split())


def classificar_categoria(vinculo: Optional[str], tipo_estagio: Optional[str] = None, curso: Optional[str] = None) -> str:
    """MAGISTRADO, ESTAGIARIO ou SERVIDOR a partir do vínculo."""
    vinculo_norm = _normalizar(vinculo or "")
    if tipo_estagio or curso or "estagi" in vinculo_norm:
        return "ESTAGIARIO"
    if "magistrado" in vinculo_norm:
        return "MAGISTRADO"
    return "SERVIDOR"


def parse_csv(texto: str) -> List[Dict[str, Optional[str]]]:
    """
    Converte o CSV do RH em registros de servidores_tj.

    Linhas sem matrícula são descartadas. CPF inválido vira None.
    """
    texto = texto.lstrip("\ufeff")
    primeira_linha = texto.split("\n", 1)[0]
    delimitador = ";" if primeira_linha.count(";") > primeira_linha.count(",") else ","

    leitor = csv.DictReader(io.StringIO(texto), delimiter=delimitador)
    mapa = {campo: COLUNAS.get(_normalizar(campo)) for campo in (leitor.fieldnames or [])}

    registros = []
    for linha in leitor:
        registro = {}
        for campo, valor in linha.items():
            coluna = mapa.get(campo)
            if coluna:
                valor = (valor or "").strip()
                registro[coluna] = valor or None

        if not registro.get("matricula"):
            continue

        cpf = only_digits(registro.get("cpf") or "")
        registro["cpf"] = cpf if validate_cpf(cpf) else None
        if registro.get("email"):
            registro["email"] = registro["email"].lower()
        registro["categoria"] = classificar_categoria(
            registro.get("vinculo"), registro.get("tipo_estagio"), registro.get("curso")
        )
        registros.append(registro)

    return registros


def _proxima_versao(db: Session) -> int:
    atual = db.query(func.max(ImportacaoServidores.versao)).scalar()
    return (atual or 0) + 1


def importar_servidores(
    db: Session,
    registros: Iterable[dict],
    arquivo: Optional[str] = None,
    executado_por: Optional[int] = None,
    request: Optional[Request] = None,
) -> ImportacaoServidores:
    """
    Grava os registros em servidores_tj (insere novos, atualiza existentes).

    Matrículas repetidas no arquivo: vale a última linha.
    """
    por_matricula: Dict[str, dict] = {}
    erros = []
    ignorados = 0
    for registro in registros:
        if not registro.get("nome"):
            ignorados += 1
            erros.append({"matricula": registro.get("matricula"), "erro": "Nome vazio"})
            continue
        por_matricula[registro["matricula"]] = registro

    try:
        importacao = ImportacaoServidores(
            versao=_proxima_versao(db),
            arquivo=arquivo,
            executado_por=executado_por,
            total_registros=len(por_matricula) + ignorados,
            ignorados=ignorados,
            status=STATUS_PROCESSADA,
            erros=erros or None,
        )
        db.add(importacao)
        db.flush()

        inseridos = atualizados = 0
        matriculas = list(por_matricula)
        for inicio in range(0, len(matriculas), IMPORTACAO_BATCH_SIZE):
            lote = matriculas[inicio:inicio + IMPORTACAO_BATCH_SIZE]
            existentes = {
                s.matricula: s
                for s in db.query(ServidorTJ).filter(ServidorTJ.matricula.in_(lote)).all()
            }
            for matricula in lote:
                dados = {c: por_matricula[matricula].get(c) for c in CAMPOS_SERVIDOR}
                dados["grau"] = dados["grau"] or "1G"
                dados["categoria"] = dados["categoria"] or classificar_categoria(
                    dados["vinculo"], dados["tipo_estagio"], dados["curso"]
                )
                servidor = existentes.get(matricula)
                if servidor is None:
                    db.add(ServidorTJ(matricula=matricula, importacao_id=importacao.id, ativo=True, **dados))
                    inseridos += 1
                else:
                    for campo, valor in dados.items():
                        setattr(servidor, campo, valor)
                    servidor.importacao_id = importacao.id
                    servidor.ativo = True
                    atualizados += 1
            db.flush()
            logger.debug(f"[SERVIDORES] Lote {inicio // IMPORTACAO_BATCH_SIZE + 1} gravado ({len(lote)} registros)")

        importacao.inseridos = inseridos
        importacao.atualizados = atualizados
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(importacao)
    logger.info(
        f"[SERVIDORES] Importação v{importacao.versao} concluída",
        arquivo=arquivo,
        inseridos=importacao.inseridos,
        atualizados=importacao.atualizados,
        ignorados=importacao.ignorados,
    )
    log_audit_event(
        AuditEvent.SERVIDORES_IMPORTADOS,
        user_id=executado_por,
        request=request,
        details={"importacao_id": importacao.id, "versao": importacao.versao,
                 "inseridos": importacao.inseridos, "atualizados": importacao.atualizados},
    )
    return importacao


def obter_importacao(db: Session, importacao_id: int) -> ImportacaoServidores:
    importacao = db.query(ImportacaoServidores).filter(ImportacaoServidores.id == importacao_id).first()
    if not importacao:
        raise ImportacaoNaoEncontradaError(f"Importação {importacao_id} não encontrada")
    return importacao


def listar_importacoes(db: Session, limite: int = 50) -> List[ImportacaoServidores]:
    return (
        db.query(ImportacaoServidores)
        .order_by(ImportacaoServidores.versao.desc())
        .limit(limite)
        .all()
    )


def _localizar_usuario(db: Session, servidor: ServidorTJ) -> Optional[User]:
    usuario = db.query(User).filter(User.matricula == servidor.matricula).first()
    if usuario is None and servidor.email:
        usuario = db.query(User).filter(func.lower(User.email) == servidor.email.lower()).first()
    return usuario


def mesclar_em_usuarios(
    db: Session,
    importacao_id: int,
    criar_usuarios: bool = True,
    executado_por: Optional[int] = None,
    request: Optional[Request] = None,
) -> ImportacaoServidores:
    """
    Mescla os servidores da importação na tabela `users`.

    - Casa por matrícula; sem matrícula cadastrada, por e-mail (sem diferenciar caixa)
    - Usuário casado por e-mail com outra matrícula é conflito (não é alterado)
    - Sem correspondência e `criar_usuarios`: cria usuário com username = matrícula,
      senha padrão e troca obrigatória no primeiro acesso
    """
    importacao = obter_importacao(db, importacao_id)
    servidores = (
        db.query(ServidorTJ)
        .filter(ServidorTJ.importacao_id == importacao.id)
        .order_by(ServidorTJ.matricula)
        .all()
    )

    criados = atualizados = 0
    conflitos = []
    senha_padrao_hash = None

    try:
        for servidor in servidores:
            usuario = _localizar_usuario(db, servidor)

            if usuario is not None:
                if usuario.matricula and usuario.matricula != servidor.matricula:
                    conflitos.append({
                        "matricula": servidor.matricula,
                        "erro": f"E-mail {servidor.email} pertence à matrícula {usuario.matricula}",
                    })
                    continue
                usuario.matricula = servidor.matricula
                usuario.full_name = servidor.nome
                if servidor.email and not usuario.email and not (
                    db.query(User.id).filter(func.lower(User.email) == servidor.email).first()
                ):
                    usuario.email = servidor.email
                usuario.cpf = servidor.cpf or usuario.cpf
                usuario.cargo = servidor.cargo
                usuario.lotacao = servidor.lotacao
                usuario.categoria = servidor.categoria
                usuario.origem_importacao_id = importacao.id
                atualizados += 1
                continue

            if not criar_usuarios:
                continue

            if db.query(User.id).filter(User.username == servidor.matricula).first():
                conflitos.append({
                    "matricula": servidor.matricula,
                    "erro": f"Username {servidor.matricula} já usado por outro usuário",
                })
                continue

            if senha_padrao_hash is None:
                senha_padrao_hash = get_password_hash(DEFAULT_USER_PASSWORD)

            db.add(User(
                username=servidor.matricula,
                email=servidor.email,
                full_name=servidor.nome,
                hashed_password=senha_padrao_hash,
                role="user",
                papel="SUPRIDO",
                must_change_password=True,
                is_active=True,
                matricula=servidor.matricula,
                cpf=servidor.cpf,
                cargo=servidor.cargo,
                lotacao=servidor.lotacao,
                categoria=servidor.categoria,
                origem_importacao_id=importacao.id,
            ))
            # Torna o novo usuário visível às buscas seguintes (mesmo e-mail no arquivo)
            db.flush()
            criados += 1

        importacao.status = STATUS_MESCLADA
        importacao.mesclados_criados = criados
        importacao.mesclados_atualizados = atualizados
        importacao.conflitos = len(conflitos)
        importacao.erros = (importacao.erros or []) + conflitos or None
        importacao.mesclado_em = now_utc()
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(importacao)
    logger.info(
        f"[SERVIDORES] Importação v{importacao.versao} mesclada em users",
        criados=criados,
        atualizados=atualizados,
        conflitos=len(conflitos),
    )
    log_audit_event(
        AuditEvent.SERVIDORES_MESCLADOS,
        user_id=executado_por,
        request=request,
        details={"importacao_id": importacao.id, "criados": criados,
                 "atualizados": atualizados, "conflitos": len(conflitos)},
    )
    return importacao
