# sistemas/suprimento_fundos/services_documentos.py
"""
Geração, edição e assinatura de documentos do processo.

Documentos são texto renderizado a partir dos templates Jinja2 em
`templates/`. A assinatura confere o PIN do usuário (hash bcrypt) e grava:

- hash_conteudo: SHA-256 do conteúdo final (com o rodapé de assinatura)
- assinatura: HMAC-SHA256(SECRET_KEY, "id:hash:user_id:data_iso_utc")
- codigo_validacao: 16 primeiros hex da assinatura, em blocos XXXX-XXXX-...

Depois de assinado o documento é imutável (ver listeners em models.py).
"""

import hashlib
import hmac
from datetime import date, datetime
from typing import List, Optional

from fastapi import Request
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from sqlalchemy.orm import Session

from auth.models import User
from auth.security import verify_signature_pin
from config import (
    PRAZO_APLICACAO_EXTRAORDINARIO_DIAS, PRAZO_APLICACAO_ORDINARIO_DIAS,
    PRAZO_PRESTACAO_DIAS, SECRET_KEY, TEMPLATES_DOCUMENTOS_DIR,
)
from sistemas.suprimento_fundos.constants import (
    DOCUMENTOS, ELEMENTOS_PERMITIDOS, Papel, PREFIXO_CERTIDAO_ATESTO,
    StatusDocumento, TipoDocumento, TipoSolicitacao,
)
from sistemas.suprimento_fundos.exceptions import (
    DocumentoAssinadoError, DocumentoNaoEncontradoError, PermissaoNegadaError,
    PinInvalidoError, ValidacaoError,
)
from sistemas.suprimento_fundos.models import Documento, Solicitacao
from sistemas.suprimento_fundos.services import (
    is_admin, obter_solicitacao_para_usuario, verificar_acesso_leitura,
)
from sistemas.suprimento_fundos.services_numeracao import proximo_numero
from utils.audit import AuditEvent, log_audit_event, log_pin_failure
from utils.logging_config import get_logger
from utils.timezone import format_iso_utc, format_local, hoje_local, now_utc
from utils.validators import format_cpf, format_currency_br

logger = get_logger(__name__)

# Gerados pela chefia, numerados pela sequência CAT
TIPOS_CERTIDAO_GESTOR = {TipoDocumento.CERTIDAO_ATESTO, TipoDocumento.CERTIDAO_ATESTO_PC}

# Não pertencem a uma solicitação (gerados por services_titulares)
TIPOS_FORA_DE_PROCESSO = {TipoDocumento.PORTARIA_NOMEACAO}


# ==================================================
# TEMPLATES
# ==================================================

def _data_br(valor) -> str:
    if valor is None:
        return "---"
    if isinstance(valor, datetime):
        return format_local(valor, "%d/%m/%Y")
    if isinstance(valor, date):
        return valor.strftime("%d/%m/%Y")
    return str(valor)


_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DOCUMENTOS_DIR)),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)
_env.filters["moeda"] = format_currency_br
_env.filters["data_br"] = _data_br
_env.filters["cpf"] = format_cpf


def renderizar(template: str, **contexto) -> str:
    """Renderiza um template de documento (texto puro)."""
    return _env.get_template(template).render(**contexto)


def contexto_solicitacao(solicitacao: Solicitacao, emitente: Optional[User] = None, **extra) -> dict:
    """Variáveis comuns aos templates de processo."""
    suprido = solicitacao.user
    comarca_nome = solicitacao.comarca.nome if solicitacao.comarca else (suprido.lotacao or "---")
    prazo_aplicacao_dias = (
        PRAZO_APLICACAO_ORDINARIO_DIAS
        if solicitacao.tipo == TipoSolicitacao.ORDINARIO.value
        else PRAZO_APLICACAO_EXTRAORDINARIO_DIAS
    )
    contexto = {
        "nup": solicitacao.nup,
        "tipo": solicitacao.tipo,
        "competencia": solicitacao.competencia,
        "suprido": suprido,
        "emitente": emitente or suprido,
        "comarca_nome": comarca_nome,
        "lotacao": suprido.lotacao or comarca_nome,
        "valor": solicitacao.valor_solicitado,
        "itens": list(solicitacao.itens),
        "elementos": ELEMENTOS_PERMITIDOS,
        "descricao": solicitacao.descricao,
        "justificativa": solicitacao.justificativa,
        "ptres": solicitacao.ptres,
        "data_emissao": hoje_local(),
        "prazo_aplicacao_dias": prazo_aplicacao_dias,
        "prazo_prestacao_dias": PRAZO_PRESTACAO_DIAS,
        "numero": None,
        "ano": hoje_local().year,
    }
    contexto.update(extra)
    return contexto


# ==================================================
# CONSULTA E CRUD
# ==================================================

def obter_documento(db: Session, documento_id: int) -> Documento:
    documento = db.query(Documento).filter(Documento.id == documento_id).first()
    if not documento:
        raise DocumentoNaoEncontradoError(f"Documento {documento_id} não encontrado")
    return documento


def _verificar_acesso_documento(user: User, documento: Documento) -> None:
    if documento.solicitacao is not None:
        verificar_acesso_leitura(user, documento.solicitacao)
    elif not is_admin(user) and user.papel == Papel.SUPRIDO.value and documento.created_by != user.id:
        raise PermissaoNegadaError("Documento restrito à equipe do suprimento")


def obter_documento_para_usuario(db: Session, user: User, documento_id: int) -> Documento:
    documento = obter_documento(db, documento_id)
    _verificar_acesso_documento(user, documento)
    return documento


def listar_documentos(db: Session, user: User, solicitacao_id: int) -> List[Documento]:
    obter_solicitacao_para_usuario(db, user, solicitacao_id)
    return (
        db.query(Documento)
        .filter(Documento.solicitacao_id == solicitacao_id)
        .order_by(Documento.id)
        .all()
    )


def gerar_documento(db: Session, user: User, solicitacao_id: int, tipo: str) -> Documento:
    """
    Gera uma minuta a partir do template do tipo.

    Certidões de atesto só podem ser emitidas pela chefia (GESTOR) enquanto o
    processo está na sua fila; recebem número anual da sequência CAT.
    """
    if tipo not in DOCUMENTOS or tipo in TIPOS_FORA_DE_PROCESSO:
        raise ValidacaoError(f"Tipo de documento inválido: {tipo}")

    solicitacao = obter_solicitacao_para_usuario(db, user, solicitacao_id)
    nome, template = DOCUMENTOS[tipo]
    extra = {}

    try:
        if tipo in TIPOS_CERTIDAO_GESTOR:
            if not is_admin(user) and user.papel != Papel.GESTOR.value:
                raise PermissaoNegadaError("Certidão de atesto é emitida pela chefia imediata")
            if solicitacao.destino_atual != Papel.GESTOR.value:
                raise ValidacaoError("A solicitação não está na fila da chefia")
            ano = hoje_local().year
            numero = proximo_numero(db, PREFIXO_CERTIDAO_ATESTO, ano)
            nome = f"{nome} Nº {numero}/{ano}"
            extra = {"numero": numero, "ano": ano}

        documento = Documento(
            solicitacao_id=solicitacao.id,
            tipo=tipo,
            nome=nome,
            conteudo=renderizar(template, **contexto_solicitacao(solicitacao, emitente=user, **extra)),
            status=StatusDocumento.MINUTA,
            created_by=user.id,
        )
        db.add(documento)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(documento)
    logger.info(
        f"[DOCUMENTO] {tipo} gerado para {solicitacao.nup}",
        documento_id=documento.id,
        user_id=user.id,
    )
    return documento


def _verificar_editavel(user: User, documento: Documento) -> None:
    if documento.status == StatusDocumento.ASSINADO:
        raise DocumentoAssinadoError(f"Documento {documento.id} está assinado")
    if documento.created_by != user.id:
        raise PermissaoNegadaError("Apenas o autor do documento pode alterá-lo")


def editar_documento(
    db: Session,
    user: User,
    documento_id: int,
    nome: Optional[str] = None,
    conteudo: Optional[str] = None,
) -> Documento:
    documento = obter_documento(db, documento_id)
    _verificar_editavel(user, documento)

    if nome is not None:
        documento.nome = nome
    if conteudo is not None:
        documento.conteudo = conteudo

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(documento)
    return documento


def excluir_documento(db: Session, user: User, documento_id: int) -> None:
    documento = obter_documento(db, documento_id)
    _verificar_editavel(user, documento)

    try:
        db.delete(documento)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"[DOCUMENTO] Documento {documento_id} excluído", user_id=user.id)


# ==================================================
# ASSINATURA
# ==================================================

def calcular_hash(conteudo: Optional[str]) -> str:
    return hashlib.sha256((conteudo or "").encode("utf-8")).hexdigest()


def _mensagem_assinada(documento_id: int, hash_conteudo: str, user_id: int, data: datetime) -> bytes:
    return f"{documento_id}:{hash_conteudo}:{user_id}:{format_iso_utc(data)}".encode("utf-8")


def calcular_assinatura(documento_id: int, hash_conteudo: str, user_id: int, data: datetime) -> str:
    return hmac.new(
        SECRET_KEY.encode("utf-8"),
        _mensagem_assinada(documento_id, hash_conteudo, user_id, data),
        hashlib.sha256,
    ).hexdigest()


def formatar_codigo_validacao(assinatura: str) -> str:
    codigo = assinatura[:16].upper()
    return "-".join(codigo[i:i + 4] for i in range(0, 16, 4))


def assinar_documento(
    db: Session,
    user: User,
    documento_id: int,
    pin: str,
    request: Optional[Request] = None,
) -> Documento:
    """
    Assina o documento com o PIN do usuário.

    Raises:
        DocumentoNaoEncontradoError, PermissaoNegadaError
        DocumentoAssinadoError: já assinado
        PinInvalidoError: usuário sem PIN cadastrado ou PIN incorreto
    """
    documento = obter_documento_para_usuario(db, user, documento_id)

    if documento.status == StatusDocumento.ASSINADO:
        raise DocumentoAssinadoError(f"Documento {documento.id} já foi assinado")

    if not user.has_signature_pin:
        raise PinInvalidoError("Cadastre seu PIN de assinatura antes de assinar documentos")

    if not verify_signature_pin(pin, user.signature_pin_hash):
        log_pin_failure(user.id, user.username, request, documento_id=documento.id)
        raise PinInvalidoError("PIN de assinatura incorreto")

    data_assinatura = now_utc().replace(microsecond=0)
    rodape = (
        f"\n\n---\nASSINADO ELETRONICAMENTE por {user.full_name} ({user.papel}) "
        f"em {format_local(data_assinatura)}"
    )
    conteudo = (documento.conteudo or "").rstrip("\n") + rodape
    hash_conteudo = calcular_hash(conteudo)
    assinatura = calcular_assinatura(documento.id, hash_conteudo, user.id, data_assinatura)

    documento.conteudo = conteudo
    documento.hash_conteudo = hash_conteudo
    documento.assinatura = assinatura
    documento.codigo_validacao = formatar_codigo_validacao(assinatura)
    documento.assinado_por = user.id
    documento.assinado_por_nome = user.full_name
    documento.assinado_por_papel = user.papel
    documento.data_assinatura = data_assinatura
    documento.status = StatusDocumento.ASSINADO

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(documento)

    log_audit_event(
        AuditEvent.DOCUMENTO_ASSINADO,
        user_id=user.id,
        username=user.username,
        request=request,
        details={
            "documento_id": documento.id,
            "tipo": documento.tipo,
            "solicitacao_id": documento.solicitacao_id,
            "codigo_validacao": documento.codigo_validacao,
        },
    )
    return documento


def verificar_assinatura(db: Session, documento_id: int) -> dict:
    """
    Recalcula hash e HMAC do documento.

    - integro: o conteúdo atual corresponde ao hash gravado
    - assinatura_valida: o HMAC confere com (id, hash, signatário, data)
    """
    documento = obter_documento(db, documento_id)
    resultado = {
        "documento_id": documento.id,
        "assinado": documento.status == StatusDocumento.ASSINADO,
        "integro": False,
        "assinatura_valida": False,
        "codigo_validacao": documento.codigo_validacao,
        "assinado_por_nome": documento.assinado_por_nome,
        "assinado_por_papel": documento.assinado_por_papel,
        "data_assinatura": documento.data_assinatura,
    }
    if not resultado["assinado"] or not documento.assinatura:
        return resultado

    resultado["integro"] = calcular_hash(documento.conteudo) == documento.hash_conteudo
    esperado = calcular_assinatura(
        documento.id, documento.hash_conteudo, documento.assinado_por, documento.data_assinatura
    )
    resultado["assinatura_valida"] = hmac.compare_digest(esperado, documento.assinatura)
    return resultado


def buscar_por_codigo(db: Session, codigo: str) -> Documento:
    codigo = (codigo or "").strip().upper()
    documento = db.query(Documento).filter(Documento.codigo_validacao == codigo).first()
    if not documento:
        raise DocumentoNaoEncontradoError("Código de validação não encontrado")
    return documento
