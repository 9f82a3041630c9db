# sistemas/suprimento_fundos/services_lote.py
"""
Lote ordinário: concessão quadrimestral em massa para os supridos titulares.

Cada unidade é processada na sua própria transação. A constraint
uq_solicitacao_unidade_competencia garante no banco que existe no máximo uma
solicitação por (unidade, competência, tipo): reexecutar o lote é seguro e
unidades já processadas são contadas como ignoradas.
"""

from datetime import date
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence, Tuple

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from auth.models import User
from config import PTRES_PADRAO
from sistemas.suprimento_fundos.constants import (
    CategoriaNotificacao, DISTRIBUICAO_PADRAO, DOCUMENTOS, DOCUMENTOS_LOTE,
    ELEMENTO_CAPITAL, ELEMENTO_CUSTEIO, ELEMENTOS_PERMITIDOS, ORIGEM_LOTE, Papel,
    PREFIXO_NUP_ORDINARIO, StatusSolicitacao, StatusTitular, TipoNotificacao,
    TipoSolicitacao, TOLERANCIA_SOMA,
)
from sistemas.suprimento_fundos.exceptions import PermissaoNegadaError, ValidacaoError
from sistemas.suprimento_fundos.models import (
    Documento, HistoricoTramitacao, ItemDespesa, LoteConcessao, Solicitacao, UnidadeTitular,
)
from sistemas.suprimento_fundos.services import is_admin
from sistemas.suprimento_fundos.services_documentos import contexto_solicitacao, renderizar
from sistemas.suprimento_fundos.services_notificacoes import criar_notificacao
from sistemas.suprimento_fundos.services_numeracao import gerar_nup
from utils.audit import AuditEvent, log_audit_event
from utils.logging_config import get_logger
from utils.timezone import now_utc
from utils.validators import (
    CENTAVO, elemento_base, format_currency_br, parse_competencia, parse_currency_br, to_decimal,
)

logger = get_logger(__name__)

# Situação de cada unidade no resultado do lote
CRIADA = "CRIADA"
JA_EXISTENTE = "JA_EXISTENTE"
ERRO = "ERRO"


# ==================================================
# CÁLCULOS
# ==================================================

def competencia_de(data: date) -> str:
    """date(2026, 5, 10) -> '2026-2Q'"""
    return f"{data.year}-{(data.month - 1) // 4 + 1}Q"


def calcular_valor_quadrimestral(teto_anual) -> Decimal:
    """Teto anual dividido pelos 3 quadrimestres, em centavos."""
    return (Decimal(str(teto_anual)) / 3).quantize(CENTAVO, rounding=ROUND_HALF_UP)


def validar_percentuais(percentuais: Dict[str, Decimal]) -> None:
    """Percentuais por elemento devem somar 100 (tolerância de 0,01)."""
    if not percentuais:
        raise ValidacaoError("Distribuição por elemento vazia")
    for elemento, pct in percentuais.items():
        if elemento_base(elemento) not in ELEMENTOS_PERMITIDOS:
            raise ValidacaoError(f"Elemento {elemento} não permitido")
        if Decimal(str(pct)) < 0:
            raise ValidacaoError(f"Percentual negativo para {elemento}")
    soma = sum((Decimal(str(p)) for p in percentuais.values()), Decimal("0"))
    if abs(soma - Decimal("100")) > TOLERANCIA_SOMA:
        raise ValidacaoError(f"Percentuais somam {soma}%, esperado 100%")


def distribuir_valor(total, percentuais: Dict[str, Decimal]) -> List[Tuple[str, Decimal]]:
    """
    Reparte `total` pelos elementos conforme os percentuais.

    Cada parcela é truncada no centavo e a sobra vai para o último elemento:
    a soma das parcelas é exatamente o total.
    """
    validar_percentuais(percentuais)
    total = Decimal(str(total)).quantize(CENTAVO)

    elementos = list(percentuais.items())
    parcelas = []
    acumulado = Decimal("0")
    for elemento, pct in elementos[:-1]:
        valor = (total * Decimal(str(pct)) / 100).quantize(CENTAVO, rounding=ROUND_DOWN)
        parcelas.append((elemento, valor))
        acumulado += valor
    parcelas.append((elementos[-1][0], total - acumulado))
    return parcelas


def validar_distribuicao(itens: Sequence, total) -> None:
    """|soma dos itens - total| < 0,01 e nenhum item negativo."""
    total = Decimal(str(total))
    valores = [Decimal(str(getattr(item, "valor", item))) for item in itens]
    if any(v < 0 for v in valores):
        raise ValidacaoError("Item com valor negativo")
    soma = sum(valores, Decimal("0"))
    if abs(soma - total) >= TOLERANCIA_SOMA:
        raise ValidacaoError(
            f"Soma dos itens ({format_currency_br(soma)}) difere do valor autorizado ({format_currency_br(total)})"
        )


def valor_autorizado(unidade: UnidadeTitular) -> Decimal:
    if unidade.teto_anual:
        return calcular_valor_quadrimestral(unidade.teto_anual)
    custeio = Decimal(str(unidade.valor_custeio or 0))
    capital = Decimal(str(unidade.valor_capital or 0))
    return (custeio + capital).quantize(CENTAVO)


def _percentuais(distribuicao: dict) -> Dict[str, Decimal]:
    """Percentuais gravados na unidade (70, "70.5" ou "70,5")."""
    percentuais = {}
    for elemento, valor in distribuicao.items():
        pct = parse_currency_br(valor) if isinstance(valor, str) else to_decimal(valor)
        if pct is None:
            raise ValidacaoError(f"Percentual inválido para {elemento}: {valor!r}")
        percentuais[elemento] = pct
    return percentuais


def itens_padrao(unidade: UnidadeTitular, total: Decimal) -> List[Tuple[str, Decimal]]:
    """
    Itens do lote quando a entrada não traz itens:

    1. distribuição percentual da própria unidade
    2. distribuição padrão, para unidades com teto anual
    3. custeio e capital da unidade (valores absolutos)
    """
    if unidade.distribuicao:
        return distribuir_valor(total, _percentuais(unidade.distribuicao))
    if unidade.teto_anual:
        return distribuir_valor(total, DISTRIBUICAO_PADRAO)
    pares = [
        (ELEMENTO_CUSTEIO, Decimal(str(unidade.valor_custeio or 0)).quantize(CENTAVO)),
        (ELEMENTO_CAPITAL, Decimal(str(unidade.valor_capital or 0)).quantize(CENTAVO)),
    ]
    return [(elemento, valor) for elemento, valor in pares if valor > 0]


# ==================================================
# CONSULTA
# ==================================================

def _competencias_processadas(db: Session, competencia: str) -> set:
    linhas = (
        db.query(Solicitacao.comarca_id)
        .filter(
            Solicitacao.competencia == competencia,
            Solicitacao.tipo == TipoSolicitacao.ORDINARIO.value,
        )
        .all()
    )
    return {comarca_id for (comarca_id,) in linhas}


def _motivo_inapto(unidade: UnidadeTitular) -> Optional[str]:
    if unidade.status != StatusTitular.REGULAR or not unidade.suprido_atual_id:
        return "Unidade sem suprido titular regular"
    if valor_autorizado(unidade) <= 0:
        return "Unidade sem valor autorizado"
    return None


def listar_unidades_elegiveis(db: Session, competencia: str) -> List[dict]:
    """
    Unidades do suprimento ordinário para a competência, com indicação de
    quais já foram processadas e quais estão aptas.
    """
    parse_competencia(competencia)
    processadas = _competencias_processadas(db, competencia)

    unidades = (
        db.query(UnidadeTitular)
        .options(joinedload(UnidadeTitular.comarca), joinedload(UnidadeTitular.suprido_atual))
        .filter(
            UnidadeTitular.tipo == TipoSolicitacao.ORDINARIO.value,
            UnidadeTitular.status.in_([StatusTitular.REGULAR, StatusTitular.SEM_TITULAR]),
        )
        .order_by(UnidadeTitular.comarca_id)
        .all()
    )

    resultado = []
    for unidade in unidades:
        processado = unidade.comarca_id in processadas
        motivo = "Competência já processada" if processado else _motivo_inapto(unidade)
        resultado.append({
            "unidade_id": unidade.id,
            "comarca_id": unidade.comarca_id,
            "comarca_nome": unidade.comarca.nome,
            "suprido_id": unidade.suprido_atual_id,
            "suprido_nome": unidade.suprido_atual.full_name if unidade.suprido_atual else None,
            "status": unidade.status,
            "valor_autorizado": valor_autorizado(unidade),
            "processado": processado,
            "apto": motivo is None,
            "motivo": motivo,
        })
    return resultado


# ==================================================
# EXECUÇÃO
# ==================================================

def _criar_processo_unidade(
    db: Session,
    user: User,
    lote: LoteConcessao,
    unidade: UnidadeTitular,
    competencia: str,
    entrada,
) -> Solicitacao:
    """Cria solicitação, itens, documentos, histórico e notificação (sem commit)."""
    motivo = _motivo_inapto(unidade)
    if motivo:
        raise ValidacaoError(motivo)

    ano, _ = parse_competencia(competencia)
    total = (
        Decimal(str(entrada.valor_autorizado)).quantize(CENTAVO)
        if entrada.valor_autorizado is not None
        else valor_autorizado(unidade)
    )
    if total <= 0:
        raise ValidacaoError("Valor autorizado deve ser maior que zero")

    if entrada.itens:
        pares = [(item.elemento, Decimal(str(item.valor)).quantize(CENTAVO)) for item in entrada.itens]
    else:
        pares = itens_padrao(unidade, total)
    if not pares:
        raise ValidacaoError("Nenhum item de despesa para a unidade")
    validar_distribuicao([valor for _, valor in pares], total)

    solicitacao = Solicitacao(
        nup=gerar_nup(db, PREFIXO_NUP_ORDINARIO, ano),
        tipo=TipoSolicitacao.ORDINARIO.value,
        status=StatusSolicitacao.CONCEDIDO.value,
        destino_atual=Papel.SOSFU.value,
        user_id=unidade.suprido_atual_id,
        comarca_id=unidade.comarca_id,
        competencia=competencia,
        lote_id=lote.id,
        descricao=f"Suprimento ordinário {competencia} - {unidade.comarca.nome}",
        valor_solicitado=total,
        ptres=unidade.ptres or PTRES_PADRAO,
        autorizado_por=user.id,
        data_autorizacao=now_utc(),
        dados_extras={"origem": ORIGEM_LOTE, "lote_id": lote.id},
    )
    solicitacao.itens = [
        ItemDespesa(
            ordem=ordem,
            elemento=elemento,
            descricao=ELEMENTOS_PERMITIDOS.get(elemento_base(elemento)),
            valor=valor,
        )
        for ordem, (elemento, valor) in enumerate(pares, start=1)
    ]
    db.add(solicitacao)
    db.flush()

    contexto = contexto_solicitacao(solicitacao, emitente=user)
    for tipo, status in DOCUMENTOS_LOTE:
        nome, template = DOCUMENTOS[tipo]
        db.add(Documento(
            solicitacao_id=solicitacao.id,
            tipo=tipo,
            nome=nome,
            conteudo=renderizar(template, **contexto),
            status=status,
            created_by=user.id,
        ))

    db.add(HistoricoTramitacao(
        solicitacao_id=solicitacao.id,
        origem=None,
        destino=Papel.SOSFU.value,
        status_anterior=None,
        status_novo=StatusSolicitacao.CONCEDIDO.value,
        evento=None,
        observacao=f"Concessão em lote ({competencia}), lote {lote.id}",
        tramitado_por=user.id,
    ))

    criar_notificacao(
        db,
        titulo="Recurso Creditado!",
        mensagem=(
            f"Suprimento ordinário {competencia} de {format_currency_br(total)} "
            f"concedido no processo {solicitacao.nup}."
        ),
        user_id=unidade.suprido_atual_id,
        tipo=TipoNotificacao.SUCCESS,
        categoria=CategoriaNotificacao.FINANCE,
        link=f"/solicitacoes/{solicitacao.id}",
        metadados={
            "origem": ORIGEM_LOTE,
            "solicitacao_id": solicitacao.id,
            "nup": solicitacao.nup,
            "competencia": competencia,
            "valor": str(total),
        },
    )
    db.flush()
    return solicitacao


def executar_lote(db: Session, user: User, competencia: str, unidades: Sequence, request: Optional[Request] = None) -> dict:
    """
    Executa o lote ordinário.

    Returns:
        dict com lote_id, totais (sucessos, erros, ignorados, valor_total) e
        o resultado de cada unidade
    """
    if not is_admin(user) and user.papel != Papel.SOSFU.value:
        raise PermissaoNegadaError("Apenas a SOSFU executa o lote ordinário")
    parse_competencia(competencia)

    lote = LoteConcessao(
        competencia=competencia,
        tipo=TipoSolicitacao.ORDINARIO.value,
        executado_por=user.id,
        total_unidades=len(unidades),
    )
    db.add(lote)
    db.commit()
    db.refresh(lote)

    logger.info(f"[LOTE] Iniciando lote {lote.id} ({competencia}) com {len(unidades)} unidades")

    resultados = []
    sucessos = erros = ignorados = 0
    valor_total = Decimal("0")

    for entrada in unidades:
        unidade = db.query(UnidadeTitular).filter(UnidadeTitular.id == entrada.unidade_id).first()
        if unidade is None or unidade.tipo != TipoSolicitacao.ORDINARIO.value:
            erros += 1
            resultados.append({"unidade_id": entrada.unidade_id, "situacao": ERRO,
                               "mensagem": "Unidade ordinária não encontrada"})
            continue

        existente = (
            db.query(Solicitacao)
            .filter(
                Solicitacao.comarca_id == unidade.comarca_id,
                Solicitacao.competencia == competencia,
                Solicitacao.tipo == TipoSolicitacao.ORDINARIO.value,
            )
            .first()
        )
        if existente:
            ignorados += 1
            resultados.append({"unidade_id": unidade.id, "situacao": JA_EXISTENTE,
                               "solicitacao_id": existente.id, "nup": existente.nup,
                               "mensagem": "Competência já processada"})
            continue

        try:
            solicitacao = _criar_processo_unidade(db, user, lote, unidade, competencia, entrada)
            db.commit()
        except IntegrityError:
            # Outra execução criou a solicitação entre a consulta e o insert
            db.rollback()
            ignorados += 1
            resultados.append({"unidade_id": entrada.unidade_id, "situacao": JA_EXISTENTE,
                               "mensagem": "Competência já processada"})
            continue
        except ValidacaoError as e:
            db.rollback()
            erros += 1
            resultados.append({"unidade_id": entrada.unidade_id, "situacao": ERRO, "mensagem": e.mensagem})
            logger.warning(f"[LOTE] Unidade {entrada.unidade_id} rejeitada: {e.mensagem}")
            continue
        except Exception as e:
            db.rollback()
            erros += 1
            resultados.append({"unidade_id": entrada.unidade_id, "situacao": ERRO,
                               "mensagem": f"Erro ao processar unidade: {e}"})
            logger.exception(f"[LOTE] Falha na unidade {entrada.unidade_id}", lote_id=lote.id)
            continue

        sucessos += 1
        valor_total += solicitacao.valor_solicitado
        resultados.append({"unidade_id": unidade.id, "situacao": CRIADA,
                           "solicitacao_id": solicitacao.id, "nup": solicitacao.nup,
                           "valor": solicitacao.valor_solicitado})

    lote.sucessos = sucessos
    lote.erros = erros
    lote.ignorados = ignorados
    lote.valor_total = valor_total
    lote.resultados = [
        {k: (str(v) if isinstance(v, Decimal) else v) for k, v in r.items()}
        for r in resultados
    ]
    lote.finalizado_em = now_utc()
    db.commit()

    logger.info(
        f"[LOTE] Lote {lote.id} finalizado",
        sucessos=sucessos,
        erros=erros,
        ignorados=ignorados,
        valor_total=str(valor_total),
    )
    log_audit_event(
        AuditEvent.LOTE_EXECUTADO,
        user_id=user.id,
        username=user.username,
        request=request,
        details={"lote_id": lote.id, "competencia": competencia,
                 "sucessos": sucessos, "erros": erros, "ignorados": ignorados},
    )

    return {
        "lote_id": lote.id,
        "competencia": competencia,
        "total_unidades": len(unidades),
        "sucessos": sucessos,
        "erros": erros,
        "ignorados": ignorados,
        "valor_total": valor_total,
        "resultados": resultados,
    }
