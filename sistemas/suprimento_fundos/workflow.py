# sistemas/suprimento_fundos/workflow.py
"""
Máquina de estados da tramitação de solicitações.

Cada solicitação tem um par (status, destino_atual). Uma transição é
identificada por (status, destino, evento) e leva a exatamente um novo par,
executada por um único papel. Nenhuma escrita em `solicitacoes` muda esse par
sem passar por `resolver_transicao`.

Este módulo não faz I/O; a persistência fica em services.py.
"""

from dataclasses import dataclass
from typing import Dict, List, Set, Tuple, Union

from sistemas.suprimento_fundos.constants import (
    Evento, Papel, StatusSolicitacao, STATUS_TERMINAIS,
)
from sistemas.suprimento_fundos.exceptions import TransicaoInvalidaError

S = StatusSolicitacao
P = Papel
E = Evento


@dataclass(frozen=True)
class Transicao:
    status_origem: StatusSolicitacao
    destino_origem: Papel
    evento: Evento
    status_novo: StatusSolicitacao
    destino_novo: Papel
    papel_autorizado: Papel

    @property
    def ator_e_requerente(self) -> bool:
        """Eventos do papel SUPRIDO só podem ser feitos pelo próprio requerente."""
        return self.papel_autorizado == P.SUPRIDO


# (status, destino, evento) -> (novo status, novo destino, papel que executa)
TABELA_TRANSICOES: Tuple[tuple, ...] = (
    # Elaboração pelo suprido
    (S.RASCUNHO, P.SUPRIDO, E.SUBMETER, S.PENDENTE_ATESTO, P.GESTOR, P.SUPRIDO),
    (S.DEVOLVIDO, P.SUPRIDO, E.SUBMETER, S.PENDENTE_ATESTO, P.GESTOR, P.SUPRIDO),
    (S.RASCUNHO, P.SUPRIDO, E.CANCELAR, S.CANCELADO, P.SUPRIDO, P.SUPRIDO),
    (S.PENDENTE_ATESTO, P.GESTOR, E.CANCELAR, S.CANCELADO, P.SUPRIDO, P.SUPRIDO),
    (S.DEVOLVIDO, P.SUPRIDO, E.CANCELAR, S.CANCELADO, P.SUPRIDO, P.SUPRIDO),
    (S.RASCUNHO, P.SUPRIDO, E.EXCLUIR, S.EXCLUIDO, P.SUPRIDO, P.SUPRIDO),

    # Atesto da chefia
    (S.PENDENTE_ATESTO, P.GESTOR, E.ATESTAR, S.APROVADO, P.SOSFU, P.GESTOR),
    (S.DEVOLVIDO, P.GESTOR, E.ATESTAR, S.APROVADO, P.SOSFU, P.GESTOR),
    (S.PENDENTE_ATESTO, P.GESTOR, E.DEVOLVER, S.DEVOLVIDO, P.SUPRIDO, P.GESTOR),
    (S.DEVOLVIDO, P.GESTOR, E.DEVOLVER, S.DEVOLVIDO, P.SUPRIDO, P.GESTOR),

    # Análise técnica SOSFU
    (S.APROVADO, P.SOSFU, E.DEVOLVER, S.DEVOLVIDO, P.GESTOR, P.SOSFU),
    (S.DEVOLVIDO, P.SOSFU, E.DEVOLVER, S.DEVOLVIDO, P.GESTOR, P.SOSFU),
    (S.APROVADO, P.SOSFU, E.SOLICITAR_PARECER, S.AGUARDANDO_PARECER, P.AJSEFIN, P.SOSFU),
    (S.DEVOLVIDO, P.SOSFU, E.SOLICITAR_PARECER, S.AGUARDANDO_PARECER, P.AJSEFIN, P.SOSFU),
    (S.PARECER_EMITIDO, P.SOSFU, E.DEVOLVER, S.DEVOLVIDO, P.AJSEFIN, P.SOSFU),
    (S.APROVADO, P.SOSFU, E.ENCAMINHAR_SEFIN, S.PENDENTE_ASSINATURA, P.SEFIN, P.SOSFU),
    (S.PARECER_EMITIDO, P.SOSFU, E.ENCAMINHAR_SEFIN, S.PENDENTE_ASSINATURA, P.SEFIN, P.SOSFU),
    (S.DEVOLVIDO, P.SOSFU, E.ENCAMINHAR_SEFIN, S.PENDENTE_ASSINATURA, P.SEFIN, P.SOSFU),

    # Assessoria jurídica
    (S.AGUARDANDO_PARECER, P.AJSEFIN, E.EMITIR_PARECER, S.PARECER_EMITIDO, P.SOSFU, P.AJSEFIN),
    (S.DEVOLVIDO, P.AJSEFIN, E.EMITIR_PARECER, S.PARECER_EMITIDO, P.SOSFU, P.AJSEFIN),

    # Ordenador de despesa
    (S.PENDENTE_ASSINATURA, P.SEFIN, E.AUTORIZAR, S.CONCEDIDO, P.SOSFU, P.SEFIN),
    (S.PENDENTE_ASSINATURA, P.SEFIN, E.DEVOLVER, S.DEVOLVIDO, P.SOSFU, P.SEFIN),

    # Execução e prestação de contas
    (S.CONCEDIDO, P.SOSFU, E.LIBERAR_RECURSO, S.AWAITING_SUPRIDO_CONFIRMATION, P.SUPRIDO, P.SOSFU),
    (S.AWAITING_SUPRIDO_CONFIRMATION, P.SUPRIDO, E.CONFIRMAR_RECEBIMENTO, S.PRESTANDO_CONTAS, P.SUPRIDO, P.SUPRIDO),
    (S.PRESTANDO_CONTAS, P.SUPRIDO, E.ENVIAR_PRESTACAO, S.PC_EM_ANALISE, P.GESTOR, P.SUPRIDO),
    (S.PC_EM_ANALISE, P.GESTOR, E.ATESTAR_PRESTACAO, S.ATESTADO, P.SOSFU, P.GESTOR),
    (S.PC_EM_ANALISE, P.GESTOR, E.DEVOLVER, S.PRESTANDO_CONTAS, P.SUPRIDO, P.GESTOR),
    (S.ATESTADO, P.SOSFU, E.DEVOLVER, S.PRESTANDO_CONTAS, P.SUPRIDO, P.SOSFU),
    (S.ATESTADO, P.SOSFU, E.ARQUIVAR, S.ARQUIVADO, P.SOSFU, P.SOSFU),
)

# Indexado por valores string: os registros do banco chegam como str
_INDICE: Dict[Tuple[str, str, str], Transicao] = {
    (linha[0].value, linha[1].value, linha[2].value): Transicao(*linha)
    for linha in TABELA_TRANSICOES
}


def _valor(item: Union[str, StatusSolicitacao, Papel, Evento, None]) -> str:
    if item is None:
        return ""
    return item.value if hasattr(item, "value") else str(item)


def resolver_transicao(status, destino, evento) -> Transicao:
    """
    Retorna a transição aplicável ao par atual para o evento.

    Raises:
        TransicaoInvalidaError: evento não permitido a partir de (status, destino)
    """
    chave = (_valor(status), _valor(destino), _valor(evento))
    transicao = _INDICE.get(chave)
    if transicao is None:
        raise TransicaoInvalidaError(
            f"Evento {chave[2]} não permitido para status '{chave[0]}' com destino {chave[1] or '-'}"
        )
    return transicao


def eventos_disponiveis(status, destino) -> List[Evento]:
    """Eventos aceitos a partir do par (status, destino), na ordem da tabela."""
    chave = (_valor(status), _valor(destino))
    return [t.evento for (s, d, _), t in _INDICE.items() if (s, d) == chave]


def pares_validos() -> Set[Tuple[str, str]]:
    """Todos os pares (status, destino) que uma solicitação pode ocupar."""
    pares = {(StatusSolicitacao.RASCUNHO.value, Papel.SUPRIDO.value)}
    # Lote ordinário nasce já concedido
    pares.add((StatusSolicitacao.CONCEDIDO.value, Papel.SOSFU.value))
    for t in _INDICE.values():
        pares.add((t.status_origem.value, t.destino_origem.value))
        pares.add((t.status_novo.value, t.destino_novo.value))
    return pares


def is_terminal(status) -> bool:
    return _valor(status) in STATUS_TERMINAIS
