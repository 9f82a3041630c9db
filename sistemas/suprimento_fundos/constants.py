# sistemas/suprimento_fundos/constants.py
"""
Constantes do módulo Suprimento de Fundos
"""

from decimal import Decimal
from enum import Enum


class Papel(str, Enum):
    """Papel dono da fila (destino_atual) e papel operacional do usuário"""
    SUPRIDO = "SUPRIDO"
    GESTOR = "GESTOR"
    SOSFU = "SOSFU"
    SEFIN = "SEFIN"
    AJSEFIN = "AJSEFIN"
    SGP = "SGP"


class StatusSolicitacao(str, Enum):
    # Os valores em minúsculo vêm dos registros legados e são mantidos
    RASCUNHO = "RASCUNHO"
    PENDENTE_ATESTO = "PENDENTE ATESTO"
    DEVOLVIDO = "DEVOLVIDO"
    APROVADO = "aprovado"
    AGUARDANDO_PARECER = "AGUARDANDO PARECER"
    PARECER_EMITIDO = "PARECER EMITIDO"
    PENDENTE_ASSINATURA = "PENDENTE ASSINATURA"
    CONCEDIDO = "CONCEDIDO"
    AWAITING_SUPRIDO_CONFIRMATION = "AWAITING_SUPRIDO_CONFIRMATION"
    PRESTANDO_CONTAS = "PRESTANDO CONTAS"
    PC_EM_ANALISE = "PC_EM_ANALISE"
    ATESTADO = "ATESTADO"
    ARQUIVADO = "arquivado"
    CANCELADO = "CANCELADO"
    EXCLUIDO = "EXCLUIDO"


class Evento(str, Enum):
    SUBMETER = "SUBMETER"
    CANCELAR = "CANCELAR"
    EXCLUIR = "EXCLUIR"
    ATESTAR = "ATESTAR"
    DEVOLVER = "DEVOLVER"
    SOLICITAR_PARECER = "SOLICITAR_PARECER"
    EMITIR_PARECER = "EMITIR_PARECER"
    ENCAMINHAR_SEFIN = "ENCAMINHAR_SEFIN"
    AUTORIZAR = "AUTORIZAR"
    LIBERAR_RECURSO = "LIBERAR_RECURSO"
    CONFIRMAR_RECEBIMENTO = "CONFIRMAR_RECEBIMENTO"
    ENVIAR_PRESTACAO = "ENVIAR_PRESTACAO"
    ATESTAR_PRESTACAO = "ATESTAR_PRESTACAO"
    ARQUIVAR = "ARQUIVAR"


# Estados sem transições de saída
STATUS_TERMINAIS = frozenset(s.value for s in (
    StatusSolicitacao.CANCELADO,
    StatusSolicitacao.EXCLUIDO,
    StatusSolicitacao.ARQUIVADO,
))


class TipoSolicitacao(str, Enum):
    ORDINARIO = "ORDINARIO"
    EXTRA_EMERGENCIAL = "EXTRA-EMERGENCIAL"
    JURI = "JURI"


class TipoDocumento:
    CAPA = "CAPA"
    REQUERIMENTO = "REQUERIMENTO"
    CERTIDAO_ATESTO = "CERTIDAO_ATESTO"
    CERTIDAO_ATESTO_PC = "CERTIDAO_ATESTO_PC"
    PORTARIA = "PORTARIA"
    PORTARIA_NOMEACAO = "PORTARIA_NOMEACAO"
    CERTIDAO_REGULARIDADE = "CERTIDAO_REGULARIDADE"
    NOTA_EMPENHO = "NOTA_EMPENHO"
    DOC_LIQUIDACAO = "DOC_LIQUIDACAO"
    ORDEM_BANCARIA = "ORDEM_BANCARIA"


# Tipos aceitos como atesto da chefia (inclui nomes legados)
TIPOS_DOCUMENTO_ATESTO = frozenset({
    TipoDocumento.CERTIDAO_ATESTO,
    TipoDocumento.CERTIDAO_ATESTO_PC,
    "ATESTO",
    "CERTIDAO",
})

# Nome padrão e template de cada tipo de documento
DOCUMENTOS = {
    TipoDocumento.CAPA: ("Capa do Processo", "capa.txt"),
    TipoDocumento.REQUERIMENTO: ("Requerimento Inicial", "requerimento.txt"),
    TipoDocumento.CERTIDAO_ATESTO: ("Certidão de Atesto", "certidao_atesto.txt"),
    TipoDocumento.CERTIDAO_ATESTO_PC: ("Certidão de Atesto da Prestação de Contas", "certidao_atesto_pc.txt"),
    TipoDocumento.PORTARIA: ("Portaria de Concessão", "portaria_concessao.txt"),
    TipoDocumento.PORTARIA_NOMEACAO: ("Portaria de Nomeação de Suprido", "portaria_nomeacao.txt"),
    TipoDocumento.CERTIDAO_REGULARIDADE: ("Certidão de Regularidade", "certidao_regularidade.txt"),
    TipoDocumento.NOTA_EMPENHO: ("Nota de Empenho", "nota_empenho.txt"),
    TipoDocumento.DOC_LIQUIDACAO: ("Documento de Liquidação", "doc_liquidacao.txt"),
    TipoDocumento.ORDEM_BANCARIA: ("Ordem Bancária", "ordem_bancaria.txt"),
}


class StatusDocumento:
    MINUTA = "MINUTA"
    GERADO = "GERADO"
    ASSINADO = "ASSINADO"


# Documentos criados pelo lote ordinário, na ordem do processo
DOCUMENTOS_LOTE = (
    (TipoDocumento.CAPA, StatusDocumento.GERADO),
    (TipoDocumento.REQUERIMENTO, StatusDocumento.GERADO),
    (TipoDocumento.PORTARIA, StatusDocumento.MINUTA),
    (TipoDocumento.CERTIDAO_REGULARIDADE, StatusDocumento.MINUTA),
    (TipoDocumento.NOTA_EMPENHO, StatusDocumento.MINUTA),
    (TipoDocumento.DOC_LIQUIDACAO, StatusDocumento.MINUTA),
    (TipoDocumento.ORDEM_BANCARIA, StatusDocumento.MINUTA),
)


class TipoNotificacao:
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"


class CategoriaNotificacao:
    PROCESS = "PROCESS"
    FINANCE = "FINANCE"


class StatusTitular:
    REGULAR = "REGULAR"
    SEM_TITULAR = "SEM_TITULAR"
    IRREGULAR = "IRREGULAR"


# Tipos de suprimento com titular fixo (extra-emergencial não tem)
TIPOS_COM_TITULAR = frozenset({TipoSolicitacao.ORDINARIO.value, TipoSolicitacao.JURI.value})


# Elementos de despesa permitidos (Res. CNJ 169/2013)
ELEMENTOS_PERMITIDOS = {
    "3.3.90.30": "Material de Consumo",
    "3.3.90.33": "Passagens e Despesas com Locomoção",
    "3.3.90.36": "Outros Serviços de Terceiros - Pessoa Física",
    "3.3.90.39": "Outros Serviços de Terceiros - Pessoa Jurídica",
}

# Elementos usados pelo lote quando a unidade não define distribuição própria
ELEMENTO_CUSTEIO = "3.3.90.30"
ELEMENTO_CAPITAL = "3.3.90.39"
DISTRIBUICAO_PADRAO = {
    ELEMENTO_CUSTEIO: Decimal("70"),
    ELEMENTO_CAPITAL: Decimal("30"),
}

# Tolerância de conferência de somas (centavos)
TOLERANCIA_SOMA = Decimal("0.01")

# Quadrimestres: 1Q jan-abr, 2Q mai-ago, 3Q set-dez
QUADRIMESTRES = {
    1: ("Janeiro", "Abril"),
    2: ("Maio", "Agosto"),
    3: ("Setembro", "Dezembro"),
}

# Prefixos de numeração
PREFIXO_NUP_AVULSO = "SOL"
PREFIXO_NUP_ORDINARIO = "ORD"
PREFIXO_CERTIDAO_ATESTO = "CAT"
PREFIXO_PORTARIA = "POR"

ORIGEM_LOTE = "ORDINARY_PROCESS_FACTORY"
