# sistemas/suprimento_fundos/exceptions.py
"""
Exceções específicas do módulo Suprimento de Fundos.

Cada exceção carrega o status HTTP com que o router a responde.
"""


class SuprimentoError(Exception):
    """Erro base do módulo"""
    status_code = 400

    def __init__(self, mensagem: str = None):
        super().__init__(mensagem or self.__doc__)
        self.mensagem = mensagem or self.__doc__


class SolicitacaoNaoEncontradaError(SuprimentoError):
    """Solicitação não encontrada"""
    status_code = 404


class DocumentoNaoEncontradoError(SuprimentoError):
    """Documento não encontrado"""
    status_code = 404


class RecursoNaoEncontradoError(SuprimentoError):
    """Registro não encontrado"""
    status_code = 404


class PermissaoNegadaError(SuprimentoError):
    """Usuário não pode executar esta ação"""
    status_code = 403


class TransicaoInvalidaError(SuprimentoError):
    """Transição não permitida a partir do estado atual"""
    status_code = 409


class ConcorrenciaError(SuprimentoError):
    """Registro alterado por outro usuário; recarregue e tente novamente"""
    status_code = 409


class DocumentoAssinadoError(SuprimentoError):
    """Documento assinado não pode ser alterado nem excluído"""
    status_code = 409


class PinInvalidoError(SuprimentoError):
    """PIN de assinatura inválido"""
    status_code = 403


class ValidacaoError(SuprimentoError):
    """Dados inválidos"""
    status_code = 422


class HistoricoImutavelError(SuprimentoError):
    """Histórico é somente inclusão"""
    status_code = 409
