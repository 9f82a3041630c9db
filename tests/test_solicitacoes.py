# tests/test_solicitacoes.py
"""
Testes do serviço de solicitações e tramitação (services.py).

Cobre:
- Criação com soma dos itens e envio imediato
- Atesto pela chefia com certidão
- Atomicidade: transição rejeitada não grava histórico nem notificação
- Concorrência otimista (versão esperada e duas sessões)
- Prazos de aplicação e de prestação de contas
- Permissões por papel e fila de trabalho
"""

from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import sessionmaker

from sistemas.suprimento_fundos import services
from sistemas.suprimento_fundos.exceptions import (
    ConcorrenciaError, HistoricoImutavelError, PermissaoNegadaError,
    SolicitacaoNaoEncontradaError, TransicaoInvalidaError, ValidacaoError,
)
from sistemas.suprimento_fundos.models import HistoricoTramitacao, Notificacao
from sistemas.suprimento_fundos.schemas import ItemDespesaIn, SolicitacaoCreate, SolicitacaoUpdate
from sistemas.suprimento_fundos.services_documentos import gerar_documento
from utils.timezone import hoje_local


def _dados(submeter=True, itens=None, tipo="EXTRA-EMERGENCIAL"):
    if itens is None:
        itens = [
            ItemDespesaIn(elemento="3.3.90.30", descricao="Material de expediente", valor=Decimal("300.00")),
            ItemDespesaIn(elemento="3.3.90.39", descricao="Conserto de ar-condicionado", valor=Decimal("150.00")),
        ]
    return SolicitacaoCreate(
        tipo=tipo,
        descricao="Despesas urgentes do fórum",
        justificativa="Equipamento parado",
        itens=itens,
        submeter=submeter,
    )


def _historico(db, solicitacao_id):
    return (
        db.query(HistoricoTramitacao)
        .filter(HistoricoTramitacao.solicitacao_id == solicitacao_id)
        .order_by(HistoricoTramitacao.id)
        .all()
    )


def _ate_liberado(db, usuarios, tipo="EXTRA-EMERGENCIAL"):
    """Leva uma solicitação nova até a liberação do recurso (aguardando o suprido)."""
    s = services.criar_solicitacao(db, usuarios.suprido, _dados(tipo=tipo))
    gerar_documento(db, usuarios.gestor, s.id, "CERTIDAO_ATESTO")
    for ator, evento in [
        (usuarios.gestor, "ATESTAR"),
        (usuarios.sosfu, "SOLICITAR_PARECER"),
        (usuarios.ajsefin, "EMITIR_PARECER"),
        (usuarios.sosfu, "ENCAMINHAR_SEFIN"),
        (usuarios.sefin, "AUTORIZAR"),
        (usuarios.sosfu, "LIBERAR_RECURSO"),
    ]:
        s = services.tramitar(db, ator, s.id, evento)
    return s


# ==================================================
# CRIAÇÃO
# ==================================================


class TestCriarSolicitacao:

    def test_rascunho_soma_itens(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados(submeter=False))

        assert s.status == "RASCUNHO"
        assert s.destino_atual == "SUPRIDO"
        assert s.valor_solicitado == Decimal("450.00")
        assert [i.ordem for i in s.itens] == [1, 2]
        assert s.nup.startswith("TJPA-SOL-")
        assert s.versao == 1
        assert _historico(db, s.id) == []

    def test_submeter_na_criacao_grava_um_historico(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())

        assert (s.status, s.destino_atual) == ("PENDENTE ATESTO", "GESTOR")
        historico = _historico(db, s.id)
        assert len(historico) == 1
        assert historico[0].evento == "SUBMETER"
        assert historico[0].status_anterior == "RASCUNHO"

        notificacao = db.query(Notificacao).one()
        assert notificacao.papel == "GESTOR"
        assert notificacao.metadados["evento"] == "SUBMETER"

    def test_nups_sequenciais(self, db, usuarios):
        a = services.criar_solicitacao(db, usuarios.suprido, _dados(submeter=False))
        b = services.criar_solicitacao(db, usuarios.suprido, _dados(submeter=False))

        assert int(b.nup.rsplit("-", 1)[1]) == int(a.nup.rsplit("-", 1)[1]) + 1

    def test_submeter_sem_itens_falha_e_nao_cria(self, db, usuarios):
        with pytest.raises(ValidacaoError):
            services.criar_solicitacao(db, usuarios.suprido, _dados(itens=[]))

        assert services.listar_fila(db, usuarios.suprido) == []

    def test_ordinario_acima_do_limite(self, db, usuarios):
        itens = [ItemDespesaIn(elemento="3.3.90.30", valor=Decimal("15000.01"))]
        with pytest.raises(ValidacaoError):
            services.criar_solicitacao(db, usuarios.suprido, _dados(itens=itens, tipo="ORDINARIO"))


# ==================================================
# TRAMITAÇÃO
# ==================================================


class TestTramitar:

    def test_atesto_com_certidao_leva_a_sosfu(self, db, usuarios):
        """R$ 450,00 (300 + 150): atesto grava exatamente uma nova linha de histórico."""
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())
        gerar_documento(db, usuarios.gestor, s.id, "CERTIDAO_ATESTO")
        antes = len(_historico(db, s.id))

        s = services.tramitar(db, usuarios.gestor, s.id, "ATESTAR", versao_esperada=s.versao)

        assert s.status == "aprovado"
        assert s.destino_atual == "SOSFU"
        assert s.valor_solicitado == Decimal("450.00")
        assert s.atestado_por == usuarios.gestor.id
        assert s.data_atesto is not None

        historico = _historico(db, s.id)
        assert len(historico) == antes + 1
        ultimo = historico[-1]
        assert (ultimo.status_anterior, ultimo.status_novo) == ("PENDENTE ATESTO", "aprovado")
        assert (ultimo.origem, ultimo.destino) == ("GESTOR", "SOSFU")
        assert ultimo.tramitado_por == usuarios.gestor.id

    def test_atestar_sem_certidao_nao_grava_nada(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())
        versao = s.versao
        notificacoes = db.query(Notificacao).count()

        with pytest.raises(ValidacaoError):
            services.tramitar(db, usuarios.gestor, s.id, "ATESTAR")

        db.expire_all()
        s = services.obter_solicitacao(db, s.id)
        assert (s.status, s.destino_atual, s.versao) == ("PENDENTE ATESTO", "GESTOR", versao)
        assert len(_historico(db, s.id)) == 1
        assert db.query(Notificacao).count() == notificacoes

    def test_gestor_requerente_dispensa_certidao(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.gestor, _dados())
        s = services.tramitar(db, usuarios.gestor, s.id, "ATESTAR")
        assert s.status == "aprovado"

    def test_papel_errado_e_negado(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())

        with pytest.raises(PermissaoNegadaError):
            services.tramitar(db, usuarios.sefin, s.id, "ATESTAR")
        assert len(_historico(db, s.id)) == 1

    def test_evento_fora_do_estado(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())
        with pytest.raises(TransicaoInvalidaError):
            services.tramitar(db, usuarios.sefin, s.id, "AUTORIZAR")

    def test_submeter_so_pelo_requerente(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados(submeter=False))
        with pytest.raises(PermissaoNegadaError):
            services.tramitar(db, usuarios.outro_suprido, s.id, "SUBMETER")

    def test_devolver_exige_observacao(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())
        with pytest.raises(ValidacaoError):
            services.tramitar(db, usuarios.gestor, s.id, "DEVOLVER", observacao="  ")

        s = services.tramitar(db, usuarios.gestor, s.id, "DEVOLVER", observacao="Falta orçamento")
        assert (s.status, s.destino_atual) == ("DEVOLVIDO", "SUPRIDO")
        aviso = db.query(Notificacao).filter(Notificacao.user_id == usuarios.suprido.id).one()
        assert aviso.tipo == "WARNING"

    def test_motivo_da_devolucao_chega_ao_suprido(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())

        services.tramitar(db, usuarios.gestor, s.id, "DEVOLVER", observacao="Falta nota fiscal do fornecedor")

        aviso = db.query(Notificacao).filter(Notificacao.user_id == usuarios.suprido.id).one()
        assert aviso.tipo == "WARNING"
        assert aviso.mensagem == (
            "Ana Gestora (GESTOR) tramitou o processo para SUPRIDO. Motivo: Falta nota fiscal do fornecedor"
        )
        assert aviso.metadados["evento"] == "DEVOLVER"
        assert aviso.metadados["observacao"] == "Falta nota fiscal do fornecedor"

    def test_tramitacao_sem_observacao_nao_cita_motivo(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())
        gerar_documento(db, usuarios.gestor, s.id, "CERTIDAO_ATESTO")

        services.tramitar(db, usuarios.gestor, s.id, "ATESTAR")

        aviso = db.query(Notificacao).filter(Notificacao.papel == "SOSFU").one()
        assert aviso.metadados["evento"] == "ATESTAR"
        assert "Motivo" not in aviso.mensagem
        assert "observacao" not in aviso.metadados

    def test_prazo_de_prestacao_conta_do_fim_da_aplicacao(self, db, usuarios):
        s = _ate_liberado(db, usuarios, tipo="ORDINARIO")

        s = services.tramitar(db, usuarios.suprido, s.id, "CONFIRMAR_RECEBIMENTO")

        assert s.data_recebimento is not None
        assert s.prazo_aplicacao == hoje_local() + timedelta(days=90)
        assert s.prazo_prestacao == s.prazo_aplicacao + timedelta(days=30)
        assert s.prazo_prestacao > s.prazo_aplicacao

    def test_escrita_concorrente_em_outra_sessao_gera_conflito(self, db, engine, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())
        versao_lida = s.versao
        gestor = usuarios.gestor

        outra = sessionmaker(bind=engine, autoflush=False)()
        try:
            services.tramitar(outra, gestor, s.id, "DEVOLVER", observacao="Rever itens")
        finally:
            outra.close()

        # A primeira sessão ainda guarda a versão que leu
        assert s.versao == versao_lida
        with pytest.raises(ConcorrenciaError) as exc:
            services.tramitar(db, gestor, s.id, "DEVOLVER", observacao="Falta orçamento")
        assert exc.value.status_code == 409

        db.expire_all()
        s = services.obter_solicitacao(db, s.id)
        assert (s.status, s.versao) == ("DEVOLVIDO", versao_lida + 1)
        assert [h.evento for h in _historico(db, s.id)] == ["SUBMETER", "DEVOLVER"]
        assert db.query(Notificacao).filter(Notificacao.user_id == usuarios.suprido.id).count() == 1

    def test_versao_desatualizada_gera_conflito(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())
        gerar_documento(db, usuarios.gestor, s.id, "CERTIDAO_ATESTO")
        versao_lida = s.versao

        services.tramitar(db, usuarios.gestor, s.id, "DEVOLVER", observacao="Rever itens", versao_esperada=versao_lida)

        with pytest.raises(ConcorrenciaError) as exc:
            services.tramitar(db, usuarios.suprido, s.id, "SUBMETER", versao_esperada=versao_lida)
        assert exc.value.status_code == 409

    def test_cada_transicao_incrementa_versao(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados(submeter=False))
        v1 = s.versao
        s = services.tramitar(db, usuarios.suprido, s.id, "SUBMETER")
        assert s.versao == v1 + 1

    def test_fluxo_completo_ate_arquivamento(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())
        gerar_documento(db, usuarios.gestor, s.id, "CERTIDAO_ATESTO")

        passos = [
            (usuarios.gestor, "ATESTAR"),
            (usuarios.sosfu, "SOLICITAR_PARECER"),
            (usuarios.ajsefin, "EMITIR_PARECER"),
            (usuarios.sosfu, "ENCAMINHAR_SEFIN"),
            (usuarios.sefin, "AUTORIZAR"),
            (usuarios.sosfu, "LIBERAR_RECURSO"),
            (usuarios.suprido, "CONFIRMAR_RECEBIMENTO"),
            (usuarios.suprido, "ENVIAR_PRESTACAO"),
            (usuarios.gestor, "ATESTAR_PRESTACAO"),
            (usuarios.sosfu, "ARQUIVAR"),
        ]
        for ator, evento in passos:
            s = services.tramitar(db, ator, s.id, evento)

        assert (s.status, s.destino_atual) == ("arquivado", "SOSFU")
        assert s.autorizado_por == usuarios.sefin.id
        assert s.prazo_aplicacao is not None
        # Extra-emergencial: 30 dias para aplicar e mais 30, após a aplicação, para prestar contas
        assert s.prazo_aplicacao == hoje_local() + timedelta(days=30)
        assert s.prazo_prestacao == hoje_local() + timedelta(days=60)
        assert len(_historico(db, s.id)) == len(passos) + 1
        assert services.eventos_para_usuario(usuarios.admin, s) == []


# ==================================================
# EDIÇÃO
# ==================================================


class TestAtualizarSolicitacao:

    def test_edita_rascunho_e_recalcula_total(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados(submeter=False))
        dados = SolicitacaoUpdate(
            itens=[ItemDespesaIn(elemento="3.3.90.30", valor=Decimal("99.90"))],
            versao_esperada=s.versao,
        )

        s = services.atualizar_solicitacao(db, usuarios.suprido, s.id, dados)

        assert s.valor_solicitado == Decimal("99.90")
        assert len(s.itens) == 1
        assert s.versao == 2

    def test_rascunho_editado_enviado_e_atestado(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados(submeter=False))
        assert (s.status, s.destino_atual) == ("RASCUNHO", "SUPRIDO")

        s = services.atualizar_solicitacao(db, usuarios.suprido, s.id, SolicitacaoUpdate(
            justificativa="Ar-condicionado da sala de audiências parado",
            itens=[
                ItemDespesaIn(elemento="3.3.90.30", valor=Decimal("120.00")),
                ItemDespesaIn(elemento="3.3.90.39", valor=Decimal("380.00")),
            ],
            versao_esperada=s.versao,
        ))
        assert s.valor_solicitado == Decimal("500.00")
        assert _historico(db, s.id) == []

        s = services.tramitar(db, usuarios.suprido, s.id, "SUBMETER", versao_esperada=s.versao)
        assert (s.status, s.destino_atual) == ("PENDENTE ATESTO", "GESTOR")

        gerar_documento(db, usuarios.gestor, s.id, "CERTIDAO_ATESTO")
        s = services.tramitar(db, usuarios.gestor, s.id, "ATESTAR", versao_esperada=s.versao)

        assert (s.status, s.destino_atual) == ("aprovado", "SOSFU")
        assert s.justificativa == "Ar-condicionado da sala de audiências parado"
        assert [(i.elemento, i.valor) for i in s.itens] == [
            ("3.3.90.30", Decimal("120.00")), ("3.3.90.39", Decimal("380.00")),
        ]
        assert [(h.evento, h.status_anterior, h.status_novo) for h in _historico(db, s.id)] == [
            ("SUBMETER", "RASCUNHO", "PENDENTE ATESTO"),
            ("ATESTAR", "PENDENTE ATESTO", "aprovado"),
        ]

    def test_nao_edita_depois_de_enviada(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())
        with pytest.raises(TransicaoInvalidaError):
            services.atualizar_solicitacao(db, usuarios.suprido, s.id, SolicitacaoUpdate(descricao="x"))

    def test_so_o_requerente_edita(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados(submeter=False))
        with pytest.raises(PermissaoNegadaError):
            services.atualizar_solicitacao(db, usuarios.outro_suprido, s.id, SolicitacaoUpdate(descricao="x"))

    def test_versao_esperada_divergente(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados(submeter=False))
        with pytest.raises(ConcorrenciaError):
            services.atualizar_solicitacao(
                db, usuarios.suprido, s.id, SolicitacaoUpdate(descricao="x", versao_esperada=s.versao + 5)
            )


# ==================================================
# CONSULTAS
# ==================================================


class TestConsultas:

    def test_fila_por_papel(self, db, usuarios):
        enviada = services.criar_solicitacao(db, usuarios.suprido, _dados())
        services.criar_solicitacao(db, usuarios.suprido, _dados(submeter=False))

        assert [s.id for s in services.listar_fila(db, usuarios.gestor)] == [enviada.id]
        assert services.listar_fila(db, usuarios.sosfu) == []
        assert len(services.listar_fila(db, usuarios.suprido)) == 2
        assert services.listar_fila(db, usuarios.outro_suprido) == []

    def test_fila_de_outro_papel_so_admin(self, db, usuarios):
        services.criar_solicitacao(db, usuarios.suprido, _dados())

        with pytest.raises(PermissaoNegadaError):
            services.listar_fila(db, usuarios.sosfu, "GESTOR")
        assert len(services.listar_fila(db, usuarios.admin, "GESTOR")) == 1

    def test_excluida_some_da_fila_do_suprido(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados(submeter=False))
        services.tramitar(db, usuarios.suprido, s.id, "EXCLUIR")

        assert services.listar_fila(db, usuarios.suprido) == []

    def test_suprido_nao_le_solicitacao_alheia(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())

        with pytest.raises(PermissaoNegadaError):
            services.obter_solicitacao_para_usuario(db, usuarios.outro_suprido, s.id)
        assert services.obter_solicitacao_para_usuario(db, usuarios.sefin, s.id).id == s.id

    def test_busca_por_nup(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())

        assert services.obter_solicitacao_por_nup(db, usuarios.gestor, f" {s.nup} ").id == s.id
        with pytest.raises(PermissaoNegadaError):
            services.obter_solicitacao_por_nup(db, usuarios.outro_suprido, s.nup)
        with pytest.raises(SolicitacaoNaoEncontradaError):
            services.obter_solicitacao_por_nup(db, usuarios.gestor, "TJPA-SOL-2026-99999")
        with pytest.raises(ValidacaoError):
            services.obter_solicitacao_por_nup(db, usuarios.gestor, "SOL-2026-1")

    def test_solicitacao_inexistente(self, db, usuarios):
        with pytest.raises(SolicitacaoNaoEncontradaError):
            services.obter_historico(db, usuarios.admin, 999)

    def test_eventos_para_usuario(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())

        assert set(services.eventos_para_usuario(usuarios.gestor, s)) == {"ATESTAR", "DEVOLVER"}
        assert services.eventos_para_usuario(usuarios.suprido, s) == ["CANCELAR"]
        assert services.eventos_para_usuario(usuarios.sefin, s) == []

    def test_somar_itens(self):
        itens = [SimpleNamespace(valor="0.10"), SimpleNamespace(valor=Decimal("0.20"))]
        assert services.somar_itens(itens) == Decimal("0.30")


class TestHistoricoSomenteInclusao:

    def test_historico_nao_aceita_alteracao_nem_exclusao(self, db, usuarios):
        s = services.criar_solicitacao(db, usuarios.suprido, _dados())
        historico = _historico(db, s.id)[0]

        historico.observacao = "reescrita"
        with pytest.raises(HistoricoImutavelError):
            db.flush()
        db.rollback()

        db.delete(_historico(db, s.id)[0])
        with pytest.raises(HistoricoImutavelError):
            db.flush()
        db.rollback()

        assert len(_historico(db, s.id)) == 1
