# tests/test_router_suprimento.py
"""
Testes de integração dos endpoints /suprimento.

TestClient sem lifespan: o banco é o SQLite em memória do fixture `engine`.
"""

from decimal import Decimal

import pytest


ITENS = [
    {"elemento": "3.3.90.30", "descricao": "Material", "valor": "300.00"},
    {"elemento": "3.3.90.39", "descricao": "Serviço", "valor": "150.00"},
]


@pytest.fixture
def solicitacao(client, usuarios, auth_headers):
    response = client.post(
        "/suprimento/solicitacoes",
        json={"descricao": "Despesa urgente", "itens": ITENS, "submeter": True},
        headers=auth_headers(usuarios.suprido),
    )
    assert response.status_code == 201
    return response.json()


class TestSolicitacoesApi:

    def test_criacao_retorna_estado_e_eventos(self, solicitacao):
        assert solicitacao["status"] == "PENDENTE ATESTO"
        assert solicitacao["destino_atual"] == "GESTOR"
        assert Decimal(solicitacao["valor_solicitado"]) == Decimal("450.00")
        assert solicitacao["eventos_disponiveis"] == ["CANCELAR"]
        assert len(solicitacao["itens"]) == 2

    def test_elemento_nao_permitido(self, client, usuarios, auth_headers):
        response = client.post(
            "/suprimento/solicitacoes",
            json={"itens": [{"elemento": "4.4.90.52", "valor": "10.00"}]},
            headers=auth_headers(usuarios.suprido),
        )
        assert response.status_code == 422

    def test_sem_autenticacao(self, client):
        assert client.get("/suprimento/fila").status_code == 401

    def test_fila_do_gestor(self, client, usuarios, auth_headers, solicitacao):
        response = client.get("/suprimento/fila", headers=auth_headers(usuarios.gestor))

        assert response.status_code == 200
        fila = response.json()
        assert [s["id"] for s in fila] == [solicitacao["id"]]
        assert "ATESTAR" in fila[0]["eventos_disponiveis"]
        assert "DEVOLVER" in fila[0]["eventos_disponiveis"]

    def test_fila_de_outro_papel_negada(self, client, usuarios, auth_headers):
        response = client.get("/suprimento/fila", params={"papel": "SEFIN"}, headers=auth_headers(usuarios.suprido))
        assert response.status_code == 403

    def test_busca_por_nup(self, client, usuarios, auth_headers, solicitacao):
        headers = auth_headers(usuarios.gestor)

        response = client.get(f"/suprimento/solicitacoes/nup/{solicitacao['nup']}", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == solicitacao["id"]

        assert client.get("/suprimento/solicitacoes/nup/SOL-12", headers=headers).status_code == 422
        assert client.get("/suprimento/solicitacoes/nup/TJPA-SOL-2026-99999", headers=headers).status_code == 404

    def test_suprido_alheio_nao_ve(self, client, usuarios, auth_headers, solicitacao):
        response = client.get(
            f"/suprimento/solicitacoes/{solicitacao['id']}", headers=auth_headers(usuarios.outro_suprido)
        )
        assert response.status_code == 403


class TestTramitacaoApi:

    def test_atesto_sem_certidao_e_422(self, client, usuarios, auth_headers, solicitacao):
        response = client.post(
            f"/suprimento/solicitacoes/{solicitacao['id']}/tramitar",
            json={"evento": "ATESTAR"},
            headers=auth_headers(usuarios.gestor),
        )
        assert response.status_code == 422

    def test_atesto_com_certidao(self, client, usuarios, auth_headers, solicitacao):
        headers = auth_headers(usuarios.gestor)
        certidao = client.post(
            f"/suprimento/solicitacoes/{solicitacao['id']}/documentos",
            json={"tipo": "CERTIDAO_ATESTO"},
            headers=headers,
        )
        assert certidao.status_code == 201

        response = client.post(
            f"/suprimento/solicitacoes/{solicitacao['id']}/tramitar",
            json={"evento": "ATESTAR", "versao_esperada": solicitacao["versao"]},
            headers=headers,
        )

        assert response.status_code == 200
        assert (response.json()["status"], response.json()["destino_atual"]) == ("aprovado", "SOSFU")

        historico = client.get(
            f"/suprimento/solicitacoes/{solicitacao['id']}/historico", headers=headers
        ).json()
        assert [h["evento"] for h in historico] == ["SUBMETER", "ATESTAR"]

    def test_versao_desatualizada_e_409(self, client, usuarios, auth_headers, solicitacao):
        response = client.post(
            f"/suprimento/solicitacoes/{solicitacao['id']}/tramitar",
            json={"evento": "DEVOLVER", "observacao": "Falta orçamento", "versao_esperada": 99},
            headers=auth_headers(usuarios.gestor),
        )
        assert response.status_code == 409

    def test_evento_invalido_para_o_estado_e_409(self, client, usuarios, auth_headers, solicitacao):
        response = client.post(
            f"/suprimento/solicitacoes/{solicitacao['id']}/tramitar",
            json={"evento": "ARQUIVAR"},
            headers=auth_headers(usuarios.sosfu),
        )
        assert response.status_code == 409

    def test_papel_errado_e_403(self, client, usuarios, auth_headers, solicitacao):
        response = client.post(
            f"/suprimento/solicitacoes/{solicitacao['id']}/tramitar",
            json={"evento": "ATESTAR"},
            headers=auth_headers(usuarios.sefin),
        )
        assert response.status_code == 403

    def test_evento_desconhecido_e_422(self, client, usuarios, auth_headers, solicitacao):
        response = client.post(
            f"/suprimento/solicitacoes/{solicitacao['id']}/tramitar",
            json={"evento": "APROVAR_TUDO"},
            headers=auth_headers(usuarios.gestor),
        )
        assert response.status_code == 422


class TestDocumentosApi:

    def _assinado(self, client, usuarios, auth_headers, solicitacao):
        headers = auth_headers(usuarios.suprido)
        doc = client.post(
            f"/suprimento/solicitacoes/{solicitacao['id']}/documentos",
            json={"tipo": "REQUERIMENTO"},
            headers=headers,
        ).json()
        return client.post(f"/suprimento/documentos/{doc['id']}/assinar", json={"pin": "1234"}, headers=headers)

    def test_assinatura_e_validacao_publica(self, client, usuarios, auth_headers, solicitacao):
        assinado = self._assinado(client, usuarios, auth_headers, solicitacao)
        assert assinado.status_code == 200
        codigo = assinado.json()["codigo_validacao"]

        publica = client.get(f"/suprimento/documentos/validar/{codigo}")

        assert publica.status_code == 200
        corpo = publica.json()
        assert corpo["assinado"] and corpo["integro"] and corpo["assinatura_valida"]
        assert corpo["assinado_por_nome"] == "Maria Suprida"

    def test_codigo_inexistente_e_404(self, client):
        assert client.get("/suprimento/documentos/validar/0000-0000-0000-0000").status_code == 404

    def test_pin_errado_e_403(self, client, usuarios, auth_headers, solicitacao):
        headers = auth_headers(usuarios.suprido)
        doc = client.post(
            f"/suprimento/solicitacoes/{solicitacao['id']}/documentos", json={"tipo": "CAPA"}, headers=headers
        ).json()

        response = client.post(f"/suprimento/documentos/{doc['id']}/assinar", json={"pin": "9999"}, headers=headers)
        assert response.status_code == 403

    def test_documento_assinado_nao_edita(self, client, usuarios, auth_headers, solicitacao):
        documento_id = self._assinado(client, usuarios, auth_headers, solicitacao).json()["id"]

        response = client.put(
            f"/suprimento/documentos/{documento_id}", json={"conteudo": "outro"}, headers=auth_headers(usuarios.suprido)
        )
        assert response.status_code == 409


class TestNotificacoesApi:

    def test_notificacao_do_papel_e_marcada_como_lida(self, client, usuarios, auth_headers, solicitacao):
        headers = auth_headers(usuarios.gestor)

        notificacoes = client.get("/suprimento/notificacoes", headers=headers).json()
        assert len(notificacoes) == 1

        lida = client.post(f"/suprimento/notificacoes/{notificacoes[0]['id']}/lida", headers=headers)
        assert lida.status_code == 200
        assert lida.json()["lida"] is True

        pendentes = client.get("/suprimento/notificacoes", params={"apenas_nao_lidas": True}, headers=headers)
        assert pendentes.json() == []

    def test_notificacao_alheia_e_404(self, client, usuarios, auth_headers, solicitacao):
        notificacao = client.get("/suprimento/notificacoes", headers=auth_headers(usuarios.gestor)).json()[0]

        response = client.post(
            f"/suprimento/notificacoes/{notificacao['id']}/lida", headers=auth_headers(usuarios.sefin)
        )
        assert response.status_code == 404


class TestLoteETitularesApi:

    def test_executar_lote(self, client, usuarios, auth_headers, unidade_regular):
        corpo = {"competencia": "2026-2Q", "unidades": [{"unidade_id": unidade_regular.id}]}

        response = client.post("/suprimento/lote/executar", json=corpo, headers=auth_headers(usuarios.sosfu))

        assert response.status_code == 200
        assert response.json()["sucessos"] == 1
        assert Decimal(response.json()["valor_total"]) == Decimal("1000.00")

        repetido = client.post("/suprimento/lote/executar", json=corpo, headers=auth_headers(usuarios.sosfu))
        assert repetido.json()["resultados"][0]["situacao"] == "JA_EXISTENTE"

    def test_lote_restrito_a_sosfu(self, client, usuarios, auth_headers, unidade_regular):
        response = client.post(
            "/suprimento/lote/executar",
            json={"competencia": "2026-2Q", "unidades": [{"unidade_id": unidade_regular.id}]},
            headers=auth_headers(usuarios.gestor),
        )
        assert response.status_code == 403

    def test_competencia_invalida(self, client, usuarios, auth_headers):
        headers = auth_headers(usuarios.sosfu)

        assert client.get("/suprimento/lote/elegiveis", params={"competencia": "2026-05"},
                          headers=headers).status_code == 422
        assert client.post("/suprimento/lote/executar",
                           json={"competencia": "2026-4Q", "unidades": [{"unidade_id": 1}]},
                           headers=headers).status_code == 422

    def test_nomear_titular(self, client, usuarios, auth_headers, comarca):
        response = client.post(
            "/suprimento/titulares/nomear",
            json={"comarca_id": comarca.id, "tipo": "JURI", "servidor_id": usuarios.outro_suprido.id},
            headers=auth_headers(usuarios.sosfu),
        )

        assert response.status_code == 201
        unidade = response.json()["unidade"]
        assert unidade["tipo"] == "JURI"
        assert unidade["status"] == "REGULAR"

        historico = client.get(
            f"/suprimento/titulares/{unidade['id']}/historico", headers=auth_headers(usuarios.gestor)
        )
        assert len(historico.json()) == 1
