# tests/test_servidores.py
"""
Testes da importação da base de servidores do RH e da mesclagem em users.
"""

import pytest

from auth.models import User
from sistemas.servidores import services as servidores
from sistemas.servidores.models import ImportacaoServidores, ServidorTJ


CSV_RH = (
    "\ufeffMatrícula;Nome;E-mail;CPF;Vínculo;Cargo;Lotação;Tipo de Estágio\n"
    "1001;Maria Souza;MARIA.SOUZA@tjpa.jus.br;529.982.247-25;Efetivo;Analista Judiciário;Comarca de Ananindeua;\n"
    "1002;Pedro Lima;pedro.lima@tjpa.jus.br;111.111.111-11;Magistrado;Juiz de Direito;Comarca de Belém;\n"
    "1003;Ana Costa;;;Estagiário;;Comarca de Belém;Graduação\n"
    ";Sem Matrícula;x@tjpa.jus.br;;Efetivo;;;\n"
)


class TestParseCsv:

    def test_le_ponto_e_virgula_e_cabecalho_acentuado(self):
        registros = servidores.parse_csv(CSV_RH)

        assert [r["matricula"] for r in registros] == ["1001", "1002", "1003"]
        maria = registros[0]
        assert maria["nome"] == "Maria Souza"
        assert maria["email"] == "maria.souza@tjpa.jus.br"
        assert maria["cpf"] == "52998224725"
        assert maria["lotacao"] == "Comarca de Ananindeua"

    def test_cpf_invalido_vira_none(self):
        registros = servidores.parse_csv(CSV_RH)
        assert registros[1]["cpf"] is None

    def test_categoria_pelo_vinculo(self):
        categorias = [r["categoria"] for r in servidores.parse_csv(CSV_RH)]
        assert categorias == ["SERVIDOR", "MAGISTRADO", "ESTAGIARIO"]

    def test_virgula_como_delimitador(self):
        registros = servidores.parse_csv("matricula,nome\n2001,Carla Dias\n")
        assert registros == [{"matricula": "2001", "nome": "Carla Dias", "cpf": None, "categoria": "SERVIDOR"}]


class TestClassificarCategoria:

    @pytest.mark.parametrize("vinculo, estagio, esperado", [
        ("Efetivo", None, "SERVIDOR"),
        ("MAGISTRADO", None, "MAGISTRADO"),
        ("Estagiária", None, "ESTAGIARIO"),
        ("Efetivo", "Pós-graduação", "ESTAGIARIO"),
        (None, None, "SERVIDOR"),
    ])
    def test_classificacao(self, vinculo, estagio, esperado):
        assert servidores.classificar_categoria(vinculo, estagio) == esperado


class TestImportacao:

    def test_importa_com_versao_e_ignora_sem_nome(self, db):
        registros = servidores.parse_csv(CSV_RH) + [{"matricula": "1004", "nome": None}]

        importacao = servidores.importar_servidores(db, registros, arquivo="rh.csv")

        assert importacao.versao == 1
        assert (importacao.inseridos, importacao.atualizados, importacao.ignorados) == (3, 0, 1)
        assert importacao.erros == [{"matricula": "1004", "erro": "Nome vazio"}]
        assert db.query(ServidorTJ).count() == 3
        assert db.query(ServidorTJ).filter(ServidorTJ.matricula == "1001").one().grau == "1G"

    def test_reimportacao_atualiza_por_matricula(self, db):
        servidores.importar_servidores(db, servidores.parse_csv(CSV_RH))

        segunda = servidores.importar_servidores(
            db, [{"matricula": "1001", "nome": "Maria Souza Reis", "lotacao": "Comarca de Marabá"}]
        )

        assert segunda.versao == 2
        assert (segunda.inseridos, segunda.atualizados) == (0, 1)
        maria = db.query(ServidorTJ).filter(ServidorTJ.matricula == "1001").one()
        assert maria.nome == "Maria Souza Reis"
        assert maria.importacao_id == segunda.id
        assert db.query(ServidorTJ).count() == 3

    def test_matricula_repetida_vale_a_ultima_linha(self, db):
        importacao = servidores.importar_servidores(db, [
            {"matricula": "3001", "nome": "Primeira"},
            {"matricula": "3001", "nome": "Segunda"},
        ])

        assert importacao.inseridos == 1
        assert db.query(ServidorTJ).one().nome == "Segunda"

    def test_listar_e_obter(self, db):
        primeira = servidores.importar_servidores(db, [{"matricula": "1", "nome": "A"}])
        segunda = servidores.importar_servidores(db, [{"matricula": "2", "nome": "B"}])

        assert [i.id for i in servidores.listar_importacoes(db)] == [segunda.id, primeira.id]
        assert servidores.obter_importacao(db, primeira.id).versao == 1
        with pytest.raises(servidores.ImportacaoNaoEncontradaError):
            servidores.obter_importacao(db, 999)


class TestMesclagem:

    def test_cria_usuarios_com_troca_de_senha(self, db):
        importacao = servidores.importar_servidores(db, servidores.parse_csv(CSV_RH))

        resultado = servidores.mesclar_em_usuarios(db, importacao.id)

        assert resultado.status == servidores.STATUS_MESCLADA
        assert (resultado.mesclados_criados, resultado.mesclados_atualizados, resultado.conflitos) == (3, 0, 0)
        maria = db.query(User).filter(User.matricula == "1001").one()
        assert maria.username == "1001"
        assert maria.papel == "SUPRIDO"
        assert maria.must_change_password
        assert maria.categoria == "SERVIDOR"
        assert maria.origem_importacao_id == importacao.id

    def test_mesclagem_e_idempotente(self, db):
        importacao = servidores.importar_servidores(db, servidores.parse_csv(CSV_RH))
        servidores.mesclar_em_usuarios(db, importacao.id)

        repetida = servidores.mesclar_em_usuarios(db, importacao.id)

        assert (repetida.mesclados_criados, repetida.mesclados_atualizados) == (0, 3)
        assert db.query(User).count() == 3

    def test_casa_usuario_existente_por_email(self, db, novo_usuario):
        existente = novo_usuario("msouza", email="maria.souza@tjpa.jus.br", papel="GESTOR")
        importacao = servidores.importar_servidores(db, servidores.parse_csv(CSV_RH))

        servidores.mesclar_em_usuarios(db, importacao.id, criar_usuarios=False)

        db.refresh(existente)
        assert existente.matricula == "1001"
        assert existente.papel == "GESTOR"
        assert existente.cpf == "52998224725"
        assert db.query(User).count() == 1

    def test_email_de_outra_matricula_e_conflito(self, db, novo_usuario):
        outro = novo_usuario("psilva", email="pedro.lima@tjpa.jus.br", matricula="9999")
        importacao = servidores.importar_servidores(db, servidores.parse_csv(CSV_RH))

        resultado = servidores.mesclar_em_usuarios(db, importacao.id)

        assert resultado.conflitos == 1
        assert resultado.mesclados_criados == 2
        assert {"matricula": "1002", "erro": "E-mail pedro.lima@tjpa.jus.br pertence à matrícula 9999"} in resultado.erros
        db.refresh(outro)
        assert outro.matricula == "9999"
        assert outro.full_name == "Psilva"

    def test_sem_criar_usuarios(self, db):
        importacao = servidores.importar_servidores(db, servidores.parse_csv(CSV_RH))

        resultado = servidores.mesclar_em_usuarios(db, importacao.id, criar_usuarios=False)

        assert resultado.mesclados_criados == 0
        assert db.query(User).count() == 0
        assert db.query(ImportacaoServidores).one().status == servidores.STATUS_MESCLADA
