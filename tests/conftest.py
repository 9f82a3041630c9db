# tests/conftest.py
"""
Configuração global do pytest para o Portal de Suprimento de Fundos.

Fornece um banco SQLite em memória por teste e um elenco de usuários, um por
papel do fluxo.
"""

import sys
import os
from types import SimpleNamespace

# Adiciona o diretório raiz do projeto ao PYTHONPATH
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# Configura variáveis de ambiente para testes
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")


import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.connection import Base
from auth.models import User
from auth.security import hash_signature_pin
from sistemas.suprimento_fundos.models import Comarca, UnidadeTitular
from sistemas.servidores import models as _servidores_models  # noqa: F401

PIN_TESTE = "1234"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    yield session
    session.close()


def criar_usuario(db, username, papel="SUPRIDO", role="user", pin=PIN_TESTE, **extras):
    user = User(
        username=username,
        full_name=extras.pop("full_name", username.replace("_", " ").title()),
        hashed_password="x",
        role=role,
        papel=papel,
        is_active=True,
        must_change_password=False,
        signature_pin_hash=hash_signature_pin(pin) if pin else None,
        **extras,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def usuarios(db):
    """Um usuário por papel, todos com PIN 1234."""
    return SimpleNamespace(
        suprido=criar_usuario(db, "maria_suprida", lotacao="Comarca de Ananindeua"),
        outro_suprido=criar_usuario(db, "joao_suprido"),
        gestor=criar_usuario(db, "ana_gestora", papel="GESTOR"),
        sosfu=criar_usuario(db, "carlos_sosfu", papel="SOSFU"),
        ajsefin=criar_usuario(db, "paula_ajsefin", papel="AJSEFIN"),
        sefin=criar_usuario(db, "rui_sefin", papel="SEFIN"),
        admin=criar_usuario(db, "admin", papel="SOSFU", role="admin"),
    )


@pytest.fixture
def comarca(db):
    comarca = Comarca(codigo="ANA", nome="Ananindeua", ativo=True)
    db.add(comarca)
    db.commit()
    db.refresh(comarca)
    return comarca


@pytest.fixture
def unidade_regular(db, comarca, usuarios):
    """Unidade ordinária com titular regular e teto anual de R$ 3.000,00."""
    unidade = UnidadeTitular(
        comarca_id=comarca.id,
        tipo="ORDINARIO",
        suprido_atual_id=usuarios.suprido.id,
        portaria_numero="001/2026",
        status="REGULAR",
        teto_anual=3000,
        ptres="8193",
    )
    db.add(unidade)
    db.commit()
    db.refresh(unidade)
    return unidade


@pytest.fixture
def novo_usuario(db):
    """Fábrica para usuários adicionais: novo_usuario("nome", papel="GESTOR")."""
    def _criar(username, **kwargs):
        return criar_usuario(db, username, **kwargs)
    return _criar


# ==================================================
# API (TestClient sem lifespan: o banco é o do fixture)
# ==================================================


@pytest.fixture
def client(engine):
    from fastapi.testclient import TestClient
    from database.connection import get_db
    from main import app

    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def _get_db():
        session = Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Cabeçalho Authorization com JWT válido: auth_headers(usuario)."""
    from auth.security import create_access_token

    def _headers(user):
        token = create_access_token({"sub": user.username, "user_id": user.id, "papel": user.papel})
        return {"Authorization": f"Bearer {token}"}
    return _headers
