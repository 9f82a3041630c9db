# database/init_db.py
"""
Inicialização do banco de dados e seed do usuário admin
"""

import time
from sqlalchemy.exc import OperationalError
from sqlalchemy import text, inspect
from database.connection import engine, Base, SessionLocal
from auth.models import User
from auth.security import get_password_hash
from config import ADMIN_USERNAME, ADMIN_PASSWORD
from utils.logging_config import get_logger

# Importa modelos para criar tabelas
from sistemas.suprimento_fundos.models import (  # noqa: F401
    Comarca, UnidadeTitular, HistoricoTitular, Solicitacao, ItemDespesa,
    HistoricoTramitacao, Documento, Notificacao, SequenciaDocumental, LoteConcessao,
)
from sistemas.servidores.models import ServidorTJ, ImportacaoServidores  # noqa: F401

logger = get_logger(__name__)

# Colunas acrescentadas a `users` depois da criação da tabela (bases legadas)
COLUNAS_USERS = {
    "papel": "VARCHAR(20) NOT NULL DEFAULT 'SUPRIDO'",
    "matricula": "VARCHAR(20)",
    "cpf": "VARCHAR(11)",
    "cargo": "VARCHAR(200)",
    "lotacao": "VARCHAR(200)",
    "categoria": "VARCHAR(20)",
    "signature_pin_hash": "VARCHAR(255)",
    "signature_pin_updated_at": "TIMESTAMP",
    "origem_importacao_id": "INTEGER",
}


def wait_for_db(max_retries=10, delay=3):
    """Aguarda o banco de dados ficar disponível"""
    for attempt in range(max_retries):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Conexão com banco de dados estabelecida")
            return True
        except OperationalError:
            if attempt < max_retries - 1:
                logger.warning(f"Aguardando banco de dados... tentativa {attempt + 1}/{max_retries}")
                time.sleep(delay)
            else:
                logger.error(f"Não foi possível conectar ao banco após {max_retries} tentativas")
                raise
    return False


def create_tables():
    """Cria todas as tabelas no banco de dados"""
    Base.metadata.create_all(bind=engine)
    logger.info("Tabelas criadas/verificadas")


def run_migrations():
    """Acrescenta em `users` as colunas do fluxo de suprimento quando faltarem"""
    inspector = inspect(engine)
    if "users" not in inspector.get_table_names():
        return

    existentes = {col["name"] for col in inspector.get_columns("users")}
    faltantes = [(nome, ddl) for nome, ddl in COLUNAS_USERS.items() if nome not in existentes]
    if not faltantes:
        return

    with engine.begin() as conn:
        for nome, ddl in faltantes:
            conn.execute(text(f"ALTER TABLE users ADD COLUMN {nome} {ddl}"))
            logger.info(f"Migração: coluna {nome} adicionada em users")


def seed_admin():
    """Cria o usuário administrador inicial se não existir"""
    db = SessionLocal()
    try:
        existing_admin = db.query(User).filter(User.username == ADMIN_USERNAME).first()

        if not existing_admin:
            admin = User(
                username=ADMIN_USERNAME,
                full_name="Administrador",
                email=None,
                hashed_password=get_password_hash(ADMIN_PASSWORD),
                role="admin",
                papel="SOSFU",
                must_change_password=True,
                is_active=True
            )
            db.add(admin)
            db.commit()
            logger.info(f"Usuário admin '{ADMIN_USERNAME}' criado; altere a senha no primeiro acesso")
        else:
            logger.info(f"Usuário admin '{ADMIN_USERNAME}' já existe")
    finally:
        db.close()


def init_database():
    """Inicializa o banco de dados completo"""
    logger.info("Inicializando banco de dados...")
    wait_for_db()
    create_tables()
    run_migrations()
    seed_admin()
    logger.info("Banco de dados inicializado")


if __name__ == "__main__":
    init_database()
