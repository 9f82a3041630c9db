# migrations/env.py
"""
Configuracao do ambiente Alembic para migrations.

Este arquivo importa todos os modelos do projeto para que
o autogenerate funcione corretamente.
"""

import os
import sys
from logging.config import fileConfig

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

# Adiciona o diretorio raiz ao path para imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Carrega variaveis de ambiente do .env
from dotenv import load_dotenv
load_dotenv()

# Importa a configuracao do banco de dados
from config import DATABASE_URL

# Importa o Base e todos os models
from database.connection import Base

# ==================================================
# IMPORTA TODOS OS MODELS PARA AUTOGENERATE
# ==================================================
# IMPORTANTE: Adicionar aqui todos os modelos do projeto
# para que o Alembic possa detectar mudancas automaticamente.

from auth.models import User  # noqa: F401
from sistemas.suprimento_fundos.models import (  # noqa: F401
    Comarca, UnidadeTitular, HistoricoTitular, Solicitacao, ItemDespesa,
    HistoricoTramitacao, Documento, Notificacao, SequenciaDocumental, LoteConcessao,
)
from sistemas.servidores.models import ServidorTJ, ImportacaoServidores  # noqa: F401

# ==================================================
# CONFIGURACAO DO ALEMBIC
# ==================================================

# Objeto de configuracao do Alembic (do alembic.ini)
config = context.config

# Configura logging do arquivo ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Metadata dos models para autogenerate
target_metadata = Base.metadata

# Substitui sqlalchemy.url com a URL do .env
config.set_main_option("sqlalchemy.url", DATABASE_URL)


def run_migrations_offline() -> None:
    """
    Executa migrations em modo 'offline' (gera SQL puro).

    Uso: alembic upgrade head --sql
    """
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Executa migrations em modo 'online'.

    Uso: alembic upgrade head
    """
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite não suporta ALTER de constraints
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
