"""
Script para executar as migrações Alembic do banco de dados

Uso:
    python scripts/run_migration.py            # upgrade head
    python scripts/run_migration.py --sql      # apenas imprime o SQL
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402

RAIZ = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


if __name__ == "__main__":
    config = Config(os.path.join(RAIZ, "alembic.ini"))
    config.set_main_option("script_location", os.path.join(RAIZ, "migrations"))
    print("Executando migracoes do banco de dados...")
    command.upgrade(config, "head", sql="--sql" in sys.argv)
    print("Migracoes executadas com sucesso!")
