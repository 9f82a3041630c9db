"""
scripts/import_servidores.py

Importa as planilhas CSV do RH para `servidores_tj` e, opcionalmente, mescla
o resultado na tabela `users`.

Uso:
    python scripts/import_servidores.py --csv bases/servidores.csv --csv bases/magistrados.csv
    python scripts/import_servidores.py --csv bases/servidores.csv --merge
    python scripts/import_servidores.py --csv bases/servidores.csv --dry-run
"""

import argparse
import os
import sys
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database.connection import SessionLocal  # noqa: E402
from database.init_db import create_tables  # noqa: E402
from sistemas.servidores.services import (  # noqa: E402
    importar_servidores, mesclar_em_usuarios, parse_csv,
)


def ler_registros(caminhos):
    registros = []
    for caminho in caminhos:
        texto = Path(caminho).read_text(encoding="utf-8-sig")
        lidos = parse_csv(texto)
        print(f"{caminho}: {len(lidos)} registros")
        registros.extend(lidos)
    return registros


def main(argv=None):
    parser = argparse.ArgumentParser(description="Importa a base de servidores do RH")
    parser.add_argument("--csv", action="append", required=True, help="Arquivo CSV (pode repetir)")
    parser.add_argument("--merge", action="store_true", help="Mescla a importação na tabela users")
    parser.add_argument("--sem-criar", action="store_true", help="Na mesclagem, só atualiza usuários existentes")
    parser.add_argument("--dry-run", action="store_true", help="Apenas lê os arquivos e mostra os totais")
    parser.add_argument("--executado-por", type=int, help="ID do usuário responsável pela carga")
    args = parser.parse_args(argv)

    registros = ler_registros(args.csv)
    print(f"Total: {len(registros)} registros")

    if args.dry_run:
        categorias = {}
        for r in registros:
            categorias[r["categoria"]] = categorias.get(r["categoria"], 0) + 1
        for categoria, total in sorted(categorias.items()):
            print(f"  {categoria}: {total}")
        return 0

    create_tables()
    db = SessionLocal()
    try:
        importacao = importar_servidores(
            db, registros,
            arquivo=", ".join(os.path.basename(c) for c in args.csv),
            executado_por=args.executado_por,
        )
        print(
            f"Importação v{importacao.versao}: {importacao.inseridos} inseridos, "
            f"{importacao.atualizados} atualizados, {importacao.ignorados} ignorados"
        )

        if args.merge:
            importacao = mesclar_em_usuarios(
                db, importacao.id,
                criar_usuarios=not args.sem_criar,
                executado_por=args.executado_por,
            )
            print(
                f"Mesclagem: {importacao.mesclados_criados} usuários criados, "
                f"{importacao.mesclados_atualizados} atualizados, {importacao.conflitos} conflitos"
            )
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
