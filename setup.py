"""
Setup script para instalação do Portal de Suprimento de Fundos (TJPA).

Este arquivo permite instalar o projeto em modo editable para desenvolvimento:
    pip install -e .[test]

Isso adiciona o projeto ao PYTHONPATH e permite imports como:
    from sistemas.suprimento_fundos.workflow import resolver_transicao
"""

from setuptools import setup, find_namespace_packages

setup(
    name="portal-suprimento-fundos",
    version="1.0.0",
    description="Portal de Suprimento de Fundos - concessão e prestação de contas (TJPA)",
    packages=find_namespace_packages(
        include=["auth*", "database*", "middleware*", "sistemas*", "users*", "utils*"],
        exclude=["tests", "tests.*"],
    ),
    py_modules=["config", "main"],
    package_data={"sistemas.suprimento_fundos": ["templates/*.txt"]},
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn[standard]",
        "sqlalchemy>=2.0",
        "pydantic>=2.0",
        "python-jose[cryptography]",
        "bcrypt",
        "python-dotenv",
        "python-multipart",
        "structlog",
        "pytz",
        "slowapi",
        "jinja2",
        "alembic",
        "psycopg2-binary",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
)
