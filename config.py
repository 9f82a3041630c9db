# config.py
# -*- coding: utf-8 -*-
"""
Configurações centralizadas do Portal de Suprimento de Fundos (TJPA)
"""

import os
import warnings
from decimal import Decimal
from pathlib import Path
from dotenv import load_dotenv

# Carrega variáveis de ambiente (apenas se existir .env)
load_dotenv()

# ==================================================
# AMBIENTE
# ==================================================
ENV = os.getenv("ENV", "development")
IS_PRODUCTION = ENV == "production"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if IS_PRODUCTION else "DEBUG")

# ==================================================
# CONFIGURAÇÕES DO BANCO DE DADOS
# ==================================================
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./suprimento.db")

# Provedores gerenciados usam postgres:// mas SQLAlchemy precisa de postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# ==================================================
# CONFIGURAÇÕES DE AUTENTICAÇÃO JWT
# ==================================================
# ATENÇÃO: a mesma chave assina os JWT e as assinaturas de documentos
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    warnings.warn("SECRET_KEY não definida! Usando chave temporária. DEFINA EM PRODUÇÃO!", RuntimeWarning)
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"

ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))  # 8 horas

# Credenciais do admin inicial
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
if not ADMIN_PASSWORD:
    warnings.warn("ADMIN_PASSWORD não definida! Usando senha padrão insegura.", RuntimeWarning)
    ADMIN_PASSWORD = "admin"

DEFAULT_USER_PASSWORD = os.getenv("DEFAULT_USER_PASSWORD", "mudar123")  # Usuários criados pela importação de RH

# ==================================================
# REGRAS DE SUPRIMENTO DE FUNDOS (Res. CNJ 169/2013)
# ==================================================
LIMITE_ORDINARIO = Decimal(os.getenv("LIMITE_ORDINARIO", "15000.00"))
PRAZO_APLICACAO_ORDINARIO_DIAS = int(os.getenv("PRAZO_APLICACAO_ORDINARIO_DIAS", "90"))
PRAZO_APLICACAO_EXTRAORDINARIO_DIAS = int(os.getenv("PRAZO_APLICACAO_EXTRAORDINARIO_DIAS", "30"))
PRAZO_PRESTACAO_DIAS = int(os.getenv("PRAZO_PRESTACAO_DIAS", "30"))

# Valores padrão do lote ordinário quando a unidade não tem teto próprio
VALOR_CUSTEIO_PADRAO = Decimal(os.getenv("VALOR_CUSTEIO_PADRAO", "500.00"))
PTRES_PADRAO = os.getenv("PTRES_PADRAO", "8193")

# ==================================================
# IMPORTAÇÃO DE SERVIDORES (RH)
# ==================================================
IMPORTACAO_BATCH_SIZE = int(os.getenv("IMPORTACAO_BATCH_SIZE", "200"))

# ==================================================
# ARQUIVOS
# ==================================================
BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DOCUMENTOS_DIR = BASE_DIR / "sistemas" / "suprimento_fundos" / "templates"
