# tests/test_rate_limit.py
# -*- coding: utf-8 -*-
"""
Testes para o módulo de Rate Limiting (utils/rate_limit.py)

Testa:
- Detecção de IP real atrás de proxies
- Identificação de usuário pelo token (limite do PIN é por usuário)
- Handler de limite excedido
"""

import json
import asyncio
from unittest.mock import Mock, patch

import pytest
from fastapi import Request

from auth.security import create_access_token
from utils.rate_limit import (
    get_real_ip,
    get_user_identifier,
    rate_limit_exceeded_handler,
    LIMITS,
)


# ==================================================
# FIXTURES
# ==================================================


def _request(headers=None):
    request = Mock(spec=Request)
    request.headers = headers or {}
    request.url.path = "/suprimento/documentos/1/assinar"
    return request


@pytest.fixture
def mock_request():
    return _request()


# ==================================================
# TESTES: get_real_ip
# ==================================================


class TestGetRealIP:

    def test_get_real_ip_from_x_forwarded_for(self):
        """Deve extrair IP do header X-Forwarded-For (primeiro da lista)."""
        request = _request({"X-Forwarded-For": "  192.168.1.100  , 10.0.0.1"})
        with patch('utils.rate_limit.get_remote_address', return_value='127.0.0.1'):
            assert get_real_ip(request) == "192.168.1.100"

    def test_get_real_ip_from_x_real_ip(self):
        request = _request({"X-Real-IP": "203.0.113.42"})
        with patch('utils.rate_limit.get_remote_address', return_value='127.0.0.1'):
            assert get_real_ip(request) == "203.0.113.42"

    def test_get_real_ip_fallback_direct(self, mock_request):
        with patch('utils.rate_limit.get_remote_address', return_value='127.0.0.1'):
            assert get_real_ip(mock_request) == "127.0.0.1"

    def test_forwarded_for_vazio_usa_conexao(self):
        request = _request({"X-Forwarded-For": ""})
        with patch('utils.rate_limit.get_remote_address', return_value='127.0.0.1'):
            assert get_real_ip(request) == "127.0.0.1"


# ==================================================
# TESTES: get_user_identifier
# ==================================================


class TestGetUserIdentifier:

    def test_sem_token_usa_ip(self, mock_request):
        with patch('utils.rate_limit.get_real_ip', return_value='192.168.1.100'):
            assert get_user_identifier(mock_request) == "ip:192.168.1.100"

    def test_token_valido_usa_user_id(self):
        token = create_access_token({"sub": "maria", "user_id": 42})
        request = _request({"Authorization": f"Bearer {token}"})

        assert get_user_identifier(request) == "user:42"

    def test_token_invalido_usa_ip(self):
        request = _request({"Authorization": "Bearer nao-e-um-jwt"})
        with patch('utils.rate_limit.get_real_ip', return_value='10.1.1.1'):
            assert get_user_identifier(request) == "ip:10.1.1.1"

    def test_token_sem_user_id_usa_ip(self):
        request = _request({"Authorization": "Bearer x"})
        with patch('utils.rate_limit.get_real_ip', return_value='10.1.1.1'):
            with patch('auth.security.decode_token', return_value={"sub": "maria"}):
                assert get_user_identifier(request) == "ip:10.1.1.1"


# ==================================================
# TESTES: rate_limit_exceeded_handler
# ==================================================


class TestRateLimitExceededHandler:

    def test_handler_retorna_429_em_portugues(self, mock_request):
        exc = Exception("5 per 1 minute")
        exc.detail = "5 per 1 minute"

        with patch('utils.rate_limit.get_remote_address', return_value='127.0.0.1'):
            response = asyncio.run(rate_limit_exceeded_handler(mock_request, exc))

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        body = json.loads(response.body.decode())
        assert body["error"] == "rate_limit_exceeded"
        assert "Limite de requisições" in body["detail"]

    def test_handler_com_excecao_sem_detail(self, mock_request):
        with patch('utils.rate_limit.get_remote_address', return_value='127.0.0.1'):
            response = asyncio.run(rate_limit_exceeded_handler(mock_request, Exception("falha")))

        assert response.status_code == 429


class TestLimits:

    def test_limits_dict_has_all_keys(self):
        for key in ("default", "login", "pin", "lote"):
            assert LIMITS[key]
