#!/usr/bin/env python
"""
Testes para validar a política de timezone do sistema.

Política:
- Backend grava em UTC (timezone-aware)
- Documentos e prazos usam America/Belem (UTC-3)

Uso:
    pytest tests/test_timezone.py -v
"""

import pytest
from datetime import date, datetime, timezone


class TestTimezoneModule:
    """Testes do módulo utils/timezone.py"""

    def test_now_utc_returns_timezone_aware(self):
        """now_utc() deve retornar datetime com timezone UTC."""
        from utils.timezone import now_utc

        result = now_utc()

        assert result.tzinfo is not None, "Deve ser timezone-aware"
        assert result.tzinfo == timezone.utc, "Deve ser UTC"

    def test_now_local_returns_timezone_aware(self):
        from utils.timezone import now_local, TIMEZONE_LOCAL_NAME

        result = now_local()

        assert result.tzinfo is not None, "Deve ser timezone-aware"
        # pytz timezones têm representações diferentes, comparamos pelo nome
        assert TIMEZONE_LOCAL_NAME in str(result.tzinfo), "Deve ser timezone local"

    def test_to_local_converts_utc_to_local(self):
        """to_local() deve converter UTC para America/Belem (UTC-3)."""
        from utils.timezone import to_local, now_utc

        local_time = to_local(now_utc())

        diff_hours = (local_time.utcoffset().total_seconds() / 3600)
        assert diff_hours == -3, f"Offset deve ser -3h, mas é {diff_hours}h"

    def test_to_local_handles_naive_datetime(self):
        """to_local() deve tratar datetime naive como UTC (SQLite)."""
        from utils.timezone import to_local

        naive = datetime(2026, 1, 20, 18, 30, 0)
        local = to_local(naive)

        assert local.tzinfo is not None
        assert local.hour == 15, f"Hora deve ser 15, mas é {local.hour}"

    def test_to_local_handles_none(self):
        from utils.timezone import to_local

        assert to_local(None) is None

    def test_to_utc_assume_local_para_naive(self):
        from utils.timezone import to_utc

        resultado = to_utc(datetime(2026, 3, 1, 9, 0, 0))

        assert resultado.hour == 12
        assert resultado.tzinfo == timezone.utc

    def test_format_local_formats_correctly(self):
        from utils.timezone import format_local

        utc_time = datetime(2026, 1, 20, 18, 30, 0, tzinfo=timezone.utc)
        formatted = format_local(utc_time)

        assert formatted == "20/01/2026 15:30:00"

    def test_format_local_none(self):
        from utils.timezone import format_local

        assert format_local(None) == "-"

    def test_format_iso_utc_ignora_microssegundos(self):
        """Aware e naive (mesmo instante UTC) geram a mesma string."""
        from utils.timezone import format_iso_utc

        aware = datetime(2026, 5, 4, 13, 0, 5, 999, tzinfo=timezone.utc)
        naive = datetime(2026, 5, 4, 13, 0, 5)

        assert format_iso_utc(aware) == "2026-05-04T13:00:05+00:00"
        assert format_iso_utc(naive) == format_iso_utc(aware)
        assert format_iso_utc(None) is None

    def test_hoje_local_e_date(self):
        from utils.timezone import hoje_local

        assert isinstance(hoje_local(), date)

    def test_get_utc_now_for_sqlalchemy(self):
        from utils.timezone import get_utc_now

        result = get_utc_now()

        assert result.tzinfo == timezone.utc, "Deve ser UTC"


class TestTimezoneConstants:

    def test_timezone_local_name(self):
        from utils.timezone import TIMEZONE_LOCAL_NAME

        assert TIMEZONE_LOCAL_NAME == "America/Belem"

    def test_timezone_offset(self):
        from utils.timezone import TIMEZONE_OFFSET_HOURS

        assert TIMEZONE_OFFSET_HOURS == -3


class TestModelsUseCorrectTimezone:
    """Os models usam get_utc_now como default."""

    def test_user_model_uses_get_utc_now(self):
        from auth.models import User

        created_at_col = User.__table__.columns['created_at']
        assert created_at_col.default is not None, "created_at deve ter default"

    def test_historico_tramitacao_tem_data_default(self):
        from sistemas.suprimento_fundos.models import HistoricoTramitacao

        col = HistoricoTramitacao.__table__.columns['data_tramitacao']
        assert col.default is not None
        assert col.nullable is False


class TestJWTTimezone:

    def test_create_access_token_uses_utc(self):
        """create_access_token deve usar UTC para expiração."""
        from auth.security import create_access_token
        from jose import jwt
        from config import SECRET_KEY, ALGORITHM

        token = create_access_token({"sub": "testuser"})
        decoded = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])

        assert decoded.get("exp") is not None, "Token deve ter exp"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
