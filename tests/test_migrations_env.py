"""Tests for migrations: DSN-to-URL conversion and schema contracts."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Make migrations.env_helpers importable without alembic context
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from migrations.env_helpers import _get_database_url, _libpq_dsn_to_url  # noqa: E402

_VERSIONS = Path(__file__).resolve().parent.parent / "migrations" / "versions"


class TestLibpqDsnToUrl:
    def test_unix_socket(self):
        dsn = "dbname=tripdesk user=app password=s3cret host=/var/run/postgresql"
        result = _libpq_dsn_to_url(dsn)
        assert result == (
            "postgresql+psycopg2://app:s3cret@/tripdesk?host=%2Fvar%2Frun%2Fpostgresql"
        )

    def test_tcp_host(self):
        dsn = "dbname=tripdesk user=admin password=pw host=localhost port=5432"
        assert _libpq_dsn_to_url(dsn) == "postgresql+psycopg2://admin:pw@localhost:5432/tripdesk"

    def test_default_port(self):
        dsn = "dbname=db user=u password=p host=myhost"
        assert _libpq_dsn_to_url(dsn) == "postgresql+psycopg2://u:p@myhost:5432/db"

    def test_special_chars_encoded(self):
        dsn = "dbname=db user=u@domain password=p@ss=word host=h port=5432"
        result = _libpq_dsn_to_url(dsn)
        assert "u%40domain" in result
        assert "p%40ss%3Dword" in result

    def test_quoted_password_with_spaces(self):
        dsn = "dbname=db user=u password='p@ss w0rd' host=h port=5432"
        assert "p%40ss+w0rd" in _libpq_dsn_to_url(dsn)

    def test_db_password_env_fallback(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "from-env")
        result = _libpq_dsn_to_url("dbname=db user=u host=h port=5432")
        assert "from-env" in result

    def test_db_password_env_not_used_when_dsn_has_password(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "from-env")
        result = _libpq_dsn_to_url("dbname=db user=u password=from-dsn host=h port=5432")
        assert "from-dsn" in result
        assert "from-env" not in result


class TestGetDatabaseUrl:
    def test_driver_url_passthrough(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql+psycopg2://u:p@h/db"}, clear=True):
            assert _get_database_url() == "postgresql+psycopg2://u:p@h/db"

    def test_postgres_scheme_rewritten(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgres://u:p@h:5432/db"}, clear=True):
            assert _get_database_url() == "postgresql+psycopg2://u:p@h:5432/db"

    def test_postgresql_scheme_rewritten(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql://u:p@h/db"}, clear=True):
            assert _get_database_url() == "postgresql+psycopg2://u:p@h/db"

    def test_password_injected_into_url(self):
        env = {"DATABASE_URL": "postgresql://u@h:5432/db", "DB_PASSWORD": "pw"}
        with patch.dict(os.environ, env, clear=True):
            assert _get_database_url() == "postgresql+psycopg2://u:pw@h:5432/db"

    def test_dsn_converted(self):
        dsn = "dbname=tripdesk user=sa password=pw host=/var/run/postgresql"
        with patch.dict(os.environ, {"DATABASE_URL": dsn}, clear=True):
            assert _get_database_url().startswith("postgresql+psycopg2://")

    def test_missing_url_raises(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                _get_database_url()


class TestBookingSchema:
    """Contract tests over the migration SQL."""

    @pytest.fixture(scope="class")
    def initial_sql(self) -> str:
        return (_VERSIONS / "001_initial_schema.py").read_text()

    @pytest.fixture(scope="class")
    def overlap_sql(self) -> str:
        return (_VERSIONS / "002_booking_overlap_constraint.py").read_text()

    def test_single_owner_check(self, initial_sql: str):
        assert "bookings_single_owner" in initial_sql

    def test_status_values(self, initial_sql: str):
        assert "'pending', 'confirmed', 'completed', 'cancelled'" in initial_sql
        assert "'pending', 'paid', 'failed'" in initial_sql

    def test_dates_ordered(self, initial_sql: str):
        assert "CHECK (start_date < end_date)" in initial_sql

    def test_btree_gist_enabled(self, overlap_sql: str):
        assert "CREATE EXTENSION IF NOT EXISTS btree_gist" in overlap_sql

    def test_exclusion_is_half_open(self, overlap_sql: str):
        assert "EXCLUDE USING GIST" in overlap_sql
        assert "daterange(start_date, end_date, '[)') WITH &&" in overlap_sql

    def test_exclusion_only_blocking_statuses(self, overlap_sql: str):
        assert "WHERE (status IN ('pending', 'confirmed'))" in overlap_sql

    def test_revision_chain(self, overlap_sql: str):
        assert 'down_revision = "001_initial_schema"' in overlap_sql
