"""Tests for database connection."""

import pytest
from sqlalchemy import text

from scopedb.core.connection import DatabaseConnection, _normalize_url
from scopedb.exceptions import ConnectionError, PersistenceError


class TestNormalizeUrl:
    def test_postgresql_uses_psycopg(self):
        url = _normalize_url("postgresql://u:p@localhost/db")
        assert url == "postgresql+psycopg://u:p@localhost/db"

    def test_mysql_uses_pymysql(self):
        assert _normalize_url("mysql://u:p@localhost/db") == "mysql+pymysql://u:p@localhost/db"

    def test_explicit_driver_kept(self):
        url = "postgresql+psycopg2://localhost/db"
        assert _normalize_url(url) == url
        assert _normalize_url("sqlite:///:memory:") == "sqlite:///:memory:"


class TestDatabaseConnection:
    """Tests for DatabaseConnection class."""

    def test_sqlite_memory(self):
        conn = DatabaseConnection("sqlite:///:memory:")
        assert conn.test_connection() is True
        assert conn.dialect == "sqlite"
        conn.close()

    def test_engine_created_lazily(self):
        """Engine is not created until accessed."""
        conn = DatabaseConnection("sqlite:///:memory:")
        assert conn._engine is None
        _ = conn.engine
        assert conn._engine is not None
        conn.close()
        assert conn._engine is None

    def test_begin_commits(self, tmp_path):
        conn = DatabaseConnection(f"sqlite:///{tmp_path / 'commit.db'}")
        with conn.begin() as c:
            c.execute(text("CREATE TABLE t (x INTEGER)"))
            c.execute(text("INSERT INTO t VALUES (1)"))
        with conn.begin() as c:
            assert c.execute(text("SELECT COUNT(*) FROM t")).scalar() == 1
        conn.close()

    def test_begin_rolls_back(self, tmp_path):
        conn = DatabaseConnection(f"sqlite:///{tmp_path / 'rollback.db'}")
        with conn.begin() as c:
            c.execute(text("CREATE TABLE t (x INTEGER)"))
        with pytest.raises(RuntimeError):
            with conn.begin() as c:
                c.execute(text("INSERT INTO t VALUES (1)"))
                raise RuntimeError("boom")
        with conn.begin() as c:
            assert c.execute(text("SELECT COUNT(*) FROM t")).scalar() == 0
        conn.close()

    def test_context_manager(self):
        with DatabaseConnection("sqlite:///:memory:") as conn:
            assert conn.test_connection() is True
        assert conn._engine is None

    def test_invalid_url(self):
        conn = DatabaseConnection("not-a-url")
        with pytest.raises(ConnectionError):
            _ = conn.engine

    def test_connection_error_is_persistence_error(self):
        assert issubclass(ConnectionError, PersistenceError)

    def test_postgresql_connection(self, postgresql_url: str):
        """Can connect to PostgreSQL."""
        conn = DatabaseConnection(postgresql_url)
        assert conn.test_connection() is True
        assert conn.dialect == "postgresql"
        conn.close()
