"""Shared test fixtures for scopedb."""

import os
from collections.abc import Generator
from typing import Any

import pytest

from scopedb import PersistenceEngine, SchemaRegistry, Settings

DEFAULT_LANG = 1
SECOND_LANG = 2
DEFAULT_SHOP = 1
SECOND_SHOP = 2

# Global quantity, per-language name (language rows keyed by shop too) and
# per-shop enabled flag.
TESTABLE_OBJECT: dict[str, Any] = {
    "name": "TestableObject",
    "table": "testable_object",
    "primary": "id_testable_object",
    "multilang": True,
    "multishop": True,
    "multilang_shop": True,
    "fields": [
        {"name": "quantity", "type": "int", "validate": "unsigned_float"},
        {
            "name": "name",
            "type": "string",
            "lang": True,
            "validate": "catalog_name",
            "required": False,
            "size": 128,
        },
        {"name": "enabled", "type": "bool", "shop": True, "validate": "bool"},
    ],
}

# Language rows without a shop key, no shop table.
ARTICLE: dict[str, Any] = {
    "name": "Article",
    "table": "article",
    "multilang": True,
    "fields": [
        {"name": "position", "type": "int", "validate": "unsigned_int", "default": 0},
        {"name": "title", "type": "string", "lang": True, "required": True, "size": 64},
        {"name": "body", "type": "html", "lang": True, "validate": "clean_html"},
    ],
}

# Shop-only entity.
STORE_PRICE: dict[str, Any] = {
    "name": "StorePrice",
    "table": "store_price",
    "multishop": True,
    "fields": [
        {"name": "reference", "type": "string", "size": 32, "required": True},
        {"name": "price", "type": "decimal", "shop": True, "validate": "price"},
    ],
}


# Per-language-and-shop title next to a per-language status, both in the
# shop-keyed language table.
SHOP_PAGE: dict[str, Any] = {
    "name": "ShopPage",
    "table": "shop_page",
    "multilang": True,
    "multishop": True,
    "multilang_shop": True,
    "fields": [
        {"name": "slug", "type": "string", "size": 64},
        {"name": "title", "type": "string", "lang": True, "shop": True, "size": 128},
        {"name": "status", "type": "string", "lang": True, "default": "draft"},
        {"name": "visible", "type": "bool", "shop": True, "validate": "bool", "default": True},
    ],
}


def _psycopg_available() -> bool:
    """Check if psycopg is installed."""
    try:
        import psycopg  # noqa: F401

        return True
    except ImportError:
        return False


def _postgresql_connectable(url: str) -> bool:
    """Check if we can connect to PostgreSQL."""
    if not _psycopg_available():
        return False
    try:
        from scopedb.core.connection import DatabaseConnection

        conn = DatabaseConnection(url)
        result = conn.test_connection()
        conn.close()
        return result
    except Exception:
        return False


def make_registry(*specs: dict[str, Any]) -> SchemaRegistry:
    registry = SchemaRegistry()
    for spec in specs or (TESTABLE_OBJECT, ARTICLE, STORE_PRICE, SHOP_PAGE):
        registry.register(spec)
    return registry


def make_settings(url: str = "sqlite:///:memory:") -> Settings:
    return Settings(
        database_url=url,
        default_language_id=DEFAULT_LANG,
        default_shop_id=DEFAULT_SHOP,
    )


@pytest.fixture
def registry() -> SchemaRegistry:
    """Unfrozen registry with every test entity registered."""
    return make_registry()


@pytest.fixture
def memory_engine() -> Generator[PersistenceEngine, None, None]:
    """Create a PersistenceEngine with SQLite in-memory and its tables."""
    engine = PersistenceEngine(make_registry(), settings=make_settings())
    engine.create_tables()
    yield engine
    engine.close()


@pytest.fixture
def postgresql_url() -> str:
    """Get PostgreSQL URL from environment or use default."""
    url = os.environ.get("TEST_DATABASE_URL")
    if not url:
        url = "postgresql://localhost/scopedb_test"

    if not _psycopg_available():
        pytest.skip("psycopg not installed")

    if not _postgresql_connectable(url):
        pytest.skip(f"Cannot connect to PostgreSQL at {url}")

    return url


@pytest.fixture
def pg_engine(postgresql_url: str) -> Generator[PersistenceEngine, None, None]:
    """Create a PersistenceEngine on PostgreSQL; tables are dropped afterwards."""
    engine = PersistenceEngine(make_registry(), settings=make_settings(postgresql_url))
    engine.drop_tables()
    engine.create_tables()
    yield engine
    engine.drop_tables()
    engine.close()


@pytest.fixture
def schema_file(tmp_path) -> str:
    """Entity specs as a JSON file, for CLI tests."""
    import json

    path = tmp_path / "entities.json"
    path.write_text(json.dumps([TESTABLE_OBJECT, ARTICLE, STORE_PRICE]))
    return str(path)
