"""scopedb - Persistence for entities scoped by language and shop.

An entity's fields are global, per-language, per-shop or both. scopedb keeps
them in a base table, a ``<table>_lang`` table and a ``<table>_shop`` table and
writes exactly the rows and columns an update targets, so a partial update in
one language or one shop never overwrites another's values.

Example:
    from scopedb import PersistenceEngine, SchemaRegistry

    registry = SchemaRegistry()
    registry.register(
        {
            "name": "Product",
            "table": "product",
            "multilang": True,
            "multishop": True,
            "fields": [
                {"name": "quantity", "type": "int", "validate": "unsigned_int"},
                {"name": "name", "type": "string", "lang": True, "size": 128},
                {"name": "active", "type": "bool", "shop": True},
            ],
        }
    )

    engine = PersistenceEngine(registry, "sqlite:///./shop.db")
    engine.create_tables()

    product = engine.new("Product")
    product.quantity = 3
    product.name = {1: "Chair", 2: "Chaise"}
    product.associated_shop_ids = [1, 2]
    engine.create(product)

    # Rename in French only
    product.name = {2: "Fauteuil"}
    product.set_fields_to_update({"name": {2: True}})
    engine.update(product)
"""

from scopedb.config import Settings
from scopedb.core.engine import PersistenceEngine
from scopedb.core.instance import EntityInstance, LocalizedValue, PerLanguage, Scalar
from scopedb.core.types import (
    AssociationType,
    EntityInfo,
    EntitySpec,
    FieldInfo,
    FieldSpec,
    FieldType,
    ScopeBucket,
    TargetResult,
    UpdateReport,
    WriteOutcome,
)
from scopedb.exceptions import (
    ConnectionError,
    EntityNotFoundError,
    FieldNotFoundError,
    PersistenceError,
    RecordNotFoundError,
    SchemaError,
    ScopeDBError,
    StateError,
    ValidationError,
)
from scopedb.schema import EntitySchema, FieldDefinition, SchemaRegistry, ShopAssociations
from scopedb.scope import FieldSelector, RowKey, ScopeResolver, WriteTarget
from scopedb.validation import ValidationRules, default_rules

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "PersistenceEngine",
    "EntityInstance",
    "SchemaRegistry",
    "ShopAssociations",
    "Settings",
    # Schema
    "EntitySchema",
    "FieldDefinition",
    "FieldType",
    "FieldSpec",
    "EntitySpec",
    "FieldInfo",
    "EntityInfo",
    "ScopeBucket",
    "AssociationType",
    # Scoping
    "FieldSelector",
    "ScopeResolver",
    "RowKey",
    "WriteTarget",
    "LocalizedValue",
    "Scalar",
    "PerLanguage",
    # Reports
    "WriteOutcome",
    "TargetResult",
    "UpdateReport",
    # Validation
    "ValidationRules",
    "default_rules",
    # Exceptions
    "ScopeDBError",
    "SchemaError",
    "EntityNotFoundError",
    "FieldNotFoundError",
    "ValidationError",
    "StateError",
    "RecordNotFoundError",
    "PersistenceError",
    "ConnectionError",
]
