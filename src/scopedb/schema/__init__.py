"""Entity schemas, shop associations and table definitions."""

from scopedb.schema.associations import ShopAssociations
from scopedb.schema.registry import (
    LANG_COLUMN,
    SHOP_COLUMN,
    EntitySchema,
    FieldDefinition,
    SchemaRegistry,
    compile_spec,
)
from scopedb.schema.tables import EntityTables, TableFactory

__all__ = [
    "LANG_COLUMN",
    "SHOP_COLUMN",
    "EntitySchema",
    "FieldDefinition",
    "SchemaRegistry",
    "compile_spec",
    "ShopAssociations",
    "EntityTables",
    "TableFactory",
]
