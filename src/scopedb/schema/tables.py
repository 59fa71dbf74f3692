"""SQLAlchemy table definitions for registered entities.

Each entity maps to up to three tables:

- ``<table>``: primary key + global fields
- ``<table>_shop``: (primary, id_shop) + shop fields; one row per associated shop
- ``<table>_lang``: (primary, id_lang[, id_shop]) + per-language fields
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
)

from scopedb.core.types import FieldType, ScopeBucket
from scopedb.schema.registry import LANG_COLUMN, SHOP_COLUMN, EntitySchema, FieldDefinition

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from scopedb.schema.associations import ShopAssociations
    from scopedb.schema.registry import SchemaRegistry


# Mapping from scopedb field types to SQLAlchemy column types
FIELD_TYPE_MAP = {
    FieldType.INT: lambda size: Integer(),
    FieldType.BOOL: lambda size: Boolean(),
    FieldType.FLOAT: lambda size: Float(),
    FieldType.DECIMAL: lambda size: Numeric(20, 6),
    FieldType.STRING: lambda size: String(size or 255),
    FieldType.HTML: lambda size: Text(),
    FieldType.DATE: lambda size: Date(),
    FieldType.DATETIME: lambda size: DateTime(timezone=True),
}


def _field_column(field: FieldDefinition) -> Column[Any]:
    col_type = FIELD_TYPE_MAP[field.type](field.size)
    # Required-ness is enforced by validation, not the column, so that rows
    # widened by a partial update can still be inserted.
    return Column(field.name, col_type, nullable=True)


class EntityTables:
    """The tables of one entity."""

    def __init__(
        self,
        schema: EntitySchema,
        base: Table,
        lang: Table | None = None,
        shop: Table | None = None,
        lang_has_shop: bool = False,
    ) -> None:
        self.schema = schema
        self.base = base
        self.lang = lang
        self.shop = shop
        self.lang_has_shop = lang_has_shop

    def by_name(self, name: str) -> Table:
        for table in self.all():
            if table.name == name:
                return table
        raise KeyError(f"Table '{name}' does not belong to '{self.schema.name}'")

    def all(self) -> list[Table]:
        return [t for t in (self.base, self.shop, self.lang) if t is not None]

    def layout(self) -> dict[str, list[str]]:
        """Table name -> column names, in base, shop, language order."""
        return {table.name: [column.name for column in table.columns] for table in self.all()}


class TableFactory:
    """Builds and creates the tables of every registered entity."""

    def __init__(self, registry: SchemaRegistry, associations: ShopAssociations) -> None:
        """Initialize the factory.

        Args:
            registry: Registered entity schemas
            associations: Shop associations deciding whether lang rows carry id_shop
        """
        self._registry = registry
        self._associations = associations
        self._metadata = MetaData()
        self._tables: dict[str, EntityTables] = {}

    @property
    def metadata(self) -> MetaData:
        return self._metadata

    def for_entity(self, schema: EntitySchema) -> EntityTables:
        """Get (building on first use) the tables of an entity."""
        if schema.name not in self._tables:
            self._tables[schema.name] = self._build(schema)
        return self._tables[schema.name]

    def _build(self, schema: EntitySchema) -> EntityTables:
        pk = schema.primary

        base = Table(
            schema.table,
            self._metadata,
            Column(pk, Integer, primary_key=True, autoincrement=True),
            *[_field_column(f) for f in schema.fields_in(ScopeBucket.GLOBAL)],
        )

        shop = None
        if schema.multishop:
            shop = Table(
                schema.shop_table,
                self._metadata,
                Column(
                    pk,
                    Integer,
                    ForeignKey(f"{schema.table}.{pk}", ondelete="CASCADE"),
                    primary_key=True,
                    autoincrement=False,
                ),
                Column(SHOP_COLUMN, Integer, primary_key=True, autoincrement=False, index=True),
                *[_field_column(f) for f in schema.fields_in(ScopeBucket.SHOP)],
            )

        lang = None
        lang_has_shop = False
        if schema.multilang:
            lang_has_shop = self._associations.has_shop_key(schema.lang_table)
            key_columns: list[Column[Any]] = [
                Column(
                    pk,
                    Integer,
                    ForeignKey(f"{schema.table}.{pk}", ondelete="CASCADE"),
                    primary_key=True,
                    autoincrement=False,
                ),
                Column(LANG_COLUMN, Integer, primary_key=True, autoincrement=False),
            ]
            if lang_has_shop:
                key_columns.append(
                    Column(SHOP_COLUMN, Integer, primary_key=True, autoincrement=False)
                )
            lang = Table(
                schema.lang_table,
                self._metadata,
                *key_columns,
                *[
                    _field_column(f)
                    for f in schema.fields_in(ScopeBucket.LANGUAGE, ScopeBucket.LANGUAGE_SHOP)
                ],
            )

        return EntityTables(schema, base, lang=lang, shop=shop, lang_has_shop=lang_has_shop)

    def build_all(self) -> list[EntityTables]:
        return [self.for_entity(schema) for schema in self._registry]

    def create_all(self, engine: Engine) -> None:
        """Create every registered entity's tables that don't exist yet.

        This is idempotent - safe to call multiple times.
        """
        self.build_all()
        self._metadata.create_all(engine)

    def drop_all(self, engine: Engine) -> None:
        self.build_all()
        self._metadata.drop_all(engine)
