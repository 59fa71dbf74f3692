"""Shop association registry.

Maps table names to how they relate to shops:

- ``shop``: an entity table whose shop-scoped values and shop membership live
  in ``<table>_shop`` keyed by (primary, id_shop).
- ``fk_shop``: a variant table (usually ``<table>_lang``) that carries
  ``id_shop`` in its own key.

Associations are registered during startup and the registry is frozen when a
persistence engine is built, so the scope resolver never sees it change.
"""

from __future__ import annotations

from scopedb.core.types import AssociationType
from scopedb.exceptions import SchemaError
from scopedb.schema.registry import EntitySchema


class ShopAssociations:
    """Table name -> AssociationType."""

    def __init__(self) -> None:
        self._tables: dict[str, AssociationType] = {}
        self._frozen = False

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def add_table_association(self, table: str, association: AssociationType | str) -> None:
        """Register how `table` relates to shops.

        Re-registering the same association is a no-op.

        Raises:
            SchemaError: If frozen or if `table` is already registered differently
        """
        association = AssociationType(association)
        if self._frozen:
            raise SchemaError(
                f"Cannot associate '{table}': shop associations are frozen", {"table": table}
            )
        existing = self._tables.get(table)
        if existing is not None and existing != association:
            raise SchemaError(
                f"Table '{table}' is already associated as '{existing}'",
                {"table": table, "existing": str(existing), "requested": str(association)},
            )
        self._tables[table] = association

    def register_schema(self, schema: EntitySchema) -> None:
        """Register the associations an entity's declaration implies."""
        if schema.multishop:
            self.add_table_association(schema.table, AssociationType.SHOP)
        if schema.multilang_shop:
            self.add_table_association(schema.lang_table, AssociationType.FK_SHOP)

    def get(self, table: str) -> AssociationType | None:
        return self._tables.get(table)

    def is_associated(self, table: str) -> bool:
        return self._tables.get(table) == AssociationType.SHOP

    def has_shop_key(self, table: str) -> bool:
        """Whether rows of `table` carry id_shop in their key."""
        return self._tables.get(table) == AssociationType.FK_SHOP

    def check(self, schema: EntitySchema) -> None:
        """Verify registered associations match an entity's storage shape.

        Raises:
            SchemaError: On any mismatch
        """
        problems: list[str] = []
        if schema.multishop and not self.is_associated(schema.table):
            problems.append(f"'{schema.table}' must be associated as 'shop'")
        if not schema.multishop and self.get(schema.table) is not None:
            problems.append(f"'{schema.table}' is associated but the entity is not multishop")
        if schema.multilang:
            if schema.multilang_shop and not self.has_shop_key(schema.lang_table):
                problems.append(f"'{schema.lang_table}' must be associated as 'fk_shop'")
            if not schema.multilang_shop and self.has_shop_key(schema.lang_table):
                problems.append(
                    f"'{schema.lang_table}' is 'fk_shop' but the entity is not multilang_shop"
                )
        if problems:
            raise SchemaError(
                f"Shop associations do not match '{schema.name}': {'; '.join(problems)}",
                {"entity_name": schema.name, "errors": problems},
            )
