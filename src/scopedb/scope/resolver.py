"""Scope resolution: which rows and columns a write touches.

Given an entity schema, an instance and a fields-to-update selector, the
resolver partitions fields into scope buckets and turns the selected values
into WriteTargets, one per (table, row key). Columns outside a target's
bucket, languages outside the selection and shops outside the instance's
scope never appear in any target, so they cannot be overwritten.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from scopedb.core.types import ScopeBucket
from scopedb.scope.selector import FieldSelector

if TYPE_CHECKING:
    from scopedb.core.instance import EntityInstance
    from scopedb.schema.associations import ShopAssociations
    from scopedb.schema.registry import EntitySchema


@dataclass(frozen=True, order=True)
class RowKey:
    """Identifies a single storable row."""

    entity_id: int
    language_id: int | None = None
    shop_id: int | None = None


@dataclass(frozen=True)
class WriteTarget:
    """One logical write: a row key in a table and the columns to set there."""

    table: str
    row_key: RowKey
    columns: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FieldBuckets:
    """Field names of an entity partitioned by scope."""

    global_fields: tuple[str, ...] = ()
    language_fields: tuple[str, ...] = ()
    shop_fields: tuple[str, ...] = ()
    language_shop_fields: tuple[str, ...] = ()

    def bucket_of(self, name: str) -> ScopeBucket:
        if name in self.global_fields:
            return ScopeBucket.GLOBAL
        if name in self.language_fields:
            return ScopeBucket.LANGUAGE
        if name in self.shop_fields:
            return ScopeBucket.SHOP
        if name in self.language_shop_fields:
            return ScopeBucket.LANGUAGE_SHOP
        raise KeyError(name)


class ScopeResolver:
    """Computes write targets for entity instances."""

    def __init__(self, associations: ShopAssociations) -> None:
        """Initialize the resolver.

        Args:
            associations: Tells whether language rows carry id_shop in their key
        """
        self._associations = associations
        self._buckets: dict[str, FieldBuckets] = {}

    def classify(self, schema: EntitySchema) -> FieldBuckets:
        """Partition the schema's fields by their declared scope flags."""
        cached = self._buckets.get(schema.name)
        if cached is not None:
            return cached

        def names(bucket: ScopeBucket) -> tuple[str, ...]:
            return tuple(f.name for f in schema.fields_in(bucket))

        buckets = FieldBuckets(
            global_fields=names(ScopeBucket.GLOBAL),
            language_fields=names(ScopeBucket.LANGUAGE),
            shop_fields=names(ScopeBucket.SHOP),
            language_shop_fields=names(ScopeBucket.LANGUAGE_SHOP),
        )
        self._buckets[schema.name] = buckets
        return buckets

    def lang_rows_have_shop(self, schema: EntitySchema) -> bool:
        return schema.multilang and self._associations.has_shop_key(schema.lang_table)

    def resolve_write_targets(
        self,
        schema: EntitySchema,
        instance: EntityInstance,
        selector: FieldSelector | None = None,
    ) -> list[WriteTarget]:
        """Compute the writes an update of `instance` needs.

        Args:
            schema: Entity schema
            instance: Persisted instance holding the candidate values
            selector: Fields (and languages) to write; None or ALL writes
                everything the instance holds

        Returns:
            Targets in base, shop, language order; targets without columns are
            omitted
        """
        selector = selector or FieldSelector.ALL
        buckets = self.classify(schema)
        entity_id = instance.id
        targets: list[WriteTarget] = []

        # Global fields: one base row
        base_columns = {
            name: instance.get(name)
            for name in buckets.global_fields
            if selector.selects(name) and instance.has_value(name)
        }
        if base_columns:
            targets.append(WriteTarget(schema.table, RowKey(entity_id), base_columns))

        shops = instance.shops_in_scope()

        # Shop fields: one row per shop in scope
        shop_columns = {
            name: instance.get(name)
            for name in buckets.shop_fields
            if selector.selects(name) and instance.has_value(name)
        }
        if shop_columns:
            for shop_id in shops:
                targets.append(
                    WriteTarget(
                        schema.shop_table, RowKey(entity_id, shop_id=shop_id), dict(shop_columns)
                    )
                )

        # Language and language+shop fields share the language table
        lang_fields = buckets.language_fields + buckets.language_shop_fields
        if lang_fields:
            lang_shops: list[int | None] = (
                list(shops) if self.lang_rows_have_shop(schema) else [None]
            )
            for language_id in instance.languages_present():
                columns = self._language_columns(instance, selector, lang_fields, language_id)
                if not columns:
                    continue
                for shop_id in lang_shops:
                    targets.append(
                        WriteTarget(
                            schema.lang_table,
                            RowKey(entity_id, language_id=language_id, shop_id=shop_id),
                            dict(columns),
                        )
                    )

        return targets

    def _language_columns(
        self,
        instance: EntityInstance,
        selector: FieldSelector,
        lang_fields: tuple[str, ...],
        language_id: int,
    ) -> dict[str, Any]:
        columns: dict[str, Any] = {}
        for name in lang_fields:
            if not selector.selects_language(name, language_id):
                continue
            present, value = instance.language_value(name, language_id)
            if present:
                columns[name] = value
        return columns
