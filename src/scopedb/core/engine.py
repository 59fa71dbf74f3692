"""Persistence engine: create, read, update and delete scoped entities."""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import replace
from typing import Any

from sqlalchemy import Connection
from sqlalchemy.exc import SQLAlchemyError

from scopedb.config import Settings
from scopedb.core.connection import DatabaseConnection
from scopedb.core.instance import EntityInstance
from scopedb.core.types import (
    EntityInfo,
    ScopeBucket,
    TargetResult,
    UpdateReport,
    WriteOutcome,
)
from scopedb.data.row_store import RowStore
from scopedb.exceptions import PersistenceError, RecordNotFoundError, StateError, ValidationError
from scopedb.schema.associations import ShopAssociations
from scopedb.schema.registry import (
    LANG_COLUMN,
    SHOP_COLUMN,
    EntitySchema,
    FieldDefinition,
    SchemaRegistry,
)
from scopedb.schema.tables import EntityTables, TableFactory
from scopedb.scope.resolver import RowKey, ScopeResolver, WriteTarget
from scopedb.scope.selector import FieldSelector
from scopedb.validation import validate_value

logger = logging.getLogger(__name__)


class PersistenceEngine:
    """Maps entity instances to base, language and shop rows.

    The engine takes its registry and shop associations explicitly and freezes
    both on construction. Every operation is synchronous; without an enclosing
    ``transaction()`` each write target of an update is committed on its own.

    Example:
        registry = SchemaRegistry()
        registry.register(product_spec)
        engine = PersistenceEngine(registry, url="sqlite:///:memory:")
        engine.create_tables()

        product = engine.new("Product")
        product.quantity = 42
        product.name = {1: "Chair", 2: "Chaise"}
        engine.create(product)

        product_fr = engine.read("Product", product.id, language_id=2)
        product_fr.name = "Fauteuil"
        engine.update(product_fr)
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        url: str | None = None,
        associations: ShopAssociations | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            registry: Registered entity schemas
            url: Database URL (overrides settings.database_url)
            associations: Shop associations; derived from the registry when omitted
            settings: Engine settings; read from the environment when omitted

        Raises:
            SchemaError: If associations do not match a registered entity
        """
        self._settings = settings or Settings.from_env(url)
        if url is not None and url != self._settings.database_url:
            self._settings = replace(self._settings, database_url=url)

        if associations is None:
            associations = ShopAssociations()
            for schema in registry:
                associations.register_schema(schema)
        for schema in registry:
            associations.check(schema)
        registry.freeze()
        associations.freeze()

        self._registry = registry
        self._associations = associations
        self._connection = DatabaseConnection(self._settings.database_url, echo=self._settings.echo)
        self._tables = TableFactory(registry, associations)
        self._resolver = ScopeResolver(associations)
        self._store = RowStore()
        self._bound_conn: Connection | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    @property
    def resolver(self) -> ScopeResolver:
        return self._resolver

    @property
    def connection(self) -> DatabaseConnection:
        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        self._connection.close()

    def __enter__(self) -> PersistenceEngine:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    # === Connections and transactions ===

    @contextmanager
    def _connect(self, operation: str) -> Iterator[Connection]:
        """Yield the transaction's connection, or a fresh self-committing one."""
        try:
            if self._bound_conn is not None:
                yield self._bound_conn
            else:
                with self._connection.begin() as conn:
                    yield conn
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to {operation}: {e}", {"operation": operation}
            ) from e

    @contextmanager
    def transaction(self) -> Iterator[PersistenceEngine]:
        """Run several operations on one connection and one transaction.

        Yields an engine bound to the transaction; commits when the block
        exits normally and rolls back when it raises.

        Example:
            with engine.transaction() as tx:
                tx.update(product)
                tx.update(other_product)
        """
        if self._bound_conn is not None:
            yield self
            return
        with self._connect("run transaction") as conn:
            bound = copy.copy(self)
            bound._bound_conn = conn
            yield bound

    # === Schema ===

    def tables_for(self, schema: EntitySchema) -> EntityTables:
        return self._tables.for_entity(schema)

    def create_tables(self) -> None:
        """Create the tables of every registered entity (idempotent)."""
        try:
            self._tables.create_all(self._connection.engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create tables: {e}") from e

    def drop_tables(self) -> None:
        try:
            self._tables.drop_all(self._connection.engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to drop tables: {e}") from e

    def describe(self, entity_name: str | None = None) -> dict[str, EntityInfo]:
        """Fields and table layout of one entity, or of every registered entity."""
        schemas = [self._registry.get(entity_name)] if entity_name else list(self._registry)
        return {
            schema.name: schema.to_info(self.tables_for(schema).layout()) for schema in schemas
        }

    # === Instances ===

    def new(
        self,
        entity_name: str,
        language_id: int | None = None,
        shop_id: int | None = None,
        values: Mapping[str, Any] | None = None,
    ) -> EntityInstance:
        """Create a transient instance of a registered entity."""
        schema = self._registry.get(entity_name)
        return EntityInstance(schema, language_id=language_id, shop_id=shop_id, values=values)

    # === Validation ===

    def validate(self, instance: EntityInstance, selector: FieldSelector | None = None) -> None:
        """Validate the values a write would use and normalize them in place.

        A transient instance has every field checked; a persisted one only
        the selected fields (and languages) it holds.

        Raises:
            ValidationError: With one entry per failing field (and language)
        """
        selector = selector or FieldSelector.ALL
        creating = not instance.is_persisted
        rules = self._registry.rules
        errors: dict[str, str] = {}

        for definition in instance.schema.fields.values():
            if not selector.selects(definition.name):
                continue
            if definition.lang and not instance.is_language_bound:
                self._validate_languages(instance, definition, selector, creating, errors)
                continue
            if not creating and not instance.has_value(definition.name):
                continue
            value, error = validate_value(definition, instance.get(definition.name), rules)
            if error:
                errors[definition.name] = error
            else:
                instance.set(definition.name, value)

        if errors:
            details = ", ".join(f"{name} {error}" for name, error in errors.items())
            raise ValidationError(
                f"Validation failed for '{instance.schema.name}': {details}", errors
            )

    def _validate_languages(
        self,
        instance: EntityInstance,
        definition: FieldDefinition,
        selector: FieldSelector,
        creating: bool,
        errors: dict[str, str],
    ) -> None:
        rules = self._registry.rules
        values: dict[int, Any] = instance.get(definition.name)
        normalized = dict(values)

        if creating and definition.required:
            default_language = self._settings.default_language_id
            if values.get(default_language) in (None, ""):
                errors[f"{definition.name}[{default_language}]"] = "is required"

        for language_id, raw in values.items():
            if not selector.selects_language(definition.name, language_id):
                continue
            if raw is None and not definition.required:
                continue
            value, error = validate_value(definition, raw, rules)
            if error:
                errors[f"{definition.name}[{language_id}]"] = error
            else:
                normalized[language_id] = value

        if instance.has_value(definition.name):
            instance.set(definition.name, normalized)

    # === Create ===

    def create(self, instance: EntityInstance) -> int:
        """Insert a transient instance.

        Writes the base row, one shop row per associated shop and one language
        row per language present (per shop when language rows are shop keyed).
        The new id is set on ``instance.id`` and the primary key attribute.

        Returns:
            The new entity id

        Raises:
            StateError: If the instance already has an id
            ValidationError: If a value is missing or invalid (nothing written)
            PersistenceError: If the store rejects a statement
        """
        schema = instance.schema
        if instance.is_persisted:
            raise StateError("create", schema.name, f"instance already has id {instance.id}")

        self.validate(instance)
        tables = self.tables_for(schema)
        shops = self._shops_for_create(instance)
        languages = instance.languages_present() if schema.multilang else []

        with self._connect(f"create '{schema.name}'") as conn:
            base_values = {
                f.name: instance.get(f.name) for f in schema.fields_in(ScopeBucket.GLOBAL)
            }
            entity_id = self._store.insert(conn, tables.base, base_values)

            if tables.shop is not None:
                for shop_id in shops:
                    self._store.insert(
                        conn, tables.shop, self._shop_row(schema, instance, entity_id, shop_id)
                    )

            if tables.lang is not None:
                lang_shops: list[int | None] = list(shops) if tables.lang_has_shop else [None]
                for language_id in languages:
                    for shop_id in lang_shops:
                        self._store.insert(
                            conn,
                            tables.lang,
                            self._lang_row(schema, instance, entity_id, language_id, shop_id),
                        )

        instance.id = entity_id
        if schema.multishop:
            instance.associated_shop_ids = shops
        logger.info(
            f"Created {schema.name} #{entity_id} (languages={languages}, shops={shops})"
        )
        return entity_id

    def _shops_for_create(self, instance: EntityInstance) -> list[int]:
        if not instance.schema.multishop:
            return []
        shops = set(instance.associated_shop_ids)
        if instance.shop_id is not None:
            shops.add(instance.shop_id)
        if not shops:
            shops.add(self._settings.default_shop_id)
        return sorted(shops)

    def _shop_row(
        self, schema: EntitySchema, instance: EntityInstance, entity_id: int, shop_id: int
    ) -> dict[str, Any]:
        row: dict[str, Any] = {schema.primary: entity_id, SHOP_COLUMN: shop_id}
        for f in schema.fields_in(ScopeBucket.SHOP):
            row[f.name] = instance.get(f.name)
        return row

    def _lang_row(
        self,
        schema: EntitySchema,
        instance: EntityInstance,
        entity_id: int,
        language_id: int,
        shop_id: int | None,
    ) -> dict[str, Any]:
        row: dict[str, Any] = {schema.primary: entity_id, LANG_COLUMN: language_id}
        if shop_id is not None:
            row[SHOP_COLUMN] = shop_id
        for f in schema.fields.values():
            if f.lang:
                present, value = instance.language_value(f.name, language_id)
                row[f.name] = value if present else f.default
        return row

    # === Read ===

    def read(
        self,
        entity_name: str,
        entity_id: int,
        language_id: int | None = None,
        shop_id: int | None = None,
    ) -> EntityInstance:
        """Load an entity by id in a language and shop context.

        Args:
            entity_name: Registered entity name
            entity_id: Primary key
            language_id: Bind to one language (scalar per-language values);
                None loads every stored language as a mapping
            shop_id: Bind to one shop; None reads shop values from the default
                shop (or the lowest associated shop) and targets every
                associated shop on update

        Raises:
            RecordNotFoundError: If the base row is missing or the entity is
                not associated with the bound shop
        """
        schema = self._registry.get(entity_name)
        tables = self.tables_for(schema)
        pk = schema.primary

        with self._connect(f"read '{entity_name}'") as conn:
            base = self._store.fetch_one(conn, tables.base, {pk: entity_id})
            if base is None:
                raise RecordNotFoundError(entity_id, entity_name, language_id, shop_id)

            instance = EntityInstance(schema, language_id=language_id, shop_id=shop_id)
            instance.id = entity_id
            for f in schema.fields_in(ScopeBucket.GLOBAL):
                instance.set(f.name, base._mapping[f.name])

            context_shop: int | None = None
            if tables.shop is not None:
                associated = self._store.fetch_column(
                    conn, tables.shop, SHOP_COLUMN, {pk: entity_id}
                )
                instance.associated_shop_ids = associated
                context_shop = self._context_shop(schema, entity_id, shop_id, associated)
                shop_row = None
                if context_shop is not None:
                    shop_row = self._store.fetch_one(
                        conn, tables.shop, {pk: entity_id, SHOP_COLUMN: context_shop}
                    )
                for f in schema.fields_in(ScopeBucket.SHOP):
                    value = shop_row._mapping[f.name] if shop_row is not None else f.default
                    instance.set(f.name, value)

            if tables.lang is not None:
                self._read_languages(conn, instance, tables, context_shop)

        return instance

    def _context_shop(
        self, schema: EntitySchema, entity_id: int, shop_id: int | None, associated: list[int]
    ) -> int | None:
        if shop_id is not None:
            if shop_id not in associated:
                raise RecordNotFoundError(entity_id, schema.name, shop_id=shop_id)
            return shop_id
        if not associated:
            return None
        if self._settings.default_shop_id in associated:
            return self._settings.default_shop_id
        logger.warning(
            f"{schema.name} #{entity_id} is not associated with default shop "
            f"{self._settings.default_shop_id}; reading shop {associated[0]}"
        )
        return associated[0]

    def _read_languages(
        self,
        conn: Connection,
        instance: EntityInstance,
        tables: EntityTables,
        context_shop: int | None,
    ) -> None:
        schema = instance.schema
        lang_fields = [f for f in schema.fields.values() if f.lang]
        key: dict[str, Any] = {schema.primary: instance.id}
        if tables.lang_has_shop:
            if context_shop is None:
                for f in lang_fields:
                    instance.set(f.name, f.default if instance.is_language_bound else {})
                return
            key[SHOP_COLUMN] = context_shop

        if instance.is_language_bound:
            key[LANG_COLUMN] = instance.language_id
            row = self._store.fetch_one(conn, tables.lang, key)
            for f in lang_fields:
                instance.set(f.name, row._mapping[f.name] if row is not None else f.default)
            return

        rows = self._store.fetch_all(conn, tables.lang, key, order_by=LANG_COLUMN)
        for f in lang_fields:
            instance.set(f.name, {row._mapping[LANG_COLUMN]: row._mapping[f.name] for row in rows})

    def exists(self, entity_name: str, entity_id: int) -> bool:
        schema = self._registry.get(entity_name)
        tables = self.tables_for(schema)
        with self._connect(f"check '{entity_name}'") as conn:
            return self._store.exists(conn, tables.base, {schema.primary: entity_id})

    def associated_shops(self, entity_name: str, entity_id: int) -> list[int]:
        """Shop ids an entity is associated with (empty when not multishop)."""
        schema = self._registry.get(entity_name)
        tables = self.tables_for(schema)
        if tables.shop is None:
            return []
        with self._connect(f"read shops of '{entity_name}'") as conn:
            return self._store.fetch_column(
                conn, tables.shop, SHOP_COLUMN, {schema.primary: entity_id}
            )

    # === Update ===

    def resolve(self, instance: EntityInstance) -> list[WriteTarget]:
        """Write targets the next update() of `instance` would execute."""
        self._ensure_shop_scope(instance)
        return self._resolver.resolve_write_targets(
            instance.schema, instance, instance.fields_to_update
        )

    def _ensure_shop_scope(self, instance: EntityInstance) -> None:
        if (
            instance.schema.multishop
            and instance.shop_id is None
            and not instance.associated_shop_ids
        ):
            instance.associated_shop_ids = [self._settings.default_shop_id]

    def update(self, instance: EntityInstance) -> bool:
        """Write the instance's selected values.

        Returns:
            True when every write target was applied (see update_with_report
            for per-target outcomes)
        """
        self.update_with_report(instance)
        return True

    def update_with_report(self, instance: EntityInstance) -> UpdateReport:
        """Write the instance's selected values and report each target.

        Uses ``instance.fields_to_update`` (cleared afterwards). Each target
        runs as its own statement sequence: an absent row is inserted, an
        identical row is reported UNCHANGED.

        Raises:
            StateError: If the instance has no id (nothing is executed)
            ValidationError: If a selected value is invalid (nothing is written)
            PersistenceError: If the store fails; earlier targets stay written
                unless the call runs inside transaction()
        """
        schema = instance.schema
        if not instance.is_persisted:
            raise StateError("update", schema.name, "instance has no id; create it first")

        selector = instance.fields_to_update
        self.validate(instance, selector)
        targets = self.resolve(instance)
        tables = self.tables_for(schema)

        report = UpdateReport(entity_name=schema.name, entity_id=instance.id)
        for target in targets:
            table = tables.by_name(target.table)
            key = self._key_columns(schema, target.row_key)
            with self._connect(f"update '{schema.name}' in {target.table}") as conn:
                outcome = self._store.apply(
                    conn, table, key, target.columns, self._insert_defaults(schema, target.table)
                )
            logger.debug(f"{target.table} {key} {sorted(target.columns)}: {outcome}")

            if target.table == schema.shop_table and outcome == WriteOutcome.INSERTED:
                instance.associated_shop_ids = [
                    *instance.associated_shop_ids,
                    target.row_key.shop_id,
                ]
            report.results.append(
                TargetResult(
                    table=target.table,
                    entity_id=target.row_key.entity_id,
                    language_id=target.row_key.language_id,
                    shop_id=target.row_key.shop_id,
                    columns=list(target.columns),
                    outcome=outcome,
                )
            )

        instance.set_fields_to_update(None)
        return report

    def _insert_defaults(self, schema: EntitySchema, table_name: str) -> dict[str, Any]:
        if table_name == schema.lang_table:
            buckets = (ScopeBucket.LANGUAGE, ScopeBucket.LANGUAGE_SHOP)
        elif table_name == schema.shop_table:
            buckets = (ScopeBucket.SHOP,)
        else:
            buckets = (ScopeBucket.GLOBAL,)
        return {f.name: f.default for f in schema.fields_in(*buckets)}

    def _key_columns(self, schema: EntitySchema, row_key: RowKey) -> dict[str, Any]:
        key: dict[str, Any] = {schema.primary: row_key.entity_id}
        if row_key.language_id is not None:
            key[LANG_COLUMN] = row_key.language_id
        if row_key.shop_id is not None:
            key[SHOP_COLUMN] = row_key.shop_id
        return key

    # === Shop association ===

    def associate_to(self, instance: EntityInstance, shop_ids: list[int]) -> int:
        """Associate a persisted entity with more shops.

        New shop rows take the instance's current shop values; when language
        rows are shop keyed, the instance's per-language values are copied to
        the new shops too.

        Returns:
            Number of newly associated shops
        """
        schema = instance.schema
        if not instance.is_persisted:
            raise StateError("associate", schema.name, "instance has no id; create it first")
        tables = self.tables_for(schema)
        if tables.shop is None:
            raise StateError("associate", schema.name, "entity is not multishop")

        pk = schema.primary
        added: list[int] = []
        with self._connect(f"associate '{schema.name}'") as conn:
            existing = set(
                self._store.fetch_column(conn, tables.shop, SHOP_COLUMN, {pk: instance.id})
            )
            for shop_id in sorted(set(shop_ids) - existing):
                self._store.insert(
                    conn, tables.shop, self._shop_row(schema, instance, instance.id, shop_id)
                )
                if tables.lang is not None and tables.lang_has_shop:
                    for language_id in instance.languages_present():
                        self._store.insert(
                            conn,
                            tables.lang,
                            self._lang_row(schema, instance, instance.id, language_id, shop_id),
                        )
                added.append(shop_id)

        instance.associated_shop_ids = [*existing, *added]
        if added:
            logger.info(f"Associated {schema.name} #{instance.id} with shops {added}")
        return len(added)

    # === Delete ===

    def delete(self, instance: EntityInstance) -> bool:
        """Delete an entity's language, shop and base rows.

        The instance becomes transient again.

        Returns:
            True if the base row existed
        """
        schema = instance.schema
        if not instance.is_persisted:
            raise StateError("delete", schema.name, "instance has no id")
        tables = self.tables_for(schema)
        key = {schema.primary: instance.id}

        with self._connect(f"delete '{schema.name}'") as conn:
            if tables.lang is not None:
                self._store.delete(conn, tables.lang, key)
            if tables.shop is not None:
                self._store.delete(conn, tables.shop, key)
            deleted = self._store.delete(conn, tables.base, key)

        logger.info(f"Deleted {schema.name} #{instance.id}")
        instance.id = None
        instance.associated_shop_ids = []
        return deleted > 0
