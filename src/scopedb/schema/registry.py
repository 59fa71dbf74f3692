"""Schema registry for scopedb entity types.

Entity types are declared once (as EntitySpec or plain dicts), validated and
compiled into immutable EntitySchema objects. The registry is passed to the
persistence engine explicitly and is frozen when the engine is built.

Example:
    registry = SchemaRegistry()
    registry.register(
        {
            "name": "TestableObject",
            "table": "testable_object",
            "multilang": True,
            "multishop": True,
            "multilang_shop": True,
            "fields": [
                {"name": "quantity", "type": "int", "validate": "unsigned_float"},
                {"name": "name", "type": "string", "lang": True, "shop": True, "size": 128},
                {"name": "enabled", "type": "bool", "shop": True, "validate": "bool"},
            ],
        }
    )
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from scopedb.core.types import EntityInfo, EntitySpec, FieldInfo, FieldType, ScopeBucket
from scopedb.exceptions import EntityNotFoundError, FieldNotFoundError, SchemaError
from scopedb.validation import ValidationRules, default_rules

LANG_COLUMN = "id_lang"
SHOP_COLUMN = "id_shop"

# Attribute and method names of EntityInstance; a field with one of these
# names could not be read or written as a property.
INSTANCE_ATTRIBUTES = frozenset(
    {
        "schema",
        "id",
        "language_id",
        "shop_id",
        "associated_shop_ids",
        "fields_to_update",
        "is_persisted",
        "is_language_bound",
        "has_value",
        "get",
        "set",
        "unset",
        "get_localized",
        "language_value",
        "languages_present",
        "shops_in_scope",
        "hydrate",
        "values",
        "to_dict",
        "set_fields_to_update",
    }
)


@dataclass(frozen=True)
class FieldDefinition:
    """Immutable description of one entity field."""

    name: str
    type: FieldType
    lang: bool = False
    shop: bool = False
    rule: str | None = None
    required: bool = False
    size: int | None = None
    default: Any = None

    @property
    def bucket(self) -> ScopeBucket:
        if self.lang and self.shop:
            return ScopeBucket.LANGUAGE_SHOP
        if self.lang:
            return ScopeBucket.LANGUAGE
        if self.shop:
            return ScopeBucket.SHOP
        return ScopeBucket.GLOBAL


@dataclass(frozen=True)
class EntitySchema:
    """Compiled, immutable storage shape of an entity type."""

    name: str
    table: str
    primary: str
    multilang: bool
    multishop: bool
    multilang_shop: bool
    fields: Mapping[str, FieldDefinition] = field(default_factory=dict)

    @property
    def lang_table(self) -> str:
        return f"{self.table}_lang"

    @property
    def shop_table(self) -> str:
        return f"{self.table}_shop"

    @property
    def has_language_variant(self) -> bool:
        return self.multilang

    @property
    def has_shop_variant(self) -> bool:
        return self.multishop

    def get_field(self, name: str) -> FieldDefinition:
        if name not in self.fields:
            raise FieldNotFoundError(name, self.name, list(self.fields))
        return self.fields[name]

    def fields_in(self, *buckets: ScopeBucket) -> list[FieldDefinition]:
        """Fields whose bucket is one of `buckets`, in declaration order."""
        return [f for f in self.fields.values() if f.bucket in buckets]

    def to_info(self, tables: Mapping[str, list[str]]) -> EntityInfo:
        """Describe the entity; `tables` maps each built table name to its columns."""
        return EntityInfo(
            name=self.name,
            table=self.table,
            primary=self.primary,
            tables=dict(tables),
            fields=[
                FieldInfo(
                    name=f.name,
                    type=str(f.type),
                    bucket=str(f.bucket),
                    rule=f.rule,
                    required=f.required,
                    size=f.size,
                    default=f.default,
                )
                for f in self.fields.values()
            ],
        )


def compile_spec(spec: EntitySpec, rules: ValidationRules = default_rules) -> EntitySchema:
    """Check an EntitySpec's invariants and build its EntitySchema.

    Raises:
        SchemaError: If the declaration is inconsistent
    """
    primary = spec.primary or f"id_{spec.table}"
    reserved = INSTANCE_ATTRIBUTES | {primary, LANG_COLUMN, SHOP_COLUMN}
    errors: list[str] = []

    if spec.multilang_shop and not (spec.multilang and spec.multishop):
        errors.append("multilang_shop requires both multilang and multishop")

    fields: dict[str, FieldDefinition] = {}
    for f in spec.fields:
        if f.name in fields:
            errors.append(f"field '{f.name}' is declared twice")
            continue
        if f.name in reserved or f.name.startswith("_"):
            errors.append(f"field name '{f.name}' is reserved")
        if f.lang and not spec.multilang:
            errors.append(f"field '{f.name}' is per-language but the entity is not multilang")
        if f.shop and not spec.multishop:
            errors.append(f"field '{f.name}' is per-shop but the entity is not multishop")
        if f.lang and f.shop and not spec.multilang_shop:
            errors.append(
                f"field '{f.name}' is per-language and per-shop but the entity is not "
                "multilang_shop"
            )
        if f.size is not None:
            if f.size <= 0:
                errors.append(f"field '{f.name}' has a non-positive size")
            elif f.type not in (FieldType.STRING, FieldType.HTML):
                errors.append(f"field '{f.name}' has a size but is of type {f.type}")
        if f.rule is not None and f.rule not in rules:
            errors.append(f"field '{f.name}' uses unknown rule '{f.rule}'")

        fields[f.name] = FieldDefinition(
            name=f.name,
            type=FieldType(f.type),
            lang=f.lang,
            shop=f.shop,
            rule=f.rule,
            required=f.required,
            size=f.size,
            default=f.default,
        )

    if errors:
        raise SchemaError(
            f"Invalid entity '{spec.name}': {'; '.join(errors)}",
            {"entity_name": spec.name, "errors": errors},
        )

    return EntitySchema(
        name=spec.name,
        table=spec.table,
        primary=primary,
        multilang=spec.multilang,
        multishop=spec.multishop,
        multilang_shop=spec.multilang_shop,
        fields=MappingProxyType(fields),
    )


class SchemaRegistry:
    """Entity type name -> EntitySchema.

    Populated at startup; frozen once a persistence engine uses it.
    """

    def __init__(self, rules: ValidationRules | None = None) -> None:
        self._rules = rules or default_rules
        self._schemas: dict[str, EntitySchema] = {}
        self._frozen = False

    @property
    def rules(self) -> ValidationRules:
        return self._rules

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def register(self, spec: EntitySpec | dict[str, Any]) -> EntitySchema:
        """Validate and register an entity type.

        Args:
            spec: EntitySpec or a dict in the same shape

        Returns:
            The compiled EntitySchema

        Raises:
            SchemaError: If frozen, duplicated, or inconsistent
        """
        if isinstance(spec, dict):
            spec = EntitySpec(**spec)
        if self._frozen:
            raise SchemaError(
                f"Cannot register '{spec.name}': registry is frozen",
                {"entity_name": spec.name},
            )
        if spec.name in self._schemas:
            raise SchemaError(
                f"Entity '{spec.name}' is already registered", {"entity_name": spec.name}
            )
        tables = {s.table for s in self._schemas.values()}
        if spec.table in tables:
            raise SchemaError(
                f"Table '{spec.table}' is already used by another entity",
                {"entity_name": spec.name, "table": spec.table},
            )

        schema = compile_spec(spec, self._rules)
        self._schemas[schema.name] = schema
        return schema

    def get(self, name: str) -> EntitySchema:
        """Get a schema by entity name.

        Raises:
            EntityNotFoundError: If not registered
        """
        if name not in self._schemas:
            raise EntityNotFoundError(name, self.names())
        return self._schemas[name]

    def names(self) -> list[str]:
        return list(self._schemas)

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def __iter__(self) -> Iterator[EntitySchema]:
        return iter(self._schemas.values())

    def __len__(self) -> int:
        return len(self._schemas)
