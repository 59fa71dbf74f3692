"""Core types and specifications for scopedb.

Specs are the declarative input format (pydantic, so they load straight from
dicts or JSON files). Info and report models are the output format.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class FieldType(StrEnum):
    """Supported storage types for entity fields."""

    INT = "int"
    BOOL = "bool"
    FLOAT = "float"
    DECIMAL = "decimal"
    STRING = "string"
    HTML = "html"
    DATE = "date"
    DATETIME = "datetime"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid field type values."""
        return [t.value for t in cls]


class ScopeBucket(StrEnum):
    """Which scope a field varies along."""

    GLOBAL = "global"  # one value per entity
    LANGUAGE = "language"  # one value per (entity, language)
    SHOP = "shop"  # one value per (entity, shop)
    LANGUAGE_SHOP = "language_shop"  # one value per (entity, language, shop)


class AssociationType(StrEnum):
    """How a table relates to shops."""

    SHOP = "shop"  # entity table with a <table>_shop association table
    FK_SHOP = "fk_shop"  # variant table carrying id_shop in its own key


class WriteOutcome(StrEnum):
    """What happened to a single write target."""

    INSERTED = "inserted"  # row key did not exist, row created
    UPDATED = "updated"  # row existed and at least one column changed
    UNCHANGED = "unchanged"  # row existed with identical values


class FieldSpec(BaseModel):
    """Specification for a field definition.

    `lang` and `shop` place the field in its scope bucket. `rule` names a
    validation rule and is also accepted under the key ``validate``.
    """

    name: str = Field(..., description="Field name (snake_case recommended)")
    type: FieldType = Field(default=FieldType.STRING, description="Storage type")
    lang: bool = Field(default=False, description="Value varies per language")
    shop: bool = Field(default=False, description="Value varies per shop")
    rule: str | None = Field(default=None, alias="validate", description="Validation rule")
    required: bool = Field(default=False, description="Whether a value is mandatory")
    size: int | None = Field(default=None, description="Maximum length for text fields")
    default: Any = Field(default=None, description="Value used when none is set or stored")
    description: str | None = Field(default=None, description="Human-readable description")

    model_config = {"use_enum_values": True, "populate_by_name": True}


class EntitySpec(BaseModel):
    """Specification for an entity type.

    Example:
        EntitySpec(
            name="TestableObject",
            table="testable_object",
            multilang=True,
            multishop=True,
            multilang_shop=True,
            fields=[
                {"name": "quantity", "type": "int", "validate": "unsigned_float"},
                {"name": "name", "type": "string", "lang": True, "size": 128},
                {"name": "enabled", "type": "bool", "shop": True},
            ],
        )
    """

    name: str = Field(..., description="Entity type name (PascalCase recommended)")
    table: str = Field(..., description="Base table name")
    primary: str | None = Field(default=None, description="Primary key column (id_<table>)")
    multilang: bool = Field(default=False, description="Has a <table>_lang table")
    multishop: bool = Field(default=False, description="Has a <table>_shop table")
    multilang_shop: bool = Field(
        default=False, description="Language rows are additionally keyed by shop"
    )
    fields: list[FieldSpec] = Field(default_factory=list, description="Field definitions")
    description: str | None = Field(default=None, description="Human-readable description")

    model_config = {"use_enum_values": True}


class FieldInfo(BaseModel):
    """Information about a registered field (output format)."""

    name: str
    type: str
    bucket: str
    rule: str | None = None
    required: bool
    size: int | None = None
    default: Any = None


class EntityInfo(BaseModel):
    """Information about a registered entity (output format)."""

    name: str
    table: str
    primary: str
    tables: dict[str, list[str]]
    fields: list[FieldInfo]


class TargetResult(BaseModel):
    """Outcome of one write target."""

    table: str
    entity_id: int
    language_id: int | None = None
    shop_id: int | None = None
    columns: list[str] = Field(default_factory=list)
    outcome: WriteOutcome


class UpdateReport(BaseModel):
    """Per-target outcomes of a single update() call.

    A report only exists for an update whose targets all went through; a
    failing target raises instead.
    """

    entity_name: str
    entity_id: int
    results: list[TargetResult] = Field(default_factory=list)

    @property
    def updated(self) -> list[TargetResult]:
        return [r for r in self.results if r.outcome == WriteOutcome.UPDATED]

    @property
    def inserted(self) -> list[TargetResult]:
        return [r for r in self.results if r.outcome == WriteOutcome.INSERTED]

    @property
    def unchanged(self) -> list[TargetResult]:
        return [r for r in self.results if r.outcome == WriteOutcome.UNCHANGED]
