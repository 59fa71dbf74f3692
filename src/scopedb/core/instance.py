"""Entity instances: field values plus identity and scope binding.

Field values are exposed as attributes. Per-language fields change shape with
the instance's binding:

    product = EntityInstance(schema)                 # no bound language
    product.name = {1: "Chair", 2: "Chaise"}
    product.get_localized("name")                    # PerLanguage({1: ..., 2: ...})

    product_fr = EntityInstance(schema, language_id=2)
    product_fr.name = "Chaise"
    product_fr.get_localized("name")                 # Scalar("Chaise")
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from scopedb.schema.registry import EntitySchema, FieldDefinition
from scopedb.scope.selector import FieldSelector

T = TypeVar("T")

_INTERNAL = frozenset(
    {"schema", "id", "language_id", "shop_id", "associated_shop_ids", "_values", "_selector"}
)


@dataclass(frozen=True)
class Scalar(Generic[T]):
    """Value of a field for a single context."""

    value: T


@dataclass(frozen=True)
class PerLanguage(Generic[T]):
    """Values of a per-language field keyed by language id."""

    values: Mapping[int, T] = field(default_factory=dict)

    def get(self, language_id: int, default: T | None = None) -> T | None:
        return self.values.get(language_id, default)


LocalizedValue = Scalar[Any] | PerLanguage[Any]


class EntityInstance:
    """Runtime holder of one entity's values, identity and context.

    Attributes:
        schema: EntitySchema of the entity type
        id: Primary key, None while transient (also readable as the primary
            key column name, e.g. ``instance.id_product``)
        language_id: Bound language, or None for per-language mappings
        shop_id: Bound shop, or None to target every associated shop
        associated_shop_ids: Shops the entity is (or will be) associated with
    """

    def __init__(
        self,
        schema: EntitySchema,
        language_id: int | None = None,
        shop_id: int | None = None,
        values: Mapping[str, Any] | None = None,
    ) -> None:
        object.__setattr__(self, "schema", schema)
        object.__setattr__(self, "id", None)
        object.__setattr__(self, "language_id", language_id)
        object.__setattr__(self, "shop_id", shop_id)
        object.__setattr__(self, "associated_shop_ids", [])
        object.__setattr__(self, "_values", {})
        object.__setattr__(self, "_selector", FieldSelector.ALL)
        if values:
            self.hydrate(values)

    # --- attribute surface ---

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        schema: EntitySchema = object.__getattribute__(self, "schema")
        if name in schema.fields:
            return self.get(name)
        if name == schema.primary:
            return object.__getattribute__(self, "id")
        raise AttributeError(f"'{schema.name}' instance has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self.schema.fields:
            self.set(name, value)
        elif name == self.schema.primary:
            object.__setattr__(self, "id", value)
        elif name == "associated_shop_ids":
            object.__setattr__(self, name, sorted({int(s) for s in value or []}))
        elif name in _INTERNAL:
            object.__setattr__(self, name, value)
        else:
            raise AttributeError(f"'{self.schema.name}' has no field '{name}'")

    # --- values ---

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    @property
    def is_language_bound(self) -> bool:
        return self.language_id is not None

    def _field(self, name: str) -> FieldDefinition:
        return self.schema.get_field(name)

    def has_value(self, name: str) -> bool:
        """Whether `name` was set by the caller or loaded from storage."""
        self._field(name)
        return name in self._values

    def get(self, name: str) -> Any:
        """Current value, in the shape the binding implies.

        Unset per-language fields read as an empty mapping when unbound; other
        unset fields read as the field default.
        """
        definition = self._field(name)
        if name in self._values:
            value = self._values[name]
            return dict(value) if isinstance(value, dict) else value
        if definition.lang and not self.is_language_bound:
            return {}
        return definition.default

    def set(self, name: str, value: Any) -> None:
        """Set a value, checking its shape against the binding.

        None on an unbound per-language field clears every language.

        Raises:
            TypeError: For a mapping on a bound instance or a scalar on an
                unbound one (per-language fields only)
        """
        definition = self._field(name)
        if definition.lang:
            if self.is_language_bound:
                if isinstance(value, Mapping):
                    raise TypeError(
                        f"'{name}' is bound to language {self.language_id}; "
                        "assign a single value, not a mapping"
                    )
            elif value is None:
                value = {}
            elif not isinstance(value, Mapping):
                raise TypeError(
                    f"'{name}' is per-language and no language is bound; "
                    "assign a mapping of language id to value"
                )
            if isinstance(value, Mapping):
                value = {int(lang): v for lang, v in value.items()}
        self._values[name] = value

    def unset(self, name: str) -> None:
        self._field(name)
        self._values.pop(name, None)

    def get_localized(self, name: str) -> LocalizedValue:
        """Explicitly tagged value: PerLanguage when unbound per-language, else Scalar."""
        definition = self._field(name)
        value = self.get(name)
        if definition.lang and not self.is_language_bound:
            return PerLanguage(dict(value or {}))
        return Scalar(value)

    def language_value(self, name: str, language_id: int) -> tuple[bool, Any]:
        """(present, value) of a per-language field for one language."""
        if name not in self._values:
            return False, None
        value = self._values[name]
        if self.is_language_bound:
            if language_id != self.language_id:
                return False, None
            return True, value
        if value is None or language_id not in value:
            return False, None
        return True, value[language_id]

    def languages_present(self) -> list[int]:
        """Languages this instance holds per-language values for."""
        if self.is_language_bound:
            return [self.language_id]
        languages: set[int] = set()
        for definition in self.schema.fields.values():
            value = self._values.get(definition.name)
            if definition.lang and isinstance(value, Mapping):
                languages.update(value)
        return sorted(languages)

    def shops_in_scope(self) -> list[int]:
        """Shops a write targets: the bound shop, else every associated shop."""
        if self.shop_id is not None:
            return [self.shop_id]
        return list(self.associated_shop_ids)

    def hydrate(self, data: Mapping[str, Any]) -> EntityInstance:
        """Set several values at once; ``id`` / the primary key name set the identity."""
        for name, value in data.items():
            if name in ("id", self.schema.primary):
                object.__setattr__(self, "id", value)
            else:
                self.set(name, value)
        return self

    def values(self) -> dict[str, Any]:
        return {name: self.get(name) for name in self._values}

    def to_dict(self) -> dict[str, Any]:
        """Identity plus every field value (defaults included)."""
        result: dict[str, Any] = {"id": self.id, self.schema.primary: self.id}
        for name in self.schema.fields:
            result[name] = self.get(name)
        return result

    # --- fields to update ---

    @property
    def fields_to_update(self) -> FieldSelector:
        return self._selector

    def set_fields_to_update(
        self, selector: FieldSelector | Mapping[str, Any] | None
    ) -> None:
        """Restrict the next update() to `selector`; None restores ALL."""
        selector = FieldSelector.coerce(selector)
        for name in selector.to_dict() or {}:
            self._field(name)
        object.__setattr__(self, "_selector", selector)

    def __repr__(self) -> str:
        context = []
        if self.language_id is not None:
            context.append(f"lang={self.language_id}")
        if self.shop_id is not None:
            context.append(f"shop={self.shop_id}")
        suffix = f" {' '.join(context)}" if context else ""
        return f"<{self.schema.name} id={self.id}{suffix}>"
