"""Field validation for scopedb.

Validation runs in four steps per value, stopping at the first failure:
required, type coercion, size limit, named rule. All failures of a single
create/update are collected into one ValidationError so nothing is written.

Rules are plain predicates registered by name:

    rules = ValidationRules()

    @rules.register("sku")
    def is_sku(value):
        return bool(re.fullmatch(r"[A-Z0-9-]+", str(value)))
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from scopedb.core.types import FieldType

Rule = Callable[[Any], bool]

_CATALOG_NAME = re.compile(r"^[^<>;=#{}]*$")
_GENERIC_NAME = re.compile(r"^[^<>={}]*$")
_NAME = re.compile(r"^[^0-9!<>,;?=+()@#\"°{}_$%:]*$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PRICE = re.compile(r"^[0-9]{1,10}(\.[0-9]{1,9})?$")
_UNSAFE_HTML = re.compile(r"<\s*(script|iframe|object|embed)\b|\bon\w+\s*=|javascript:", re.I)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        float(value)
    except (TypeError, ValueError):
        return False
    return True


def _is_int(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and re.fullmatch(r"[+-]?[0-9]+", value) is not None


class ValidationRules:
    """Registry of named validation predicates."""

    def __init__(self, builtins: bool = True) -> None:
        self._rules: dict[str, Rule] = {}
        if builtins:
            self._register_builtins()

    def register(self, name: str) -> Callable[[Rule], Rule]:
        """Decorator registering `func` under `name` (replaces an existing rule)."""

        def decorator(func: Rule) -> Rule:
            self._rules[name] = func
            return func

        return decorator

    def add(self, name: str, func: Rule) -> None:
        self._rules[name] = func

    def get(self, name: str) -> Rule:
        """Get a rule by name.

        Raises:
            KeyError: If no rule has that name
        """
        try:
            return self._rules[name]
        except KeyError:
            raise KeyError(
                f"Unknown validation rule '{name}'. Known rules: {', '.join(sorted(self._rules))}"
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._rules))

    def check(self, name: str, value: Any) -> bool:
        return bool(self.get(name)(value))

    def _register_builtins(self) -> None:
        self.add("int", _is_int)
        self.add("unsigned_int", lambda v: _is_int(v) and int(v) >= 0)
        self.add("float", _is_number)
        self.add("unsigned_float", lambda v: _is_number(v) and float(v) >= 0)
        self.add("price", lambda v: _is_number(v) and _PRICE.match(str(v)) is not None)
        self.add("bool", lambda v: isinstance(v, bool) or v in (0, 1, "0", "1"))
        self.add("string", lambda v: isinstance(v, str))
        self.add("catalog_name", lambda v: _CATALOG_NAME.match(str(v)) is not None)
        self.add("generic_name", lambda v: _GENERIC_NAME.match(str(v)) is not None)
        self.add("name", lambda v: _NAME.match(str(v)) is not None)
        self.add("email", lambda v: _EMAIL.match(str(v)) is not None)
        self.add("clean_html", lambda v: _UNSAFE_HTML.search(str(v)) is None)
        self.add("date", lambda v: isinstance(v, date))


def coerce_value(value: Any, field_type: str) -> Any:
    """Cast a caller-supplied value to the field's storage type.

    Raises:
        ValueError: If the value cannot represent the type
    """
    if value is None:
        return None

    if field_type == FieldType.INT:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"{value!r} is not an integer")
        return int(value)
    elif field_type == FieldType.BOOL:
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off", ""):
                return False
            raise ValueError(f"{value!r} is not a boolean")
        return bool(value)
    elif field_type == FieldType.FLOAT:
        return float(value)
    elif field_type == FieldType.DECIMAL:
        try:
            return Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"{value!r} is not a decimal") from e
    elif field_type == FieldType.DATETIME:
        if isinstance(value, datetime):
            return value
        return datetime.fromisoformat(str(value))
    elif field_type == FieldType.DATE:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        return date.fromisoformat(str(value))
    else:
        # string, html
        return str(value)


def validate_value(
    field: Any,
    value: Any,
    rules: ValidationRules,
) -> tuple[Any, str | None]:
    """Validate and coerce one value of a field.

    Args:
        field: FieldDefinition being written
        value: Raw value
        rules: Rule registry to look the field's rule up in

    Returns:
        Tuple of (coerced value, error message or None)
    """
    if value is None or (isinstance(value, str) and value == "" and field.required):
        if field.required:
            return value, "is required"
        return None, None

    try:
        coerced = coerce_value(value, field.type)
    except (TypeError, ValueError) as e:
        return value, f"expected {field.type}: {e}"

    if field.size is not None and isinstance(coerced, str) and len(coerced) > field.size:
        return coerced, f"is longer than {field.size} characters"

    if field.rule and not rules.check(field.rule, coerced):
        return coerced, f"failed rule '{field.rule}'"

    return coerced, None


default_rules = ValidationRules()
