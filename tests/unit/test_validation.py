"""Tests for validation rules and value coercion."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from scopedb.core.types import FieldType
from scopedb.schema.registry import FieldDefinition
from scopedb.validation import ValidationRules, coerce_value, default_rules, validate_value


class TestValidationRules:
    """Tests for the named rule registry."""

    def test_builtin_rules(self):
        expected = {
            "int",
            "unsigned_int",
            "float",
            "unsigned_float",
            "price",
            "bool",
            "string",
            "catalog_name",
            "generic_name",
            "name",
            "email",
            "clean_html",
            "date",
        }
        assert expected <= set(default_rules)

    @pytest.mark.parametrize(
        "rule,value,expected",
        [
            ("unsigned_float", 42, True),
            ("unsigned_float", "3.5", True),
            ("unsigned_float", -1, False),
            ("unsigned_float", "abc", False),
            ("unsigned_int", 3, True),
            ("unsigned_int", -3, False),
            ("int", "12", True),
            ("int", True, False),
            ("bool", False, True),
            ("bool", "1", True),
            ("bool", "maybe", False),
            ("catalog_name", "Default name", True),
            ("catalog_name", "<b>bold</b>", False),
            ("email", "shop@example.com", True),
            ("email", "not-an-email", False),
            ("price", "19.99", True),
            ("price", "-2", False),
            ("clean_html", "<p>Hello</p>", True),
            ("clean_html", "<script>alert(1)</script>", False),
        ],
    )
    def test_builtin_rule_results(self, rule, value, expected):
        assert default_rules.check(rule, value) is expected

    def test_register_custom_rule(self):
        rules = ValidationRules()

        @rules.register("sku")
        def is_sku(value):
            return str(value).isupper()

        assert "sku" in rules
        assert rules.check("sku", "AB-12") is True
        assert rules.check("sku", "ab-12") is False

    def test_empty_registry(self):
        rules = ValidationRules(builtins=False)
        assert list(rules) == []

    def test_unknown_rule(self):
        with pytest.raises(KeyError, match="Unknown validation rule 'nope'"):
            default_rules.get("nope")


class TestCoerceValue:
    """Tests for casting values to storage types."""

    def test_int(self):
        assert coerce_value("42", FieldType.INT) == 42
        assert coerce_value(3.0, FieldType.INT) == 3
        with pytest.raises(ValueError):
            coerce_value(3.5, FieldType.INT)

    def test_bool(self):
        assert coerce_value("false", FieldType.BOOL) is False
        assert coerce_value("1", FieldType.BOOL) is True
        assert coerce_value(0, FieldType.BOOL) is False
        with pytest.raises(ValueError):
            coerce_value("maybe", FieldType.BOOL)

    def test_decimal(self):
        assert coerce_value("19.99", FieldType.DECIMAL) == Decimal("19.99")
        with pytest.raises(ValueError):
            coerce_value("price", FieldType.DECIMAL)

    def test_dates(self):
        assert coerce_value("2024-05-01", FieldType.DATE) == date(2024, 5, 1)
        assert coerce_value("2024-05-01T10:30:00", FieldType.DATETIME) == datetime(
            2024, 5, 1, 10, 30
        )

    def test_string(self):
        assert coerce_value(12, FieldType.STRING) == "12"

    def test_none_passes_through(self):
        assert coerce_value(None, FieldType.INT) is None


class TestValidateValue:
    """Tests for validating a single field value."""

    def test_valid_value_is_coerced(self):
        field = FieldDefinition(name="quantity", type=FieldType.INT, rule="unsigned_float")
        assert validate_value(field, "42", default_rules) == (42, None)

    def test_required(self):
        field = FieldDefinition(name="title", type=FieldType.STRING, required=True)
        assert validate_value(field, None, default_rules)[1] == "is required"
        assert validate_value(field, "", default_rules)[1] == "is required"

    def test_optional_none(self):
        field = FieldDefinition(name="title", type=FieldType.STRING)
        assert validate_value(field, None, default_rules) == (None, None)

    def test_type_error(self):
        field = FieldDefinition(name="quantity", type=FieldType.INT)
        _, error = validate_value(field, "many", default_rules)
        assert error is not None
        assert error.startswith("expected int")

    def test_size(self):
        field = FieldDefinition(name="name", type=FieldType.STRING, size=5)
        _, error = validate_value(field, "too long", default_rules)
        assert error == "is longer than 5 characters"

    def test_rule(self):
        field = FieldDefinition(name="quantity", type=FieldType.INT, rule="unsigned_float")
        _, error = validate_value(field, -3, default_rules)
        assert error == "failed rule 'unsigned_float'"

    @pytest.mark.parametrize(
        "field_type,rule,raw,expected",
        [
            (FieldType.BOOL, "bool", "true", True),
            (FieldType.BOOL, "bool", "off", False),
            (FieldType.DATE, "date", "2024-01-01", date(2024, 1, 1)),
        ],
    )
    def test_rule_checks_coerced_value(self, field_type, rule, raw, expected):
        field = FieldDefinition(name="value", type=field_type, rule=rule)
        assert validate_value(field, raw, default_rules) == (expected, None)
