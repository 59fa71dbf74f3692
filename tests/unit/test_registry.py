"""Tests for the schema registry and entity compilation."""

import pytest

from scopedb.core.types import EntitySpec, ScopeBucket
from scopedb.exceptions import EntityNotFoundError, FieldNotFoundError, SchemaError
from scopedb.schema.associations import ShopAssociations
from scopedb.schema.registry import SchemaRegistry, compile_spec
from scopedb.schema.tables import TableFactory


def _spec(**overrides):
    spec = {
        "name": "TestableObject",
        "table": "testable_object",
        "multilang": True,
        "multishop": True,
        "multilang_shop": True,
        "fields": [
            {"name": "quantity", "type": "int", "validate": "unsigned_float"},
            {"name": "name", "type": "string", "lang": True, "size": 128},
            {"name": "enabled", "type": "bool", "shop": True},
            {"name": "label", "type": "string", "lang": True, "shop": True},
        ],
    }
    spec.update(overrides)
    return spec


class TestCompileSpec:
    """Tests for declaration invariants."""

    def test_default_primary_key(self):
        schema = compile_spec(EntitySpec(**_spec()))
        assert schema.primary == "id_testable_object"
        assert schema.lang_table == "testable_object_lang"
        assert schema.shop_table == "testable_object_shop"

    def test_explicit_primary_key(self):
        schema = compile_spec(EntitySpec(**_spec(primary="object_id")))
        assert schema.primary == "object_id"

    def test_buckets(self):
        schema = compile_spec(EntitySpec(**_spec()))
        assert schema.get_field("quantity").bucket == ScopeBucket.GLOBAL
        assert schema.get_field("name").bucket == ScopeBucket.LANGUAGE
        assert schema.get_field("enabled").bucket == ScopeBucket.SHOP
        assert schema.get_field("label").bucket == ScopeBucket.LANGUAGE_SHOP
        lang_fields = schema.fields_in(ScopeBucket.LANGUAGE, ScopeBucket.LANGUAGE_SHOP)
        assert [f.name for f in lang_fields] == ["name", "label"]

    def test_lang_field_requires_multilang(self):
        with pytest.raises(SchemaError) as exc_info:
            compile_spec(EntitySpec(**_spec(multilang=False, multilang_shop=False)))
        errors = exc_info.value.context["errors"]
        assert any("'name' is per-language" in e for e in errors)

    def test_shop_field_requires_multishop(self):
        with pytest.raises(SchemaError) as exc_info:
            compile_spec(EntitySpec(**_spec(multishop=False)))
        errors = exc_info.value.context["errors"]
        assert "multilang_shop requires both multilang and multishop" in errors
        assert any("'enabled' is per-shop" in e for e in errors)

    def test_lang_shop_field_requires_multilang_shop(self):
        with pytest.raises(SchemaError, match="'label' is per-language and per-shop"):
            compile_spec(EntitySpec(**_spec(multilang_shop=False)))

    def test_reserved_names(self):
        fields = [{"name": "id_lang", "type": "int"}, {"name": "id", "type": "int"}]
        with pytest.raises(SchemaError) as exc_info:
            compile_spec(EntitySpec(**_spec(fields=fields)))
        assert len(exc_info.value.context["errors"]) == 2

    @pytest.mark.parametrize("name", ["values", "get", "schema", "shop_id", "to_dict", "_values"])
    def test_instance_attribute_names_are_reserved(self, name):
        fields = [{"name": name, "type": "string"}]
        with pytest.raises(SchemaError, match=f"field name '{name}' is reserved"):
            compile_spec(EntitySpec(**_spec(fields=fields)))

    def test_duplicate_field(self):
        fields = [{"name": "quantity", "type": "int"}, {"name": "quantity", "type": "float"}]
        with pytest.raises(SchemaError, match="declared twice"):
            compile_spec(EntitySpec(**_spec(fields=fields)))

    def test_size_only_on_text(self):
        fields = [{"name": "quantity", "type": "int", "size": 10}]
        with pytest.raises(SchemaError, match="has a size"):
            compile_spec(EntitySpec(**_spec(fields=fields)))

    def test_unknown_rule(self):
        fields = [{"name": "quantity", "type": "int", "validate": "is_prime"}]
        with pytest.raises(SchemaError, match="unknown rule 'is_prime'"):
            compile_spec(EntitySpec(**_spec(fields=fields)))

    def test_schema_is_immutable(self):
        schema = compile_spec(EntitySpec(**_spec()))
        with pytest.raises(TypeError):
            schema.fields["extra"] = schema.fields["name"]

    def test_to_info_tables(self):
        registry = SchemaRegistry()
        schema = registry.register(_spec())
        associations = ShopAssociations()
        associations.register_schema(schema)
        tables = TableFactory(registry, associations).for_entity(schema)

        info = schema.to_info(tables.layout())
        assert info.tables == {
            "testable_object": ["id_testable_object", "quantity"],
            "testable_object_shop": ["id_testable_object", "id_shop", "enabled"],
            "testable_object_lang": ["id_testable_object", "id_lang", "id_shop", "name", "label"],
        }
        assert [f.bucket for f in info.fields] == ["global", "language", "shop", "language_shop"]

    def test_to_info_lang_key_follows_associations(self):
        spec = _spec(
            multilang_shop=False,
            fields=[
                {"name": "quantity", "type": "int"},
                {"name": "name", "type": "string", "lang": True},
            ],
        )
        registry = SchemaRegistry()
        schema = registry.register(spec)
        associations = ShopAssociations()
        associations.register_schema(schema)
        tables = TableFactory(registry, associations).for_entity(schema)

        info = schema.to_info(tables.layout())
        assert info.tables["testable_object_lang"] == ["id_testable_object", "id_lang", "name"]


class TestSchemaRegistry:
    """Tests for SchemaRegistry."""

    def test_register_and_get(self):
        registry = SchemaRegistry()
        schema = registry.register(_spec())
        assert registry.get("TestableObject") is schema
        assert "TestableObject" in registry
        assert registry.names() == ["TestableObject"]
        assert len(registry) == 1

    def test_register_spec_object(self):
        registry = SchemaRegistry()
        registry.register(EntitySpec(name="Tag", table="tag", fields=[{"name": "label"}]))
        assert registry.get("Tag").primary == "id_tag"

    def test_unknown_entity(self):
        registry = SchemaRegistry()
        registry.register(_spec())
        with pytest.raises(EntityNotFoundError) as exc_info:
            registry.get("Product")
        assert exc_info.value.available_entities == ["TestableObject"]

    def test_unknown_field(self):
        schema = SchemaRegistry().register(_spec())
        with pytest.raises(FieldNotFoundError) as exc_info:
            schema.get_field("price")
        assert "quantity" in exc_info.value.available_fields

    def test_duplicate_name(self):
        registry = SchemaRegistry()
        registry.register(_spec())
        with pytest.raises(SchemaError, match="already registered"):
            registry.register(_spec(table="other"))

    def test_duplicate_table(self):
        registry = SchemaRegistry()
        registry.register(_spec())
        with pytest.raises(SchemaError, match="already used"):
            registry.register(_spec(name="Other"))

    def test_frozen(self):
        registry = SchemaRegistry()
        registry.freeze()
        assert registry.is_frozen
        with pytest.raises(SchemaError, match="frozen"):
            registry.register(_spec())

    def test_custom_rules(self, registry):
        from scopedb.validation import ValidationRules

        rules = ValidationRules()
        rules.add("sku", lambda v: str(v).isupper())
        custom = SchemaRegistry(rules)
        custom.register(
            {"name": "Item", "table": "item", "fields": [{"name": "sku", "validate": "sku"}]}
        )
        assert custom.get("Item").get_field("sku").rule == "sku"
        # default rules know nothing about "sku"
        with pytest.raises(SchemaError):
            registry.register(
                {"name": "Item", "table": "item", "fields": [{"name": "sku", "validate": "sku"}]}
            )
