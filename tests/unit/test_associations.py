"""Tests for shop associations."""

import pytest

from scopedb.core.types import AssociationType
from scopedb.exceptions import SchemaError
from scopedb.schema.associations import ShopAssociations
from scopedb.schema.registry import SchemaRegistry


@pytest.fixture
def testable_schema():
    return SchemaRegistry().register(
        {
            "name": "TestableObject",
            "table": "testable_object",
            "multilang": True,
            "multishop": True,
            "multilang_shop": True,
            "fields": [
                {"name": "name", "type": "string", "lang": True},
                {"name": "enabled", "type": "bool", "shop": True},
            ],
        }
    )


class TestShopAssociations:
    def test_add_table_association(self):
        associations = ShopAssociations()
        associations.add_table_association("testable_object", "shop")
        associations.add_table_association("testable_object_lang", AssociationType.FK_SHOP)

        assert associations.get("testable_object") == AssociationType.SHOP
        assert associations.is_associated("testable_object")
        assert associations.has_shop_key("testable_object_lang")
        assert not associations.has_shop_key("testable_object")
        assert associations.get("unknown") is None

    def test_same_association_twice(self):
        associations = ShopAssociations()
        associations.add_table_association("testable_object", "shop")
        associations.add_table_association("testable_object", "shop")
        assert associations.is_associated("testable_object")

    def test_conflicting_association(self):
        associations = ShopAssociations()
        associations.add_table_association("testable_object", "shop")
        with pytest.raises(SchemaError, match="already associated as 'shop'"):
            associations.add_table_association("testable_object", "fk_shop")

    def test_unknown_association_type(self):
        with pytest.raises(ValueError):
            ShopAssociations().add_table_association("testable_object", "warehouse")

    def test_frozen(self):
        associations = ShopAssociations()
        associations.freeze()
        assert associations.is_frozen
        with pytest.raises(SchemaError, match="frozen"):
            associations.add_table_association("testable_object", "shop")

    def test_register_schema(self, testable_schema):
        associations = ShopAssociations()
        associations.register_schema(testable_schema)
        assert associations.is_associated("testable_object")
        assert associations.has_shop_key("testable_object_lang")
        associations.check(testable_schema)

    def test_check_missing_fk_shop(self, testable_schema):
        associations = ShopAssociations()
        associations.add_table_association("testable_object", "shop")
        with pytest.raises(SchemaError, match="must be associated as 'fk_shop'"):
            associations.check(testable_schema)

    def test_check_unexpected_association(self):
        schema = SchemaRegistry().register(
            {"name": "Tag", "table": "tag", "multilang": True, "fields": [{"name": "label"}]}
        )
        associations = ShopAssociations()
        associations.add_table_association("tag_lang", "fk_shop")
        with pytest.raises(SchemaError, match="not multilang_shop"):
            associations.check(schema)
