"""Unit tests for the table schema validator."""

from __future__ import annotations

import pytest

from entity_spider.errors import (
    EmptySchemaError,
    InvalidIndexError,
    InvalidPrimaryError,
    InvalidUniqueError,
    InvalidUpdateColumnsError,
)
from entity_spider.model import Column, DataTypeNames, EntityDefine, TableInfo
from entity_spider.schema import ValidationRules, split_column_group, validate_entity_define


def _string(name: str, length: int = 50, **kwargs) -> Column:
    return Column(name=name, data_type=DataTypeNames.STRING, length=length, **kwargs)


def _entity(*columns: Column, table: TableInfo | None = None) -> EntityDefine:
    return EntityDefine(name="tests.Product", columns=tuple(columns), table_info=table)


def test_split_column_group_trims_and_deduplicates():
    assert split_column_group("a, a ,b") == ("a", "b")
    assert split_column_group(" , ") == ()
    assert split_column_group(None) == ()


def test_primary_and_unique_scenario_succeeds():
    entity = _entity(
        _string("Id", 50),
        _string("Name", 10),
        table=TableInfo(name="products", primary="Id", uniques=("Name",)),
    )

    validated = validate_entity_define(entity)

    assert validated.table_info.primary == "Id"
    assert validated.table_info.uniques == ("Name",)
    assert validated.column("Id").not_null is True
    assert validated.column("Name").not_null is False


def test_missing_primary_defaults_to_identity_column():
    entity = _entity(_string("Name"), table=TableInfo(name="products"))

    validated = validate_entity_define(entity)

    assert validated.table_info.primary == "__id"
    assert validated.table_info.primary_columns == ("__id",)


def test_blank_primary_defaults_to_identity_column():
    entity = _entity(_string("Name"), table=TableInfo(name="products", primary="  ,  "))

    assert validate_entity_define(entity).table_info.primary == "__id"


def test_identity_column_follows_rules():
    entity = _entity(_string("Name"), table=TableInfo(name="products"))

    validated = validate_entity_define(entity, ValidationRules(identity_column="row_id"))

    assert validated.table_info.primary == "row_id"


def test_composite_primary_is_normalized_and_forced_not_null():
    entity = _entity(
        _string("Site", 20),
        Column(name="Page", data_type=DataTypeNames.INT),
        _string("Title", 0),
        table=TableInfo(name="pages", primary=" Site , Page, Site"),
    )

    validated = validate_entity_define(entity)

    assert validated.table_info.primary == "Site,Page"
    assert validated.column("Site").not_null is True
    assert validated.column("Page").not_null is True
    assert validated.column("Title").not_null is False


def test_primary_referencing_missing_column_fails():
    entity = _entity(_string("Name"), table=TableInfo(name="products", primary="Sku"))

    with pytest.raises(InvalidPrimaryError):
        validate_entity_define(entity)


def test_primary_referencing_ignored_column_fails():
    entity = _entity(
        _string("Name"),
        _string("Sku", ignore_store=True),
        table=TableInfo(name="products", primary="Sku"),
    )

    with pytest.raises(InvalidPrimaryError):
        validate_entity_define(entity)


@pytest.mark.parametrize("length", [0, 257])
def test_string_primary_length_bound(length):
    entity = _entity(_string("Sku", length), table=TableInfo(name="products", primary="Sku"))

    with pytest.raises(InvalidPrimaryError):
        validate_entity_define(entity)


def test_string_primary_at_length_bound_is_accepted():
    entity = _entity(_string("Sku", 256), table=TableInfo(name="products", primary="Sku"))

    assert validate_entity_define(entity).table_info.primary == "Sku"


def test_no_storable_columns_fails():
    entity = _entity(
        _string("Name", ignore_store=True),
        _string("Sku", ignore_store=True),
        table=TableInfo(name="products"),
    )

    with pytest.raises(EmptySchemaError):
        validate_entity_define(entity)


def test_entity_without_table_info_is_returned_unchanged():
    entity = _entity(_string("Name"))

    assert validate_entity_define(entity) is entity


def test_entity_without_table_info_still_needs_storable_columns():
    with pytest.raises(EmptySchemaError):
        validate_entity_define(_entity(_string("Name", ignore_store=True)))


def test_update_columns_exclude_primary_key():
    entity = _entity(
        _string("Sku"),
        _string("Name"),
        Column(name="Price", data_type=DataTypeNames.FLOAT),
        table=TableInfo(name="products", primary="Sku", update_columns=("Sku", "Price", "Name", "Price")),
    )

    validated = validate_entity_define(entity)

    assert validated.table_info.update_columns == ("Price", "Name")


def test_update_columns_empty_after_excluding_primary_fails():
    entity = _entity(
        _string("Sku"),
        _string("Name"),
        table=TableInfo(name="products", primary="Sku", update_columns=("Sku",)),
    )

    with pytest.raises(InvalidUpdateColumnsError):
        validate_entity_define(entity)


def test_update_columns_referencing_missing_column_fails():
    entity = _entity(
        _string("Sku"),
        table=TableInfo(name="products", primary="Sku", update_columns=("Price",)),
    )

    with pytest.raises(InvalidUpdateColumnsError):
        validate_entity_define(entity)


def test_index_on_primary_alone_is_rejected():
    entity = _entity(
        _string("Id"),
        _string("Name"),
        table=TableInfo(name="products", primary="Id", indexs=("Id",)),
    )

    with pytest.raises(InvalidIndexError):
        validate_entity_define(entity)


def test_unique_on_primary_alone_is_rejected():
    entity = _entity(
        _string("Id"),
        _string("Name"),
        table=TableInfo(name="products", primary="Id", uniques=(" Id ",)),
    )

    with pytest.raises(InvalidUniqueError):
        validate_entity_define(entity)


def test_index_groups_are_normalized():
    entity = _entity(
        _string("a", 10),
        _string("b", 10),
        Column(name="c", data_type=DataTypeNames.INT),
        table=TableInfo(name="t", indexs=("a, a ,b", "c", "a,b"), uniques=("b , c",)),
    )

    validated = validate_entity_define(entity)

    assert validated.table_info.indexs == ("a,b", "c")
    assert validated.table_info.uniques == ("b,c",)


def test_composite_index_containing_primary_is_accepted():
    entity = _entity(
        _string("Id"),
        _string("Name"),
        table=TableInfo(name="products", primary="Id", indexs=("Id,Name",)),
    )

    assert validate_entity_define(entity).table_info.indexs == ("Id,Name",)


def test_empty_index_group_fails():
    entity = _entity(_string("Name"), table=TableInfo(name="products", indexs=(" , ",)))

    with pytest.raises(InvalidIndexError):
        validate_entity_define(entity)


def test_index_referencing_missing_column_fails():
    entity = _entity(_string("Name"), table=TableInfo(name="products", indexs=("Name,Sku",)))

    with pytest.raises(InvalidIndexError):
        validate_entity_define(entity)


@pytest.mark.parametrize("length", [0, 300])
def test_unique_string_length_bound(length):
    entity = _entity(
        _string("Name", length),
        _string("Sku"),
        table=TableInfo(name="products", uniques=("Name,Sku",)),
    )

    with pytest.raises(InvalidUniqueError):
        validate_entity_define(entity)


def test_non_string_index_columns_ignore_length_bound():
    entity = _entity(
        _string("Name"),
        Column(name="Price", data_type=DataTypeNames.FLOAT),
        table=TableInfo(name="products", indexs=("Price",)),
    )

    assert validate_entity_define(entity).table_info.indexs == ("Price",)


def test_failed_validation_leaves_input_untouched():
    table = TableInfo(name="products", primary=" Sku ", indexs=("Sku, Missing",))
    entity = _entity(_string("Sku"), table=table)

    with pytest.raises(InvalidIndexError):
        validate_entity_define(entity)

    assert entity.table_info is table
    assert entity.table_info.primary == " Sku "
    assert entity.column("Sku").not_null is False


def test_max_key_length_follows_rules():
    entity = _entity(_string("Sku", 100), table=TableInfo(name="products", primary="Sku"))

    with pytest.raises(InvalidPrimaryError):
        validate_entity_define(entity, ValidationRules(max_key_length=64))
