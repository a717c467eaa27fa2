"""Tests for scanner metadata entities."""

from __future__ import annotations

import pytest

from sqlshaman.markers import GeneratedOption, IndexType
from sqlshaman.scanner.accessors import ValueReader
from sqlshaman.scanner.models import (
    ColumnInfo,
    DbSetInfo,
    IndexFieldInfo,
    IndexInfo,
    ValueInfo,
    ValueInfoKind,
)


def _column(name: str, **kwargs: object) -> ColumnInfo:
    return ColumnInfo(
        property_name=name,
        column_name=name,
        python_type=str,
        column_index=0,
        value_reader=ValueReader(name),
        **kwargs,  # type: ignore[arg-type]
    )


class TestValueInfo:
    def test_literal(self) -> None:
        value = ValueInfo.literal(11)
        assert value.kind is ValueInfoKind.LITERAL
        assert value.to_dict() == {"Kind": "Literal", "LiteralValue": 11}

    def test_sql(self) -> None:
        value = ValueInfo.sql("getdate()")
        assert value.kind is ValueInfoKind.SQL
        assert value.to_dict() == {"Kind": "SqlExpression", "SqlText": "getdate()"}

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"kind": ValueInfoKind.SQL},
            {"kind": ValueInfoKind.SQL, "sql_text": ""},
            {"kind": ValueInfoKind.SQL, "sql_text": "1", "literal_value": 1},
            {"kind": ValueInfoKind.LITERAL, "sql_text": "1"},
        ],
    )
    def test_inconsistent_values_rejected(self, kwargs: dict[str, object]) -> None:
        with pytest.raises(ValueError):
            ValueInfo(**kwargs)  # type: ignore[arg-type]


class TestColumnInfo:
    def test_nullable_follows_not_null_seed(self) -> None:
        assert _column("a").is_nullable
        assert not _column("a", not_null=True).is_nullable

    def test_required_overrides_seed(self) -> None:
        assert not _column("a", is_required=True).is_nullable
        assert _column("a", not_null=True, is_required=False).is_nullable

    def test_primary_key_is_not_nullable(self) -> None:
        assert not _column("id", is_primary_key=True).is_nullable

    def test_generated_flags(self) -> None:
        identity = _column("id", value_generated=GeneratedOption.IDENTITY)
        computed = _column("total", value_generated=GeneratedOption.COMPUTED)
        none = _column("x", value_generated=GeneratedOption.NONE)

        assert identity.is_database_generated and identity.is_identity
        assert computed.is_database_generated and not computed.is_identity
        assert not none.is_database_generated


class TestIndexInfo:
    def test_field_names_and_dict(self) -> None:
        index = IndexInfo(
            index_name="IX_Name",
            fields=(IndexFieldInfo("last", 1), IndexFieldInfo("first", 2)),
        )
        assert index.field_names == ("last", "first")
        assert index.to_dict() == {
            "IndexName": "IX_Name",
            "Fields": [{"FieldName": "last"}, {"FieldName": "first"}],
            "IndexType": "Index",
        }

    def test_repeated_field_rejected(self) -> None:
        with pytest.raises(ValueError, match="repeats"):
            IndexInfo(index_name="IX", fields=(IndexFieldInfo("a"), IndexFieldInfo("a")))

    def test_catalog_required_for_full_text(self) -> None:
        with pytest.raises(ValueError):
            IndexInfo(
                index_name="",
                fields=(IndexFieldInfo("body"),),
                index_type=IndexType.FULL_TEXT_INDEX,
            )

    def test_catalog_rejected_for_plain_index(self) -> None:
        with pytest.raises(ValueError):
            IndexInfo(index_name="", fields=(IndexFieldInfo("body"),), full_text_catalog_name="cat")


class TestDbSetInfo:
    def test_lookup_helpers(self) -> None:
        renamed = _column("name")
        renamed.column_name = "Name"
        db_set = DbSetInfo(
            entity_type=object,
            table_name="Users",
            schema=None,
            columns=(_column("id", is_primary_key=True), renamed),
        )

        assert [c.column_name for c in db_set.primary_key_columns] == ["id"]
        assert db_set.column("Name") is renamed
        assert db_set.column_for_property("name") is renamed
        assert db_set.column("missing") is None
        assert db_set.qualified_name == "Users"

    def test_qualified_name_with_schema(self) -> None:
        db_set = DbSetInfo(entity_type=object, table_name="Users", schema="dbo", columns=())
        assert db_set.qualified_name == "dbo.Users"


class TestValueReader:
    def test_reads_attribute(self) -> None:
        class Row:
            name = "x"

        reader = ValueReader("name")
        assert reader(Row()) == "x"
        assert reader.read_property_value(Row()) == "x"
        assert repr(reader) == "ValueReader('name')"
