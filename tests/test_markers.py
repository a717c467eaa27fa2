"""Tests for marker types and class decorators."""

from __future__ import annotations

import pytest

from sqlshaman.markers import (
    FullTextIndex,
    Index,
    IndexType,
    Keyless,
    MaxLength,
    Table,
    UniqueIndex,
    keyless,
    table,
    type_markers,
)


@table("People", schema="hr")
class Person:
    pass


@keyless
class Employee(Person):
    pass


class TestTypeMarkers:
    def test_table_decorator(self) -> None:
        assert type_markers(Person) == (Table(name="People", schema="hr"),)

    def test_markers_are_not_inherited(self) -> None:
        assert type_markers(Employee) == (Keyless(),)
        assert type_markers(Person) == (Table(name="People", schema="hr"),)

    def test_undecorated_class(self) -> None:
        assert type_markers(object) == ()


class TestPropertyMarkers:
    @pytest.mark.parametrize(
        ("marker", "index_type"),
        [
            (Index(), IndexType.INDEX),
            (UniqueIndex("UX_Name"), IndexType.UNIQUE_INDEX),
            (FullTextIndex(full_text_catalog="docs"), IndexType.FULL_TEXT_INDEX),
        ],
    )
    def test_index_kinds(self, marker: Index, index_type: IndexType) -> None:
        assert marker.index_type is index_type

    def test_markers_are_immutable_values(self) -> None:
        assert MaxLength(10) == MaxLength(10)
        with pytest.raises(AttributeError):
            MaxLength(10).length = 11  # type: ignore[misc]
