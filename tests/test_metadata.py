"""
tests/test_metadata.py
Unit tests for mapcheck.metadata.RegistryMetadataSource.
"""

from __future__ import annotations

from typing import Callable

from mapcheck.metadata import (
    MetadataSource,
    RegistryMetadataSource,
    TypeHierarchy,
)
from mapcheck.models import ClassInfo, MappingDefinition


class TestProtocols:
    def test_registry_satisfies_both_protocols(
        self, blog_source: RegistryMetadataSource
    ) -> None:
        assert isinstance(blog_source, MetadataSource)
        assert isinstance(blog_source, TypeHierarchy)


class TestClassLookup:
    def test_all_classes_skip_transient(self, blog_source: RegistryMetadataSource) -> None:
        names = [c.name for c in blog_source.get_all_classes()]
        assert names == [
            "User", "Article", "Comment", "Group", "Profile", "Content", "Page", "Post",
        ]

    def test_transient_and_unknown(self, blog_source: RegistryMetadataSource) -> None:
        assert blog_source.class_exists("Money")
        assert blog_source.is_transient("Money")
        assert not blog_source.class_exists("Nobody")
        assert blog_source.is_transient("Nobody")
        assert not blog_source.is_transient("User")


class TestIdentifierColumns:
    def test_column_names_not_attribute_names(
        self, make_class: Callable[..., ClassInfo]
    ) -> None:
        item = ClassInfo.model_validate(
            {
                "name": "Item",
                "fields": [{"name": "code", "column": "item_code"}, {"name": "rev"}],
                "identifier": ["code", "rev"],
            }
        )
        source = RegistryMetadataSource(MappingDefinition(classes=[item]))
        assert source.get_identifier_columns(item) == ["item_code", "rev"]

    def test_association_identifier_contributes_join_columns(
        self, make_class: Callable[..., ClassInfo]
    ) -> None:
        user = make_class("User")
        profile = make_class(
            "Profile",
            fields=[],
            identifier=["user"],
            associations=[
                {
                    "name": "user",
                    "target": "User",
                    "type": "one_to_one",
                    "id": True,
                    "join_columns": [{"name": "user_id", "referenced_column": "id"}],
                }
            ],
        )
        source = RegistryMetadataSource(MappingDefinition(classes=[user, profile]))
        assert source.get_identifier_columns(profile) == ["user_id"]

    def test_subclass_uses_root_identifier(self, blog_source: RegistryMetadataSource) -> None:
        page = blog_source.get_class("Page")
        assert page is not None
        assert blog_source.get_identifier_columns(page) == ["id"]

    def test_inheritance_cycle_yields_nothing(
        self, make_class: Callable[..., ClassInfo]
    ) -> None:
        a = make_class("A", fields=[], parent="B")
        b = make_class("B", fields=[], parent="A")
        source = RegistryMetadataSource(MappingDefinition(classes=[a, b]))
        assert source.get_identifier_columns(a) == []


class TestHierarchy:
    def test_parents_nearest_first(self, make_class: Callable[..., ClassInfo]) -> None:
        root = make_class("Root")
        mid = make_class("Mid", fields=[], parent="Root")
        leaf = make_class("Leaf", fields=[], parent="Mid")
        source = RegistryMetadataSource(MappingDefinition(classes=[root, mid, leaf]))
        assert source.parents_of("Leaf") == ["Mid", "Root"]
        assert source.is_ancestor_of("Root", "Leaf")
        assert not source.is_ancestor_of("Leaf", "Root")

    def test_class_is_not_its_own_ancestor(self, blog_source: RegistryMetadataSource) -> None:
        assert not blog_source.is_ancestor_of("Content", "Content")

    def test_cycle_terminates(self, make_class: Callable[..., ClassInfo]) -> None:
        a = make_class("A", fields=[], parent="B")
        b = make_class("B", fields=[], parent="A")
        source = RegistryMetadataSource(MappingDefinition(classes=[a, b]))
        assert source.parents_of("A") == ["B"]
