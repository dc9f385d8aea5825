"""
tests/conftest.py
Shared fixtures for the mapcheck test suite.

Mapping documents are plain dicts (as they come out of YAML); the
``make_class`` / ``make_validator`` factories build models directly for
focused rule tests.
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest
import yaml

from mapcheck.metadata import RegistryMetadataSource
from mapcheck.models import ClassInfo, MappingDefinition
from mapcheck.validator import SchemaValidator


# ---------------------------------------------------------------------------
# Raw mapping documents
# ---------------------------------------------------------------------------


@pytest.fixture()
def blog_mapping_dict() -> Dict[str, Any]:
    """A consistent mapping exercising every association kind and inheritance."""
    return {
        "config": {"ignore_classes": []},
        "classes": [
            {
                "name": "User",
                "table": "users",
                "fields": [
                    {"name": "id", "type": "integer"},
                    {"name": "email", "type": "string"},
                ],
                "identifier": ["id"],
                "associations": [
                    {
                        "name": "articles",
                        "target": "Article",
                        "type": "one_to_many",
                        "mapped_by": "author",
                    },
                    {
                        "name": "groups",
                        "target": "Group",
                        "type": "many_to_many",
                        "inversed_by": "users",
                        "join_table": {
                            "name": "users_groups",
                            "join_columns": [
                                {"name": "user_id", "referenced_column": "id"}
                            ],
                            "inverse_join_columns": [
                                {"name": "group_id", "referenced_column": "id"}
                            ],
                        },
                    },
                    {
                        "name": "profile",
                        "target": "Profile",
                        "type": "one_to_one",
                        "mapped_by": "user",
                    },
                ],
            },
            {
                "name": "Article",
                "table": "articles",
                "fields": [
                    {"name": "id", "type": "integer"},
                    {"name": "title", "type": "string"},
                ],
                "identifier": ["id"],
                "associations": [
                    {
                        "name": "author",
                        "target": "User",
                        "type": "many_to_one",
                        "inversed_by": "articles",
                        "join_columns": [
                            {"name": "author_id", "referenced_column": "id"}
                        ],
                    },
                    {
                        "name": "comments",
                        "target": "Comment",
                        "type": "one-to-many",
                        "mapped_by": "article",
                        "order_by": {"posted_at": "desc"},
                    },
                ],
            },
            {
                "name": "Comment",
                "table": "comments",
                "fields": [
                    {"name": "id", "type": "integer"},
                    {"name": "body", "type": "text"},
                    {"name": "posted_at", "column": "posted", "type": "datetime"},
                ],
                "identifier": ["id"],
                "associations": [
                    {
                        "name": "article",
                        "target": "Article",
                        "type": "many_to_one",
                        "inversed_by": "comments",
                        "join_columns": [
                            {"name": "article_id", "referenced_column": "id"}
                        ],
                    }
                ],
            },
            {
                "name": "Group",
                "table": "groups",
                "fields": [
                    {"name": "id", "type": "integer"},
                    {"name": "name", "type": "string"},
                ],
                "identifier": ["id"],
                "associations": [
                    {
                        "name": "users",
                        "target": "User",
                        "type": "many_to_many",
                        "mapped_by": "groups",
                    }
                ],
            },
            {
                "name": "Profile",
                "table": "profiles",
                "fields": [
                    {"name": "id", "type": "integer"},
                    {"name": "bio", "type": "text", "nullable": True},
                ],
                "identifier": ["id"],
                "associations": [
                    {
                        "name": "user",
                        "target": "User",
                        "type": "one_to_one",
                        "inversed_by": "profile",
                        "join_columns": [
                            {"name": "user_id", "referenced_column": "id"}
                        ],
                    }
                ],
            },
            {
                "name": "Content",
                "table": "contents",
                "fields": [
                    {"name": "id", "type": "integer"},
                    {"name": "headline", "type": "string"},
                ],
                "identifier": ["id"],
                "sub_classes": ["Page", "Post"],
            },
            {
                "name": "Page",
                "table": "contents",
                "parent": "Content",
                "fields": [
                    {"name": "id", "type": "integer", "inherited": True},
                    {"name": "headline", "type": "string", "inherited": True},
                    {"name": "slug", "type": "string"},
                ],
            },
            {
                "name": "Post",
                "table": "contents",
                "parent": "Content",
                "fields": [
                    {"name": "id", "type": "integer", "inherited": True},
                    {"name": "headline", "type": "string", "inherited": True},
                ],
            },
            {"name": "Money", "transient": True},
        ],
    }


@pytest.fixture()
def blog_mapping(blog_mapping_dict: Dict[str, Any]) -> MappingDefinition:
    return MappingDefinition.model_validate(
        {"classes": copy.deepcopy(blog_mapping_dict["classes"])}
    )


@pytest.fixture()
def blog_source(blog_mapping: MappingDefinition) -> RegistryMetadataSource:
    return RegistryMetadataSource(blog_mapping)


@pytest.fixture()
def blog_yaml_path(
    blog_mapping_dict: Dict[str, Any], tmp_path: pathlib.Path
) -> pathlib.Path:
    """Write the blog mapping to a temporary YAML file and return its path."""
    path = tmp_path / "mapping.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(blog_mapping_dict, fh, default_flow_style=False, sort_keys=False)
    return path


@pytest.fixture()
def broken_mapping_dict() -> Dict[str, Any]:
    """X.y points at an inverse field that Y does not declare."""
    return {
        "classes": [
            {
                "name": "X",
                "fields": [{"name": "id", "type": "integer"}],
                "identifier": ["id"],
                "associations": [
                    {
                        "name": "y",
                        "target": "Y",
                        "type": "many_to_one",
                        "inversed_by": "xs",
                        "join_columns": [{"name": "y_id", "referenced_column": "id"}],
                    }
                ],
            },
            {
                "name": "Y",
                "fields": [{"name": "id", "type": "integer"}],
                "identifier": ["id"],
            },
        ]
    }


@pytest.fixture()
def broken_yaml_path(
    broken_mapping_dict: Dict[str, Any], tmp_path: pathlib.Path
) -> pathlib.Path:
    path = tmp_path / "broken.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(broken_mapping_dict, fh, default_flow_style=False, sort_keys=False)
    return path


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_class() -> Callable[..., ClassInfo]:
    """
    Build a ``ClassInfo`` with an integer ``id`` identifier by default.

    Extra keyword arguments are passed straight to the model.
    """

    def _make(
        name: str,
        fields: Sequence[str] = ("id",),
        identifier: Optional[Sequence[str]] = None,
        associations: Sequence[Dict[str, Any]] = (),
        **kwargs: Any,
    ) -> ClassInfo:
        if identifier is None:
            identifier = ["id"] if "id" in fields else []
        return ClassInfo.model_validate(
            {
                "name": name,
                "fields": [{"name": f} for f in fields],
                "identifier": list(identifier),
                "associations": list(associations),
                **kwargs,
            }
        )

    return _make


@pytest.fixture()
def make_validator() -> Callable[..., SchemaValidator]:
    """Wrap some ``ClassInfo`` objects in a registry-backed validator."""

    def _make(*classes: ClassInfo) -> SchemaValidator:
        mapping = MappingDefinition(classes=list(classes))
        return SchemaValidator(RegistryMetadataSource(mapping))

    return _make


@pytest.fixture()
def errors() -> List[str]:
    """Fresh error accumulator for single-rule tests."""
    return []
