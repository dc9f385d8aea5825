# File: mapcheck/metadata.py
"""
mapcheck - Metadata Access Layer
=================================
Collaborator contracts consumed by the validator, plus the default
in-memory implementation backed by a ``MappingDefinition``.

    MetadataSource   — class lookup, transient checks, identifier columns
    TypeHierarchy    — ``is_ancestor_of(parent, child)``
    SchemaComparer   — pending changes between live schema and mapping

The validator only talks to these protocols, so tests (or an adapter for
another ORM) can swap the registry for anything that quacks the same.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence, Set, runtime_checkable

from mapcheck.models import AssociationInfo, ClassInfo, MappingDefinition

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("mapcheck.metadata")


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class MetadataSource(Protocol):
    """Read-only access to the mapped classes."""

    def get_all_classes(self) -> Sequence[ClassInfo]: ...

    def get_class(self, name: str) -> Optional[ClassInfo]: ...

    def is_transient(self, name: str) -> bool: ...

    def class_exists(self, name: str) -> bool: ...

    def get_identifier_columns(self, class_info: ClassInfo) -> List[str]: ...


@runtime_checkable
class TypeHierarchy(Protocol):
    """Answers whether one class is a proper ancestor of another."""

    def is_ancestor_of(self, parent: str, child: str) -> bool: ...


@runtime_checkable
class SchemaComparer(Protocol):
    """Counts the schema changes needed to bring the database up to date."""

    def pending_change_count(self, all_metadata: Sequence[ClassInfo]) -> int: ...


# ---------------------------------------------------------------------------
# Registry-backed implementation
# ---------------------------------------------------------------------------


class RegistryMetadataSource:
    """
    ``MetadataSource`` and ``TypeHierarchy`` over a ``MappingDefinition``.

    The type hierarchy comes from each class's declared ``parent``; the
    discriminator map (``sub_classes``) is *not* consulted, since that is
    exactly what the validator cross-checks against the hierarchy.
    """

    __slots__ = ("_mapping",)

    def __init__(self, mapping: MappingDefinition) -> None:
        self._mapping: MappingDefinition = mapping

    @property
    def mapping(self) -> MappingDefinition:
        return self._mapping

    # -- MetadataSource ------------------------------------------------------

    def get_all_classes(self) -> List[ClassInfo]:
        """All mapped entities; transient classes are not part of the metadata."""
        return self._mapping.entities

    def get_class(self, name: str) -> Optional[ClassInfo]:
        return self._mapping.get_class(name)

    def class_exists(self, name: str) -> bool:
        return self._mapping.get_class(name) is not None

    def is_transient(self, name: str) -> bool:
        class_info: Optional[ClassInfo] = self._mapping.get_class(name)
        return class_info is None or class_info.transient

    def get_identifier_columns(self, class_info: ClassInfo) -> List[str]:
        """
        Identifier column names of a class, in identifier declaration order.

        A plain identifier field contributes its column; an identifier
        association contributes its join columns.  A class that declares no
        identifier of its own uses its parent's (single/joined-table
        inheritance share the root identifier).
        """
        current: Optional[ClassInfo] = class_info
        seen: Set[str] = set()
        while current is not None and not current.identifier and current.parent:
            if current.name in seen:
                logger.warning(
                    "Inheritance cycle detected at class '%s'.", current.name
                )
                return []
            seen.add(current.name)
            current = self._mapping.get_class(current.parent)

        if current is None:
            return []

        columns: List[str] = []
        for name in current.identifier:
            field = current.get_field(name)
            if field is not None:
                columns.append(field.resolved_column_name)
                continue
            assoc: Optional[AssociationInfo] = current.get_association(name)
            if assoc is not None:
                columns.extend(jc.name for jc in assoc.join_columns)
        return columns

    # -- TypeHierarchy -------------------------------------------------------

    def parents_of(self, name: str) -> List[str]:
        """Ancestors of ``name``, nearest first (stops on unknown or cyclic links)."""
        parents: List[str] = []
        current: Optional[ClassInfo] = self._mapping.get_class(name)
        while current is not None and current.parent:
            if current.parent in parents or current.parent == name:
                break
            parents.append(current.parent)
            current = self._mapping.get_class(current.parent)
        return parents

    def is_ancestor_of(self, parent: str, child: str) -> bool:
        return parent in self.parents_of(child)

    def __repr__(self) -> str:
        return f"<RegistryMetadataSource {self._mapping!r}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MetadataSource",
    "TypeHierarchy",
    "SchemaComparer",
    "RegistryMetadataSource",
]
