# File: mapcheck/models.py
"""
mapcheck - Mapping Metadata Models
===================================
Pydantic V2 models describing ORM mapping metadata: entity classes, their
plain fields, their associations and the join columns / join tables that
back them.  These models are the read-only input of the consistency
validator; nothing in the validation pipeline mutates them.

The metadata graph is cyclic (associations point at target classes which
point back), so associations only carry the *name* of their target.  All
cross-class lookups go through ``MappingDefinition.get_class``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("mapcheck.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AssociationType(str, Enum):
    """Association cardinalities."""

    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"

    @classmethod
    def _missing_(cls, value: object) -> Optional["AssociationType"]:
        # Accept "one-to-many", "OneToMany", "ONE_TO_MANY" ...
        if isinstance(value, str):
            normalised: str = value.strip().replace("-", "_").lower()
            if "_" not in normalised:
                for member in cls:
                    if member.value.replace("_", "") == normalised:
                        return member
            for member in cls:
                if member.value == normalised:
                    return member
        return None


class OrderDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def _missing_(cls, value: object) -> Optional["OrderDirection"]:
        if isinstance(value, str):
            upper: str = value.strip().upper()
            for member in cls:
                if member.value == upper:
                    return member
        return None


_TO_ONE_TYPES: frozenset = frozenset(
    {AssociationType.ONE_TO_ONE, AssociationType.MANY_TO_ONE}
)
_TO_MANY_TYPES: frozenset = frozenset(
    {AssociationType.ONE_TO_MANY, AssociationType.MANY_TO_MANY}
)

# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    frozen=False,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Columns & fields
# ---------------------------------------------------------------------------


class FieldInfo(BaseModel):
    """A plain (non-association) mapped field."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Attribute name on the class.")
    column_name: Optional[str] = Field(
        default=None,
        alias="column",
        description="Column name (defaults to the attribute name).",
    )
    type: str = Field(default="string", description="Abstract column type.")
    nullable: bool = Field(default=False, description="Whether NULL is allowed.")
    inherited: bool = Field(
        default=False, description="Declared on (and stored by) a parent class."
    )

    @computed_field  # type: ignore[misc]
    @property
    def resolved_column_name(self) -> str:
        return self.column_name or self.name

    def __repr__(self) -> str:
        return f"<Field {self.name} ({self.resolved_column_name})>"


class JoinColumnInfo(BaseModel):
    """Local column referencing a column of the target class."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Local column name.")
    referenced_column_name: str = Field(
        default="id",
        min_length=1,
        alias="referenced_column",
        description="Referenced column on the target class.",
    )

    def __repr__(self) -> str:
        return f"<JoinColumn {self.name} → {self.referenced_column_name}>"


class JoinTableInfo(BaseModel):
    """Association table backing a many-to-many association."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Join table name.")
    join_columns: List[JoinColumnInfo] = Field(
        default_factory=list,
        description="Columns pointing at the source class identifier.",
    )
    inverse_join_columns: List[JoinColumnInfo] = Field(
        default_factory=list,
        description="Columns pointing at the target class identifier.",
    )


# ---------------------------------------------------------------------------
# Associations
# ---------------------------------------------------------------------------


class AssociationInfo(BaseModel):
    """
    One side of an association between two entity classes.

    ``mapped_by`` is set on the inverse side and names the owning field on
    the target; ``inversed_by`` is set on the owning side of a bidirectional
    association and names the inverse field on the target.
    """

    model_config = _SHARED_CONFIG

    field_name: str = Field(..., min_length=1, alias="name", description="Attribute name.")
    target_entity: str = Field(
        ..., min_length=1, alias="target", description="Target class name."
    )
    type: AssociationType = Field(..., description="Cardinality.")
    mapped_by: Optional[str] = Field(default=None, description="Owning field on target.")
    inversed_by: Optional[str] = Field(default=None, description="Inverse field on target.")
    owning_side: Optional[bool] = Field(
        default=None,
        description="Explicit owning-side flag (None = derive from mapped_by).",
    )
    id: bool = Field(default=False, description="Part of the class identifier?")
    join_columns: List[JoinColumnInfo] = Field(
        default_factory=list, description="Join columns (owning to-one side)."
    )
    join_table: Optional[JoinTableInfo] = Field(
        default=None, description="Join table (owning many-to-many side)."
    )
    order_by: Optional[Dict[str, OrderDirection]] = Field(
        default=None, description="Default ordering of the target collection."
    )

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, v: object) -> object:
        if isinstance(v, str):
            return AssociationType(v)
        return v

    @field_validator("order_by", mode="before")
    @classmethod
    def _normalise_order_by(cls, v: object) -> object:
        if isinstance(v, dict):
            return {
                key: OrderDirection(direction) if isinstance(direction, str) else direction
                for key, direction in v.items()
            }
        return v

    @computed_field  # type: ignore[misc]
    @property
    def is_owning_side(self) -> bool:
        if self.owning_side is not None:
            return self.owning_side
        return self.mapped_by is None and self.type != AssociationType.ONE_TO_MANY

    @computed_field  # type: ignore[misc]
    @property
    def is_to_one(self) -> bool:
        return self.type in _TO_ONE_TYPES

    @computed_field  # type: ignore[misc]
    @property
    def is_collection_valued(self) -> bool:
        return self.type in _TO_MANY_TYPES

    def referenced_column_names(self) -> List[str]:
        return [jc.referenced_column_name for jc in self.join_columns]

    def __repr__(self) -> str:
        return (
            f"<Association {self.field_name} ({self.type.value}) "
            f"→ {self.target_entity}>"
        )


# ---------------------------------------------------------------------------
# Entity class
# ---------------------------------------------------------------------------


class ClassInfo(BaseModel):
    """
    Mapping metadata of a single entity class.

    Field and association lists keep declaration order; that order is the
    order in which validation errors are reported.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Class name (unique).")
    table_name: Optional[str] = Field(
        default=None, alias="table", description="Mapped table name."
    )
    parent: Optional[str] = Field(
        default=None, description="Parent class in the type hierarchy."
    )
    fields: List[FieldInfo] = Field(default_factory=list, description="Plain fields.")
    associations: List[AssociationInfo] = Field(
        default_factory=list, description="Associations, in declaration order."
    )
    identifier: List[str] = Field(
        default_factory=list, description="Identifier field names."
    )
    sub_classes: List[str] = Field(
        default_factory=list, description="Discriminator-map subclasses."
    )
    transient: bool = Field(
        default=False, description="Known class that is not a mapped entity."
    )

    _field_map: Dict[str, FieldInfo] = {}
    _association_map: Dict[str, AssociationInfo] = {}

    @model_validator(mode="after")
    def _apply_default_join_columns(self) -> "ClassInfo":
        """
        Fill in the join columns an owning side leaves implicit.

        To-one: ``<field>_id`` → ``id``.  Many-to-many: table
        ``<source>_<target>`` with ``<source>_id`` / ``<target>_id`` columns,
        all lower-cased.
        """
        for assoc in self.associations:
            if not assoc.is_owning_side:
                continue
            if assoc.is_to_one and not assoc.join_columns:
                assoc.join_columns = [JoinColumnInfo(name=f"{assoc.field_name}_id")]
            elif assoc.type == AssociationType.MANY_TO_MANY:
                source: str = self.name.lower()
                target: str = assoc.target_entity.lower()
                if assoc.join_table is None:
                    assoc.join_table = JoinTableInfo(name=f"{source}_{target}")
                if not assoc.join_table.join_columns:
                    assoc.join_table.join_columns = [JoinColumnInfo(name=f"{source}_id")]
                if not assoc.join_table.inverse_join_columns:
                    assoc.join_table.inverse_join_columns = [
                        JoinColumnInfo(name=f"{target}_id")
                    ]
        return self

    @model_validator(mode="after")
    def _build_lookup_maps(self) -> "ClassInfo":
        object.__setattr__(self, "_field_map", {f.name: f for f in self.fields})
        object.__setattr__(
            self,
            "_association_map",
            {a.field_name: a for a in self.associations},
        )
        return self

    @model_validator(mode="after")
    def _validate_unique_attribute_names(self) -> "ClassInfo":
        names: List[str] = [f.name for f in self.fields] + [
            a.field_name for a in self.associations
        ]
        if len(names) != len(set(names)):
            dupes: List[str] = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(
                f"Class '{self.name}' declares attribute(s) more than once: {dupes}"
            )
        return self

    @model_validator(mode="after")
    def _validate_identifier_names(self) -> "ClassInfo":
        known: Set[str] = set(self._field_map) | set(self._association_map)
        missing: List[str] = [n for n in self.identifier if n not in known]
        if missing:
            raise ValueError(
                f"Identifier of class '{self.name}' references unknown "
                f"attribute(s): {missing}"
            )
        return self

    # -- Lookups -------------------------------------------------------------

    def has_field(self, name: str) -> bool:
        """True for plain mapped fields only (not associations)."""
        return name in self._field_map

    def has_association(self, name: str) -> bool:
        return name in self._association_map

    def get_field(self, name: str) -> Optional[FieldInfo]:
        return self._field_map.get(name)

    def get_association(self, name: str) -> Optional[AssociationInfo]:
        return self._association_map.get(name)

    def is_collection_valued_association(self, name: str) -> bool:
        assoc: Optional[AssociationInfo] = self.get_association(name)
        return assoc is not None and assoc.is_collection_valued

    def is_association_inverse_side(self, name: str) -> bool:
        assoc: Optional[AssociationInfo] = self.get_association(name)
        return assoc is not None and not assoc.is_owning_side

    @computed_field  # type: ignore[misc]
    @property
    def contains_foreign_identifier(self) -> bool:
        return any(self.has_association(n) for n in self.identifier)

    @computed_field  # type: ignore[misc]
    @property
    def resolved_table_name(self) -> str:
        return self.table_name or self.name.lower()

    def __repr__(self) -> str:
        return (
            f"<Class {self.name} "
            f"({len(self.fields)} fields, {len(self.associations)} assocs)>"
        )


# ---------------------------------------------------------------------------
# Run configuration
# ---------------------------------------------------------------------------


class CheckConfig(BaseModel):
    """Settings for a validation run (file ``config`` section + CLI overrides)."""

    model_config = _SHARED_CONFIG

    database_url: Optional[str] = Field(
        default=None, description="SQLAlchemy URL used for the schema sync check."
    )
    skip_mapping: bool = Field(default=False, description="Skip mapping validation.")
    skip_sync: Optional[bool] = Field(
        default=None,
        description="Skip the schema sync check (None = skip unless database_url).",
    )
    ignore_classes: List[str] = Field(
        default_factory=list, description="Classes left out of the report."
    )
    report_format: str = Field(default="text", description="'text' or 'json'.")

    @field_validator("report_format")
    @classmethod
    def _known_format(cls, v: str) -> str:
        if v not in ("text", "json"):
            raise ValueError(f"Unknown report format '{v}' (expected text or json).")
        return v

    @computed_field  # type: ignore[misc]
    @property
    def run_sync_check(self) -> bool:
        if self.skip_sync is not None:
            return not self.skip_sync
        return self.database_url is not None


# ---------------------------------------------------------------------------
# Mapping definition (top-level container)
# ---------------------------------------------------------------------------


class MappingDefinition(BaseModel):
    """
    The root model: every class known to the mapping.

    Invariant: ``_class_map`` is an O(1) name index built from ``classes``.
    """

    model_config = _SHARED_CONFIG

    classes: List[ClassInfo] = Field(
        default_factory=list, description="All known classes."
    )
    source: Optional[str] = Field(
        default=None, description="Where the mapping was loaded from."
    )

    _class_map: Dict[str, ClassInfo] = {}

    @model_validator(mode="after")
    def _validate_unique_class_names(self) -> "MappingDefinition":
        names: List[str] = [c.name for c in self.classes]
        if len(names) != len(set(names)):
            dupes: List[str] = [n for n in names if names.count(n) > 1]
            raise ValueError(f"Duplicate class names: {sorted(set(dupes))}")
        return self

    @model_validator(mode="after")
    def _build_class_map(self) -> "MappingDefinition":
        object.__setattr__(self, "_class_map", {c.name: c for c in self.classes})
        return self

    def get_class(self, name: str) -> Optional[ClassInfo]:
        return self._class_map.get(name)

    @computed_field  # type: ignore[misc]
    @property
    def class_names(self) -> List[str]:
        return [c.name for c in self.classes]

    @computed_field  # type: ignore[misc]
    @property
    def entities(self) -> List[ClassInfo]:
        """Mapped (non-transient) classes, in declaration order."""
        return [c for c in self.classes if not c.transient]

    @computed_field  # type: ignore[misc]
    @property
    def total_associations(self) -> int:
        return sum(len(c.associations) for c in self.classes)

    def __repr__(self) -> str:
        return (
            f"<MappingDefinition {len(self.classes)} classes, "
            f"{self.total_associations} associations>"
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "AssociationType",
    "OrderDirection",
    "FieldInfo",
    "JoinColumnInfo",
    "JoinTableInfo",
    "AssociationInfo",
    "ClassInfo",
    "CheckConfig",
    "MappingDefinition",
]

logger.debug("mapcheck.models loaded — %d public symbols.", len(__all__))
