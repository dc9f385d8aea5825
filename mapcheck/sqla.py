# File: mapcheck/sqla.py
"""
mapcheck - SQLAlchemy Integration
==================================
Two collaborators backed by SQLAlchemy 2.0:

``mapping_from_registry``
    Builds a ``MappingDefinition`` from the mappers of a declarative
    registry, so the consistency rules can run against real ORM models.

``SqlAlchemySchemaComparer``
    Counts the differences between the mapped tables and a live database
    (missing tables, missing columns, unmapped columns) through
    ``sqlalchemy.inspect``.

Translating SQLAlchemy relationships into owning/inverse sides:

* ``MANYTOONE`` is the owning side (it holds the foreign key) and gets
  ``inversed_by`` when it has a ``back_populates``/``backref`` partner.
* ``ONETOMANY`` is the inverse side and gets ``mapped_by``; with
  ``uselist=False`` both sides of the pair are one-to-one.
* ``MANYTOMANY`` has no natural owner; the side whose class name (then
  attribute name) sorts first owns the join table.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Mapper, RelationshipProperty, configure_mappers
from sqlalchemy.orm.exc import UnmappedColumnError
from sqlalchemy.orm.interfaces import MANYTOMANY, MANYTOONE, ONETOMANY
from sqlalchemy.sql import operators
from sqlalchemy.sql.elements import UnaryExpression

from mapcheck.exceptions import MappingLoadError, SchemaSyncError
from mapcheck.models import (
    AssociationInfo,
    AssociationType,
    ClassInfo,
    FieldInfo,
    JoinColumnInfo,
    JoinTableInfo,
    MappingDefinition,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("mapcheck.sqla")


# ---------------------------------------------------------------------------
# Registry → MappingDefinition
# ---------------------------------------------------------------------------


def _mappers_of(base_or_registry: Any) -> List[Mapper]:
    """Accept a declarative base class or a ``registry`` instance."""
    registry = getattr(base_or_registry, "registry", base_or_registry)
    mappers = getattr(registry, "mappers", None)
    if mappers is None:
        raise MappingLoadError(
            f"{base_or_registry!r} is neither a declarative base nor a registry."
        )
    return sorted(mappers, key=lambda m: m.class_.__name__)


def _partner_key(rel: RelationshipProperty) -> Optional[str]:
    if rel.back_populates:
        return rel.back_populates
    backref = rel.backref
    if isinstance(backref, str):
        return backref
    if isinstance(backref, tuple) and backref:
        return backref[0]
    return None


def _partner_of(rel: RelationshipProperty) -> Optional[RelationshipProperty]:
    key: Optional[str] = _partner_key(rel)
    if key is None:
        return None
    relationships = rel.mapper.relationships
    return relationships[key] if key in relationships else None


def _association_type(rel: RelationshipProperty) -> AssociationType:
    if rel.direction is MANYTOMANY:
        return AssociationType.MANY_TO_MANY
    if rel.direction is ONETOMANY:
        return AssociationType.ONE_TO_MANY if rel.uselist else AssociationType.ONE_TO_ONE
    partner: Optional[RelationshipProperty] = _partner_of(rel)
    if partner is not None and partner.direction is ONETOMANY and not partner.uselist:
        return AssociationType.ONE_TO_ONE
    return AssociationType.MANY_TO_ONE


def _owns_many_to_many(rel: RelationshipProperty, partner_key: Optional[str]) -> bool:
    if partner_key is None:
        return True
    mine: Tuple[str, str] = (rel.parent.class_.__name__, rel.key)
    theirs: Tuple[str, str] = (rel.mapper.class_.__name__, partner_key)
    return mine <= theirs


def _order_by(rel: RelationshipProperty) -> Optional[Dict[str, str]]:
    if not rel.order_by:
        return None
    ordering: Dict[str, str] = {}
    for expr in rel.order_by:
        direction: str = "ASC"
        if isinstance(expr, UnaryExpression):
            if expr.modifier is operators.desc_op:
                direction = "DESC"
            expr = expr.element
        try:
            key: str = rel.mapper.get_property_by_column(expr).key
        except UnmappedColumnError:
            key = getattr(expr, "name", str(expr))
        ordering[key] = direction
    return ordering


def _field_from_property(mapper: Mapper, prop: Any) -> FieldInfo:
    local_cols = [c for c in prop.columns if getattr(c, "table", None) is mapper.local_table]
    column = local_cols[0] if local_cols else prop.columns[0]
    return FieldInfo(
        name=prop.key,
        column_name=getattr(column, "name", prop.key),
        type=type(getattr(column, "type", None)).__name__.lower(),
        nullable=bool(getattr(column, "nullable", True)),
        inherited=not local_cols,
    )


def _association_from_relationship(
    mapper: Mapper, rel: RelationshipProperty
) -> AssociationInfo:
    kind: AssociationType = _association_type(rel)
    partner_key: Optional[str] = _partner_key(rel)

    if rel.direction is MANYTOMANY:
        owning: bool = _owns_many_to_many(rel, partner_key)
    else:
        owning = rel.direction is MANYTOONE

    data: Dict[str, Any] = {
        "field_name": rel.key,
        "target_entity": rel.mapper.class_.__name__,
        "type": kind,
        "owning_side": owning,
        "order_by": _order_by(rel),
    }
    if partner_key is not None:
        data["inversed_by" if owning else "mapped_by"] = partner_key

    if owning and rel.direction is MANYTOONE:
        data["join_columns"] = [
            JoinColumnInfo(name=local.name, referenced_column_name=remote.name)
            for local, remote in rel.local_remote_pairs
        ]
        pk_columns: Set[Any] = set(mapper.primary_key)
        data["id"] = bool(rel.local_columns) and all(
            c in pk_columns for c in rel.local_columns
        )
    elif owning and rel.secondary is not None:
        data["join_table"] = JoinTableInfo(
            name=rel.secondary.name,
            join_columns=[
                JoinColumnInfo(name=dest.name, referenced_column_name=src.name)
                for src, dest in rel.synchronize_pairs
            ],
            inverse_join_columns=[
                JoinColumnInfo(name=dest.name, referenced_column_name=src.name)
                for src, dest in (rel.secondary_synchronize_pairs or [])
            ],
        )
    return AssociationInfo(**data)


def _identifier(
    mapper: Mapper, fields: List[FieldInfo], associations: List[AssociationInfo]
) -> List[str]:
    keys: List[str] = []
    for column in mapper.primary_key:
        key: str = mapper.get_property_by_column(column).key
        if key not in keys:
            keys.append(key)

    # An identifier association stands in for the FK columns it owns.
    column_to_field: Dict[str, str] = {f.resolved_column_name: f.name for f in fields}
    for assoc in associations:
        if not assoc.id:
            continue
        replaced: List[str] = [
            column_to_field[jc.name]
            for jc in assoc.join_columns
            if jc.name in column_to_field
        ]
        position: int = min((keys.index(k) for k in replaced if k in keys), default=len(keys))
        keys = [k for k in keys if k not in replaced]
        keys.insert(min(position, len(keys)), assoc.field_name)
    return keys


def class_from_mapper(mapper: Mapper) -> ClassInfo:
    """Translate one configured SQLAlchemy mapper into a ``ClassInfo``."""
    fields: List[FieldInfo] = [
        _field_from_property(mapper, prop) for prop in mapper.column_attrs
    ]
    associations: List[AssociationInfo] = [
        _association_from_relationship(mapper, rel) for rel in mapper.relationships
    ]

    sub_classes: List[str] = []
    if mapper.inherits is None and mapper.polymorphic_map:
        sub_classes = [
            m.class_.__name__
            for m in mapper.polymorphic_map.values()
            if m is not mapper
        ]

    return ClassInfo(
        name=mapper.class_.__name__,
        table_name=getattr(mapper.local_table, "name", None),
        parent=mapper.inherits.class_.__name__ if mapper.inherits is not None else None,
        fields=fields,
        associations=associations,
        identifier=_identifier(mapper, fields, associations),
        sub_classes=sub_classes,
    )


def mapping_from_registry(base_or_registry: Any) -> MappingDefinition:
    """
    Build a ``MappingDefinition`` from every mapper of a declarative registry.

    Raises:
        MappingLoadError: If SQLAlchemy cannot configure the mappers.
    """
    try:
        configure_mappers()
    except SQLAlchemyError as exc:
        raise MappingLoadError(f"SQLAlchemy mapper configuration failed: {exc}") from exc

    mappers: List[Mapper] = _mappers_of(base_or_registry)
    classes: List[ClassInfo] = [class_from_mapper(m) for m in mappers]
    logger.info("Read %d mapped class(es) from SQLAlchemy registry.", len(classes))
    return MappingDefinition(classes=classes, source=repr(base_or_registry))


# ---------------------------------------------------------------------------
# Live schema comparison
# ---------------------------------------------------------------------------


def expected_tables(all_metadata: Sequence[ClassInfo]) -> Dict[str, Set[str]]:
    """Table name → column names implied by the mapping metadata."""
    tables: Dict[str, Set[str]] = {}
    for class_info in all_metadata:
        columns: Set[str] = tables.setdefault(class_info.resolved_table_name, set())
        columns.update(
            f.resolved_column_name for f in class_info.fields if not f.inherited
        )
        for assoc in class_info.associations:
            if not assoc.is_owning_side:
                continue
            if assoc.is_to_one:
                columns.update(jc.name for jc in assoc.join_columns)
            elif assoc.join_table is not None:
                jt_columns: Set[str] = tables.setdefault(assoc.join_table.name, set())
                jt_columns.update(jc.name for jc in assoc.join_table.join_columns)
                jt_columns.update(jc.name for jc in assoc.join_table.inverse_join_columns)
    return tables


class SqlAlchemySchemaComparer:
    """
    ``SchemaComparer`` over a live database.

    Each missing table, missing column and unmapped database column counts
    as one pending change.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine: Engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> "SqlAlchemySchemaComparer":
        try:
            return cls(create_engine(database_url))
        except SQLAlchemyError as exc:
            raise SchemaSyncError(f"Cannot create engine for {database_url!r}: {exc}") from exc

    def pending_changes(self, all_metadata: Sequence[ClassInfo]) -> List[str]:
        """Describe every difference between mapping and database."""
        changes: List[str] = []
        try:
            inspector = inspect(self.engine)
            for table_name, columns in expected_tables(all_metadata).items():
                if not inspector.has_table(table_name):
                    changes.append(f"Table '{table_name}' missing from database")
                    continue
                db_columns: Set[str] = {
                    col["name"] for col in inspector.get_columns(table_name)
                }
                for name in sorted(columns - db_columns):
                    changes.append(f"Column '{table_name}.{name}' missing from database")
                for name in sorted(db_columns - columns):
                    changes.append(
                        f"Column '{table_name}.{name}' exists in database but not in mapping"
                    )
        except SQLAlchemyError as exc:
            raise SchemaSyncError(f"Schema comparison failed: {exc}") from exc

        for change in changes:
            logger.debug("Pending schema change: %s", change)
        return changes

    def pending_change_count(self, all_metadata: Sequence[ClassInfo]) -> int:
        return len(self.pending_changes(all_metadata))

    def __repr__(self) -> str:
        return f"<SqlAlchemySchemaComparer {self.engine.url!r}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "class_from_mapper",
    "mapping_from_registry",
    "expected_tables",
    "SqlAlchemySchemaComparer",
]
