# File: mapcheck/validator.py
"""
mapcheck - Mapping Consistency Validator
=========================================
Strict validation of ORM mapping metadata.  Several checks cannot be done
at runtime (or are too expensive there) and are verified here instead:

1. An association with ``mapped_by`` really is connected to that field.
2. ``mapped_by`` and ``inversed_by`` are consistent with each other.
3. Referenced join columns really point at primary key columns.
4. Discriminator-map subclasses really inherit from the declaring class.

Every rule is a small function that appends human-readable messages to a
shared list.  ``SchemaValidator.validate_class`` calls them in a fixed
order, so the messages of a class always come out in check order, and
associations in declaration order.

Violations are data: nothing here raises for an inconsistent mapping.

Usage::

    from mapcheck.validator import SchemaValidator
    errors = SchemaValidator(source).validate_mapping()
    for class_name, messages in errors.items():
        ...
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from mapcheck.exceptions import SchemaSyncError
from mapcheck.metadata import MetadataSource, SchemaComparer, TypeHierarchy
from mapcheck.models import AssociationInfo, AssociationType, ClassInfo, JoinColumnInfo

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("mapcheck.validator")

# Owning-side kind → required kind of the inverse side, with message suffix.
_INVERSE_KIND: Dict[AssociationType, tuple] = {
    AssociationType.ONE_TO_ONE: (
        AssociationType.ONE_TO_ONE,
        "is one-to-one, then the inversed side {side} has to be one-to-one as well.",
    ),
    AssociationType.MANY_TO_ONE: (
        AssociationType.ONE_TO_MANY,
        "is many-to-one, then the inversed side {side} has to be one-to-many.",
    ),
    AssociationType.MANY_TO_MANY: (
        AssociationType.MANY_TO_MANY,
        "is many-to-many, then the inversed side {side} has to be many-to-many as well.",
    ),
}


def _missing(required: Sequence[str], present: Sequence[str]) -> List[str]:
    """Entries of ``required`` absent from ``present``, keeping order."""
    present_set = set(present)
    return [c for c in required if c not in present_set]


# ---------------------------------------------------------------------------
# Individual rules
# ---------------------------------------------------------------------------


def check_target_entity(
    class_info: ClassInfo,
    assoc: AssociationInfo,
    source: MetadataSource,
    errors: List[str],
) -> Optional[ClassInfo]:
    """
    Resolve the target class of ``assoc``.

    Returns the target metadata, or ``None`` after recording an error when
    the target is unknown or transient.
    """
    target: str = assoc.target_entity
    if not source.class_exists(target) or source.is_transient(target):
        errors.append(
            f"The target entity '{target}' specified on "
            f"{class_info.name}#{assoc.field_name} is unknown or not an entity."
        )
        return None
    return source.get_class(target)


def check_owning_and_inverse(
    class_info: ClassInfo, assoc: AssociationInfo, errors: List[str]
) -> None:
    if assoc.mapped_by and assoc.inversed_by:
        errors.append(
            f"The association {class_info.name}#{assoc.field_name} cannot be "
            f"defined as both inverse and owning."
        )


def check_identifier_chain(
    class_info: ClassInfo,
    assoc: AssociationInfo,
    target_info: ClassInfo,
    errors: List[str],
) -> None:
    if assoc.id and target_info.contains_foreign_identifier:
        errors.append(
            f"Cannot map association '{class_info.name}#{assoc.field_name} as "
            f"identifier, because the target entity '{target_info.name}' also "
            f"maps an association as identifier."
        )


def check_mapped_by(
    class_info: ClassInfo,
    assoc: AssociationInfo,
    target_info: ClassInfo,
    errors: List[str],
) -> None:
    """Inverse side: the owning field must exist, be an association and point back."""
    mapped_by: Optional[str] = assoc.mapped_by
    if not mapped_by:
        return

    here: str = f"{class_info.name}#{assoc.field_name}"
    there: str = f"{assoc.target_entity}#{mapped_by}"

    if target_info.has_field(mapped_by):
        errors.append(
            f"The association {here} refers to the owning side field {there} "
            f"which is not defined as association, but as field."
        )

    owning: Optional[AssociationInfo] = target_info.get_association(mapped_by)
    if owning is None:
        errors.append(
            f"The association {here} refers to the owning side field {there} "
            f"which does not exist."
        )
    elif owning.inversed_by is None:
        errors.append(
            f"The field {here} is on the inverse side of a bi-directional "
            f"relationship, but the specified mappedBy association on the "
            f"target-entity {there} does not contain the required "
            f"'inversedBy=\"{assoc.field_name}\"' attribute."
        )
    elif owning.inversed_by != assoc.field_name:
        errors.append(
            f"The mappings {here} and {there} are inconsistent with each other."
        )


def check_inversed_by(
    class_info: ClassInfo,
    assoc: AssociationInfo,
    target_info: ClassInfo,
    errors: List[str],
) -> None:
    """Owning side: the inverse field must exist, be an association and point back."""
    inversed_by: Optional[str] = assoc.inversed_by
    if not inversed_by:
        return

    here: str = f"{class_info.name}#{assoc.field_name}"
    there: str = f"{assoc.target_entity}#{inversed_by}"

    if target_info.has_field(inversed_by):
        errors.append(
            f"The association {here} refers to the inverse side field {there} "
            f"which is not defined as association."
        )

    inverse: Optional[AssociationInfo] = target_info.get_association(inversed_by)
    if inverse is None:
        errors.append(
            f"The association {here} refers to the inverse side field {there} "
            f"which does not exist."
        )
    elif inverse.mapped_by is None:
        errors.append(
            f"The field {here} is on the owning side of a bi-directional "
            f"relationship, but the specified inversedBy association on the "
            f"target-entity {there} does not contain the required "
            f"'mappedBy=\"{assoc.field_name}\"' attribute."
        )
    elif inverse.mapped_by != assoc.field_name:
        errors.append(
            f"The mappings {here} and {there} are inconsistent with each other."
        )


def check_inverse_side_kind(
    class_info: ClassInfo,
    assoc: AssociationInfo,
    target_info: ClassInfo,
    errors: List[str],
) -> None:
    """The inverse side must be the structural counterpart of the owning side."""
    if not assoc.inversed_by:
        return
    inverse: Optional[AssociationInfo] = target_info.get_association(assoc.inversed_by)
    if inverse is None:
        return

    expected = _INVERSE_KIND.get(assoc.type)
    if expected is None:
        return
    required_kind, template = expected
    if inverse.type != required_kind:
        side: str = f"{target_info.name}#{assoc.inversed_by}"
        errors.append(
            f"If association {class_info.name}#{assoc.field_name} "
            + template.format(side=side)
        )


def check_join_columns(
    class_info: ClassInfo,
    assoc: AssociationInfo,
    target_info: ClassInfo,
    source: MetadataSource,
    errors: List[str],
) -> None:
    """Owning-side join columns must reference the identifier columns."""
    if not assoc.is_owning_side:
        return

    if assoc.type == AssociationType.MANY_TO_MANY:
        _check_join_table(class_info, assoc, target_info, source, errors)
    elif assoc.is_to_one:
        _check_to_one_join_columns(assoc, target_info, source, errors)


def _check_join_table(
    class_info: ClassInfo,
    assoc: AssociationInfo,
    target_info: ClassInfo,
    source: MetadataSource,
    errors: List[str],
) -> None:
    class_id_columns: List[str] = source.get_identifier_columns(class_info)
    target_id_columns: List[str] = source.get_identifier_columns(target_info)

    join_table = assoc.join_table
    table_name: str = join_table.name if join_table else ""
    join_columns: List[JoinColumnInfo] = join_table.join_columns if join_table else []
    inverse_join_columns: List[JoinColumnInfo] = (
        join_table.inverse_join_columns if join_table else []
    )

    # One message per side is enough; stop at the first bad reference.
    for jc in join_columns:
        if jc.referenced_column_name not in class_id_columns:
            errors.append(
                f"The referenced column name '{jc.referenced_column_name}' has "
                f"to be a primary key column on the target entity class "
                f"'{class_info.name}'."
            )
            break

    for jc in inverse_join_columns:
        if jc.referenced_column_name not in target_id_columns:
            errors.append(
                f"The referenced column name '{jc.referenced_column_name}' has "
                f"to be a primary key column on the target entity class "
                f"'{target_info.name}'."
            )
            break

    missing_target: List[str] = _missing(
        target_id_columns, [jc.referenced_column_name for jc in inverse_join_columns]
    )
    if missing_target:
        errors.append(
            f"The inverse join columns of the many-to-many table '{table_name}' "
            f"have to contain to ALL identifier columns of the target entity "
            f"'{target_info.name}', however '{', '.join(missing_target)}' are missing."
        )

    missing_source: List[str] = _missing(
        class_id_columns, [jc.referenced_column_name for jc in join_columns]
    )
    if missing_source:
        errors.append(
            f"The join columns of the many-to-many table '{table_name}' have to "
            f"contain to ALL identifier columns of the source entity "
            f"'{class_info.name}', however '{', '.join(missing_source)}' are missing."
        )


def _check_to_one_join_columns(
    assoc: AssociationInfo,
    target_info: ClassInfo,
    source: MetadataSource,
    errors: List[str],
) -> None:
    identifier_columns: List[str] = source.get_identifier_columns(target_info)

    for jc in assoc.join_columns:
        if jc.referenced_column_name not in identifier_columns:
            errors.append(
                f"The referenced column name '{jc.referenced_column_name}' has "
                f"to be a primary key column on the target entity class "
                f"'{target_info.name}'."
            )

    missing: List[str] = _missing(identifier_columns, assoc.referenced_column_names())
    if missing:
        errors.append(
            f"The join columns of the association '{assoc.field_name}' have to "
            f"match to ALL identifier columns of the target entity "
            f"'{target_info.name}', however '{', '.join(missing)}' are missing."
        )


def check_order_by(
    class_info: ClassInfo,
    assoc: AssociationInfo,
    target_info: ClassInfo,
    errors: List[str],
) -> None:
    """Ordering fields must be plain fields or owning to-one associations."""
    if not assoc.order_by:
        return

    here: str = f"{class_info.name}#{assoc.field_name}"
    for order_field in assoc.order_by:
        if not target_info.has_field(order_field) and not target_info.has_association(
            order_field
        ):
            errors.append(
                f"The association {here} is ordered by a foreign field "
                f"{order_field} that is not a field on the target entity "
                f"{target_info.name}."
            )
            continue
        if target_info.is_collection_valued_association(order_field):
            errors.append(
                f"The association {here} is ordered by a field {order_field} on "
                f"{target_info.name} that is a collection-valued association."
            )
            continue
        if target_info.is_association_inverse_side(order_field):
            errors.append(
                f"The association {here} is ordered by a field {order_field} on "
                f"{target_info.name} that is the inverse side of an association."
            )
            continue


def check_sub_classes(
    class_info: ClassInfo, hierarchy: TypeHierarchy, errors: List[str]
) -> None:
    for sub_class in class_info.sub_classes:
        if not hierarchy.is_ancestor_of(class_info.name, sub_class):
            errors.append(
                f"According to the discriminator map class '{sub_class}' has to "
                f"be a child of '{class_info.name}' but these entities are not "
                f"related through inheritance."
            )


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


class SchemaValidator:
    """
    Runs the rule battery over the classes of a ``MetadataSource``.

    Args:
        source: Metadata to validate.
        hierarchy: Type hierarchy used for the discriminator-map check;
            defaults to ``source`` when it implements ``is_ancestor_of``.
        comparer: Live-schema comparer backing ``schema_in_sync``.
    """

    def __init__(
        self,
        source: MetadataSource,
        hierarchy: Optional[TypeHierarchy] = None,
        comparer: Optional[SchemaComparer] = None,
    ) -> None:
        if hierarchy is None:
            if not isinstance(source, TypeHierarchy):
                raise TypeError(
                    f"{type(source).__name__} does not implement is_ancestor_of(); "
                    f"pass an explicit hierarchy."
                )
            hierarchy = source
        self.source: MetadataSource = source
        self.hierarchy: TypeHierarchy = hierarchy
        self.comparer: Optional[SchemaComparer] = comparer

    def validate_mapping(self) -> Dict[str, List[str]]:
        """
        Check every mapped class.

        Returns a mapping of class name to its error messages.  Classes
        without errors are absent, so an empty dict means a valid mapping.
        """
        errors: Dict[str, List[str]] = {}
        classes: Sequence[ClassInfo] = self.source.get_all_classes()

        for class_info in classes:
            class_errors: List[str] = self.validate_class(class_info)
            if class_errors:
                errors[class_info.name] = class_errors

        logger.info(
            "Validated %d class(es): %d with errors.", len(classes), len(errors)
        )
        return errors

    def validate_class(self, class_info: ClassInfo) -> List[str]:
        """Return the error messages for a single class, in check order."""
        ce: List[str] = []

        for assoc in class_info.associations:
            target_info: Optional[ClassInfo] = check_target_entity(
                class_info, assoc, self.source, ce
            )
            if target_info is None:
                # An unresolvable target ends the whole class, including the
                # remaining associations and the subclass check.
                logger.debug(
                    "Aborting checks of '%s' at unresolved association '%s'.",
                    class_info.name,
                    assoc.field_name,
                )
                return ce

            check_owning_and_inverse(class_info, assoc, ce)
            check_identifier_chain(class_info, assoc, target_info, ce)
            check_mapped_by(class_info, assoc, target_info, ce)
            check_inversed_by(class_info, assoc, target_info, ce)
            check_inverse_side_kind(class_info, assoc, target_info, ce)
            check_join_columns(class_info, assoc, target_info, self.source, ce)
            check_order_by(class_info, assoc, target_info, ce)

        check_sub_classes(class_info, self.hierarchy, ce)

        logger.debug("validate_class(%s): %d error(s).", class_info.name, len(ce))
        return ce

    def schema_in_sync(self) -> bool:
        """True when the live schema needs no changes to match the metadata."""
        if self.comparer is None:
            raise SchemaSyncError("No schema comparer configured for this validator.")
        pending: int = self.comparer.pending_change_count(self.source.get_all_classes())
        logger.info("Schema comparison: %d pending change(s).", pending)
        return pending == 0


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SchemaValidator",
    "check_target_entity",
    "check_owning_and_inverse",
    "check_identifier_chain",
    "check_mapped_by",
    "check_inversed_by",
    "check_inverse_side_kind",
    "check_join_columns",
    "check_order_by",
    "check_sub_classes",
]
