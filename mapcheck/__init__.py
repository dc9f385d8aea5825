# File: mapcheck/__init__.py
"""
mapcheck — ORM Mapping Consistency Validator
=============================================

Inspects ORM mapping metadata and reports structural errors that cannot be
caught at ordinary runtime: inconsistent bidirectional associations, join
columns that do not reference primary keys, and discriminator maps that do
not match the class hierarchy.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ SchemaValidator │────▶│  MetadataSource  │
    │   (cli.py)   │     │ (validator.py)  │     │  (metadata.py)   │
    └──────────────┘     └───────┬────────┘     └──────────────────┘
                                 │
                    ┌────────────┼────────────┐
                    ▼            ▼            ▼
             ┌──────────┐ ┌───────────┐ ┌───────────┐
             │  loader  │ │  models   │ │   sqla    │
             │  (.py)   │ │  (.py)    │ │  (.py)    │
             └──────────┘ └───────────┘ └───────────┘

Usage::

    from mapcheck import RegistryMetadataSource, SchemaValidator, load_mapping
    mapping, config = load_mapping(Path("mapping.yaml"))
    errors = SchemaValidator(RegistryMetadataSource(mapping)).validate_mapping()

    python -m mapcheck -m mapping.yaml -v
"""

from __future__ import annotations

from typing import List

__version__: str = "1.0.0"
__license__: str = "MIT"

from mapcheck.exceptions import MappingCheckError, MappingLoadError, SchemaSyncError
from mapcheck.models import (
    AssociationInfo,
    AssociationType,
    CheckConfig,
    ClassInfo,
    FieldInfo,
    JoinColumnInfo,
    JoinTableInfo,
    MappingDefinition,
    OrderDirection,
)
from mapcheck.metadata import (
    MetadataSource,
    RegistryMetadataSource,
    SchemaComparer,
    TypeHierarchy,
)
from mapcheck.validator import SchemaValidator
from mapcheck.loader import load_mapping, load_mapping_file, parse_raw_mapping
from mapcheck.report import MappingReport, build_report

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "__version__",
    "__license__",
    # Validation
    "SchemaValidator",
    "MappingReport",
    "build_report",
    # Models
    "AssociationInfo",
    "AssociationType",
    "CheckConfig",
    "ClassInfo",
    "FieldInfo",
    "JoinColumnInfo",
    "JoinTableInfo",
    "MappingDefinition",
    "OrderDirection",
    # Metadata access
    "MetadataSource",
    "RegistryMetadataSource",
    "SchemaComparer",
    "TypeHierarchy",
    # Loading
    "load_mapping",
    "load_mapping_file",
    "parse_raw_mapping",
    # Errors
    "MappingCheckError",
    "MappingLoadError",
    "SchemaSyncError",
]
