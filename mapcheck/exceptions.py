# File: mapcheck/exceptions.py
"""
mapcheck - Exceptions
======================
Exception hierarchy for failures of the tooling itself.  Mapping
inconsistencies are never raised; they are reported as data by
``mapcheck.validator``.
"""

from __future__ import annotations

from typing import List


class MappingCheckError(Exception):
    """Base exception for mapcheck errors."""

    pass


class MappingLoadError(MappingCheckError, ValueError):
    """A mapping document could not be read or parsed."""

    pass


class SchemaSyncError(MappingCheckError):
    """The live schema could not be compared against the mapping."""

    pass


__all__: List[str] = [
    "MappingCheckError",
    "MappingLoadError",
    "SchemaSyncError",
]
