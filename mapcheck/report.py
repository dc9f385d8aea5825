# File: mapcheck/report.py
"""
mapcheck - Validation Report
=============================
``MappingReport`` bundles the outcome of one run (mapping errors, schema
sync status, timing) and renders it as text or JSON.  It also owns the
exit-code convention used by the CLI:

    0 — mapping valid and schema in sync (or sync check skipped)
    1 — mapping has errors
    2 — schema out of sync
    3 — both
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from mapcheck.utils import Timer
from mapcheck.validator import SchemaValidator

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("mapcheck.report")

EXIT_MAPPING_INVALID: int = 1
EXIT_SCHEMA_OUT_OF_SYNC: int = 2


@dataclass(frozen=False, slots=True)
class MappingReport:
    """
    Outcome of a validation run.

    ``errors`` only holds classes with at least one message.  ``in_sync``
    is ``None`` when the schema sync check was skipped.
    """

    source: str = ""
    classes_checked: int = 0
    errors: Dict[str, List[str]] = field(default_factory=dict)
    ignored_classes: List[str] = field(default_factory=list)
    mapping_checked: bool = True
    in_sync: Optional[bool] = None
    elapsed_seconds: float = 0.0

    @property
    def error_count(self) -> int:
        return sum(len(msgs) for msgs in self.errors.values())

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def exit_code(self) -> int:
        code: int = 0
        if self.mapping_checked and not self.is_valid:
            code |= EXIT_MAPPING_INVALID
        if self.in_sync is False:
            code |= EXIT_SCHEMA_OUT_OF_SYNC
        return code

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        lines.append(f"{'='*60}")
        lines.append("  Mapping Validation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Source:   {self.source}")
        lines.append(f"  Classes:  {self.classes_checked}")
        lines.append(f"  Time:     {self.elapsed_seconds:.3f}s")

        if not self.mapping_checked:
            lines.append("  Mapping:  skipped")
        elif self.is_valid:
            lines.append("  Mapping:  OK")
        else:
            lines.append(
                f"  Mapping:  FAILED ({self.error_count} error(s) in "
                f"{len(self.errors)} class(es))"
            )

        if self.in_sync is None:
            lines.append("  Database: skipped")
        else:
            lines.append(f"  Database: {'in sync' if self.in_sync else 'OUT OF SYNC'}")

        for class_name, messages in self.errors.items():
            lines.append(f"{'─'*60}")
            lines.append(f"  [{class_name}]")
            for message in messages:
                lines.append(f"    ✗ {message}")

        if self.ignored_classes:
            lines.append(f"{'─'*60}")
            lines.append(f"  Ignored: {', '.join(self.ignored_classes)}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "classes_checked": self.classes_checked,
            "mapping_checked": self.mapping_checked,
            "valid": self.is_valid,
            "in_sync": self.in_sync,
            "error_count": self.error_count,
            "errors": self.errors,
            "ignored_classes": self.ignored_classes,
            "elapsed_seconds": round(self.elapsed_seconds, 6),
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


def build_report(
    validator: SchemaValidator,
    source: str = "",
    check_mapping: bool = True,
    check_sync: bool = False,
    class_name: Optional[str] = None,
    ignore_classes: Optional[List[str]] = None,
) -> MappingReport:
    """
    Run the requested checks and collect them into a ``MappingReport``.

    Args:
        class_name: Restrict mapping validation to one class.
        ignore_classes: Class names dropped from the error listing.

    Raises:
        KeyError: If ``class_name`` is not a known class.
        SchemaSyncError: If the sync check is requested but cannot run.
    """
    ignored: List[str] = list(ignore_classes or [])
    report: MappingReport = MappingReport(
        source=source,
        mapping_checked=check_mapping,
        ignored_classes=ignored,
    )

    with Timer("mapping report") as t:
        if check_mapping:
            if class_name is not None:
                class_info = validator.source.get_class(class_name)
                if class_info is None:
                    raise KeyError(class_name)
                messages: List[str] = validator.validate_class(class_info)
                report.errors = {class_name: messages} if messages else {}
                report.classes_checked = 1
            else:
                report.errors = validator.validate_mapping()
                report.classes_checked = len(validator.source.get_all_classes())

            for name in ignored:
                report.errors.pop(name, None)

        if check_sync:
            report.in_sync = validator.schema_in_sync()

    report.elapsed_seconds = t.elapsed
    logger.info(
        "Report: %d error(s), in_sync=%s, exit_code=%d",
        report.error_count,
        report.in_sync,
        report.exit_code,
    )
    return report


__all__: List[str] = [
    "MappingReport",
    "build_report",
    "EXIT_MAPPING_INVALID",
    "EXIT_SCHEMA_OUT_OF_SYNC",
]
