# File: mapcheck/utils.py
"""
mapcheck - Utility Helpers
===========================
Small helpers shared by the CLI and report layers: a profiling timer and
``module:attribute`` object import for pointing the CLI at ORM models.
"""

from __future__ import annotations

import importlib
import logging
import time
from typing import Any, List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("mapcheck.utils")


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling validation steps.

    Usage:
        with Timer("validate mapping") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.info("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Object import
# ---------------------------------------------------------------------------


def import_object(path: str) -> Any:
    """
    Import ``package.module:attr`` (or ``package.module.attr``).

    Raises:
        ValueError: If the path is malformed or the attribute is missing.
        ImportError: If the module cannot be imported.
    """
    if ":" in path:
        module_name, _, attr_path = path.partition(":")
    else:
        module_name, _, attr_path = path.rpartition(".")

    if not module_name or not attr_path:
        raise ValueError(
            f"Expected 'module:attribute' or 'module.attribute', got '{path}'."
        )

    obj: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise ValueError(f"'{module_name}' has no attribute '{attr_path}'.") from exc

    logger.debug("Imported %s → %r", path, obj)
    return obj


__all__: List[str] = ["Timer", "import_object"]
