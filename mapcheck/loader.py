# File: mapcheck/loader.py
"""
mapcheck - Mapping Document Loader
===================================
Reads a declarative mapping document (YAML or JSON) and parses it into a
``MappingDefinition`` plus the run's ``CheckConfig``.

Expected layout::

    config:
      database_url: sqlite:///app.db
      ignore_classes: [LegacyThing]
    classes:
      - name: Article
        fields:
          - {name: id, type: integer}
        identifier: [id]
        associations:
          - name: author
            target: User
            type: many_to_one
            inversed_by: articles
            join_columns: [{name: author_id, referenced_column: id}]

``classes`` may also be a mapping keyed by class name; ``entities`` is
accepted as a synonym.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from mapcheck.exceptions import MappingLoadError
from mapcheck.models import CheckConfig, MappingDefinition

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("mapcheck.loader")


# ---------------------------------------------------------------------------
# File readers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file. Raises MappingLoadError on parse errors."""
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise MappingLoadError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise MappingLoadError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file. Raises MappingLoadError on parse errors."""
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise MappingLoadError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise MappingLoadError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_mapping_file(path: Path) -> Dict[str, Any]:
    """
    Load a mapping document (JSON or YAML), dispatching on file extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        MappingLoadError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Mapping file not found: {path}")

    if not path.is_file():
        raise MappingLoadError(f"Mapping path is not a file: {path}")

    suffix: str = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    elif suffix == ".json":
        return _load_json_file(path)
    else:
        logger.info("Unknown extension '%s' — trying JSON then YAML.", suffix)
        try:
            return _load_json_file(path)
        except MappingLoadError:
            return _load_yaml_file(path)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _normalise_classes(value: Any) -> List[Dict[str, Any]]:
    """Accept a list of class dicts or a mapping of name → class dict."""
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        classes: List[Dict[str, Any]] = []
        for name, body in value.items():
            if body is not None and not isinstance(body, dict):
                raise MappingLoadError(
                    f"Class '{name}' must be a mapping, got {type(body).__name__}."
                )
            entry: Dict[str, Any] = dict(body or {})
            entry.setdefault("name", name)
            classes.append(entry)
        return classes
    raise MappingLoadError(
        f"'classes' must be a list or a mapping, got {type(value).__name__}."
    )


def parse_raw_mapping(
    raw: Dict[str, Any], source: Optional[str] = None
) -> Tuple[MappingDefinition, CheckConfig]:
    """
    Parse a raw dictionary (from JSON/YAML) into validated Pydantic models.

    Raises:
        MappingLoadError: If required keys are missing or model validation fails.
    """
    classes_data: Any = None
    for key in ("classes", "entities"):
        if key in raw:
            classes_data = raw[key]
            break

    if classes_data is None:
        raise MappingLoadError(
            "Cannot find class definitions in input. "
            "Expected top-level key: 'classes' or 'entities'."
        )

    config_data: Optional[Dict[str, Any]] = raw.get("config")
    if config_data is None:
        logger.info("No config section found in input — using defaults.")
        config_data = {}

    try:
        mapping: MappingDefinition = MappingDefinition.model_validate(
            {"classes": _normalise_classes(classes_data), "source": source}
        )
    except ValidationError as exc:
        raise MappingLoadError(f"Mapping validation failed: {exc}") from exc

    try:
        config: CheckConfig = CheckConfig.model_validate(config_data)
    except ValidationError as exc:
        raise MappingLoadError(f"Config validation failed: {exc}") from exc

    logger.debug("Parsed %r", mapping)
    return mapping, config


def load_mapping(path: Path) -> Tuple[MappingDefinition, CheckConfig]:
    """Load and parse a mapping document in one step."""
    return parse_raw_mapping(load_mapping_file(path), source=str(path))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "load_mapping_file",
    "parse_raw_mapping",
    "load_mapping",
]
