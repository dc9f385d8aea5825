# File: mapcheck/cli.py
"""
mapcheck - Command-Line Interface
==================================

Thin ``argparse`` shell over ``SchemaValidator``.

Usage examples::

    # Validate a declarative mapping document
    python -m mapcheck -m mapping.yaml

    # Validate SQLAlchemy models and compare against a live database
    python -m mapcheck --models myapp.models:Base --database-url sqlite:///app.db

    # Only one class, JSON output
    python -m mapcheck -m mapping.yaml --class Article --format json

Exit codes (bit mask):
    0 — success
    1 — mapping invalid
    2 — database schema out of sync
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence, Tuple

from mapcheck.exceptions import MappingCheckError
from mapcheck.models import CheckConfig, MappingDefinition
from mapcheck.report import EXIT_MAPPING_INVALID, EXIT_SCHEMA_OUT_OF_SYNC

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("mapcheck")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root mapcheck logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("mapcheck")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from mapcheck import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="mapcheck",
        description=(
            "mapcheck — ORM mapping consistency validator.\n\n"
            "Checks bidirectional associations, join columns and inheritance "
            "maps, and optionally compares the mapping to a live database."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -m mapping.yaml\n"
            "  %(prog)s --models myapp.models:Base --database-url sqlite:///app.db\n"
            "  %(prog)s -m mapping.yaml --class Article --format json\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"mapcheck v{__version__}",
    )

    # --- Input (exactly one) ---
    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument(
        "-m", "--mapping",
        type=str,
        metavar="PATH",
        help="Path to a mapping document (JSON or YAML).",
    )
    input_group.add_argument(
        "--models",
        type=str,
        metavar="MODULE:BASE",
        help="SQLAlchemy declarative base or registry, e.g. 'app.models:Base'.",
    )

    # --- Checks ---
    check_group = parser.add_argument_group("checks")
    check_group.add_argument(
        "--class",
        dest="class_name",
        type=str,
        default=None,
        metavar="NAME",
        help="Validate a single class only.",
    )
    check_group.add_argument(
        "--skip-mapping",
        action="store_true",
        default=None,
        help="Skip the mapping validation.",
    )
    check_group.add_argument(
        "--skip-sync",
        action="store_true",
        default=None,
        help="Skip checking whether the database schema is in sync.",
    )
    check_group.add_argument(
        "--database-url",
        type=str,
        default=None,
        metavar="URL",
        help="SQLAlchemy URL of the database to compare against.",
    )
    check_group.add_argument(
        "--ignore",
        dest="ignore_classes",
        action="append",
        default=None,
        metavar="CLASS",
        help="Leave a class out of the report (repeatable).",
    )

    # --- Output ---
    output_group = parser.add_argument_group("output")
    output_group.add_argument(
        "--format",
        dest="report_format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Report format (default: text).",
    )
    output_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    output_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all log output.",
    )

    return parser


# ---------------------------------------------------------------------------
# Config override builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, object]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, object] = {}

    if args.database_url is not None:
        overrides["database_url"] = args.database_url

    if args.skip_mapping is not None:
        overrides["skip_mapping"] = args.skip_mapping

    if args.skip_sync is not None:
        overrides["skip_sync"] = args.skip_sync

    if args.ignore_classes is not None:
        overrides["ignore_classes"] = args.ignore_classes

    if args.report_format is not None:
        overrides["report_format"] = args.report_format

    return overrides


def _load_input(args: argparse.Namespace) -> Tuple[MappingDefinition, CheckConfig, str]:
    """Load the mapping from a document or from SQLAlchemy models."""
    if args.mapping is not None:
        from mapcheck.loader import load_mapping

        path: Path = Path(args.mapping).resolve()
        mapping, config = load_mapping(path)
        return mapping, config, str(path)

    from mapcheck.sqla import mapping_from_registry
    from mapcheck.utils import import_object

    base: Any = import_object(args.models)
    return mapping_from_registry(base), CheckConfig(), args.models


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(argv: Optional[Sequence[str]] = None) -> int:
    """
    Parse arguments, run the checks, print the report.

    Returns the exit code instead of exiting, for embedding and testing.
    """
    from mapcheck.metadata import RegistryMetadataSource
    from mapcheck.report import MappingReport, build_report
    from mapcheck.validator import SchemaValidator

    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose

    _setup_logging(verbosity)

    try:
        mapping, file_config, source = _load_input(args)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR
    except (MappingCheckError, ValueError, ImportError) as exc:
        logger.error("Failed to load mapping: %s", exc)
        return EXIT_INPUT_ERROR

    overrides: Dict[str, object] = _build_config_overrides(args)
    try:
        config: CheckConfig = CheckConfig.model_validate(
            {**file_config.model_dump(exclude={"run_sync_check"}), **overrides}
        )
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_INPUT_ERROR

    comparer = None
    if config.run_sync_check:
        if not config.database_url:
            logger.error("The schema sync check needs --database-url (or use --skip-sync).")
            return EXIT_INPUT_ERROR
        from mapcheck.sqla import SqlAlchemySchemaComparer

        try:
            comparer = SqlAlchemySchemaComparer.from_url(config.database_url)
        except MappingCheckError as exc:
            logger.error("%s", exc)
            return EXIT_INPUT_ERROR

    validator: SchemaValidator = SchemaValidator(
        RegistryMetadataSource(mapping), comparer=comparer
    )

    try:
        report: MappingReport = build_report(
            validator,
            source=source,
            check_mapping=not config.skip_mapping,
            check_sync=comparer is not None,
            class_name=args.class_name,
            ignore_classes=config.ignore_classes,
        )
    except KeyError as exc:
        logger.error("Unknown class: %s", exc)
        return EXIT_INPUT_ERROR
    except MappingCheckError as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR

    if config.report_format == "json":
        print(report.to_json())
    else:
        print(report.summary())

    return report.exit_code


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """Console-script entry point."""
    sys.exit(run(argv))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "run",
    "EXIT_SUCCESS",
    "EXIT_MAPPING_INVALID",
    "EXIT_SCHEMA_OUT_OF_SYNC",
    "EXIT_INPUT_ERROR",
]
