# File: mapcheck/__main__.py
"""
mapcheck — Module entry point.

    python -m mapcheck -m mapping.yaml

Delegates to ``mapcheck.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from mapcheck.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
