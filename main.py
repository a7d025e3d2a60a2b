"""Command-line entrypoint for the code companion."""

from __future__ import annotations

from code_companion.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
