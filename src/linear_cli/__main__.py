"""`python -m linear_cli` runs the same entrypoint as the `linear` script."""

from __future__ import annotations

from linear_cli.main import main

if __name__ == "__main__":
    raise SystemExit(main())
