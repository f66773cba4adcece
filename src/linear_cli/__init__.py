"""Linear CLI.

A command-line client for Linear issue tracking:
- configuration from `LINEAR_*` env vars or `config.toml`
- structured logging
- a local cache resolving team keys and project names to Linear ids
"""

__version__ = "0.1.0"

from linear_cli.config import LinearSettings

__all__ = ["__version__", "LinearSettings"]
