"""Interactive first-run setup writing `config.toml`."""

from __future__ import annotations

import getpass
import json
import logging
import os
from collections.abc import Callable
from pathlib import Path

from linear_cli.cache import atomic_write_text
from linear_cli.errors import ConfigError
from linear_cli.output import OutputFormatter

logger = logging.getLogger(__name__)

API_KEY_URL = "https://linear.app/settings/api"


def render_config(*, api_key: str, default_team: str | None) -> str:
    # JSON string escapes are valid TOML basic-string escapes.
    lines = [f"api_key = {json.dumps(api_key)}"]
    if default_team:
        lines.append(f"default_team = {json.dumps(default_team)}")
    return "\n".join(lines) + "\n"


def run_init(
    config_file: Path,
    *,
    output: OutputFormatter,
    prompt: Callable[[str], str] = input,
    secret_prompt: Callable[[str], str] = getpass.getpass,
) -> bool:
    """Prompt for an API key and default team and save them.

    Returns False when the user declined to overwrite an existing file.
    """

    if config_file.exists():
        answer = prompt(f"Config file already exists at {config_file}. Overwrite? [y/N] ")
        if answer.strip().lower() != "y":
            output.message("Aborted.")
            return False

    api_key = secret_prompt(f"Enter your Linear API key (create one at {API_KEY_URL}): ").strip()
    if not api_key:
        raise ConfigError("No API key entered")

    default_team = prompt("Enter default team key (e.g., ENG) [optional]: ").strip() or None

    try:
        atomic_write_text(config_file, render_config(api_key=api_key, default_team=default_team))
        os.chmod(config_file, 0o600)
    except OSError as e:
        raise ConfigError(f"Failed to write config file at {config_file}: {e}") from e

    logger.info("Config written", extra={"path": str(config_file)})
    output.message(f"Config saved to {config_file}")
    return True
