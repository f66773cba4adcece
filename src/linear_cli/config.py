"""Configuration for the Linear CLI.

Configuration is loaded from (highest precedence first):
- environment variables (`LINEAR_*`)
- a local `.env` file (if present)
- `config.toml` in the per-user config directory (written by `linear init`)

The config directory is `LINEAR_CONFIG_DIR`, else `$XDG_CONFIG_HOME/linear`,
else `~/.config/linear`.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from linear_cli.errors import ConfigError

CONFIG_FILE_NAME = "config.toml"
CACHE_FILE_NAME = "cache.json"


def default_config_dir() -> Path:
    explicit = os.environ.get("LINEAR_CONFIG_DIR", "").strip()
    if explicit:
        return Path(explicit).expanduser()
    xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg:
        return Path(xdg).expanduser() / "linear"
    return Path.home() / ".config" / "linear"


class LinearSettings(BaseSettings):
    """Settings for the Linear CLI.

    Environment variables:
    - LINEAR_API_KEY
    - LINEAR_DEFAULT_TEAM       (optional)
    - LINEAR_API_URL            (optional)
    - LINEAR_TIMEOUT            (optional, seconds)
    - LINEAR_CACHE_TTL_SECONDS  (optional)
    - LINEAR_LOG_LEVEL          (optional)
    - LINEAR_CONFIG_DIR         (optional)

    The same field names (`api_key`, `default_team`, ...) are read from
    `config.toml`.
    """

    # Empty by default so that `init` and `completions` work without a key;
    # commands that talk to the API call `require_api_key()`.
    api_key: str = Field(default="", description="Linear personal API key")
    default_team: str | None = Field(
        default=None,
        description="Team key used when a command does not pass --team",
    )
    api_url: str = Field(
        default="https://api.linear.app/graphql",
        description="Linear GraphQL endpoint",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for each remote call",
    )
    cache_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        ge=0,
        description="How long a resolved team/project identifier is trusted",
    )
    log_level: str = Field(default="WARNING", description="Root logging level")
    config_dir: Path = Field(
        default_factory=default_config_dir,
        description="Directory holding config.toml and cache.json",
    )

    model_config = SettingsConfigDict(
        env_prefix="LINEAR_",
        env_file=".env",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml_settings = TomlConfigSettingsSource(
            settings_cls, toml_file=default_config_dir() / CONFIG_FILE_NAME
        )
        return (init_settings, env_settings, dotenv_settings, toml_settings)

    @field_validator("default_team")
    @classmethod
    def _blank_team_is_unset(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    @property
    def cache_file(self) -> Path:
        """Path where the name resolution cache is persisted."""

        return self.config_dir / CACHE_FILE_NAME

    def require_api_key(self) -> str:
        key = self.api_key.strip()
        if not key:
            raise ConfigError(
                "No API key found. Set LINEAR_API_KEY or add api_key to "
                f"{self.config_file} (run `linear init`)"
            )
        return key

    def resolve_team(self, explicit: str | None) -> str | None:
        """Prefer an explicit team key over the configured default."""

        if explicit is not None and explicit.strip():
            return explicit.strip()
        return self.default_team


def load_settings() -> LinearSettings:
    """Load settings, turning parse/validation failures into `ConfigError`."""

    try:
        return LinearSettings()
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        path = default_config_dir() / CONFIG_FILE_NAME
        raise ConfigError(f"Failed to parse config file at {path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
