"""Test configuration and fixtures."""

from __future__ import annotations

import io
import os
from collections.abc import Callable
from pathlib import Path
from unittest.mock import Mock

import pytest

from linear_cli.cache import CacheStore, ResolutionCache
from linear_cli.commands import CommandContext
from linear_cli.config import LinearSettings
from linear_cli.linear.client import LinearClient
from linear_cli.output import OutputFormatter


@pytest.fixture(autouse=True)
def config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep every test away from the real user config, cache and `.env`."""
    for name in list(os.environ):
        if name.startswith("LINEAR_"):
            monkeypatch.delenv(name)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

    directory = tmp_path / "config"
    monkeypatch.setenv("LINEAR_CONFIG_DIR", str(directory))
    monkeypatch.chdir(tmp_path)
    return directory


@pytest.fixture
def stdout() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def stderr() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def output(stdout: io.StringIO, stderr: io.StringIO) -> OutputFormatter:
    """Plain-text formatter writing into in-memory streams."""
    return OutputFormatter(stdout=stdout, stderr=stderr, width=200)


@pytest.fixture
def json_formatter(stdout: io.StringIO, stderr: io.StringIO) -> OutputFormatter:
    return OutputFormatter(json_output=True, stdout=stdout, stderr=stderr, width=200)


@pytest.fixture
def client() -> Mock:
    """Provide a mocked Linear API client."""
    return Mock(spec=LinearClient)


@pytest.fixture
def make_context(client: Mock, output: OutputFormatter) -> Callable[..., CommandContext]:
    """Build a command context around the mocked client and an in-memory cache."""

    def _make(
        *,
        default_team: str | None = None,
        formatter: OutputFormatter | None = None,
        store: CacheStore | None = None,
    ) -> CommandContext:
        settings = LinearSettings(api_key="test-key", default_team=default_team)
        resolver = ResolutionCache(store=store or CacheStore(None), fetcher=client)
        return CommandContext(
            client=client,
            resolver=resolver,
            settings=settings,
            output=formatter or output,
        )

    return _make


@pytest.fixture
def ctx(make_context: Callable[..., CommandContext]) -> CommandContext:
    return make_context()
