"""Error taxonomy shared by the API client, the resolution cache and the CLI.

Every error carries the process exit code the CLI uses when it is the reason
a command failed.
"""

from __future__ import annotations


class LinearError(Exception):
    """Base class for all errors reported to the user."""

    kind = "error"
    exit_code = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigError(LinearError):
    """Missing or invalid configuration (e.g. no API key)."""

    kind = "config"
    exit_code = 2


class ValidationError(LinearError):
    """Malformed user input, detected before any network call."""

    kind = "validation"
    exit_code = 2


class NotFoundError(LinearError):
    """A name or identifier does not resolve to a remote entity."""

    kind = "not_found"
    exit_code = 3


class RemoteRejectedError(LinearError):
    """The server understood the request and refused it."""

    kind = "rejected"
    exit_code = 4

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RemoteUnavailableError(LinearError):
    """Transport failure: connection error, timeout or 5xx response."""

    kind = "unavailable"
    exit_code = 5
