"""Command handlers: one function per CLI verb.

Handlers receive a `CommandContext` holding everything they talk to, so they
can be exercised with a mocked client and an in-memory cache store.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from linear_cli.cache import EntityKind, ResolutionCache
from linear_cli.config import LinearSettings
from linear_cli.errors import ValidationError
from linear_cli.linear.client import LinearClient
from linear_cli.linear.models import IssueRef
from linear_cli.output import OutputFormatter

_HUMAN_ISSUE_ID = re.compile(r"^[A-Za-z][A-Za-z0-9]*-\d+$")


def is_human_issue_id(value: str) -> bool:
    """True for identifiers like `ENG-123` (as opposed to backend ids)."""

    return bool(_HUMAN_ISSUE_ID.match(value.strip()))


@dataclass(frozen=True, slots=True)
class CommandContext:
    client: LinearClient
    resolver: ResolutionCache
    settings: LinearSettings
    output: OutputFormatter

    def resolve(self, kind: EntityKind, name: str) -> str:
        resolved = self.resolver.resolve(kind, name)
        if resolved.stale:
            self.output.warning(
                f"Linear is unreachable; using cached {kind.value} id for {resolved.name!r}"
            )
        return resolved.identifier

    def team_id(self, explicit: str | None, *, required: bool = False) -> str | None:
        """Resolve `--team` (or the configured default team) to its identifier."""

        team_key = self.settings.resolve_team(explicit)
        if team_key is None:
            if required:
                raise ValidationError("Team not specified and no default_team in config")
            return None
        return self.resolve(EntityKind.TEAM, team_key)

    def issue_ref(self, identifier: str) -> IssueRef:
        """Look an issue up by backend id or human identifier, in any case."""

        value = identifier.strip()
        if not value:
            raise ValidationError("Issue identifier must not be empty")
        if is_human_issue_id(value):
            value = value.upper()
        return self.client.get_issue_ref(value)

    def issue_id(self, identifier: str) -> str:
        """Backend id for a human identifier (ENG-123); other values pass through."""

        value = identifier.strip()
        if value and not is_human_issue_id(value):
            return value
        return self.issue_ref(value).id
