"""Unit tests for the command context and the smaller command handlers."""

from __future__ import annotations

import io
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import Mock

import pytest

from linear_cli.cache import CacheEntry, CacheStore, EntityKind, FetchedEntity
from linear_cli.commands import CommandContext, attachments, catalog, comments, is_human_issue_id
from linear_cli.errors import NotFoundError, RemoteUnavailableError, ValidationError
from linear_cli.linear.models import (
    Attachment,
    Comment,
    IssueRef,
    Label,
    Team,
    UploadTarget,
    User,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("ENG-123", True),
        ("eng-1", True),
        ("A1B-9", True),
        ("ENG", False),
        ("123-4", False),
        ("3f2a9c1e-0b7d-4e6a-9d3c-2f1e0a9b8c7d", False),
    ],
)
def test_is_human_issue_id(value: str, expected: bool) -> None:
    assert is_human_issue_id(value) is expected


def test_issue_id_resolves_human_identifiers(ctx: CommandContext, client: Mock) -> None:
    client.get_issue_ref.return_value = IssueRef(id="issue_1", identifier="ENG-1")

    assert ctx.issue_id(" eng-1 ") == "issue_1"
    client.get_issue_ref.assert_called_once_with("ENG-1")


def test_issue_id_passes_backend_ids_through(ctx: CommandContext, client: Mock) -> None:
    assert ctx.issue_id("3f2a9c1e-0b7d") == "3f2a9c1e-0b7d"
    client.get_issue_ref.assert_not_called()


def test_issue_id_rejects_blank(ctx: CommandContext) -> None:
    with pytest.raises(ValidationError):
        ctx.issue_id("  ")


def test_team_id_is_optional_unless_required(ctx: CommandContext, client: Mock) -> None:
    assert ctx.team_id(None) is None
    with pytest.raises(ValidationError):
        ctx.team_id(None, required=True)
    client.fetch_entity.assert_not_called()


def test_stale_resolution_warns_on_stderr(
    make_context: Callable[..., CommandContext], client: Mock, stderr: io.StringIO
) -> None:
    store = CacheStore(None)
    store.put(
        CacheEntry(
            kind=EntityKind.TEAM,
            key="ENG",
            value="team_abc123",
            fetched_at=datetime(2020, 1, 1, tzinfo=UTC),
        )
    )
    client.fetch_entity.side_effect = RemoteUnavailableError("offline")

    assert make_context(store=store).team_id("ENG") == "team_abc123"
    assert "cached team id" in stderr.getvalue()


def test_fresh_resolution_is_silent(
    ctx: CommandContext, client: Mock, stderr: io.StringIO
) -> None:
    client.fetch_entity.return_value = FetchedEntity(identifier="team_abc123", name="ENG")

    assert ctx.team_id("ENG") == "team_abc123"
    assert stderr.getvalue() == ""


def test_list_comments(ctx: CommandContext, client: Mock, stdout: io.StringIO) -> None:
    client.list_comments.return_value = [
        Comment(
            id="c1",
            body="Looks good\nto me",
            created_at="2025-01-01T00:00:00Z",
            user=User(id="u1", name="Ada"),
        ),
        Comment(id="c2", body="Anonymous", created_at="2025-01-01T00:00:00Z"),
    ]

    comments.list_comments(ctx, "ENG-1")

    client.list_comments.assert_called_once_with("ENG-1")
    out = stdout.getvalue()
    assert "Looks good to me" in out
    assert "Ada" in out
    assert "Unknown" in out


def test_list_comments_empty(ctx: CommandContext, client: Mock, stdout: io.StringIO) -> None:
    client.list_comments.return_value = []

    comments.list_comments(ctx, "ENG-1")

    assert "No comments on ENG-1" in stdout.getvalue()


def test_add_comment_resolves_issue(
    ctx: CommandContext, client: Mock, stdout: io.StringIO
) -> None:
    client.get_issue_ref.return_value = IssueRef(id="issue_1", identifier="ENG-1")
    client.create_comment.return_value = Comment(
        id="c1", body="Done", created_at="2025-01-01T00:00:00Z"
    )

    comments.add_comment(ctx, "ENG-1", "Done")

    client.create_comment.assert_called_once_with("issue_1", "Done")
    assert "Added comment to ENG-1" in stdout.getvalue()


def test_add_empty_comment_is_rejected(ctx: CommandContext, client: Mock) -> None:
    with pytest.raises(ValidationError):
        comments.add_comment(ctx, "ENG-1", " \n")

    assert client.method_calls == []


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("screenshot.png", "image/png"),
        ("notes.txt", "text/plain"),
        ("blob.unknownext", "application/octet-stream"),
    ],
)
def test_guess_content_type(filename: str, expected: str) -> None:
    assert attachments.guess_content_type(filename) == expected


def test_attach_url_defaults_title_to_url(ctx: CommandContext, client: Mock) -> None:
    client.get_issue_ref.return_value = IssueRef(id="issue_1", identifier="ENG-1")
    client.attach_url.return_value = Attachment(
        id="a1", title="https://example.com", url="https://example.com", created_at="2025-01-01"
    )

    attachments.attach_url(ctx, "ENG-1", "https://example.com")

    client.attach_url.assert_called_once_with(
        "issue_1", url="https://example.com", title="https://example.com"
    )


def test_upload_file_runs_all_three_steps(
    ctx: CommandContext, client: Mock, tmp_path: Path, stdout: io.StringIO
) -> None:
    path = tmp_path / "trace.txt"
    path.write_bytes(b"stack trace")
    target = UploadTarget(upload_url="https://storage.test/put", asset_url="https://assets.test/t")
    client.get_issue_ref.return_value = IssueRef(id="issue_1", identifier="ENG-1")
    client.request_upload.return_value = target
    client.create_attachment.return_value = Attachment(
        id="a1", title="trace.txt", url=target.asset_url, created_at="2025-01-01"
    )

    attachments.upload_file(ctx, "ENG-1", path)

    client.request_upload.assert_called_once_with(
        filename="trace.txt", content_type="text/plain", size=11
    )
    client.put_file.assert_called_once_with(target, data=b"stack trace", content_type="text/plain")
    client.create_attachment.assert_called_once_with(
        "issue_1", url="https://assets.test/t", title="trace.txt"
    )
    assert 'Uploaded "trace.txt" to ENG-1' in stdout.getvalue()


def test_upload_missing_file_is_not_found(
    ctx: CommandContext, client: Mock, tmp_path: Path
) -> None:
    with pytest.raises(NotFoundError):
        attachments.upload_file(ctx, "ENG-1", tmp_path / "missing.png")

    assert client.method_calls == []


def test_list_attachments(ctx: CommandContext, client: Mock, stdout: io.StringIO) -> None:
    client.list_attachments.return_value = [
        Attachment(
            id="a1", title="Design", url="https://figma.test/x", created_at="2025-03-04T10:00:00Z"
        )
    ]

    attachments.list_attachments(ctx, "ENG-1")

    out = stdout.getvalue()
    assert "Design" in out
    assert "2025-03-04" in out


def test_list_teams(ctx: CommandContext, client: Mock, stdout: io.StringIO) -> None:
    client.list_teams.return_value = [Team(id="team_abc123", key="ENG", name="Engineering")]

    catalog.list_teams(ctx)

    out = stdout.getvalue()
    assert "ENG" in out
    assert "Engineering" in out


def test_list_labels_filters_by_resolved_team(ctx: CommandContext, client: Mock) -> None:
    client.fetch_entity.return_value = FetchedEntity(identifier="team_abc123", name="ENG")
    client.list_labels.return_value = [Label(id="l1", name="bug", color="#eb5757")]

    labels = catalog.list_labels(ctx, team="ENG")

    assert [label.name for label in labels] == ["bug"]
    client.list_labels.assert_called_once_with(team_id="team_abc123")


def test_list_projects_without_team(ctx: CommandContext, client: Mock, stdout: io.StringIO) -> None:
    client.list_projects.return_value = []

    catalog.list_projects(ctx)

    client.list_projects.assert_called_once_with(team_id=None)
    assert "No projects found" in stdout.getvalue()
