"""Issue listing, detail, creation, update and closing."""

from __future__ import annotations

import logging
from typing import Any

from rich.console import Console
from rich.text import Text

from linear_cli.cache import EntityKind
from linear_cli.commands import CommandContext
from linear_cli.errors import NotFoundError, ValidationError
from linear_cli.linear.models import (
    CreatedIssue,
    Issue,
    IssueCreate,
    IssueUpdate,
    Priority,
)
from linear_cli.output import (
    Column,
    format_date,
    priority_text,
    status_text,
    truncate,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 25

ISSUE_COLUMNS = (
    Column("ID", lambda i: i.identifier, no_wrap=True),
    Column("Title", lambda i: truncate(i.title, 50)),
    Column(
        "Status",
        lambda i: status_text(i.state.name, i.state.color) if i.state else Text("-"),
    ),
    Column("Priority", lambda i: priority_text(i.priority)),
    Column("Assignee", lambda i: i.assignee.name if i.assignee else ""),
)


def build_issue_filter(
    ctx: CommandContext,
    *,
    mine: bool = False,
    team: str | None = None,
    status: str | None = None,
    project: str | None = None,
    label: str | None = None,
    cycle: str | None = None,
) -> dict[str, Any]:
    issue_filter: dict[str, Any] = {}

    team_id = ctx.team_id(team)
    if team_id is not None:
        issue_filter["team"] = {"id": {"eq": team_id}}
    if status:
        issue_filter["state"] = {"name": {"containsIgnoreCase": status}}
    if project:
        issue_filter["project"] = {"id": {"eq": ctx.resolve(EntityKind.PROJECT, project)}}
    if label:
        issue_filter["labels"] = {"name": {"containsIgnoreCase": label}}
    if cycle:
        issue_filter["cycle"] = {"name": {"containsIgnoreCase": cycle}}
    if mine:
        issue_filter["assignee"] = {"id": {"eq": ctx.client.get_viewer().id}}
    return issue_filter


def list_issues(
    ctx: CommandContext,
    *,
    mine: bool = False,
    team: str | None = None,
    status: str | None = None,
    project: str | None = None,
    label: str | None = None,
    cycle: str | None = None,
    limit: int = DEFAULT_LIMIT,
    all_pages: bool = False,
) -> list[Issue]:
    if limit <= 0:
        raise ValidationError("--limit must be a positive integer")

    issue_filter = build_issue_filter(
        ctx, mine=mine, team=team, status=status, project=project, label=label, cycle=cycle
    )
    issues = ctx.client.list_issues(issue_filter=issue_filter, limit=limit, all_pages=all_pages)
    ctx.output.table(issues, ISSUE_COLUMNS, empty_message="No issues found")
    return issues


def _render_issue(issue: Issue, console: Console) -> None:
    console.print(Text.assemble((issue.identifier, "bold"), " - ", issue.title))
    console.print()
    if issue.description:
        console.print(Text(issue.description))
        console.print()

    state = status_text(issue.state.name, issue.state.color) if issue.state else Text("-")
    rows: list[tuple[str, str | Text]] = [
        ("Team", issue.team.name or issue.team.key),
        ("Status", state),
        ("Priority", priority_text(issue.priority)),
        ("Assignee", issue.assignee.name if issue.assignee else "-"),
    ]
    if issue.project is not None:
        rows.append(("Project", issue.project.name))
    if issue.cycle is not None:
        rows.append(("Cycle", issue.cycle.display_name))
    rows.append(("Created", format_date(issue.created_at)))
    rows.append(("Updated", format_date(issue.updated_at)))

    for label, value in rows:
        console.print(Text.assemble(f"{label + ':':<10}", value))


def show_issue(ctx: CommandContext, identifier: str) -> Issue:
    issue = ctx.client.get_issue(identifier.strip())
    ctx.output.item(issue, lambda console: _render_issue(issue, console))
    return issue


def _report(ctx: CommandContext, verb: str, issue: CreatedIssue) -> None:
    ctx.output.item(
        issue,
        lambda console: console.print(Text(f"{verb} {issue.identifier} - {issue.title}")),
    )


def create_issue(
    ctx: CommandContext,
    *,
    title: str,
    description: str | None = None,
    team: str | None = None,
    project: str | None = None,
    priority: int | None = None,
) -> CreatedIssue:
    if not title.strip():
        raise ValidationError("Issue title is required")
    parsed_priority = Priority.parse(priority) if priority is not None else None

    team_id = ctx.team_id(team, required=True)
    assert team_id is not None
    project_id = ctx.resolve(EntityKind.PROJECT, project) if project else None

    created = ctx.client.create_issue(
        IssueCreate(
            title=title,
            team_id=team_id,
            description=description,
            project_id=project_id,
            priority=parsed_priority,
        )
    )
    _report(ctx, "Created", created)
    return created


def _resolve_assignee(ctx: CommandContext, assignee: str) -> str:
    value = assignee.strip()
    if value.lower() == "me":
        return ctx.client.get_viewer().id
    if "@" in value:
        return ctx.client.find_user_by_email(value).id
    return value


def _state_id_by_name(ctx: CommandContext, *, team_id: str, status: str) -> str:
    wanted = status.strip().lower()
    for state in ctx.client.get_workflow_states(team_id=team_id):
        if state.name.lower() == wanted:
            return state.id
    raise NotFoundError(f"Workflow state not found: {status}")


def update_issue(
    ctx: CommandContext,
    identifier: str,
    *,
    title: str | None = None,
    description: str | None = None,
    status: str | None = None,
    priority: int | None = None,
    assignee: str | None = None,
) -> CreatedIssue | None:
    """Send only the fields the user gave; returns None when there was nothing to send."""

    fields: dict[str, Any] = {}
    if title is not None:
        if not title.strip():
            raise ValidationError("Issue title must not be empty")
        fields["title"] = title
    if description is not None:
        fields["description"] = description
    if priority is not None:
        fields["priority"] = Priority.parse(priority)

    if not fields and status is None and assignee is None:
        ctx.output.message("No updates specified")
        return None

    ref = ctx.issue_ref(identifier)
    if status is not None:
        if ref.team is None:
            raise NotFoundError(f"Team of {ref.identifier} could not be determined")
        fields["state_id"] = _state_id_by_name(ctx, team_id=ref.team.id, status=status)
    if assignee is not None:
        fields["assignee_id"] = _resolve_assignee(ctx, assignee)

    updated = ctx.client.update_issue(ref.id, IssueUpdate(**fields))
    _report(ctx, "Updated", updated)
    return updated


def close_issue(ctx: CommandContext, identifier: str) -> CreatedIssue:
    """Move an issue to its team's first workflow state of type `completed`."""

    ref = ctx.issue_ref(identifier)
    if ref.team is None:
        raise NotFoundError(f"Team of {ref.identifier} could not be determined")

    states = ctx.client.get_workflow_states(team_id=ref.team.id)
    done = next((s for s in states if s.type == "completed"), None)
    if done is None:
        raise NotFoundError(f"No completed state found for team {ref.team.key}")

    closed = ctx.client.update_issue(ref.id, IssueUpdate(state_id=done.id))
    logger.info("Issue closed", extra={"identifier": closed.identifier, "state": done.name})
    _report(ctx, "Closed", closed)
    return closed
