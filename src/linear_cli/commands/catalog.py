"""Listing of teams, projects, cycles and labels."""

from __future__ import annotations

from linear_cli.commands import CommandContext
from linear_cli.linear.models import Cycle, Label, Project, Team
from linear_cli.output import Column, format_date_only, status_text, truncate

TEAM_COLUMNS = (
    Column("Key", lambda t: t.key, no_wrap=True),
    Column("Name", lambda t: t.name),
    Column("ID", lambda t: t.id, no_wrap=True),
)

PROJECT_COLUMNS = (
    Column("Name", lambda p: p.name),
    Column("State", lambda p: p.state or ""),
    Column("ID", lambda p: p.id, no_wrap=True),
)

CYCLE_COLUMNS = (
    Column("Number", lambda c: str(c.number), no_wrap=True),
    Column("Name", lambda c: c.name or ""),
    Column("Starts", lambda c: format_date_only(c.starts_at), no_wrap=True),
    Column("Ends", lambda c: format_date_only(c.ends_at), no_wrap=True),
)

LABEL_COLUMNS = (
    Column("Name", lambda label: status_text(label.name, label.color)),
    Column("Description", lambda label: truncate(label.description or "", 40)),
    Column("ID", lambda label: label.id, no_wrap=True),
)


def list_teams(ctx: CommandContext) -> list[Team]:
    teams = ctx.client.list_teams()
    ctx.output.table(teams, TEAM_COLUMNS, empty_message="No teams found")
    return teams


def list_projects(ctx: CommandContext, *, team: str | None = None) -> list[Project]:
    projects = ctx.client.list_projects(team_id=ctx.team_id(team))
    ctx.output.table(projects, PROJECT_COLUMNS, empty_message="No projects found")
    return projects


def list_cycles(ctx: CommandContext, *, team: str | None = None) -> list[Cycle]:
    cycles = ctx.client.list_cycles(team_id=ctx.team_id(team))
    ctx.output.table(cycles, CYCLE_COLUMNS, empty_message="No cycles found")
    return cycles


def list_labels(ctx: CommandContext, *, team: str | None = None) -> list[Label]:
    labels = ctx.client.list_labels(team_id=ctx.team_id(team))
    ctx.output.table(labels, LABEL_COLUMNS, empty_message="No labels found")
    return labels
