"""Issue relations and parent/child links."""

from __future__ import annotations

from pydantic import BaseModel
from rich.text import Text

from linear_cli.commands import CommandContext
from linear_cli.errors import NotFoundError
from linear_cli.linear.models import IssueRef, IssueRelations, IssueRelationType, IssueUpdate
from linear_cli.output import Column, truncate


class RelationRow(BaseModel):
    relation: str
    issue: str
    title: str


RELATION_COLUMNS = (
    Column("Type", lambda r: r.relation, no_wrap=True),
    Column("Issue", lambda r: r.issue, no_wrap=True),
    Column("Title", lambda r: truncate(r.title, 50)),
)


def _row(relation: str, issue: IssueRef) -> RelationRow:
    return RelationRow(relation=relation, issue=issue.identifier, title=issue.title)


def relation_rows(relations: IssueRelations) -> list[RelationRow]:
    """Flatten parent, children and relations, always phrased from this issue's side."""

    rows: list[RelationRow] = []
    if relations.parent is not None:
        rows.append(_row("parent", relations.parent))
    rows.extend(_row("child", child) for child in relations.children)
    for rel in relations.relations:
        if rel.issue.identifier == relations.identifier:
            rows.append(_row(rel.relation_type.value, rel.related_issue))
        else:
            rows.append(_row(rel.relation_type.inverse_label, rel.issue))
    return rows


def list_relations(ctx: CommandContext, identifier: str) -> list[RelationRow]:
    relations = ctx.client.get_relations(identifier.strip())
    rows = relation_rows(relations)
    ctx.output.table(
        rows, RELATION_COLUMNS, empty_message=f"No relations for {relations.identifier}"
    )
    return rows


def relate(
    ctx: CommandContext, source: str, relation_type: IssueRelationType, target: str
) -> None:
    ctx.client.create_relation(
        issue_id=ctx.issue_id(source),
        related_issue_id=ctx.issue_id(target),
        relation_type=relation_type,
    )
    ctx.output.message(f"{source} {relation_type.value} {target}")


def unrelate(ctx: CommandContext, source: str, target: str) -> None:
    relations = ctx.client.get_relations(source.strip())
    wanted = target.strip().upper()
    match = next(
        (
            r
            for r in relations.relations
            if r.related_issue.identifier.upper() == wanted or r.issue.identifier.upper() == wanted
        ),
        None,
    )
    if match is None:
        raise NotFoundError(f"No relation between {source} and {target}")

    ctx.client.delete_relation(match.id)
    ctx.output.message(f"Removed relation between {source} and {target}")


def set_parent(ctx: CommandContext, identifier: str, parent: str) -> None:
    updated = ctx.client.update_issue(
        ctx.issue_id(identifier), IssueUpdate(parent_id=ctx.issue_id(parent))
    )
    ctx.output.item(
        updated,
        lambda console: console.print(Text(f"Set {parent} as parent of {updated.identifier}")),
    )


def remove_parent(ctx: CommandContext, identifier: str) -> None:
    updated = ctx.client.update_issue(ctx.issue_id(identifier), IssueUpdate(parent_id=None))
    ctx.output.item(
        updated, lambda console: console.print(Text(f"Removed parent from {updated.identifier}"))
    )
