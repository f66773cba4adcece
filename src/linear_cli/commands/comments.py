"""Issue comments."""

from __future__ import annotations

from rich.text import Text

from linear_cli.commands import CommandContext
from linear_cli.errors import ValidationError
from linear_cli.linear.models import Comment
from linear_cli.output import Column, format_relative, truncate

COMMENT_COLUMNS = (
    Column("Author", lambda c: c.user.name if c.user else "Unknown"),
    Column("Comment", lambda c: truncate(c.body.replace("\n", " "), 60)),
    Column("When", lambda c: format_relative(c.created_at), no_wrap=True),
)


def list_comments(ctx: CommandContext, identifier: str) -> list[Comment]:
    comments = ctx.client.list_comments(identifier.strip())
    ctx.output.table(comments, COMMENT_COLUMNS, empty_message=f"No comments on {identifier}")
    return comments


def add_comment(ctx: CommandContext, identifier: str, body: str) -> Comment:
    if not body.strip():
        raise ValidationError("Comment body must not be empty")

    comment = ctx.client.create_comment(ctx.issue_id(identifier), body)
    ctx.output.item(
        comment, lambda console: console.print(Text(f"Added comment to {identifier}"))
    )
    return comment
