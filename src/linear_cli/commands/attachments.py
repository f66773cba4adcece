"""Issue attachments: listing, linking URLs and uploading files."""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path

from rich.text import Text

from linear_cli.commands import CommandContext
from linear_cli.errors import NotFoundError, ValidationError
from linear_cli.linear.models import Attachment
from linear_cli.output import Column, format_date_only, truncate

logger = logging.getLogger(__name__)

ATTACHMENT_COLUMNS = (
    Column("Title", lambda a: truncate(a.title, 40)),
    Column("URL", lambda a: truncate(a.url or "-", 50)),
    Column("Created", lambda a: format_date_only(a.created_at), no_wrap=True),
)


def guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"


def list_attachments(ctx: CommandContext, identifier: str) -> list[Attachment]:
    attachments = ctx.client.list_attachments(identifier.strip())
    ctx.output.table(
        attachments, ATTACHMENT_COLUMNS, empty_message=f"No attachments found for {identifier}"
    )
    return attachments


def _report(ctx: CommandContext, verb: str, attachment: Attachment, identifier: str) -> None:
    ctx.output.item(
        attachment,
        lambda console: console.print(Text(f'{verb} "{attachment.title}" to {identifier}')),
    )


def attach_url(
    ctx: CommandContext, identifier: str, url: str, *, title: str | None = None
) -> Attachment:
    if not url.strip():
        raise ValidationError("URL must not be empty")

    attachment = ctx.client.attach_url(ctx.issue_id(identifier), url=url, title=title or url)
    _report(ctx, "Attached", attachment, identifier)
    return attachment


def upload_file(
    ctx: CommandContext, identifier: str, path: Path, *, title: str | None = None
) -> Attachment:
    """Upload a local file and attach it to the issue.

    Three steps: ask Linear for a signed upload URL, PUT the bytes there with
    the headers Linear returned, then create an attachment pointing at the
    resulting asset URL.
    """

    if not path.is_file():
        raise NotFoundError(f"File not found: {path}")
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ValidationError(f"Failed to read file {path}: {e}") from e

    issue_id = ctx.issue_id(identifier)
    content_type = guess_content_type(path.name)
    target = ctx.client.request_upload(
        filename=path.name, content_type=content_type, size=len(data)
    )
    ctx.client.put_file(target, data=data, content_type=content_type)
    logger.info(
        "File uploaded",
        extra={"file_name": path.name, "size": len(data), "content_type": content_type},
    )

    attachment = ctx.client.create_attachment(
        issue_id, url=target.asset_url, title=title or path.name
    )
    _report(ctx, "Uploaded", attachment, identifier)
    return attachment
