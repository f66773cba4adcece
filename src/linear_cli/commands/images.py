"""Downloading images embedded in an issue's markdown description."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

from pydantic import BaseModel
from rich.console import Console
from rich.text import Text

from linear_cli.commands import CommandContext, is_human_issue_id
from linear_cli.errors import LinearError, ValidationError

logger = logging.getLogger(__name__)

_MARKDOWN_IMAGE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
_ALT_TEXT_CHARS = re.compile(r"^[\w\- ]+$")
MAX_ALT_TEXT_NAME = 50
DEFAULT_EXTENSION = "png"


@dataclass(frozen=True, slots=True)
class MarkdownImage:
    index: int
    alt_text: str
    url: str


class DownloadedImage(BaseModel):
    index: int
    url: str
    path: str


class FailedImage(BaseModel):
    index: int
    url: str
    error: str


class ImageDownloadReport(BaseModel):
    issue: str
    downloaded: list[DownloadedImage] = []
    failed: list[FailedImage] = []


def parse_markdown_images(markdown: str) -> list[MarkdownImage]:
    """Every `![alt](url)` in document order, numbered from 1."""

    return [
        MarkdownImage(index=i, alt_text=m.group(1), url=m.group(2).strip())
        for i, m in enumerate(_MARKDOWN_IMAGE.finditer(markdown), start=1)
    ]


def is_linear_url(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return host == "linear.app" or host.endswith(".linear.app")


def image_filename(issue_identifier: str, image: MarkdownImage) -> str:
    """`<ISSUE>__<name>.<ext>`; name is the alt text when it is short and plain."""

    last_segment = PurePosixPath(urlparse(image.url).path).name
    _, dot, extension = last_segment.rpartition(".")
    if not dot or not extension:
        extension = DEFAULT_EXTENSION

    alt = image.alt_text
    if alt and len(alt) < MAX_ALT_TEXT_NAME and _ALT_TEXT_CHARS.match(alt):
        name = alt.replace(" ", "_")
    else:
        name = f"image_{image.index}"
    return f"{issue_identifier}__{name}.{extension}"


def _download_one(
    ctx: CommandContext, image: MarkdownImage, *, issue_identifier: str, output_dir: Path
) -> Path:
    if urlparse(image.url).scheme not in ("http", "https"):
        raise ValidationError(f"Invalid image URL: {image.url}")

    data = ctx.client.download(image.url, authorized=is_linear_url(image.url))
    path = output_dir / image_filename(issue_identifier, image)
    path.write_bytes(data)
    return path


def _render(report: ImageDownloadReport, console: Console) -> None:
    for item in report.downloaded:
        console.print(Text(f"Downloaded image {item.index} to {item.path}"))

    ok, failed = len(report.downloaded), len(report.failed)
    if failed:
        console.print(Text(f"Downloaded {ok}/{ok + failed} images ({failed} failed)"))
    elif ok > 1:
        console.print(Text(f"Downloaded {ok} images"))


def download_images(
    ctx: CommandContext, identifier: str, *, output_dir: Path, index: int | None = None
) -> ImageDownloadReport:
    """Save the description's images into `output_dir`, optionally only image `index`.

    A failed image does not stop the others; failures are reported on stderr
    and listed in the returned report.
    """

    if index is not None and index < 1:
        raise ValidationError("Image index must be 1 or greater")
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ValidationError(f"Cannot create output directory {output_dir}: {e}") from e

    value = identifier.strip()
    if not value:
        raise ValidationError("Issue identifier must not be empty")
    issue = ctx.client.get_issue(value.upper() if is_human_issue_id(value) else value)
    report = ImageDownloadReport(issue=issue.identifier)
    if not (issue.description or "").strip():
        ctx.output.message(f"Issue {issue.identifier} has no description")
        return report

    images = parse_markdown_images(issue.description or "")
    if not images:
        ctx.output.message(f"No images found in {issue.identifier} description")
        return report
    if index is not None:
        selected = [image for image in images if image.index == index]
        if not selected:
            raise ValidationError(
                f"Image index {index} is out of range ({issue.identifier} has {len(images)} images)"
            )
        images = selected

    for image in images:
        try:
            path = _download_one(
                ctx, image, issue_identifier=issue.identifier, output_dir=output_dir
            )
        except (LinearError, OSError) as e:
            logger.info("Image download failed", extra={"url": image.url, "error": str(e)})
            ctx.output.warning(f"Failed to download image {image.index} ({image.url}): {e}")
            report.failed.append(FailedImage(index=image.index, url=image.url, error=str(e)))
            continue
        report.downloaded.append(DownloadedImage(index=image.index, url=image.url, path=str(path)))

    ctx.output.item(report, lambda console: _render(report, console))
    return report
