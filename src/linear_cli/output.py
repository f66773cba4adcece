"""Rendering of command results: rich tables by default, JSON with `--json`."""

from __future__ import annotations

import json
import re
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TextIO

from pydantic import BaseModel
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from linear_cli.errors import LinearError
from linear_cli.linear.models import Priority, priority_label

_HEX_COLOR = re.compile(r"^#?[0-9a-fA-F]{6}$")

PRIORITY_STYLES: dict[int, str] = {
    Priority.URGENT: "bold red",
    Priority.HIGH: "bold yellow",
    Priority.MEDIUM: "blue",
    Priority.LOW: "bright_black",
}

Cell = str | Text


@dataclass(frozen=True, slots=True)
class Column:
    header: str
    value: Callable[[Any], Cell]
    no_wrap: bool = False


def truncate(value: str, max_len: int) -> str:
    if len(value) <= max_len:
        return value
    return value[: max(max_len - 3, 0)] + "..."


def priority_text(priority: int) -> Text:
    return Text(priority_label(priority), style=PRIORITY_STYLES.get(priority, ""))


def status_text(name: str, color: str | None = None) -> Text:
    """Colour a workflow state (or label) by its hex colour, else by its name."""

    if color and _HEX_COLOR.match(color):
        return Text(name, style="#" + color.lstrip("#").lower())

    lower = name.lower()
    if any(word in lower for word in ("done", "complete", "closed")):
        style = "green"
    elif "progress" in lower or "started" in lower:
        style = "blue"
    elif "review" in lower:
        style = "magenta"
    elif any(word in lower for word in ("blocked", "canceled", "cancelled")):
        style = "red"
    elif "backlog" in lower or "triage" in lower:
        style = "bright_black"
    else:
        style = ""
    return Text(name, style=style)


def _parse_iso(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_date(value: str) -> str:
    """Local date and time, e.g. `2025-01-31 14:05`."""

    parsed = _parse_iso(value)
    if parsed is None:
        return value.split("T", 1)[0]
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M")


def format_date_only(value: str) -> str:
    parsed = _parse_iso(value)
    if parsed is None:
        return value.split("T", 1)[0]
    return parsed.strftime("%Y-%m-%d")


def format_relative(value: str, *, now: datetime | None = None) -> str:
    """Human relative time ("3 days ago"); dates older than 30 days are shown as-is."""

    parsed = _parse_iso(value)
    if parsed is None:
        return value.split("T", 1)[0]

    seconds = int(((now or datetime.now(UTC)) - parsed).total_seconds())
    if seconds < 60:
        return "just now"
    for unit, size, limit in (("min", 60, 60), ("hour", 3600, 24), ("day", 86400, 30)):
        amount = seconds // size
        if amount < limit:
            return f"{amount} {unit}{'' if amount == 1 else 's'} ago"
    return format_date_only(value)


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


class OutputFormatter:
    """Writes results to stdout and diagnostics to stderr."""

    def __init__(
        self,
        *,
        json_output: bool = False,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        width: int | None = None,
    ) -> None:
        self._json = json_output
        self._stdout = stdout or sys.stdout
        self._stderr = stderr or sys.stderr
        self.console = Console(file=self._stdout, width=width, highlight=False)
        self.err_console = Console(file=self._stderr, width=width, highlight=False)

    @property
    def json_output(self) -> bool:
        return self._json

    def _write_json(self, payload: Any, *, stream: TextIO | None = None) -> None:
        out = stream or self._stdout
        out.write(json.dumps(payload, indent=2, ensure_ascii=False) + "\n")
        out.flush()

    def table(
        self,
        records: Sequence[Any],
        columns: Sequence[Column],
        *,
        empty_message: str | None = None,
    ) -> None:
        if self._json:
            self._write_json(_to_jsonable(list(records)))
            return

        if not records and empty_message is not None:
            self.console.print(Text(empty_message))
            return

        table = Table(box=box.ROUNDED, header_style="bold")
        for column in columns:
            table.add_column(column.header, no_wrap=column.no_wrap)
        for record in records:
            cells = [column.value(record) for column in columns]
            table.add_row(*(c if isinstance(c, Text) else Text(c) for c in cells))
        self.console.print(table)

    def item(self, record: Any, render: Callable[[Console], None]) -> None:
        if self._json:
            self._write_json(_to_jsonable(record))
            return
        render(self.console)

    def message(self, text: str) -> None:
        if self._json:
            self._write_json({"message": text})
            return
        self.console.print(Text(text))

    def warning(self, text: str) -> None:
        self.err_console.print(Text(f"Warning: {text}", style="yellow"))

    def error(self, error: BaseException) -> None:
        kind = error.kind if isinstance(error, LinearError) else "error"
        if self._json:
            self._write_json({"error": {"kind": kind, "message": str(error)}}, stream=self._stderr)
            return
        self.err_console.print(Text(f"Error: {error}", style="bold red"))
