from __future__ import annotations

import argparse
import sys
from collections.abc import Mapping, Sequence
from typing import Literal

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from .config import OUTPUT_ENV, output_mode_from_env

OUTPUT_CHOICES = ("auto", "plain", "rich")
OutputMode = Literal["plain", "rich"]


def add_output_mode_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        choices=OUTPUT_CHOICES,
        help=f"Output mode: auto (default), plain, or rich. Env: {OUTPUT_ENV}.",
    )


_STATUS_STYLES = {
    "backlog": "white",
    "ready": "cyan",
    "in_progress": "yellow",
    "review": "magenta",
    "done": "green",
    "closed": "dim",
}


def _parse_mode(raw: str | None, *, source: str) -> str | None:
    value = (raw or "").strip().lower()
    if not value:
        return None
    if value in OUTPUT_CHOICES:
        return value
    raise ValueError(
        f"invalid {source} value {raw!r}; expected one of: {', '.join(OUTPUT_CHOICES)}"
    )


def _stdout_is_tty() -> bool:
    try:
        return sys.stdout.isatty()
    except (AttributeError, OSError, ValueError):
        return False


def resolve_output_mode(
    requested: str | None = None,
    *,
    env: Mapping[str, str] | None = None,
    is_tty: bool | None = None,
) -> OutputMode:
    """--output wins over TASKBOARD_OUTPUT; ``auto`` picks rich on a TTY."""
    selected = (
        _parse_mode(requested, source="--output")
        or _parse_mode(output_mode_from_env(env), source=OUTPUT_ENV)
        or "auto"
    )
    if selected == "auto":
        return "rich" if (_stdout_is_tty() if is_tty is None else is_tty) else "plain"
    return selected  # type: ignore[return-value]


def make_console(mode: OutputMode) -> Console:
    rich_mode = mode == "rich"
    return Console(force_terminal=rich_mode, no_color=not rich_mode, highlight=False)


def _cell(value: object, *, status: bool = False) -> Text:
    text = "" if value is None else str(value)
    return Text(text, style=_STATUS_STYLES.get(text, "")) if status else Text(text)


def render_table(
    console: Console,
    *,
    headers: Sequence[str],
    rows: Sequence[Sequence[object]],
    title: str | None = None,
    no_wrap_columns: Sequence[int] = (),
    status_column: int | None = None,
) -> None:
    """Print *rows* as a rich table; cell text is never parsed as markup."""
    table = Table(title=title)
    for idx, header in enumerate(headers):
        table.add_column(header, no_wrap=idx in no_wrap_columns)
    for row in rows:
        table.add_row(
            *(_cell(value, status=idx == status_column) for idx, value in enumerate(row))
        )
    console.print(table)


def render_panel(console: Console, body: str, *, title: str | None = None) -> None:
    console.print(Panel(body, title=title))


def render_markdown(console: Console, body: str) -> None:
    console.print(Markdown(body))


def render_tree(console: Console, tree: Tree) -> None:
    console.print(tree)


def print_plain_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
    widths = [len(item) for item in headers]
    for row in rows:
        for idx, col in enumerate(row):
            widths[idx] = max(widths[idx], len(col))

    print("  ".join(headers[idx].ljust(widths[idx]) for idx in range(len(headers))))
    print("  ".join("-" * widths[idx] for idx in range(len(headers))))
    for row in rows:
        print("  ".join(row[idx].ljust(widths[idx]) for idx in range(len(headers))))
