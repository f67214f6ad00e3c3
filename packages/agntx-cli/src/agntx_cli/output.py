"""Console helpers shared by the agntx commands.

Human-readable lines go to stdout; in ``--json`` runs they move to stderr
so that stdout carries a single JSON document.
"""
from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from agntx_core.types import Issue

console = Console(highlight=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, soft_wrap=True)

_json_mode = False


def set_json_mode(enabled: bool) -> None:
    global _json_mode
    _json_mode = enabled


def _prose() -> Console:
    return err_console if _json_mode else console


def success(message: str) -> None:
    _prose().print(f"[green]✓[/green] {escape(message)}")


def info(message: str) -> None:
    _prose().print(f"[cyan]ℹ[/cyan] {escape(message)}")


def warn(message: str) -> None:
    _prose().print(f"[yellow]![/yellow] {escape(message)}")


def error(message: str) -> None:
    err_console.print(f"[red]✗[/red] {escape(message)}")


def print_issues(issues: list[Issue]) -> None:
    for issue in issues:
        if issue.severity.value == "error":
            error(issue.describe())
        else:
            warn(issue.describe())


def print_json(payload: Any) -> None:
    """Write *payload* to stdout verbatim, without rich markup."""
    console.file.write(json.dumps(payload, indent=2) + "\n")
    console.file.flush()
