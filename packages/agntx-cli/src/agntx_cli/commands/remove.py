"""The ``remove`` command."""
from __future__ import annotations

import typer
from agntx_core.errors import AgntxError, SelectionError
from agntx_core.types import ALL_TOOLS, TYPED_KINDS, ComponentKind
from agntx_install.layout import parse_csv
from agntx_install.locking import LOCK_FILENAME, hold_lock
from agntx_install.removal import InstallRecord, RemovalEngine, collect_records
from agntx_install.selection import parse_tools

from agntx_cli.commands import common
from agntx_cli.output import info, success, warn


def parse_kinds(value: str | None) -> list[ComponentKind]:
    if not value:
        return list(TYPED_KINDS)
    known = {kind.value: kind for kind in TYPED_KINDS}
    entries = parse_csv(value.lower())
    invalid = [entry for entry in entries if entry not in known]
    if invalid or not entries:
        msg = (
            f"Invalid --kind value: {value}. "
            f"Expected: {', '.join(kind.value for kind in TYPED_KINDS)}"
        )
        raise SelectionError(msg)
    return [known[entry] for entry in dict.fromkeys(entries)]


def _label(record: InstallRecord) -> str:
    return f"{record.kind.value}:{record.name}"


def remove_command(
    names: list[str] | None = typer.Argument(None, help="Names of installed components"),
    tools: str | None = typer.Option(None, "--tools", help="Only remove from these tools (csv)"),
    kind: str | None = typer.Option(
        None, "--kind", help="Only remove these kinds: agents, skills, commands (csv)",
    ),
    global_: bool = typer.Option(False, "--global", "-g", help="Remove from the global scope"),
    path: str | None = typer.Option(None, "--path", help="Remove from a custom base path"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    all_: bool = typer.Option(False, "--all", help="Remove every matching installed component"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Remove installed agents, skills, and commands."""
    common.configure(verbose)
    automated = common.is_automated(yes)
    try:
        _, base_dir, root = common.state_location(global_=global_, path=path)
        tool_filter = parse_tools(tools) if tools else list(ALL_TOOLS)
        kind_filter = parse_kinds(kind)

        records = collect_records(base_dir, root, ALL_TOOLS, TYPED_KINDS)
        candidates = [
            r for r in records if r.tool in tool_filter and r.kind in kind_filter
        ]
        if not candidates:
            info("Nothing installed")
            return

        if all_:
            selected = candidates
        elif names:
            wanted = set(names)
            selected = [r for r in candidates if r.name in wanted]
            unknown = sorted(wanted - {r.name for r in selected})
            if unknown:
                warn(f"No installed components named: {', '.join(unknown)}")
        elif automated:
            msg = "Specify component names to remove, or pass --all"
            raise SelectionError(msg)
        else:
            labels = list(dict.fromkeys(_label(r) for r in candidates))
            picked = set(common.build_prompter().select_many(
                "Select components to remove:",
                [(label, label) for label in labels],
                defaults=[],
            ))
            selected = [r for r in candidates if _label(r) in picked]

        if not selected:
            info("No matching installed components found")
            return

        if not automated:
            count = len(selected)
            confirmed = common.build_prompter().confirm(
                f"Remove {count} installed path{'' if count == 1 else 's'}?",
                default=False,
            )
            if not confirmed:
                info("Cancelled")
                return

        with hold_lock(root / LOCK_FILENAME):
            summary = RemovalEngine(root).remove(selected, records)
    except AgntxError as exc:
        common.fail(exc)

    for record in summary.removed:
        success(f"Removed {_label(record)} from {record.tool.value} ({record.target_path})")
    for record in summary.missing:
        warn(f"Already gone: {_label(record)} ({record.target_path})")
    for canonical in summary.canonical_removed:
        info(f"Deleted canonical copy {canonical}")

    removed = len(summary.removed)
    if removed:
        success(f"Done! Removed {removed} path{'' if removed == 1 else 's'}.")
    else:
        info("Nothing was removed")
    if summary.failed:
        raise typer.Exit(1)
