"""The ``status`` command: what is installed, and is it healthy."""
from __future__ import annotations

from pathlib import Path

import typer
from agntx_core.errors import AgntxError
from agntx_core.types import ALL_TOOLS, TYPED_KINDS, ComponentKind, ToolName
from agntx_install.layout import CANONICAL_DIRNAME
from agntx_install.manifest import ManifestStore
from agntx_install.status import ToolView, availability_payload, scan_tool_views
from agntx_install.validator import collect_runtime_issues, summarize_issues
from rich.markup import escape
from rich.tree import Tree

from agntx_cli.commands import common
from agntx_cli.output import console, print_issues, print_json

_ICONS: dict[ComponentKind, str] = {
    ComponentKind.AGENTS: "🤖",
    ComponentKind.SKILLS: "🧩",
    ComponentKind.COMMANDS: "⌘",
}


def _layer_tree(title: str, layer: str, views: dict[ToolName, ToolView]) -> Tree:
    tree = Tree(escape(title))
    tools = [tool for tool in ALL_TOOLS if tool in views and views[tool].has_entries(layer)]
    if not tools:
        tree.add("(0)")
        return tree

    for tool in tools:
        view = views[tool]
        tool_branch = tree.add(f"[bold]{tool.value}[/bold]")
        for kind in TYPED_KINDS:
            entries = view.layer(layer).get(kind, [])
            if not entries:
                continue
            kind_branch = tool_branch.add(
                f"{_ICONS[kind]} {kind.value.upper()} ({len(entries)})"
            )
            for entry in entries:
                active = view.is_active(kind, entry)
                marker = "●" if active else "○"
                if entry.symlink:
                    label = (
                        f"{marker} {escape(entry.name)} -> "
                        f"[dim]{escape(entry.symlink_target or '(broken)')}[/dim]"
                    )
                else:
                    label = f"{marker} {escape(entry.name)} \\[C]"
                kind_branch.add(label if active else f"[dim]{label}[/dim]")
    return tree


def status_command(
    global_: bool = typer.Option(False, "--global", "-g", help="Show global status"),
    local: bool = typer.Option(False, "--local", help="Show local status (default)"),
    path: str | None = typer.Option(None, "--path", help="Show status for a custom base path"),
    json_output: bool = typer.Option(False, "--json", help="Emit machine-readable JSON"),
) -> None:
    """Show installation state and health."""
    common.configure(json_output=json_output)
    try:
        _, base_dir, root = common.state_location(global_=global_ and not local, path=path)
    except AgntxError as exc:
        common.fail(exc)

    manifest = ManifestStore().read(root)
    issues = collect_runtime_issues(manifest) if manifest is not None else []
    summary = summarize_issues(issues)
    views = scan_tool_views(base_dir)

    if json_output:
        payload: dict = {
            "schemaVersion": 1,
            "current": {
                "baseDir": str(base_dir),
                "canonicalRoot": str(root),
                "availability": availability_payload(views),
            },
            "manifest": None,
            "health": summary.to_dict(),
            "issues": [issue.to_dict() for issue in issues],
        }
        if manifest is not None:
            payload["manifest"] = {
                "installedAt": manifest.installed_at,
                "source": manifest.source.to_dict(),
                "scope": manifest.scope.value,
                "mode": manifest.mode.value,
                "tools": [tool.value for tool in manifest.tools],
                "selection": {
                    kind.value: names for kind, names in manifest.selection.items()
                },
            }
        print_json(payload)
        return

    if manifest is None:
        console.print(f"[dim]No install manifest at {escape(str(root))}[/dim]")
    else:
        counts = ", ".join(
            f"{kind.value}={len(manifest.selection.get(kind, []))}"
            for kind in ComponentKind
        )
        console.print(
            f"Installed from [bold]{escape(manifest.source.input)}[/bold] "
            f"({manifest.mode.value}) at {escape(manifest.installed_at)}: {counts}"
        )
        health = "[green]healthy[/green]" if summary.valid else "[red]issues found[/red]"
        console.print(f"Health: {health} (errors={summary.errors}, warnings={summary.warnings})")
        print_issues(issues)

    console.print()
    console.print(_layer_tree(f"Local ({base_dir})", "project", views))
    console.print()
    global_root = Path.home() / CANONICAL_DIRNAME
    console.print(_layer_tree(f"Global ({global_root})", "global", views))
    console.print()
    console.print("[dim]● active in current resolution, ○ overridden[/dim]")
