"""The ``inspect`` command: source structure plus runtime integrity."""
from __future__ import annotations

from pathlib import Path

import typer
from agntx_core.errors import AgntxError
from agntx_core.types import Issue, SourceDescriptor, SourceType
from agntx_install.discovery import validate_source
from agntx_install.manifest import ManifestStore
from agntx_install.sources import resolve_source
from agntx_install.validator import collect_runtime_issues, exit_code, summarize_issues
from rich.markup import escape
from rich.tree import Tree

from agntx_cli.commands import common
from agntx_cli.output import console, info, print_issues, print_json


def _list_branch(tree: Tree, label: str, entries: list[str]) -> None:
    branch = tree.add(f"{label} ({len(entries)})")
    for entry in entries or ["(0)"]:
        branch.add(escape(entry))


def inspect_command(
    source: str | None = typer.Argument(
        None, help="Repository identifier or local path to inspect",
    ),
    path: str | None = typer.Option(
        None, "--path", help="Inspect a local path when no source is given",
    ),
    global_: bool = typer.Option(False, "--global", "-g", help="Validate the global install"),
    local: bool = typer.Option(False, "--local", help="Validate the local install (default)"),
    strict: bool = typer.Option(False, "--strict", help="Exit non-zero on warnings"),
    json_output: bool = typer.Option(False, "--json", help="Emit a JSON report"),
) -> None:
    """Inspect a source tree and validate the runtime installation."""
    common.configure(json_output=json_output)
    try:
        if source:
            config = common.load_config()
            resolved = resolve_source(source, common.build_fetcher(config))
        else:
            target = Path(path).expanduser() if path else Path.cwd()
            resolved = SourceDescriptor(
                source_type=SourceType.LOCAL,
                input=path or str(Path.cwd()),
                resolved_path=str(target.resolve()),
            )
        discovered, source_issues = validate_source(resolved.resolved_path)

        include_runtime = not source and not path
        manifest = None
        runtime_issues: list[Issue] = []
        if include_runtime:
            _, _, root = common.state_location(global_=global_ and not local)
            manifest = ManifestStore().read(root)
            if manifest is not None:
                runtime_issues = collect_runtime_issues(manifest)
    except AgntxError as exc:
        common.fail(exc)

    issues = source_issues + runtime_issues
    summary = summarize_issues(issues)

    if json_output:
        print_json({
            "schemaVersion": 1,
            "path": resolved.resolved_path,
            "summary": summary.to_dict(),
            "source": {
                "type": resolved.source_type.value,
                "input": resolved.input,
                "path": resolved.resolved_path,
                "repo": resolved.repo,
                "ref": resolved.ref,
                "commit": resolved.commit,
            },
            "runtime": {
                "checksSkipped": not include_runtime,
                "manifestFound": manifest is not None,
            },
            "discovered": {
                "agents": discovered.agents,
                "skills": discovered.skills,
                "commands": discovered.commands,
                "fileGroups": discovered.file_groups,
                "reservedIgnored": discovered.reserved_ignored,
            },
            "issues": [issue.to_dict() for issue in issues],
        })
    else:
        tree = Tree(f"Inspect ({resolved.source_type.value})")
        tree.add(f"Input: {escape(resolved.input)}")
        tree.add(f"Resolved: {escape(resolved.resolved_path)}")
        if resolved.repo:
            ref = f"#{resolved.ref}" if resolved.ref else ""
            commit = f" @ {resolved.commit[:12]}" if resolved.commit else ""
            tree.add(f"Repository: {resolved.repo}{ref}{commit}")
        elif resolved.commit:
            tree.add(f"Commit: {resolved.commit[:12]}")
        components = tree.add("Source components")
        _list_branch(components, "AGENTS", discovered.agents)
        _list_branch(components, "SKILLS", discovered.skills)
        _list_branch(components, "COMMANDS", discovered.commands)
        _list_branch(components, "FILE GROUPS", discovered.file_groups)
        console.print(tree)

        runtime = Tree("Runtime")
        if not include_runtime:
            runtime.add("Skipped (source inspection mode)")
        elif manifest is None:
            runtime.add("No runtime manifest found")
        elif not runtime_issues:
            runtime.add("OK (no runtime issues)")
        else:
            runtime.add(f"Issues ({len(runtime_issues)})")
        console.print()
        console.print(runtime)
        console.print()
        info(f"Validation summary: errors={summary.errors}, warnings={summary.warnings}")
        print_issues(issues)

    code = exit_code(issues, strict)
    if code:
        raise typer.Exit(code)
