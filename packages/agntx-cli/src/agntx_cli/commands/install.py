"""The ``install`` command: resolve, select, materialize and record."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from agntx_core.errors import AgntxError, SelectionError
from agntx_core.preferences import read_preferences, write_preferences
from agntx_core.types import ComponentKind
from agntx_install.discovery import discover_source
from agntx_install.installer import (
    Installer,
    InstallSummary,
    build_manifest,
    install_lock,
    plan_install,
    selection_payload,
)
from agntx_install.layout import manifest_path
from agntx_install.manifest import ManifestStore
from agntx_install.selection import (
    Selector,
    parse_selector,
    resolve_kinds,
    resolve_mode,
    resolve_names,
    resolve_overwrite,
    resolve_scope,
    resolve_tools,
)
from agntx_install.sources import resolve_source

from agntx_cli.commands import common
from agntx_cli.output import info, print_issues, print_json, success

if TYPE_CHECKING:
    from agntx_core.config import AgntxConfig
    from agntx_install.installer import InstallPlan, InstallReport
    from agntx_install.protocols import Prompter, SourceFetcher


@dataclass(frozen=True, slots=True)
class InstallRequest:
    """Flag values of one install run."""
    source: str
    selectors: dict[ComponentKind, Selector] = field(default_factory=dict)
    global_: bool = False
    local: bool = False
    path: str | None = None
    mode: str | None = None
    tools: str | None = None
    force: bool = False
    dry_run: bool = False
    automated: bool = False
    json_output: bool = False
    save_preferences: bool = True


def _confirm_summary(
    prompter: Prompter,
    request: InstallRequest,
    plan: InstallPlan,
    selection: dict[ComponentKind, list[str]],
) -> bool:
    lines = [
        "Proceed with install?",
        f"- source: {request.source}",
        f"- scope: {plan.scope.value}",
        f"- mode: {plan.mode.value}",
        f"- overwrite: {'overwrite' if plan.overwrite else 'skip'}",
        f"- tools: {', '.join(t.value for t in plan.tools)}",
    ]
    lines.extend(
        f"- {kind.value}: {len(selection.get(kind, []))}" for kind in ComponentKind
    )
    return prompter.confirm("\n".join(lines), default=True)


def _nothing_done(
    message: str,
    request: InstallRequest,
    selection: dict[ComponentKind, list[str]],
) -> None:
    info(message)
    if request.json_output:
        print_json({
            "summary": InstallSummary().to_dict(),
            "statePath": None,
            "selection": selection_payload(selection),
        })


def execute_install(
    request: InstallRequest,
    config: AgntxConfig,
    fetcher: SourceFetcher,
    prompter: Prompter | None,
) -> InstallReport | None:
    """Run a complete install.  Returns None when nothing was done."""
    automated = request.automated or prompter is None
    source = resolve_source(request.source, fetcher)
    discovered = discover_source(source.resolved_path)
    print_issues(discovered.issues)

    kinds = resolve_kinds(request.selectors, prompter, automated)
    if not kinds:
        _nothing_done("No component categories selected. Nothing to install.", request, {})
        return None

    preferences = None if automated else read_preferences()
    scope, scope_path = resolve_scope(
        global_=request.global_,
        local=request.local,
        path=request.path,
        defaults=config.install,
        preferences=preferences,
        prompter=prompter,
        automated=automated,
    )
    mode = resolve_mode(
        request.mode,
        defaults=config.install,
        preferences=preferences,
        prompter=prompter,
        automated=automated,
    )
    overwrite = resolve_overwrite(request.force, prompter=prompter, automated=automated)

    selection: dict[ComponentKind, list[str]] = {}
    for kind in ComponentKind:
        if kind not in kinds:
            selection[kind] = []
            continue
        selection[kind] = resolve_names(
            kind,
            discovered.names(kind),
            request.selectors.get(kind, Selector()),
            prompter,
            automated,
            search_threshold=config.prompts.search_threshold,
        )

    if not any(selection.values()):
        _nothing_done("No components selected. Nothing to install.", request, selection)
        return None

    tools = resolve_tools(
        request.tools,
        defaults=config.install,
        preferences=preferences,
        prompter=prompter,
        automated=automated,
    )
    plan = plan_install(
        scope,
        mode,
        tools,
        overwrite=overwrite,
        dry_run=request.dry_run,
        path_arg=scope_path,
    )

    if not automated and not _confirm_summary(prompter, request, plan, selection):
        _nothing_done("Installation cancelled", request, selection)
        return None

    with install_lock(plan):
        report = Installer(plan).install(discovered, selection)
        if not plan.dry_run:
            manifest = build_manifest(
                plan, source, selection, discovered, report.components,
            )
            ManifestStore().write(plan.canonical_root, manifest)

    for action in report.actions:
        info(action)
    label = "Dry-run complete" if plan.dry_run else "Install complete"
    success(f"{label}: {report.summary.describe()}")

    if request.json_output:
        print_json({
            "summary": report.summary.to_dict(),
            "statePath": str(manifest_path(plan.canonical_root)),
            "selection": selection_payload(selection),
        })

    if request.save_preferences and not automated and not plan.dry_run:
        write_preferences(plan.tools, plan.scope, plan.mode)
    return report


def _pick_source(config: AgntxConfig, prompter: Prompter | None) -> str:
    """Offer the configured source repositories when no SOURCE was given."""
    repos = config.sources.repos
    if prompter is None or not repos:
        msg = "Missing SOURCE: pass a repository identifier or local path"
        raise SelectionError(msg)
    return prompter.select_one(
        "Select a source:", [(repo, repo) for repo in repos], default=repos[0],
    )


def install_command(
    source: str | None = typer.Argument(
        None, help="Repository identifier or local path (default: pick from [sources] repos)",
    ),
    agents: str | None = typer.Option(
        None, "--agents", help="Agent files to install (csv), or 'all'",
    ),
    skills: str | None = typer.Option(
        None, "--skills", help="Skills to install (csv), or 'all'",
    ),
    commands: str | None = typer.Option(
        None, "--commands", help="Commands to install (csv), or 'all'",
    ),
    files: str | None = typer.Option(
        None, "--files", help="File groups to install (csv), or 'all'",
    ),
    global_: bool = typer.Option(False, "--global", "-g", help="Install to the home directory"),
    local: bool = typer.Option(False, "--local", help="Install to the current project"),
    path: str | None = typer.Option(None, "--path", help="Install to a custom base directory"),
    mode: str | None = typer.Option(None, "--mode", help="Install mode: symlink or copy"),
    tools: str | None = typer.Option(None, "--tools", help="Target tools: claude, cursor, or all"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing paths"),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Preview changes without writing"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip prompts and confirmations"),
    json_output: bool = typer.Option(False, "--json", help="Emit a JSON summary"),
) -> None:
    """Install agent files, skills, commands, and file groups."""
    common.configure(verbose, json_output)
    automated = common.is_automated(yes)
    try:
        config = common.load_config()
        fetcher = common.build_fetcher(config)
        prompter = None if automated else common.build_prompter()
        request = InstallRequest(
            source=source or _pick_source(config, prompter),
            selectors={
                ComponentKind.AGENTS: parse_selector(agents),
                ComponentKind.SKILLS: parse_selector(skills),
                ComponentKind.COMMANDS: parse_selector(commands),
                ComponentKind.FILES: parse_selector(files),
            },
            global_=global_,
            local=local,
            path=str(Path(path).expanduser()) if path else None,
            mode=mode,
            tools=tools,
            force=force,
            dry_run=dry_run,
            automated=automated,
            json_output=json_output,
        )
        execute_install(request, config, fetcher, prompter)
    except AgntxError as exc:
        common.fail(exc)
