"""The ``check`` and ``update`` commands, driven by the recorded manifest."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer
from agntx_core.errors import AgntxError
from agntx_core.types import ScopeName, SourceType
from agntx_install.manifest import ManifestStore
from agntx_install.selection import Selector
from agntx_install.sources import parse_repository

from agntx_cli.commands import common
from agntx_cli.commands.install import InstallRequest, execute_install
from agntx_cli.output import error, info, print_json, success, warn

if TYPE_CHECKING:
    from agntx_core.types import RuntimeManifest
    from agntx_install.protocols import SourceFetcher


def current_commit(manifest: RuntimeManifest, fetcher: SourceFetcher) -> str | None:
    """Head commit the recorded source points at today, best effort."""
    source = manifest.source
    if source.type is SourceType.GIT:
        return fetcher.remote_commit(parse_repository(source.input))
    resolved = Path(source.resolved_path)
    if (resolved / ".git").exists():
        return fetcher.head_commit(resolved)
    return None


def request_from_manifest(
    manifest: RuntimeManifest, dry_run: bool = False, json_output: bool = False,
) -> InstallRequest:
    """Rebuild the flags of the recorded install, with overwrite forced."""
    selectors = {
        kind: Selector(requested=True, values=list(names))
        for kind, names in manifest.selection.items()
        if names
    }
    # A local source is replayed from its resolved path, independent of cwd.
    source = manifest.source.input
    if manifest.source.type is SourceType.LOCAL:
        source = manifest.source.resolved_path
    return InstallRequest(
        source=source,
        selectors=selectors,
        global_=manifest.scope is ScopeName.GLOBAL,
        local=manifest.scope is ScopeName.LOCAL,
        path=manifest.base_dir if manifest.scope is ScopeName.PATH else None,
        mode=manifest.mode.value,
        tools=",".join(tool.value for tool in manifest.tools),
        force=True,
        dry_run=dry_run,
        automated=True,
        json_output=json_output,
        save_preferences=False,
    )


def check_command(
    global_: bool = typer.Option(False, "--global", "-g", help="Check the global install"),
    path: str | None = typer.Option(None, "--path", help="Check a custom base path"),
    json_output: bool = typer.Option(False, "--json", help="Emit machine-readable JSON"),
) -> None:
    """Check whether the installed source has newer commits."""
    common.configure(json_output=json_output)
    try:
        _, _, root = common.state_location(global_=global_, path=path)
        manifest = ManifestStore().read(root)
        if manifest is None:
            info("No install manifest found. Nothing to check.")
            if json_output:
                print_json({"manifestFound": False})
            return
        fetcher = common.build_fetcher(common.load_config())
        current = current_commit(manifest, fetcher)
    except AgntxError as exc:
        common.fail(exc)

    recorded = manifest.source.commit
    if recorded and current:
        status = "up-to-date" if recorded == current else "update-available"
    else:
        status = "unknown"

    if json_output:
        print_json({
            "manifestFound": True,
            "source": manifest.source.to_dict(),
            "recordedCommit": recorded,
            "currentCommit": current,
            "status": status,
        })
        return

    if status == "up-to-date":
        success(f"{manifest.source.input} is up to date ({recorded[:12]})")
    elif status == "update-available":
        info(
            f"Update available for {manifest.source.input}: "
            f"{recorded[:12]} -> {current[:12]}. Run 'agntx update'."
        )
    else:
        warn(f"Could not determine the latest commit of {manifest.source.input}")


def update_command(
    global_: bool = typer.Option(False, "--global", "-g", help="Update the global install"),
    path: str | None = typer.Option(None, "--path", help="Update a custom base path"),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Preview changes without writing"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    json_output: bool = typer.Option(False, "--json", help="Emit a JSON summary"),
) -> None:
    """Re-run the recorded install against the latest source."""
    common.configure(verbose, json_output)
    try:
        _, _, root = common.state_location(global_=global_, path=path)
        manifest = ManifestStore().read(root)
        if manifest is None:
            error("No install manifest found. Run 'agntx install' first.")
            raise typer.Exit(1)
        # An empty selection would replay as "everything" in automated mode.
        if not any(manifest.selection.values()):
            info("Nothing recorded to update.")
            if json_output:
                print_json({"manifestFound": True, "updated": False})
            return
        config = common.load_config()
        request = request_from_manifest(manifest, dry_run=dry_run, json_output=json_output)
        execute_install(request, config, common.build_fetcher(config), prompter=None)
    except AgntxError as exc:
        common.fail(exc)
