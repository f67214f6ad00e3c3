"""Install planning and two-stage materialization.

Stage one copies every selected agent, skill and command into the
canonical root (``<base>/.agents/<kind>/...``).  Stage two fans the
canonical copy out to each tool directory in the chosen mode.  File
groups skip both stages and are copied straight into the base directory.
"""
from __future__ import annotations

import contextlib
import os
import shutil
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from agntx_core.errors import UnsupportedModeError
from agntx_core.logging import get_logger
from agntx_core.types import (
    TOOL_SUPPORT,
    TYPED_KINDS,
    ComponentKind,
    EntryType,
    InstallMode,
    InstallOutcome,
    RuntimeComponentEntry,
    RuntimeComponents,
    RuntimeFileGroupEntry,
    RuntimeManifest,
    RuntimeTarget,
    ScopeName,
    SourceProvenance,
    ToolName,
)

from agntx_install.layout import (
    BACKUPS_DIRNAME,
    canonical_root,
    component_filename,
    file_group_target,
    resolve_base_dir,
    tool_component_dir,
)
from agntx_install.locking import LOCK_FILENAME, hold_lock
from agntx_install.platform import symlink_capability

if TYPE_CHECKING:
    from collections.abc import Iterator

    from agntx_core.types import DiscoveredSource, SourceDescriptor

logger = get_logger("install.installer")


def _utc_timestamp(now: datetime | None = None) -> str:
    moment = now or datetime.now(UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_run_id(now: datetime | None = None) -> str:
    """Filesystem-safe run identifier, e.g. ``2026-01-05T10-11-12-345Z``."""
    return _utc_timestamp(now).replace(":", "-").replace(".", "-")


# ── Planning ─────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class InstallPlan:
    """Where and how one install run writes."""
    scope: ScopeName
    base_dir: Path
    canonical_root: Path
    mode: InstallMode
    tools: list[ToolName]
    overwrite: bool
    backup_root: Path
    dry_run: bool = False
    tool_support: dict[ComponentKind, tuple[ToolName, ...]] = field(
        default_factory=lambda: dict(TOOL_SUPPORT)
    )


def plan_install(
    scope: ScopeName,
    mode: InstallMode,
    tools: list[ToolName],
    *,
    overwrite: bool = False,
    dry_run: bool = False,
    path_arg: str | Path | None = None,
    cwd: Path | None = None,
    platform: str | None = None,
    now: datetime | None = None,
) -> InstallPlan:
    """Resolve the directories of an install run.

    Raises:
        UnsupportedModeError: If symlinks were requested on a platform that
            cannot create them.  Nothing has been written at that point.
    """
    if mode is InstallMode.SYMLINK:
        capability = symlink_capability(platform)
        if not capability.supported:
            raise UnsupportedModeError(capability.remediation)

    base_dir = resolve_base_dir(scope, path_arg, cwd)
    root = canonical_root(base_dir, scope)
    return InstallPlan(
        scope=scope,
        base_dir=base_dir,
        canonical_root=root,
        mode=mode,
        tools=list(dict.fromkeys(tools)),
        overwrite=overwrite,
        backup_root=root / BACKUPS_DIRNAME / new_run_id(now),
        dry_run=dry_run,
    )


@contextlib.contextmanager
def install_lock(plan: InstallPlan) -> Iterator[None]:
    """Hold the canonical-root lock unless the run is a dry run."""
    if plan.dry_run:
        yield
        return
    with hold_lock(plan.canonical_root / LOCK_FILENAME):
        yield


# ── Materialization ──────────────────────────────────────────────────

def _backup_relative(base_dir: Path, target_path: Path) -> str:
    rel = os.path.relpath(target_path, base_dir)
    if rel == os.pardir or rel.startswith(os.pardir + os.sep):
        sanitized = str(target_path).replace(os.sep, "_")
        return f"_external/{sanitized}"
    return rel


def _remove_path(path: Path) -> None:
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    else:
        shutil.rmtree(path)


class Materializer:
    """Places a single file or directory, with backup and dry-run handling.

    Existing targets are detected with ``lexists`` so that a dangling
    symlink still counts as present.
    """

    def __init__(
        self, base_dir: Path, backup_root: Path, dry_run: bool = False,
    ) -> None:
        self.base_dir = base_dir
        self.backup_root = backup_root
        self.dry_run = dry_run
        self.backups = 0
        self.actions: list[str] = []

    def backup_path(self, target_path: Path) -> Path:
        stamp = time.time_ns() // 1_000_000
        rel = _backup_relative(self.base_dir, target_path)
        return self.backup_root / f"{rel}.backup.{stamp}"

    def _record(self, action: str) -> None:
        self.actions.append(action)
        logger.info(action)

    def _backup(self, target_path: Path) -> None:
        backup = self.backup_path(target_path)
        if self.dry_run:
            self._record(f"[dry-run] backup {target_path} -> {backup}")
            return
        backup.parent.mkdir(parents=True, exist_ok=True)
        os.replace(target_path, backup)
        self.backups += 1
        logger.debug("Backed up %s -> %s", target_path, backup)

    def install_entry(
        self,
        source_path: Path,
        target_path: Path,
        entry_type: EntryType,
        mode: InstallMode,
        overwrite: bool,
    ) -> InstallOutcome:
        exists = os.path.lexists(target_path)
        if exists and not overwrite:
            logger.debug("Skipping existing %s", target_path)
            return InstallOutcome.SKIPPED
        if exists:
            self._backup(target_path)

        if self.dry_run:
            self._record(f"[dry-run] {mode.value} {source_path} -> {target_path}")
            return InstallOutcome.INSTALLED

        target_path.parent.mkdir(parents=True, exist_ok=True)
        if os.path.lexists(target_path):
            _remove_path(target_path)

        if mode is InstallMode.COPY:
            if entry_type is EntryType.DIR:
                shutil.copytree(source_path, target_path)
            else:
                shutil.copyfile(source_path, target_path)
        else:
            link_value = os.path.relpath(source_path, target_path.parent)
            os.symlink(
                link_value,
                target_path,
                target_is_directory=entry_type is EntryType.DIR,
            )
        return InstallOutcome.INSTALLED


# ── Install Run ──────────────────────────────────────────────────────

@dataclass(slots=True)
class InstallSummary:
    installed: int = 0
    skipped: int = 0
    failed: int = 0
    backups: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "installed": self.installed,
            "skipped": self.skipped,
            "failed": self.failed,
            "backups": self.backups,
        }

    def describe(self) -> str:
        return (
            f"installed={self.installed}, skipped={self.skipped}, "
            f"failed={self.failed}, backups={self.backups}"
        )


@dataclass(frozen=True, slots=True)
class InstallReport:
    summary: InstallSummary
    components: RuntimeComponents
    actions: list[str] = field(default_factory=list)


class Installer:
    """Runs the selected components of a discovered source through a plan.

    Processing is sequential: kinds in order, names in order, tools in
    order.  A failing item is counted and logged and the run continues.
    """

    def __init__(
        self, plan: InstallPlan, materializer: Materializer | None = None,
    ) -> None:
        self.plan = plan
        self.materializer = materializer or Materializer(
            plan.base_dir, plan.backup_root, dry_run=plan.dry_run,
        )
        self.summary = InstallSummary()

    def install(
        self,
        discovered: DiscoveredSource,
        selection: dict[ComponentKind, list[str]],
    ) -> InstallReport:
        root = Path(discovered.root_dir)
        typed: dict[ComponentKind, list[RuntimeComponentEntry]] = {}
        for kind in TYPED_KINDS:
            typed[kind] = self._install_typed(root, kind, selection.get(kind, []))
        files = self._install_file_groups(root, selection.get(ComponentKind.FILES, []))

        self.summary.backups = self.materializer.backups
        components = RuntimeComponents(
            agents=typed[ComponentKind.AGENTS],
            skills=typed[ComponentKind.SKILLS],
            commands=typed[ComponentKind.COMMANDS],
            files=files,
        )
        return InstallReport(
            summary=self.summary,
            components=components,
            actions=list(self.materializer.actions),
        )

    def _install_typed(
        self, root: Path, kind: ComponentKind, names: list[str],
    ) -> list[RuntimeComponentEntry]:
        plan = self.plan
        entry_type = EntryType.DIR if kind is ComponentKind.SKILLS else EntryType.FILE
        entries: list[RuntimeComponentEntry] = []

        for name in names:
            filename = component_filename(kind, name)
            source_path = root / kind.value / filename
            canonical_path = plan.canonical_root / kind.value / filename
            try:
                outcome = self.materializer.install_entry(
                    source_path, canonical_path, entry_type,
                    InstallMode.COPY, plan.overwrite,
                )
            except OSError as exc:
                self.summary.failed += 1
                logger.warning("Failed to install %s:%s: %s", kind.value, name, exc)
                continue
            if outcome is InstallOutcome.SKIPPED:
                self.summary.skipped += 1
                continue
            self.summary.installed += 1

            targets: list[RuntimeTarget] = []
            for tool in plan.tools:
                if tool not in plan.tool_support.get(kind, ()):
                    self.summary.skipped += 1
                    logger.warning(
                        "Skipping %s:%s for %s (unsupported by compatibility rules)",
                        kind.value, name, tool.value,
                    )
                    continue
                target_path = tool_component_dir(plan.base_dir, tool, kind) / filename
                try:
                    outcome = self.materializer.install_entry(
                        canonical_path, target_path, entry_type,
                        plan.mode, plan.overwrite,
                    )
                except OSError as exc:
                    self.summary.failed += 1
                    logger.warning(
                        "Failed to install %s:%s for %s: %s",
                        kind.value, name, tool.value, exc,
                    )
                    continue
                if outcome is InstallOutcome.SKIPPED:
                    self.summary.skipped += 1
                    continue
                self.summary.installed += 1
                targets.append(RuntimeTarget(tool=tool, path=str(target_path), mode=plan.mode))

            entries.append(RuntimeComponentEntry(
                name=name,
                canonical_path=str(canonical_path),
                source_path=str(source_path),
                targets=targets,
            ))
        return entries

    def _install_file_groups(
        self, root: Path, groups: list[str],
    ) -> list[RuntimeFileGroupEntry]:
        entries: list[RuntimeFileGroupEntry] = []
        for group in groups:
            source_path = root / group
            target_path = self.plan.base_dir / file_group_target(group)
            try:
                outcome = self.materializer.install_entry(
                    source_path, target_path, EntryType.DIR,
                    InstallMode.COPY, self.plan.overwrite,
                )
            except OSError as exc:
                self.summary.failed += 1
                logger.warning("Failed to install file group:%s: %s", group, exc)
                continue
            if outcome is InstallOutcome.SKIPPED:
                self.summary.skipped += 1
                continue
            self.summary.installed += 1
            entries.append(RuntimeFileGroupEntry(
                name=group,
                source_path=str(source_path),
                target_path=str(target_path),
            ))
        return entries


def build_manifest(
    plan: InstallPlan,
    source: SourceDescriptor,
    selection: dict[ComponentKind, list[str]],
    discovered: DiscoveredSource,
    components: RuntimeComponents,
    now: datetime | None = None,
) -> RuntimeManifest:
    return RuntimeManifest(
        installed_at=_utc_timestamp(now),
        base_dir=str(plan.base_dir),
        canonical_root=str(plan.canonical_root),
        scope=plan.scope,
        mode=plan.mode,
        tools=list(plan.tools),
        source=SourceProvenance.from_descriptor(source),
        selection={kind: list(selection.get(kind, [])) for kind in ComponentKind},
        reserved_ignored=list(discovered.reserved_ignored),
        components=components,
    )


def selection_payload(selection: dict[ComponentKind, list[str]]) -> dict[str, Any]:
    return {kind.value: list(selection.get(kind, [])) for kind in ComponentKind}
