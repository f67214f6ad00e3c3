"""Removal of installed components with canonical reference tracking."""
from __future__ import annotations

import enum
import os
import shutil
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING

from agntx_core.logging import get_logger
from agntx_core.types import (
    TYPED_KINDS,
    ComponentKind,
    RuntimeComponents,
    ToolName,
)

from agntx_install.layout import tool_component_dir
from agntx_install.manifest import ManifestStore
from agntx_install.tracking import discard_entry, read_tracking

if TYPE_CHECKING:
    from collections.abc import Iterable

    from agntx_core.types import RuntimeManifest

logger = get_logger("install.removal")


class RecordOrigin(enum.Enum):
    MANIFEST = "manifest"
    LEGACY = "legacy"


@dataclass(frozen=True, slots=True)
class InstallRecord:
    """One installed target path and where its bookkeeping lives."""
    name: str
    kind: ComponentKind
    tool: ToolName
    installed_path: str
    target_dir: str
    canonical_path: str | None = None
    origin: RecordOrigin = RecordOrigin.MANIFEST

    @property
    def target_path(self) -> Path:
        return Path(self.target_dir) / self.installed_path


def _key(path: str | Path) -> str:
    return os.path.abspath(path)


def collect_records(
    base_dir: Path,
    canonical_root: Path,
    tools: Iterable[ToolName],
    kinds: Iterable[ComponentKind] = TYPED_KINDS,
    store: ManifestStore | None = None,
) -> list[InstallRecord]:
    """Merge manifest targets and legacy tracking entries.

    A target path known to both keeps the manifest record.
    """
    tools = list(tools)
    kinds = [kind for kind in kinds if kind in TYPED_KINDS]
    store = store or ManifestStore()
    records: dict[str, InstallRecord] = {}

    manifest = store.read(canonical_root)
    if manifest is not None:
        for kind in kinds:
            for entry in manifest.components.typed(kind):
                for target in entry.targets:
                    if target.tool not in tools:
                        continue
                    target_path = Path(target.path)
                    records.setdefault(_key(target_path), InstallRecord(
                        name=entry.name,
                        kind=kind,
                        tool=target.tool,
                        installed_path=target_path.name,
                        target_dir=str(target_path.parent),
                        canonical_path=entry.canonical_path,
                    ))

    if ComponentKind.AGENTS in kinds:
        for tool in tools:
            agents_dir = tool_component_dir(base_dir, tool, ComponentKind.AGENTS)
            for installed_path, agent in read_tracking(agents_dir).items():
                records.setdefault(_key(agents_dir / installed_path), InstallRecord(
                    name=agent.name,
                    kind=ComponentKind.AGENTS,
                    tool=tool,
                    installed_path=installed_path,
                    target_dir=str(agents_dir),
                    canonical_path=agent.canonical_path,
                    origin=RecordOrigin.LEGACY,
                ))

    return list(records.values())


@dataclass(slots=True)
class RemovalSummary:
    removed: list[InstallRecord] = field(default_factory=list)
    missing: list[InstallRecord] = field(default_factory=list)
    failed: int = 0
    canonical_removed: list[str] = field(default_factory=list)
    manifest_updated: bool = False


def _delete(path: Path) -> None:
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    else:
        shutil.rmtree(path)


class RemovalEngine:
    """Deletes selected records and then any canonical copy left unreferenced.

    ``records`` passed to :meth:`remove` must cover every tool and kind so
    that a canonical copy still used elsewhere is kept.
    """

    def __init__(self, canonical_root: Path, store: ManifestStore | None = None) -> None:
        self.canonical_root = canonical_root
        self.store = store or ManifestStore()

    def remove_target(self, record: InstallRecord) -> bool:
        """Delete one installed path.  Returns False when it is already gone."""
        target = record.target_path
        if not os.path.lexists(target):
            return False
        _delete(target)
        if record.origin is RecordOrigin.LEGACY:
            discard_entry(Path(record.target_dir), record.installed_path)
        logger.debug("Removed %s", target)
        return True

    def remove_canonical(self, canonical_path: str) -> bool:
        """Delete a canonical copy and prune empty parents up to the root."""
        root = self.canonical_root.resolve()
        candidate = Path(os.path.normpath(Path(canonical_path).absolute()))
        resolved_parent = candidate.parent.resolve()
        if resolved_parent != root and root not in resolved_parent.parents:
            logger.warning(
                "Refusing to delete %s: outside canonical root %s", canonical_path, root,
            )
            return False
        if candidate.resolve() == root:
            logger.warning("Refusing to delete the canonical root %s", root)
            return False

        if os.path.lexists(candidate):
            _delete(candidate)

        parent = resolved_parent
        while parent != root and root in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent
        return True

    def remove(
        self, selected: list[InstallRecord], records: list[InstallRecord],
    ) -> RemovalSummary:
        summary = RemovalSummary()
        remaining = list(records)
        dropped_targets: set[str] = set()
        deleted_canonicals: set[str] = set()

        for record in selected:
            try:
                removed = self.remove_target(record)
            except OSError as exc:
                summary.failed += 1
                logger.warning("Failed to remove %s: %s", record.target_path, exc)
                continue
            if not removed:
                summary.missing.append(record)
                continue

            summary.removed.append(record)
            remaining = [r for r in remaining if r != record]
            if record.origin is RecordOrigin.MANIFEST:
                dropped_targets.add(_key(record.target_path))

            canonical = record.canonical_path
            if not canonical or _key(canonical) in deleted_canonicals:
                continue
            still_used = any(
                r.canonical_path and _key(r.canonical_path) == _key(canonical)
                for r in remaining
            )
            if still_used:
                continue
            try:
                if self.remove_canonical(canonical):
                    deleted_canonicals.add(_key(canonical))
                    summary.canonical_removed.append(canonical)
            except OSError as exc:
                summary.failed += 1
                logger.warning("Failed to remove canonical %s: %s", canonical, exc)

        if dropped_targets or deleted_canonicals:
            summary.manifest_updated = self._update_manifest(
                dropped_targets, deleted_canonicals,
            )
        return summary

    def _update_manifest(
        self, dropped_targets: set[str], deleted_canonicals: set[str],
    ) -> bool:
        manifest = self.store.read(self.canonical_root)
        if manifest is None:
            return False
        self.store.write(
            self.canonical_root,
            prune_manifest(manifest, dropped_targets, deleted_canonicals),
        )
        return True


def prune_manifest(
    manifest: RuntimeManifest,
    dropped_targets: set[str],
    deleted_canonicals: set[str],
) -> RuntimeManifest:
    """Drop removed targets, and entries whose canonical copy is gone."""
    selection = {kind: list(names) for kind, names in manifest.selection.items()}
    typed = {}
    for kind in TYPED_KINDS:
        kept = []
        for entry in manifest.components.typed(kind):
            if _key(entry.canonical_path) in deleted_canonicals:
                selection[kind] = [n for n in selection.get(kind, []) if n != entry.name]
                continue
            targets = [t for t in entry.targets if _key(t.path) not in dropped_targets]
            kept.append(replace(entry, targets=targets))
        typed[kind] = kept

    components = RuntimeComponents(
        agents=typed[ComponentKind.AGENTS],
        skills=typed[ComponentKind.SKILLS],
        commands=typed[ComponentKind.COMMANDS],
        files=list(manifest.components.files),
    )
    return replace(manifest, components=components, selection=selection)
