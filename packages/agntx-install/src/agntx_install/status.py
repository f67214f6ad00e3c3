"""Scan of what is installed in project and global tool directories."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agntx_core.types import ALL_TOOLS, TYPED_KINDS, ComponentKind, ToolName

from agntx_install.layout import tool_component_dir

_SKILL_FILENAME = "SKILL.md"


@dataclass(frozen=True, slots=True)
class InstalledEntry:
    name: str
    path: str
    symlink: bool
    symlink_target: str | None = None


@dataclass(frozen=True, slots=True)
class ToolView:
    """Project, global and merged entries of one tool, per component kind.

    The effective view lets project entries override global ones by name.
    """
    project: dict[ComponentKind, list[InstalledEntry]] = field(default_factory=dict)
    global_: dict[ComponentKind, list[InstalledEntry]] = field(default_factory=dict)
    effective: dict[ComponentKind, list[InstalledEntry]] = field(default_factory=dict)

    def layer(self, name: str) -> dict[ComponentKind, list[InstalledEntry]]:
        return {"project": self.project, "global": self.global_, "effective": self.effective}[name]

    def has_entries(self, layer: str) -> bool:
        return any(self.layer(layer).get(kind) for kind in TYPED_KINDS)

    def is_active(self, kind: ComponentKind, entry: InstalledEntry) -> bool:
        for candidate in self.effective.get(kind, []):
            if candidate.name == entry.name:
                return candidate.path == entry.path
        return False


def _entry(path: Path, name: str) -> InstalledEntry:
    symlink = path.is_symlink()
    target = None
    if symlink:
        try:
            target = os.readlink(path)
        except OSError:
            target = None
    return InstalledEntry(name=name, path=str(path), symlink=symlink, symlink_target=target)


def scan_markdown_entries(directory: Path) -> list[InstalledEntry]:
    if not directory.is_dir():
        return []
    entries = [
        _entry(child, child.stem)
        for child in directory.iterdir()
        if child.suffix == ".md" and (child.is_symlink() or child.is_file())
    ]
    return sorted(entries, key=lambda e: e.name)


def scan_skill_entries(directory: Path) -> list[InstalledEntry]:
    if not directory.is_dir():
        return []
    entries = [
        _entry(child, child.name)
        for child in directory.iterdir()
        if (child.is_symlink() or child.is_dir())
        and (child / _SKILL_FILENAME).exists()
    ]
    return sorted(entries, key=lambda e: e.name)


def _scan_kind(base_dir: Path, tool: ToolName, kind: ComponentKind) -> list[InstalledEntry]:
    directory = tool_component_dir(base_dir, tool, kind)
    if kind is ComponentKind.SKILLS:
        return scan_skill_entries(directory)
    return scan_markdown_entries(directory)


def merge_effective(
    global_entries: list[InstalledEntry], project_entries: list[InstalledEntry],
) -> list[InstalledEntry]:
    merged = {entry.name: entry for entry in global_entries}
    merged.update({entry.name: entry for entry in project_entries})
    return sorted(merged.values(), key=lambda e: e.name)


def scan_tool_views(
    base_dir: Path,
    tools: tuple[ToolName, ...] | list[ToolName] = ALL_TOOLS,
    home: Path | None = None,
) -> dict[ToolName, ToolView]:
    home = home or Path.home()
    views: dict[ToolName, ToolView] = {}
    for tool in tools:
        project = {kind: _scan_kind(base_dir, tool, kind) for kind in TYPED_KINDS}
        global_ = {kind: _scan_kind(home, tool, kind) for kind in TYPED_KINDS}
        effective = {
            kind: merge_effective(global_[kind], project[kind]) for kind in TYPED_KINDS
        }
        views[tool] = ToolView(project=project, global_=global_, effective=effective)
    return views


def summarize_entries(entries: list[InstalledEntry]) -> dict[str, Any]:
    symlinked = sum(1 for entry in entries if entry.symlink)
    return {
        "count": len(entries),
        "symlinked": symlinked,
        "copied": len(entries) - symlinked,
        "names": [entry.name for entry in entries],
    }


def availability_payload(views: dict[ToolName, ToolView]) -> dict[str, Any]:
    return {
        tool.value: {
            kind.value: {
                "project": summarize_entries(view.project[kind]),
                "global": summarize_entries(view.global_[kind]),
                "effective": summarize_entries(view.effective[kind]),
            }
            for kind in TYPED_KINDS
        }
        for tool, view in views.items()
    }
