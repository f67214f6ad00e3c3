"""Tests for removal with canonical reference tracking."""
from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from agntx_core.types import ComponentKind, InstallMode, ToolName
from agntx_install.manifest import ManifestStore
from agntx_install.removal import (
    InstallRecord,
    RecordOrigin,
    RemovalEngine,
    collect_records,
    prune_manifest,
)
from agntx_install.tracking import read_tracking
from conftest import install_components

BOTH = [ToolName.CLAUDE, ToolName.CURSOR]


@pytest.fixture
def installed(source_dir: Path, tmp_path: Path):
    """Agent ``a`` and skill ``review`` symlinked into both tools, manifest written."""
    plan, manifest = install_components(
        source_dir, tmp_path / "target",
        {ComponentKind.AGENTS: ["a"], ComponentKind.SKILLS: ["review"]},
        mode=InstallMode.SYMLINK, tools=BOTH,
    )
    ManifestStore().write(plan.canonical_root, manifest)
    return plan


def _records(plan):
    return collect_records(plan.base_dir, plan.canonical_root, BOTH)


def _pick(records, name, tool):
    return [r for r in records if r.name == name and r.tool is tool]


# ── Collecting records ───────────────────────────────────────────────


class TestCollectRecords:
    def test_manifest_records(self, installed):
        records = _records(installed)
        assert sorted((r.kind.value, r.name, r.tool.value) for r in records) == [
            ("agents", "a", "claude"),
            ("agents", "a", "cursor"),
            ("skills", "review", "claude"),
            ("skills", "review", "cursor"),
        ]
        assert all(r.origin is RecordOrigin.MANIFEST for r in records)

    def test_filters_tools_and_kinds(self, installed):
        records = collect_records(
            installed.base_dir, installed.canonical_root, [ToolName.CURSOR],
            kinds=[ComponentKind.SKILLS, ComponentKind.FILES],
        )
        assert [(r.name, r.tool) for r in records] == [("review", ToolName.CURSOR)]

    def test_legacy_entries_are_merged_and_deduped(self, installed):
        agents_dir = installed.base_dir / ".claude" / "agents"
        (agents_dir / "old.md").write_text("old agent\n", encoding="utf-8")
        (agents_dir / ".agntx.json").write_text(json.dumps({"agents": {
            "old": {"name": "old", "source": "acme/pack"},
            "a": {"name": "a", "installedPath": "a.md"},
        }}), encoding="utf-8")

        records = collect_records(
            installed.base_dir, installed.canonical_root, [ToolName.CLAUDE],
            kinds=[ComponentKind.AGENTS],
        )

        by_name = {r.name: r for r in records}
        assert len(records) == 2
        assert by_name["a"].origin is RecordOrigin.MANIFEST
        assert by_name["old"].origin is RecordOrigin.LEGACY
        assert by_name["old"].target_path == agents_dir / "old.md"

    def test_no_manifest(self, tmp_path: Path):
        assert collect_records(tmp_path, tmp_path / ".agents", BOTH) == []


# ── Removing ─────────────────────────────────────────────────────────


class TestRemovalEngine:
    def test_canonical_kept_until_last_reference(self, installed):
        canonical = installed.canonical_root / "agents" / "a.md"
        engine = RemovalEngine(installed.canonical_root)

        records = _records(installed)
        first = engine.remove(_pick(records, "a", ToolName.CLAUDE), records)

        assert len(first.removed) == 1
        assert first.canonical_removed == []
        assert canonical.is_file()
        assert not (installed.base_dir / ".claude" / "agents" / "a.md").exists()

        records = _records(installed)
        second = engine.remove(_pick(records, "a", ToolName.CURSOR), records)

        assert second.canonical_removed == [str(canonical)]
        assert not canonical.exists()
        assert not (installed.canonical_root / "agents").exists()
        assert (installed.canonical_root / "skills" / "review").is_dir()

    def test_manifest_is_pruned(self, installed):
        engine = RemovalEngine(installed.canonical_root)
        records = _records(installed)

        summary = engine.remove(_pick(records, "review", ToolName.CLAUDE), records)
        assert summary.manifest_updated is True
        manifest = ManifestStore().read(installed.canonical_root)
        assert [t.tool for t in manifest.components.skills[0].targets] == [ToolName.CURSOR]

        records = _records(installed)
        engine.remove(_pick(records, "review", ToolName.CURSOR), records)
        manifest = ManifestStore().read(installed.canonical_root)
        assert manifest.components.skills == []
        assert manifest.selection[ComponentKind.SKILLS] == []
        assert manifest.selection[ComponentKind.AGENTS] == ["a"]

    def test_already_missing_target(self, installed):
        target = installed.base_dir / ".cursor" / "agents" / "a.md"
        target.unlink()
        records = _records(installed)

        summary = RemovalEngine(installed.canonical_root).remove(
            _pick(records, "a", ToolName.CURSOR), records,
        )

        assert summary.removed == []
        assert len(summary.missing) == 1
        assert summary.manifest_updated is False
        assert (installed.canonical_root / "agents" / "a.md").exists()

    def test_legacy_entry_is_discarded(self, installed):
        agents_dir = installed.base_dir / ".claude" / "agents"
        (agents_dir / "old.md").write_text("old\n", encoding="utf-8")
        (agents_dir / ".agntx.json").write_text(
            json.dumps({"agents": {"old": {"name": "old"}}}), encoding="utf-8",
        )
        records = _records(installed)

        summary = RemovalEngine(installed.canonical_root).remove(
            _pick(records, "old", ToolName.CLAUDE), records,
        )

        assert len(summary.removed) == 1
        assert not (agents_dir / "old.md").exists()
        assert read_tracking(agents_dir) == {}
        assert summary.manifest_updated is False


class TestRemoveCanonicalGuard:
    def test_refuses_path_outside_root(self, tmp_path: Path, caplog):
        outside = tmp_path / "keep.md"
        outside.write_text("x", encoding="utf-8")
        engine = RemovalEngine(tmp_path / "root")

        with caplog.at_level(logging.WARNING, logger="agntx"):
            assert engine.remove_canonical(str(outside)) is False
        assert outside.exists()
        assert "outside canonical root" in caplog.text

    def test_refuses_traversal(self, tmp_path: Path):
        root = tmp_path / "root"
        (root / "agents").mkdir(parents=True)
        victim = tmp_path / "victim.md"
        victim.write_text("x", encoding="utf-8")

        engine = RemovalEngine(root)

        assert engine.remove_canonical(str(root / "agents" / ".." / ".." / "victim.md")) is False
        assert victim.exists()

    def test_refuses_root_itself(self, tmp_path: Path):
        root = tmp_path / "root"
        root.mkdir()
        assert RemovalEngine(root).remove_canonical(str(root)) is False
        assert root.is_dir()


def test_prune_manifest_keeps_file_groups(source_dir: Path, tmp_path: Path):
    _, manifest = install_components(
        source_dir, tmp_path / "target",
        {ComponentKind.AGENTS: ["a"], ComponentKind.FILES: ["snippets"]},
    )
    entry = manifest.components.agents[0]

    pruned = prune_manifest(manifest, set(), {entry.canonical_path})

    assert pruned.components.agents == []
    assert pruned.components.files == manifest.components.files
    assert pruned.selection[ComponentKind.AGENTS] == []
    assert pruned.selection[ComponentKind.FILES] == ["snippets"]


def test_install_record_target_path():
    record = InstallRecord(
        name="a", kind=ComponentKind.AGENTS, tool=ToolName.CLAUDE,
        installed_path="a.md", target_dir="/x/.claude/agents",
    )
    assert record.target_path == Path("/x/.claude/agents/a.md")
