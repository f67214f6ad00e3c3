"""Tests for runtime integrity checks."""
from __future__ import annotations

import os
import shutil
from pathlib import Path

from agntx_core.types import ComponentKind, InstallMode, Issue, Severity, ToolName
from agntx_install.validator import (
    collect_runtime_issues,
    exit_code,
    resolve_symlink_target,
    summarize_issues,
)
from conftest import install_components


class TestCollectRuntimeIssues:
    def test_clean_install(self, source_dir: Path, tmp_path: Path):
        _, manifest = install_components(
            source_dir, tmp_path / "target",
            {ComponentKind.AGENTS: ["a", "b"], ComponentKind.FILES: ["snippets"]},
            mode=InstallMode.SYMLINK,
        )
        assert collect_runtime_issues(manifest) == []

    def test_deleted_target(self, source_dir: Path, tmp_path: Path):
        plan, manifest = install_components(
            source_dir, tmp_path / "target", {ComponentKind.AGENTS: ["a"]},
        )
        target = plan.base_dir / ".claude" / "agents" / "a.md"
        target.unlink()

        issues = collect_runtime_issues(manifest)

        assert len(issues) == 1
        assert issues[0].code == "TARGET_MISSING"
        assert issues[0].severity is Severity.ERROR
        assert issues[0].path == str(target)

    def test_copied_file_where_symlink_expected(self, source_dir: Path, tmp_path: Path):
        plan, manifest = install_components(
            source_dir, tmp_path / "target", {ComponentKind.AGENTS: ["a"]},
            mode=InstallMode.SYMLINK,
        )
        target = plan.base_dir / ".claude" / "agents" / "a.md"
        target.unlink()
        target.write_text("replaced", encoding="utf-8")

        issues = collect_runtime_issues(manifest)

        assert [(i.code, i.severity) for i in issues] == [
            ("TARGET_NOT_SYMLINK", Severity.WARNING),
        ]

    def test_missing_canonical_breaks_symlinks(self, source_dir: Path, tmp_path: Path):
        plan, manifest = install_components(
            source_dir, tmp_path / "target", {ComponentKind.SKILLS: ["review"]},
            mode=InstallMode.SYMLINK, tools=[ToolName.CLAUDE, ToolName.CURSOR],
        )
        shutil.rmtree(plan.canonical_root / "skills" / "review")

        codes = [i.code for i in collect_runtime_issues(manifest)]

        assert codes == ["CANONICAL_MISSING", "BROKEN_SYMLINK", "BROKEN_SYMLINK"]

    def test_missing_file_group(self, source_dir: Path, tmp_path: Path):
        plan, manifest = install_components(
            source_dir, tmp_path / "target", {ComponentKind.FILES: ["snippets"]},
        )
        shutil.rmtree(plan.base_dir / ".snippets")

        issues = collect_runtime_issues(manifest)

        assert [i.code for i in issues] == ["FILE_GROUP_MISSING"]

    def test_copy_targets_are_not_link_checked(self, source_dir: Path, tmp_path: Path):
        plan, manifest = install_components(
            source_dir, tmp_path / "target", {ComponentKind.COMMANDS: ["deploy"]},
        )
        assert collect_runtime_issues(manifest) == []
        assert not (plan.base_dir / ".claude" / "commands" / "deploy.md").is_symlink()


class TestResolveSymlinkTarget:
    def test_relative_link(self, tmp_path: Path):
        (tmp_path / "real.md").write_text("x", encoding="utf-8")
        link = tmp_path / "sub" / "link.md"
        link.parent.mkdir()
        os.symlink(os.path.join("..", "real.md"), link)
        assert resolve_symlink_target(link) == tmp_path / "real.md"

    def test_not_a_link(self, tmp_path: Path):
        path = tmp_path / "plain.md"
        path.write_text("x", encoding="utf-8")
        assert resolve_symlink_target(path) is None


class TestExitCode:
    ERROR = Issue("X", Severity.ERROR, "bad")
    WARNING = Issue("Y", Severity.WARNING, "meh")

    def test_clean(self):
        assert exit_code([]) == 0
        assert exit_code([], strict=True) == 0

    def test_errors(self):
        assert exit_code([self.ERROR, self.WARNING]) == 1
        assert exit_code([self.ERROR], strict=True) == 1

    def test_warnings_only_fail_when_strict(self):
        assert exit_code([self.WARNING]) == 0
        assert exit_code([self.WARNING], strict=True) == 2

    def test_summary(self):
        summary = summarize_issues([self.ERROR, self.WARNING, self.WARNING])
        assert summary.to_dict() == {"valid": False, "errors": 1, "warnings": 2}
