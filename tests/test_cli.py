"""End-to-end tests of the agntx CLI through typer's CliRunner."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from agntx_cli.commands import common
from agntx_cli.commands.update import request_from_manifest
from agntx_cli.main import app, expand_bare_selectors
from agntx_core import __version__
from agntx_core.types import ComponentKind
from agntx_install.manifest import ManifestStore
from conftest import FakeFetcher, ScriptedPrompter
from typer.testing import CliRunner

runner = CliRunner()


def _json(result) -> dict:
    """The JSON document on stdout, skipping any prose printed before it."""
    text = result.stdout
    payload, _ = json.JSONDecoder().raw_decode(text[text.index("{\n"):])
    return payload


@pytest.fixture
def fetcher(monkeypatch: pytest.MonkeyPatch, source_dir: Path) -> FakeFetcher:
    fake = FakeFetcher(checkouts={"acme-pack": source_dir}, head="a" * 40, remote="a" * 40)
    monkeypatch.setattr(common, "build_fetcher", lambda config: fake)
    return fake


@pytest.fixture
def interactive(monkeypatch: pytest.MonkeyPatch):
    """Force interactive mode and serve answers from a ScriptedPrompter."""
    def _install(*answers) -> ScriptedPrompter:
        prompter = ScriptedPrompter(*answers)
        monkeypatch.setattr(common, "is_automated", lambda yes: yes)
        monkeypatch.setattr(common, "build_prompter", lambda: prompter)
        return prompter
    return _install


def _install_agent_a(source: str, *extra: str):
    return runner.invoke(app, [
        "install", source, "--agents", "a", "--tools", "claude",
        "--mode", "copy", "--yes", "--json", *extra,
    ])


# ── install ──────────────────────────────────────────────────────────


class TestInstall:
    def test_automated_install_json(self, project_dir: Path, source_dir: Path, fetcher):
        result = _install_agent_a(str(source_dir))

        assert result.exit_code == 0, result.output
        payload = _json(result)
        assert payload["summary"] == {"installed": 2, "skipped": 0, "failed": 0, "backups": 0}
        assert payload["statePath"] == str(project_dir / ".agents" / "install-state.json")
        assert payload["selection"] == {
            "agents": ["a"], "skills": [], "commands": [], "files": [],
        }
        assert (project_dir / ".claude" / "agents" / "a.md").is_file()
        assert (project_dir / ".agents" / "agents" / "a.md").is_file()
        assert not (project_dir / ".claude" / "agents" / "b.md").exists()

        manifest = ManifestStore().read(project_dir / ".agents")
        assert manifest is not None
        assert manifest.source.resolved_path == str(source_dir)

    def test_bare_flag_installs_every_agent(self, project_dir: Path, source_dir: Path, fetcher):
        result = runner.invoke(app, expand_bare_selectors([
            "install", str(source_dir), "--agents", "--tools", "cursor", "--mode", "copy", "-y",
        ]))

        assert result.exit_code == 0, result.output
        assert sorted(p.name for p in (project_dir / ".cursor" / "agents").iterdir()) == [
            "a.md", "b.md",
        ]
        assert not (project_dir / ".cursor" / "skills").exists()

    def test_unknown_agent_fails(self, project_dir: Path, source_dir: Path, fetcher):
        result = runner.invoke(app, ["install", str(source_dir), "--agents", "zz", "-y"])

        assert result.exit_code == 1
        assert "Unknown agents requested: zz" in result.output
        assert not (project_dir / ".agents").exists()

    def test_dry_run(self, project_dir: Path, source_dir: Path, fetcher):
        result = runner.invoke(app, [
            "install", str(source_dir), "--files", "snippets", "--dry-run", "-y",
        ])

        assert result.exit_code == 0, result.output
        assert "Dry-run complete" in result.output
        assert "[dry-run] copy" in result.output
        assert not (project_dir / ".snippets").exists()
        assert not (project_dir / ".agents").exists()

    def test_empty_selection_still_emits_json(
        self, project_dir: Path, tmp_path: Path, fetcher,
    ):
        empty = tmp_path / "empty-source"
        empty.mkdir()

        result = runner.invoke(app, [
            "install", str(empty), "--skills", "all", "-y", "--json",
        ])

        assert result.exit_code == 0, result.output
        assert "Nothing to install" in result.output
        assert _json(result) == {
            "summary": {"installed": 0, "skipped": 0, "failed": 0, "backups": 0},
            "statePath": None,
            "selection": {"agents": [], "skills": [], "commands": [], "files": []},
        }
        assert not (project_dir / ".agents").exists()

    def test_no_categories_chosen_emits_json(
        self, project_dir: Path, source_dir: Path, fetcher, interactive,
    ):
        interactive([])

        result = runner.invoke(app, ["install", str(source_dir), "--json"])

        assert result.exit_code == 0, result.output
        payload = _json(result)
        assert payload["statePath"] is None
        assert payload["summary"]["installed"] == 0

    def test_remote_source(self, project_dir: Path, fetcher):
        result = _install_agent_a("acme/pack#main")

        assert result.exit_code == 0, result.output
        manifest = ManifestStore().read(project_dir / ".agents")
        assert manifest.source.repo == "acme/pack"
        assert manifest.source.commit == "a" * 40
        assert fetcher.calls == [("acme-pack", None, False)]

    def test_interactive_install_saves_preferences(
        self, project_dir: Path, source_dir: Path, fake_home: Path, fetcher, interactive,
    ):
        prompter = interactive(
            ["agents"],   # categories
            "local",      # scope
            "copy",       # mode
            False,        # overwrite
            ["b"],        # agents
            ["cursor"],   # tools
            True,         # confirm
        )

        result = runner.invoke(app, ["install", str(source_dir)])

        assert result.exit_code == 0, result.output
        assert prompter.answers == []
        assert (project_dir / ".cursor" / "agents" / "b.md").is_file()
        prefs = json.loads((fake_home / ".agntx" / "preferences.json").read_text())
        assert prefs["defaultTools"] == ["cursor"]
        assert prefs["defaultMode"] == "copy"

    def test_interactive_cancel_writes_nothing(
        self, project_dir: Path, source_dir: Path, fetcher, interactive,
    ):
        interactive(["commands"], "local", "symlink", False, ["deploy"], ["claude"], False)

        result = runner.invoke(app, ["install", str(source_dir)])

        assert result.exit_code == 0, result.output
        assert "Installation cancelled" in result.output
        assert not (project_dir / ".agents").exists()

    def test_add_alias(self, project_dir: Path, source_dir: Path, fetcher):
        result = runner.invoke(app, [
            "add", str(source_dir), "--commands", "deploy", "--mode", "copy", "-y",
        ])
        assert result.exit_code == 0, result.output
        assert (project_dir / ".claude" / "commands" / "deploy.md").is_file()
        assert (project_dir / ".cursor" / "commands" / "deploy.md").is_file()


def test_expand_bare_selectors():
    assert expand_bare_selectors(["install", "x", "--agents"]) == ["install", "x", "--agents=all"]
    assert expand_bare_selectors(["install", "x", "--skills", "-y"]) == [
        "install", "x", "--skills=all", "-y",
    ]
    assert expand_bare_selectors(["install", "x", "--agents", "a,b"]) == [
        "install", "x", "--agents", "a,b",
    ]


# ── inspect and status ───────────────────────────────────────────────


class TestInspect:
    def test_source_inspection_json(self, project_dir: Path, source_dir: Path, fetcher):
        result = runner.invoke(app, ["inspect", str(source_dir), "--json"])

        assert result.exit_code == 0, result.output
        payload = _json(result)
        assert payload["schemaVersion"] == 1
        assert payload["runtime"] == {"checksSkipped": True, "manifestFound": False}
        assert payload["discovered"]["agents"] == ["a", "b"]
        assert payload["discovered"]["fileGroups"] == ["snippets"]
        assert payload["summary"] == {"valid": True, "errors": 0, "warnings": 1}

    def test_strict_fails_on_warnings(self, project_dir: Path, source_dir: Path, fetcher):
        result = runner.invoke(app, ["inspect", str(source_dir), "--strict"])
        assert result.exit_code == 2
        assert "RESERVED_IGNORED" in result.output

    def test_runtime_issue_fails(self, project_dir: Path, source_dir: Path, fetcher):
        assert _install_agent_a(str(source_dir)).exit_code == 0
        (project_dir / ".claude" / "agents" / "a.md").unlink()

        result = runner.invoke(app, ["inspect", "--json"])

        assert result.exit_code == 1
        payload = _json(result)
        assert payload["runtime"] == {"checksSkipped": False, "manifestFound": True}
        assert [i["code"] for i in payload["issues"]] == ["TARGET_MISSING"]

    def test_validate_alias_text_output(self, project_dir: Path):
        result = runner.invoke(app, ["validate"])
        assert result.exit_code == 0, result.output
        assert "No runtime manifest found" in result.output


class TestStatus:
    def test_status_json(self, project_dir: Path, source_dir: Path, fetcher):
        assert _install_agent_a(str(source_dir)).exit_code == 0

        result = runner.invoke(app, ["status", "--json"])

        assert result.exit_code == 0, result.output
        payload = _json(result)
        assert payload["current"]["baseDir"] == str(project_dir)
        assert payload["manifest"]["scope"] == "local"
        assert payload["manifest"]["selection"]["agents"] == ["a"]
        assert payload["health"]["valid"] is True
        agents = payload["current"]["availability"]["claude"]["agents"]
        assert agents["project"]["names"] == ["a"]
        assert agents["project"]["copied"] == 1

    def test_status_text_without_manifest(self, project_dir: Path):
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0, result.output
        assert "No install manifest" in result.output
        assert "Local" in result.output


# ── remove ───────────────────────────────────────────────────────────


class TestRemove:
    def test_remove_by_name(self, project_dir: Path, source_dir: Path, fetcher):
        assert _install_agent_a(str(source_dir)).exit_code == 0

        result = runner.invoke(app, ["remove", "a", "--yes"])

        assert result.exit_code == 0, result.output
        assert "Done! Removed 1 path." in result.output
        assert not (project_dir / ".claude" / "agents" / "a.md").exists()
        assert not (project_dir / ".agents" / "agents" / "a.md").exists()
        manifest = ManifestStore().read(project_dir / ".agents")
        assert manifest.components.agents == []

    def test_automated_remove_requires_names(
        self, project_dir: Path, source_dir: Path, fetcher,
    ):
        assert _install_agent_a(str(source_dir)).exit_code == 0

        result = runner.invoke(app, ["rm", "-y"])

        assert result.exit_code == 1
        assert "Specify component names to remove" in result.output
        assert (project_dir / ".claude" / "agents" / "a.md").exists()

    def test_unknown_name_warns(self, project_dir: Path, source_dir: Path, fetcher):
        assert _install_agent_a(str(source_dir)).exit_code == 0
        result = runner.invoke(app, ["remove", "zz", "-y"])
        assert result.exit_code == 0
        assert "No installed components named: zz" in result.output

    def test_interactive_remove(
        self, project_dir: Path, source_dir: Path, fetcher, interactive,
    ):
        assert _install_agent_a(str(source_dir)).exit_code == 0
        prompter = interactive(["agents:a"], True)

        result = runner.invoke(app, ["remove"])

        assert result.exit_code == 0, result.output
        assert [kind for kind, _ in prompter.asked] == ["select_many", "confirm"]
        assert not (project_dir / ".claude" / "agents" / "a.md").exists()

    def test_nothing_installed(self, project_dir: Path):
        result = runner.invoke(app, ["remove", "--all", "-y"])
        assert result.exit_code == 0
        assert "Nothing installed" in result.output

    def test_legacy_only_remove_leaves_no_canonical_root(self, project_dir: Path):
        agents_dir = project_dir / ".claude" / "agents"
        agents_dir.mkdir(parents=True)
        (agents_dir / "old.md").write_text("old agent\n", encoding="utf-8")
        (agents_dir / ".agntx.json").write_text(
            json.dumps({"agents": {"old": {"name": "old"}}}), encoding="utf-8",
        )

        result = runner.invoke(app, ["remove", "old", "-y"])

        assert result.exit_code == 0, result.output
        assert not (agents_dir / "old.md").exists()
        assert not (project_dir / ".agents").exists()


# ── init, version ────────────────────────────────────────────────────


class TestInit:
    def test_creates_agent_file(self, project_dir: Path):
        result = runner.invoke(app, ["init", "reviewer"])

        assert result.exit_code == 0, result.output
        text = (project_dir / "reviewer.md").read_text(encoding="utf-8")
        assert text.startswith("---\nname: reviewer\n")

    def test_refuses_existing_file(self, project_dir: Path):
        (project_dir / "agent.md").write_text("mine", encoding="utf-8")

        result = runner.invoke(app, ["init"])

        assert result.exit_code == 1
        assert "already exists" in result.output
        assert (project_dir / "agent.md").read_text(encoding="utf-8") == "mine"

    def test_rejects_invalid_name(self, project_dir: Path):
        result = runner.invoke(app, ["init", "Bad Name"])
        assert result.exit_code == 1
        assert not list(project_dir.iterdir())


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert f"agntx {__version__}" in result.output


# ── check and update ─────────────────────────────────────────────────


class TestCheckAndUpdate:
    def test_check_up_to_date(self, project_dir: Path, fetcher):
        assert _install_agent_a("acme/pack").exit_code == 0

        result = runner.invoke(app, ["check", "--json"])

        assert result.exit_code == 0, result.output
        payload = _json(result)
        assert payload["status"] == "up-to-date"
        assert payload["recordedCommit"] == "a" * 40

    def test_check_update_available(self, project_dir: Path, fetcher):
        assert _install_agent_a("acme/pack").exit_code == 0
        fetcher.remote = "b" * 40

        result = runner.invoke(app, ["check"])

        assert result.exit_code == 0, result.output
        assert "Update available" in result.output

    def test_check_without_manifest(self, project_dir: Path):
        result = runner.invoke(app, ["check", "--json"])
        assert result.exit_code == 0
        assert _json(result) == {"manifestFound": False}

    def test_update_replays_with_overwrite(self, project_dir: Path, fetcher):
        assert _install_agent_a("acme/pack").exit_code == 0

        result = runner.invoke(app, ["update", "--json"])

        assert result.exit_code == 0, result.output
        assert _json(result)["summary"] == {
            "installed": 2, "skipped": 0, "failed": 0, "backups": 2,
        }
        assert len(fetcher.calls) == 2

    def test_update_after_removing_everything_is_a_no_op(
        self, project_dir: Path, fetcher,
    ):
        assert _install_agent_a("acme/pack").exit_code == 0
        assert runner.invoke(app, ["remove", "a", "--yes"]).exit_code == 0
        manifest = ManifestStore().read(project_dir / ".agents")
        assert not any(manifest.selection.values())

        result = runner.invoke(app, ["update", "--json"])

        assert result.exit_code == 0, result.output
        assert "Nothing recorded to update" in result.output
        assert _json(result) == {"manifestFound": True, "updated": False}
        assert not (project_dir / ".claude" / "agents").exists() or not any(
            (project_dir / ".claude" / "agents").iterdir()
        )
        assert not (project_dir / ".snippets").exists()

    def test_update_without_manifest(self, project_dir: Path):
        result = runner.invoke(app, ["update"])
        assert result.exit_code == 1
        assert "No install manifest found" in result.output

    def test_request_from_local_manifest(self, project_dir: Path, source_dir: Path, fetcher):
        assert _install_agent_a(str(source_dir)).exit_code == 0
        manifest = ManifestStore().read(project_dir / ".agents")

        request = request_from_manifest(manifest)

        assert request.source == str(source_dir)
        assert request.force is True
        assert request.automated is True
        assert request.selectors[ComponentKind.AGENTS].values == ["a"]
        assert ComponentKind.SKILLS not in request.selectors
        assert request.tools == "claude"


class TestSourcePicker:
    def test_automated_run_requires_source(self, project_dir: Path, fetcher):
        result = runner.invoke(app, ["install", "-y"])
        assert result.exit_code == 1
        assert "Missing SOURCE" in result.output

    def test_interactive_pick_from_configured_repos(
        self, project_dir: Path, source_dir: Path, fetcher, interactive,
    ):
        (project_dir / "agntx.toml").write_text(
            f'[sources]\nrepos = ["{source_dir.as_posix()}"]\n', encoding="utf-8",
        )
        prompter = interactive(str(source_dir), True)

        result = runner.invoke(app, [
            "install", "--agents", "a", "--local", "--mode", "copy",
            "--tools", "claude", "--force",
        ])

        assert result.exit_code == 0, result.output
        assert prompter.asked[0] == ("select_one", "Select a source:")
        assert (project_dir / ".claude" / "agents" / "a.md").is_file()
