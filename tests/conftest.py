from __future__ import annotations

import logging
import textwrap
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from agntx_install.sources import RepositoryRef


# ── Collaborator Fakes ───────────────────────────────────────────────


class FakeFetcher:
    """SourceFetcher that serves prepared directories instead of cloning."""

    def __init__(
        self,
        checkouts: dict[str, Path] | None = None,
        head: str | None = None,
        remote: str | None = None,
    ) -> None:
        self.checkouts = checkouts or {}
        self.head = head
        self.remote = remote
        self.calls: list[tuple[str, list[str] | None, bool]] = []

    def fetch(
        self,
        ref: RepositoryRef,
        sparse_paths: list[str] | None = None,
        fresh: bool = False,
    ) -> Path:
        self.calls.append((ref.cache_key, sparse_paths, fresh))
        return self.checkouts[ref.cache_key]

    def head_commit(self, path: Path) -> str | None:
        return self.head

    def remote_commit(self, ref: RepositoryRef) -> str | None:
        return self.remote


class ScriptedPrompter:
    """Prompter that replays queued answers and records each question."""

    def __init__(self, *answers: object) -> None:
        self.answers = list(answers)
        self.asked: list[tuple[str, str]] = []

    def _next(self, kind: str, message: str) -> object:
        self.asked.append((kind, message))
        if not self.answers:
            raise AssertionError(f"Unexpected {kind} prompt: {message}")
        return self.answers.pop(0)

    def select_many(self, message, choices, defaults=None):
        return list(self._next("select_many", message))

    def select_one(self, message, choices, default=None):
        return self._next("select_one", message)

    def confirm(self, message, default=False):
        return bool(self._next("confirm", message))

    def text(self, message, default=""):
        return str(self._next("text", message))


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _reset_agntx_logging():
    """Drop handlers bound to streams of a previous CLI invocation."""
    yield
    logger = logging.getLogger("agntx")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    from agntx_cli.output import set_json_mode
    set_json_mode(False)


@pytest.fixture
def fake_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def project_dir(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, fake_home: Path,
) -> Path:
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return project.resolve()


def write_agent(directory: Path, stem: str, name: str | None = None) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{stem}.md"
    path.write_text(
        textwrap.dedent(f"""\
            ---
            name: {name or stem}
            description: The {stem} agent
            ---

            You are the {stem} agent.
        """),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """A source tree with every component kind and one reserved directory."""
    root = tmp_path / "source"
    write_agent(root / "agents", "a")
    write_agent(root / "agents", "b")

    skill = root / "skills" / "review"
    skill.mkdir(parents=True)
    (skill / "SKILL.md").write_text("# Review\n", encoding="utf-8")
    (skill / "checklist.md").write_text("- tests pass\n", encoding="utf-8")

    commands = root / "commands"
    commands.mkdir()
    (commands / "deploy.md").write_text("Deploy the app.\n", encoding="utf-8")

    snippets = root / "snippets"
    snippets.mkdir()
    (snippets / "hello.txt").write_text("hello\n", encoding="utf-8")

    docs = root / "docs"
    docs.mkdir()
    (docs / "README.md").write_text("docs\n", encoding="utf-8")
    return root.resolve()


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


def install_components(
    source: Path,
    base: Path,
    selection,
    mode=None,
    tools=None,
):
    """Install *selection* from *source* into a path scope and return (plan, manifest)."""
    from agntx_core.types import InstallMode, ScopeName, SourceDescriptor, SourceType, ToolName
    from agntx_install.discovery import discover_source
    from agntx_install.installer import Installer, build_manifest, plan_install

    plan = plan_install(
        ScopeName.PATH,
        mode or InstallMode.COPY,
        tools or [ToolName.CLAUDE],
        path_arg=base,
        platform="linux",
    )
    discovered = discover_source(source)
    report = Installer(plan).install(discovered, selection)
    descriptor = SourceDescriptor(
        source_type=SourceType.LOCAL, input=str(source), resolved_path=str(source),
    )
    manifest = build_manifest(plan, descriptor, selection, discovered, report.components)
    return plan, manifest
