from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from agntx_core.errors import ConfigError
from agntx_core.logging import get_logger
from agntx_core.types import ALL_TOOLS, InstallMode, ScopeName, ToolName

logger = get_logger("core.config")


def _load_toml(path: Path) -> dict:
    """Load a TOML file, returning empty dict if missing."""
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base (1 level deep for TOML sections)."""
    merged = dict(base)
    for key, val in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(val, dict)
        ):
            merged[key] = {**merged[key], **val}
        else:
            merged[key] = val
    return merged


@dataclass(frozen=True, slots=True)
class InstallDefaults:
    """Values used when a run is automated and no flag was given."""
    scope: str = "local"
    mode: str = "symlink"
    tools: list[str] = field(default_factory=lambda: [t.value for t in ALL_TOOLS])

    @property
    def scope_name(self) -> ScopeName:
        if self.scope not in ("local", "global"):
            msg = f"Invalid default scope in config: {self.scope!r}"
            raise ConfigError(msg)
        return ScopeName(self.scope)

    @property
    def install_mode(self) -> InstallMode:
        try:
            return InstallMode(self.mode)
        except ValueError:
            msg = f"Invalid default mode in config: {self.mode!r}"
            raise ConfigError(msg) from None

    @property
    def tool_names(self) -> list[ToolName]:
        known = {t.value for t in ToolName}
        tools = [ToolName(t) for t in dict.fromkeys(self.tools) if t in known]
        if not tools:
            msg = f"No valid tools in config: {self.tools!r}"
            raise ConfigError(msg)
        return tools


@dataclass(frozen=True, slots=True)
class CacheConfig:
    dir: str = "~/.cache/agntx/repos"

    @property
    def path(self) -> Path:
        return Path(self.dir).expanduser()


@dataclass(frozen=True, slots=True)
class PromptConfig:
    search_threshold: int = 8  # offer a search query above this many choices


@dataclass(frozen=True, slots=True)
class SourcesConfig:
    repos: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class AgntxConfig:
    """Top-level configuration, parsed from agntx.toml."""
    install: InstallDefaults = field(default_factory=InstallDefaults)
    cache: CacheConfig = field(default_factory=CacheConfig)
    prompts: PromptConfig = field(default_factory=PromptConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)

    @classmethod
    def from_toml(
        cls, path: Path | str = "agntx.toml"
    ) -> AgntxConfig:
        path = Path(path)
        raw = _load_toml(path)
        return cls._from_raw(raw)

    @classmethod
    def load(
        cls, project_dir: Path | str | None = None
    ) -> AgntxConfig:
        """Load config with global → project layering.

        Resolution order (later wins):
        1. Built-in defaults
        2. ~/.agntx/config.toml (global)
        3. .agntx/config.toml or agntx.toml (project)
        """
        global_path = Path.home() / ".agntx" / "config.toml"

        project_dir = (
            Path.cwd() if project_dir is None else Path(project_dir)
        )

        # Project config: .agntx/config.toml takes priority
        project_path = project_dir / ".agntx" / "config.toml"
        if not project_path.exists():
            project_path = project_dir / "agntx.toml"

        global_raw = _load_toml(global_path)
        project_raw = _load_toml(project_path)
        merged = _deep_merge(global_raw, project_raw)

        return cls._from_raw(merged)

    @classmethod
    def _from_raw(cls, raw: dict) -> AgntxConfig:
        """Build AgntxConfig from a raw TOML dict."""
        install_raw = raw.get("install", {})
        cache_raw = raw.get("cache", {})
        prompts_raw = raw.get("prompts", {})
        sources_raw = raw.get("sources", {})

        def _pick(section: dict, dc: type) -> dict:
            fields = dc.__dataclass_fields__
            return {
                k: v for k, v in section.items() if k in fields
            }

        repos = sources_raw.get("repos", [])
        if not isinstance(repos, list):
            repos = []
        resolved_repos = list(dict.fromkeys(
            str(Path(r).expanduser().resolve())
            for r in repos
            if isinstance(r, str)
        ))

        return cls(
            install=InstallDefaults(**_pick(install_raw, InstallDefaults)),
            cache=CacheConfig(**_pick(cache_raw, CacheConfig)),
            prompts=PromptConfig(**_pick(prompts_raw, PromptConfig)),
            sources=SourcesConfig(repos=resolved_repos),
        )
