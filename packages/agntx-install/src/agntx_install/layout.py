"""Install layout: scope base directories, canonical root and tool directories."""
from __future__ import annotations

import sys
from pathlib import Path

from agntx_core.errors import SelectionError
from agntx_core.types import ComponentKind, ScopeName, ToolName

CANONICAL_DIRNAME = ".agents"
MANIFEST_FILENAME = "install-state.json"
BACKUPS_DIRNAME = "backups"

_TOOL_DIRNAMES: dict[ToolName, str] = {
    ToolName.CLAUDE: ".claude",
    ToolName.CURSOR: ".cursor",
}


def parse_csv(value: str | None) -> list[str]:
    """Split a comma-separated flag value, dropping blanks."""
    if not value:
        return []
    return [entry.strip() for entry in value.split(",") if entry.strip()]


def is_interactive_session() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def resolve_base_dir(
    scope: ScopeName,
    path_arg: str | Path | None = None,
    cwd: Path | None = None,
) -> Path:
    """Return the directory a scope installs into."""
    if scope is ScopeName.GLOBAL:
        return Path.home()
    if scope is ScopeName.PATH:
        if not path_arg:
            msg = "Missing --path value for path scope"
            raise SelectionError(msg)
        return Path(path_arg).expanduser().resolve()
    return (cwd or Path.cwd()).resolve()


def canonical_root(base_dir: Path, scope: ScopeName) -> Path:
    if scope is ScopeName.GLOBAL:
        return Path.home() / CANONICAL_DIRNAME
    return base_dir / CANONICAL_DIRNAME


def manifest_path(root: Path) -> Path:
    return root / MANIFEST_FILENAME


def tool_root_dir(base_dir: Path, tool: ToolName) -> Path:
    return base_dir / _TOOL_DIRNAMES[tool]


def tool_component_dir(base_dir: Path, tool: ToolName, kind: ComponentKind) -> Path:
    if kind is ComponentKind.FILES:
        msg = "File groups have no tool directory"
        raise ValueError(msg)
    return tool_root_dir(base_dir, tool) / kind.value


def component_filename(kind: ComponentKind, name: str) -> str:
    """Skills are directories; agents and commands are markdown files."""
    return name if kind is ComponentKind.SKILLS else f"{name}.md"


def file_group_target(group: str) -> str:
    return group if group.startswith(".") else f".{group}"
