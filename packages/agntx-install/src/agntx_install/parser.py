"""Agent markdown parser: extracts YAML frontmatter and the agent body."""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from agntx_core.errors import AgentValidationError

AGENT_NAME_PATTERN = re.compile(r"^[a-z0-9_-]+$")


@dataclass(frozen=True, slots=True)
class AgentFile:
    """A parsed agent markdown file.

    ``name`` comes from the frontmatter when present and falls back to the
    file stem.  The full original text is kept in ``content`` so that the
    file can be written out unchanged.
    """

    path: str
    name: str
    content: str
    source_root: str | None = None
    install_path: str | None = None
    description: str | None = None
    model: str = "inherit"
    readonly: bool = False
    is_background: bool = False


def parse_agent_file(path: Path, source_root: Path | None = None) -> AgentFile:
    """Parse an agent markdown file into an AgentFile.

    A file without frontmatter is valid and takes its name from the file
    stem.  A frontmatter block that is not valid YAML, is not a mapping, or
    yields a name outside ``[a-z0-9_-]`` is rejected.

    Args:
        path: Path to the markdown file.
        source_root: Directory the file was discovered under.  When given,
            ``install_path`` is the file's path relative to it.

    Raises:
        AgentValidationError: If the file is malformed.
        FileNotFoundError: If the file does not exist.
    """
    if not path.exists():
        msg = f"Agent file not found: {path}"
        raise FileNotFoundError(msg)

    text = path.read_text(encoding="utf-8")
    meta = _parse_frontmatter(text, path)

    name = meta.get("name") or path.stem
    if not isinstance(name, str) or not AGENT_NAME_PATTERN.match(name):
        msg = (
            f"Agent name must be lowercase alphanumeric with hyphens or "
            f"underscores: {name!r} ({path})"
        )
        raise AgentValidationError(msg)

    install_path = None
    if source_root is not None:
        install_path = path.relative_to(source_root).as_posix()

    description = meta.get("description")
    return AgentFile(
        path=str(path),
        name=name,
        content=text,
        source_root=str(source_root) if source_root is not None else None,
        install_path=install_path,
        description=str(description) if description is not None else None,
        model=str(meta.get("model") or "inherit"),
        readonly=bool(meta.get("readonly", False)),
        is_background=bool(meta.get("is_background", False)),
    )


def _parse_frontmatter(text: str, path: Path) -> dict[str, Any]:
    """Return the frontmatter mapping, or an empty dict when there is none."""
    stripped = text.lstrip("\n")
    if not stripped.startswith("---"):
        return {}

    first_newline = stripped.find("\n")
    if first_newline == -1:
        msg = f"Agent file has an unterminated frontmatter block: {path}"
        raise AgentValidationError(msg)
    rest = stripped[first_newline + 1 :]
    if rest.startswith("---"):
        return {}
    closing_idx = rest.find("\n---")
    if closing_idx == -1:
        msg = f"Agent file missing closing '---' for frontmatter: {path}"
        raise AgentValidationError(msg)

    try:
        result = yaml.safe_load(rest[:closing_idx])
    except yaml.YAMLError as exc:
        msg = f"Invalid YAML frontmatter in {path}: {exc}"
        raise AgentValidationError(msg) from exc

    if result is None:
        return {}
    if not isinstance(result, dict):
        msg = f"YAML frontmatter must be a mapping, got {type(result).__name__}: {path}"
        raise AgentValidationError(msg)
    return result
