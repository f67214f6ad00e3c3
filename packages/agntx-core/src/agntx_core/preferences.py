"""Remembered install choices, offered as defaults by interactive prompts."""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from agntx_core.logging import get_logger
from agntx_core.types import InstallMode, ScopeName, ToolName

logger = get_logger("core.preferences")


def preferences_path() -> Path:
    """Path to the global preferences file."""
    return Path.home() / ".agntx" / "preferences.json"


@dataclass(frozen=True, slots=True)
class InstallPreferences:
    default_tools: list[ToolName]
    default_scope: ScopeName
    default_mode: InstallMode
    updated_at: str = ""


def read_preferences(path: Path | None = None) -> InstallPreferences | None:
    """Return saved preferences, or None when absent or invalid."""
    path = path or preferences_path()
    if not path.exists():
        return None

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.debug("Ignoring unreadable preferences at %s", path)
        return None
    if not isinstance(raw, dict):
        return None

    known_tools = {t.value for t in ToolName}
    tools_raw = raw.get("defaultTools")
    if not isinstance(tools_raw, list):
        return None
    tools = [
        ToolName(t) for t in dict.fromkeys(
            t for t in tools_raw if isinstance(t, str) and t in known_tools
        )
    ]
    if not tools:
        return None

    scope = raw.get("defaultScope")
    mode = raw.get("defaultMode")
    if scope not in ("local", "global") or mode not in ("copy", "symlink"):
        return None

    updated_at = raw.get("updatedAt")
    return InstallPreferences(
        default_tools=tools,
        default_scope=ScopeName(scope),
        default_mode=InstallMode(mode),
        updated_at=updated_at if isinstance(updated_at, str) else "",
    )


def write_preferences(
    tools: list[ToolName],
    scope: ScopeName,
    mode: InstallMode,
    path: Path | None = None,
) -> Path | None:
    """Persist the choices of a successful run.

    Custom-path scopes are stored as ``local``; nothing is written when no
    tools were chosen.
    """
    if not tools:
        return None
    path = path or preferences_path()
    payload = {
        "defaultTools": [t.value for t in dict.fromkeys(tools)],
        "defaultScope": "global" if scope is ScopeName.GLOBAL else "local",
        "defaultMode": mode.value,
        "updatedAt": datetime.now(UTC).isoformat(),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return path
