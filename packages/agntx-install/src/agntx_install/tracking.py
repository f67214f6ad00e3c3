"""Reader for the legacy per-directory ``.agntx.json`` tracking files.

Older releases recorded installed agents here.  The manifest is now the
only writer; legacy entries can be listed and discarded one at a time.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from agntx_core.logging import get_logger

logger = get_logger("install.tracking")

TRACKING_FILENAME = ".agntx.json"


@dataclass(frozen=True, slots=True)
class InstalledAgent:
    name: str
    source: str
    installed_at: str
    symlink: bool
    path: str
    installed_path: str
    canonical_path: str | None = None
    mode: str | None = None
    version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "source": self.source,
            "installedAt": self.installed_at,
            "symlink": self.symlink,
            "path": self.path,
            "installedPath": self.installed_path,
        }
        for key, value in (
            ("canonicalPath", self.canonical_path),
            ("mode", self.mode),
            ("version", self.version),
        ):
            if value is not None:
                data[key] = value
        return data


def tracking_path(directory: Path) -> Path:
    return directory / TRACKING_FILENAME


def _normalize(key: str, raw: dict[str, Any]) -> InstalledAgent:
    # Old files keyed entries by bare agent name with flat .md files.
    installed_path = raw.get("installedPath") or f"{key}.md"
    return InstalledAgent(
        name=raw.get("name") or key,
        source=str(raw.get("source", "")),
        installed_at=str(raw.get("installedAt", "")),
        symlink=bool(raw.get("symlink", False)),
        path=str(raw.get("path", "")),
        installed_path=installed_path,
        canonical_path=raw.get("canonicalPath"),
        mode=raw.get("mode"),
        version=raw.get("version"),
    )


def read_tracking(directory: Path) -> dict[str, InstalledAgent]:
    """Return legacy entries keyed by installed relative path.

    Missing or unreadable files yield an empty mapping.
    """
    path = tracking_path(directory)
    if not path.exists():
        return {}

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.debug("Ignoring unreadable tracking file %s: %s", path, exc)
        return {}

    agents = raw.get("agents") if isinstance(raw, dict) else None
    if not isinstance(agents, dict):
        return {}

    entries: dict[str, InstalledAgent] = {}
    for key, value in agents.items():
        if not isinstance(value, dict):
            continue
        entry = _normalize(str(key), value)
        entries[entry.installed_path] = entry
    return entries


def discard_entry(directory: Path, installed_path: str) -> bool:
    """Rewrite the tracking file without *installed_path*.

    Returns True when an entry was dropped.
    """
    entries = read_tracking(directory)
    if installed_path not in entries:
        return False
    del entries[installed_path]

    path = tracking_path(directory)
    payload = {"agents": {key: entry.to_dict() for key, entry in entries.items()}}
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    logger.debug("Discarded %s from %s", installed_path, path)
    return True
