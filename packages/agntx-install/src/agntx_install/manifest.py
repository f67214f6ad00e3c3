"""Persistence of the runtime manifest (``install-state.json``)."""
from __future__ import annotations

import json
from pathlib import Path

from agntx_core.logging import get_logger
from agntx_core.types import MANIFEST_SCHEMA_VERSION, RuntimeManifest

from agntx_install.layout import manifest_path

logger = get_logger("install.manifest")

_COMPONENT_KEYS = ("agents", "skills", "commands", "files")


class ManifestStore:
    """Reads and writes the manifest kept at a canonical root.

    The file is always rewritten whole; reads never raise and report any
    unusable file as ``None``.
    """

    def path(self, canonical_root: Path) -> Path:
        return manifest_path(canonical_root)

    def read(self, canonical_root: Path) -> RuntimeManifest | None:
        path = self.path(canonical_root)
        if not path.exists():
            return None

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable manifest %s: %s", path, exc)
            return None

        if not isinstance(raw, dict):
            logger.warning("Ignoring manifest %s: not a JSON object", path)
            return None
        if raw.get("schemaVersion") != MANIFEST_SCHEMA_VERSION:
            logger.warning(
                "Ignoring manifest %s: unsupported schemaVersion %r",
                path,
                raw.get("schemaVersion"),
            )
            return None
        components = raw.get("components")
        if not isinstance(components, dict) or not all(
            isinstance(components.get(key), list) for key in _COMPONENT_KEYS
        ):
            logger.warning("Ignoring manifest %s: malformed components", path)
            return None
        if not isinstance(raw.get("source"), dict) or not isinstance(
            raw.get("selection", {}), dict
        ):
            logger.warning("Ignoring manifest %s: malformed source or selection", path)
            return None

        try:
            return RuntimeManifest.from_dict(raw)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring malformed manifest %s: %s", path, exc)
            return None

    def write(self, canonical_root: Path, manifest: RuntimeManifest) -> Path:
        path = self.path(canonical_root)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(manifest.to_dict(), indent=2) + "\n", encoding="utf-8",
        )
        logger.debug("Wrote manifest %s", path)
        return path
