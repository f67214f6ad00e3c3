"""Integrity checks of a runtime manifest against the filesystem."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from agntx_core.types import (
    TYPED_KINDS,
    InstallMode,
    Issue,
    RuntimeManifest,
    Severity,
)


@dataclass(frozen=True, slots=True)
class IssueSummary:
    valid: bool
    errors: int
    warnings: int

    def to_dict(self) -> dict[str, int | bool]:
        return {"valid": self.valid, "errors": self.errors, "warnings": self.warnings}


def resolve_symlink_target(path: Path) -> Path | None:
    """Absolute path a symlink's stored value points at, or None."""
    try:
        link_value = os.readlink(path)
    except OSError:
        return None
    return Path(os.path.normpath(path.parent / link_value))


def collect_runtime_issues(manifest: RuntimeManifest) -> list[Issue]:
    """Compare every recorded path with what is on disk.  Reads only."""
    issues: list[Issue] = []

    for kind in TYPED_KINDS:
        for entry in manifest.components.typed(kind):
            label = f"{kind.value}:{entry.name}"
            if not os.path.exists(entry.canonical_path):
                issues.append(Issue(
                    code="CANONICAL_MISSING",
                    severity=Severity.ERROR,
                    message=f"{label} canonical path is missing",
                    path=entry.canonical_path,
                ))

            for target in entry.targets:
                target_path = Path(target.path)
                if not os.path.lexists(target_path):
                    issues.append(Issue(
                        code="TARGET_MISSING",
                        severity=Severity.ERROR,
                        message=f"{label} target is missing ({target.tool.value})",
                        path=target.path,
                    ))
                    continue

                if target.mode is not InstallMode.SYMLINK:
                    continue
                if not target_path.is_symlink():
                    issues.append(Issue(
                        code="TARGET_NOT_SYMLINK",
                        severity=Severity.WARNING,
                        message=f"{label} expected symlink target",
                        path=target.path,
                    ))
                    continue

                resolved = resolve_symlink_target(target_path)
                if resolved is None or not resolved.exists():
                    issues.append(Issue(
                        code="BROKEN_SYMLINK",
                        severity=Severity.ERROR,
                        message=f"{label} symlink target is broken",
                        path=target.path,
                    ))

    for group in manifest.components.files:
        if not os.path.exists(group.target_path):
            issues.append(Issue(
                code="FILE_GROUP_MISSING",
                severity=Severity.ERROR,
                message=f"File group target is missing: {group.name}",
                path=group.target_path,
            ))

    return issues


def summarize_issues(issues: list[Issue]) -> IssueSummary:
    errors = sum(1 for issue in issues if issue.severity is Severity.ERROR)
    warnings = sum(1 for issue in issues if issue.severity is Severity.WARNING)
    return IssueSummary(valid=errors == 0, errors=errors, warnings=warnings)


def exit_code(issues: list[Issue], strict: bool = False) -> int:
    """0 when clean, 1 on errors, 2 on warnings under *strict*."""
    summary = summarize_issues(issues)
    if summary.errors:
        return 1
    if strict and summary.warnings:
        return 2
    return 0
