from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

# ── Enumerations ─────────────────────────────────────────────────────

class SourceType(enum.Enum):
    GIT = "git"
    LOCAL = "local"


class ComponentKind(enum.Enum):
    AGENTS = "agents"
    SKILLS = "skills"
    COMMANDS = "commands"
    FILES = "files"


class ToolName(enum.Enum):
    CLAUDE = "claude"
    CURSOR = "cursor"


class InstallMode(enum.Enum):
    COPY = "copy"
    SYMLINK = "symlink"


class ScopeName(enum.Enum):
    GLOBAL = "global"
    LOCAL = "local"
    PATH = "path"


class Severity(enum.Enum):
    ERROR = "error"
    WARNING = "warning"


class EntryType(enum.Enum):
    FILE = "file"
    DIR = "dir"


class InstallOutcome(enum.Enum):
    INSTALLED = "installed"
    SKIPPED = "skipped"


TYPED_KINDS: tuple[ComponentKind, ...] = (
    ComponentKind.AGENTS,
    ComponentKind.SKILLS,
    ComponentKind.COMMANDS,
)

ALL_TOOLS: tuple[ToolName, ...] = (ToolName.CLAUDE, ToolName.CURSOR)

# File groups are copied into the base directory and never fanned out.
TOOL_SUPPORT: dict[ComponentKind, tuple[ToolName, ...]] = {
    ComponentKind.AGENTS: ALL_TOOLS,
    ComponentKind.SKILLS: ALL_TOOLS,
    ComponentKind.COMMANDS: ALL_TOOLS,
    ComponentKind.FILES: (),
}


# ── Source Types ─────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class SourceDescriptor:
    """A user-supplied source resolved to a local directory."""
    source_type: SourceType
    input: str
    resolved_path: str
    repo: str | None = None
    ref: str | None = None
    commit: str | None = None


@dataclass(frozen=True, slots=True)
class Issue:
    """A structural or integrity problem found by discovery or validation."""
    code: str
    severity: Severity
    message: str
    path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.code,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.path is not None:
            data["path"] = self.path
        return data

    def describe(self) -> str:
        suffix = f" ({self.path})" if self.path else ""
        return f"{self.code}: {self.message}{suffix}"


@dataclass(frozen=True, slots=True)
class DiscoveredSource:
    """Typed component collections found under a source root."""
    root_dir: str
    agents: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)
    file_groups: list[str] = field(default_factory=list)
    reserved_ignored: list[str] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)

    def names(self, kind: ComponentKind) -> list[str]:
        if kind is ComponentKind.FILES:
            return list(self.file_groups)
        return list(getattr(self, kind.value))


# ── Runtime Manifest Types ───────────────────────────────────────────

MANIFEST_SCHEMA_VERSION = 2


@dataclass(frozen=True, slots=True)
class RuntimeTarget:
    tool: ToolName
    path: str
    mode: InstallMode

    def to_dict(self) -> dict[str, Any]:
        return {"tool": self.tool.value, "path": self.path, "mode": self.mode.value}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RuntimeTarget:
        return cls(
            tool=ToolName(raw["tool"]),
            path=str(raw["path"]),
            mode=InstallMode(raw["mode"]),
        )


@dataclass(frozen=True, slots=True)
class RuntimeComponentEntry:
    """One installed agent, skill or command and its per-tool targets."""
    name: str
    canonical_path: str
    source_path: str
    targets: list[RuntimeTarget] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "canonicalPath": self.canonical_path,
            "sourcePath": self.source_path,
            "targets": [t.to_dict() for t in self.targets],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RuntimeComponentEntry:
        return cls(
            name=str(raw["name"]),
            canonical_path=str(raw["canonicalPath"]),
            source_path=str(raw["sourcePath"]),
            targets=[RuntimeTarget.from_dict(t) for t in raw.get("targets", [])],
        )


@dataclass(frozen=True, slots=True)
class RuntimeFileGroupEntry:
    """A file group copied wholesale into the base directory."""
    name: str
    source_path: str
    target_path: str
    mode: InstallMode = InstallMode.COPY

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "sourcePath": self.source_path,
            "targetPath": self.target_path,
            "mode": self.mode.value,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RuntimeFileGroupEntry:
        return cls(
            name=str(raw["name"]),
            source_path=str(raw["sourcePath"]),
            target_path=str(raw["targetPath"]),
            mode=InstallMode(raw.get("mode", "copy")),
        )


@dataclass(frozen=True, slots=True)
class SourceProvenance:
    input: str
    type: SourceType
    resolved_path: str
    repo: str | None = None
    ref: str | None = None
    commit: str | None = None

    @classmethod
    def from_descriptor(cls, source: SourceDescriptor) -> SourceProvenance:
        return cls(
            input=source.input,
            type=source.source_type,
            resolved_path=source.resolved_path,
            repo=source.repo,
            ref=source.ref,
            commit=source.commit,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"input": self.input, "type": self.type.value}
        for key, value in (
            ("repo", self.repo), ("ref", self.ref), ("commit", self.commit),
        ):
            if value is not None:
                data[key] = value
        data["resolvedPath"] = self.resolved_path
        return data

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SourceProvenance:
        return cls(
            input=str(raw["input"]),
            type=SourceType(raw["type"]),
            resolved_path=str(raw["resolvedPath"]),
            repo=raw.get("repo"),
            ref=raw.get("ref"),
            commit=raw.get("commit"),
        )


@dataclass(frozen=True, slots=True)
class RuntimeComponents:
    agents: list[RuntimeComponentEntry] = field(default_factory=list)
    skills: list[RuntimeComponentEntry] = field(default_factory=list)
    commands: list[RuntimeComponentEntry] = field(default_factory=list)
    files: list[RuntimeFileGroupEntry] = field(default_factory=list)

    def typed(self, kind: ComponentKind) -> list[RuntimeComponentEntry]:
        if kind is ComponentKind.FILES:
            msg = "File groups are not typed component entries"
            raise ValueError(msg)
        return getattr(self, kind.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "agents": [e.to_dict() for e in self.agents],
            "skills": [e.to_dict() for e in self.skills],
            "commands": [e.to_dict() for e in self.commands],
            "files": [e.to_dict() for e in self.files],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RuntimeComponents:
        return cls(
            agents=[RuntimeComponentEntry.from_dict(e) for e in raw["agents"]],
            skills=[RuntimeComponentEntry.from_dict(e) for e in raw["skills"]],
            commands=[RuntimeComponentEntry.from_dict(e) for e in raw["commands"]],
            files=[RuntimeFileGroupEntry.from_dict(e) for e in raw["files"]],
        )


@dataclass(frozen=True, slots=True)
class RuntimeManifest:
    """Persisted record of everything one install run put on disk."""
    installed_at: str
    base_dir: str
    canonical_root: str
    scope: ScopeName
    mode: InstallMode
    tools: list[ToolName]
    source: SourceProvenance
    selection: dict[ComponentKind, list[str]]
    reserved_ignored: list[str] = field(default_factory=list)
    components: RuntimeComponents = field(default_factory=RuntimeComponents)
    schema_version: int = MANIFEST_SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "schemaVersion": self.schema_version,
            "installedAt": self.installed_at,
            "baseDir": self.base_dir,
            "canonicalRoot": self.canonical_root,
            "scope": self.scope.value,
            "mode": self.mode.value,
            "tools": [t.value for t in self.tools],
            "source": self.source.to_dict(),
            "selection": {
                kind.value: list(self.selection.get(kind, []))
                for kind in ComponentKind
            },
            "reservedIgnored": list(self.reserved_ignored),
            "components": self.components.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RuntimeManifest:
        selection_raw = raw.get("selection") or {}
        return cls(
            schema_version=int(raw["schemaVersion"]),
            installed_at=str(raw["installedAt"]),
            base_dir=str(raw["baseDir"]),
            canonical_root=str(raw["canonicalRoot"]),
            scope=ScopeName(raw["scope"]),
            mode=InstallMode(raw["mode"]),
            tools=[ToolName(t) for t in raw.get("tools", [])],
            source=SourceProvenance.from_dict(raw["source"]),
            selection={
                kind: [str(n) for n in selection_raw.get(kind.value, [])]
                for kind in ComponentKind
            },
            reserved_ignored=[str(n) for n in raw.get("reservedIgnored", [])],
            components=RuntimeComponents.from_dict(raw["components"]),
        )
