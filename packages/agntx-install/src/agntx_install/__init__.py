"""agntx install engine: source resolution, discovery, materialization and state."""
from __future__ import annotations

from agntx_install.discovery import discover_source, validate_source
from agntx_install.git import GitFetcher
from agntx_install.installer import (
    Installer,
    InstallPlan,
    InstallReport,
    InstallSummary,
    Materializer,
    build_manifest,
    plan_install,
)
from agntx_install.manifest import ManifestStore
from agntx_install.parser import AgentFile, parse_agent_file
from agntx_install.platform import SymlinkCapability, symlink_capability
from agntx_install.protocols import Prompter, SourceFetcher
from agntx_install.removal import (
    InstallRecord,
    RemovalEngine,
    RemovalSummary,
    collect_records,
)
from agntx_install.selection import (
    Selector,
    parse_selector,
    resolve_kinds,
    resolve_mode,
    resolve_names,
    resolve_overwrite,
    resolve_scope,
    resolve_tools,
)
from agntx_install.sources import RepositoryRef, parse_repository, resolve_source
from agntx_install.validator import collect_runtime_issues, exit_code, summarize_issues

__all__ = [
    "AgentFile",
    "GitFetcher",
    "InstallPlan",
    "InstallRecord",
    "InstallReport",
    "InstallSummary",
    "Installer",
    "ManifestStore",
    "Materializer",
    "Prompter",
    "RemovalEngine",
    "RemovalSummary",
    "RepositoryRef",
    "Selector",
    "SourceFetcher",
    "SymlinkCapability",
    "build_manifest",
    "collect_records",
    "collect_runtime_issues",
    "discover_source",
    "exit_code",
    "parse_agent_file",
    "parse_repository",
    "parse_selector",
    "plan_install",
    "resolve_kinds",
    "resolve_mode",
    "resolve_names",
    "resolve_overwrite",
    "resolve_scope",
    "resolve_source",
    "resolve_tools",
    "summarize_issues",
    "symlink_capability",
    "validate_source",
]
