"""agntx core: shared types, config, errors, and logging."""
from __future__ import annotations

from agntx_core._version import __version__
from agntx_core.config import (
    AgntxConfig,
    CacheConfig,
    InstallDefaults,
    PromptConfig,
    SourcesConfig,
)
from agntx_core.errors import (
    AgentValidationError,
    AgntxError,
    ConfigError,
    InstallError,
    InvalidSourceError,
    LockError,
    SelectionError,
    SourceError,
    SourceFetchError,
    SourceNotFoundError,
    UnsupportedModeError,
)
from agntx_core.logging import get_logger, setup_logging
from agntx_core.types import (
    ALL_TOOLS,
    MANIFEST_SCHEMA_VERSION,
    TOOL_SUPPORT,
    TYPED_KINDS,
    ComponentKind,
    DiscoveredSource,
    EntryType,
    InstallMode,
    InstallOutcome,
    Issue,
    RuntimeComponentEntry,
    RuntimeComponents,
    RuntimeFileGroupEntry,
    RuntimeManifest,
    RuntimeTarget,
    ScopeName,
    Severity,
    SourceDescriptor,
    SourceProvenance,
    SourceType,
    ToolName,
)

__all__ = [
    # Errors
    "AgentValidationError",
    "AgntxError",
    "ConfigError",
    "InstallError",
    "InvalidSourceError",
    "LockError",
    "SelectionError",
    "SourceError",
    "SourceFetchError",
    "SourceNotFoundError",
    "UnsupportedModeError",
    # Types
    "ALL_TOOLS",
    "MANIFEST_SCHEMA_VERSION",
    "TOOL_SUPPORT",
    "TYPED_KINDS",
    "ComponentKind",
    "DiscoveredSource",
    "EntryType",
    "InstallMode",
    "InstallOutcome",
    "Issue",
    "RuntimeComponentEntry",
    "RuntimeComponents",
    "RuntimeFileGroupEntry",
    "RuntimeManifest",
    "RuntimeTarget",
    "ScopeName",
    "Severity",
    "SourceDescriptor",
    "SourceProvenance",
    "SourceType",
    "ToolName",
    # Config
    "AgntxConfig",
    "CacheConfig",
    "InstallDefaults",
    "PromptConfig",
    "SourcesConfig",
    # Version
    "__version__",
    # Logging
    "get_logger",
    "setup_logging",
]
