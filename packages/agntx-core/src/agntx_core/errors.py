from __future__ import annotations


class AgntxError(Exception):
    """Base exception for all agntx errors."""


# ── Config Errors ────────────────────────────────────────────────────

class ConfigError(AgntxError):
    """Invalid or missing configuration."""


# ── Source Errors ────────────────────────────────────────────────────

class SourceError(AgntxError):
    """Base for source resolution errors."""


class InvalidSourceError(SourceError):
    """Source identifier could not be parsed."""


class SourceFetchError(SourceError):
    """Cloning or updating a remote repository failed."""


class SourceNotFoundError(SourceError):
    """Source root directory does not exist."""


# ── Selection Errors ─────────────────────────────────────────────────

class SelectionError(AgntxError):
    """Explicit selection or flag value is invalid."""


# ── Install Errors ───────────────────────────────────────────────────

class InstallError(AgntxError):
    """Base for install planning and materialization errors."""


class UnsupportedModeError(InstallError):
    """Requested install mode is not available on this platform."""


class LockError(InstallError):
    """Another run holds the lock for the same directory."""


# ── Agent Definition Errors ─────────────────────────────────────────

class AgentValidationError(AgntxError):
    """Agent markdown file is invalid."""
