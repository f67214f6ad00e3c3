from __future__ import annotations

import sys
from dataclasses import dataclass

SYMLINK_REMEDIATION = (
    "Symlink mode is not supported on this platform. Use --mode copy."
)


@dataclass(frozen=True, slots=True)
class SymlinkCapability:
    supported: bool
    remediation: str | None = None


def symlink_capability(platform: str | None = None) -> SymlinkCapability:
    """Report whether symlink installs can be created on *platform*."""
    name = platform if platform is not None else sys.platform
    if name.startswith(("win32", "cygwin", "msys")):
        return SymlinkCapability(supported=False, remediation=SYMLINK_REMEDIATION)
    return SymlinkCapability(supported=True)
