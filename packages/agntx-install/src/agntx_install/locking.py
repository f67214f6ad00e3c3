"""Advisory lock files that keep two writing runs off the same directory."""
from __future__ import annotations

import contextlib
import os
from typing import TYPE_CHECKING

from agntx_core.errors import LockError
from agntx_core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

logger = get_logger("install.locking")

LOCK_FILENAME = ".agntx.lock"


@contextlib.contextmanager
def hold_lock(lock_path: Path) -> Iterator[Path]:
    """Create *lock_path* exclusively for the duration of the block.

    A parent directory created here is removed again on release if the
    block left it empty.

    Raises:
        LockError: If the lock file already exists.
    """
    created_parent = not lock_path.parent.exists()
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        msg = (
            f"Another agntx run holds {lock_path}. "
            "If no other run is active, delete the lock file and retry."
        )
        raise LockError(msg) from None

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(f"{os.getpid()}\n")
        logger.debug("Acquired lock %s", lock_path)
        yield lock_path
    finally:
        with contextlib.suppress(FileNotFoundError):
            lock_path.unlink()
        if created_parent:
            with contextlib.suppress(OSError):
                lock_path.parent.rmdir()
        logger.debug("Released lock %s", lock_path)
