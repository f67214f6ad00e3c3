"""Collaborator interfaces consumed by the install engine."""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from agntx_install.sources import RepositoryRef


@runtime_checkable
class Prompter(Protocol):
    """Interactive selection primitives.

    Choices are ``(label, value)`` pairs; the returned values are a subset
    of the offered ones.  Automated runs never call a prompter.
    """

    def select_many(
        self,
        message: str,
        choices: list[tuple[str, str]],
        defaults: list[str] | None = None,
    ) -> list[str]: ...

    def select_one(
        self,
        message: str,
        choices: list[tuple[str, str]],
        default: str | None = None,
    ) -> str: ...

    def confirm(self, message: str, default: bool = False) -> bool: ...

    def text(self, message: str, default: str = "") -> str: ...


@runtime_checkable
class SourceFetcher(Protocol):
    """Resolves a remote repository identifier to a local checkout."""

    def fetch(
        self,
        ref: RepositoryRef,
        sparse_paths: list[str] | None = None,
        fresh: bool = False,
    ) -> Path: ...

    def head_commit(self, path: Path) -> str | None: ...

    def remote_commit(self, ref: RepositoryRef) -> str | None: ...
