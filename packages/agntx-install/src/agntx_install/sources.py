"""Source resolution: local directories and remote repository identifiers."""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from agntx_core.errors import InvalidSourceError, SourceNotFoundError
from agntx_core.logging import get_logger
from agntx_core.types import SourceDescriptor, SourceType

if TYPE_CHECKING:
    from agntx_install.protocols import SourceFetcher

logger = get_logger("install.sources")

# Trailing path segment → directory inside the repository used as source root.
SOURCE_ROOT_ALIASES: dict[str, str] = {
    ".agents": ".agents",
    "agents": ".agents",
    ".claude": ".claude",
    "claude": ".claude",
    ".cursor": ".cursor",
    "cursor": ".cursor",
}

_SEGMENT = r"[A-Za-z0-9_.-]+"
_SHORTHAND_RE = re.compile(
    rf"^(?P<owner>{_SEGMENT})/(?P<repo>{_SEGMENT}?)(?:\.git)?(?:/(?P<rest>[^\s]+))?$"
)
_URL_RE = re.compile(
    rf"^(?P<scheme>https?)://(?P<host>[^/\s]+)/(?P<owner>{_SEGMENT})/"
    rf"(?P<repo>{_SEGMENT}?)(?:\.git)?(?:/(?P<rest>[^\s]*))?$"
)
_SSH_RE = re.compile(
    rf"^git@(?P<host>[^:\s]+):(?P<owner>{_SEGMENT})/(?P<repo>{_SEGMENT}?)(?:\.git)?$"
)


@dataclass(frozen=True, slots=True)
class RepositoryRef:
    """A parsed remote repository identifier."""

    owner: str
    repo: str
    clone_url: str
    ref: str | None = None
    source_root: str | None = None

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def cache_key(self) -> str:
        return f"{self.owner}-{self.repo}"


def _resolve_alias(segment: str | None, raw: str) -> str | None:
    if segment is None:
        return None
    segment = segment.strip("/")
    if not segment:
        return None
    if segment not in SOURCE_ROOT_ALIASES:
        accepted = ", ".join(sorted(SOURCE_ROOT_ALIASES))
        msg = (
            f"Unknown source directory alias {segment!r} in {raw!r}. "
            f"Accepted aliases: {accepted}"
        )
        raise InvalidSourceError(msg)
    return SOURCE_ROOT_ALIASES[segment]


def parse_repository(raw: str) -> RepositoryRef:
    """Parse a remote repository identifier.

    Supported forms::

        owner/repo
        owner/repo#ref
        owner/repo/<alias>
        https://github.com/owner/repo[.git][/<alias>][#ref]
        git@github.com:owner/repo.git[#ref]

    Raises:
        InvalidSourceError: If *raw* matches none of the forms or names an
            unknown alias.
    """
    identifier = raw.strip()
    ref: str | None = None
    if "#" in identifier:
        identifier, _, ref = identifier.partition("#")
        ref = ref.strip() or None

    if match := _SSH_RE.match(identifier):
        owner, repo = match["owner"], match["repo"]
        clone_url = f"git@{match['host']}:{owner}/{repo}.git"
        return RepositoryRef(owner=owner, repo=repo, clone_url=clone_url, ref=ref)

    if identifier.startswith("git@"):
        msg = f"Invalid git URL: {raw}"
        raise InvalidSourceError(msg)

    if match := _URL_RE.match(identifier):
        owner, repo = match["owner"], match["repo"]
        clone_url = f"{match['scheme']}://{match['host']}/{owner}/{repo}.git"
        return RepositoryRef(
            owner=owner,
            repo=repo,
            clone_url=clone_url,
            ref=ref,
            source_root=_resolve_alias(match["rest"], raw),
        )

    if "://" in identifier:
        msg = f"Invalid repository URL: {raw}"
        raise InvalidSourceError(msg)

    if match := _SHORTHAND_RE.match(identifier):
        owner, repo = match["owner"], match["repo"]
        if repo:
            return RepositoryRef(
                owner=owner,
                repo=repo,
                clone_url=f"https://github.com/{owner}/{repo}.git",
                ref=ref,
                source_root=_resolve_alias(match["rest"], raw),
            )

    msg = f"Invalid package identifier: {raw}"
    raise InvalidSourceError(msg)


def resolve_source(
    raw: str,
    fetcher: SourceFetcher,
    cwd: Path | None = None,
) -> SourceDescriptor:
    """Turn a user-supplied source string into a local directory.

    An existing local directory wins over identifier parsing.  Commit
    hashes are recorded on a best-effort basis.
    """
    local = Path(raw).expanduser()
    if not local.is_absolute():
        local = (cwd or Path.cwd()) / local
    if local.is_dir():
        resolved = local.resolve()
        commit = fetcher.head_commit(resolved) if (resolved / ".git").exists() else None
        logger.debug("Using local source %s", resolved)
        return SourceDescriptor(
            source_type=SourceType.LOCAL,
            input=raw,
            resolved_path=str(resolved),
            commit=commit,
        )

    repo_ref = parse_repository(raw)
    sparse = [repo_ref.source_root] if repo_ref.source_root else None
    checkout = fetcher.fetch(repo_ref, sparse_paths=sparse)

    source_dir = checkout / repo_ref.source_root if repo_ref.source_root else checkout
    if not source_dir.is_dir():
        msg = f"Source directory not found in {repo_ref.slug}: {repo_ref.source_root}"
        raise SourceNotFoundError(msg)

    return SourceDescriptor(
        source_type=SourceType.GIT,
        input=raw,
        resolved_path=str(source_dir.resolve()),
        repo=repo_ref.slug,
        ref=repo_ref.ref,
        commit=fetcher.head_commit(checkout),
    )
