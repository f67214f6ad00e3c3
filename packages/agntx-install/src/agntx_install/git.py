"""Git-backed source fetcher with a per-repository checkout cache."""
from __future__ import annotations

import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from agntx_core.errors import SourceFetchError
from agntx_core.logging import get_logger

from agntx_install.locking import hold_lock

if TYPE_CHECKING:
    from agntx_install.sources import RepositoryRef

logger = get_logger("install.git")

_SHA_RE = re.compile(r"^[0-9a-f]{40}$")


def _run_git(args: list[str], cwd: Path | None = None) -> str:
    """Run ``git`` with *args* and return its stripped stdout.

    Raises:
        SourceFetchError: If git is missing or exits non-zero.
    """
    env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
    logger.debug("Running git %s", " ".join(args))
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            env=env,
            check=False,
        )
    except FileNotFoundError as exc:
        msg = "git executable not found on PATH"
        raise SourceFetchError(msg) from exc

    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        msg = f"git {args[0]} failed: {detail or f'exit code {result.returncode}'}"
        raise SourceFetchError(msg)
    return result.stdout.strip()


class GitFetcher:
    """Clone or refresh repositories under ``cache_root/<owner>-<repo>``.

    A checkout narrowed with a sparse pattern falls back once to a fresh
    full clone when the sparse steps fail.
    """

    def __init__(self, cache_root: Path) -> None:
        self.cache_root = cache_root

    def checkout_dir(self, ref: RepositoryRef) -> Path:
        return self.cache_root / ref.cache_key

    def fetch(
        self,
        ref: RepositoryRef,
        sparse_paths: list[str] | None = None,
        fresh: bool = False,
    ) -> Path:
        checkout = self.checkout_dir(ref)
        self.cache_root.mkdir(parents=True, exist_ok=True)

        with hold_lock(self.cache_root / f"{ref.cache_key}.lock"):
            if fresh and checkout.exists():
                shutil.rmtree(checkout)

            if sparse_paths:
                try:
                    self._sync_sparse(ref, checkout, sparse_paths)
                except SourceFetchError as exc:
                    logger.warning(
                        "Sparse checkout of %s failed (%s); retrying with a full clone",
                        ref.slug,
                        exc,
                    )
                    shutil.rmtree(checkout, ignore_errors=True)
                    self._clone_full(ref, checkout)
            elif (checkout / ".git").is_dir():
                self._disable_sparse(checkout)
                self._update(ref, checkout)
            else:
                shutil.rmtree(checkout, ignore_errors=True)
                self._clone_full(ref, checkout)

        logger.info("Fetched %s into %s", ref.slug, checkout)
        return checkout

    def head_commit(self, path: Path) -> str | None:
        try:
            return _run_git(["rev-parse", "HEAD"], cwd=path) or None
        except SourceFetchError as exc:
            logger.debug("Could not read HEAD of %s: %s", path, exc)
            return None

    def remote_commit(self, ref: RepositoryRef) -> str | None:
        """Return the commit the remote currently points *ref* at."""
        if ref.ref and _SHA_RE.match(ref.ref):
            return ref.ref
        try:
            output = _run_git(["ls-remote", ref.clone_url, ref.ref or "HEAD"])
        except SourceFetchError as exc:
            logger.debug("ls-remote failed for %s: %s", ref.slug, exc)
            return None
        for line in output.splitlines():
            commit, _, _name = line.partition("\t")
            if commit:
                return commit
        return None

    # ── Internals ────────────────────────────────────────────────────

    def _clone_full(self, ref: RepositoryRef, checkout: Path) -> None:
        _run_git(["clone", ref.clone_url, str(checkout)])
        if ref.ref:
            self._checkout_ref(ref.ref, checkout)

    def _sync_sparse(
        self, ref: RepositoryRef, checkout: Path, sparse_paths: list[str],
    ) -> None:
        if not (checkout / ".git").is_dir():
            shutil.rmtree(checkout, ignore_errors=True)
            _run_git([
                "clone", "--filter=blob:none", "--no-checkout",
                ref.clone_url, str(checkout),
            ])
            _run_git(["sparse-checkout", "init", "--cone"], cwd=checkout)
            _run_git(["sparse-checkout", "set", *sparse_paths], cwd=checkout)
            if ref.ref:
                self._checkout_ref(ref.ref, checkout)
            else:
                _run_git(["checkout"], cwd=checkout)
            return

        _run_git(["sparse-checkout", "set", *sparse_paths], cwd=checkout)
        self._update(ref, checkout)

    def _update(self, ref: RepositoryRef, checkout: Path) -> None:
        if ref.ref:
            self._checkout_ref(ref.ref, checkout)
            return
        _run_git(["fetch", "origin"], cwd=checkout)
        _run_git(["reset", "--hard", "origin/HEAD"], cwd=checkout)

    def _checkout_ref(self, revision: str, checkout: Path) -> None:
        _run_git(["fetch", "origin", revision], cwd=checkout)
        _run_git(["checkout", "--force", "FETCH_HEAD"], cwd=checkout)

    def _disable_sparse(self, checkout: Path) -> None:
        try:
            _run_git(["sparse-checkout", "disable"], cwd=checkout)
        except SourceFetchError as exc:
            logger.debug("sparse-checkout disable failed in %s: %s", checkout, exc)
