"""Helpers shared by the agntx subcommands."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import typer
from agntx_core.config import AgntxConfig
from agntx_core.logging import setup_logging
from agntx_core.types import ScopeName
from agntx_install.git import GitFetcher
from agntx_install.layout import canonical_root, is_interactive_session, resolve_base_dir

from agntx_cli.output import error, set_json_mode
from agntx_cli.prompts import InquirerPrompter

if TYPE_CHECKING:
    from agntx_install.protocols import Prompter, SourceFetcher


def configure(verbose: bool = False, json_output: bool = False) -> None:
    setup_logging("DEBUG" if verbose else "WARNING")
    set_json_mode(json_output)


def load_config() -> AgntxConfig:
    return AgntxConfig.load(Path.cwd())


def build_fetcher(config: AgntxConfig) -> SourceFetcher:
    return GitFetcher(config.cache.path)


def build_prompter() -> Prompter:
    return InquirerPrompter()


def is_automated(yes: bool) -> bool:
    """True when prompts must not be shown."""
    return yes or not is_interactive_session()


def state_location(
    global_: bool = False, path: str | None = None,
) -> tuple[ScopeName, Path, Path]:
    """Scope, base directory and canonical root for state-reading commands."""
    if global_:
        scope = ScopeName.GLOBAL
    elif path:
        scope = ScopeName.PATH
    else:
        scope = ScopeName.LOCAL
    base_dir = resolve_base_dir(scope, path)
    return scope, base_dir, canonical_root(base_dir, scope)


def fail(exc: Exception) -> NoReturn:
    error(str(exc))
    raise typer.Exit(1)
