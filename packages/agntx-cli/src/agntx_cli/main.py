from __future__ import annotations

import sys

import typer
from agntx_core import __version__

from agntx_cli.commands.init import init_command
from agntx_cli.commands.inspect import inspect_command
from agntx_cli.commands.install import install_command
from agntx_cli.commands.remove import remove_command
from agntx_cli.commands.status import status_command
from agntx_cli.commands.update import check_command, update_command

app = typer.Typer(
    name="agntx",
    help=(
        "Install agent files and related runtime components "
        "from repositories or local paths"
    ),
    no_args_is_help=True,
)

app.command("install")(install_command)
app.command("add", hidden=True)(install_command)
app.command("inspect")(inspect_command)
app.command("validate", hidden=True)(inspect_command)
app.command("status")(status_command)
app.command("remove")(remove_command)
app.command("rm", hidden=True)(remove_command)
app.command("init")(init_command)
app.command("check")(check_command)
app.command("update")(update_command)


@app.command()
def version() -> None:
    """Show the agntx version."""
    from rich.console import Console
    Console().print(f"agntx {__version__}")


# Component flags accept an optional value: a bare ``--agents`` means all.
SELECTOR_FLAGS = ("--agents", "--skills", "--commands", "--files")


def expand_bare_selectors(argv: list[str]) -> list[str]:
    """Rewrite a bare component flag as ``--flag=all``.

    A flag is bare when it is last, or followed by another option.
    """
    expanded: list[str] = []
    for index, arg in enumerate(argv):
        if arg in SELECTOR_FLAGS:
            following = argv[index + 1] if index + 1 < len(argv) else None
            if following is None or following.startswith("-"):
                expanded.append(f"{arg}=all")
                continue
        expanded.append(arg)
    return expanded


def main() -> None:
    """Entry-point that normalizes bare component flags before dispatch."""
    app(args=expand_bare_selectors(sys.argv[1:]), prog_name="agntx")


if __name__ == "__main__":
    main()
