"""The ``init`` command: scaffold an agent markdown file."""
from __future__ import annotations

from pathlib import Path

import typer
from agntx_install.parser import AGENT_NAME_PATTERN

from agntx_cli.output import error, success

AGENT_TEMPLATE = """\
---
name: {name}
description: Describe when this agent should be used
model: inherit
readonly: false
is_background: false
---

You are a specialized agent that...

## Instructions

1. First, do this
2. Then, do that

## Examples

...
"""


def init_command(
    name: str | None = typer.Argument(None, help="Agent name (default: agent)"),
) -> None:
    """Create a new agent file in the current directory."""
    agent_name = name or "agent"
    if not AGENT_NAME_PATTERN.match(agent_name):
        error(
            f"Invalid agent name {agent_name!r}: use lowercase letters, "
            "digits, hyphens or underscores"
        )
        raise typer.Exit(1)

    file_name = f"{agent_name}.md"
    file_path = Path.cwd() / file_name
    if file_path.exists():
        error(f"File {file_name} already exists")
        raise typer.Exit(1)

    file_path.write_text(AGENT_TEMPLATE.format(name=agent_name), encoding="utf-8")
    success(f"Created {file_name}")
