"""Convention-based discovery of agents, skills, commands and file groups."""
from __future__ import annotations

from collections import Counter
from pathlib import Path

from agntx_core.errors import AgentValidationError, SourceNotFoundError
from agntx_core.logging import get_logger
from agntx_core.types import DiscoveredSource, Issue, Severity

from agntx_install.parser import parse_agent_file

logger = get_logger("install.discovery")

_SKILL_FILENAME = "SKILL.md"

# Directories with a fixed meaning; never treated as file groups.
TYPED_DIRECTORIES = frozenset({"agents", "skills", "commands"})

RESERVED_DIRECTORIES = frozenset({
    "rules",
    "settings",
    "src",
    "lib",
    "dist",
    "build",
    "coverage",
    "node_modules",
    "test",
    "tests",
    "__tests__",
    "docs",
    "examples",
    "config",
    "tmp",
    "temp",
})


def _list_markdown_basenames(directory: Path) -> list[str]:
    if not directory.is_dir():
        return []
    return sorted(
        entry.stem
        for entry in directory.iterdir()
        if entry.is_file() and entry.suffix == ".md"
    )


def _list_skill_dirs(directory: Path) -> list[str]:
    if not directory.is_dir():
        return []
    return sorted(
        entry.name
        for entry in directory.iterdir()
        if entry.is_dir() and (entry / _SKILL_FILENAME).exists()
    )


def discover_source(root_dir: Path | str) -> DiscoveredSource:
    """Classify the top-level entries of a source directory.

    Args:
        root_dir: The resolved source directory.

    Returns:
        A DiscoveredSource with every collection sorted by name.

    Raises:
        SourceNotFoundError: If *root_dir* is not an existing directory.
    """
    root = Path(root_dir).expanduser().resolve()
    if not root.is_dir():
        msg = f"Source directory not found: {root}"
        raise SourceNotFoundError(msg)

    top_level = [entry.name for entry in root.iterdir() if entry.is_dir()]

    reserved_ignored = sorted(
        name for name in top_level if name in RESERVED_DIRECTORIES
    )
    file_groups = sorted(
        name
        for name in top_level
        if not name.startswith(".")
        and name not in TYPED_DIRECTORIES
        and name not in RESERVED_DIRECTORIES
    )

    discovered = DiscoveredSource(
        root_dir=str(root),
        agents=_list_markdown_basenames(root / "agents"),
        skills=_list_skill_dirs(root / "skills"),
        commands=_list_markdown_basenames(root / "commands"),
        file_groups=file_groups,
        reserved_ignored=reserved_ignored,
    )
    logger.debug(
        "Discovered %d agent(s), %d skill(s), %d command(s), %d file group(s) in %s",
        len(discovered.agents),
        len(discovered.skills),
        len(discovered.commands),
        len(discovered.file_groups),
        root,
    )
    return discovered


def validate_source(root_dir: Path | str) -> tuple[DiscoveredSource, list[Issue]]:
    """Discover a source and report its structural issues.

    Malformed entries become Issues; only a missing root raises.
    """
    discovered = discover_source(root_dir)
    root = Path(discovered.root_dir)
    issues: list[Issue] = list(discovered.issues)

    agents_dir = root / "agents"
    if agents_dir.is_dir():
        declared: Counter[str] = Counter()
        for agent_file in sorted(agents_dir.glob("*.md")):
            if not agent_file.is_file():
                continue
            try:
                agent = parse_agent_file(agent_file, source_root=root)
            except (AgentValidationError, OSError, UnicodeDecodeError) as exc:
                logger.debug("Invalid agent file %s: %s", agent_file, exc)
                issues.append(Issue(
                    code="AGENT_INVALID",
                    severity=Severity.ERROR,
                    message=f"Invalid agent markdown: {agent_file.name}",
                    path=str(agent_file),
                ))
                continue
            declared[agent.name] += 1

        for name, count in sorted(declared.items()):
            if count > 1:
                issues.append(Issue(
                    code="AGENT_DUPLICATE_NAME",
                    severity=Severity.WARNING,
                    message=f"Agent name declared by {count} files: {name}",
                    path=str(agents_dir),
                ))

    skills_dir = root / "skills"
    if skills_dir.is_dir():
        for entry in sorted(skills_dir.iterdir()):
            if entry.is_dir() and not (entry / _SKILL_FILENAME).exists():
                issues.append(Issue(
                    code="SKILL_MISSING_FILE",
                    severity=Severity.ERROR,
                    message=f"Skill directory is missing SKILL.md: {entry.name}",
                    path=str(entry),
                ))

    for reserved in discovered.reserved_ignored:
        issues.append(Issue(
            code="RESERVED_IGNORED",
            severity=Severity.WARNING,
            message=f"Reserved directory is currently ignored: {reserved}",
            path=str(root / reserved),
        ))

    return discovered, issues
