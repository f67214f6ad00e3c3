"""Turn flags, config defaults and prompt answers into a concrete install choice.

Every resolver follows the same precedence: an explicit flag wins, then
the automated-run default, and only then the interactive prompter.
Automated runs never touch the prompter.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from agntx_core.errors import SelectionError
from agntx_core.logging import get_logger
from agntx_core.types import ALL_TOOLS, ComponentKind, InstallMode, ScopeName, ToolName

from agntx_install.layout import parse_csv

if TYPE_CHECKING:
    from agntx_core.config import InstallDefaults
    from agntx_core.preferences import InstallPreferences

    from agntx_install.protocols import Prompter

logger = get_logger("install.selection")

KIND_LABELS: dict[ComponentKind, str] = {
    ComponentKind.AGENTS: "agent files",
    ComponentKind.SKILLS: "skills",
    ComponentKind.COMMANDS: "commands",
    ComponentKind.FILES: "file groups",
}

# Flag values that request every available name of a kind.
_ALL_MARKERS = frozenset({"", "all", "*"})


@dataclass(frozen=True, slots=True)
class Selector:
    """State of one ``--agents``/``--skills``/... flag."""

    requested: bool = False
    values: list[str] | None = None

    @property
    def explicit(self) -> bool:
        return bool(self.values)


def parse_selector(value: str | bool | None) -> Selector:
    """Parse a component flag.

    ``None`` means the flag is absent; a bare flag, ``True`` or ``all``
    requests every available name; anything else is a csv list.
    """
    if value is None or value is False:
        return Selector()
    if value is True or value.strip().lower() in _ALL_MARKERS:
        return Selector(requested=True)
    values = parse_csv(value)
    return Selector(requested=True, values=values or None)


def resolve_kinds(
    selectors: dict[ComponentKind, Selector],
    prompter: Prompter | None,
    automated: bool,
) -> list[ComponentKind]:
    requested = [
        kind for kind in ComponentKind
        if selectors.get(kind, Selector()).requested
    ]
    if requested:
        return requested
    if automated or prompter is None:
        return list(ComponentKind)

    choices = [(KIND_LABELS[kind], kind.value) for kind in ComponentKind]
    picked = set(prompter.select_many(
        "Select component categories to install:",
        choices,
        defaults=[kind.value for kind in ComponentKind],
    ))
    return [kind for kind in ComponentKind if kind.value in picked]


def validate_explicit(
    kind: ComponentKind, requested: list[str], available: list[str],
) -> list[str]:
    """Check explicitly named components against what the source offers.

    Raises:
        SelectionError: Listing the unknown names and the available set.
    """
    known = set(available)
    invalid = [name for name in requested if name not in known]
    if invalid:
        listing = ", ".join(available) if available else "(none)"
        msg = (
            f"Unknown {kind.value} requested: {', '.join(invalid)}. "
            f"Available: {listing}"
        )
        raise SelectionError(msg)
    return list(dict.fromkeys(requested))


def _search_filter(
    label: str, available: list[str], prompter: Prompter,
) -> list[str]:
    query = prompter.text(f"Search {label} (optional):").strip().lower()
    if not query:
        return available
    matches = [name for name in available if query in name.lower()]
    if matches:
        return matches
    logger.warning(
        "No %s matched %r. Showing all available %s.", label, query, label,
    )
    return available


def resolve_names(
    kind: ComponentKind,
    available: list[str],
    selector: Selector,
    prompter: Prompter | None,
    automated: bool,
    search_threshold: int = 8,
) -> list[str]:
    """Choose which discovered names of *kind* to install."""
    label = KIND_LABELS[kind]
    if not available:
        if selector.explicit:
            validate_explicit(kind, selector.values or [], available)
        logger.warning("No %s found. Skipping %s.", label, label)
        return []

    if selector.explicit:
        return validate_explicit(kind, selector.values or [], available)
    if selector.requested or automated or prompter is None:
        return list(available)

    candidates = available
    if len(available) > search_threshold:
        candidates = _search_filter(label, available, prompter)

    picked = set(prompter.select_many(
        f"Select {label}:",
        [(name, name) for name in candidates],
        defaults=list(candidates),
    ))
    return [name for name in candidates if name in picked]


def resolve_scope(
    *,
    global_: bool = False,
    local: bool = False,
    path: str | None = None,
    defaults: InstallDefaults | None = None,
    preferences: InstallPreferences | None = None,
    prompter: Prompter | None = None,
    automated: bool = False,
) -> tuple[ScopeName, str | None]:
    """Return the scope and, for a custom-path scope, its directory."""
    if global_:
        return ScopeName.GLOBAL, None
    if path:
        return ScopeName.PATH, path
    if local:
        return ScopeName.LOCAL, None
    if automated or prompter is None:
        scope = defaults.scope_name if defaults is not None else ScopeName.LOCAL
        return scope, None

    default = preferences.default_scope if preferences else ScopeName.LOCAL
    choice = prompter.select_one(
        "Select installation scope:",
        [
            ("Local (current project)", ScopeName.LOCAL.value),
            ("Global (home directory)", ScopeName.GLOBAL.value),
        ],
        default=default.value,
    )
    return ScopeName(choice), None


def resolve_mode(
    value: str | None,
    *,
    defaults: InstallDefaults | None = None,
    preferences: InstallPreferences | None = None,
    prompter: Prompter | None = None,
    automated: bool = False,
) -> InstallMode:
    if value:
        try:
            return InstallMode(value.strip().lower())
        except ValueError:
            msg = f"Invalid --mode value: {value}"
            raise SelectionError(msg) from None
    if automated or prompter is None:
        return defaults.install_mode if defaults is not None else InstallMode.SYMLINK

    default = preferences.default_mode if preferences else InstallMode.SYMLINK
    choice = prompter.select_one(
        "Select install mode:",
        [
            ("symlink (recommended)", InstallMode.SYMLINK.value),
            ("copy", InstallMode.COPY.value),
        ],
        default=default.value,
    )
    return InstallMode(choice)


def parse_tools(value: str) -> list[ToolName]:
    """Parse ``--tools``: ``all`` or a csv list; unknown entries are dropped.

    Raises:
        SelectionError: If no known tool remains.
    """
    if value.strip().lower() == "all":
        return list(ALL_TOOLS)
    known = {tool.value for tool in ToolName}
    tools = [
        ToolName(entry) for entry in dict.fromkeys(parse_csv(value.lower()))
        if entry in known
    ]
    if not tools:
        msg = f"Invalid --tools value: {value}"
        raise SelectionError(msg)
    return tools


def resolve_tools(
    value: str | None,
    *,
    defaults: InstallDefaults | None = None,
    preferences: InstallPreferences | None = None,
    prompter: Prompter | None = None,
    automated: bool = False,
) -> list[ToolName]:
    if value:
        return parse_tools(value)
    if automated or prompter is None:
        return defaults.tool_names if defaults is not None else list(ALL_TOOLS)

    default = preferences.default_tools if preferences else list(ALL_TOOLS)
    picked = set(prompter.select_many(
        "Select tools:",
        [(tool.value, tool.value) for tool in ALL_TOOLS],
        defaults=[tool.value for tool in default],
    ))
    tools = [tool for tool in ALL_TOOLS if tool.value in picked]
    if not tools:
        msg = "Select at least one tool"
        raise SelectionError(msg)
    return tools


def resolve_overwrite(
    force: bool,
    *,
    prompter: Prompter | None = None,
    automated: bool = False,
) -> bool:
    if force:
        return True
    if automated or prompter is None:
        return False
    return prompter.confirm("Overwrite existing paths when present?", default=False)
