"""Tools registry for managing agent tools."""

from collections.abc import Callable
from importlib.metadata import entry_points

from aigenda.exceptions import ToolNotFoundError, ToolRegistrationError
from aigenda.services.storage import Storage
from aigenda.tools.base import Tool
from aigenda.tools.external import discover_external_tools
from aigenda.tools.notes import NotesTool
from aigenda.tools.schema import ToolCategory, format_parameter_type
from aigenda.utils.logging import get_logger

logger = get_logger(__name__)

ENTRY_POINT_GROUP = "aigenda.tools"

_CATEGORY_ORDER = (ToolCategory.INTERNAL, ToolCategory.EXTERNAL, ToolCategory.SYSTEM)


class ToolsRegistry:
    """Registry mapping tool names to shared tool instances."""

    def __init__(self):
        """Initialize an empty registry."""
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool, replacing any tool already registered under the same name."""
        if tool.name in self._tools:
            logger.warning(f"Replacing already registered tool: {tool.name}")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name} ({tool.category.label})")

    def get(self, name: str) -> Tool:
        """Look up a tool by name.

        Raises:
            ToolNotFoundError: If no tool is registered under ``name``
        """
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def by_category(self) -> dict[ToolCategory, list[Tool]]:
        """Group registered tools by category, in Internal, External, System order."""
        grouped: dict[ToolCategory, list[Tool]] = {category: [] for category in _CATEGORY_ORDER}
        for tool in self._tools.values():
            grouped[tool.category].append(tool)
        return {category: tools for category, tools in grouped.items() if tools}

    def render_documentation(self) -> str:
        """Render full documentation for every tool, grouped by category."""
        sections: list[str] = []
        for category, tools in self.by_category().items():
            sections.append(f"## {category.label} Tools\n")
            sections.extend(tool.schema().to_prompt_format() for tool in tools)
        return "\n".join(sections)

    def render_summary(self) -> str:
        """Render a compact listing of every tool, its actions and their parameters."""
        lines: list[str] = []
        for tool in self._tools.values():
            lines += ["", f"## {tool.name} Tool", f"Description: {tool.description}", "Actions:"]
            for action in tool.schema().actions:
                lines.append(f"- {action.name}: {action.description}")
                if action.parameters:
                    lines.append("  Parameters:")
                for param in action.parameters:
                    required = " (required)" if param.required else " (optional)"
                    lines.append(
                        f"    - {param.name} ({format_parameter_type(param.param_type)}): "
                        f"{param.description}{required}"
                    )
        return "\n".join(lines) + "\n"

    def schemas(self) -> list[str]:
        """Return the rendered schema of each tool, in registration order."""
        return [tool.schema().to_prompt_format() for tool in self._tools.values()]

    # Keep last: shadows the builtin `list` for the rest of the class body
    def list(self) -> list[str]:
        """Get list of all registered tool names."""
        return [name for name in self._tools]


def load_entry_point_tools(group: str = ENTRY_POINT_GROUP) -> list[Tool]:
    """Instantiate tools advertised by installed distributions under ``group``.

    Each entry point must resolve to a zero-argument callable (usually a
    ``Tool`` subclass) returning a tool.

    Raises:
        ToolRegistrationError: If an entry point cannot be loaded or constructed
    """
    tools: list[Tool] = []
    for entry_point in entry_points(group=group):
        try:
            factory: Callable[[], Tool] = entry_point.load()
            tool = factory()
        except Exception as e:
            raise ToolRegistrationError(entry_point.name, str(e)) from e
        if not isinstance(tool, Tool):
            raise ToolRegistrationError(entry_point.name, f"expected a Tool, got {type(tool).__name__}")
        logger.info(f"Loaded tool '{tool.name}' from entry point {entry_point.value}")
        tools.append(tool)
    return tools


def build_default_registry(
    storage: Storage,
    enable_example_tool: bool = False,
    load_entry_points: bool = True,
) -> ToolsRegistry:
    """Build the registry with the bundled notes tool and every discovered tool.

    Raises:
        ToolRegistrationError: If any tool fails to construct
    """
    registry = ToolsRegistry()

    try:
        registry.register(NotesTool(storage))
    except Exception as e:
        raise ToolRegistrationError("notes", str(e)) from e

    discovered = discover_external_tools(enable_example=enable_example_tool)
    if load_entry_points:
        discovered += load_entry_point_tools()

    for tool in discovered:
        registry.register(tool)

    logger.debug(f"Registry ready with {len(registry)} tools: {', '.join(registry.list())}")
    return registry
