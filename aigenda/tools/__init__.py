"""Tools the agent can invoke."""

from aigenda.tools.registry import ToolsRegistry, build_default_registry

__all__ = ["ToolsRegistry", "build_default_registry"]
