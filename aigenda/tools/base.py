"""Base types and definitions for tools."""

from abc import ABC, abstractmethod
from typing import Any

from aigenda.tools.schema import ToolCategory, ToolSchema


class Tool(ABC):
    """A named capability the agent can invoke with ``{"tool", "action", "parameters"}``.

    Implementations validate their own parameters and raise
    ``ToolExecutionError`` with a human-readable message on failure.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Name the model uses in the ``tool`` field."""

    @property
    @abstractmethod
    def description(self) -> str:
        """One-line description of the tool."""

    @property
    def category(self) -> ToolCategory:
        return self.schema().category

    @abstractmethod
    def schema(self) -> ToolSchema:
        """Declarative schema of the tool's actions."""

    @abstractmethod
    async def execute(self, action: str, parameters: Any) -> str:
        """Run ``action`` with the JSON ``parameters`` (``None`` when omitted).

        Returns:
            Text describing the outcome, shown to both the user and the model
        """
