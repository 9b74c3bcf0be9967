"""LLM-related data models and types (provider-agnostic)."""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class TextBlock(BaseModel):
    """Text content block."""

    model_config = ConfigDict(extra="ignore")  # Ignore any additional fields from Anthropic

    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """Native tool use content block.

    The agent asks for tool calls as JSON embedded in text, so these are only
    logged when a provider returns them anyway.
    """

    model_config = ConfigDict(extra="ignore")

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]


ContentBlock = TextBlock | ToolUseBlock


@dataclass
class LLMUsage:
    """Token usage information from the LLM provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass
class LLMResponse:
    """Provider-agnostic response from the LLM client."""

    content: list[ContentBlock]
    stop_reason: str | None
    usage: LLMUsage
    model: str
    provider: str = "anthropic"

    @property
    def text(self) -> str | None:
        """Return the first text block, if any."""
        for block in self.content:
            if isinstance(block, TextBlock):
                return block.text
        return None
