"""Conversation memory data models."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MessageRole(StrEnum):
    """Who produced a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class ToolCall(BaseModel):
    """A tool call dispatched on behalf of the assistant."""

    id: str
    tool_name: str
    action: str
    parameters: Any = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def qualified_name(self) -> str:
        """Return the call as ``tool.action``."""
        return f"{self.tool_name}.{self.action}"


class ToolResult(BaseModel):
    """Result of a tool call."""

    call_id: str
    tool_name: str
    action: str
    result: str
    success: bool
    timestamp: datetime = Field(default_factory=_utcnow)
    execution_time_ms: int = 0


class ConversationMessage(BaseModel):
    """A message in a conversation."""

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    tool_calls: list[ToolCall] | None = None
    tool_results: list[ToolResult] | None = None

    @property
    def token_estimate(self) -> int:
        """Rough token count: one token per four characters."""
        return len(self.content) // 4
