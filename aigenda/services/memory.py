"""Bounded, persisted conversation memory for the agent."""

import json
from collections import deque
from pathlib import Path

from pydantic import BaseModel, ValidationError

from aigenda.exceptions import StorageError
from aigenda.models.memory import ConversationMessage, MessageRole, ToolCall, ToolResult
from aigenda.utils.logging import get_logger

logger = get_logger(__name__)

HISTORY_HEADER = "## Conversation History\nPrevious messages and tool interactions:\n\n"
RECENT_TOOL_WINDOW = 5


class MemorySnapshot(BaseModel):
    """On-disk representation of a conversation memory."""

    max_messages: int
    max_tokens: int
    messages: list[ConversationMessage]


class ConversationMemory:
    """Ordered log of conversation turns bounded by message count and token estimate.

    After every insertion the oldest messages are evicted until both
    ``message_count <= max_messages`` and ``token_estimate <= max_tokens``.
    Tokens are estimated as ``len(content) // 4`` per message.
    """

    def __init__(self, max_messages: int, max_tokens: int):
        """Initialize an empty memory.

        Args:
            max_messages: Maximum number of retained messages
            max_tokens: Maximum estimated tokens across retained messages
        """
        self.max_messages = max_messages
        self.max_tokens = max_tokens
        self._messages: deque[ConversationMessage] = deque()
        self._token_estimate = 0

    @property
    def messages(self) -> tuple[ConversationMessage, ...]:
        """Retained messages, oldest first."""
        return tuple(self._messages)

    @property
    def message_count(self) -> int:
        """Number of retained messages."""
        return len(self._messages)

    @property
    def token_estimate(self) -> int:
        """Estimated tokens across retained messages."""
        return self._token_estimate

    def add_user(self, content: str) -> None:
        """Record a user turn."""
        self._add(ConversationMessage(role=MessageRole.USER, content=content))

    def add_assistant(self, content: str, tool_calls: list[ToolCall] | None = None) -> None:
        """Record an assistant turn together with the tool calls it triggered."""
        self._add(ConversationMessage(role=MessageRole.ASSISTANT, content=content, tool_calls=tool_calls))

    def add_system(self, content: str) -> None:
        """Record a system note."""
        self._add(ConversationMessage(role=MessageRole.SYSTEM, content=content))

    def attach_results(self, results: list[ToolResult]) -> None:
        """Attach tool results to the most recent message if it is an assistant message.

        Does nothing when the log is empty or the last message has another role.
        """
        if not self._messages:
            return
        last = self._messages[-1]
        if last.role != MessageRole.ASSISTANT:
            logger.debug(f"Ignoring {len(results)} tool results: last message role is {last.role}")
            return
        last.tool_results = results

    def context(self, include_header: bool = True) -> str:
        """Render the retained log as prompt context."""
        parts: list[str] = []

        if include_header and self._messages:
            parts.append(HISTORY_HEADER)

        for message in self._messages:
            if message.role == MessageRole.USER:
                parts.append(f"User: {message.content}\n")
            elif message.role == MessageRole.ASSISTANT:
                parts.append(f"Assistant: {message.content}\n")
                for call in message.tool_calls or []:
                    parts.append(f"  → Called {call.qualified_name} with: {json.dumps(call.parameters)}\n")
                for result in message.tool_results or []:
                    status = "✓" if result.success else "✗"
                    parts.append(
                        f"  {status} {result.tool_name}.{result.action}: {result.result} "
                        f"({result.execution_time_ms}ms)\n"
                    )
            elif message.role == MessageRole.SYSTEM:
                parts.append(f"System: {message.content}\n")
            # Tool-role messages are represented through tool_results

        context = "".join(parts)
        if context:
            context += "\n---\n\n"
        return context

    def recent_tool_usage(self, window: int = RECENT_TOOL_WINDOW) -> list[str]:
        """Return distinct ``tool.action`` names from the last ``window`` messages, newest first."""
        used: list[str] = []
        recent = list(self._messages)[-window:] if window > 0 else []
        for message in reversed(recent):
            for call in message.tool_calls or []:
                if call.qualified_name not in used:
                    used.append(call.qualified_name)
        return used

    def clear(self) -> None:
        """Forget every message."""
        self._messages.clear()
        self._token_estimate = 0

    def _add(self, message: ConversationMessage) -> None:
        self._messages.append(message)
        self._token_estimate += message.token_estimate
        self._evict()

    def _evict(self) -> None:
        evicted = 0
        while self._messages and (
            len(self._messages) > self.max_messages or self._token_estimate > self.max_tokens
        ):
            removed = self._messages.popleft()
            self._token_estimate = max(0, self._token_estimate - removed.token_estimate)
            evicted += 1
        if evicted:
            logger.debug(
                f"Evicted {evicted} messages; {len(self._messages)} messages, ~{self._token_estimate} tokens retained"
            )

    @classmethod
    def load(cls, path: Path, max_messages: int, max_tokens: int) -> "ConversationMemory":
        """Load memory from ``path``, applying the given limits.

        The stored limits are ignored. The stored log is kept as-is even if it
        exceeds the new limits; the next insertion evicts down to them.
        """
        memory = cls(max_messages, max_tokens)
        if not path.exists():
            logger.debug(f"No memory file at {path}, starting fresh")
            return memory

        try:
            snapshot = MemorySnapshot.model_validate_json(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StorageError(f"Could not read memory file {path}: {e}") from e
        except ValidationError as e:
            raise StorageError(f"Could not parse memory file {path}: {e}") from e

        memory._messages.extend(snapshot.messages)
        memory._token_estimate = sum(message.token_estimate for message in snapshot.messages)
        logger.debug(f"Loaded {memory.message_count} messages from {path}")
        return memory

    def save(self, path: Path) -> None:
        """Overwrite ``path`` with the full message log, creating parent directories."""
        snapshot = MemorySnapshot(
            max_messages=self.max_messages,
            max_tokens=self.max_tokens,
            messages=list(self._messages),
        )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not write memory file {path}: {e}") from e
        logger.debug(f"Saved {self.message_count} messages to {path}")
