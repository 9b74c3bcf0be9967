"""Extraction of tool-call JSON embedded in free-form model replies."""

import json
from dataclasses import dataclass
from typing import Any

from aigenda.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ParsedToolCall:
    """A validated ``{"tool", "action", "parameters"}`` record taken from a reply."""

    tool: str
    action: str
    parameters: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"tool": self.tool, "action": self.action, "parameters": self.parameters}


def extract_json_objects(text: str) -> list[str]:
    """Return every top-level brace-balanced substring of ``text``, in order.

    Braces inside JSON string literals are ignored, and a backslash inside a
    string escapes the next character. A ``}`` with no open brace is skipped
    and an unterminated ``{`` at the end yields nothing. The candidates are
    not validated as JSON.
    """
    candidates: list[str] = []
    depth = 0
    start: int | None = None
    in_string = False
    escape_next = False

    for i, ch in enumerate(text):
        if escape_next:
            escape_next = False
            continue

        if ch == "\\" and in_string:
            escape_next = True
        elif ch == '"':
            in_string = not in_string
        elif ch == "{" and not in_string:
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and not in_string and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                candidates.append(text[start : i + 1])
                start = None

    return candidates


def extract_first_json(text: str) -> str | None:
    """Return the first candidate found by ``extract_json_objects``, if any."""
    candidates = extract_json_objects(text)
    return candidates[0] if candidates else None


def is_valid_tool_call(obj: Any) -> bool:
    """Check that ``obj`` is a JSON object with string ``tool`` and ``action`` fields."""
    return isinstance(obj, dict) and isinstance(obj.get("tool"), str) and isinstance(obj.get("action"), str)


def parse_candidate(candidate: str) -> list[ParsedToolCall]:
    """Parse one candidate as a tool-call object, or else as an array of them.

    Malformed JSON and objects that are not tool calls produce no records.
    """
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.debug(f"Discarding malformed JSON candidate ({e}): {candidate[:80]}")
        return []

    if isinstance(value, dict):
        members = [value]
    elif isinstance(value, list):
        members = value
    else:
        return []

    return [
        ParsedToolCall(tool=obj["tool"], action=obj["action"], parameters=obj.get("parameters"))
        for obj in members
        if is_valid_tool_call(obj)
    ]


def parse_tool_calls(text: str) -> list[ParsedToolCall]:
    """Return every valid tool call in ``text``, in source order."""
    calls: list[ParsedToolCall] = []
    for candidate in extract_json_objects(text):
        calls.extend(parse_candidate(candidate))
    if calls:
        logger.debug(f"Parsed {len(calls)} tool calls: {', '.join(f'{c.tool}.{c.action}' for c in calls)}")
    return calls
