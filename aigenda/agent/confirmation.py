"""Permission gates deciding whether a tool call may run."""

import json
from collections.abc import Callable, Sequence
from typing import Any, Protocol

from rich.console import Console

from aigenda.agent.parsing import ParsedToolCall
from aigenda.utils.logging import get_logger

logger = get_logger(__name__)

APPROVE_ANSWERS = {"y", "yes"}


class PermissionGate(Protocol):
    """Decides whether a single tool call may be executed."""

    def request_permission(self, tool: str, action: str, parameters: Any) -> bool:
        """Return True to run the call, False to skip it."""
        ...


def format_parameters(parameters: Any) -> str:
    """Pretty-print call parameters, or ``none`` when there are none."""
    if parameters is None:
        return "none"
    try:
        return json.dumps(parameters, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(parameters)


class ConsoleConfirmation:
    """Asks the user on the console before every tool call.

    Only ``y`` or ``yes`` (case-insensitive, surrounding whitespace ignored)
    approves; anything else, including an empty answer, declines.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def request_permission(self, tool: str, action: str, parameters: Any) -> bool:
        self.console.print("\n🤖 AI Agent wants to execute a tool:", markup=False)
        self.console.print(f"   Tool: {tool}", markup=False, highlight=False)
        self.console.print(f"   Action: {action}", markup=False, highlight=False)
        self.console.print(f"   Parameters: {format_parameters(parameters)}", markup=False, highlight=False)

        try:
            answer = self.console.input("\nDo you want to proceed? [y/N]: ", markup=False)
        except EOFError:
            logger.debug("No input available for confirmation, declining")
            return False
        return answer.strip().lower() in APPROVE_ANSWERS


class AutoApprove:
    """Approves every call without asking."""

    def request_permission(self, tool: str, action: str, parameters: Any) -> bool:
        logger.debug(f"Auto-approving {tool}.{action}")
        return True


class AutoDeny:
    """Declines every call without asking."""

    def request_permission(self, tool: str, action: str, parameters: Any) -> bool:
        logger.debug(f"Auto-denying {tool}.{action}")
        return False


class CallbackGate:
    """Delegates the decision to a plain callable ``(tool, action, parameters) -> bool``."""

    def __init__(self, callback: Callable[[str, str, Any], bool]):
        self.callback = callback

    def request_permission(self, tool: str, action: str, parameters: Any) -> bool:
        return bool(self.callback(tool, action, parameters))


def confirm_batch(
    gate: PermissionGate, calls: Sequence[ParsedToolCall], console: Console | None = None
) -> list[bool]:
    """Ask ``gate`` about each call in order, announcing progress on ``console``.

    Returns:
        One decision per call, in the same order
    """
    console = console or Console()
    decisions: list[bool] = []

    for i, call in enumerate(calls, start=1):
        console.print(f"\n--- Tool {i} of {len(calls)} ---", markup=False, highlight=False)
        approved = gate.request_permission(call.tool, call.action, call.parameters)
        decisions.append(approved)

        if approved:
            console.print("✅ Tool execution approved.", markup=False)
        else:
            console.print("❌ Tool execution cancelled by user.", markup=False)

    return decisions
