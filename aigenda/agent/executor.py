"""Dispatch of tool calls found in model replies."""

import time
from dataclasses import dataclass, field
from typing import Literal

from cuid2 import cuid_wrapper
from rich.console import Console

from aigenda.agent.confirmation import ConsoleConfirmation, PermissionGate, confirm_batch
from aigenda.agent.parsing import ParsedToolCall, parse_tool_calls
from aigenda.agent.streaming import NullStreamingHandler, StreamingHandler
from aigenda.models.memory import ToolCall, ToolResult
from aigenda.tools.registry import ToolsRegistry
from aigenda.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

CANCELLED_ENTRY = "Tool execution cancelled by user."

ConfirmationMode = Literal["batch", "per_call"]


@dataclass
class ExecutionOutcome:
    """Calls executed for one reply, their results, and the combined transcript."""

    calls: list[ToolCall] = field(default_factory=list)
    results: list[ToolResult] = field(default_factory=list)
    transcript: str = ""


class ToolExecutor:
    """Parses tool calls out of a reply, asks for permission and runs them in order."""

    def __init__(
        self,
        gate: PermissionGate | None = None,
        handler: StreamingHandler | None = None,
        confirmation_mode: ConfirmationMode = "batch",
        console: Console | None = None,
    ):
        """Initialize the executor.

        Args:
            gate: Decides whether each call may run (defaults to asking on the console)
            handler: Receives before/after notifications for every dispatched call
            confirmation_mode: ``"batch"`` asks about every call before running any,
                ``"per_call"`` asks right before each call runs
            console: Console used for batch confirmation progress
        """
        if confirmation_mode not in ("batch", "per_call"):
            raise ValueError(f"Unknown confirmation mode: {confirmation_mode}")
        self.gate = gate or ConsoleConfirmation(console)
        self.handler = handler or NullStreamingHandler()
        self.confirmation_mode = confirmation_mode
        self.console = console

    async def execute(
        self, text: str, registry: ToolsRegistry, handler: StreamingHandler | None = None
    ) -> ExecutionOutcome:
        """Execute every tool call embedded in ``text``.

        Declined calls leave a cancellation entry in the transcript and no
        records. Failures raised by a tool are recorded as unsuccessful results
        and do not stop the remaining calls.

        Raises:
            ToolNotFoundError: If an approved call names an unregistered tool
        """
        handler = handler or self.handler
        parsed = parse_tool_calls(text)
        if not parsed:
            return ExecutionOutcome()

        logger.info(f"Found {len(parsed)} tool calls in reply")

        if self.confirmation_mode == "batch":
            decisions = confirm_batch(self.gate, parsed, self.console)
        else:
            decisions = [None] * len(parsed)

        outcome = ExecutionOutcome()
        entries: list[str] = []

        for call, decision in zip(parsed, decisions, strict=True):
            approved = decision
            if approved is None:
                approved = self.gate.request_permission(call.tool, call.action, call.parameters)

            if not approved:
                logger.info(f"Tool call {call.tool}.{call.action} declined")
                entries.append(CANCELLED_ENTRY)
                continue

            tool_call, tool_result = await self._execute_single(call, registry, handler)
            outcome.calls.append(tool_call)
            outcome.results.append(tool_result)
            entries.append(tool_result.result)

        outcome.transcript = "\n".join(entries)
        return outcome

    async def _execute_single(
        self, call: ParsedToolCall, registry: ToolsRegistry, handler: StreamingHandler
    ) -> tuple[ToolCall, ToolResult]:
        tool = registry.get(call.tool)
        call_id = cuid()
        tool_call = ToolCall(id=call_id, tool_name=call.tool, action=call.action, parameters=call.parameters)

        handler.on_tool_about_to_execute(call.tool, call.action, call.parameters)
        start = time.perf_counter()
        try:
            result = await tool.execute(call.action, call.parameters)
            success = True
            logger.debug(f"Tool {call.tool}.{call.action} succeeded: {result[:100]}")
        except Exception as e:
            result = f"Error: {e}"
            success = False
            logger.error(f"Tool {call.tool}.{call.action} failed: {e}")
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        handler.on_tool_executed(call.tool, call.action, result, success)

        tool_result = ToolResult(
            call_id=call_id,
            tool_name=call.tool,
            action=call.action,
            result=result,
            success=success,
            execution_time_ms=elapsed_ms,
        )
        return tool_call, tool_result
