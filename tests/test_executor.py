"""Tests for permission gates and the tool executor."""

import io
from typing import Any
from unittest.mock import Mock

import pytest
from rich.console import Console

from aigenda.agent.confirmation import (
    AutoApprove,
    AutoDeny,
    CallbackGate,
    ConsoleConfirmation,
    confirm_batch,
    format_parameters,
)
from aigenda.agent.executor import CANCELLED_ENTRY, ExecutionOutcome, ToolExecutor
from aigenda.agent.parsing import ParsedToolCall
from aigenda.agent.streaming import StreamingHandler
from aigenda.exceptions import ToolExecutionError, ToolNotFoundError
from aigenda.tools.base import Tool
from aigenda.tools.registry import ToolsRegistry
from aigenda.tools.schema import ActionSchema, ReturnSchema, ToolCategory, ToolSchema


def quiet_console() -> Console:
    return Console(file=io.StringIO(), width=120)


class EchoTool(Tool):
    """Records calls and echoes them back; the ``fail`` action raises."""

    def __init__(self):
        self.calls: list[tuple[str, Any]] = []

    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "Echo"

    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="echo",
            description="Echo",
            category=ToolCategory.SYSTEM,
            actions=[ActionSchema(name="say", description="Echo", returns=ReturnSchema(description="Echo"))],
        )

    async def execute(self, action: str, parameters: Any) -> str:
        self.calls.append((action, parameters))
        if action == "fail":
            raise ToolExecutionError(self.name, "boom")
        return f"echo {action}: {parameters}"


class RecordingHandler(StreamingHandler):
    """Streaming handler that records tool events."""

    def __init__(self):
        self.events: list[tuple] = []

    def on_tool_about_to_execute(self, tool: str, action: str, parameters: Any) -> None:
        self.events.append(("before", tool, action))

    def on_tool_executed(self, tool: str, action: str, result: str, success: bool) -> None:
        self.events.append(("after", tool, action, success))


@pytest.fixture
def echo_tool():
    """Create the echo tool."""
    return EchoTool()


@pytest.fixture
def registry(echo_tool):
    """Create a registry holding the echo tool."""
    registry = ToolsRegistry()
    registry.register(echo_tool)
    return registry


class TestPermissionGates:
    """Tests for the permission gate implementations."""

    @pytest.mark.parametrize("answer", ["y", "Y", "yes", " YES \n"])
    def test_console_approves(self, answer):
        """Test the answers that approve a call."""
        console = quiet_console()
        console.input = Mock(return_value=answer)
        assert ConsoleConfirmation(console).request_permission("notes", "read", None)

    @pytest.mark.parametrize("answer", ["", "n", "no", "yep", "sure"])
    def test_console_declines(self, answer):
        """Test that anything else declines."""
        console = quiet_console()
        console.input = Mock(return_value=answer)
        assert not ConsoleConfirmation(console).request_permission("notes", "read", None)

    def test_console_declines_on_eof(self):
        """Test that closed input declines."""
        console = quiet_console()
        console.input = Mock(side_effect=EOFError)
        assert not ConsoleConfirmation(console).request_permission("notes", "read", None)

    def test_console_prompt_text(self):
        """Test the confirmation prompt contents."""
        console = quiet_console()
        console.input = Mock(return_value="n")
        ConsoleConfirmation(console).request_permission("notes", "create", {"text": "hi"})

        output = console.file.getvalue()
        assert "🤖 AI Agent wants to execute a tool:" in output
        assert "   Tool: notes" in output
        assert "   Action: create" in output
        assert '"text": "hi"' in output
        console.input.assert_called_once_with("\nDo you want to proceed? [y/N]: ", markup=False)

    def test_format_parameters(self):
        """Test parameter formatting for the prompt."""
        assert format_parameters(None) == "none"
        assert format_parameters({"a": 1}) == '{\n  "a": 1\n}'

    def test_auto_gates(self):
        """Test the unconditional gates."""
        assert AutoApprove().request_permission("t", "a", None)
        assert not AutoDeny().request_permission("t", "a", None)

    def test_callback_gate(self):
        """Test that the callback gate delegates to its callable."""
        callback = Mock(return_value=True)
        assert CallbackGate(callback).request_permission("t", "a", {"x": 1})
        callback.assert_called_once_with("t", "a", {"x": 1})

    def test_confirm_batch(self):
        """Test that a batch asks about every call in order and announces each."""
        console = quiet_console()
        gate = CallbackGate(lambda tool, action, params: action != "b")
        calls = [ParsedToolCall("echo", "a"), ParsedToolCall("echo", "b"), ParsedToolCall("echo", "c")]

        assert confirm_batch(gate, calls, console) == [True, False, True]

        output = console.file.getvalue()
        assert "--- Tool 1 of 3 ---" in output
        assert "--- Tool 3 of 3 ---" in output
        assert output.count("✅ Tool execution approved.") == 2
        assert output.count("❌ Tool execution cancelled by user.") == 1


class TestToolExecutor:
    """Tests for executing tool calls from a reply."""

    @pytest.mark.asyncio
    async def test_no_calls(self, registry):
        """Test that a reply without calls produces an empty outcome."""
        executor = ToolExecutor(gate=AutoApprove(), console=quiet_console())
        outcome = await executor.execute("Nothing to do.", registry)
        assert outcome == ExecutionOutcome()

    @pytest.mark.asyncio
    async def test_approved_calls(self, registry, echo_tool):
        """Test that approved calls run in order and produce records."""
        executor = ToolExecutor(gate=AutoApprove(), console=quiet_console())
        reply = '{"tool": "echo", "action": "one"} then {"tool": "echo", "action": "two", "parameters": {"x": 1}}'

        outcome = await executor.execute(reply, registry)

        assert echo_tool.calls == [("one", None), ("two", {"x": 1})]
        assert [c.action for c in outcome.calls] == ["one", "two"]
        assert [r.success for r in outcome.results] == [True, True]
        assert [r.call_id for r in outcome.results] == [c.id for c in outcome.calls]
        assert outcome.transcript == "echo one: None\necho two: {'x': 1}"

    @pytest.mark.asyncio
    async def test_call_ids_unique(self, registry):
        """Test that every dispatched call gets its own id."""
        executor = ToolExecutor(gate=AutoApprove(), console=quiet_console())
        outcome = await executor.execute('{"tool": "echo", "action": "a"} {"tool": "echo", "action": "a"}', registry)
        assert len({c.id for c in outcome.calls}) == 2

    @pytest.mark.asyncio
    async def test_declined_calls(self, registry, echo_tool):
        """Test that declined calls leave only a cancellation entry."""
        executor = ToolExecutor(gate=AutoDeny(), console=quiet_console())

        outcome = await executor.execute('{"tool": "echo", "action": "one"}', registry)

        assert echo_tool.calls == []
        assert outcome.calls == []
        assert outcome.results == []
        assert outcome.transcript == CANCELLED_ENTRY

    @pytest.mark.asyncio
    async def test_mixed_decisions(self, registry):
        """Test that transcript entries follow call order for mixed decisions."""
        gate = CallbackGate(lambda tool, action, params: action == "yes")
        executor = ToolExecutor(gate=gate, console=quiet_console())
        reply = '{"tool": "echo", "action": "no"} {"tool": "echo", "action": "yes"}'

        outcome = await executor.execute(reply, registry)

        assert outcome.transcript == f"{CANCELLED_ENTRY}\necho yes: None"
        assert len(outcome.calls) == 1

    @pytest.mark.asyncio
    async def test_tool_failure_is_recorded(self, registry, echo_tool):
        """Test that a failing call is recorded and later calls still run."""
        executor = ToolExecutor(gate=AutoApprove(), console=quiet_console())
        reply = '{"tool": "echo", "action": "fail"} {"tool": "echo", "action": "after"}'

        outcome = await executor.execute(reply, registry)

        assert [r.success for r in outcome.results] == [False, True]
        assert outcome.results[0].result == "Error: boom"
        assert outcome.transcript.splitlines()[0] == "Error: boom"
        assert echo_tool.calls[-1] == ("after", None)

    @pytest.mark.asyncio
    async def test_unknown_tool_aborts(self, registry, echo_tool):
        """Test that an approved call to an unregistered tool raises."""
        executor = ToolExecutor(gate=AutoApprove(), console=quiet_console())
        reply = '{"tool": "calendar", "action": "list"} {"tool": "echo", "action": "later"}'

        with pytest.raises(ToolNotFoundError, match="Unknown tool: calendar"):
            await executor.execute(reply, registry)
        assert echo_tool.calls == []

    @pytest.mark.asyncio
    async def test_declined_unknown_tool_is_not_looked_up(self, registry):
        """Test that declining a call to an unknown tool does not fail."""
        executor = ToolExecutor(gate=AutoDeny(), console=quiet_console())
        outcome = await executor.execute('{"tool": "calendar", "action": "list"}', registry)
        assert outcome.transcript == CANCELLED_ENTRY

    @pytest.mark.asyncio
    async def test_batch_asks_before_running(self, registry, echo_tool):
        """Test that batch mode collects every decision before any call runs."""
        order: list[str] = []

        def gate(tool, action, params):
            order.append(f"ask {action} (ran {len(echo_tool.calls)})")
            return True

        executor = ToolExecutor(gate=CallbackGate(gate), confirmation_mode="batch", console=quiet_console())
        await executor.execute('{"tool": "echo", "action": "a"} {"tool": "echo", "action": "b"}', registry)

        assert order == ["ask a (ran 0)", "ask b (ran 0)"]

    @pytest.mark.asyncio
    async def test_per_call_asks_just_in_time(self, registry, echo_tool):
        """Test that per-call mode asks right before each call runs."""
        order: list[str] = []

        def gate(tool, action, params):
            order.append(f"ask {action} (ran {len(echo_tool.calls)})")
            return True

        executor = ToolExecutor(gate=CallbackGate(gate), confirmation_mode="per_call")
        await executor.execute('{"tool": "echo", "action": "a"} {"tool": "echo", "action": "b"}', registry)

        assert order == ["ask a (ran 0)", "ask b (ran 1)"]

    @pytest.mark.asyncio
    async def test_handler_notified(self, registry):
        """Test that the streaming handler wraps every dispatched call."""
        handler = RecordingHandler()
        executor = ToolExecutor(gate=AutoApprove(), handler=handler, console=quiet_console())

        await executor.execute('{"tool": "echo", "action": "a"} {"tool": "echo", "action": "fail"}', registry)

        assert handler.events == [
            ("before", "echo", "a"),
            ("after", "echo", "a", True),
            ("before", "echo", "fail"),
            ("after", "echo", "fail", False),
        ]

    def test_invalid_confirmation_mode(self):
        """Test that unknown confirmation modes are rejected."""
        with pytest.raises(ValueError, match="Unknown confirmation mode"):
            ToolExecutor(gate=AutoApprove(), confirmation_mode="sometimes")
