"""Agent orchestrating the prompt, reply, tools, memory and continuation loop."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from cuid2 import cuid_wrapper

from aigenda.agent.continuation import should_continue
from aigenda.agent.executor import ToolExecutor
from aigenda.agent.prompts import PromptGenerator
from aigenda.agent.streaming import NullStreamingHandler, StreamingHandler
from aigenda.config import DEFAULT_MAX_ITERATIONS
from aigenda.exceptions import ConfigurationError
from aigenda.services.memory import ConversationMemory
from aigenda.tools.registry import ToolsRegistry
from aigenda.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

ITERATION_SEPARATOR = "\n\n---\n\n"
TOOL_RESULTS_HEADER = "\n\n**Tool Results:**\n"


class ChatClient(Protocol):
    """Anything that turns a prompt into a reply."""

    async def chat(self, prompt: str) -> str: ...


@dataclass
class MemoryStats:
    """Size of the agent's conversation memory."""

    message_count: int
    token_estimate: int


@dataclass
class IterationResult:
    """What one pass through the loop produced."""

    text: str
    should_continue: bool


class Agent:
    """Runs natural-language commands against the registered tools.

    Each command is a bounded chain of iterations. An iteration sends a prompt
    to the model, executes the tool calls in the reply and records both in
    memory. The chain continues only while the reply executed tools and
    announced further work.
    """

    def __init__(
        self,
        registry: ToolsRegistry,
        memory: ConversationMemory,
        client: ChatClient | None,
        memory_path: Path,
        executor: ToolExecutor | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        prompt_generator: PromptGenerator | None = None,
    ):
        """Initialize the agent.

        Args:
            registry: Tools the model may call
            memory: Conversation memory, already loaded
            client: Model collaborator; commands fail without one
            memory_path: File memory is saved to after every command
            executor: Tool executor (defaults to console confirmation)
            max_iterations: Upper bound on iterations per command
            prompt_generator: Prompt builder
        """
        self.registry = registry
        self.memory = memory
        self.client = client
        self.memory_path = memory_path
        self.executor = executor or ToolExecutor()
        self.max_iterations = max_iterations
        self.prompt_generator = prompt_generator or PromptGenerator()
        self.session_id = cuid()

    async def execute_command(self, user_input: str, handler: StreamingHandler | None = None) -> str:
        """Run one command through the iteration chain.

        Returns:
            The iteration results joined by a ``---`` separator

        Raises:
            ConfigurationError: If no model client is configured
            LLMError: If the model call fails
            ToolNotFoundError: If the model calls an unregistered tool
        """
        if self.client is None:
            raise ConfigurationError("Claude client not configured")

        handler = handler or NullStreamingHandler()
        logger.info(f"[{self.session_id}] Executing command: {user_input[:80]}")
        self.memory.add_user(user_input)

        results: list[str] = []
        execution_context = ""

        for iteration in range(1, self.max_iterations + 1):
            handler.on_iteration_start(iteration)

            if iteration == 1:
                prompt = self.prompt_generator.initial_prompt(user_input, self.memory, self.registry)
            else:
                prompt = self.prompt_generator.continuation_prompt(
                    user_input, execution_context, self.memory, self.registry
                )

            outcome = await self._run_iteration(prompt, handler)
            handler.on_iteration_end(iteration, outcome.text)
            results.append(outcome.text)

            if not outcome.should_continue:
                logger.debug(f"Chain finished after {iteration} iterations")
                break
            execution_context += f"\nIteration {iteration}:\n{outcome.text}\n"
        else:
            logger.warning(f"Chain reached max iterations ({self.max_iterations})")

        self.memory.save(self.memory_path)
        return ITERATION_SEPARATOR.join(results)

    async def _run_iteration(self, prompt: str, handler: StreamingHandler) -> IterationResult:
        reply = await self.client.chat(prompt)
        handler.on_llm_response(reply)

        outcome = await self.executor.execute(reply, self.registry, handler)

        text = reply
        if outcome.transcript:
            text += TOOL_RESULTS_HEADER + outcome.transcript

        self.memory.add_assistant(reply, outcome.calls)
        if outcome.results:
            self.memory.attach_results(outcome.results)

        return IterationResult(text=text, should_continue=bool(outcome.transcript) and should_continue(reply))

    def list_available_tools(self) -> list[str]:
        return self.registry.list()

    def conversation_history(self) -> str:
        return self.memory.context(include_header=False)

    def clear_memory(self) -> None:
        self.memory.clear()

    def memory_stats(self) -> MemoryStats:
        return MemoryStats(message_count=self.memory.message_count, token_estimate=self.memory.token_estimate)

    def tool_schemas(self) -> list[str]:
        return self.registry.schemas()
