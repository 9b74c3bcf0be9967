"""Prompt construction for the first and follow-up iterations of the agent loop."""

from aigenda.agent.continuation import CONTINUATION_SIGNALS
from aigenda.services.memory import ConversationMemory
from aigenda.tools.registry import ToolsRegistry

TOOL_USAGE_FORMAT = """```json
{
    "tool": "tool_name",
    "action": "action_name",
    "parameters": {
        "param1": "value1"
    }
}
```"""

INITIAL_TEMPLATE = """You are a helpful AI assistant with access to various tools for managing notes and tasks. \
Your personality should be conversational, helpful, and clear about what you are doing.

{context}Available Tools:
{tools}

{recent_tools}Current User Request: {user_input}

## Chain of Thought Instructions:

You will work through this request step by step, potentially using multiple tools to complete the task. \
Think through your approach and execute tools as needed.

**Execution Pattern:**
1. **Analyze the request** and explain your understanding
2. **Plan your approach** - what steps will you take?
3. **Execute tools** as needed with JSON format
4. **If more actions are needed**, indicate this clearly in your response
5. **Continue until the task is complete**

**Tool Usage Format:**
{tool_format}

**Continuation Signals:**
If you need to continue with more actions after seeing tool results, include phrases like:
{signals}

**Conversational Style:**
- Be natural and explain your thinking process
- Show your reasoning for each step
- Explain what you're doing and why
- Continue until the user's request is fully satisfied

Start by analyzing the request and explaining your approach.
"""

CONTINUATION_TEMPLATE = """{context}

Available Tools:
{tools}

{recent_tools}## Continuation Context:

Original User Request: {original_request}

Execution History:
{execution_context}

## Continuation Instructions:

You are continuing to work on the user's original request. Based on what you've already done:

1. **Review** what has been accomplished so far
2. **Determine** if the original request is fully satisfied
3. **If more actions are needed**:
   - Explain what you need to do next
   - Execute the appropriate tools with JSON format
   - Use continuation signals like {inline_signals}, etc.
4. **If the task is complete**:
   - Provide a natural conclusion
   - Summarize what was accomplished
   - Don't include any tool JSON

**Tool Usage Format (if needed):**
{tool_format}

**Your Goal:** Complete the user's original request fully. Continue if more actions would be helpful.
"""


def recent_tools_hint(memory: ConversationMemory) -> str:
    """Return ``Recently used tools: a, b`` plus a newline, or an empty string."""
    recent = memory.recent_tool_usage()
    if not recent:
        return ""
    return f"Recently used tools: {', '.join(recent)}\n"


class PromptGenerator:
    """Builds the prompt sent to the model at each iteration."""

    def initial_prompt(self, user_input: str, memory: ConversationMemory, registry: ToolsRegistry) -> str:
        """Prompt for the first iteration of a command."""
        return INITIAL_TEMPLATE.format(
            context=memory.context(include_header=True),
            tools=registry.render_documentation(),
            recent_tools=recent_tools_hint(memory),
            user_input=user_input,
            tool_format=TOOL_USAGE_FORMAT,
            signals="\n".join(f'- "{signal}..."' for signal in CONTINUATION_SIGNALS),
        )

    def continuation_prompt(
        self,
        original_request: str,
        execution_context: str,
        memory: ConversationMemory,
        registry: ToolsRegistry,
    ) -> str:
        """Prompt for later iterations, carrying what has been done so far."""
        return CONTINUATION_TEMPLATE.format(
            context=memory.context(include_header=True),
            tools=registry.render_documentation(),
            recent_tools=recent_tools_hint(memory),
            original_request=original_request,
            execution_context=execution_context,
            tool_format=TOOL_USAGE_FORMAT,
            inline_signals=", ".join(f'"{signal}..."' for signal in CONTINUATION_SIGNALS[:3]),
        )
