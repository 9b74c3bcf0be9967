"""Externally contributed tools.

Tools defined here are picked up by ``discover_external_tools`` when the
registry is built. Third-party packages can also contribute tools through the
``aigenda.tools`` entry point group.
"""

from typing import Any

from aigenda.exceptions import ToolExecutionError
from aigenda.tools.base import Tool
from aigenda.tools.schema import (
    ActionSchema,
    NumberType,
    ParameterSchema,
    ReturnSchema,
    StringType,
    ToolCategory,
    ToolExample,
    ToolSchema,
    ValidationRule,
)
from aigenda.utils.logging import get_logger

logger = get_logger(__name__)

OPERATIONS = ("add", "subtract", "multiply", "divide")


class ExampleTool(Tool):
    """Demonstrates how an additional tool plugs into the registry."""

    @property
    def name(self) -> str:
        return "example"

    @property
    def description(self) -> str:
        return "An example tool demonstrating the extensible architecture"

    def schema(self) -> ToolSchema:
        return ToolSchema(
            name=self.name,
            description=self.description,
            category=ToolCategory.EXTERNAL,
            actions=[
                ActionSchema(
                    name="hello",
                    description="Say hello with a custom message",
                    parameters=[
                        ParameterSchema(
                            name="name", description="Name to greet", param_type=StringType(), default="World"
                        ),
                    ],
                    returns=ReturnSchema(description="Greeting message"),
                ),
                ActionSchema(
                    name="calculate",
                    description="Perform a simple calculation",
                    parameters=[
                        ParameterSchema(
                            name="operation",
                            description="Operation to perform",
                            param_type=StringType(),
                            required=True,
                            validation=ValidationRule(enum_values=list(OPERATIONS)),
                        ),
                        ParameterSchema(name="a", description="First number", param_type=NumberType(), required=True),
                        ParameterSchema(name="b", description="Second number", param_type=NumberType(), required=True),
                    ],
                    returns=ReturnSchema(
                        description="The calculation and its result",
                        possible_errors=["Division by zero", "Unknown operation"],
                    ),
                ),
            ],
            examples=[
                ToolExample(
                    description="Add two numbers",
                    user_request="what is 2 plus 3?",
                    tool_call={
                        "tool": "example",
                        "action": "calculate",
                        "parameters": {"operation": "add", "a": 2, "b": 3},
                    },
                    expected_result="2 add 3 = 5",
                ),
            ],
        )

    async def execute(self, action: str, parameters: Any) -> str:
        params = parameters if isinstance(parameters, dict) else {}

        match action:
            case "hello":
                name = params.get("name")
                return f"Hello, {name if isinstance(name, str) else 'World'}! This is from the example tool."
            case "calculate":
                return self._calculate(params)

        raise ToolExecutionError(self.name, f"Unknown action: {action}")

    def _calculate(self, params: dict[str, Any]) -> str:
        operation = params.get("operation")
        if not isinstance(operation, str):
            raise ToolExecutionError(self.name, "Missing operation")
        a = self._number(params, "a")
        b = self._number(params, "b")

        match operation:
            case "add":
                result = a + b
            case "subtract":
                result = a - b
            case "multiply":
                result = a * b
            case "divide":
                if b == 0:
                    raise ToolExecutionError(self.name, "Division by zero")
                result = a / b
            case _:
                raise ToolExecutionError(self.name, f"Unknown operation: {operation}")

        return f"{a:g} {operation} {b:g} = {result:g}"

    def _number(self, params: dict[str, Any], key: str) -> float:
        value = params.get(key)
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ToolExecutionError(self.name, f"Missing or invalid number '{key}'")
        return float(value)


def discover_external_tools(enable_example: bool = False) -> list[Tool]:
    """Return the external tools to register.

    Args:
        enable_example: Include the demonstration ``example`` tool
    """
    tools: list[Tool] = []
    if enable_example:
        tools.append(ExampleTool())
    logger.debug(f"Discovered {len(tools)} external tools")
    return tools
