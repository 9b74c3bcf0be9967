"""Tests for tool schemas, the registry and tool discovery."""

from typing import Any
from unittest.mock import Mock, patch

import pytest
from pydantic import ValidationError

from aigenda.exceptions import ToolExecutionError, ToolNotFoundError, ToolRegistrationError
from aigenda.services.storage import InMemoryStorage
from aigenda.tools.base import Tool
from aigenda.tools.external import ExampleTool, discover_external_tools
from aigenda.tools.notes import NotesTool
from aigenda.tools.registry import ToolsRegistry, build_default_registry, load_entry_point_tools
from aigenda.tools.schema import (
    ActionSchema,
    ArrayType,
    BooleanType,
    DateTimeType,
    DateType,
    IntegerType,
    NumberType,
    ObjectType,
    ParameterSchema,
    ReturnSchema,
    StringType,
    ToolCategory,
    ToolSchema,
    ValidationRule,
    format_parameter_type,
)


class SystemTool(Tool):
    """Minimal tool used to exercise category grouping."""

    @property
    def name(self) -> str:
        return "clock"

    @property
    def description(self) -> str:
        return "Tells the time"

    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="clock",
            description="Tells the time",
            category=ToolCategory.SYSTEM,
            actions=[ActionSchema(name="now", description="Current time", returns=ReturnSchema(description="Time"))],
        )

    async def execute(self, action: str, parameters: Any) -> str:
        return "12:00"


class TestParameterTypes:
    """Tests for parameter type rendering."""

    @pytest.mark.parametrize(
        ("param_type", "expected"),
        [
            (StringType(), "string"),
            (StringType(max_length=5000), "string(max: 5000)"),
            (IntegerType(min=1, max=100), "integer(1-100)"),
            (IntegerType(min=1), "integer(min: 1)"),
            (NumberType(max=2.5), "number(max: 2.5)"),
            (NumberType(), "number"),
            (BooleanType(), "boolean"),
            (ArrayType(item_type=DateType()), "array<date (YYYY-MM-DD)>"),
            (ObjectType(), "object"),
            (DateTimeType(), "datetime (ISO 8601)"),
        ],
    )
    def test_format(self, param_type, expected):
        """Test the prompt rendering of each parameter type."""
        assert format_parameter_type(param_type) == expected

    def test_parameter_type_discriminator(self):
        """Test that parameter types validate from their tagged form."""
        param = ParameterSchema.model_validate(
            {"name": "tags", "description": "Tags", "param_type": {"kind": "array", "item_type": {"kind": "string"}}}
        )
        assert param.param_type == ArrayType(item_type=StringType())

    def test_schemas_are_frozen(self):
        """Test that schemas cannot be mutated after construction."""
        param = ParameterSchema(name="a", description="b", param_type=StringType())
        with pytest.raises(ValidationError):
            param.name = "changed"


class TestToolSchemaPrompt:
    """Tests for rendering a tool schema into prompt documentation."""

    def test_notes_schema_rendering(self):
        """Test that the notes documentation carries actions, parameters, defaults and examples."""
        text = NotesTool(InMemoryStorage()).schema().to_prompt_format()

        assert text.startswith("### notes Tool (Internal CRUD)\n")
        assert "- `create`: Add a new note to today's log or a specific date" in text
        assert "  - `text` (string(max: 5000)): The content of the note **(required)**" in text
        assert "  - `date` (date (YYYY-MM-DD)): Date in YYYY-MM-DD format for the note (optional)" in text
        assert '    Default: `"today"`' in text
        assert "    Default: `10`" in text
        assert "  - `limit` (integer(1-100))" in text
        assert "  Returns: string - Confirmation message with the date the note was added" in text
        assert "  Possible errors: Note not found, Invalid date format, Invalid index" in text
        assert "**Examples**:" in text
        assert '  User: "show me today\'s notes"' in text
        assert '  Result: "Note 1 updated successfully for 2025-09-28"' in text

    def test_validation_hints(self):
        """Test rendering of pattern, allowed values and custom validation hints."""
        schema = ToolSchema(
            name="t",
            description="d",
            category=ToolCategory.EXTERNAL,
            actions=[
                ActionSchema(
                    name="a",
                    description="b",
                    parameters=[
                        ParameterSchema(
                            name="op",
                            description="Operation",
                            param_type=StringType(),
                            required=True,
                            validation=ValidationRule(
                                pattern="^[a-z]+$", enum_values=["add", "sub"], custom="lowercase only"
                            ),
                        )
                    ],
                    returns=ReturnSchema(description="r"),
                )
            ],
        )
        text = schema.to_prompt_format()

        assert "### t Tool (External API)" in text
        assert "    Pattern: `^[a-z]+$`" in text
        assert '    Allowed values: ["add", "sub"]' in text
        assert "    Validation: lowercase only" in text

    def test_action_lookup(self):
        """Test finding an action by name."""
        schema = NotesTool(InMemoryStorage()).schema()
        assert schema.action("update").name == "update"
        assert schema.action("archive") is None


class TestToolsRegistry:
    """Tests for the tool registry."""

    def test_register_and_get(self):
        """Test that registered tools are found by name."""
        registry = ToolsRegistry()
        tool = NotesTool(InMemoryStorage())
        registry.register(tool)

        assert registry.get("notes") is tool
        assert registry.has_tool("notes")
        assert registry.list() == ["notes"]
        assert len(registry) == 1

    def test_get_unknown_raises(self):
        """Test that looking up an unregistered tool fails."""
        with pytest.raises(ToolNotFoundError, match="Unknown tool: calendar") as exc_info:
            ToolsRegistry().get("calendar")
        assert exc_info.value.tool_name == "calendar"

    def test_register_overwrites(self):
        """Test that registering the same name replaces the earlier tool."""
        registry = ToolsRegistry()
        first, second = NotesTool(InMemoryStorage()), NotesTool(InMemoryStorage())
        registry.register(first)
        registry.register(second)

        assert registry.get("notes") is second
        assert registry.list() == ["notes"]

    def test_documentation_grouped_by_category(self):
        """Test that documentation lists Internal, then External, then System tools."""
        registry = ToolsRegistry()
        registry.register(SystemTool())
        registry.register(ExampleTool())
        registry.register(NotesTool(InMemoryStorage()))

        text = registry.render_documentation()
        internal = text.index("## Internal CRUD Tools")
        external = text.index("## External API Tools")
        system = text.index("## System Tools")
        assert internal < text.index("### notes Tool") < external
        assert external < text.index("### example Tool") < system
        assert system < text.index("### clock Tool")

    def test_documentation_skips_empty_categories(self):
        """Test that categories without tools are not rendered."""
        registry = ToolsRegistry()
        registry.register(NotesTool(InMemoryStorage()))
        text = registry.render_documentation()

        assert "## External API Tools" not in text
        assert "## System Tools" not in text

    def test_summary_and_schemas(self):
        """Test the compact listing and the per-tool schema list."""
        registry = ToolsRegistry()
        registry.register(NotesTool(InMemoryStorage()))
        registry.register(ExampleTool())

        summary = registry.render_summary()
        assert "## notes Tool" in summary
        assert "- create: Add a new note to today's log or a specific date" in summary
        assert "    - text (string(max: 5000)): The content of the note (required)" in summary

        schemas = registry.schemas()
        assert len(schemas) == 2
        assert schemas[1].startswith("### example Tool (External API)")


class TestDiscovery:
    """Tests for building the default registry."""

    def test_default_registry_has_notes_only(self):
        """Test that only the notes tool is registered by default."""
        with patch("aigenda.tools.registry.entry_points", return_value=[]):
            registry = build_default_registry(InMemoryStorage())
        assert registry.list() == ["notes"]

    def test_example_tool_opt_in(self):
        """Test that the example tool is registered when enabled."""
        registry = build_default_registry(InMemoryStorage(), enable_example_tool=True, load_entry_points=False)
        assert registry.list() == ["notes", "example"]

    def test_discover_external_tools(self):
        """Test the external discovery hook."""
        assert discover_external_tools() == []
        assert [t.name for t in discover_external_tools(enable_example=True)] == ["example"]

    def test_entry_point_tools_loaded(self):
        """Test that entry point factories are instantiated and registered."""
        entry_point = Mock()
        entry_point.name = "clock"
        entry_point.value = "clock_pkg:SystemTool"
        entry_point.load.return_value = SystemTool

        with patch("aigenda.tools.registry.entry_points", return_value=[entry_point]) as mock_entry_points:
            registry = build_default_registry(InMemoryStorage())

        mock_entry_points.assert_called_once_with(group="aigenda.tools")
        assert registry.list() == ["notes", "clock"]

    def test_entry_point_failure_aborts(self):
        """Test that a failing entry point raises a registration error."""
        entry_point = Mock()
        entry_point.name = "broken"
        entry_point.load.side_effect = ImportError("no module named broken_pkg")

        with patch("aigenda.tools.registry.entry_points", return_value=[entry_point]):
            with pytest.raises(ToolRegistrationError, match="Failed to register tool 'broken'"):
                build_default_registry(InMemoryStorage())

    def test_entry_point_must_return_tool(self):
        """Test that entry points resolving to non-tools are rejected."""
        entry_point = Mock()
        entry_point.name = "odd"
        entry_point.load.return_value = lambda: "not a tool"

        with patch("aigenda.tools.registry.entry_points", return_value=[entry_point]):
            with pytest.raises(ToolRegistrationError, match="expected a Tool"):
                load_entry_point_tools()


class TestExampleTool:
    """Tests for the example external tool."""

    @pytest.mark.asyncio
    async def test_hello(self):
        """Test greeting with and without a name."""
        tool = ExampleTool()
        assert await tool.execute("hello", {"name": "Ada"}) == "Hello, Ada! This is from the example tool."
        assert await tool.execute("hello", None) == "Hello, World! This is from the example tool."

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("operation", "expected"),
        [("add", "6 add 3 = 9"), ("subtract", "6 subtract 3 = 3"), ("multiply", "6 multiply 3 = 18"),
         ("divide", "6 divide 3 = 2")],
    )
    async def test_calculate(self, operation, expected):
        """Test each supported operation."""
        result = await ExampleTool().execute("calculate", {"operation": operation, "a": 6, "b": 3})
        assert result == expected

    @pytest.mark.asyncio
    async def test_division_by_zero(self):
        """Test that dividing by zero is a tool error."""
        with pytest.raises(ToolExecutionError, match="Division by zero"):
            await ExampleTool().execute("calculate", {"operation": "divide", "a": 1, "b": 0})

    @pytest.mark.asyncio
    async def test_invalid_inputs(self):
        """Test unknown operations, bad numbers and unknown actions."""
        tool = ExampleTool()
        with pytest.raises(ToolExecutionError, match="Unknown operation: pow"):
            await tool.execute("calculate", {"operation": "pow", "a": 1, "b": 2})
        with pytest.raises(ToolExecutionError, match="Missing or invalid number 'b'"):
            await tool.execute("calculate", {"operation": "add", "a": 1, "b": "2"})
        with pytest.raises(ToolExecutionError, match="Unknown action: wave"):
            await tool.execute("wave", {})
