"""Declarative tool schemas and their prompt rendering."""

import json
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ToolCategory(StrEnum):
    """Where a tool's side effects land."""

    INTERNAL = "internal"  # CRUD on local data
    EXTERNAL = "external"  # calls to external services
    SYSTEM = "system"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    ToolCategory.INTERNAL: "Internal CRUD",
    ToolCategory.EXTERNAL: "External API",
    ToolCategory.SYSTEM: "System",
}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class StringType(_Frozen):
    kind: Literal["string"] = "string"
    max_length: int | None = None


class NumberType(_Frozen):
    kind: Literal["number"] = "number"
    min: float | None = None
    max: float | None = None


class IntegerType(_Frozen):
    kind: Literal["integer"] = "integer"
    min: int | None = None
    max: int | None = None


class BooleanType(_Frozen):
    kind: Literal["boolean"] = "boolean"


class ArrayType(_Frozen):
    kind: Literal["array"] = "array"
    item_type: "ParameterType"


class ObjectType(_Frozen):
    kind: Literal["object"] = "object"
    properties: list["ParameterSchema"] = Field(default_factory=list)


class DateType(_Frozen):
    kind: Literal["date"] = "date"


class DateTimeType(_Frozen):
    kind: Literal["datetime"] = "datetime"


ParameterType = Annotated[
    StringType | NumberType | IntegerType | BooleanType | ArrayType | ObjectType | DateType | DateTimeType,
    Field(discriminator="kind"),
]


class ValidationRule(_Frozen):
    """Hints about acceptable values; enforcement is up to the tool."""

    pattern: str | None = None
    enum_values: list[Any] | None = None
    custom: str | None = None


class ParameterSchema(_Frozen):
    name: str
    description: str
    param_type: ParameterType
    required: bool = False
    default: Any = None
    validation: ValidationRule | None = None


class ReturnSchema(_Frozen):
    description: str
    return_type: ParameterType = StringType()
    possible_errors: list[str] = Field(default_factory=list)


class ActionSchema(_Frozen):
    name: str
    description: str
    parameters: list[ParameterSchema] = Field(default_factory=list)
    returns: ReturnSchema


class ToolExample(_Frozen):
    description: str
    user_request: str
    tool_call: dict[str, Any]
    expected_result: str


class ToolSchema(_Frozen):
    """Everything the model needs to know to call a tool."""

    name: str
    description: str
    category: ToolCategory
    actions: list[ActionSchema]
    examples: list[ToolExample] = Field(default_factory=list)

    def action(self, name: str) -> ActionSchema | None:
        """Look up an action by name."""
        return next((action for action in self.actions if action.name == name), None)

    def to_prompt_format(self) -> str:
        """Render the schema as a markdown block for inclusion in a prompt."""
        lines = [
            f"### {self.name} Tool ({self.category.label})",
            f"**Description**: {self.description}",
            "",
            "**Available Actions**:",
        ]

        for action in self.actions:
            lines.append(f"- `{action.name}`: {action.description}")

            if action.parameters:
                lines.append("  Parameters:")
                for param in action.parameters:
                    required = " **(required)**" if param.required else " (optional)"
                    lines.append(
                        f"  - `{param.name}` ({format_parameter_type(param.param_type)}): "
                        f"{param.description}{required}"
                    )
                    if param.default is not None:
                        lines.append(f"    Default: `{json.dumps(param.default)}`")
                    if param.validation:
                        if param.validation.pattern:
                            lines.append(f"    Pattern: `{param.validation.pattern}`")
                        if param.validation.enum_values:
                            allowed = ", ".join(json.dumps(v) for v in param.validation.enum_values)
                            lines.append(f"    Allowed values: [{allowed}]")
                        if param.validation.custom:
                            lines.append(f"    Validation: {param.validation.custom}")

            lines.append(
                f"  Returns: {format_parameter_type(action.returns.return_type)} - {action.returns.description}"
            )
            if action.returns.possible_errors:
                lines.append(f"  Possible errors: {', '.join(action.returns.possible_errors)}")
            lines.append("")

        if self.examples:
            lines.append("**Examples**:")
            for example in self.examples:
                lines.append(f"- {example.description}")
                lines.append(f'  User: "{example.user_request}"')
                lines.append(f"  Tool call: `{json.dumps(example.tool_call)}`")
                lines.append(f'  Result: "{example.expected_result}"')
                lines.append("")

        return "\n".join(lines) + "\n"


def _format_range(name: str, low: float | None, high: float | None) -> str:
    if low is not None and high is not None:
        return f"{name}({low}-{high})"
    if low is not None:
        return f"{name}(min: {low})"
    if high is not None:
        return f"{name}(max: {high})"
    return name


def format_parameter_type(param_type: ParameterType) -> str:
    """Render a parameter type the way the prompt documentation shows it."""
    match param_type:
        case StringType(max_length=None):
            return "string"
        case StringType(max_length=max_length):
            return f"string(max: {max_length})"
        case NumberType(min=low, max=high):
            return _format_range("number", low, high)
        case IntegerType(min=low, max=high):
            return _format_range("integer", low, high)
        case BooleanType():
            return "boolean"
        case ArrayType(item_type=item_type):
            return f"array<{format_parameter_type(item_type)}>"
        case ObjectType():
            return "object"
        case DateType():
            return "date (YYYY-MM-DD)"
        case DateTimeType():
            return "datetime (ISO 8601)"
    raise TypeError(f"Unknown parameter type: {param_type!r}")


for _model in (ArrayType, ObjectType, ParameterSchema, ReturnSchema, ActionSchema, ToolSchema):
    _model.model_rebuild()
