"""Custom exceptions for aigenda."""


class AigendaError(Exception):
    """Base exception for aigenda."""


class ConfigurationError(AigendaError):
    """Configuration-related errors (missing credentials, unusable data directory)."""


class StorageError(AigendaError):
    """Reading or writing persisted notes or memory failed."""


class LLMError(AigendaError):
    """LLM-related errors."""


class LLMAPIError(LLMError):
    """LLM API errors (transport, authentication, non-success status)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LLMResponseError(LLMError):
    """The LLM replied, but not in a shape we can use."""


class ToolError(AigendaError):
    """Tool-related errors."""


class ToolExecutionError(ToolError):
    """A tool reported a failure while executing an action."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(message)
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    """Tool not found in registry."""

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class ToolRegistrationError(ToolError):
    """A tool could not be constructed during discovery."""

    def __init__(self, tool_name: str, reason: str):
        super().__init__(f"Failed to register tool '{tool_name}': {reason}")
        self.tool_name = tool_name
        self.reason = reason
