"""Custom exception hierarchy for Memora.

This module defines all custom exceptions used throughout the agent,
organized into logical categories: agent control, client errors, tool
errors and storage errors.
"""


class MemoraError(Exception):
    """Base exception for all Memora errors."""


# =============================================================================
# Agent Errors
# =============================================================================

class AgentBusyError(MemoraError):
    """Raised when process() is called while a previous call is still running.

    Each agent owns one history; callers must serialize calls per session.
    """

    def __init__(self, message: str = "Agent is already processing a message"):
        super().__init__(message)


# =============================================================================
# Client Errors - Issues with LLM / embedding API interactions
# =============================================================================

class ClientError(MemoraError):
    """Base class for LLM client errors."""


class AuthenticationError(ClientError):
    """API key is invalid or missing."""


class RateLimitError(ClientError):
    """Rate limit exceeded."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: float | None = None):
        self.retry_after = retry_after
        if retry_after:
            message = f"{message}. Retry after: {retry_after}s"
        super().__init__(message)


class ContextLengthError(ClientError):
    """Context length exceeded for model."""

    def __init__(self, max_tokens: int, requested_tokens: int | None = None):
        self.max_tokens = max_tokens
        self.requested_tokens = requested_tokens
        if requested_tokens:
            message = f"Context length exceeded: {requested_tokens} > {max_tokens} tokens"
        else:
            message = f"Context length exceeded model limit of {max_tokens} tokens"
        super().__init__(message)


class ModelNotFoundError(ClientError):
    """Requested model does not exist."""

    def __init__(self, model_name: str):
        self.model_name = model_name
        super().__init__(f"Model not found: {model_name}")


class ProviderUnavailableError(ClientError):
    """Provider API is temporarily unavailable or timed out."""


class InvalidResponseError(ClientError):
    """Response from provider could not be parsed."""


# =============================================================================
# Tool Errors - Issues with tool execution
# =============================================================================

class ToolError(MemoraError):
    """Base class for tool execution errors."""


class ToolNotFoundError(ToolError):
    """Requested tool does not exist."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' not found.")


class ToolExecutionError(ToolError):
    """Tool execution failed."""

    def __init__(self, tool_name: str, cause: Exception | str):
        self.tool_name = tool_name
        self.cause = cause
        super().__init__(f"Error executing tool '{tool_name}': {cause}")


class ToolValidationError(ToolError):
    """Tool arguments failed validation."""

    def __init__(self, tool_name: str, errors: list[str]):
        self.tool_name = tool_name
        self.errors = errors
        super().__init__(f"Invalid arguments for tool '{tool_name}': {', '.join(errors)}")


class ToolTimeoutError(ToolError):
    """Tool execution timed out."""

    def __init__(self, tool_name: str, timeout: float):
        self.tool_name = tool_name
        self.timeout = timeout
        super().__init__(f"Tool '{tool_name}' timed out after {timeout}s")


# =============================================================================
# Storage Errors
# =============================================================================

class StorageError(MemoraError):
    """Base class for persistent store errors."""


class StoreInitializationError(StorageError):
    """The store could not be opened or its schema could not be created."""

    def __init__(self, db_path: str, cause: Exception | str):
        self.db_path = db_path
        self.cause = cause
        super().__init__(f"Failed to initialize store at '{db_path}': {cause}")


class DimensionMismatchError(StorageError, ValueError):
    """Two embedding vectors of different sizes were compared."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}"
        )
