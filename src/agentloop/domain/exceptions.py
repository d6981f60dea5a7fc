from typing import Any, List, Optional, Sequence

from langchain_core.messages import BaseMessage


class AgentLoopError(Exception):
    """Base exception for the agent runtime.

    Args:
        message: Human-readable error message.
        messages: Partial conversation history attached for diagnosis.
    """

    def __init__(
        self, message: str = "", *, messages: Optional[Sequence[BaseMessage]] = None
    ) -> None:
        super().__init__(message)
        self.messages: List[BaseMessage] = list(messages or [])


class DuplicateNameError(AgentLoopError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' is already registered.")
        self.name = name


class UnknownToolError(AgentLoopError):
    """The model requested a tool that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' not found.")
        self.name = name


class InvalidArgumentsError(AgentLoopError):
    """Tool arguments do not match the tool's input schema."""

    def __init__(
        self, name: str, errors: Optional[List[Any]] = None, message: str = ""
    ) -> None:
        super().__init__(message or f"Invalid arguments for tool '{name}'.")
        self.name = name
        self.errors = list(errors or [])


class ToolExecutionError(AgentLoopError):
    """A tool executor failed."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class MissingContextError(ToolExecutionError):
    """A tool required a runtime context key that was not supplied."""

    def __init__(self, key: str, name: str = "") -> None:
        super().__init__(name, f"{key} missing from execution context")
        self.key = key


class GatewayError(AgentLoopError):
    """Base exception for model gateway failures."""

    pass


class GatewayParseError(GatewayError):
    """The model reply could not be parsed (e.g. malformed tool-call JSON)."""

    pass


class GatewayTimeoutError(GatewayError):
    """The model call did not complete within its timeout."""

    pass


class RateLimitError(GatewayError):
    """Provider returned 429 Rate Limit Exceeded."""

    pass


class ApiKeyError(GatewayError):
    """Provider returned 401/403 Authentication Error."""

    pass


class ContextLengthError(GatewayError):
    """Prompt exceeded model context limits."""

    pass


class RecursionLimitExceeded(AgentLoopError):
    """The loop exceeded its step limit before finishing."""

    def __init__(
        self, max_steps: int, *, messages: Optional[Sequence[BaseMessage]] = None
    ) -> None:
        super().__init__(
            f"Step limit of {max_steps} reached without a final answer.",
            messages=messages,
        )
        self.max_steps = max_steps


class SchemaNotSatisfiedError(AgentLoopError):
    """Structured output was not produced within the step budget."""

    def __init__(
        self,
        max_steps: int,
        last_error: Optional[str] = None,
        *,
        messages: Optional[Sequence[BaseMessage]] = None,
    ) -> None:
        super().__init__(
            f"Structured response not satisfied within {max_steps} steps.",
            messages=messages,
        )
        self.max_steps = max_steps
        self.last_error = last_error


class ConcurrentThreadAccessError(AgentLoopError):
    """Another invocation on the same thread id is still in flight."""

    def __init__(self, thread_id: str) -> None:
        super().__init__(f"Thread '{thread_id}' already has an invocation in flight.")
        self.thread_id = thread_id


class ConversationStoreError(AgentLoopError):
    """Persisted conversation state could not be read or written."""

    pass
