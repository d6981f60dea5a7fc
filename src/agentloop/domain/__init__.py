from agentloop.domain.context import RuntimeContext
from agentloop.domain.invocation import (
    ChatMessageInput,
    InvocationInput,
    InvocationOptions,
    InvocationResult,
)
from agentloop.domain.tool import EmptyArgs, Tool, ToolArgs, tool

__all__ = [
    "ChatMessageInput",
    "EmptyArgs",
    "InvocationInput",
    "InvocationOptions",
    "InvocationResult",
    "RuntimeContext",
    "Tool",
    "ToolArgs",
    "tool",
]
