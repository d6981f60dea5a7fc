from agentloop.domain.context import RuntimeContext
from agentloop.domain.exceptions import (
    AgentLoopError,
    ConcurrentThreadAccessError,
    DuplicateNameError,
    GatewayError,
    GatewayParseError,
    GatewayTimeoutError,
    InvalidArgumentsError,
    MissingContextError,
    RecursionLimitExceeded,
    SchemaNotSatisfiedError,
    ToolExecutionError,
    UnknownToolError,
)
from agentloop.domain.invocation import (
    InvocationInput,
    InvocationOptions,
    InvocationResult,
)
from agentloop.domain.tool import EmptyArgs, Tool, ToolArgs, tool
from agentloop.engine.agent_loop import AgentLoop, LoopState
from agentloop.engine.history_policy import KeepAllHistory, TrimHistory
from agentloop.engine.structured_output import ResponseContract
from agentloop.engine.tool_registry import ToolRegistry
from agentloop.infra.in_memory_conversation_store import InMemoryConversationStore
from agentloop.infra.json_conversation_store import JsonConversationStore
from agentloop.llm.model_gateway import ChatModelGateway, ModelGateway

__all__ = [
    "AgentLoop",
    "AgentLoopError",
    "ChatModelGateway",
    "ConcurrentThreadAccessError",
    "DuplicateNameError",
    "EmptyArgs",
    "GatewayError",
    "GatewayParseError",
    "GatewayTimeoutError",
    "InMemoryConversationStore",
    "InvalidArgumentsError",
    "InvocationInput",
    "InvocationOptions",
    "InvocationResult",
    "JsonConversationStore",
    "KeepAllHistory",
    "LoopState",
    "MissingContextError",
    "ModelGateway",
    "RecursionLimitExceeded",
    "ResponseContract",
    "RuntimeContext",
    "SchemaNotSatisfiedError",
    "Tool",
    "ToolArgs",
    "ToolExecutionError",
    "ToolRegistry",
    "TrimHistory",
    "UnknownToolError",
    "tool",
]
