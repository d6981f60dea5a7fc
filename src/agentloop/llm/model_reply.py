from typing import Any, Dict, List, Literal, Optional, Union

from langchain_core.messages import AIMessage
from pydantic import BaseModel, Field


class ToolCallRequest(BaseModel):
    """A single tool invocation requested by the model."""

    id: str = Field(description="Provider tool-call id.")
    name: str = Field(description="Requested tool name.")
    args: Dict[str, Any] = Field(default_factory=dict, description="Raw arguments.")


class FinalText(BaseModel):
    """Plain-text final answer."""

    kind: Literal["final_text"] = "final_text"
    text: str
    message: AIMessage


class ToolCalls(BaseModel):
    """One or more tool calls, in emission order."""

    kind: Literal["tool_calls"] = "tool_calls"
    calls: List[ToolCallRequest]
    message: AIMessage


class StructuredFinal(BaseModel):
    """Candidate structured answer; validated by the agent loop."""

    kind: Literal["structured_final"] = "structured_final"
    payload: Any
    message: AIMessage
    tool_call_id: Optional[str] = Field(
        default=None,
        description="Id of the response tool call, when submitted as a tool call.",
    )


ModelReply = Union[FinalText, ToolCalls, StructuredFinal]
