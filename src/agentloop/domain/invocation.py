from typing import Any, Dict, List, Literal, Optional

from langchain_core.messages import AIMessage, BaseMessage
from pydantic import BaseModel, ConfigDict, Field

from agentloop.domain.messages import last_ai_message, message_text, to_messages


class ChatMessageInput(BaseModel):
    """A caller-supplied role/content message."""

    role: Literal["user", "assistant", "system"] = Field(
        description="Author role of the message."
    )
    content: str = Field(description="Message text.")


class InvocationInput(BaseModel):
    """Input payload for a single agent invocation."""

    messages: List[ChatMessageInput] = Field(
        min_length=1, description="New messages appended to the conversation."
    )

    def to_messages(self) -> List[BaseMessage]:
        """Converts the input into langchain messages."""

        return to_messages([item.model_dump() for item in self.messages])


class InvocationOptions(BaseModel):
    """Per-invocation options."""

    thread_id: Optional[str] = Field(
        default=None, description="Conversation thread used for memory."
    )
    context: Dict[str, Any] = Field(
        default_factory=dict,
        description="Trusted runtime context visible to tools only.",
    )
    max_steps: Optional[int] = Field(
        default=None, ge=1, description="Override for the loop step limit."
    )
    response_schema: Optional[Any] = Field(
        default=None,
        description="Pydantic-compatible type the final answer must satisfy.",
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


class InvocationResult(BaseModel):
    """Outcome of a successful invocation."""

    messages: List[BaseMessage] = Field(
        description="Full ordered history, including replayed thread messages."
    )
    structured_response: Optional[Any] = Field(
        default=None, description="Validated structured output, if requested."
    )
    steps: int = Field(default=0, description="Model calls made by this invocation.")

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def final_message(self) -> Optional[AIMessage]:
        """Returns the last assistant answer."""

        return last_ai_message(self.messages)

    def final_text(self) -> str:
        """Returns the text of the last assistant answer, or an empty string."""

        message = self.final_message()
        return message_text(message) if message is not None else ""
