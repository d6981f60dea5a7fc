"""Helpers for converting and inspecting conversation messages."""

from typing import Any, List, Mapping, Optional, Sequence

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
)

_ROLE_TYPES = {
    "user": HumanMessage,
    "human": HumanMessage,
    "assistant": AIMessage,
    "ai": AIMessage,
    "system": SystemMessage,
}


def to_message(role: str, content: str) -> BaseMessage:
    """Convert a role/content pair into a langchain message."""

    message_type = _ROLE_TYPES.get(role.strip().lower())
    if message_type is None:
        raise ValueError(f"Unsupported message role: {role}")
    return message_type(content=content)


def to_messages(items: Sequence[Mapping[str, Any]]) -> List[BaseMessage]:
    """Convert role/content mappings into langchain messages."""

    return [to_message(item["role"], item["content"]) for item in items]


def message_text(message: BaseMessage) -> str:
    """
    Returns the plain text of a message.

    Content may be a string or a list of content blocks; only text blocks
    are kept.
    """
    content = message.content
    if isinstance(content, str):
        return content
    parts: List[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)


def last_ai_message(messages: Sequence[BaseMessage]) -> Optional[AIMessage]:
    """Returns the last assistant message without pending tool calls."""

    for message in reversed(messages):
        if isinstance(message, AIMessage) and not message.tool_calls:
            return message
    return None
