"""History compaction policies applied before each model call."""

from typing import List, Protocol, Sequence

from langchain_core.messages import BaseMessage, trim_messages

from agentloop.engine.prompt_builder import is_user_turn


class HistoryPolicy(Protocol):
    """Maps the stored history to the model-visible view."""

    def compact(self, messages: Sequence[BaseMessage]) -> List[BaseMessage]:
        ...


class KeepAllHistory:
    """Sends the full history on every call."""

    def compact(self, messages: Sequence[BaseMessage]) -> List[BaseMessage]:
        return list(messages)


class TrimHistory:
    """
    Keeps the most recent messages, starting on a user turn.

    Starting on a user message keeps tool results next to the assistant
    message that requested them. Compliance re-prompts never start the
    window, so the question they belong to stays visible.

    Args:
        max_messages: Maximum messages in the model-visible view.
    """

    def __init__(self, max_messages: int) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self.max_messages = max_messages

    def compact(self, messages: Sequence[BaseMessage]) -> List[BaseMessage]:
        if len(messages) <= self.max_messages:
            return list(messages)
        window = trim_messages(
            list(messages),
            max_tokens=self.max_messages,
            token_counter=len,
            strategy="last",
        )
        for index, message in enumerate(window):
            if is_user_turn(message):
                return window[index:]
        # The current turn alone exceeds the window; keep it whole.
        for index in range(len(messages) - 1, -1, -1):
            if is_user_turn(messages[index]):
                return list(messages[index:])
        return list(messages)
