import threading
from typing import Dict, List, Sequence

from langchain_core.messages import BaseMessage

from agentloop.infra.conversation_store import ConversationStore


class InMemoryConversationStore(ConversationStore):
    """In-memory conversation store; state lives for the process lifetime."""

    def __init__(self) -> None:
        """Initialize an empty in-memory store."""

        super().__init__()
        self._threads: Dict[str, List[BaseMessage]] = {}
        self._lock = threading.Lock()

    def load(self, thread_id: str) -> List[BaseMessage]:
        with self._lock:
            return list(self._threads.get(thread_id, []))

    def save(self, thread_id: str, messages: Sequence[BaseMessage]) -> None:
        with self._lock:
            self._threads[thread_id] = list(messages)

    def clear(self, thread_id: str) -> None:
        with self._lock:
            self._threads.pop(thread_id, None)

    def thread_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._threads)
