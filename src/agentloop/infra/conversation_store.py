import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Sequence, Set

from langchain_core.messages import BaseMessage

from agentloop.domain.exceptions import ConcurrentThreadAccessError


class ConversationStore(ABC):
    """
    Interface for persisting conversation threads keyed by thread id.

    Implementations store complete message sequences; the store also
    enforces at most one in-flight invocation per thread id.
    """

    def __init__(self) -> None:
        self._lease_lock = threading.Lock()
        self._in_flight: Set[str] = set()

    @abstractmethod
    def load(self, thread_id: str) -> List[BaseMessage]:
        """Return the stored history for a thread (empty when unknown).

        Args:
            thread_id: Conversation identifier.
        """

    @abstractmethod
    def save(self, thread_id: str, messages: Sequence[BaseMessage]) -> None:
        """Replace the stored history for a thread.

        Args:
            thread_id: Conversation identifier.
            messages: Full ordered history to store.
        """

    @abstractmethod
    def clear(self, thread_id: str) -> None:
        """Delete a thread's history."""

    @abstractmethod
    def thread_ids(self) -> List[str]:
        """Return the ids of stored threads."""

    @contextmanager
    def lease(self, thread_id: str) -> Iterator[None]:
        """
        Holds exclusive access to a thread for one invocation.

        Args:
            thread_id: Conversation identifier.

        Raises:
            ConcurrentThreadAccessError: If the thread is already leased.
        """
        with self._lease_lock:
            if thread_id in self._in_flight:
                raise ConcurrentThreadAccessError(thread_id)
            self._in_flight.add(thread_id)
        try:
            yield
        finally:
            with self._lease_lock:
                self._in_flight.discard(thread_id)

    def is_in_flight(self, thread_id: str) -> bool:
        with self._lease_lock:
            return thread_id in self._in_flight
