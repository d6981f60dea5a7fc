import contextlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import List, Sequence
from urllib.parse import quote, unquote

from langchain_core.messages import BaseMessage, messages_from_dict, messages_to_dict

from agentloop.domain.exceptions import ConversationStoreError
from agentloop.infra.conversation_store import ConversationStore

logger = logging.getLogger(__name__)

_SUFFIX = ".thread.json"
# quote() escapes "%", so no thread file name can start with this prefix.
_TMP_PREFIX = "%tmp-"


class JsonConversationStore(ConversationStore):
    """
    JSON-backed conversation store with one file per thread.

    Files hold ``{"thread_id": ..., "messages": [...]}`` where messages use
    the langchain ``messages_to_dict`` format.

    Args:
        directory: Directory holding thread files.
    """

    def __init__(self, directory: Path) -> None:
        super().__init__()
        self._directory = directory
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path:
        return self._directory

    def load(self, thread_id: str) -> List[BaseMessage]:
        """Load a thread from disk.

        Raises:
            ConversationStoreError: If the file exists but cannot be parsed.
        """

        path = self._thread_path(thread_id)
        with self._lock:
            if not path.exists():
                return []
            try:
                with path.open("r", encoding="utf-8") as handle:
                    payload = json.load(handle)
                return messages_from_dict(payload["messages"])
            except (OSError, ValueError, KeyError, TypeError) as exc:
                logger.warning(
                    "Failed to load thread file",
                    extra={"path": str(path), "error_class": exc.__class__.__name__},
                )
                raise ConversationStoreError(
                    f"Thread '{thread_id}' could not be loaded from {path}."
                ) from exc

    def save(self, thread_id: str, messages: Sequence[BaseMessage]) -> None:
        """Atomically rewrite a thread file."""

        path = self._thread_path(thread_id)
        payload = {"thread_id": thread_id, "messages": messages_to_dict(list(messages))}
        with self._lock:
            try:
                self._directory.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    dir=self._directory, prefix=_TMP_PREFIX, suffix=_SUFFIX
                )
            except OSError as exc:
                raise ConversationStoreError(
                    f"Thread '{thread_id}' could not be written to {path}."
                ) from exc
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle, default=str)
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, path)
            except (OSError, TypeError, ValueError) as exc:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)
                raise ConversationStoreError(
                    f"Thread '{thread_id}' could not be written to {path}."
                ) from exc

    def clear(self, thread_id: str) -> None:
        path = self._thread_path(thread_id)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return

    def thread_ids(self) -> List[str]:
        if not self._directory.exists():
            return []
        return sorted(
            unquote(path.name[: -len(_SUFFIX)])
            for path in self._directory.glob(f"*{_SUFFIX}")
            if not path.name.startswith(_TMP_PREFIX)
        )

    def _thread_path(self, thread_id: str) -> Path:
        return self._directory / f"{quote(thread_id, safe='')}{_SUFFIX}"
