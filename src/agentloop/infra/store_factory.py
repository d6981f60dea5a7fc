from agentloop.config import Config
from agentloop.infra.conversation_store import ConversationStore
from agentloop.infra.in_memory_conversation_store import InMemoryConversationStore
from agentloop.infra.json_conversation_store import JsonConversationStore


def build_conversation_store(config: Config) -> ConversationStore:
    """Returns the conversation store selected by ``store_backend``."""

    if config.store_backend == "json":
        return JsonConversationStore(config.get_threads_path())
    return InMemoryConversationStore()
