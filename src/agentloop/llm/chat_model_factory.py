from langchain_openai import ChatOpenAI

from agentloop.config import Config


def build_chat_model(config: Config) -> ChatOpenAI:
    """
    Builds an OpenAI-compatible chat model from configuration.

    The base URL selects the backend (OpenRouter, OpenAI, a local Ollama
    server). Provider-side retries are disabled; retries are owned by
    ``StableTransport``.

    Args:
        config: Runtime configuration values.

    Returns:
        A configured ChatOpenAI instance.
    """
    return ChatOpenAI(
        model=config.get_model_name(),
        api_key=config.get_api_key() or "not-set",
        base_url=config.get_base_url(),
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout=config.request_timeout,
        max_retries=0,
    )
