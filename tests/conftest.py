from typing import Any, Callable, List, Optional, Sequence

import pytest
from langchain_core.messages import (
    AIMessage,
    AIMessageChunk,
    BaseMessage,
    HumanMessage,
    ToolMessage,
)

from agentloop.llm.model_gateway import ChatModelGateway


class FakeChatModel:
    """
    Deterministic fake chat model for agent loop tests.

    Args:
        responses: Scripted replies, consumed in order. Each item is an
            AIMessage or a callable taking the request messages.
        default: Reply used once the script is exhausted.
        chunks: Text chunks yielded by ``astream``.
    """

    def __init__(
        self,
        responses: Optional[Sequence[Any]] = None,
        default: Any = None,
        chunks: Sequence[str] = (),
        **kwargs: Any,
    ) -> None:
        self._responses = list(responses or [])
        self._default = default
        self._chunks = list(chunks)
        self.bound_tools: List[dict] = []
        self.calls: List[List[BaseMessage]] = []
        self.init_kwargs = kwargs

    def bind_tools(self, tools: List[dict]) -> "FakeChatModel":
        """Records bound tools for compatibility with the gateway interface."""

        self.bound_tools = list(tools)
        return self

    async def ainvoke(self, messages: List[BaseMessage]) -> Any:
        self.calls.append(list(messages))
        if self._responses:
            response = self._responses.pop(0)
        elif self._default is not None:
            response = self._default
        else:
            raise AssertionError("FakeChatModel has no scripted response left")
        if callable(response):
            response = response(messages)
        return response

    async def astream(self, messages: List[BaseMessage]):
        self.calls.append(list(messages))
        for chunk in self._chunks:
            yield AIMessageChunk(content=chunk)


def tool_call_message(
    name: str, args: Optional[dict] = None, call_id: str = "call-1"
) -> AIMessage:
    return AIMessage(
        content="", tool_calls=[{"name": name, "args": args or {}, "id": call_id}]
    )


def weather_responder(messages: List[BaseMessage]) -> AIMessage:
    """Behaves like a model following the weather system prompt."""

    last = messages[-1]
    if isinstance(last, HumanMessage):
        return tool_call_message("get_user_location", {}, call_id="loc-1")
    if isinstance(last, ToolMessage) and last.name == "get_user_location":
        if last.status == "error":
            return AIMessage(content="I could not determine your location.")
        return tool_call_message("get_weather", {"city": last.content}, call_id="wx-1")
    if isinstance(last, ToolMessage) and last.name == "get_weather":
        return AIMessage(content=f"Forecast: {last.content}")
    return AIMessage(content="Okay.")


@pytest.fixture
def make_tool_call() -> Callable[..., AIMessage]:
    return tool_call_message


@pytest.fixture
def fake_model() -> Callable[..., FakeChatModel]:
    return FakeChatModel


@pytest.fixture
def weather_model() -> Callable[[], FakeChatModel]:
    return lambda: FakeChatModel(default=weather_responder)


@pytest.fixture
def make_gateway() -> Callable[..., ChatModelGateway]:
    def _make(model: Any, timeout: Optional[float] = None) -> ChatModelGateway:
        return ChatModelGateway(model, timeout=timeout)

    return _make
