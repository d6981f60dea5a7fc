import asyncio

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from agentloop.domain.exceptions import (
    GatewayError,
    GatewayParseError,
    GatewayTimeoutError,
)
from agentloop.domain.tool import Tool, ToolArgs
from agentloop.engine.structured_output import RESPONSE_TOOL_NAME, ResponseContract
from agentloop.llm.model_gateway import ChatModelGateway
from agentloop.llm.model_reply import FinalText, StructuredFinal, ToolCalls
from agentloop.llm.stable_transport import StableTransport


class CityArgs(ToolArgs):
    city: str


WEATHER = Tool(
    name="get_weather",
    description="Weather",
    executor=lambda args, context: "sunny",
    args_schema=CityArgs,
)


class SlowModel:
    def bind_tools(self, tools):
        return self

    async def ainvoke(self, messages):
        await asyncio.sleep(5)
        return AIMessage(content="late")


class FlakyModel:
    def __init__(self, failures):
        self.failures = failures
        self.attempts = 0

    def bind_tools(self, tools):
        return self

    async def ainvoke(self, messages):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConnectionResetError("reset")
        return AIMessage(content="recovered")


def test_complete_binds_tools_and_returns_text(fake_model) -> None:
    model = fake_model(responses=[AIMessage(content="Hello")])
    gateway = ChatModelGateway(model)
    history = [SystemMessage(content="sys"), HumanMessage(content="hi")]

    reply = asyncio.run(gateway.complete(history, [WEATHER]))

    assert isinstance(reply, FinalText)
    assert reply.text == "Hello"
    assert model.calls == [history]
    assert [d["function"]["name"] for d in model.bound_tools] == ["get_weather"]


def test_complete_adds_response_tool_for_contract(fake_model) -> None:
    model = fake_model(responses=[AIMessage(content="x")])
    gateway = ChatModelGateway(model)

    asyncio.run(
        gateway.complete([HumanMessage(content="hi")], [WEATHER], ResponseContract(dict))
    )

    assert [d["function"]["name"] for d in model.bound_tools] == [
        "get_weather",
        RESPONSE_TOOL_NAME,
    ]


def test_complete_parses_tool_calls(fake_model, make_tool_call) -> None:
    model = fake_model(responses=[make_tool_call("get_weather", {"city": "Rome"})])
    gateway = ChatModelGateway(model)

    reply = asyncio.run(gateway.complete([HumanMessage(content="hi")], [WEATHER]))

    assert isinstance(reply, ToolCalls)
    assert reply.calls[0].name == "get_weather"
    assert reply.calls[0].args == {"city": "Rome"}
    assert reply.calls[0].id == "call-1"


def test_parse_reply_structured_tool_call(make_tool_call) -> None:
    contract = ResponseContract(dict)
    message = make_tool_call(RESPONSE_TOOL_NAME, {"a": 1}, call_id="s1")

    reply = ChatModelGateway.parse_reply(message, contract)

    assert isinstance(reply, StructuredFinal)
    assert reply.payload == {"a": 1}
    assert reply.tool_call_id == "s1"


def test_parse_reply_response_tool_mixed_with_others_is_tool_calls() -> None:
    contract = ResponseContract(dict)
    message = AIMessage(
        content="",
        tool_calls=[
            {"name": "get_weather", "args": {"city": "A"}, "id": "1"},
            {"name": RESPONSE_TOOL_NAME, "args": {}, "id": "2"},
        ],
    )

    reply = ChatModelGateway.parse_reply(message, contract)

    assert isinstance(reply, ToolCalls)
    assert len(reply.calls) == 2


def test_parse_reply_json_text_only_with_contract() -> None:
    message = AIMessage(content='{"a": 1}')

    assert isinstance(ChatModelGateway.parse_reply(message), FinalText)
    reply = ChatModelGateway.parse_reply(message, ResponseContract(dict))
    assert isinstance(reply, StructuredFinal)
    assert reply.payload == {"a": 1}
    assert reply.tool_call_id is None


def test_parse_reply_rejects_non_assistant_message() -> None:
    with pytest.raises(GatewayParseError):
        ChatModelGateway.parse_reply(
            ToolMessage(content="x", tool_call_id="1"), None
        )


def test_parse_reply_rejects_malformed_tool_calls() -> None:
    message = AIMessage(
        content="",
        invalid_tool_calls=[
            {
                "name": "get_weather",
                "args": "{city: ",
                "id": "1",
                "error": "bad json",
                "type": "invalid_tool_call",
            }
        ],
    )

    with pytest.raises(GatewayParseError) as exc_info:
        ChatModelGateway.parse_reply(message)

    assert "get_weather" in str(exc_info.value)


def test_timeout_raises_gateway_timeout() -> None:
    gateway = ChatModelGateway(SlowModel(), timeout=0.01)

    with pytest.raises(GatewayTimeoutError):
        asyncio.run(gateway.complete([HumanMessage(content="hi")], []))


def test_provider_errors_are_mapped(fake_model) -> None:
    def explode(messages):
        raise ValueError("bad payload")

    gateway = ChatModelGateway(fake_model(responses=[explode]))

    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.complete([HumanMessage(content="hi")], []))

    assert "ValueError" in str(exc_info.value)


def test_transport_retries_transient_failures() -> None:
    model = FlakyModel(failures=1)
    transport = StableTransport(
        max_attempts=2, retry_predicate=lambda exc: isinstance(exc, ConnectionError)
    )
    gateway = ChatModelGateway(model, transport=transport)

    reply = asyncio.run(gateway.complete([HumanMessage(content="hi")], []))

    assert reply.text == "recovered"
    assert model.attempts == 2


def test_exhausted_retries_surface_last_error() -> None:
    model = FlakyModel(failures=5)
    transport = StableTransport(
        max_attempts=2, retry_predicate=lambda exc: isinstance(exc, ConnectionError)
    )
    gateway = ChatModelGateway(model, transport=transport)

    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.complete([HumanMessage(content="hi")], []))

    assert "ConnectionResetError" in str(exc_info.value)
    assert model.attempts == 2


def test_stream_text_yields_chunks(fake_model) -> None:
    gateway = ChatModelGateway(fake_model(chunks=["Hel", "", "lo"]))

    async def collect():
        return [chunk async for chunk in gateway.stream_text([HumanMessage(content="hi")])]

    assert asyncio.run(collect()) == ["Hel", "lo"]
