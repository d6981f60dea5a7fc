from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Dict,
    Optional,
    Protocol,
    Sequence,
)

from langchain_core.messages import AIMessage, BaseMessage

from agentloop.domain.exceptions import (
    AgentLoopError,
    GatewayParseError,
    GatewayTimeoutError,
)
from agentloop.domain.messages import message_text
from agentloop.domain.tool import Tool
from agentloop.llm.error_mapper import map_gateway_error
from agentloop.llm.model_reply import (
    FinalText,
    ModelReply,
    StructuredFinal,
    ToolCallRequest,
    ToolCalls,
)
from agentloop.llm.retry_policy import default_wait_strategy
from agentloop.llm.stable_transport import StableTransport, StableTransportError

if TYPE_CHECKING:
    from agentloop.config import Config
    from agentloop.engine.structured_output import ResponseContract

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ModelGateway(Protocol):
    """Protocol for the model backend used by the agent loop."""

    async def complete(
        self,
        history: Sequence[BaseMessage],
        tools: Sequence[Tool],
        response_contract: Optional["ResponseContract"] = None,
    ) -> ModelReply:
        """Send history plus tool metadata and parse the reply."""

        ...


class ChatModelGateway:
    """
    Model gateway backed by a langchain chat model.

    Args:
        chat_model: Chat model supporting ``bind_tools`` and ``ainvoke``.
        timeout: Per-call timeout in seconds; None disables it.
        transport: Retry wrapper for transient provider failures.
        model_name: Model label used in log records.
    """

    def __init__(
        self,
        chat_model: Any,
        timeout: Optional[float] = None,
        transport: Optional[StableTransport] = None,
        model_name: Optional[str] = None,
    ) -> None:
        self._chat_model = chat_model
        self._timeout = timeout
        self._transport = transport or StableTransport()
        self._model_name = model_name

    @classmethod
    def from_config(cls, config: "Config") -> "ChatModelGateway":
        """Builds a gateway for the configured OpenAI-compatible endpoint."""

        from agentloop.llm.chat_model_factory import build_chat_model

        return cls(
            build_chat_model(config),
            timeout=config.request_timeout,
            transport=StableTransport(
                max_attempts=config.transport_max_attempts,
                wait_strategy=default_wait_strategy(),
            ),
            model_name=config.get_model_name(),
        )

    async def complete(
        self,
        history: Sequence[BaseMessage],
        tools: Sequence[Tool],
        response_contract: Optional["ResponseContract"] = None,
    ) -> ModelReply:
        """
        Sends the history and tool descriptors to the model.

        Args:
            history: Model-visible messages, system prompt first.
            tools: Tools the model may call.
            response_contract: Optional structured-output contract.

        Returns:
            The parsed model reply.

        Raises:
            GatewayTimeoutError: If the call exceeds its timeout.
            GatewayParseError: If the reply cannot be parsed.
            GatewayError: For other provider failures.
        """
        descriptors = [item.as_openai_tool() for item in tools]
        if response_contract is not None:
            descriptors.append(response_contract.as_openai_tool())

        model = self._chat_model
        if descriptors:
            model = model.bind_tools(descriptors)

        logger.debug(
            "Model request start",
            extra={
                "model": self._model_name,
                "message_count": len(history),
                "tool_count": len(descriptors),
            },
        )
        message = await self._call(lambda: model.ainvoke(list(history)))
        logger.debug("Model request complete", extra={"model": self._model_name})
        return self.parse_reply(message, response_contract)

    async def stream_text(self, history: Sequence[BaseMessage]) -> AsyncIterator[str]:
        """
        Streams a plain completion without tools.

        Args:
            history: Messages to send.

        Yields:
            Text chunks as they arrive.
        """
        try:
            async for chunk in self._chat_model.astream(list(history)):
                text = message_text(chunk)
                if text:
                    yield text
        except AgentLoopError:
            raise
        except Exception as exc:
            raise map_gateway_error(exc) from exc

    async def _call(self, operation) -> Any:
        async def attempt() -> Any:
            if self._timeout is None:
                return await operation()
            return await asyncio.wait_for(operation(), timeout=self._timeout)

        try:
            return await self._transport.call(attempt)
        except asyncio.TimeoutError as exc:
            raise GatewayTimeoutError(
                f"Model call exceeded timeout of {self._timeout}s."
            ) from exc
        except StableTransportError as exc:
            cause = exc.__cause__
            if isinstance(cause, Exception):
                raise map_gateway_error(cause) from exc
            raise map_gateway_error(exc) from exc
        except AgentLoopError:
            raise
        except Exception as exc:
            raise map_gateway_error(exc) from exc

    @staticmethod
    def parse_reply(
        message: Any, response_contract: Optional["ResponseContract"] = None
    ) -> ModelReply:
        """
        Parses a raw model message into a typed reply.

        Args:
            message: Message returned by the chat model.
            response_contract: Contract whose response tool marks structured output.

        Returns:
            FinalText, ToolCalls or StructuredFinal.

        Raises:
            GatewayParseError: If the message is not an assistant message or
                carries malformed tool calls.
        """
        if not isinstance(message, AIMessage):
            raise GatewayParseError(
                f"Expected an assistant message, got {type(message).__name__}."
            )
        if message.invalid_tool_calls:
            names = ", ".join(
                str(call.get("name") or "<unnamed>")
                for call in message.invalid_tool_calls
            )
            raise GatewayParseError(f"Malformed tool call payload for: {names}.")

        if message.tool_calls:
            calls = [
                ToolCallRequest(
                    id=call.get("id") or f"call_{index}",
                    name=call["name"],
                    args=call.get("args") or {},
                )
                for index, call in enumerate(message.tool_calls)
            ]
            if (
                response_contract is not None
                and len(calls) == 1
                and calls[0].name == response_contract.tool_name
            ):
                return StructuredFinal(
                    payload=calls[0].args,
                    message=message,
                    tool_call_id=calls[0].id,
                )
            return ToolCalls(calls=calls, message=message)

        text = message_text(message)
        if response_contract is not None:
            payload = _parse_json_object(text)
            if payload is not None:
                return StructuredFinal(payload=payload, message=message)
        return FinalText(text=text, message=message)


def _parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    stripped = text.strip()
    fenced = _JSON_FENCE.match(stripped)
    if fenced:
        stripped = fenced.group(1)
    if not stripped.startswith("{"):
        return None
    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None

