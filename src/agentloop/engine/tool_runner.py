"""Tool execution utilities for agent loops."""

import json
import logging
from typing import Any, List, Mapping, Sequence

from langchain_core.messages import ToolMessage
from pydantic import BaseModel

from agentloop.domain.context import RuntimeContext
from agentloop.domain.exceptions import (
    InvalidArgumentsError,
    ToolExecutionError,
    UnknownToolError,
)
from agentloop.engine.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

RECOVERABLE_TOOL_ERRORS = (UnknownToolError, InvalidArgumentsError, ToolExecutionError)


class ToolRunner:
    """
    Executes one model turn's tool calls against a registry.

    Args:
        registry: The registry used to resolve tool calls.
        escalate_errors: Raise tool errors instead of reporting them to the model.
    """

    def __init__(self, registry: ToolRegistry, escalate_errors: bool = False) -> None:
        self.registry = registry
        self.escalate_errors = escalate_errors

    async def run(
        self, tool_calls: Sequence[Mapping[str, Any]], context: RuntimeContext
    ) -> List[ToolMessage]:
        """
        Executes tool calls sequentially in emission order.

        Duplicate calls are executed independently.

        Args:
            tool_calls: Tool call payloads (``name``, ``args``, ``id``).
            context: Runtime context handed to every executor.

        Returns:
            One ToolMessage per call, in the same order.
        """
        results: List[ToolMessage] = []
        for tool_call in tool_calls:
            tool_name = tool_call["name"]
            tool_id = tool_call.get("id") or ""
            try:
                output = await self.registry.resolve(
                    tool_name, tool_call.get("args"), context
                )
            except RECOVERABLE_TOOL_ERRORS as exc:
                if self.escalate_errors:
                    raise
                logger.info(
                    "Tool call failed; reporting to model",
                    extra={"tool": tool_name, "error_class": exc.__class__.__name__},
                )
                results.append(
                    ToolMessage(
                        content=f"Error: {exc}",
                        tool_call_id=tool_id,
                        name=tool_name,
                        status="error",
                    )
                )
                continue

            results.append(
                ToolMessage(
                    content=render_tool_output(output),
                    tool_call_id=tool_id,
                    name=tool_name,
                )
            )
        return results


def render_tool_output(output: Any) -> str:
    """Renders a tool result as model-visible text."""

    if isinstance(output, str):
        return output
    if isinstance(output, BaseModel):
        return output.model_dump_json()
    return json.dumps(output, default=str)
