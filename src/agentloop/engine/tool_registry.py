"""Tool registry: closed name-to-tool dispatch table."""

import inspect
import logging
from typing import Any, Dict, Iterable, List, Optional

from agentloop.domain.context import RuntimeContext
from agentloop.domain.exceptions import (
    DuplicateNameError,
    MissingContextError,
    ToolExecutionError,
    UnknownToolError,
)
from agentloop.domain.tool import Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Central registry for agent tools.

    Args:
        tools: Tools registered at construction time.

    Raises:
        DuplicateNameError: If two tools share a name.
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._registry: Dict[str, Tool] = {}
        for item in tools:
            self.register(item)

    def register(self, tool: Tool) -> None:
        """
        Registers a tool with the registry.

        Args:
            tool: The tool to register.

        Raises:
            DuplicateNameError: If the name is already registered.
        """
        if tool.name in self._registry:
            raise DuplicateNameError(tool.name)
        self._registry[tool.name] = tool

    def get_tool(self, name: str) -> Optional[Tool]:
        return self._registry.get(name)

    def list_tools(self) -> List[Tool]:
        """Returns registered tools in registration order."""

        return list(self._registry.values())

    def descriptors(self) -> List[Dict[str, Any]]:
        """Returns OpenAI-compatible descriptors for every tool."""

        return [item.as_openai_tool() for item in self._registry.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._registry

    def __len__(self) -> int:
        return len(self._registry)

    async def resolve(self, name: str, raw_args: Any, context: RuntimeContext) -> Any:
        """
        Validates arguments and executes the named tool.

        Args:
            name: Tool name emitted by the model.
            raw_args: Argument object emitted by the model.
            context: Trusted runtime context for the executor.

        Returns:
            The executor's result.

        Raises:
            UnknownToolError: If no tool has that name.
            InvalidArgumentsError: If the arguments fail validation.
            ToolExecutionError: If the executor raises.
        """
        tool = self._registry.get(name)
        if tool is None:
            raise UnknownToolError(name)

        args = tool.validate_args(raw_args)
        try:
            result = tool.executor(args, context)
            if inspect.isawaitable(result):
                result = await result
        except MissingContextError as exc:
            if not exc.name:
                exc.name = name
            raise
        except ToolExecutionError:
            raise
        except Exception as exc:
            logger.warning(
                "Tool executor raised",
                extra={"tool": name, "error_class": exc.__class__.__name__},
            )
            raise ToolExecutionError(name, f"Error executing {name}: {exc}") from exc
        return result
