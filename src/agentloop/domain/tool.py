import inspect
import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from agentloop.domain.context import RuntimeContext
from agentloop.domain.exceptions import InvalidArgumentsError

ToolExecutor = Callable[[Any, RuntimeContext], Union[Any, Awaitable[Any]]]


class ToolArgs(BaseModel):
    """
    Base class for closed tool argument schemas.

    Extra fields sent by the model are rejected.
    """

    model_config = ConfigDict(extra="forbid")


class EmptyArgs(ToolArgs):
    """Argument schema for tools that take no model input."""

    pass


@dataclass(frozen=True)
class Tool:
    """
    A named, schema-validated callable the model may request by name.
    """

    name: str
    description: str
    executor: ToolExecutor = field(repr=False)
    args_schema: Type[BaseModel] = EmptyArgs

    def validate_args(self, raw_args: Any) -> BaseModel:
        """
        Validates model-submitted arguments against the input schema.

        Validation is strict: wrong-typed values are rejected, never coerced.

        Args:
            raw_args: Argument object (dict) or JSON text emitted by the model.

        Returns:
            The validated argument model.

        Raises:
            InvalidArgumentsError: If the arguments do not match the schema.
        """
        if raw_args is None:
            raw_args = {}
        if isinstance(raw_args, str):
            try:
                raw_args = json.loads(raw_args) if raw_args.strip() else {}
            except json.JSONDecodeError as exc:
                raise InvalidArgumentsError(
                    self.name, message=f"Arguments for '{self.name}' are not JSON: {exc}"
                ) from exc
        if not isinstance(raw_args, dict):
            raise InvalidArgumentsError(
                self.name,
                message=f"Arguments for '{self.name}' must be an object.",
            )
        try:
            payload = json.dumps(raw_args)
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentsError(
                self.name,
                message=f"Arguments for '{self.name}' are not JSON-serializable: {exc}",
            ) from exc
        try:
            # Strict JSON mode: "3" is not an int and 1 is not a str.
            return self.args_schema.model_validate_json(payload, strict=True)
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_input=False)
            raise InvalidArgumentsError(
                self.name,
                errors=errors,
                message=f"Invalid arguments for '{self.name}': {_format_errors(errors)}",
            ) from exc

    def parameters_schema(self) -> Dict[str, Any]:
        """Returns the JSON schema describing the argument object."""

        schema = dict(self.args_schema.model_json_schema())
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    def as_openai_tool(self) -> Dict[str, Any]:
        """
        Returns an OpenAI-compatible tool schema definition.

        Returns:
            A dictionary describing the tool for LLM binding.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }


def tool(
    name: Optional[str] = None,
    *,
    description: Optional[str] = None,
    args_schema: Type[BaseModel] = EmptyArgs,
) -> Callable[[ToolExecutor], Tool]:
    """
    Decorator that turns an ``(args, context)`` function into a Tool.

    Args:
        name: Tool name; defaults to the function name.
        description: Tool description; defaults to the function docstring.
        args_schema: Pydantic model describing the model-supplied arguments.

    Returns:
        A decorator producing a Tool.
    """

    def wrapper(func: ToolExecutor) -> Tool:
        return Tool(
            name=name or func.__name__,
            description=description or inspect.getdoc(func) or "",
            executor=func,
            args_schema=args_schema,
        )

    return wrapper


def _format_errors(errors: Any) -> str:
    parts = []
    for error in errors:
        location = ".".join(str(item) for item in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts)
