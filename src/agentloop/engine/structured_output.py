import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError

RESPONSE_TOOL_NAME = "submit_final_response"


class ResponseContract:
    """
    Schema the final answer must satisfy.

    The contract is offered to the model as one extra tool; the tool's
    parameters are the schema of the expected answer.

    Args:
        schema: Any pydantic-compatible type (model class, TypedDict, dataclass).
        tool_name: Name of the synthetic response tool.
    """

    def __init__(self, schema: Any, tool_name: str = RESPONSE_TOOL_NAME) -> None:
        self.schema = schema
        self.tool_name = tool_name
        self._adapter: TypeAdapter[Any] = TypeAdapter(schema)

    @classmethod
    def coerce(cls, value: Any) -> Optional["ResponseContract"]:
        """Returns ``value`` as a contract; None stays None."""

        if value is None or isinstance(value, ResponseContract):
            return value
        return cls(value)

    def json_schema(self) -> Dict[str, Any]:
        schema = dict(self._adapter.json_schema())
        schema.pop("title", None)
        return schema

    def as_openai_tool(self) -> Dict[str, Any]:
        """Returns the synthetic response tool descriptor."""

        return {
            "type": "function",
            "function": {
                "name": self.tool_name,
                "description": (
                    "Submit the final answer to the user. Call this exactly once, "
                    "alone, when you are done."
                ),
                "parameters": self.json_schema(),
            },
        }

    def validate(self, payload: Any) -> Any:
        """
        Validates a candidate answer.

        Raises:
            pydantic.ValidationError: If the payload does not match.
        """
        return self._adapter.validate_python(payload)

    def instructions(self) -> str:
        """Instructions appended to the system prompt."""

        schema_text = json.dumps(self.json_schema(), sort_keys=True)
        return (
            "When you have the final answer, call the "
            f"`{self.tool_name}` tool with arguments matching this JSON schema:\n"
            f"{schema_text}"
        )

    def feedback(self, error: Optional[ValidationError] = None) -> str:
        """Re-prompt text asking the model to comply with the contract."""

        if error is None:
            return (
                "Your answer did not use the required format. Call "
                f"`{self.tool_name}` with arguments matching the required schema."
            )
        details = "; ".join(
            f"{'.'.join(str(part) for part in item['loc']) or '<root>'}: {item['msg']}"
            for item in error.errors(include_url=False, include_input=False)
        )
        return (
            "The previous response failed validation. "
            f"Validation error: {details}. "
            f"Call `{self.tool_name}` again with arguments matching the required schema."
        )


def dump_structured(value: Any) -> Any:
    """Returns a JSON-compatible form of a validated structured response."""

    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value
