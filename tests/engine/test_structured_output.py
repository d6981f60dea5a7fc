import pytest
from pydantic import BaseModel, ValidationError
from typing_extensions import TypedDict

from agentloop.engine.structured_output import (
    RESPONSE_TOOL_NAME,
    ResponseContract,
    dump_structured,
)


class Pair(TypedDict):
    a: str
    b: float


class Report(BaseModel):
    summary: str


def test_coerce_wraps_schemas_and_passes_contracts() -> None:
    contract = ResponseContract.coerce(Pair)

    assert isinstance(contract, ResponseContract)
    assert ResponseContract.coerce(contract) is contract
    assert ResponseContract.coerce(None) is None


def test_response_tool_exposes_schema() -> None:
    descriptor = ResponseContract(Pair).as_openai_tool()

    assert descriptor["function"]["name"] == RESPONSE_TOOL_NAME
    parameters = descriptor["function"]["parameters"]
    assert set(parameters["properties"]) == {"a", "b"}
    assert sorted(parameters["required"]) == ["a", "b"]
    assert "title" not in parameters


def test_validate_accepts_conforming_payload() -> None:
    contract = ResponseContract(Pair)

    assert contract.validate({"a": "x", "b": 1.5}) == {"a": "x", "b": 1.5}
    assert contract.validate({"a": "x", "b": 2}) == {"a": "x", "b": 2.0}


def test_validate_rejects_missing_field() -> None:
    with pytest.raises(ValidationError):
        ResponseContract(Pair).validate({"a": "x"})


def test_feedback_names_failing_fields() -> None:
    contract = ResponseContract(Pair)
    with pytest.raises(ValidationError) as exc_info:
        contract.validate({"a": "x"})

    feedback = contract.feedback(exc_info.value)

    assert "b: Field required" in feedback
    assert RESPONSE_TOOL_NAME in feedback
    assert RESPONSE_TOOL_NAME in contract.feedback()


def test_instructions_embed_schema() -> None:
    instructions = ResponseContract(Report).instructions()

    assert RESPONSE_TOOL_NAME in instructions
    assert '"summary"' in instructions


def test_dump_structured_handles_models() -> None:
    assert dump_structured(Report(summary="ok")) == {"summary": "ok"}
    assert dump_structured({"a": "x"}) == {"a": "x"}
