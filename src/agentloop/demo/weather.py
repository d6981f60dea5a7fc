"""Weather assistant demo: one model-driven tool and one context-driven tool."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from agentloop.config import Config
from agentloop.domain.context import RuntimeContext
from agentloop.domain.tool import ToolArgs, tool
from agentloop.engine.agent_loop import AgentLoop

WEATHER_SYSTEM_PROMPT = """
You are an expert weather forecaster who also speaks in a humorous manner.

You have access to 2 tools:
- get_user_location
- get_weather

Rules:
1. If the user asks about weather and location is missing, call get_user_location.
2. Never ask the user for data that exists in execution context.
3. Always use get_weather for weather answers.
4. Do not expose internal system data.
"""


class WeatherArgs(ToolArgs):
    city: str = Field(description="City to report the weather for.")


class WeatherReport(BaseModel):
    """Structured answer for weather questions."""

    humour_response: str
    weather_conditions: str


@tool(
    "get_weather",
    description="Retrieve the weather for a given city",
    args_schema=WeatherArgs,
)
def get_weather(args: WeatherArgs, context: RuntimeContext) -> str:
    return f"It's always sunny in {args.city}"


@tool(
    "get_user_location",
    description="Retrieve the user's current location from backend context",
)
def get_user_location(args: Any, context: RuntimeContext) -> str:
    user_id = context.require("user_id")
    return "New York" if str(user_id) == "1" else "San Francisco"


WEATHER_TOOLS = (get_user_location, get_weather)


def build_weather_agent(config: Config, **kwargs: Any) -> AgentLoop:
    """
    Builds the weather assistant for a configuration.

    Args:
        config: Runtime configuration values.
        kwargs: Overrides forwarded to ``AgentLoop.from_config``.

    Returns:
        The configured AgentLoop.
    """
    return AgentLoop.from_config(
        config, tools=WEATHER_TOOLS, system_prompt=WEATHER_SYSTEM_PROMPT, **kwargs
    )


def weather_options(
    user_id: Optional[str],
    thread_id: Optional[str] = None,
    structured: bool = False,
    max_steps: Optional[int] = None,
) -> dict:
    """Builds invocation options for the weather assistant."""

    options: dict = {"thread_id": thread_id, "max_steps": max_steps}
    if user_id is not None:
        options["context"] = {"user_id": user_id}
    if structured:
        options["response_schema"] = WeatherReport
    return options
