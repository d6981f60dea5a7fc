import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage
from rich.console import Console
from rich.markup import escape

from agentloop.config import Config
from agentloop.config_provider import ConfigProvider
from agentloop.demo.weather import build_weather_agent, weather_options
from agentloop.domain.exceptions import AgentLoopError
from agentloop.domain.messages import message_text
from agentloop.engine.structured_output import dump_structured
from agentloop.infra.logging_setup import setup_logging
from agentloop.infra.store_factory import build_conversation_store
from agentloop.llm.model_gateway import ChatModelGateway

app = typer.Typer()
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="JSON config file (default .agentloop/config.json)."
    ),
    env_file: Optional[Path] = typer.Option(
        None, "--env-file", help="Env file with AGENTLOOP_* settings (default .env)."
    ),
):
    """
    Tool-calling agent loop demo commands.
    """
    try:
        ctx.obj = ConfigProvider(config_path, env_file=env_file)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)


def _load_config(ctx: typer.Context) -> Config:
    provider = ctx.obj or ConfigProvider()
    config = provider.load()
    setup_logging(config.log_level)
    return config


def _render_message(message: BaseMessage) -> str:
    """Formats one history entry for display."""

    if isinstance(message, AIMessage) and message.tool_calls:
        calls = ", ".join(
            f"{call['name']}({json.dumps(call.get('args') or {}, sort_keys=True)})"
            for call in message.tool_calls
        )
        return f"[cyan]assistant[/cyan] -> {escape(calls)}"
    if isinstance(message, ToolMessage):
        label = "tool error" if message.status == "error" else "tool"
        return f"[magenta]{label}[/magenta] {message.name}: {escape(message_text(message))}"
    if isinstance(message, HumanMessage):
        return f"[bold]user[/bold]: {escape(message_text(message))}"
    return f"[cyan]{message.type}[/cyan]: {escape(message_text(message))}"


@app.command()
def ask(
    ctx: typer.Context,
    question: str,
    user_id: Optional[str] = typer.Option(
        "1", "--user-id", "-u", help="Trusted user id passed as runtime context."
    ),
    thread: Optional[str] = typer.Option(
        None, "--thread", "-t", help="Thread id for conversation memory."
    ),
    structured: bool = typer.Option(
        False, "--structured", help="Require a structured WeatherReport answer."
    ),
    max_steps: Optional[int] = typer.Option(
        None, "--max-steps", min=1, help="Step limit for this invocation."
    ),
    show_history: bool = typer.Option(
        False, "--show-history", help="Print the full thread history."
    ),
):
    """
    Ask the weather assistant a question.
    """
    config = _load_config(ctx)
    agent = build_weather_agent(config)
    options = weather_options(user_id, thread, structured, max_steps)
    try:
        result = asyncio.run(
            agent.invoke({"messages": [{"role": "user", "content": question}]}, options)
        )
    except AgentLoopError as e:
        console.print(f"[red]Error ({type(e).__name__}):[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    if show_history:
        for message in result.messages:
            console.print(_render_message(message))
    if result.structured_response is not None:
        console.print_json(json.dumps(dump_structured(result.structured_response)))
    else:
        console.print(f"[green]{escape(result.final_text())}[/green]")


@app.command()
def chat(
    ctx: typer.Context,
    prompt: str,
    stream: bool = typer.Option(False, "--stream", help="Stream the reply."),
):
    """
    Send a single prompt to the configured model, without tools.
    """
    config = _load_config(ctx)
    gateway = ChatModelGateway.from_config(config)
    history = [HumanMessage(content=prompt)]

    async def _stream() -> None:
        async for chunk in gateway.stream_text(history):
            console.print(chunk, end="", soft_wrap=True, markup=False)
        console.print()

    try:
        if stream:
            asyncio.run(_stream())
        else:
            reply = asyncio.run(gateway.complete(history, []))
            console.print(f"[green]{escape(message_text(reply.message))}[/green]")
    except AgentLoopError as e:
        console.print(f"[red]Error ({type(e).__name__}):[/red] {escape(str(e))}")
        raise typer.Exit(code=1)


@app.command()
def threads(ctx: typer.Context):
    """
    List stored conversation threads.
    """
    config = _load_config(ctx)
    store = build_conversation_store(config)
    ids = store.thread_ids()
    if not ids:
        console.print("[yellow]No threads stored.[/yellow]")
        return
    for thread_id in ids:
        console.print(thread_id)


@app.command()
def history(ctx: typer.Context, thread_id: str):
    """
    Print the stored history of a thread.
    """
    config = _load_config(ctx)
    store = build_conversation_store(config)
    try:
        messages = store.load(thread_id)
    except AgentLoopError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)
    if not messages:
        console.print(f"[yellow]Thread '{thread_id}' is empty.[/yellow]")
        return
    for message in messages:
        console.print(_render_message(message))


if __name__ == "__main__":
    app()
