import logging
import operator
from contextlib import nullcontext
from dataclasses import dataclass
from enum import Enum
from typing import (
    Annotated,
    Any,
    Dict,
    Iterable,
    List,
    Literal,
    Mapping,
    Optional,
    TypedDict,
    Union,
)
from uuid import uuid4

from langchain_core.messages import AIMessage, BaseMessage, ToolMessage
from langchain_core.runnables import RunnableConfig
from langgraph.errors import GraphRecursionError
from langgraph.graph import END, StateGraph
from pydantic import ValidationError

from agentloop.config import Config
from agentloop.domain.context import RuntimeContext
from agentloop.domain.exceptions import (
    AgentLoopError,
    RecursionLimitExceeded,
    SchemaNotSatisfiedError,
)
from agentloop.domain.invocation import (
    InvocationInput,
    InvocationOptions,
    InvocationResult,
)
from agentloop.domain.tool import Tool
from agentloop.engine.history_policy import HistoryPolicy, KeepAllHistory, TrimHistory
from agentloop.engine.prompt_builder import PromptBuilder
from agentloop.engine.structured_output import ResponseContract
from agentloop.engine.tool_registry import ToolRegistry
from agentloop.engine.tool_runner import ToolRunner
from agentloop.infra.conversation_store import ConversationStore
from agentloop.infra.in_memory_conversation_store import InMemoryConversationStore
from agentloop.llm.model_gateway import ModelGateway
from agentloop.llm.model_reply import StructuredFinal, ToolCalls

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 25
_RUN_KEY = "agentloop_run"


class LoopState(str, Enum):
    """States of one invocation."""

    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    TOOL_DISPATCH = "tool_dispatch"
    DONE = "done"
    FAILED = "failed"


class AgentState(TypedDict):
    messages: Annotated[list, operator.add]
    steps: int
    phase: LoopState
    structured_response: Optional[Any]
    schema_error: Optional[str]


@dataclass(frozen=True)
class _RunSettings:
    """Per-invocation settings handed to graph nodes through the run config."""

    invocation_id: str
    context: RuntimeContext
    contract: Optional[ResponseContract]
    max_steps: int
    thread_id: Optional[str]


class AgentLoop:
    """
    Drives the reason/act/observe cycle for a set of tools.

    Args:
        gateway: Model backend.
        tools: Tools the model may call; names must be unique.
        system_prompt: Fixed instructions sent ahead of every model call.
        store: Conversation store for thread memory.
        max_steps: Default step limit per invocation.
        response_schema: Default structured-output schema.
        history_policy: Compaction applied to the model-visible history.
        escalate_tool_errors: Fail the invocation on tool errors instead of
            reporting them to the model.

    Raises:
        DuplicateNameError: If two tools share a name.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        tools: Iterable[Tool] = (),
        system_prompt: Optional[str] = None,
        store: Optional[ConversationStore] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
        response_schema: Optional[Any] = None,
        history_policy: Optional[HistoryPolicy] = None,
        escalate_tool_errors: bool = False,
    ) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self.gateway = gateway
        self.registry = ToolRegistry(tools)
        self.prompt_builder = PromptBuilder(system_prompt)
        self.store = store or InMemoryConversationStore()
        self.max_steps = max_steps
        self.default_contract = ResponseContract.coerce(response_schema)
        self.history_policy: HistoryPolicy = history_policy or KeepAllHistory()
        self.tool_runner = ToolRunner(self.registry, escalate_errors=escalate_tool_errors)
        self._tools: List[Tool] = self.registry.list_tools()
        self.graph = self._build_graph()

    @classmethod
    def from_config(
        cls,
        config: Config,
        tools: Iterable[Tool] = (),
        system_prompt: Optional[str] = None,
        **kwargs: Any,
    ) -> "AgentLoop":
        """
        Builds a loop wired to the configured endpoint and store.

        Args:
            config: Runtime configuration values.
            tools: Tools the model may call.
            system_prompt: Fixed agent instructions.
            kwargs: Overrides forwarded to the constructor.

        Returns:
            A ready-to-use AgentLoop.
        """
        from agentloop.infra.store_factory import build_conversation_store
        from agentloop.llm.model_gateway import ChatModelGateway

        kwargs.setdefault("store", build_conversation_store(config))
        kwargs.setdefault("max_steps", config.max_steps)
        if config.history_max_messages is not None:
            kwargs.setdefault(
                "history_policy", TrimHistory(config.history_max_messages)
            )
        gateway = kwargs.pop("gateway", None) or ChatModelGateway.from_config(config)
        return cls(gateway, tools=tools, system_prompt=system_prompt, **kwargs)

    def _build_graph(self):
        """
        Builds the reason/act graph.

        Returns:
            The compiled LangGraph graph executor.
        """
        builder = StateGraph(AgentState)
        builder.add_node("reason", self.reason)
        builder.add_node("act", self.act)

        builder.set_entry_point("reason")
        builder.add_conditional_edges(
            "reason",
            self.route,
            {
                LoopState.TOOL_DISPATCH.value: "act",
                LoopState.AWAITING_MODEL.value: "reason",
                LoopState.DONE.value: END,
            },
        )
        builder.add_edge("act", "reason")
        return builder.compile()

    def route(
        self, state: AgentState
    ) -> Literal["tool_dispatch", "awaiting_model", "done"]:
        """Selects the next node from the phase set by ``reason``."""

        phase = state["phase"]
        if phase == LoopState.TOOL_DISPATCH:
            return "tool_dispatch"
        if phase == LoopState.AWAITING_MODEL:
            return "awaiting_model"
        return "done"

    async def invoke(
        self,
        input: Union[InvocationInput, Mapping[str, Any]],
        options: Union[InvocationOptions, Mapping[str, Any], None] = None,
    ) -> InvocationResult:
        """
        Runs one invocation to completion.

        Args:
            input: ``{"messages": [{"role", "content"}, ...]}``.
            options: ``thread_id``, ``context``, ``max_steps``, ``response_schema``.

        Returns:
            The full history plus the structured response, if requested.

        Raises:
            ConcurrentThreadAccessError: If the thread already has an
                invocation in flight.
            RecursionLimitExceeded: If the step limit is exceeded.
            SchemaNotSatisfiedError: If structured output was never produced.
            GatewayError: If the model call fails.
        """
        payload = (
            input
            if isinstance(input, InvocationInput)
            else InvocationInput.model_validate(input)
        )
        opts = (
            options
            if isinstance(options, InvocationOptions)
            else InvocationOptions.model_validate(options or {})
        )
        run = _RunSettings(
            invocation_id=str(uuid4()),
            context=RuntimeContext.coerce(opts.context),
            contract=ResponseContract.coerce(opts.response_schema)
            or self.default_contract,
            max_steps=opts.max_steps or self.max_steps,
            thread_id=opts.thread_id,
        )
        thread_id = opts.thread_id
        lease = self.store.lease(thread_id) if thread_id is not None else nullcontext()

        with lease:
            prior = self.store.load(thread_id) if thread_id is not None else []
            seed = prior + payload.to_messages()
            logger.info(
                "Agent invocation start",
                extra={
                    "invocation_id": run.invocation_id,
                    "thread_id": thread_id,
                    "replayed_messages": len(prior),
                    "max_steps": run.max_steps,
                },
            )
            initial_state: AgentState = {
                "messages": seed,
                "steps": 0,
                "phase": LoopState.AWAITING_MODEL,
                "structured_response": None,
                "schema_error": None,
            }
            try:
                final = await self.graph.ainvoke(
                    initial_state,
                    config={
                        "recursion_limit": 2 * run.max_steps + 4,
                        "configurable": {_RUN_KEY: run},
                    },
                )
            except GraphRecursionError as exc:
                raise RecursionLimitExceeded(run.max_steps, messages=seed) from exc
            except AgentLoopError as exc:
                logger.warning(
                    "Agent invocation failed",
                    extra={
                        "invocation_id": run.invocation_id,
                        "thread_id": thread_id,
                        "state": LoopState.FAILED.value,
                        "error_class": exc.__class__.__name__,
                    },
                )
                raise

            messages: List[BaseMessage] = list(final["messages"])
            if thread_id is not None:
                self.store.save(thread_id, messages)

        logger.info(
            "Agent invocation complete",
            extra={
                "invocation_id": run.invocation_id,
                "thread_id": thread_id,
                "state": LoopState.DONE.value,
                "steps": final["steps"],
            },
        )
        return InvocationResult(
            messages=messages,
            structured_response=final.get("structured_response"),
            steps=final["steps"],
        )

    async def reason(self, state: AgentState, config: RunnableConfig) -> Dict[str, Any]:
        """
        Calls the model with the current history.

        Args:
            state: The current agent graph state.
            config: Run config carrying the per-invocation settings.

        Returns:
            Updated state values containing new model messages and the next phase.
        """
        run = _run_settings(config)
        history: List[BaseMessage] = state["messages"]
        steps = state["steps"] + 1
        if steps > run.max_steps:
            if run.contract is not None and state.get("schema_error"):
                raise SchemaNotSatisfiedError(
                    run.max_steps, state["schema_error"], messages=history
                )
            raise RecursionLimitExceeded(run.max_steps, messages=history)

        view = self.history_policy.compact(history)
        prompt = self.prompt_builder.build_messages(view, run.contract)
        logger.debug(
            "Model step",
            extra={
                "invocation_id": run.invocation_id,
                "step": steps,
                "visible_messages": len(prompt),
            },
        )
        try:
            reply = await self.gateway.complete(prompt, self._tools, run.contract)
        except AgentLoopError as exc:
            exc.messages = list(history)
            raise

        if isinstance(reply, ToolCalls):
            return {
                "messages": [reply.message],
                "steps": steps,
                "phase": LoopState.TOOL_DISPATCH,
                "schema_error": None,
            }

        if run.contract is None:
            return {
                "messages": [reply.message],
                "steps": steps,
                "phase": LoopState.DONE,
                "schema_error": None,
            }

        if not isinstance(reply, StructuredFinal):
            feedback = run.contract.feedback()
            return {
                "messages": [
                    reply.message,
                    self.prompt_builder.build_compliance_request(run.contract, feedback),
                ],
                "steps": steps,
                "phase": LoopState.AWAITING_MODEL,
                "schema_error": "final answer was plain text",
            }

        try:
            value = run.contract.validate(reply.payload)
        except ValidationError as exc:
            feedback = run.contract.feedback(exc)
            return {
                "messages": [reply.message, self._feedback_message(run, reply, feedback)],
                "steps": steps,
                "phase": LoopState.AWAITING_MODEL,
                "schema_error": str(exc),
            }

        new_messages: List[BaseMessage] = [reply.message]
        if reply.tool_call_id is not None:
            new_messages.append(
                ToolMessage(
                    content="Final response accepted.",
                    tool_call_id=reply.tool_call_id,
                    name=run.contract.tool_name,
                )
            )
        return {
            "messages": new_messages,
            "steps": steps,
            "phase": LoopState.DONE,
            "structured_response": value,
            "schema_error": None,
        }

    async def act(self, state: AgentState, config: RunnableConfig) -> Dict[str, Any]:
        """
        Executes tool calls requested by the model.

        Args:
            state: The current agent graph state.
            config: Run config carrying the per-invocation settings.

        Returns:
            Updated state values containing tool output messages.
        """
        run = _run_settings(config)
        last_message = state["messages"][-1]
        if not isinstance(last_message, AIMessage) or not last_message.tool_calls:
            return {"messages": [], "phase": LoopState.AWAITING_MODEL}

        try:
            results = await self.tool_runner.run(last_message.tool_calls, run.context)
        except AgentLoopError as exc:
            exc.messages = list(state["messages"])
            raise
        return {"messages": results, "phase": LoopState.AWAITING_MODEL}

    @staticmethod
    def _feedback_message(
        run: _RunSettings, reply: StructuredFinal, feedback: str
    ) -> BaseMessage:
        # A tool call must be answered by a tool result for the thread to replay.
        if reply.tool_call_id is not None and run.contract is not None:
            return ToolMessage(
                content=feedback,
                tool_call_id=reply.tool_call_id,
                name=run.contract.tool_name,
                status="error",
            )
        return PromptBuilder.build_compliance_request(run.contract, feedback)


def _run_settings(config: RunnableConfig) -> _RunSettings:
    return config["configurable"][_RUN_KEY]

