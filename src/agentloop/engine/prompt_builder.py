"""Prompt construction for the agent loop."""

from typing import List, Optional, Sequence

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from agentloop.engine.structured_output import ResponseContract

COMPLIANCE_FLAG = "compliance_request"


class PromptBuilder:
    """
    Prepends the fixed system policy to the conversation.

    The system prompt is policy, not memory: it is added to every model
    request and never stored in a thread.

    Args:
        system_prompt: Fixed agent instructions, if any.
    """

    def __init__(self, system_prompt: Optional[str] = None) -> None:
        self.system_prompt = (system_prompt or "").strip()

    def build_system_prompt(self, contract: Optional[ResponseContract] = None) -> str:
        """
        Builds the system prompt text.

        Args:
            contract: Structured-output contract whose instructions are appended.

        Returns:
            The system prompt, possibly empty.
        """
        parts = [self.system_prompt] if self.system_prompt else []
        if contract is not None:
            parts.append(contract.instructions())
        return "\n\n".join(parts)

    def build_messages(
        self,
        messages: Sequence[BaseMessage],
        contract: Optional[ResponseContract] = None,
    ) -> List[BaseMessage]:
        """
        Builds the model-visible message list.

        Args:
            messages: Conversation history (already compacted).
            contract: Optional structured-output contract.

        Returns:
            The ordered list of messages for the model call.
        """
        system_text = self.build_system_prompt(contract)
        if not system_text:
            return list(messages)
        return [SystemMessage(content=system_text), *messages]

    @staticmethod
    def build_compliance_request(
        contract: ResponseContract, feedback: Optional[str] = None
    ) -> HumanMessage:
        """
        Builds the re-prompt sent after a non-compliant final answer.

        The message is flagged so history policies can tell it apart from a
        real user turn.
        """
        return HumanMessage(
            content=feedback or contract.feedback(),
            additional_kwargs={COMPLIANCE_FLAG: True},
        )


def is_user_turn(message: BaseMessage) -> bool:
    """Returns True for user messages that are not compliance re-prompts."""

    return isinstance(message, HumanMessage) and not message.additional_kwargs.get(
        COMPLIANCE_FLAG
    )
