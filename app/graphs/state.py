"""State definitions for the LangGraph turn flow."""

from typing import Literal

from pydantic import BaseModel, Field

from app.models.llm import LLMUsage
from app.models.messages import Message
from app.services.commands import Command

NextStep = Literal["command", "resolve", "generate", "finalize", "error", "end"]


class TurnState(BaseModel):
    """State of a single conversation turn.

    Created from the persisted history (with the inbound submission already
    applied) and passed through all nodes of the turn graph.
    """

    conversation_id: str
    messages: list[Message] = Field(default_factory=list)

    # Whether this turn's submission appended the last message
    has_new_message: bool = False

    # Set by the start node when the new user message is a control command
    command: Command | None = None

    # Generation output
    assistant_message: Message | None = None
    finish_reason: str | None = None
    usage: LLMUsage | None = None

    # Control flow
    next_step: NextStep | None = None
    error: str | None = None

    class Config:
        """Pydantic configuration."""

        arbitrary_types_allowed = True
