"""Message and conversation data models."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from cuid2 import cuid_wrapper
from pydantic import BaseModel, Field

cuid = cuid_wrapper()


class Approval(StrEnum):
    """Wire values written into a tool result by the approval surface."""

    YES = "Yes, confirmed."
    NO = "No, denied."


class ToolCallStatus(StrEnum):
    """Lifecycle of a tool invocation."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    EXECUTED = "executed"


class ToolInvocation(BaseModel):
    """A model-issued request to run a tool."""

    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)
    state: Literal["call", "result"] = "call"
    result: Any = None

    @property
    def status(self) -> ToolCallStatus:
        """Tagged view of the call/result pair.

        A result equal to one of the approval sentinels is a control signal,
        not a payload.
        """
        if self.state != "result":
            return ToolCallStatus.PENDING
        if isinstance(self.result, str):
            if self.result == Approval.YES:
                return ToolCallStatus.APPROVED
            if self.result == Approval.NO:
                return ToolCallStatus.DENIED
        return ToolCallStatus.EXECUTED

    def approve(self) -> "ToolInvocation":
        """Return a copy marked as approved by a human."""
        return self.model_copy(update={"state": "result", "result": Approval.YES.value})

    def deny(self) -> "ToolInvocation":
        """Return a copy marked as denied by a human."""
        return self.model_copy(update={"state": "result", "result": Approval.NO.value})

    def with_result(self, result: Any) -> "ToolInvocation":
        """Return a copy carrying a concrete result."""
        return self.model_copy(update={"state": "result", "result": result})


class TextPart(BaseModel):
    """Literal text content."""

    type: Literal["text"] = "text"
    text: str


class ToolInvocationPart(BaseModel):
    """A tool invocation embedded in a message."""

    type: Literal["tool-invocation"] = "tool-invocation"
    tool_invocation: ToolInvocation


Part = Annotated[TextPart | ToolInvocationPart, Field(discriminator="type")]


class Message(BaseModel):
    """A message in a conversation."""

    id: str = Field(default_factory=cuid)
    role: Literal["user", "assistant", "system"]
    parts: list[Part] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_text(cls, role: Literal["user", "assistant", "system"], text: str) -> "Message":
        """Build a single-part text message."""
        return cls(role=role, parts=[TextPart(text=text)])

    @property
    def content(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(part.text for part in self.parts if isinstance(part, TextPart))

    @property
    def tool_invocations(self) -> list[ToolInvocation]:
        """Tool invocations in part order."""
        return [part.tool_invocation for part in self.parts if isinstance(part, ToolInvocationPart)]
