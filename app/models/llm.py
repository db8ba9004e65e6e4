"""LLM-related data models and types (provider-agnostic)."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel

from app.models.messages import Message


# Content block types
class TextBlock(BaseModel):
    """Text content block."""

    type: Literal["text"] = "text"
    text: str

    class Config:
        extra = "ignore"  # Ignore any additional fields from Anthropic


class ToolUseBlock(BaseModel):
    """Tool use content block."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]

    class Config:
        extra = "ignore"


class ToolResultBlock(BaseModel):
    """Tool result content block."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False

    class Config:
        extra = "ignore"


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock


class LLMMessage(BaseModel):
    """A message in neutral role/content form."""

    role: Literal["user", "assistant", "system"]
    content: str | list[ContentBlock]


@dataclass
class LLMTool:
    """Tool schema handed to the model.

    Tools without a callable require human confirmation: the agent loop stops
    when the model asks for one.
    """

    name: str
    description: str
    input_schema: dict[str, Any]
    callable: Callable[[dict[str, Any], str, list[LLMMessage]], Awaitable[Any]] | None = None

    @property
    def requires_confirmation(self) -> bool:
        return self.callable is None


@dataclass
class LLMUsage:
    """Token/resource usage information from LLM provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    def add(self, other: "LLMUsage") -> None:
        """Accumulate another usage record into this one."""
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.total_tokens += other.total_tokens
        self.cache_creation_input_tokens += other.cache_creation_input_tokens
        self.cache_read_input_tokens += other.cache_read_input_tokens

    @property
    def cache_hit_rate(self) -> float:
        """Calculate cache hit rate as percentage."""
        total_input = self.input_tokens + self.cache_read_input_tokens + self.cache_creation_input_tokens
        if total_input == 0:
            return 0.0
        return (self.cache_read_input_tokens / total_input) * 100


# Anthropic stop reasons mapped onto stream finish reasons
FINISH_REASONS: dict[str, str] = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
    "tool_use": "tool-calls",
}


def to_finish_reason(stop_reason: str | None) -> str:
    """Translate a provider stop reason into a finish reason."""
    if stop_reason is None:
        return "unknown"
    return FINISH_REASONS.get(stop_reason, "other")


@dataclass
class FinishInfo:
    """Payload of the per-turn completion callback."""

    finish_reason: str
    usage: LLMUsage = field(default_factory=LLMUsage)


@dataclass
class AgentLoopResult:
    """Result from executing a streaming agent loop."""

    message: Message
    stop_reason: str | None
    steps: int
    usage: LLMUsage

    @property
    def finish_reason(self) -> str:
        return to_finish_reason(self.stop_reason)
