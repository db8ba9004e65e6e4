"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from app.models.llm import LLMMessage

if TYPE_CHECKING:
    from app.services.scheduler import ScheduleManager

NO_EXECUTOR_RESULT = "Error: No execute function found on tool"


@dataclass
class ToolContext:
    """What a tool sees about the conversation it runs in."""

    conversation_id: str
    tool_call_id: str
    messages: list[LLMMessage] = field(default_factory=list)
    schedules: "ScheduleManager | None" = None


ToolHandler = Callable[[BaseModel, ToolContext], Awaitable[Any]]


@dataclass
class ToolDefinition:
    """Definition of a tool available to the AI assistant.

    A tool with ``auto_execute=False`` requires a human approval before its
    handler runs. A tool without a handler can be offered to the model but can
    never produce a result of its own.
    """

    name: str
    description: str
    input_schema_class: type[BaseModel]
    handler: ToolHandler | None = None
    auto_execute: bool = True

    @property
    def requires_confirmation(self) -> bool:
        return not self.auto_execute or self.handler is None

    @property
    def has_executor(self) -> bool:
        return self.handler is not None

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        return self.input_schema_class.model_json_schema()

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)
