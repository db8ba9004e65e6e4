"""Request and response models for the HTTP API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.models.messages import Message
from app.models.schedule import Schedule


class ToolResponse(BaseModel):
    """A human decision on a pending tool invocation."""

    tool_call_id: str
    approved: bool


class ChatRequest(BaseModel):
    """Inbound message submission."""

    conversation_id: str | None = None
    role: Literal["user", "assistant", "system"] = "user"
    content: str | None = None
    tool_responses: list[ToolResponse] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.content and not self.tool_responses


class MessagesResponse(BaseModel):
    """Persisted history of a conversation."""

    conversation_id: str
    messages: list[Message]


class SchedulesResponse(BaseModel):
    """Scheduled tasks of a conversation."""

    conversation_id: str
    schedules: list[Schedule]


class PromptStateResponse(BaseModel):
    """Active prompt preset and configuration."""

    conversation_id: str
    preset: str | None
    language: str
    personality: str
    domain: str | None
    features: list[str]
    presets: list[str]


class ConfirmationToolsResponse(BaseModel):
    """Tools that require human approval before they run."""

    tools: list[str]


class ApiKeyCheckResponse(BaseModel):
    """Whether the model provider is configured."""

    success: bool


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
