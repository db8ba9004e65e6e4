"""API endpoints for the chat agent service."""

import os
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from app import __version__
from app.models.conversation import (
    ApiKeyCheckResponse,
    ChatRequest,
    ConfirmationToolsResponse,
    HealthResponse,
    MessagesResponse,
    PromptStateResponse,
    SchedulesResponse,
)
from app.models.llm import FinishInfo
from app.prompts import preset_names
from app.services.chat_agent import ChatAgent
from app.services.conversation_manager import conversation_manager
from app.tools import get_tools_registry
from app.utils.errors import ConversationNotFoundError
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def _require_conversation(conversation_id: str) -> ChatAgent:
    try:
        return await conversation_manager.require(conversation_id)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


def _log_finish(conversation_id: str):
    def on_finish(finish: FinishInfo) -> None:
        logger.info(
            f"Conversation {conversation_id} finished ({finish.finish_reason}) - "
            f"Input: {finish.usage.input_tokens}, Output: {finish.usage.output_tokens}, "
            f"Cache hits: {finish.usage.cache_read_input_tokens}"
        )

    return on_finish


@router.post("/conversation", tags=["Conversation"])
async def handle_conversation(request: ChatRequest) -> StreamingResponse:
    """Submit a message or tool decisions and stream the assistant's turn.

    The response body is a data stream: one ``<code>:<json>`` line per event.
    """
    if request.is_empty:
        raise HTTPException(status_code=400, detail="Request must contain content or tool responses")

    if request.conversation_id:
        logger.info(f"Validating existing conversation: {request.conversation_id}")
        try:
            agent = await conversation_manager.require(request.conversation_id)
        except ConversationNotFoundError as e:
            logger.warning(f"Invalid conversation ID provided: {request.conversation_id}")
            raise HTTPException(status_code=400, detail=f"Invalid conversation ID: {request.conversation_id}") from e
    else:
        logger.info("Creating new conversation")
        agent = await conversation_manager.get_or_create()

    conversation_id = agent.conversation_id

    try:
        agent.validate_request(request)
    except ValueError as e:
        logger.warning(f"Message validation error for conversation {conversation_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e

    if request.content:
        logger.info(f"Processing message for conversation {conversation_id}: {request.content[:50]}...")
    else:
        logger.info(f"Processing {len(request.tool_responses)} tool responses for conversation {conversation_id}")

    return StreamingResponse(
        agent.chat(request, on_finish=_log_finish(conversation_id)),
        media_type="text/plain; charset=utf-8",
        headers={"X-Conversation-Id": conversation_id, "x-vercel-ai-data-stream": "v1"},
    )


@router.get("/conversation/{conversation_id}/messages", response_model=MessagesResponse, tags=["Conversation"])
async def get_messages(conversation_id: str) -> MessagesResponse:
    """Persisted history of a conversation."""
    agent = await _require_conversation(conversation_id)
    return MessagesResponse(conversation_id=conversation_id, messages=await agent.get_messages())


@router.delete("/conversation/{conversation_id}", status_code=204, tags=["Conversation"])
async def delete_conversation(conversation_id: str) -> None:
    """Drop a conversation and cancel its scheduled tasks."""
    if not await conversation_manager.delete(conversation_id):
        raise HTTPException(status_code=404, detail=f"Conversation not found: {conversation_id}")


@router.get("/conversation/{conversation_id}/schedules", response_model=SchedulesResponse, tags=["Schedules"])
async def get_schedules(conversation_id: str) -> SchedulesResponse:
    """Scheduled tasks of a conversation."""
    agent = await _require_conversation(conversation_id)
    return SchedulesResponse(conversation_id=conversation_id, schedules=agent.schedules.get_schedules())


@router.get("/conversation/{conversation_id}/prompt", response_model=PromptStateResponse, tags=["Conversation"])
async def get_prompt_state(conversation_id: str) -> PromptStateResponse:
    """Active prompt preset and configuration of a conversation."""
    agent = await _require_conversation(conversation_id)
    prompt_config = agent.prompts.config
    return PromptStateResponse(
        conversation_id=conversation_id,
        preset=agent.prompts.current_preset,
        language=prompt_config.language,
        personality=prompt_config.personality,
        domain=prompt_config.domain,
        features=list(prompt_config.features),
        presets=preset_names(),
    )


@router.get("/tools/confirmation", response_model=ConfirmationToolsResponse, tags=["Tools"])
async def get_confirmation_tools() -> ConfirmationToolsResponse:
    """Default tools a client must render approve/deny controls for."""
    return ConfirmationToolsResponse(tools=get_tools_registry().tools_requiring_confirmation())


@router.get(
    "/conversation/{conversation_id}/tools/confirmation", response_model=ConfirmationToolsResponse, tags=["Tools"]
)
async def get_conversation_confirmation_tools(conversation_id: str) -> ConfirmationToolsResponse:
    """Confirmation-required tools of a conversation, including its external tools."""
    agent = await _require_conversation(conversation_id)
    return ConfirmationToolsResponse(tools=agent.registry.tools_requiring_confirmation())


@router.get("/check-api-key", response_model=ApiKeyCheckResponse, tags=["Health"])
async def check_api_key() -> ApiKeyCheckResponse:
    """Whether the model API key is configured."""
    success = bool(os.getenv("ANTHROPIC_API_KEY"))
    if not success:
        logger.error("ANTHROPIC_API_KEY is not set, set it locally or in the deployment environment")
    return ApiKeyCheckResponse(success=success)


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
