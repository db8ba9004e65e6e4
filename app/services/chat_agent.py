"""Per-conversation actor: history, prompt state, schedules and turns."""

import asyncio
import os
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from app.clients.anthropic import AnthropicConfig
from app.graphs.conversation import FinishCallback, TurnGraphManager, get_turn_graph_manager
from app.models.conversation import ChatRequest
from app.models.llm import LLMMessage, LLMTool
from app.models.messages import Message, ToolInvocationPart
from app.models.schedule import Schedule
from app.prompts import DEFAULT_PRESET, PromptManager
from app.services.commands import DEFAULT_COMMAND_PREFIX
from app.services.llm import LLMService
from app.services.scheduler import AsyncioTimer, ScheduleManager, Timer
from app.services.storage import MessageStore
from app.services.stream import DataStreamWriter
from app.tools import ToolContext, ToolDefinition, ToolsRegistry, get_tools_registry
from app.tools.schedule_tasks import SCHEDULED_TASK_CALLBACK
from app.utils.logging import get_logger

logger = get_logger(__name__)

TURN_ERROR_MESSAGE = "I apologize, but I'm experiencing technical difficulties. Please try again."


@dataclass
class ChatAgentConfig:
    """Configuration shared by all conversations."""

    max_steps: int = 5
    command_prefix: str = DEFAULT_COMMAND_PREFIX
    default_preset: str = DEFAULT_PRESET
    session_timeout_minutes: int = 60

    @classmethod
    def from_env(cls) -> "ChatAgentConfig":
        """Create configuration from environment variables."""
        return cls(
            max_steps=int(os.getenv("CHAT_MAX_STEPS", "5")),
            command_prefix=os.getenv("CHAT_COMMAND_PREFIX", DEFAULT_COMMAND_PREFIX),
            default_preset=os.getenv("CHAT_DEFAULT_PRESET", DEFAULT_PRESET),
            session_timeout_minutes=int(os.getenv("CHAT_SESSION_TIMEOUT_MINUTES", "60")),
        )


class ChatAgent:
    """One conversation.

    Turns and scheduled-task firings are serialised by the agent's lock, so a
    conversation never has two writers. Agents share no mutable state.
    """

    def __init__(
        self,
        conversation_id: str,
        store: MessageStore,
        registry: ToolsRegistry | None = None,
        config: ChatAgentConfig | None = None,
        external_tools: Iterable[ToolDefinition] = (),
        timer: Timer | None = None,
        llm_service: LLMService | None = None,
        graph_manager: TurnGraphManager | None = None,
        anthropic_config: AnthropicConfig | None = None,
    ):
        """Initialize the agent.

        Args:
            conversation_id: Unique identifier of the conversation
            store: Persistence for the message history
            registry: Tool registry (defaults to the shared one)
            config: Agent configuration
            external_tools: Extra tool definitions merged into the registry
            timer: Timer used for scheduled tasks
            llm_service: Model service; created on first generation when omitted
            graph_manager: Turn graph (defaults to the shared one)
            anthropic_config: Configuration of the lazily created model client
        """
        self.conversation_id = conversation_id
        self.store = store
        self.config = config or ChatAgentConfig()
        self.registry = (registry or get_tools_registry()).combined(external_tools)
        self.prompts = PromptManager(self.config.default_preset)
        self.timer = timer or AsyncioTimer()
        self.schedules = ScheduleManager(self.timer, self._dispatch)
        self.last_activity = datetime.now(UTC)

        self._llm_service = llm_service
        self._anthropic_config = anthropic_config
        self._graph_manager = graph_manager or get_turn_graph_manager()
        self._lock = asyncio.Lock()
        self._callbacks = {SCHEDULED_TASK_CALLBACK: self.execute_task}

    @property
    def llm_service(self) -> LLMService:
        """Model service, created on first use and reused across turns.

        Raises:
            ValueError: If no API key is configured
        """
        if self._llm_service is None:
            self._llm_service = LLMService(config=self._anthropic_config)
        return self._llm_service

    @property
    def model_configured(self) -> bool:
        return self._llm_service is not None or bool(os.getenv("ANTHROPIC_API_KEY"))

    @property
    def busy(self) -> bool:
        """Whether a turn or scheduled task is running."""
        return self._lock.locked()

    def update_activity(self) -> None:
        self.last_activity = datetime.now(UTC)

    def context_factory(self, tool_call_id: str, messages: list[LLMMessage]) -> ToolContext:
        return ToolContext(
            conversation_id=self.conversation_id,
            tool_call_id=tool_call_id,
            messages=messages,
            schedules=self.schedules,
        )

    def llm_tools(self) -> dict[str, LLMTool]:
        return self.registry.get_llm_tools(self.context_factory)

    async def get_messages(self) -> list[Message]:
        return await self.store.load(self.conversation_id)

    def validate_request(self, request: ChatRequest) -> None:
        """Reject submissions that cannot start a turn.

        Raises:
            ValueError: If the submission is empty, mixes tool decisions with
                new content, or its content exceeds the message token limit
        """
        if request.is_empty:
            raise ValueError("Request must contain content or tool responses")

        if request.content and request.tool_responses:
            raise ValueError("Submit tool responses and new content in separate requests")

        if request.content and self.model_configured:
            self.llm_service.client.validate_message_tokens(request.content)

    async def chat(self, request: ChatRequest, on_finish: FinishCallback | None = None) -> AsyncIterator[str]:
        """Run a turn and yield its data-stream lines as they are produced.

        Closing the iterator early (client disconnect) cancels the turn.
        Messages persisted before that point stay persisted.
        """
        self.update_activity()
        stream = DataStreamWriter()
        task = asyncio.create_task(self._run_turn(request, stream, on_finish))

        try:
            async for line in stream:
                yield line
        finally:
            if not task.done():
                logger.info(f"Client disconnected, cancelling turn in conversation {self.conversation_id}")
                task.cancel()

    async def _run_turn(self, request: ChatRequest, stream: DataStreamWriter, on_finish: FinishCallback | None) -> None:
        try:
            async with self._lock:
                messages = self._apply_submission(await self.store.load(self.conversation_id), request)
                await self.store.save(self.conversation_id, messages)
                await self._graph_manager.run_turn(
                    self, messages, stream, on_finish, has_new_message=bool(request.content)
                )
        except asyncio.CancelledError:
            logger.info(f"Turn cancelled in conversation {self.conversation_id}")
            raise
        except Exception as e:
            logger.error(f"Turn failed in conversation {self.conversation_id}: {e}", exc_info=True)
            stream.write_error(TURN_ERROR_MESSAGE)
        finally:
            stream.close()
            self.update_activity()

    def _apply_submission(self, messages: list[Message], request: ChatRequest) -> list[Message]:
        """Fold human tool decisions and new content into the history."""
        if request.tool_responses:
            decisions = {response.tool_call_id: response.approved for response in request.tool_responses}

            if messages and messages[-1].role == "assistant":
                last_message = messages[-1]
                parts = []
                for part in last_message.parts:
                    if isinstance(part, ToolInvocationPart):
                        invocation = part.tool_invocation
                        if invocation.state == "call" and invocation.tool_call_id in decisions:
                            approved = decisions.pop(invocation.tool_call_id)
                            invocation = invocation.approve() if approved else invocation.deny()
                            part = ToolInvocationPart(tool_invocation=invocation)
                    parts.append(part)
                messages = [*messages[:-1], last_message.model_copy(update={"parts": parts})]

            for tool_call_id in decisions:
                logger.warning(f"Ignoring decision for unknown tool call {tool_call_id} in {self.conversation_id}")

        if request.content:
            messages = [*messages, Message.from_text(request.role, request.content)]

        return messages

    async def execute_task(self, description: str, schedule: Schedule) -> None:
        """Record a fired scheduled task and let the assistant respond to it.

        The reply runs as a regular turn under the conversation lock. No
        client is attached, so its stream events are discarded. Without a
        configured model the task is only recorded.
        """
        async with self._lock:
            messages = await self.store.load(self.conversation_id)
            messages.append(Message.from_text("user", f"Running scheduled task: {description}"))
            await self.store.save(self.conversation_id, messages)

            if self.model_configured:
                stream = DataStreamWriter()
                try:
                    await self._graph_manager.run_turn(self, messages, stream)
                finally:
                    stream.close()
            else:
                logger.warning(f"No model configured, scheduled task {schedule.id} recorded without a reply")

        self.update_activity()
        logger.info(f"Ran scheduled task {schedule.id} in conversation {self.conversation_id}")

    async def _dispatch(self, callback: str, payload: str, schedule: Schedule) -> None:
        handler = self._callbacks.get(callback)
        if handler is None:
            logger.warning(f"Dropping scheduled task {schedule.id}: unknown callback {callback}")
            return
        await handler(payload, schedule)

    def close(self) -> None:
        """Cancel every schedule of this conversation."""
        self.schedules.cancel_all()
        if isinstance(self.timer, AsyncioTimer):
            self.timer.shutdown()
