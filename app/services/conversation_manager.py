"""Conversation management for in-memory storage."""

from datetime import UTC, datetime, timedelta

from cuid2 import cuid_wrapper

from app.services.chat_agent import ChatAgent, ChatAgentConfig
from app.services.storage import InMemoryMessageStore, MessageStore
from app.tools import ToolsRegistry
from app.utils.errors import ConversationNotFoundError
from app.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


class ConversationManager:
    """Keeps one ChatAgent per live conversation."""

    def __init__(
        self,
        store: MessageStore | None = None,
        registry: ToolsRegistry | None = None,
        config: ChatAgentConfig | None = None,
    ):
        """Initialize conversation manager.

        Args:
            store: Message persistence shared by all conversations
            registry: Tool registry handed to every agent
            config: Agent configuration, including the idle timeout
        """
        self.store = store or InMemoryMessageStore()
        self.registry = registry
        self.config = config or ChatAgentConfig.from_env()
        self.conversations: dict[str, ChatAgent] = {}
        self.session_timeout = timedelta(minutes=self.config.session_timeout_minutes)

    async def get_or_create(self, conversation_id: str | None = None) -> ChatAgent:
        """Get existing conversation or create new one.

        Args:
            conversation_id: Optional existing conversation ID

        Returns:
            ChatAgent (existing or newly created)
        """
        await self._cleanup_expired_conversations()

        if conversation_id and conversation_id in self.conversations:
            agent = self.conversations[conversation_id]
            agent.update_activity()
            return agent

        new_conversation_id = conversation_id or cuid()
        agent = ChatAgent(new_conversation_id, self.store, registry=self.registry, config=self.config)
        self.conversations[new_conversation_id] = agent
        logger.info(f"Created conversation {new_conversation_id}")
        return agent

    async def get(self, conversation_id: str) -> ChatAgent | None:
        """Get existing conversation by ID.

        Returns:
            ChatAgent if found and not expired, None otherwise
        """
        await self._cleanup_expired_conversations()

        agent = self.conversations.get(conversation_id)
        if agent:
            agent.update_activity()
        return agent

    async def require(self, conversation_id: str) -> ChatAgent:
        """Get a live conversation or raise ConversationNotFoundError."""
        agent = await self.get(conversation_id)
        if agent is None:
            raise ConversationNotFoundError(conversation_id)
        return agent

    async def delete(self, conversation_id: str) -> bool:
        """Delete a conversation, its history and its schedules.

        Returns:
            True if the conversation was deleted, False if not found
        """
        agent = self.conversations.pop(conversation_id, None)
        if agent is None:
            return False

        agent.close()
        await self.store.delete(conversation_id)
        logger.info(f"Deleted conversation {conversation_id}")
        return True

    async def _cleanup_expired_conversations(self) -> None:
        """Remove idle conversations.

        Conversations with a running turn or pending schedules never expire.
        """
        current_time = datetime.now(UTC)
        expired = [
            conversation_id
            for conversation_id, agent in self.conversations.items()
            if current_time - agent.last_activity > self.session_timeout
            and not agent.busy
            and not agent.schedules.get_schedules()
        ]

        for conversation_id in expired:
            logger.info(f"Expiring idle conversation {conversation_id}")
            await self.delete(conversation_id)

    def get_conversation_count(self) -> int:
        """Get current number of live conversations."""
        return len(self.conversations)


conversation_manager = ConversationManager()
