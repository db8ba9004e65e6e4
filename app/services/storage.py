"""Per-conversation message persistence interface and implementations."""

from typing import Protocol

from app.models.messages import Message


class MessageStore(Protocol):
    """Interface for durable conversation history."""

    async def load(self, conversation_id: str) -> list[Message]:
        """Load the ordered message list of a conversation.

        Args:
            conversation_id: The conversation's unique identifier

        Returns:
            Messages in order, empty if nothing was saved yet
        """
        ...

    async def save(self, conversation_id: str, messages: list[Message]) -> None:
        """Replace the stored message list of a conversation."""
        ...

    async def delete(self, conversation_id: str) -> None:
        """Forget a conversation."""
        ...


class InMemoryMessageStore:
    """In-memory message store.

    Stores copies so callers can never mutate persisted history in place.
    """

    def __init__(self):
        self._conversations: dict[str, list[Message]] = {}

    async def load(self, conversation_id: str) -> list[Message]:
        return [message.model_copy(deep=True) for message in self._conversations.get(conversation_id, [])]

    async def save(self, conversation_id: str, messages: list[Message]) -> None:
        self._conversations[conversation_id] = [message.model_copy(deep=True) for message in messages]

    async def delete(self, conversation_id: str) -> None:
        self._conversations.pop(conversation_id, None)
