"""Domain exceptions."""


class ChatAgentError(Exception):
    """Base class for chat agent errors."""


class UnknownPresetError(ChatAgentError):
    """Raised when a prompt preset name is not registered."""

    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = available
        super().__init__(f"Unknown preset '{name}'. Available presets: {', '.join(available)}")


class ConversationNotFoundError(ChatAgentError):
    """Raised when a conversation id does not map to a live conversation."""

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation not found: {conversation_id}")


class InvalidCronExpressionError(ChatAgentError, ValueError):
    """Raised when a cron expression cannot be parsed."""
