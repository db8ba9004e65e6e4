"""Anthropic API client with streaming, rate limiting and error handling."""

import asyncio
import os
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

import tiktoken
from anthropic import APIError, AsyncAnthropic
from anthropic.types import ContentBlock as AnthropicContentBlock
from anthropic.types import Message
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from pydantic import BaseModel

from app.models.llm import ContentBlock, TextBlock, ToolResultBlock, ToolUseBlock
from app.utils.logging import get_logger

logger = get_logger(__name__)


class CacheControl(BaseModel):
    """Cache control configuration for prompt caching."""

    type: Literal["ephemeral"] = "ephemeral"
    ttl: Literal["5m", "1h"] = "5m"


class AnthropicMessage(BaseModel):
    """Message format for Anthropic API."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]


class AnthropicTool(BaseModel):
    """Tool definition for Anthropic API."""

    name: str
    description: str
    input_schema: dict[str, Any]
    cache_control: CacheControl | None = None


@dataclass
class TokenUsage:
    """Token usage information from Anthropic API."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0


@dataclass
class AnthropicResponse:
    """Structured response from Anthropic API."""

    content: list[ContentBlock]
    stop_reason: str | None
    usage: TokenUsage
    model: str


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = field(default_factory=lambda: os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-20241022"))
    max_tokens: int = 2048
    temperature: float = 0.3
    max_retries: int = 3
    retry_delay: float = 1.0

    # Token limits for validation and truncation
    max_message_tokens: int = 2000  # Maximum tokens per individual message
    max_conversation_tokens: int = 200000
    token_headroom: int = 2000  # Reserve tokens for response


class AnthropicRateLimiter:
    """Moving-window rate limiter shared by every client in the process."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "anthropic") -> None:
        """Wait until the request fits within the rate limits."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_window(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        if not self.limiter.hit(self.token_limit, token_identifier, cost=max(estimated_tokens, 1)):
            await self._wait_for_window(self.token_limit, token_identifier, "Token")

    async def _wait_for_window(self, limit, identifier: str, kind: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        if window_stats:
            wait_time = max(0, window_stats.reset_time - time.time())
            if wait_time > 0:
                logger.warning(f"{kind} rate limit exceeded, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)


class AnthropicClient:
    """Low-level Anthropic API client with rate limiting and error handling."""

    tokenizer: tiktoken.Encoding | None = None
    api_key: str
    client: AsyncAnthropic
    config: AnthropicConfig
    rate_limiter: AnthropicRateLimiter = AnthropicRateLimiter()

    def __init__(self, api_key: str | None = None, config: AnthropicConfig | None = None):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Client configuration

        Raises:
            ValueError: If no API key is available
        """
        anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        self.api_key = anthropic_api_key

        self.client = AsyncAnthropic(api_key=self.api_key)
        self.config = config or AnthropicConfig()

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    async def stream_message(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str,
        tools: list[AnthropicTool] | None = None,
        on_text: Callable[[str], None] | None = None,
        **kwargs,
    ) -> AnthropicResponse:
        """Stream a message from Claude, reporting text deltas as they arrive.

        Args:
            messages: Conversation history
            system_prompt: System prompt for Claude
            tools: Available tools for Claude
            on_text: Called with every text delta
            **kwargs: Additional parameters for Claude API

        Returns:
            The complete response once the stream ends
        """
        truncated_messages = self.truncate_conversation(messages, system_prompt, tools)

        estimated_tokens = self._estimate_tokens(truncated_messages, system_prompt)
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens)

        request_params: dict[str, Any] = {
            "model": kwargs.get("model", self.config.model),
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
            "system": system_prompt,
            "messages": [msg.model_dump(exclude_none=True) for msg in truncated_messages],
        }
        if tools:
            request_params["tools"] = [tool.model_dump(exclude_none=True) for tool in tools]

        logger.debug(
            f"Streaming message with {len(truncated_messages)} messages, {len(tools) if tools else 0} tools, "
            f"model: {request_params['model']}"
        )

        for attempt in range(self.config.max_retries):
            emitted = False
            try:
                async with self.client.messages.stream(**request_params) as stream:
                    async for text in stream.text_stream:
                        emitted = True
                        if on_text:
                            on_text(text)
                    response: Message = await stream.get_final_message()
                return self._convert_response(response)

            except APIError as e:
                # Text already reached the client; a retry would duplicate it
                delay = None if emitted else self._retry_delay(e, attempt)
                if delay is None:
                    raise
                logger.warning(f"Anthropic request failed ({e}), retrying in {delay:.1f}s")
                await asyncio.sleep(delay)

        raise Exception(f"Failed to complete request after {self.config.max_retries} attempts")

    def _retry_delay(self, error: APIError, attempt: int) -> float | None:
        """Seconds to wait before retrying, or None if the error is final."""
        if attempt >= self.config.max_retries - 1:
            return None

        status_code = getattr(error, "status_code", None)
        if status_code == 429:
            retry_after = 60.0
            response = getattr(error, "response", None)
            if response is not None and hasattr(response, "headers"):
                try:
                    retry_after = float(response.headers.get("retry-after", 60))
                except ValueError:
                    logger.warning(f"Unparseable retry-after header: {response.headers.get('retry-after')!r}")
            return retry_after if retry_after < 120 else None

        if status_code is None or status_code >= 500:
            # Connection problem or server error: exponential backoff
            return self.config.retry_delay * (2**attempt)

        return None

    def _convert_response(self, response: Message) -> AnthropicResponse:
        usage = TokenUsage()
        if response.usage:
            usage = TokenUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
                cache_creation_input_tokens=response.usage.cache_creation_input_tokens or 0,
                cache_read_input_tokens=response.usage.cache_read_input_tokens or 0,
            )

        logger.debug(
            f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}"
        )

        return AnthropicResponse(
            content=self._convert_content_blocks(response.content),
            stop_reason=response.stop_reason,
            usage=usage,
            model=response.model,
        )

    def _convert_content_blocks(self, anthropic_content: list[AnthropicContentBlock]) -> list[ContentBlock]:
        """Convert Anthropic content blocks to our ContentBlock types."""
        converted_blocks: list[ContentBlock] = []
        for block in anthropic_content:
            try:
                if hasattr(block, "model_dump"):
                    block_dict = block.model_dump()
                elif hasattr(block, "__dict__"):
                    block_dict = block.__dict__
                else:
                    block_dict = dict(block)

                if block_dict.get("type") == "text":
                    converted_blocks.append(TextBlock.model_validate(block_dict))
                elif block_dict.get("type") == "tool_use":
                    converted_blocks.append(ToolUseBlock.model_validate(block_dict))
                else:
                    logger.warning(f"Unknown content block type: {block_dict.get('type')}")

            except Exception as e:
                logger.error(f"Failed to convert content block: {e}, block: {block}")
                # Skip malformed blocks rather than failing the entire response
                continue

        return converted_blocks

    def _message_text(self, message: AnthropicMessage) -> str:
        if isinstance(message.content, str):
            return message.content

        text = ""
        for block in message.content:
            if isinstance(block, TextBlock):
                text += block.text
            elif isinstance(block, ToolResultBlock):
                text += block.content
            elif isinstance(block, ToolUseBlock):
                text += block.name + str(block.input)
        return text

    def _estimate_tokens(self, messages: list[AnthropicMessage], system_prompt: str) -> int:
        """Estimate token count for rate limiting."""
        text_content = system_prompt + "".join(self._message_text(message) for message in messages)
        return self.estimate_message_tokens(text_content)

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message.

        Args:
            message: Message content

        Returns:
            Estimated token count
        """
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4

    def validate_message_tokens(self, message: str) -> None:
        """Validate that a message doesn't exceed token limits.

        Raises:
            ValueError: If message exceeds token limit
        """
        token_count = self.estimate_message_tokens(message)
        if token_count > self.config.max_message_tokens:
            raise ValueError(
                f"Message exceeds token limit: {token_count} tokens > {self.config.max_message_tokens} limit"
            )

    def truncate_conversation(
        self, messages: list[AnthropicMessage], system_prompt: str, tools: list[AnthropicTool] | None = None
    ) -> list[AnthropicMessage]:
        """Truncate conversation from the beginning to fit within token limits.

        The kept window always starts with a user turn that is not a bare tool
        result, so tool_use/tool_result pairs are never split.

        Args:
            messages: Conversation messages
            system_prompt: System prompt
            tools: Available tools

        Returns:
            Truncated message list that fits within limits
        """
        if not messages:
            return messages

        available_tokens = self.config.max_conversation_tokens - self.config.token_headroom

        system_tokens = self.estimate_message_tokens(system_prompt)

        tool_tokens = 0
        if tools:
            tool_content = ""
            for tool in tools:
                tool_content += tool.name + tool.description + str(tool.input_schema)
            tool_tokens = self.estimate_message_tokens(tool_content)

        available_tokens -= system_tokens + tool_tokens

        truncated_messages: list[AnthropicMessage] = []
        current_tokens = 0

        for message in reversed(messages):
            message_tokens = self.estimate_message_tokens(self._message_text(message))

            if current_tokens + message_tokens <= available_tokens:
                truncated_messages.insert(0, message)
                current_tokens += message_tokens
            else:
                break

        if len(truncated_messages) < len(messages):
            while truncated_messages and not self._starts_turn(truncated_messages[0]):
                truncated_messages.pop(0)
            logger.warning(
                f"Truncated conversation from {len(messages)} to {len(truncated_messages)} messages "
                f"to fit within {available_tokens} token limit"
            )

        return truncated_messages

    @staticmethod
    def _starts_turn(message: AnthropicMessage) -> bool:
        if message.role != "user":
            return False
        if isinstance(message.content, str):
            return True
        return not any(isinstance(block, ToolResultBlock) for block in message.content)
