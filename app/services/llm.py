"""LLM service for high-level AI operations like the streaming agent loop."""

import json
from typing import Any

from app.clients.anthropic import (
    AnthropicClient,
    AnthropicConfig,
    AnthropicMessage,
    AnthropicResponse,
    AnthropicTool,
    CacheControl,
)
from app.models.llm import (
    AgentLoopResult,
    ContentBlock,
    LLMMessage,
    LLMTool,
    LLMUsage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from app.models.messages import Message, Part, TextPart, ToolCallStatus, ToolInvocation, ToolInvocationPart
from app.services.commands import DEFAULT_COMMAND_PREFIX, parse_command
from app.services.stream import DataStreamWriter
from app.utils.logging import get_logger

logger = get_logger(__name__)


def serialize_tool_result(result: Any) -> str:
    """Render a tool result as the string the model sees."""
    if isinstance(result, str):
        return result
    return json.dumps(result, ensure_ascii=False, default=str)


def _result_block(invocation: ToolInvocation) -> ToolResultBlock:
    content = serialize_tool_result(invocation.result)
    return ToolResultBlock(
        tool_use_id=invocation.tool_call_id,
        content=content,
        is_error=content.startswith("Error:"),
    )


def convert_to_llm_messages(
    messages: list[Message], command_prefix: str = DEFAULT_COMMAND_PREFIX
) -> list[LLMMessage]:
    """Convert stored messages into neutral role/content form.

    Assistant messages are split into tool_use / tool_result rounds. Only
    executed invocations are included: a call still waiting on a human has no
    result the model could be shown yet. User control commands are dropped.
    """
    converted: list[LLMMessage] = []

    for message in messages:
        if message.role != "assistant":
            if message.role == "user" and parse_command(message.content, command_prefix) is not None:
                continue
            if message.content:
                converted.append(LLMMessage(role=message.role, content=message.content))
            continue

        blocks: list[ContentBlock] = []
        results: list[ContentBlock] = []

        def flush() -> None:
            if blocks:
                converted.append(LLMMessage(role="assistant", content=list(blocks)))
            if results:
                converted.append(LLMMessage(role="user", content=list(results)))
            blocks.clear()
            results.clear()

        for part in message.parts:
            if isinstance(part, TextPart):
                if results:
                    flush()
                if part.text:
                    blocks.append(TextBlock(text=part.text))
            elif part.tool_invocation.status == ToolCallStatus.EXECUTED:
                invocation = part.tool_invocation
                blocks.append(ToolUseBlock(id=invocation.tool_call_id, name=invocation.tool_name, input=invocation.args))
                results.append(_result_block(invocation))

        flush()

    return converted


class LLMService:
    """High-level LLM service for agent operations."""

    def __init__(self, client: AnthropicClient | None = None, config: AnthropicConfig | None = None):
        """Initialize LLM service.

        Args:
            client: Anthropic client (a new one is created when omitted)
            config: Configuration for the created client
        """
        self.client = client or AnthropicClient(config=config)

    @staticmethod
    def _to_anthropic_tools(tools: dict[str, LLMTool]) -> list[AnthropicTool]:
        tool_list = list(tools.values())
        anthropic_tools = []

        for i, tool in enumerate(tool_list):
            # Cache control on the last tool caches all tool definitions
            cache_control = CacheControl(type="ephemeral", ttl="5m") if i == len(tool_list) - 1 else None
            anthropic_tools.append(
                AnthropicTool(
                    name=tool.name,
                    description=tool.description,
                    input_schema=tool.input_schema,
                    cache_control=cache_control,
                )
            )

        return anthropic_tools

    @staticmethod
    def _to_usage(response: AnthropicResponse) -> LLMUsage:
        return LLMUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            total_tokens=response.usage.total_tokens,
            cache_creation_input_tokens=response.usage.cache_creation_input_tokens,
            cache_read_input_tokens=response.usage.cache_read_input_tokens,
        )

    async def stream_agent_loop(
        self,
        messages: list[LLMMessage],
        system_prompt: str,
        tools: dict[str, LLMTool],
        stream: DataStreamWriter,
        max_steps: int = 5,
        **kwargs,
    ) -> AgentLoopResult:
        """Run the model, executing auto tools, until it stops or needs a human.

        Args:
            messages: Conversation so far in neutral form
            system_prompt: System prompt for Claude
            tools: Available tools; those without a callable need confirmation
            stream: Output channel for text, tool call and tool result events
            max_steps: Maximum model calls within this generation
            **kwargs: Additional parameters for Claude API

        Returns:
            The new assistant message with usage and stop information
        """
        logger.info(f"Starting agent loop with {len(messages)} messages, {len(tools)} tools, max_steps: {max_steps}")

        current_messages = [message for message in messages if message.role != "system"]
        anthropic_tools = self._to_anthropic_tools(tools)
        parts: list[Part] = []
        usage = LLMUsage()
        stop_reason: str | None = None
        steps = 0

        while steps < max_steps:
            steps += 1
            logger.debug(f"Agent loop step {steps}/{max_steps}")

            response = await self.client.stream_message(
                messages=[AnthropicMessage(role=msg.role, content=msg.content) for msg in current_messages],
                system_prompt=system_prompt,
                tools=anthropic_tools,
                on_text=stream.write_text,
                **kwargs,
            )
            usage.add(self._to_usage(response))
            stop_reason = response.stop_reason

            tool_results: list[ContentBlock] = []
            awaiting_confirmation = False
            context_messages = [*current_messages, LLMMessage(role="assistant", content=response.content)]

            for block in response.content:
                if isinstance(block, TextBlock):
                    if block.text:
                        parts.append(TextPart(text=block.text))
                    continue
                if not isinstance(block, ToolUseBlock):
                    continue

                stream.write_tool_call(block.id, block.name, block.input)
                invocation = ToolInvocation(tool_call_id=block.id, tool_name=block.name, args=block.input)
                tool = tools.get(block.name)

                if tool is not None and tool.requires_confirmation:
                    logger.info(f"Tool {block.name} ({block.id}) is waiting for confirmation")
                    awaiting_confirmation = True
                    parts.append(ToolInvocationPart(tool_invocation=invocation))
                    continue

                if tool is None:
                    logger.error(f"Unknown tool requested: {block.name}")
                    result: Any = f"Error: Unknown tool {block.name}"
                else:
                    logger.debug(f"Executing tool: {block.name} with input: {block.input}")
                    result = await tool.callable(block.input, block.id, context_messages)

                invocation = invocation.with_result(result)
                stream.write_tool_result(block.id, result)
                parts.append(ToolInvocationPart(tool_invocation=invocation))
                tool_results.append(_result_block(invocation))

            if stop_reason != "tool_use" or awaiting_confirmation or not tool_results:
                break

            current_messages = [*context_messages, LLMMessage(role="user", content=tool_results)]
        else:
            logger.warning(f"Agent loop reached max steps ({max_steps})")

        logger.info(f"Agent loop finished after {steps} steps, stop reason: {stop_reason}")
        return AgentLoopResult(
            message=Message(role="assistant", parts=parts),
            stop_reason=stop_reason,
            steps=steps,
            usage=usage,
        )
