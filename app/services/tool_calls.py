"""Resolution of human-approved and human-denied tool calls."""

import asyncio

from app.models.messages import Message, Part, ToolCallStatus, ToolInvocationPart
from app.services.llm import convert_to_llm_messages
from app.services.stream import DataStreamWriter
from app.tools.registry import ContextFactory, ToolsRegistry
from app.utils.logging import get_logger

logger = get_logger(__name__)

DENIED_RESULT = "Error: User denied access to tool execution"


def has_pending_decisions(message: Message) -> bool:
    """Whether a message carries approvals or denials not yet acted upon."""
    return any(
        invocation.status in (ToolCallStatus.APPROVED, ToolCallStatus.DENIED)
        for invocation in message.tool_invocations
    )


async def process_tool_calls(
    messages: list[Message],
    stream: DataStreamWriter,
    registry: ToolsRegistry,
    context_factory: ContextFactory,
) -> list[Message]:
    """Execute approved and reject denied tool calls in the last message.

    Only the last message is examined. Earlier messages are returned as the
    same objects; the last one is replaced by a copy whose parts carry the
    resolved results in their original order. Parts already holding a real
    result are left alone, so resolving twice changes nothing.
    """
    if not messages or not has_pending_decisions(messages[-1]):
        return messages

    last_message = messages[-1]
    llm_messages = convert_to_llm_messages(messages)

    async def resolve(part: Part) -> Part:
        if not isinstance(part, ToolInvocationPart):
            return part

        invocation = part.tool_invocation
        if not registry.requires_confirmation(invocation.tool_name):
            return part

        if invocation.status == ToolCallStatus.APPROVED:
            logger.info(f"Executing approved tool {invocation.tool_name} ({invocation.tool_call_id})")
            result = await registry.execute(
                invocation.tool_name,
                invocation.args,
                context_factory(invocation.tool_call_id, llm_messages),
            )
        elif invocation.status == ToolCallStatus.DENIED:
            logger.info(f"Tool {invocation.tool_name} ({invocation.tool_call_id}) denied by user")
            result = DENIED_RESULT
        else:
            return part

        stream.write_tool_result(invocation.tool_call_id, result)
        return ToolInvocationPart(tool_invocation=invocation.with_result(result))

    parts = await asyncio.gather(*(resolve(part) for part in last_message.parts))
    return [*messages[:-1], last_message.model_copy(update={"parts": list(parts)})]
