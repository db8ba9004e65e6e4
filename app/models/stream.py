"""Typed events carried on the outbound data stream.

Each event serialises to a single line of the form ``<code>:<json>\\n``:

- ``0`` text chunk
- ``9`` tool call
- ``a`` tool result
- ``3`` error
- ``d`` finish
"""

import json
from dataclasses import dataclass, field
from typing import Any

from app.models.llm import LLMUsage
from app.models.messages import Message, TextPart, ToolInvocation, ToolInvocationPart


@dataclass
class TextChunkEvent:
    text: str

    code = "0"

    def payload(self) -> Any:
        return self.text


@dataclass
class ToolCallEvent:
    tool_call_id: str
    tool_name: str
    args: dict[str, Any]

    code = "9"

    def payload(self) -> Any:
        return {"toolCallId": self.tool_call_id, "toolName": self.tool_name, "args": self.args}


@dataclass
class ToolResultEvent:
    tool_call_id: str
    result: Any

    code = "a"

    def payload(self) -> Any:
        return {"toolCallId": self.tool_call_id, "result": self.result}


@dataclass
class ErrorEvent:
    message: str

    code = "3"

    def payload(self) -> Any:
        return self.message


@dataclass
class FinishEvent:
    finish_reason: str
    usage: LLMUsage = field(default_factory=LLMUsage)

    code = "d"

    def payload(self) -> Any:
        return {
            "finishReason": self.finish_reason,
            "usage": {
                "promptTokens": self.usage.input_tokens,
                "completionTokens": self.usage.output_tokens,
            },
        }


StreamEvent = TextChunkEvent | ToolCallEvent | ToolResultEvent | ErrorEvent | FinishEvent


def format_stream_part(event: StreamEvent) -> str:
    """Serialise an event to one data-stream line."""
    return f"{event.code}:{json.dumps(event.payload(), ensure_ascii=False, default=str)}\n"


def parse_stream_part(line: str) -> StreamEvent:
    """Parse one data-stream line back into an event.

    Raises:
        ValueError: If the line is malformed or carries an unknown code
    """
    code, sep, raw = line.rstrip("\n").partition(":")
    if not sep:
        raise ValueError(f"Malformed stream line: {line!r}")

    value = json.loads(raw)
    if code == TextChunkEvent.code:
        return TextChunkEvent(text=value)
    if code == ToolCallEvent.code:
        return ToolCallEvent(tool_call_id=value["toolCallId"], tool_name=value["toolName"], args=value["args"])
    if code == ToolResultEvent.code:
        return ToolResultEvent(tool_call_id=value["toolCallId"], result=value["result"])
    if code == ErrorEvent.code:
        return ErrorEvent(message=value)
    if code == FinishEvent.code:
        usage = value.get("usage") or {}
        return FinishEvent(
            finish_reason=value["finishReason"],
            usage=LLMUsage(
                input_tokens=usage.get("promptTokens", 0),
                output_tokens=usage.get("completionTokens", 0),
                total_tokens=usage.get("promptTokens", 0) + usage.get("completionTokens", 0),
            ),
        )
    raise ValueError(f"Unknown stream part code: {code!r}")


def assemble_message(events: list[StreamEvent]) -> Message:
    """Rebuild the assistant message a client sees from a stream of events.

    Consecutive text chunks merge into one text part; tool results are matched
    to their call by id. Results for calls not seen on this stream (approvals
    resolved at the start of a turn) are ignored.
    """
    message = Message(role="assistant")
    invocations: dict[str, int] = {}

    for event in events:
        if isinstance(event, TextChunkEvent):
            if message.parts and isinstance(message.parts[-1], TextPart):
                message.parts[-1] = TextPart(text=message.parts[-1].text + event.text)
            else:
                message.parts.append(TextPart(text=event.text))
        elif isinstance(event, ToolCallEvent):
            invocations[event.tool_call_id] = len(message.parts)
            message.parts.append(
                ToolInvocationPart(
                    tool_invocation=ToolInvocation(
                        tool_call_id=event.tool_call_id, tool_name=event.tool_name, args=event.args
                    )
                )
            )
        elif isinstance(event, ToolResultEvent) and event.tool_call_id in invocations:
            index = invocations[event.tool_call_id]
            part = message.parts[index]
            message.parts[index] = ToolInvocationPart(tool_invocation=part.tool_invocation.with_result(event.result))

    return message
