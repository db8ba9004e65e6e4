"""Ordered, append-only output channel from a turn to its client."""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

from app.models.llm import LLMUsage
from app.models.stream import (
    ErrorEvent,
    FinishEvent,
    StreamEvent,
    TextChunkEvent,
    ToolCallEvent,
    ToolResultEvent,
    format_stream_part,
)
from app.utils.logging import get_logger

logger = get_logger(__name__)

_CLOSED = object()


class DataStreamWriter:
    """Queue-backed event stream.

    Writers may be concurrent tasks on the same event loop; every write is a
    single queue put so events interleave without tearing. Iterating yields
    serialised lines until the writer is closed.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False
        self.events: list[StreamEvent] = []

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, event: StreamEvent) -> None:
        """Append an event. Writes after close are dropped."""
        if self._closed:
            logger.debug(f"Dropping {type(event).__name__} written after close")
            return
        self.events.append(event)
        self._queue.put_nowait(event)

    def write_text(self, text: str) -> None:
        self.write(TextChunkEvent(text=text))

    def write_tool_call(self, tool_call_id: str, tool_name: str, args: dict[str, Any]) -> None:
        self.write(ToolCallEvent(tool_call_id=tool_call_id, tool_name=tool_name, args=args))

    def write_tool_result(self, tool_call_id: str, result: Any) -> None:
        self.write(ToolResultEvent(tool_call_id=tool_call_id, result=result))

    def write_error(self, message: str) -> None:
        self.write(ErrorEvent(message=message))

    def write_finish(self, finish_reason: str, usage: LLMUsage | None = None) -> None:
        self.write(FinishEvent(finish_reason=finish_reason, usage=usage or LLMUsage()))

    def close(self) -> None:
        """Signal end-of-stream to the consumer."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield format_stream_part(item)
