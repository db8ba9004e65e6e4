"""Shared fixtures and test doubles."""

from datetime import datetime
from typing import Any
from unittest.mock import Mock

import pytest

from app.models.llm import AgentLoopResult, LLMUsage
from app.models.messages import Message, TextPart, ToolInvocationPart
from app.services.lookups import InMemoryLocalTimeService, InMemoryWeatherService
from app.services.storage import InMemoryMessageStore
from app.tools.registry import ToolsRegistry


class ManualTimer:
    """Timer that only fires when a test tells it to."""

    def __init__(self):
        self.armed: dict[int, tuple[datetime, Any]] = {}
        self._next_handle = 0

    def call_at(self, when, callback):
        handle = self._next_handle
        self._next_handle += 1
        self.armed[handle] = (when, callback)
        return handle

    def cancel(self, handle):
        self.armed.pop(handle, None)

    async def fire_all(self):
        for handle, (_, callback) in list(self.armed.items()):
            self.armed.pop(handle, None)
            await callback()


class ScriptedLLMService:
    """Stands in for LLMService, replaying one scripted assistant message per call."""

    def __init__(self, *responses: Message | Exception):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []
        self.client = Mock()

    async def stream_agent_loop(self, messages, system_prompt, tools, stream, max_steps=5, **kwargs):
        self.calls.append(
            {"messages": messages, "system_prompt": system_prompt, "tools": tools, "max_steps": max_steps}
        )
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response

        for part in response.parts:
            if isinstance(part, TextPart):
                stream.write_text(part.text)
            elif isinstance(part, ToolInvocationPart):
                invocation = part.tool_invocation
                stream.write_tool_call(invocation.tool_call_id, invocation.tool_name, invocation.args)
                if invocation.state == "result":
                    stream.write_tool_result(invocation.tool_call_id, invocation.result)

        pending = any(invocation.state == "call" for invocation in response.tool_invocations)
        return AgentLoopResult(
            message=response,
            stop_reason="tool_use" if pending else "end_turn",
            steps=1,
            usage=LLMUsage(input_tokens=10, output_tokens=5, total_tokens=15),
        )


@pytest.fixture
def registry():
    """Tools registry with in-memory lookup services."""
    return ToolsRegistry(InMemoryWeatherService(), InMemoryLocalTimeService())


@pytest.fixture
def store():
    return InMemoryMessageStore()


@pytest.fixture
def timer():
    return ManualTimer()


@pytest.fixture
def scripted_llm():
    """Factory for a scripted model service."""
    return ScriptedLLMService
