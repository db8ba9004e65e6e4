"""Tests for resolving approved and denied tool calls."""

from unittest.mock import AsyncMock

import pytest
from pydantic import BaseModel

from app.models.messages import Message, TextPart, ToolInvocation, ToolInvocationPart
from app.models.stream import ToolResultEvent
from app.services.lookups import InMemoryLocalTimeService
from app.services.stream import DataStreamWriter
from app.services.tool_calls import DENIED_RESULT, process_tool_calls
from app.tools.base import NO_EXECUTOR_RESULT, ToolContext, ToolDefinition
from app.tools.registry import ToolsRegistry


def context_factory(tool_call_id, messages):
    return ToolContext(conversation_id="conversation-1", tool_call_id=tool_call_id, messages=messages)


def weather_call(call_id: str = "call_1", city: str = "Paris") -> ToolInvocation:
    return ToolInvocation(tool_call_id=call_id, tool_name="getWeatherInformation", args={"city": city})


def conversation(*invocations: ToolInvocation) -> list[Message]:
    return [
        Message.from_text("user", "What's the weather in Paris?"),
        Message(
            role="assistant",
            parts=[
                TextPart(text="Let me check."),
                *(ToolInvocationPart(tool_invocation=invocation) for invocation in invocations),
            ],
        ),
    ]


class TestApprovedCalls:
    """Tests for calls a human approved."""

    @pytest.mark.asyncio
    async def test_approved_call_runs_executor(self, registry):
        """Test that an approved call stores the executor's return value."""
        stream = DataStreamWriter()
        messages = conversation(weather_call().approve())

        result = await process_tool_calls(messages, stream, registry, context_factory)

        invocation = result[-1].tool_invocations[0]
        assert invocation.state == "result"
        assert invocation.result == "The weather in Paris is sunny"

    @pytest.mark.asyncio
    async def test_approved_call_emits_one_result_event(self, registry):
        """Test that exactly one tool result event carries the matching call id."""
        stream = DataStreamWriter()

        await process_tool_calls(conversation(weather_call().approve()), stream, registry, context_factory)

        assert stream.events == [ToolResultEvent(tool_call_id="call_1", result="The weather in Paris is sunny")]

    @pytest.mark.asyncio
    async def test_executor_receives_prior_messages(self, registry):
        """Test that the tool context carries the converted history and the call id."""
        contexts = []

        def recording_factory(tool_call_id, messages):
            contexts.append((tool_call_id, messages))
            return context_factory(tool_call_id, messages)

        await process_tool_calls(conversation(weather_call().approve()), DataStreamWriter(), registry, recording_factory)

        tool_call_id, messages = contexts[0]
        assert tool_call_id == "call_1"
        assert messages[0].role == "user"
        assert messages[0].content == "What's the weather in Paris?"


class TestDeniedCalls:
    """Tests for calls a human denied."""

    @pytest.mark.asyncio
    async def test_denied_call_stores_denial(self, registry):
        """Test that a denied call gets the fixed denial string."""
        stream = DataStreamWriter()

        result = await process_tool_calls(conversation(weather_call().deny()), stream, registry, context_factory)

        assert result[-1].tool_invocations[0].result == DENIED_RESULT
        assert stream.events == [ToolResultEvent(tool_call_id="call_1", result=DENIED_RESULT)]

    @pytest.mark.asyncio
    async def test_denied_call_never_runs_executor(self):
        """Test that no executor is invoked for a denied call."""
        weather_service = AsyncMock()
        registry = ToolsRegistry(weather_service, InMemoryLocalTimeService())

        await process_tool_calls(conversation(weather_call().deny()), DataStreamWriter(), registry, context_factory)

        weather_service.get_weather.assert_not_called()


class TestPassThrough:
    """Tests for parts the engine must leave alone."""

    @pytest.mark.asyncio
    async def test_pending_call_unchanged(self, registry):
        """Test that a call still waiting for a decision is not touched."""
        stream = DataStreamWriter()
        messages = conversation(weather_call())

        result = await process_tool_calls(messages, stream, registry, context_factory)

        assert result == messages
        assert stream.events == []

    @pytest.mark.asyncio
    async def test_resolution_is_idempotent(self, registry):
        """Test that resolving an already resolved message changes nothing."""
        messages = conversation(weather_call().approve())
        first = await process_tool_calls(messages, DataStreamWriter(), registry, context_factory)

        stream = DataStreamWriter()
        second = await process_tool_calls(first, stream, registry, context_factory)

        assert second == first
        assert stream.events == []

    @pytest.mark.asyncio
    async def test_auto_executed_tool_passes_through(self, registry):
        """Test that a tool not requiring confirmation is never re-executed."""
        invocation = ToolInvocation(
            tool_call_id="call_2", tool_name="getLocalTime", args={"location": "Tokyo"}, state="result", result="10am"
        )
        messages = conversation(weather_call().approve(), invocation)

        result = await process_tool_calls(messages, DataStreamWriter(), registry, context_factory)

        assert result[-1].tool_invocations[1] == invocation

    @pytest.mark.asyncio
    async def test_earlier_messages_are_the_same_objects(self, registry):
        """Test that only the last message is replaced."""
        earlier = Message(role="assistant", parts=[ToolInvocationPart(tool_invocation=weather_call("old").approve())])
        messages = [earlier, *conversation(weather_call().approve())]

        result = await process_tool_calls(messages, DataStreamWriter(), registry, context_factory)

        assert len(result) == len(messages)
        assert all(a is b for a, b in zip(result[:-1], messages[:-1], strict=True))
        assert earlier.tool_invocations[0].result == "Yes, confirmed."

    @pytest.mark.asyncio
    async def test_input_message_not_mutated(self, registry):
        """Test that the original last message keeps its sentinel."""
        messages = conversation(weather_call().approve())

        result = await process_tool_calls(messages, DataStreamWriter(), registry, context_factory)

        assert messages[-1].tool_invocations[0].result == "Yes, confirmed."
        assert result[-1].id == messages[-1].id
        assert result[-1].parts[0] == messages[-1].parts[0]

    @pytest.mark.asyncio
    async def test_empty_history(self, registry):
        """Test that an empty history resolves to itself."""
        assert await process_tool_calls([], DataStreamWriter(), registry, context_factory) == []


class TestFailures:
    """Tests for calls whose execution cannot succeed."""

    @pytest.mark.asyncio
    async def test_missing_executor_yields_error_string(self, registry):
        """Test that a confirmation tool without a handler reports the missing executor."""

        class NoInput(BaseModel):
            pass

        registry.register_tool(ToolDefinition(name="launchRocket", description="Launch", input_schema_class=NoInput))
        invocation = ToolInvocation(tool_call_id="call_9", tool_name="launchRocket").approve()

        result = await process_tool_calls(conversation(invocation), DataStreamWriter(), registry, context_factory)

        assert result[-1].tool_invocations[0].result == NO_EXECUTOR_RESULT

    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_others(self):
        """Test that a raising executor only affects its own call."""
        weather_service = AsyncMock()
        weather_service.get_weather.side_effect = [RuntimeError("service down"), "The weather in Rome is rainy"]
        registry = ToolsRegistry(weather_service, InMemoryLocalTimeService())
        stream = DataStreamWriter()

        result = await process_tool_calls(
            conversation(weather_call("call_1", "Paris").approve(), weather_call("call_2", "Rome").approve()),
            stream,
            registry,
            context_factory,
        )

        results = [invocation.result for invocation in result[-1].tool_invocations]
        assert results == ["Error: service down", "The weather in Rome is rainy"]
        assert len(stream.events) == 2


class TestEndToEnd:
    """End-to-end approval scenario."""

    @pytest.mark.asyncio
    async def test_paris_weather_approval(self, registry):
        """Test call, approval and resolution of a weather lookup."""
        stream = DataStreamWriter()
        messages = conversation(weather_call())

        # The human approves the pending call
        last = messages[-1]
        approved_parts = [last.parts[0], ToolInvocationPart(tool_invocation=last.tool_invocations[0].approve())]
        approved = [*messages[:-1], last.model_copy(update={"parts": approved_parts})]

        result = await process_tool_calls(approved, stream, registry, context_factory)

        assert result[-1].tool_invocations[0].result == "The weather in Paris is sunny"
        assert [event.tool_call_id for event in stream.events] == ["call_1"]
