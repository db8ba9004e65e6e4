"""Tests for conversation turns: commands, approvals, generation and scheduled tasks."""

import asyncio
from unittest.mock import Mock

import pytest

from app.graphs.conversation import create_turn_graph
from app.graphs.state import TurnState
from app.models.conversation import ChatRequest, ToolResponse
from app.models.llm import FinishInfo
from app.models.messages import Message, TextPart, ToolInvocation, ToolInvocationPart
from app.models.schedule import ScheduleWhen
from app.models.stream import ErrorEvent, FinishEvent, TextChunkEvent, ToolCallEvent, ToolResultEvent, parse_stream_part
from app.prompts import preset_names
from app.services.chat_agent import ChatAgent
from app.services.commands import AddFeatureCommand
from app.services.tool_calls import DENIED_RESULT

CONVERSATION_ID = "conversation-1"


def weather_request_message() -> Message:
    return Message(
        role="assistant",
        parts=[
            TextPart(text="Let me check the weather."),
            ToolInvocationPart(
                tool_invocation=ToolInvocation(
                    tool_call_id="call_1", tool_name="getWeatherInformation", args={"city": "Paris"}
                )
            ),
        ],
    )


@pytest.fixture
def make_agent(store, registry, timer, scripted_llm):
    """Factory for an agent whose model replays the given responses."""

    def factory(*responses):
        llm = scripted_llm(*responses)
        agent = ChatAgent(CONVERSATION_ID, store, registry=registry, timer=timer, llm_service=llm)
        return agent, llm

    return factory


async def run_turn(agent: ChatAgent, request: ChatRequest, on_finish=None) -> list:
    return [parse_stream_part(line) async for line in agent.chat(request, on_finish=on_finish)]


class TestCommands:
    """Tests for control commands handled without the model."""

    @pytest.mark.asyncio
    async def test_help_lists_presets(self, make_agent):
        """Test that /sys:help answers with every preset and never calls the model."""
        agent, llm = make_agent()

        events = await run_turn(agent, ChatRequest(content="/sys:help"))

        text = "".join(event.text for event in events if isinstance(event, TextChunkEvent))
        assert all(name in text for name in preset_names())
        assert isinstance(events[-1], FinishEvent)
        assert llm.calls == []

        history = await agent.get_messages()
        assert [message.content for message in history] == ["/sys:help"]

    @pytest.mark.asyncio
    async def test_switch_to_known_preset_clears_history(self, make_agent):
        """Test that a known preset empties history and changes the prompt."""
        agent, _ = make_agent(Message.from_text("assistant", "Hi!"))
        await run_turn(agent, ChatRequest(content="Hello"))

        await run_turn(agent, ChatRequest(content="/sys:english"))

        assert await agent.get_messages() == []
        assert agent.prompts.current_preset == "english"
        assert agent.prompts.get_system_prompt().startswith("You are a professional AI assistant.")

    @pytest.mark.asyncio
    async def test_switch_to_unknown_preset_changes_nothing(self, make_agent):
        """Test that an unknown preset keeps history and configuration."""
        agent, _ = make_agent(Message.from_text("assistant", "Hi!"))
        await run_turn(agent, ChatRequest(content="Hello"))
        config_before = agent.prompts.config.model_copy(deep=True)

        events = await run_turn(agent, ChatRequest(content="/sys:pirate"))

        text = "".join(event.text for event in events if isinstance(event, TextChunkEvent))
        assert "Unknown preset 'pirate'" in text
        assert "english" in text
        assert agent.prompts.config == config_before
        assert [m.content for m in await agent.get_messages()] == ["Hello", "Hi!", "/sys:pirate"]

    @pytest.mark.asyncio
    async def test_add_and_remove_feature(self, make_agent):
        """Test that feature commands mutate the prompt configuration."""
        agent, _ = make_agent()

        await run_turn(agent, ChatRequest(content="/sys:+Answer in haiku"))
        assert "Answer in haiku" in agent.prompts.config.features

        await run_turn(agent, ChatRequest(content="/sys:-Answer in haiku"))
        assert "Answer in haiku" not in agent.prompts.config.features

    @pytest.mark.asyncio
    async def test_commands_are_hidden_from_model(self, make_agent):
        """Test that persisted commands never reach the model on later turns."""
        agent, llm = make_agent(Message.from_text("assistant", "Arr!"))

        await run_turn(agent, ChatRequest(content="/sys:+speak like a pirate"))
        await run_turn(agent, ChatRequest(content="hi"))

        assert [message.content for message in llm.calls[0]["messages"]] == ["hi"]

    @pytest.mark.asyncio
    async def test_command_applies_only_once(self, make_agent):
        """Test that a decision-only request does not replay the previous command."""
        agent, _ = make_agent(Message.from_text("assistant", "Nothing to do."))
        await run_turn(agent, ChatRequest(content="/sys:+pirate"))

        await run_turn(agent, ChatRequest(tool_responses=[ToolResponse(tool_call_id="stale", approved=True)]))

        assert agent.prompts.config.features.count("pirate") == 1

    @pytest.mark.asyncio
    async def test_command_turn_skips_completion_callback(self, make_agent):
        """Test that command turns do not report a finished generation."""
        agent, _ = make_agent()
        on_finish = Mock()

        await run_turn(agent, ChatRequest(content="/sys:help"), on_finish=on_finish)

        on_finish.assert_not_called()


class TestGeneration:
    """Tests for turns that call the model."""

    @pytest.mark.asyncio
    async def test_text_reply_is_streamed_and_persisted(self, make_agent):
        """Test that a plain reply streams, persists and finishes."""
        agent, llm = make_agent(Message.from_text("assistant", "Hello there!"))
        on_finish = Mock()

        events = await run_turn(agent, ChatRequest(content="Hi"), on_finish=on_finish)

        assert events[0] == TextChunkEvent(text="Hello there!")
        assert events[-1].finish_reason == "stop"
        assert [m.content for m in await agent.get_messages()] == ["Hi", "Hello there!"]
        on_finish.assert_called_once()
        finish = on_finish.call_args.args[0]
        assert isinstance(finish, FinishInfo)
        assert finish.usage.total_tokens == 15

    @pytest.mark.asyncio
    async def test_model_sees_history_and_prompt(self, make_agent):
        """Test that the model receives converted history, prompt and tools."""
        agent, llm = make_agent(Message.from_text("assistant", "Ok"))

        await run_turn(agent, ChatRequest(content="Hi"))

        call = llm.calls[0]
        assert call["messages"][-1].content == "Hi"
        assert call["system_prompt"].startswith("你是一个友好的AI助手。")
        assert "getWeatherInformation" in call["tools"]
        assert call["tools"]["getWeatherInformation"].requires_confirmation
        assert call["max_steps"] == 5

    @pytest.mark.asyncio
    async def test_async_completion_callback_is_awaited(self, make_agent):
        agent, _ = make_agent(Message.from_text("assistant", "Done"))
        finished = []

        async def on_finish(finish):
            finished.append(finish.finish_reason)

        await run_turn(agent, ChatRequest(content="Hi"), on_finish=on_finish)

        assert finished == ["stop"]

    @pytest.mark.asyncio
    async def test_generation_failure_reports_error(self, make_agent):
        """Test that a model failure ends the turn with an error event and persists nothing more."""
        agent, _ = make_agent(RuntimeError("model unavailable"))
        on_finish = Mock()

        events = await run_turn(agent, ChatRequest(content="Hi"), on_finish=on_finish)

        assert isinstance(events[-1], ErrorEvent)
        assert "model unavailable" not in events[-1].message
        assert [m.content for m in await agent.get_messages()] == ["Hi"]
        on_finish.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_api_key_is_a_generation_failure(self, store, registry, timer, monkeypatch):
        """Test that the model client is created lazily and its absence is reported."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        agent = ChatAgent(CONVERSATION_ID, store, registry=registry, timer=timer)

        events = await run_turn(agent, ChatRequest(content="Hi"))

        assert isinstance(events[-1], ErrorEvent)


class TestApprovalFlow:
    """Tests for human approval of sensitive tool calls across turns."""

    @pytest.mark.asyncio
    async def test_pending_call_is_persisted(self, make_agent):
        """Test that a call needing approval ends the turn in state call."""
        agent, _ = make_agent(weather_request_message())

        events = await run_turn(agent, ChatRequest(content="What's the weather in Paris?"))

        assert ToolCallEvent(tool_call_id="call_1", tool_name="getWeatherInformation", args={"city": "Paris"}) in events
        assert events[-1].finish_reason == "tool-calls"
        last = (await agent.get_messages())[-1]
        assert last.tool_invocations[0].state == "call"

    @pytest.mark.asyncio
    async def test_approval_executes_and_continues(self, make_agent):
        """Test that approving runs the tool and the model continues with its result."""
        agent, llm = make_agent(weather_request_message(), Message.from_text("assistant", "It's sunny in Paris."))
        await run_turn(agent, ChatRequest(content="What's the weather in Paris?"))

        events = await run_turn(agent, ChatRequest(tool_responses=[ToolResponse(tool_call_id="call_1", approved=True)]))

        assert events[0] == ToolResultEvent(tool_call_id="call_1", result="The weather in Paris is sunny")
        assert events[1] == TextChunkEvent(text="It's sunny in Paris.")

        history = await agent.get_messages()
        assert history[1].tool_invocations[0].result == "The weather in Paris is sunny"
        assert history[-1].content == "It's sunny in Paris."

        tool_result_message = llm.calls[1]["messages"][-1]
        assert tool_result_message.role == "user"
        assert tool_result_message.content[0].content == "The weather in Paris is sunny"

    @pytest.mark.asyncio
    async def test_denial_stores_denial(self, make_agent):
        """Test that denying stores the fixed denial string."""
        agent, _ = make_agent(weather_request_message(), Message.from_text("assistant", "Okay, I won't check."))
        await run_turn(agent, ChatRequest(content="What's the weather in Paris?"))

        events = await run_turn(
            agent, ChatRequest(tool_responses=[ToolResponse(tool_call_id="call_1", approved=False)])
        )

        assert events[0] == ToolResultEvent(tool_call_id="call_1", result=DENIED_RESULT)
        assert (await agent.get_messages())[1].tool_invocations[0].result == DENIED_RESULT

    @pytest.mark.asyncio
    async def test_unknown_tool_call_id_is_ignored(self, make_agent):
        """Test that a decision for an unknown call leaves the pending call alone."""
        agent, _ = make_agent(weather_request_message(), Message.from_text("assistant", "Still waiting."))
        await run_turn(agent, ChatRequest(content="What's the weather in Paris?"))

        events = await run_turn(agent, ChatRequest(tool_responses=[ToolResponse(tool_call_id="nope", approved=True)]))

        assert not any(isinstance(event, ToolResultEvent) for event in events)
        assert (await agent.get_messages())[1].tool_invocations[0].state == "call"

    @pytest.mark.asyncio
    async def test_executed_results_survive_generation_failure(self, make_agent):
        """Test that a tool approved and run is kept even if the model then fails."""
        agent, _ = make_agent(weather_request_message(), RuntimeError("model unavailable"))
        await run_turn(agent, ChatRequest(content="What's the weather in Paris?"))

        events = await run_turn(agent, ChatRequest(tool_responses=[ToolResponse(tool_call_id="call_1", approved=True)]))

        assert isinstance(events[-1], ErrorEvent)
        assert (await agent.get_messages())[1].tool_invocations[0].result == "The weather in Paris is sunny"


class TestRequestValidation:
    """Tests for submissions that cannot start a turn."""

    def test_empty_request(self, make_agent):
        agent, _ = make_agent()
        with pytest.raises(ValueError, match="content or tool responses"):
            agent.validate_request(ChatRequest())

    def test_mixed_request(self, make_agent):
        """Test that decisions and new content must be sent separately."""
        agent, _ = make_agent()
        request = ChatRequest(content="Hi", tool_responses=[ToolResponse(tool_call_id="call_1", approved=True)])
        with pytest.raises(ValueError, match="separate requests"):
            agent.validate_request(request)

    def test_content_within_token_limit(self, make_agent):
        agent, llm = make_agent()
        llm.client = Mock()

        agent.validate_request(ChatRequest(content="Hi"))

        llm.client.validate_message_tokens.assert_called_once_with("Hi")


class TestScheduledTasks:
    """Tests for scheduled tasks firing inside a conversation."""

    @pytest.mark.asyncio
    async def test_fired_task_appends_message_and_reply(self, make_agent, timer):
        """Test that a fired task records a user message and the assistant's reply."""
        agent, llm = make_agent(Message.from_text("assistant", "Pong!"))
        agent.schedules.schedule(ScheduleWhen(type="delayed", delay_in_seconds=30), "execute_task", "ping")

        await timer.fire_all()

        assert [m.content for m in await agent.get_messages()] == ["Running scheduled task: ping", "Pong!"]
        assert llm.calls[0]["messages"][-1].content == "Running scheduled task: ping"
        assert not agent.busy

    @pytest.mark.asyncio
    async def test_fired_task_without_model_is_recorded(self, store, registry, timer, monkeypatch):
        """Test that a fired task is still recorded when no model is configured."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        agent = ChatAgent(CONVERSATION_ID, store, registry=registry, timer=timer)
        agent.schedules.schedule(ScheduleWhen(type="delayed", delay_in_seconds=30), "execute_task", "ping")

        await timer.fire_all()

        assert [m.content for m in await agent.get_messages()] == ["Running scheduled task: ping"]

    @pytest.mark.asyncio
    async def test_unknown_callback_is_dropped(self, make_agent, timer):
        """Test that a schedule naming an unknown callback does nothing."""
        agent, _ = make_agent()
        agent.schedules.schedule(ScheduleWhen(type="delayed", delay_in_seconds=30), "send_fax", "ping")

        await timer.fire_all()

        assert await agent.get_messages() == []

    @pytest.mark.asyncio
    async def test_preset_switch_keeps_schedules(self, make_agent):
        """Test that clearing history does not cancel scheduled tasks."""
        agent, _ = make_agent()
        agent.schedules.schedule(ScheduleWhen(type="delayed", delay_in_seconds=30), "execute_task", "ping")

        await run_turn(agent, ChatRequest(content="/sys:english"))

        assert len(agent.schedules.get_schedules()) == 1

    def test_close_cancels_schedules(self, make_agent, timer):
        agent, _ = make_agent()
        agent.schedules.schedule(ScheduleWhen(type="delayed", delay_in_seconds=30), "execute_task", "ping")

        agent.close()

        assert agent.schedules.get_schedules() == []
        assert timer.armed == {}


class TestCancellation:
    """Tests for client disconnects."""

    @pytest.mark.asyncio
    async def test_disconnect_cancels_turn(self, store, registry, timer):
        """Test that closing the stream early cancels the running turn and releases the conversation."""
        started = asyncio.Event()

        class HangingLLM:
            async def stream_agent_loop(self, messages, system_prompt, tools, stream, max_steps=5, **kwargs):
                stream.write_text("partial")
                started.set()
                await asyncio.sleep(3600)

        agent = ChatAgent(CONVERSATION_ID, store, registry=registry, timer=timer, llm_service=HangingLLM())

        lines = agent.chat(ChatRequest(content="Hi"))
        first = parse_stream_part(await lines.__anext__())
        await started.wait()
        await lines.aclose()

        for _ in range(50):
            if not agent.busy:
                break
            await asyncio.sleep(0.01)

        assert first == TextChunkEvent(text="partial")
        assert not agent.busy
        assert [m.content for m in await agent.get_messages()] == ["Hi"]


class TestTurnGraph:
    """Tests for building the turn graph."""

    def test_graph_compiles(self):
        """Test that the state schema yields a buildable graph."""
        graph = create_turn_graph()
        assert {"start", "command", "resolve", "generate", "finalize", "error"} <= set(graph.nodes)

    def test_state_holds_commands(self):
        state = TurnState(conversation_id=CONVERSATION_ID, command=AddFeatureCommand(feature="pirate"))
        assert state.command == AddFeatureCommand(feature="pirate")
        assert state.has_new_message is False
