"""Node implementations for the turn graph.

Nodes receive their collaborators through ``config["configurable"]``:
``agent`` (the conversation actor), ``stream`` (the turn's output channel) and
an optional ``on_finish`` completion callback.
"""

import inspect
from typing import TYPE_CHECKING, Any

from langchain_core.runnables import RunnableConfig

from app.graphs.state import TurnState
from app.models.llm import FinishInfo, LLMUsage
from app.prompts import preset_names
from app.services.commands import (
    AddFeatureCommand,
    HelpCommand,
    RemoveFeatureCommand,
    SwitchPresetCommand,
    parse_command,
)
from app.services.llm import convert_to_llm_messages
from app.services.stream import DataStreamWriter
from app.services.tool_calls import process_tool_calls
from app.utils.errors import UnknownPresetError
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from app.services.chat_agent import ChatAgent

logger = get_logger(__name__)

GENERATION_ERROR_MESSAGE = "I apologize, but I encountered an error generating a response. Please try again."


def _agent(config: RunnableConfig) -> "ChatAgent":
    return config["configurable"]["agent"]


def _stream(config: RunnableConfig) -> DataStreamWriter:
    return config["configurable"]["stream"]


def help_text(prefix: str) -> str:
    """Help listing every preset and the command syntax."""
    return (
        f"Available presets: {', '.join(preset_names())}\n"
        f"Use {prefix}<preset> to switch preset (this clears the conversation), "
        f"{prefix}+<feature> to add a feature and {prefix}-<feature> to remove one."
    )


async def start_node(state: TurnState, config: RunnableConfig) -> dict[str, Any]:
    """Detect a control command in the latest user message."""
    agent = _agent(config)
    command = None
    # Commands apply once, on the turn that submitted them
    if state.has_new_message and state.messages and state.messages[-1].role == "user":
        command = parse_command(state.messages[-1].content, agent.config.command_prefix)

    logger.info(f"Turn started for conversation {state.conversation_id} ({len(state.messages)} messages)")
    return {"command": command, "next_step": "command" if command is not None else "resolve"}


async def command_node(state: TurnState, config: RunnableConfig) -> dict[str, Any]:
    """Apply a control command. No model call is made."""
    agent = _agent(config)
    stream = _stream(config)
    command = state.command
    messages = state.messages
    prefix = agent.config.command_prefix

    if isinstance(command, SwitchPresetCommand):
        try:
            agent.prompts.reset_to_preset(command.preset)
        except UnknownPresetError as e:
            logger.info(f"Unknown preset requested in {state.conversation_id}: {e.name}")
            stream.write_text(f"Unknown preset '{e.name}'.\n{help_text(prefix)}")
        else:
            messages = []
            await agent.store.save(state.conversation_id, messages)
            stream.write_text(f"Switched to preset '{command.preset}'. Conversation history cleared.")

    elif isinstance(command, AddFeatureCommand):
        agent.prompts.add_feature(command.feature)
        stream.write_text(f"Feature added: {command.feature}")

    elif isinstance(command, RemoveFeatureCommand):
        agent.prompts.remove_feature(command.feature)
        stream.write_text(f"Feature removed: {command.feature}")

    else:
        if not isinstance(command, HelpCommand):
            logger.warning(f"Unhandled command {command!r}, showing help")
        stream.write_text(help_text(prefix))

    stream.write_finish("stop")
    return {"messages": messages, "next_step": "end"}


async def resolve_node(state: TurnState, config: RunnableConfig) -> dict[str, Any]:
    """Execute approved and reject denied tool calls of the last message."""
    agent = _agent(config)
    messages = await process_tool_calls(state.messages, _stream(config), agent.registry, agent.context_factory)

    if messages is not state.messages:
        # Executed tools have side effects; keep their results even if generation fails
        await agent.store.save(state.conversation_id, messages)

    return {"messages": messages, "next_step": "generate"}


async def generate_node(state: TurnState, config: RunnableConfig) -> dict[str, Any]:
    """Stream a model response, executing auto tools along the way."""
    agent = _agent(config)
    stream = _stream(config)

    try:
        result = await agent.llm_service.stream_agent_loop(
            messages=convert_to_llm_messages(state.messages, agent.config.command_prefix),
            system_prompt=agent.prompts.get_system_prompt(),
            tools=agent.llm_tools(),
            stream=stream,
            max_steps=agent.config.max_steps,
        )
    except Exception as e:
        logger.error(f"Generation failed for conversation {state.conversation_id}: {e}", exc_info=True)
        return {"error": str(e), "next_step": "error"}

    return {
        "assistant_message": result.message,
        "finish_reason": result.finish_reason,
        "usage": result.usage,
        "next_step": "finalize",
    }


async def finalize_node(state: TurnState, config: RunnableConfig) -> dict[str, Any]:
    """Notify, persist the new assistant message and end the stream."""
    agent = _agent(config)
    stream = _stream(config)
    on_finish = config["configurable"].get("on_finish")

    finish = FinishInfo(finish_reason=state.finish_reason or "unknown", usage=state.usage or LLMUsage())

    if on_finish is not None:
        try:
            outcome = on_finish(finish)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(f"Completion callback failed: {e}", exc_info=True)

    messages = state.messages
    if state.assistant_message is not None and state.assistant_message.parts:
        messages = [*messages, state.assistant_message]
    await agent.store.save(state.conversation_id, messages)

    stream.write_finish(finish.finish_reason, finish.usage)
    logger.info(f"Turn finished for conversation {state.conversation_id}: {finish.finish_reason}")
    return {"messages": messages, "next_step": "end"}


async def error_handler_node(state: TurnState, config: RunnableConfig) -> dict[str, Any]:
    """Report a failed generation to the client. Nothing is persisted."""
    logger.error(f"Error handler invoked: {state.error}")
    _stream(config).write_error(GENERATION_ERROR_MESSAGE)
    return {"next_step": "end"}
