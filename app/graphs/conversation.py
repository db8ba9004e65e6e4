"""Turn graph: command handling, tool resolution, generation and persistence."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from langgraph.graph import END, StateGraph

from app.graphs.edges import route_generate_output, route_start
from app.graphs.nodes import (
    command_node,
    error_handler_node,
    finalize_node,
    generate_node,
    resolve_node,
    start_node,
)
from app.graphs.state import TurnState
from app.models.llm import FinishInfo
from app.models.messages import Message
from app.services.stream import DataStreamWriter
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from app.services.chat_agent import ChatAgent

logger = get_logger(__name__)

FinishCallback = Callable[[FinishInfo], Awaitable[None] | None]


def create_turn_graph():
    """Create the turn graph.

    This graph orchestrates a single turn:
    - Control commands, answered without a model call
    - Resolution of approved and denied tool calls
    - Streaming generation with automatic tools
    - Persistence and completion notification, or error reporting

    Returns:
        Compiled LangGraph workflow
    """
    logger.info("Creating turn graph")

    workflow = StateGraph(TurnState)

    workflow.add_node("start", start_node)
    workflow.add_node("command", command_node)
    workflow.add_node("resolve", resolve_node)
    workflow.add_node("generate", generate_node)
    workflow.add_node("finalize", finalize_node)
    workflow.add_node("error", error_handler_node)

    workflow.set_entry_point("start")

    workflow.add_conditional_edges(
        "start",
        route_start,
        {
            "command": "command",
            "resolve": "resolve",
        },
    )

    workflow.add_edge("resolve", "generate")

    workflow.add_conditional_edges(
        "generate",
        route_generate_output,
        {
            "finalize": "finalize",
            "error": "error",
        },
    )

    workflow.add_edge("command", END)
    workflow.add_edge("finalize", END)
    workflow.add_edge("error", END)

    # History lives in the message store, so no checkpointer
    compiled = workflow.compile()

    logger.info("Turn graph created successfully")
    return compiled


class TurnGraphManager:
    """Manager class for turn graph operations."""

    def __init__(self):
        self.graph = create_turn_graph()

    async def run_turn(
        self,
        agent: "ChatAgent",
        messages: list[Message],
        stream: DataStreamWriter,
        on_finish: FinishCallback | None = None,
        has_new_message: bool = False,
    ) -> list[Message]:
        """Run one turn through the graph.

        Args:
            agent: Conversation actor providing prompts, tools, store and model
            messages: History with the inbound submission already applied
            stream: Output channel of this turn
            on_finish: Completion callback, invoked only when a generation finishes
            has_new_message: Whether the submission appended the last message,
                which makes it eligible to be a control command

        Returns:
            The conversation history after the turn
        """
        initial_state = TurnState(
            conversation_id=agent.conversation_id, messages=messages, has_new_message=has_new_message
        )

        config: dict[str, Any] = {
            "configurable": {
                "agent": agent,
                "stream": stream,
                "on_finish": on_finish,
            },
            "recursion_limit": 10,  # Prevent infinite loops
        }

        result = await self.graph.ainvoke(initial_state, config)
        return [Message.model_validate(message) for message in result.get("messages", [])]


_turn_graph_manager: TurnGraphManager | None = None


def get_turn_graph_manager() -> TurnGraphManager:
    """Get or create the shared turn graph manager."""
    global _turn_graph_manager
    if _turn_graph_manager is None:
        _turn_graph_manager = TurnGraphManager()
    return _turn_graph_manager
