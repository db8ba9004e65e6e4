"""Edge logic and routing for the turn graph."""

from typing import Literal

from app.graphs.state import TurnState
from app.utils.logging import get_logger

logger = get_logger(__name__)


def route_start(state: TurnState) -> Literal["command", "resolve"]:
    """Control commands bypass tool resolution and the model entirely."""
    if state.command is not None:
        logger.debug(f"Routing {type(state.command).__name__} to command node")
        return "command"
    return "resolve"


def route_generate_output(state: TurnState) -> Literal["finalize", "error"]:
    """Route from the generate node.

    A failed generation never reaches finalize, so nothing it produced is
    persisted.
    """
    if state.error or state.next_step == "error":
        logger.warning(f"Routing to error handler due to: {state.error}")
        return "error"
    return "finalize"
