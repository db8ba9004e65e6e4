"""Tools for the conversational AI assistant."""

from app.tools.base import ToolContext, ToolDefinition
from app.tools.registry import ToolsRegistry, get_tools_registry

__all__ = ["ToolContext", "ToolDefinition", "ToolsRegistry", "get_tools_registry"]
