"""Tools registry: the single source of truth for tool names and executors."""

import copy
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import ValidationError

from app.models.llm import LLMMessage, LLMTool
from app.services.lookups import (
    InMemoryLocalTimeService,
    InMemoryWeatherService,
    LocalTimeService,
    WeatherService,
)
from app.tools.base import NO_EXECUTOR_RESULT, ToolContext, ToolDefinition
from app.tools.local_time import create_get_local_time_tool
from app.tools.schedule_tasks import (
    create_cancel_scheduled_task_tool,
    create_get_scheduled_tasks_tool,
    create_schedule_task_tool,
)
from app.tools.weather import create_get_weather_tool
from app.utils.logging import get_logger

logger = get_logger(__name__)

ContextFactory = Callable[[str, list[LLMMessage]], ToolContext]


class ToolsRegistry:
    """Registry for managing AI assistant tools."""

    def __init__(self, weather_service: WeatherService, time_service: LocalTimeService):
        """Initialize tools registry with service dependencies."""
        self.weather_service = weather_service
        self.time_service = time_service
        self._tools: dict[str, ToolDefinition] = {}
        self._register_default_tools()

    def _register_default_tools(self) -> None:
        """Register the default tool set."""
        tools = [
            create_get_weather_tool(self.weather_service),
            create_get_local_time_tool(self.time_service),
            create_schedule_task_tool(),
            create_get_scheduled_tasks_tool(),
            create_cancel_scheduled_task_tool(),
        ]

        for tool in tools:
            self.register_tool(tool)

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a new tool in the registry."""
        if tool.name in self._tools:
            logger.warning(f"Replacing registered tool {tool.name}")
        self._tools[tool.name] = tool

    def combined(self, extra_tools: Iterable[ToolDefinition]) -> "ToolsRegistry":
        """Return a copy with additional tools merged in."""
        merged = copy.copy(self)
        merged._tools = dict(self._tools)
        for tool in extra_tools:
            merged.register_tool(tool)
        return merged

    def requires_confirmation(self, name: str) -> bool:
        """Whether a tool waits for a human decision. Unknown tools do not."""
        tool = self._tools.get(name)
        return tool is not None and tool.requires_confirmation

    def tools_requiring_confirmation(self) -> list[str]:
        """Names a client must render approval controls for."""
        return [name for name, tool in self._tools.items() if tool.requires_confirmation]

    async def execute(self, name: str, args: dict[str, Any], context: ToolContext) -> Any:
        """Run a tool's handler.

        Failures are returned as error strings so a single bad call never
        aborts the conversation.
        """
        tool = self._tools.get(name)
        if tool is None or tool.handler is None:
            logger.error(f"No executor found for tool {name}")
            return NO_EXECUTOR_RESULT

        try:
            params = tool.parse_input(args)
        except ValidationError as e:
            logger.warning(f"Invalid input for tool {name}: {e}")
            return f"Error: invalid input for {name}: {e}"

        try:
            result = await tool.handler(params, context)
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}", exc_info=True)
            return f"Error: {e!s}"

        logger.debug(f"Tool {name} succeeded: {str(result)[:100]}")
        return result

    def get_llm_tools(self, context_factory: ContextFactory) -> dict[str, LLMTool]:
        """Get LLM tools with schemas, binding callables for auto-executed tools."""

        def create_tool_callable(tool: ToolDefinition):
            async def tool_callable(params: dict[str, Any], tool_call_id: str, messages: list[LLMMessage]) -> Any:
                return await self.execute(tool.name, params, context_factory(tool_call_id, messages))

            return tool_callable

        return {
            name: LLMTool(
                name=tool.name,
                description=tool.description,
                input_schema=tool.get_json_schema(),
                callable=None if tool.requires_confirmation else create_tool_callable(tool),
            )
            for name, tool in self._tools.items()
        }


_tools_registry: ToolsRegistry | None = None


def get_tools_registry(
    weather_service: WeatherService | None = None,
    time_service: LocalTimeService | None = None,
) -> ToolsRegistry:
    """Get or create tools registry instance."""
    global _tools_registry

    if _tools_registry is None:
        _tools_registry = ToolsRegistry(
            weather_service or InMemoryWeatherService(),
            time_service or InMemoryLocalTimeService(),
        )

    return _tools_registry
