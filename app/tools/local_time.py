"""Local time lookup tool."""

from pydantic import BaseModel, Field

from app.services.lookups import LocalTimeService
from app.tools.base import ToolContext, ToolDefinition


class GetLocalTimeInput(BaseModel):
    """Input schema for the local time tool."""

    location: str = Field(..., min_length=1, description="City or region to get the time for")


def create_get_local_time_tool(time_service: LocalTimeService) -> ToolDefinition:
    async def get_local_time_handler(params: GetLocalTimeInput, context: ToolContext) -> str:
        return await time_service.get_local_time(params.location)

    return ToolDefinition(
        name="getLocalTime",
        description="get the local time for a specified location",
        input_schema_class=GetLocalTimeInput,
        handler=get_local_time_handler,
    )
