"""Weather lookup tool. Requires human confirmation."""

from pydantic import BaseModel, Field

from app.services.lookups import WeatherService
from app.tools.base import ToolContext, ToolDefinition


class GetWeatherInput(BaseModel):
    """Input schema for the weather tool."""

    city: str = Field(..., min_length=1, description="Name of the city", examples=["Paris", "Tokyo"])


def create_get_weather_tool(weather_service: WeatherService) -> ToolDefinition:
    async def get_weather_handler(params: GetWeatherInput, context: ToolContext) -> str:
        return await weather_service.get_weather(params.city)

    return ToolDefinition(
        name="getWeatherInformation",
        description="show the weather in a given city to the user",
        input_schema_class=GetWeatherInput,
        handler=get_weather_handler,
        auto_execute=False,
    )
