"""External lookup services used by the default tools."""

from typing import Protocol

from app.utils.logging import get_logger

logger = get_logger(__name__)


class WeatherService(Protocol):
    """Interface for weather lookups."""

    async def get_weather(self, city: str) -> str:
        """Describe the current weather in a city."""
        ...


class LocalTimeService(Protocol):
    """Interface for local time lookups."""

    async def get_local_time(self, location: str) -> str:
        """Return the local time at a location."""
        ...


class InMemoryWeatherService:
    """Weather service with canned answers.

    Known cities can be overridden; everything else is sunny.
    """

    def __init__(self, conditions: dict[str, str] | None = None):
        self.conditions = {city.lower(): text for city, text in (conditions or {}).items()}

    async def get_weather(self, city: str) -> str:
        logger.info(f"Getting weather information for {city}")
        return f"The weather in {city} is {self.conditions.get(city.lower(), 'sunny')}"


class InMemoryLocalTimeService:
    """Local time service returning a fixed time."""

    def __init__(self, time: str = "10am"):
        self.time = time

    async def get_local_time(self, location: str) -> str:
        logger.info(f"Getting local time for {location}")
        return self.time
