"""Weather provider abstraction - allows swapping different weather APIs."""
from abc import ABC, abstractmethod
from weather_data import WeatherSnapshot


def resolve_unit(degrees_unit: str) -> str:
    """
    Map a degrees preference to an OpenWeather unit system.

    "C" selects metric and "F" selects imperial (case-insensitive). Anything
    else, including an empty string, falls back to standard (Kelvin).
    """
    unit = (degrees_unit or "").strip().upper()
    if unit == "C":
        return "metric"
    if unit == "F":
        return "imperial"
    return "standard"


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers."""

    @abstractmethod
    def fetch(self, api_key: str, latitude: float, longitude: float, unit: str) -> WeatherSnapshot:
        """
        Fetch the current weather and pollution readings for a coordinate.

        Implementations must degrade each reading independently: a failed
        endpoint leaves its reading at the default value instead of raising.

        Returns:
            WeatherSnapshot: Weather and pollution readings with success flags
        """
        pass


class WeatherProviderError(Exception):
    """Exception raised when a weather provider endpoint fails."""
    pass
