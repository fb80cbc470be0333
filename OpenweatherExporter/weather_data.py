"""Weather domain model - pure data structures independent of any API."""
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple


def _number(block: Dict[str, Any], key: str, default: float = 0.0) -> float:
    """Read a numeric field, falling back to default for missing or null values."""
    value = block.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Field '{key}' is not numeric: {value!r}")
    return value


def _one_hour(block: Dict[str, Any], key: str) -> float:
    """Read the 1h accumulation from an optional nested rain/snow object."""
    nested = block.get(key) or {}
    if not isinstance(nested, dict):
        raise TypeError(f"Field '{key}' is not an object: {nested!r}")
    return float(_number(nested, "1h"))


@dataclass(frozen=True)
class Location:
    """A resolved location, created once at startup."""
    name: str
    latitude: float
    longitude: float


@dataclass
class WeatherReading:
    """Current atmospheric values. Every field defaults to zero."""
    temperature: float = 0.0
    feels_like: float = 0.0
    pressure: float = 0.0
    humidity: float = 0.0
    dew_point: float = 0.0
    uvi: float = 0.0
    clouds: int = 0  # percentage
    visibility: float = 0.0  # meters
    wind_speed: float = 0.0
    wind_degree: float = 0.0
    wind_gust: float = 0.0
    rain_1h: float = 0.0  # mm
    snow_1h: float = 0.0  # mm
    sunrise: int = 0  # UNIX timestamp (UTC)
    sunset: int = 0  # UNIX timestamp (UTC)
    timestamp: int = 0

    @classmethod
    def from_payload(cls, current: Dict[str, Any]) -> "WeatherReading":
        """
        Build a reading from the 'current' block of a One Call response.

        Raises:
            TypeError: If a field has an unexpected type
            ValueError: If an integer field cannot be converted
        """
        if not isinstance(current, dict):
            raise TypeError(f"'current' block is not an object: {current!r}")
        return cls(
            temperature=float(_number(current, "temp")),
            feels_like=float(_number(current, "feels_like")),
            pressure=float(_number(current, "pressure")),
            humidity=float(_number(current, "humidity")),
            dew_point=float(_number(current, "dew_point")),
            uvi=float(_number(current, "uvi")),
            clouds=int(_number(current, "clouds", 0)),
            visibility=float(_number(current, "visibility")),
            wind_speed=float(_number(current, "wind_speed")),
            wind_degree=float(_number(current, "wind_deg")),
            wind_gust=float(_number(current, "wind_gust")),
            rain_1h=_one_hour(current, "rain"),
            snow_1h=_one_hour(current, "snow"),
            sunrise=int(_number(current, "sunrise", 0)),
            sunset=int(_number(current, "sunset", 0)),
            timestamp=int(_number(current, "dt", 0)),
        )


@dataclass
class PollutionEntry:
    """A single air pollution observation. Concentrations are in μg/m3."""
    aqi: int = 0
    co: float = 0.0
    no: float = 0.0
    no2: float = 0.0
    o3: float = 0.0
    so2: float = 0.0
    pm2_5: float = 0.0
    pm10: float = 0.0
    nh3: float = 0.0
    timestamp: int = 0

    @classmethod
    def from_payload(cls, item: Dict[str, Any]) -> "PollutionEntry":
        if not isinstance(item, dict):
            raise TypeError(f"Pollution item is not an object: {item!r}")
        main = item.get("main") or {}
        components = item.get("components") or {}
        if not isinstance(main, dict) or not isinstance(components, dict):
            raise TypeError("Pollution item has malformed 'main' or 'components'")
        return cls(
            aqi=int(_number(main, "aqi", 0)),
            co=float(_number(components, "co")),
            no=float(_number(components, "no")),
            no2=float(_number(components, "no2")),
            o3=float(_number(components, "o3")),
            so2=float(_number(components, "so2")),
            pm2_5=float(_number(components, "pm2_5")),
            pm10=float(_number(components, "pm10")),
            nh3=float(_number(components, "nh3")),
            timestamp=int(_number(item, "dt", 0)),
        )


@dataclass
class PollutionReading:
    """Ordered pollution observations. An empty list is a valid state."""
    entries: List[PollutionEntry] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PollutionReading":
        if not isinstance(payload, dict):
            raise TypeError(f"Pollution payload is not an object: {payload!r}")
        items = payload.get("list") or []
        if not isinstance(items, list):
            raise TypeError("Pollution 'list' is not an array")
        return cls(entries=[PollutionEntry.from_payload(item) for item in items])

    @property
    def current(self) -> Optional[PollutionEntry]:
        """The provider's current observation is the first entry."""
        return self.entries[0] if self.entries else None

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class WeatherSnapshot:
    """Combined result of one fetch for one location."""
    weather: WeatherReading = field(default_factory=WeatherReading)
    pollution: PollutionReading = field(default_factory=PollutionReading)
    weather_ok: bool = False
    pollution_ok: bool = False
    fetched_at: float = field(default_factory=time.time)

    def __iter__(self) -> Iterator:
        # Allows `weather, pollution = snapshot`
        return iter((self.weather, self.pollution))

    def as_pair(self) -> Tuple[WeatherReading, PollutionReading]:
        return self.weather, self.pollution
