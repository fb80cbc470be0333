"""Prometheus collector exposing OpenWeather readings as gauges."""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Sequence
from prometheus_client.core import GaugeMetricFamily
from weather_data import Location, WeatherSnapshot
from weather_service import WeatherService

LABELS = ("location",)


@dataclass(frozen=True)
class MetricSpec:
    """Static descriptor of one gauge plus how to read its value."""
    name: str
    documentation: str
    value: Callable[[Any], float]

    def family(self) -> GaugeMetricFamily:
        return GaugeMetricFamily(self.name, self.documentation, labels=list(LABELS))


# Read from WeatherReading, always emitted
WEATHER_METRICS = (
    MetricSpec("openweather_temperature", "Current temperature in degrees", lambda w: w.temperature),
    MetricSpec("openweather_humidity", "Current relative humidity", lambda w: w.humidity),
    MetricSpec("openweather_feelslike", "Current feels_like temperature in degrees", lambda w: w.feels_like),
    MetricSpec("openweather_pressure", "Current Atmospheric pressure hPa", lambda w: w.pressure),
    MetricSpec(
        "openweather_windspeed",
        "Current Wind Speed in meters/sec, or miles/hour if imperial",
        lambda w: w.wind_speed,
    ),
    MetricSpec("openweather_winddegree", "Wind direction, degrees (meteorological)", lambda w: w.wind_degree),
    MetricSpec("openweather_windgust", "Wind gust", lambda w: w.wind_gust),
    MetricSpec("openweather_rain1h", "Rain volume for last hour, in millimeters", lambda w: w.rain_1h),
    MetricSpec("openweather_snow1h", "Snow volume for last hour, in millimeters", lambda w: w.snow_1h),
    MetricSpec("openweather_cloudiness", "Cloudiness percentage", lambda w: w.clouds),
    MetricSpec("openweather_visibility", "Average visibility, meters", lambda w: w.visibility),
    MetricSpec("openweather_sunrise", "Sunrise time, unix, UTC", lambda w: w.sunrise),
    MetricSpec("openweather_sunset", "Sunset time, unix, UTC", lambda w: w.sunset),
    MetricSpec(
        "openweather_dewpoint",
        "Atmospheric temperature below which water droplets begin to condense",
        lambda w: w.dew_point,
    ),
    MetricSpec("openweather_uvi", "Current UV index", lambda w: w.uvi),
)

# Read from WeatherSnapshot, always emitted
STATUS_METRICS = (
    MetricSpec(
        "openweather_weather_fetch_success",
        "1 if the last weather fetch succeeded, 0 if weather values are defaulted",
        lambda s: s.weather_ok,
    ),
    MetricSpec(
        "openweather_pollution_fetch_success",
        "1 if the last pollution fetch succeeded, 0 otherwise",
        lambda s: s.pollution_ok,
    ),
)

# Read from the current PollutionEntry, only emitted when one exists
POLLUTION_METRICS = (
    MetricSpec("openweather_aqi", "Air quality index", lambda p: p.aqi),
    MetricSpec("openweather_co", "Concentration of CO (Carbon monoxide), μg/m3", lambda p: p.co),
    MetricSpec("openweather_no", "Concentration of NO (Nitrogen monoxide), μg/m3", lambda p: p.no),
    MetricSpec("openweather_no2", "Concentration of NO2 (Nitrogen dioxide), μg/m3", lambda p: p.no2),
    MetricSpec("openweather_o3", "Concentration of O3 (Ozone), μg/m3", lambda p: p.o3),
    MetricSpec("openweather_so2", "Concentration of SO2 (Sulphur dioxide), μg/m3", lambda p: p.so2),
    MetricSpec("openweather_pm2_5", "Concentration of PM2.5 (Fine particles matter), μg/m3", lambda p: p.pm2_5),
    MetricSpec("openweather_pm10", "Concentration of PM10 (Coarse particulate matter), μg/m3", lambda p: p.pm10),
    MetricSpec("openweather_nh3", "Concentration of NH3 (Ammonia), μg/m3", lambda p: p.nh3),
)

METRICS = WEATHER_METRICS + STATUS_METRICS + POLLUTION_METRICS


class OpenweatherCollector:
    """
    Custom collector for prometheus_client.

    describe() yields the fixed descriptor set without touching the network.
    collect() resolves every location through the weather service and yields
    one gauge family per descriptor, each sample labelled by location.
    """

    def __init__(
        self,
        service: WeatherService,
        locations: Sequence[Location],
        language: str = "EN",
        fetch_workers: int = 1,
    ):
        """
        Initialize collector.

        Args:
            service: Cache-or-fetch service for snapshots
            locations: Resolved locations, in output order
            language: Language preference, carried for the provider
            fetch_workers: Number of locations fetched in parallel per scrape
        """
        self.service = service
        self.locations = tuple(locations)
        self.language = language
        self.fetch_workers = max(1, fetch_workers)

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for spec in METRICS:
            yield spec.family()

    def collect(self) -> Iterator[GaugeMetricFamily]:
        families: Dict[str, GaugeMetricFamily] = {spec.name: spec.family() for spec in METRICS}

        for location, snapshot in zip(self.locations, self._snapshots()):
            labels = [location.name]

            for spec in WEATHER_METRICS:
                families[spec.name].add_metric(labels, float(spec.value(snapshot.weather)))
            for spec in STATUS_METRICS:
                families[spec.name].add_metric(labels, float(spec.value(snapshot)))

            current = snapshot.pollution.current
            if current is not None:
                for spec in POLLUTION_METRICS:
                    families[spec.name].add_metric(labels, float(spec.value(current)))

        for spec in METRICS:
            yield families[spec.name]

    def _snapshots(self) -> List[WeatherSnapshot]:
        """Fetch snapshots for all locations, preserving location order."""
        if self.fetch_workers == 1 or len(self.locations) < 2:
            return [self._snapshot_for(location) for location in self.locations]

        workers = min(self.fetch_workers, len(self.locations))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._snapshot_for, self.locations))

    def _snapshot_for(self, location: Location) -> WeatherSnapshot:
        try:
            return self.service.get_latest(location)
        except Exception as exc:
            # A scrape must never fail because of one location
            logging.exception(f"Unexpected error collecting {location.name}: {exc}")
            return WeatherSnapshot()
