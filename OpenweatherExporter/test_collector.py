"""Tests for the Prometheus collector."""
import pytest
from prometheus_client import CollectorRegistry, generate_latest
from cache import TTLCache
from collector import METRICS, POLLUTION_METRICS, STATUS_METRICS, WEATHER_METRICS, OpenweatherCollector
from weather_data import Location, PollutionEntry, PollutionReading, WeatherReading, WeatherSnapshot
from weather_provider import WeatherProviderBase
from weather_service import WeatherService

ALWAYS_PRESENT = len(WEATHER_METRICS) + len(STATUS_METRICS)

LOCATIONS = [
    Location("Toronto, ON", 43.65, -79.38),
    Location("Paris, FR", 48.86, 2.35),
    Location("Tokyo, JP", 35.68, 139.69),
]


class RoutingProvider(WeatherProviderBase):
    """Returns a per-latitude snapshot; unknown latitudes fail completely."""

    def __init__(self, snapshots):
        self.snapshots = snapshots
        self.call_count = 0

    def fetch(self, api_key, latitude, longitude, unit):
        self.call_count += 1
        return self.snapshots.get(latitude, WeatherSnapshot())


class ExplodingProvider(WeatherProviderBase):
    def fetch(self, api_key, latitude, longitude, unit):
        raise RuntimeError("boom")


def weather(temperature):
    return WeatherReading(
        temperature=temperature,
        humidity=50.0,
        clouds=75,
        sunrise=1684926645,
        sunset=1684977332,
    )


def pollution(aqi, co=200.0):
    return PollutionReading(entries=[PollutionEntry(aqi=aqi, co=co, pm2_5=3.5), PollutionEntry(aqi=5)])


def make_collector(snapshots, locations=LOCATIONS, fetch_workers=1):
    provider = RoutingProvider(snapshots)
    service = WeatherService(provider, TTLCache(300), api_key="test_key", degrees_unit="C")
    return OpenweatherCollector(service, locations, fetch_workers=fetch_workers), provider


def samples_by_location(families):
    """Map location -> {metric name: value}."""
    result = {}
    for family in families:
        for sample in family.samples:
            result.setdefault(sample.labels["location"], {})[sample.name] = sample.value
    return result


def test_describe_is_fixed():
    """Test that describe() yields the same descriptors on every call without fetching."""
    collector, provider = make_collector({})

    first = [(m.name, m.documentation, m.type) for m in collector.describe()]
    second = [(m.name, m.documentation, m.type) for m in collector.describe()]

    assert first == second
    assert [name for name, _, _ in first] == [spec.name for spec in METRICS]
    assert all(kind == "gauge" for _, _, kind in first)
    assert all(not m.samples for m in collector.describe())
    assert provider.call_count == 0


def test_describe_unchanged_after_collect():
    collector, _ = make_collector({43.65: WeatherSnapshot(weather=weather(20.0), weather_ok=True)})
    before = [m.name for m in collector.describe()]

    list(collector.collect())

    assert [m.name for m in collector.describe()] == before


def test_descriptor_names_are_unique():
    names = [spec.name for spec in METRICS]
    assert len(names) == len(set(names))
    assert len(POLLUTION_METRICS) == 9


def test_collect_all_locations_full_data():
    snapshots = {
        loc.latitude: WeatherSnapshot(weather=weather(10.0 + i), pollution=pollution(i + 1), weather_ok=True, pollution_ok=True)
        for i, loc in enumerate(LOCATIONS)
    }
    collector, _ = make_collector(snapshots)

    values = samples_by_location(collector.collect())

    assert set(values) == {"Toronto, ON", "Paris, FR", "Tokyo, JP"}
    for i, loc in enumerate(LOCATIONS):
        assert len(values[loc.name]) == ALWAYS_PRESENT + 9
        assert values[loc.name]["openweather_temperature"] == 10.0 + i
        # First pollution entry is the current one
        assert values[loc.name]["openweather_aqi"] == float(i + 1)


def test_collect_widens_integer_fields():
    collector, _ = make_collector(
        {43.65: WeatherSnapshot(weather=weather(1.0), pollution=pollution(3), weather_ok=True, pollution_ok=True)},
        locations=LOCATIONS[:1],
    )

    families = {f.name: f for f in collector.collect()}

    for name, expected in [
        ("openweather_cloudiness", 75.0),
        ("openweather_sunrise", 1684926645.0),
        ("openweather_aqi", 3.0),
    ]:
        sample = families[name].samples[0]
        assert isinstance(sample.value, float)
        assert sample.value == expected


def test_collect_omits_pollution_when_empty():
    """Test that an empty pollution list emits only the always-present samples."""
    collector, _ = make_collector(
        {43.65: WeatherSnapshot(weather=weather(5.0), weather_ok=True, pollution_ok=True)},
        locations=LOCATIONS[:1],
    )

    families = list(collector.collect())
    values = samples_by_location(families)["Toronto, ON"]

    assert len(values) == ALWAYS_PRESENT
    pollution_names = {spec.name for spec in POLLUTION_METRICS}
    assert not any(f.samples for f in families if f.name in pollution_names)


def test_collect_one_pollution_entry_adds_nine_samples():
    entry = PollutionReading(entries=[PollutionEntry(aqi=1)])
    collector, _ = make_collector(
        {43.65: WeatherSnapshot(weather=weather(5.0), pollution=entry, weather_ok=True, pollution_ok=True)},
        locations=LOCATIONS[:1],
    )

    values = samples_by_location(collector.collect())["Toronto, ON"]

    assert len(values) == ALWAYS_PRESENT + 9


def test_collect_isolates_location_failures():
    """Test that a failed fetch for Paris does not affect Toronto or Tokyo."""
    snapshots = {
        43.65: WeatherSnapshot(weather=weather(18.0), pollution=pollution(2), weather_ok=True, pollution_ok=True),
        35.68: WeatherSnapshot(weather=weather(25.0), pollution=pollution(4), weather_ok=True, pollution_ok=True),
    }
    collector, _ = make_collector(snapshots)

    values = samples_by_location(collector.collect())

    assert values["Toronto, ON"]["openweather_temperature"] == 18.0
    assert values["Tokyo, JP"]["openweather_temperature"] == 25.0
    assert values["Paris, FR"]["openweather_temperature"] == 0.0
    assert values["Paris, FR"]["openweather_weather_fetch_success"] == 0.0
    assert "openweather_aqi" not in values["Paris, FR"]
    assert values["Tokyo, JP"]["openweather_aqi"] == 4.0


def test_collect_weather_failed_pollution_ok():
    snapshot = WeatherSnapshot(pollution=pollution(3, co=250.5), weather_ok=False, pollution_ok=True)
    collector, _ = make_collector({43.65: snapshot}, locations=LOCATIONS[:1])

    values = samples_by_location(collector.collect())["Toronto, ON"]

    for spec in WEATHER_METRICS:
        assert values[spec.name] == 0.0
    assert values["openweather_weather_fetch_success"] == 0.0
    assert values["openweather_pollution_fetch_success"] == 1.0
    assert values["openweather_aqi"] == 3.0
    assert values["openweather_co"] == 250.5
    assert values["openweather_pm2_5"] == 3.5


def test_collect_pollution_failed_weather_ok():
    snapshot = WeatherSnapshot(weather=weather(22.5), weather_ok=True, pollution_ok=False)
    collector, _ = make_collector({43.65: snapshot}, locations=LOCATIONS[:1])

    values = samples_by_location(collector.collect())["Toronto, ON"]

    assert values["openweather_temperature"] == 22.5
    assert values["openweather_humidity"] == 50.0
    assert values["openweather_weather_fetch_success"] == 1.0
    assert values["openweather_pollution_fetch_success"] == 0.0
    assert not any(spec.name in values for spec in POLLUTION_METRICS)


def test_collect_uses_cache_between_scrapes():
    snapshots = {loc.latitude: WeatherSnapshot(weather=weather(1.0), weather_ok=True) for loc in LOCATIONS}
    collector, provider = make_collector(snapshots)

    list(collector.collect())
    list(collector.collect())

    assert provider.call_count == 3


def test_collect_parallel_preserves_order():
    snapshots = {
        loc.latitude: WeatherSnapshot(weather=weather(float(i)), weather_ok=True)
        for i, loc in enumerate(LOCATIONS)
    }
    collector, _ = make_collector(snapshots, fetch_workers=3)

    families = {f.name: f for f in collector.collect()}
    samples = families["openweather_temperature"].samples

    assert [s.labels["location"] for s in samples] == [loc.name for loc in LOCATIONS]
    assert [s.value for s in samples] == [0.0, 1.0, 2.0]


def test_collect_survives_unexpected_provider_error():
    """Test that a scrape still succeeds when the provider raises."""
    service = WeatherService(ExplodingProvider(), TTLCache(300), api_key="test_key")
    collector = OpenweatherCollector(service, LOCATIONS[:1])

    values = samples_by_location(collector.collect())["Toronto, ON"]

    assert len(values) == ALWAYS_PRESENT
    assert values["openweather_temperature"] == 0.0


def test_registry_exposition():
    """Test registration and text exposition through prometheus_client."""
    snapshot = WeatherSnapshot(weather=weather(19.5), pollution=pollution(2), weather_ok=True, pollution_ok=True)
    collector, _ = make_collector({43.65: snapshot}, locations=LOCATIONS[:1])
    registry = CollectorRegistry()
    registry.register(collector)

    output = generate_latest(registry).decode("utf-8")

    assert "# TYPE openweather_temperature gauge" in output
    assert 'openweather_temperature{location="Toronto, ON"} 19.5' in output
    assert 'openweather_aqi{location="Toronto, ON"} 2.0' in output


def test_registry_rejects_duplicate_registration():
    """Test that describe() lets the registry detect name collisions."""
    collector, _ = make_collector({})
    registry = CollectorRegistry()
    registry.register(collector)

    with pytest.raises(ValueError):
        registry.register(make_collector({})[0])
