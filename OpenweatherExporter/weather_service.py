"""Weather service with per-location caching."""
import logging
import threading
from typing import Dict, Hashable, Tuple
from cache import TTLCache
from weather_data import Location, WeatherSnapshot
from weather_provider import WeatherProviderBase, resolve_unit


class WeatherService:
    """
    Service that wraps a weather provider with a per-location cache.

    Prevents hammering the API by caching each location's snapshot and only
    fetching again once its entry has expired. Entries are keyed by
    (location name, unit system) so locations never share a slot.
    """

    def __init__(
        self,
        provider: WeatherProviderBase,
        cache: TTLCache,
        api_key: str,
        degrees_unit: str = "C",
    ):
        """
        Initialize weather service.

        Args:
            provider: Weather provider to use
            cache: Cache holding the latest snapshot per location
            api_key: OpenWeather API key
            degrees_unit: "C", "F", or anything else for standard units
        """
        self.provider = provider
        self.cache = cache
        self.api_key = api_key
        self.unit = resolve_unit(degrees_unit)

        self._key_locks: Dict[Hashable, threading.Lock] = {}
        self._key_locks_guard = threading.Lock()

    def cache_key(self, location: Location) -> Tuple[str, str]:
        return location.name, self.unit

    def get_latest(self, location: Location) -> WeatherSnapshot:
        """
        Get the latest snapshot for a location, using cache if still fresh.

        A miss or an expired entry triggers exactly one provider fetch, even
        when several scrapes ask for the same location at once. Partial
        results are cached like full ones; a snapshot where both endpoints
        failed is returned but not cached, so the next scrape fetches again.
        """
        key = self.cache_key(location)

        snapshot, found = self.cache.get(key)
        if found:
            logging.debug(f"Using cached weather data for {location.name} (TTL: {self.cache.ttl_seconds}s)")
            return snapshot

        with self._lock_for(key):
            # Another scrape may have filled the entry while we waited
            snapshot, found = self.cache.get(key)
            if found:
                return snapshot

            logging.info(f"Fetching weather data for {location.name} ({location.latitude}, {location.longitude})")
            snapshot = self.provider.fetch(self.api_key, location.latitude, location.longitude, self.unit)
            if not snapshot.weather_ok and not snapshot.pollution_ok:
                logging.error(f"Both endpoints failed for {location.name}, not caching")
                return snapshot
            if not (snapshot.weather_ok and snapshot.pollution_ok):
                logging.warning(
                    f"Partial data for {location.name}: weather_ok={snapshot.weather_ok} "
                    f"pollution_ok={snapshot.pollution_ok}"
                )
            self.cache.set(key, snapshot)
            return snapshot

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._key_locks_guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock
