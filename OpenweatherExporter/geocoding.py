"""Location resolution - turns location names into coordinates at startup."""
import logging
import requests
from abc import ABC, abstractmethod
from typing import List, Tuple
from weather_data import Location


class LocationResolutionError(Exception):
    """Raised when a location name cannot be resolved. Fatal at startup."""
    pass


class GeocoderBase(ABC):
    """Abstract base class for geocoding backends."""

    @abstractmethod
    def resolve(self, name: str) -> Tuple[float, float]:
        """
        Resolve a location name to coordinates.

        Returns:
            (latitude, longitude)

        Raises:
            LocationResolutionError: If the name is unknown or the lookup fails
        """
        pass


class NominatimGeocoder(GeocoderBase):
    """
    Geocoder backed by the OpenStreetMap Nominatim search API.

    Nominatim's usage policy requires an identifying User-Agent and at most
    one request per second; resolution only happens once at startup.
    """

    BASE_URL = "https://nominatim.openstreetmap.org/search"
    USER_AGENT = "openweather-exporter"

    def __init__(self, base_url: str = BASE_URL, timeout: float = 10, user_agent: str = USER_AGENT):
        self.base_url = base_url
        self.timeout = timeout
        self.user_agent = user_agent

    def resolve(self, name: str) -> Tuple[float, float]:
        params = {"q": name, "format": "json", "limit": 1}
        headers = {"User-Agent": self.user_agent}

        try:
            logging.debug(f"Geocoding '{name}' via {self.base_url}")
            response = requests.get(self.base_url, params=params, headers=headers, timeout=self.timeout)
            if not response.ok:
                raise LocationResolutionError(f"Geocoding '{name}' failed: HTTP {response.status_code}")
            results = response.json()
        except requests.exceptions.RequestException as e:
            raise LocationResolutionError(f"Geocoding '{name}' failed: {e}")
        except ValueError as e:
            raise LocationResolutionError(f"Geocoding '{name}' returned invalid JSON: {e}")

        if not isinstance(results, list) or not results:
            raise LocationResolutionError(f"No results found for location '{name}'")

        try:
            latitude = float(results[0]["lat"])
            longitude = float(results[0]["lon"])
        except (KeyError, TypeError, ValueError) as e:
            raise LocationResolutionError(f"Malformed geocoding result for '{name}': {e}")

        return latitude, longitude


def resolve_locations(locations: str, geocoder: GeocoderBase, delimiter: str = "|") -> List[Location]:
    """
    Resolve a delimited list of names into Locations.

    Order and duplicates are preserved. Any failure aborts the whole
    resolution; there is no partial result.

    Raises:
        LocationResolutionError: If any name fails to resolve
    """
    resolved = []
    for token in locations.split(delimiter):
        name = token.strip()
        if not name:
            raise LocationResolutionError(f"Empty location name in {locations!r}")
        latitude, longitude = geocoder.resolve(name)
        logging.info(f"Resolved location '{name}' to ({latitude}, {longitude})")
        resolved.append(Location(name=name, latitude=latitude, longitude=longitude))
    return resolved
