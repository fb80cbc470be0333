"""OpenWeather One Call and Air Pollution API provider implementation."""
import logging
import requests
from typing import Any, Dict
from weather_provider import WeatherProviderBase, WeatherProviderError
from weather_data import PollutionReading, WeatherReading, WeatherSnapshot


class OpenWeatherProvider(WeatherProviderBase):
    """
    Weather provider using the OpenWeather One Call and Air Pollution APIs.

    The two endpoints are queried independently. A failure on one of them is
    logged and leaves that reading at its default value, so a pollution outage
    never hides good weather data and vice versa.

    One Call: https://openweathermap.org/api/one-call-api
    Air Pollution: https://openweathermap.org/api/air-pollution
    """

    ONECALL_URL = "https://api.openweathermap.org/data/2.5/onecall"
    POLLUTION_URL = "https://api.openweathermap.org/data/2.5/air_pollution"

    def __init__(
        self,
        timeout: float = 30,
        onecall_url: str = ONECALL_URL,
        pollution_url: str = POLLUTION_URL,
    ):
        """
        Initialize OpenWeather provider.

        Args:
            timeout: HTTP request timeout in seconds, applied to each endpoint
            onecall_url: One Call endpoint for current conditions
            pollution_url: Air Pollution endpoint
        """
        self.timeout = timeout
        self.onecall_url = onecall_url
        self.pollution_url = pollution_url

    def fetch(self, api_key: str, latitude: float, longitude: float, unit: str) -> WeatherSnapshot:
        """
        Fetch current weather and air pollution for a coordinate.

        Never raises for provider failures; check the snapshot's
        weather_ok / pollution_ok flags instead.
        """
        snapshot = WeatherSnapshot()

        try:
            snapshot.weather = self.get_current(api_key, latitude, longitude, unit)
            snapshot.weather_ok = True
        except WeatherProviderError as e:
            logging.error(f"Error requesting OneCall API (lat={latitude}, lon={longitude}): {e}")

        try:
            snapshot.pollution = self.get_pollution(api_key, latitude, longitude)
            snapshot.pollution_ok = True
        except WeatherProviderError as e:
            logging.error(f"Error requesting Pollution API (lat={latitude}, lon={longitude}): {e}")

        return snapshot

    def get_current(self, api_key: str, latitude: float, longitude: float, unit: str) -> WeatherReading:
        """
        Fetch current conditions from the One Call API.

        Raises:
            WeatherProviderError: If the request fails or the response is malformed
        """
        params = {
            "lat": latitude,
            "lon": longitude,
            "exclude": "minutely,hourly,daily",
            "units": unit,
            "appid": api_key,
        }
        data = self._get_json(self.onecall_url, params)

        current = data.get("current")
        if current is None:
            logging.error("OneCall response missing 'current' block")
            raise WeatherProviderError("Response missing 'current' block")

        try:
            reading = WeatherReading.from_payload(current)
        except (KeyError, ValueError, TypeError) as e:
            logging.error(f"Failed to parse OneCall response: {e}", exc_info=True)
            raise WeatherProviderError(f"Failed to parse response: {str(e)}")

        logging.debug(f"Parsed weather reading: temp={reading.temperature} humidity={reading.humidity}")
        return reading

    def get_pollution(self, api_key: str, latitude: float, longitude: float) -> PollutionReading:
        """
        Fetch current air pollution from the Air Pollution API.

        Raises:
            WeatherProviderError: If the request fails or the response is malformed
        """
        params = {
            "lat": latitude,
            "lon": longitude,
            "appid": api_key,
        }
        data = self._get_json(self.pollution_url, params)

        try:
            reading = PollutionReading.from_payload(data)
        except (KeyError, ValueError, TypeError) as e:
            logging.error(f"Failed to parse Pollution response: {e}", exc_info=True)
            raise WeatherProviderError(f"Failed to parse response: {str(e)}")

        logging.debug(f"Parsed pollution reading: {len(reading)} entries")
        return reading

    def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Issue a GET request and return the decoded JSON object."""
        try:
            logging.info(f"Making OpenWeather API request: {url}")
            logging.debug(
                f"Request parameters: lat={params.get('lat')}, lon={params.get('lon')}, units={params.get('units')}"
            )

            response = requests.get(url, params=params, timeout=self.timeout)

            logging.info(f"API response status: {response.status_code}")

            if not response.ok:
                logging.error(f"API request failed with status {response.status_code}")
                self._handle_error_response(response)
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request: {e}")
            raise WeatherProviderError(f"Network error: {str(e)}")

        try:
            data = response.json()
        except ValueError as e:
            logging.error(f"Failed to decode API response: {e}")
            raise WeatherProviderError(f"Failed to parse response: {str(e)}")

        if not isinstance(data, dict):
            raise WeatherProviderError(f"Unexpected response type: {type(data).__name__}")
        logging.debug(f"API response (truncated): {str(data)[:500]}...")
        return data

    def _handle_error_response(self, response: requests.Response) -> None:
        """Parse and raise error from OpenWeather error response."""
        try:
            error_data = response.json()
        except ValueError:
            # Not JSON, use HTTP status
            logging.error(f"Non-JSON error response: HTTP {response.status_code}, body: {response.text[:500]}")
            raise WeatherProviderError(
                f"HTTP {response.status_code}: {response.text[:200]}"
            )

        cod = response.status_code
        message = "Unknown error"
        if isinstance(error_data, dict):
            cod = error_data.get("cod", cod)
            message = error_data.get("message", message)

        logging.error(f"OpenWeather API error response: {error_data}")
        raise WeatherProviderError(f"OpenWeather API error {cod}: {message}")
