"""OpenWeather exporter for Prometheus."""
import argparse
import logging
import os
import signal
import sys
import time
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from prometheus_client import REGISTRY, start_http_server
from prometheus_client.registry import CollectorRegistry

from cache import TTLCache
from collector import OpenweatherCollector
from geocoding import GeocoderBase, LocationResolutionError, NominatimGeocoder, resolve_locations
from openweather_provider import OpenWeatherProvider
from weather_service import WeatherService


def env_default(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    return value if value else default


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    load_dotenv()
    parser = argparse.ArgumentParser("openweather-exporter", description="OpenWeather exporter for Prometheus")
    parser.add_argument(
        "--listen-address",
        default=env_default("OW_LISTEN_ADDRESS", ":9091"),
        help="HTTP address to listen on",
    )
    parser.add_argument("--apikey", default=env_default("OW_APIKEY"), help="OpenWeather API key")
    parser.add_argument(
        "--city",
        default=env_default("OW_CITY", "Toronto, ON"),
        help="Locations to gather metrics from, separated by '|'",
    )
    parser.add_argument(
        "--degrees-unit",
        default=env_default("OW_DEGREES_UNIT", "C"),
        help="Base unit for temperature output: C, F, or anything else for Kelvin",
    )
    parser.add_argument("--language", default=env_default("OW_LANGUAGE", "EN"), help="Language for metric output")
    parser.add_argument("--cache-ttl", default=env_default("OW_CACHE_TTL", "300"), help="Cache time-to-live in seconds")
    parser.add_argument(
        "--timeout",
        type=float,
        default=float(env_default("OW_TIMEOUT", "30")),
        help="HTTP timeout in seconds for each OpenWeather endpoint",
    )
    parser.add_argument(
        "--fetch-workers",
        type=int,
        default=int(env_default("OW_FETCH_WORKERS", "1")),
        help="Locations fetched in parallel per scrape",
    )
    parser.add_argument("--log-file", default=env_default("OW_LOG_FILE"))
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: Optional[str], verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def parse_ttl(value: str) -> int:
    try:
        ttl = int(value)
    except (TypeError, ValueError) as exc:
        raise SystemExit(f"Invalid TTL value: {value!r}") from exc
    if ttl <= 0:
        raise SystemExit(f"Invalid TTL value: {value!r} (must be positive)")
    return ttl


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split "host:port" into its parts. An empty host listens on all interfaces."""
    host, sep, port = address.rpartition(":")
    if not sep:
        raise SystemExit(f"Invalid listen address: {address!r}")
    try:
        port_val = int(port)
    except ValueError as exc:
        raise SystemExit(f"Invalid listen address: {address!r}") from exc
    if not 0 < port_val < 65536:
        raise SystemExit(f"Invalid listen address: {address!r}")
    return host.strip("[]") or "0.0.0.0", port_val


def build_collector(
    args: argparse.Namespace,
    geocoder: Optional[GeocoderBase] = None,
    provider: Optional[OpenWeatherProvider] = None,
) -> OpenweatherCollector:
    """Resolve locations and wire the collector. Exits on any startup error."""
    if not args.apikey:
        raise SystemExit("Missing API key: pass --apikey or set OW_APIKEY")

    ttl = parse_ttl(args.cache_ttl)

    try:
        locations = resolve_locations(args.city, geocoder or NominatimGeocoder())
    except LocationResolutionError as exc:
        logging.critical(f"Failed to resolve location: {exc}")
        raise SystemExit(f"Failed to resolve location: {exc}") from exc

    service = WeatherService(
        provider=provider or OpenWeatherProvider(timeout=args.timeout),
        cache=TTLCache(ttl),
        api_key=args.apikey,
        degrees_unit=args.degrees_unit,
    )
    logging.info(
        "Collector ready: %s location(s), units=%s, cache ttl=%ss",
        len(locations),
        service.unit,
        ttl,
    )
    return OpenweatherCollector(
        service=service,
        locations=locations,
        language=args.language,
        fetch_workers=args.fetch_workers,
    )


def signal_handler(signum, frame):
    logging.info("Received signal %s, shutting down", signum)
    raise KeyboardInterrupt()


def main(argv: Optional[List[str]] = None, registry: CollectorRegistry = REGISTRY) -> None:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    host, port = parse_listen_address(args.listen_address)

    collector = build_collector(args)
    registry.register(collector)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    start_http_server(port, addr=host, registry=registry)
    logging.info("Beginning to serve on %s:%s", host, port)

    try:
        while True:
            time.sleep(60)
    except KeyboardInterrupt:
        logging.info("Stopping exporter")


if __name__ == "__main__":
    main()
