"""Systematic first look at the IPMA station endpoint and a couple of other national APIs."""
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from station_insight.catalog import PORTUGAL, build_station_catalog, coordinate_summary
from station_insight.clients.ipma_client import (
    DEFAULT_PROBE_TIMEOUT,
    EndpointProbe,
    IpmaClient,
    IpmaClientError,
    make_ipma_client_from_env,
)
from station_insight.models.stations import MalformedCatalogError
from station_insight.utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="explore")

ALTERNATE_ENDPOINTS = (
    (
        "http://datapoint.metoffice.gov.uk/public/data/val/wxobs/all/json/sitelist",
        "UK Met Office DataPoint",
    ),
    (
        "https://api.openweathermap.org/data/2.5/weather?q=Lisbon,PT&units=metric",
        "OpenWeatherMap",
    ),
)

# plausible size of a national station network
MIN_NETWORK_SIZE = 50
MAX_NETWORK_SIZE = 1000
SUSPICIOUS_NETWORK_SIZE = 10


def assess_station_count(count: int) -> str:
    """Classify a catalog size as 'reasonable', 'too-few', 'too-many' or 'unclear'."""
    if MIN_NETWORK_SIZE < count < MAX_NETWORK_SIZE:
        return "reasonable"
    if count < SUSPICIOUS_NETWORK_SIZE:
        return "too-few"
    if count > MAX_NETWORK_SIZE:
        return "too-many"
    return "unclear"


def feature_fields(features: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Top-level, geometry and properties keys seen across a feature list."""
    top, geometry, properties = set(), set(), set()
    for feature in features:
        if not isinstance(feature, dict):
            continue
        top.update(feature)
        geometry.update(feature.get("geometry") or {})
        properties.update(feature.get("properties") or {})
    return {
        "feature": sorted(top),
        "geometry": sorted(geometry),
        "properties": sorted(properties),
    }


def explore_station_endpoint(client: IpmaClient) -> EndpointProbe:
    """Probe ``stations.json`` and log what its structure and contents look like."""
    probe = client.probe_endpoint(client.stations_url, "IPMA Weather Stations")
    if not probe.ok:
        raise IpmaClientError(
            f"Cannot proceed without API connectivity (status {probe.status_code})"
        )
    logger.info("Successfully connected to IPMA API in %.2f seconds", probe.elapsed_seconds)
    logger.info("Total response length: %d characters", probe.content_length)
    logger.info("First 500 characters of raw JSON: %s", probe.preview)
    logger.info("Data appears to be a JSON %s", probe.structure)

    if not probe.parsed:
        raise IpmaClientError("Cannot proceed without successful JSON parsing")
    if not isinstance(probe.data, list):
        return probe

    fields = feature_fields(probe.data)
    logger.info("Feature fields: %s", ", ".join(fields["feature"]))
    if "geometry" in fields["feature"]:
        logger.info("Data appears to follow GeoJSON format")
        logger.info("Geometry fields: %s", ", ".join(fields["geometry"]))
    for name in ("idEstacao", "localEstacao"):
        if name in fields["properties"]:
            logger.info("Found station field: %s", name)

    count = len(probe.data)
    verdict = assess_station_count(count)
    logger.info("Total number of weather stations: %d (%s)", count, verdict)
    return probe


def check_coordinates(features: List[Dict[str, Any]]) -> None:
    """Log coordinate ranges and whether every station lies inside Portugal."""
    stations = build_station_catalog(features)
    if not stations:
        logger.warning("No stations to check coordinates for")
        return
    summary = coordinate_summary(stations, PORTUGAL)
    logger.info(
        "Longitude range: %.2f to %.2f", summary.min_longitude, summary.max_longitude
    )
    logger.info("Latitude range: %.2f to %.2f", summary.min_latitude, summary.max_latitude)
    if summary.within_bounds:
        logger.info("Coordinates appear to be within Portuguese territory")
    else:
        logger.warning("Some coordinates may be outside Portuguese territory")


def investigate_alternate_apis(client: IpmaClient) -> Dict[str, Optional[EndpointProbe]]:
    """
    Probe other national weather APIs with the same technique.

    Most need registration, so an unreachable endpoint is logged and
    recorded as ``None`` rather than stopping the run.
    """
    results: Dict[str, Optional[EndpointProbe]] = {}
    for url, description in ALTERNATE_ENDPOINTS:
        try:
            probe = client.probe_endpoint(
                url, description, timeout_seconds=DEFAULT_PROBE_TIMEOUT
            )
        except IpmaClientError as exc:
            logger.warning("%s error: %s (many national APIs require registration)", description, exc)
            results[description] = None
            continue
        if not probe.ok:
            logger.info("%s requires authentication or is unavailable", description)
        results[description] = probe
    return results


def main() -> None:
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"), job_name="explore")
    client = make_ipma_client_from_env()

    try:
        probe = explore_station_endpoint(client)
        if isinstance(probe.data, list):
            check_coordinates(probe.data)
    except (IpmaClientError, MalformedCatalogError, ValueError) as exc:
        raise SystemExit(f"API exploration failed: {exc}") from exc

    investigate_alternate_apis(client)
    logger.info("Basic API exploration complete")


if __name__ == "__main__":
    main()
