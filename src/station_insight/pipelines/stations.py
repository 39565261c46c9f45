"""Build the station catalog, select the Algarve monitoring network and save it."""
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional, Sequence, Union

from station_insight.catalog import coordinate_summary
from station_insight.clients.ipma_client import (
    IpmaClient,
    IpmaClientError,
    make_ipma_client_from_env,
)
from station_insight.db.ops_snapshot import write_snapshot
from station_insight.db.session import STATION_DATABASE_NAME, make_engine, output_dir
from station_insight.geo import (
    ALGARVE,
    ALGARVE_TOWNS,
    combine_stations,
    filter_by_names,
    filter_by_region,
    network_extent,
    pairwise_distances,
)
from station_insight.models.stations import MalformedCatalogError, StationRecord
from station_insight.utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="stations")


def select_monitoring_network(
    catalog: Sequence[StationRecord],
    towns: Sequence[str] = ALGARVE_TOWNS,
) -> List[StationRecord]:
    """Algarve box stations plus any station named after a target town, deduplicated."""
    in_region = filter_by_region(catalog, ALGARVE)
    logger.info("Stations within Algarve boundaries: %d", len(in_region))
    by_name = filter_by_names(catalog, towns)
    logger.info("Stations matching target town patterns: %d", len(by_name))

    network = combine_stations(in_region, by_name)
    logger.info("Final monitoring network: %d stations", len(network))
    return network


def report_network(network: Sequence[StationRecord]) -> None:
    """Log pairwise distances, coverage gaps and the network's extent and density."""
    for pair in pairwise_distances(network):
        logger.info(
            "%s <-> %s: %.1f km", pair.first.station_name, pair.second.station_name, pair.distance_km
        )
        if pair.is_gap:
            logger.warning("Large gap detected: %.1f km", pair.distance_km)

    if not network:
        return
    extent = network_extent(network)
    logger.info(
        "Network centre: latitude %.4f, longitude %.4f",
        extent.center_latitude, extent.center_longitude,
    )
    logger.info(
        "Network span: %.3f degrees longitude, %.3f degrees latitude",
        extent.longitude_span, extent.latitude_span,
    )
    if extent.density_per_1000_km2 is None:
        logger.warning("Network has no area; station density is undefined")
    elif extent.has_good_density:
        logger.info(
            "Good station density for agricultural monitoring (%.2f per 1000 km2)",
            extent.density_per_1000_km2,
        )
    else:
        logger.warning(
            "Consider additional stations for comprehensive coverage (%.2f per 1000 km2)",
            extent.density_per_1000_km2,
        )


def build_station_database(
    client: IpmaClient,
    path: Optional[Union[str, Path]] = None,
) -> List[StationRecord]:
    """Fetch the catalog, select the monitoring network and save both to a snapshot."""
    catalog = client.load_station_catalog()
    if catalog:
        summary = coordinate_summary(catalog)
        logger.info(
            "Longitude range: %.3f to %.3f; latitude range: %.3f to %.3f",
            summary.min_longitude, summary.max_longitude,
            summary.min_latitude, summary.max_latitude,
        )

    network = select_monitoring_network(catalog)
    report_network(network)

    engine = make_engine(path if path is not None else output_dir() / STATION_DATABASE_NAME)
    write_snapshot(engine, stations=catalog, monitored=network)
    for station in network:
        logger.info("Monitoring %s (ID: %s)", station.station_name, station.station_id)
    return network


def main() -> None:
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"), job_name="stations")
    client = make_ipma_client_from_env()
    try:
        build_station_database(client)
    except (IpmaClientError, MalformedCatalogError, ValueError) as exc:
        raise SystemExit(f"Station extraction failed: {exc}") from exc
    logger.info("Station database saved to %s", output_dir() / STATION_DATABASE_NAME)


if __name__ == "__main__":
    main()
