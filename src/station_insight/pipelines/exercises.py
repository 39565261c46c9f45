"""
Worked analyses on top of the catalog and snapshot: temperature validation,
regional coverage, microclimate patterns, agricultural recommendations and
data-quality assessment.
"""
from __future__ import annotations

import os
from typing import Dict, List, Sequence

import pandas as pd

from station_insight.analysis import (
    COASTAL_RANGE_C,
    agricultural_recommendations,
    coastal_inland_difference,
    elevation_summary,
    location_summary,
    microclimate_frame,
    parameter_reliability,
    quality_recommendations,
    station_quality_report,
    temperature_range,
    temperature_validation,
)
from station_insight.clients.ipma_client import (
    IpmaClientError,
    make_ipma_client_from_env,
)
from station_insight.geo import REGIONS, RegionalCoverage, filter_by_names, regional_coverage
from station_insight.models.stations import MalformedCatalogError, StationRecord
from station_insight.observations import SnapshotInput, extract_observations, parse_snapshot
from station_insight.utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="exercises")

COASTAL_TOWNS = ("Faro", "Tavira", "Portimão")


def validate_station_temperatures(
    snapshot: SnapshotInput,
    catalog: Sequence[StationRecord],
    towns: Sequence[str] = COASTAL_TOWNS,
) -> pd.DataFrame:
    """Validate every temperature reported by the stations named after ``towns``."""
    targets = filter_by_names(catalog, towns)
    logger.info("Target stations: %s", ", ".join(s.station_name for s in targets) or "none")

    records = extract_observations(snapshot, [s.station_id for s in targets], targets)
    results = temperature_validation(records)
    counts = results["validation_status"].value_counts().to_dict()
    logger.info("Temperature validation results: %s", counts)

    spread = temperature_range(results)
    if spread is not None:
        logger.info("Temperature range across coastal stations: %.1f C", spread)
        if spread > COASTAL_RANGE_C:
            logger.warning("Large temperature variation detected - investigate microclimatic differences")
        else:
            logger.info("Temperature variation within normal range for coastal region")
    return results


def assess_regions(catalog: Sequence[StationRecord]) -> Dict[str, RegionalCoverage]:
    """Box-plus-radius coverage for each named region."""
    results: Dict[str, RegionalCoverage] = {}
    for key, region in REGIONS.items():
        coverage = regional_coverage(catalog, region)
        logger.info(
            "%s: %d in boundary, %d within radius, %d combined; coverage %s",
            region.name, len(coverage.boundary_stations), len(coverage.radius_stations),
            len(coverage.stations), coverage.quality,
        )
        if coverage.max_distance_km is not None:
            logger.info(
                "%s distances: min %.1f km, max %.1f km, avg %.1f km",
                region.name, coverage.min_distance_km, coverage.max_distance_km,
                coverage.avg_distance_km,
            )
        results[key] = coverage
    return results


def investigate_microclimate(
    snapshot: SnapshotInput,
    catalog: Sequence[StationRecord],
) -> pd.DataFrame:
    """Coastal/inland and latitude-zone temperature patterns over all reporting stations."""
    payload = parse_snapshot(snapshot)
    reporting = {sid for period in payload.root.values() for sid in period}
    records = extract_observations(payload, reporting, catalog)
    micro = microclimate_frame(records, catalog)
    logger.info(
        "Microclimate analysis covers %d observations from %d stations",
        len(micro), micro["station_id"].nunique(),
    )

    difference = coastal_inland_difference(location_summary(micro))
    if difference is not None:
        temp_diff, humid_diff = difference
        logger.info("Average inland-coastal temperature difference: %.2f C", temp_diff)
        logger.info("Average coastal-inland humidity difference: %.2f %%", humid_diff)

    for row in elevation_summary(micro).itertuples(index=False):
        logger.info(
            "%s: avg %.1f C over %d stations", row.elevation_zone, row.avg_temperature, row.station_count
        )
    return micro


def recommend(micro: pd.DataFrame) -> pd.DataFrame:
    """Irrigation, spray and disease indicators at the latest timestamp."""
    recs = agricultural_recommendations(micro)
    if recs.empty:
        logger.warning("No current conditions to base recommendations on")
        return recs
    for column in ("irrigation_priority", "spray_suitability", "disease_risk"):
        logger.info("%s: %s", column, recs[column].value_counts().to_dict())
    return recs


def assess_quality(
    snapshot: SnapshotInput,
    catalog: Sequence[StationRecord],
) -> List[str]:
    """Station reliability tiers, per-parameter completeness and resulting advice."""
    quality = station_quality_report(snapshot, catalog)
    logger.info("Reliability tiers: %s", quality["reliability"].value_counts().to_dict())
    reliability = parameter_reliability(quality)
    for row in reliability.itertuples(index=False):
        logger.info("%s completeness: %s%%", row.parameter, row.completeness_percent)
    lines = quality_recommendations(quality, reliability)
    for line in lines:
        logger.info(line)
    return lines


def main() -> None:
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"), job_name="exercises")
    client = make_ipma_client_from_env()
    try:
        catalog = client.load_station_catalog()
        snapshot = client.load_observations()
    except (IpmaClientError, MalformedCatalogError, ValueError) as exc:
        raise SystemExit(f"Failed to load IPMA data: {exc}") from exc

    validate_station_temperatures(snapshot, catalog)
    assess_regions(catalog)
    micro = investigate_microclimate(snapshot, catalog)
    recommend(micro)
    assess_quality(snapshot, catalog)


if __name__ == "__main__":
    main()
