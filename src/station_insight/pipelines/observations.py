"""Extract current observations for the monitoring network, report conditions and save them."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Union

import pandas as pd

from station_insight.analysis import (
    CurrentConditions,
    advisories,
    current_conditions,
    render_advisories,
    summarize_by_timestamp,
    temperature_trend,
)
from station_insight.clients.ipma_client import (
    IpmaClient,
    IpmaClientError,
    make_ipma_client_from_env,
)
from station_insight.db.exports import export_tables
from station_insight.db.ops_snapshot import load_stations, write_snapshot
from station_insight.db.session import (
    DEFAULT_SNAPSHOT_NAME,
    STATION_DATABASE_NAME,
    make_engine,
    output_dir,
)
from station_insight.models.stations import ObservationRecord, StationRecord
from station_insight.observations import (
    describe_measurements,
    extract_observations,
    observations_frame,
    timestamp_coverage,
)
from station_insight.utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="observations_run")


@dataclass
class ObservationRun:
    records: List[ObservationRecord]
    detail: pd.DataFrame
    summary: pd.DataFrame
    conditions: Optional[CurrentConditions]
    trend: Optional[str]


def load_monitoring_network(path: Optional[Union[str, Path]] = None) -> List[StationRecord]:
    """Read the monitored stations saved by the station extraction run."""
    path = Path(path) if path is not None else output_dir() / STATION_DATABASE_NAME
    if not path.exists():
        raise FileNotFoundError(
            f"Station database {path} not found; run the station extraction first"
        )
    network = load_stations(make_engine(path), monitored_only=True)
    logger.info("Loaded %d monitored stations from %s", len(network), path)
    return network


def analyze_observations(
    snapshot: Any,
    network: Sequence[StationRecord],
) -> ObservationRun:
    """Extract, tabulate and summarise the network's observations from one snapshot."""
    coverage = timestamp_coverage(snapshot)
    logger.info(
        "%d observation periods from %s to %s (typical interval %s hours)",
        coverage["periods"], coverage["earliest"], coverage["latest"],
        coverage["typical_interval_hours"],
    )

    records = extract_observations(snapshot, [s.station_id for s in network], network)
    if not records:
        return ObservationRun(records, observations_frame(records), pd.DataFrame(), None, None)

    for line in describe_measurements(records[0].measurements):
        logger.info(line)

    detail = observations_frame(records)
    summary = summarize_by_timestamp(detail)
    conditions = current_conditions(detail)
    trend = temperature_trend(summary)
    return ObservationRun(records, detail, summary, conditions, trend)


def report_conditions(run: ObservationRun) -> None:
    if run.conditions is None:
        logger.warning("No current conditions available")
        return
    c = run.conditions
    logger.info(
        "Conditions at %s across %d stations: avg %s C (min %s, max %s), humidity %s%%, max wind %s km/h",
        c.observation_time, c.total_stations, c.avg_temperature, c.min_temperature,
        c.max_temperature, c.avg_humidity, c.max_wind_speed,
    )
    for line in render_advisories(advisories(c)):
        logger.info(line)
    if run.trend is not None:
        logger.info("TEMPERATURE TREND: %s", run.trend)


def save_run(
    run: ObservationRun,
    network: Sequence[StationRecord],
    target_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """Write the run snapshot and CSV exports into ``target_dir``."""
    target = Path(target_dir) if target_dir is not None else output_dir()
    target.mkdir(parents=True, exist_ok=True)
    snapshot_path = target / DEFAULT_SNAPSHOT_NAME
    write_snapshot(
        make_engine(snapshot_path),
        monitored=network,
        observations=run.records,
        summary=run.summary if not run.summary.empty else None,
    )
    export_tables(run.detail, run.summary, target)
    return snapshot_path


def collect_weather_observations(
    client: IpmaClient,
    station_ids: Iterable[Any],
    catalog: Sequence[StationRecord] = (),
    *,
    save_to_file: bool = True,
    target_dir: Optional[Union[str, Path]] = None,
) -> Optional[List[ObservationRecord]]:
    """
    One unattended collection pass for scheduled monitoring.

    Returns None when the fetch fails. With ``save_to_file`` the records go to
    a new ``weather_data_<YYYYmmdd_HHMMSS>.sqlite`` snapshot.
    """
    records = client.collect_observations(station_ids, catalog)
    if records is None or not save_to_file:
        return records

    target = Path(target_dir) if target_dir is not None else output_dir()
    target.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = target / f"weather_data_{stamp}.sqlite"
    write_snapshot(make_engine(path), observations=records)
    logger.info("Saved %d collected observations to %s", len(records), path)
    return records


def main() -> None:
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"), job_name="observations")
    try:
        network = load_monitoring_network()
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from exc

    client = make_ipma_client_from_env()
    try:
        snapshot = client.load_observations()
    except (IpmaClientError, ValueError) as exc:
        raise SystemExit(f"Failed to retrieve observations: {exc}") from exc

    run = analyze_observations(snapshot, network)
    if not run.records:
        raise SystemExit("No observations were successfully extracted from target stations")

    report_conditions(run)
    path = save_run(run, network)
    logger.info(
        "Extracted %d observations from %d stations; saved to %s",
        len(run.records), run.detail["station_id"].nunique(), path,
    )


if __name__ == "__main__":
    main()
