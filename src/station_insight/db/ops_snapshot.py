from __future__ import annotations

import json
import math
from typing import Any, Iterable, List, Optional, Sequence

import pandas as pd
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from station_insight.db.models import (
    SnapshotObservation,
    SnapshotRegionalSummary,
    SnapshotStation,
)
from station_insight.models.stations import ObservationRecord, StationRecord
from station_insight.observations import PARAMETER_COLUMNS, TIMESTAMP_FORMAT
from station_insight.utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="ops_snapshot")


def _float_or_none(value: Any) -> float | None:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(value) else value


def _timestamp_key(value: Any) -> str:
    """Snapshot key text for a timestamp given as text or a (tz-aware) pandas/datetime value."""
    if isinstance(value, str):
        return value
    return pd.Timestamp(value).strftime(TIMESTAMP_FORMAT)


def ensure_station(
    session: Session,
    station: StationRecord,
    *,
    monitored: bool = False,
) -> SnapshotStation:
    """
    Insert or refresh one station row.

    ``monitored`` is sticky: once a station is saved as part of the target
    network, re-saving it from the full catalog keeps the flag.
    """
    stmt = select(SnapshotStation).where(
        SnapshotStation.station_id == station.station_id
    ).limit(1)
    row = session.execute(stmt).scalar_one_or_none()

    if row is None:
        row = SnapshotStation(
            station_id=station.station_id,
            station_name=station.station_name,
            longitude=station.longitude,
            latitude=station.latitude,
            monitored=monitored,
        )
        session.add(row)
        session.flush()
    else:
        row.station_name = station.station_name
        row.longitude = station.longitude
        row.latitude = station.latitude
        row.monitored = bool(row.monitored) or monitored
    return row


def ensure_observation(session: Session, record: ObservationRecord) -> SnapshotObservation:
    """Insert or refresh the detail row keyed by (timestamp, station_id)."""
    stmt = select(SnapshotObservation).where(
        SnapshotObservation.observed_at == record.timestamp,
        SnapshotObservation.station_id == record.station_id,
    ).limit(1)
    row = session.execute(stmt).scalar_one_or_none()

    values = {
        column: _float_or_none(record.measurements.get(param))
        for param, column in PARAMETER_COLUMNS.items()
    }
    if row is None:
        logger.debug("'%s' is a new observation. Creating a new record...", record.key)
        row = SnapshotObservation(
            observed_at=record.timestamp,
            station_id=record.station_id,
            station_name=record.station_name,
            measurements_json=json.dumps(record.measurements, sort_keys=True),
            **values,
        )
        session.add(row)
        session.flush()
    else:
        logger.debug("'%s' is an existing observation. Updating the existing record.", record.key)
        row.station_name = record.station_name
        row.measurements_json = json.dumps(record.measurements, sort_keys=True)
        for column, value in values.items():
            setattr(row, column, value)
    return row


def ensure_regional_summary(session: Session, summary_row: Any) -> SnapshotRegionalSummary:
    """Insert or refresh one per-timestamp summary row (a mapping or pandas row)."""
    observed_at = _timestamp_key(summary_row["timestamp"])
    stmt = select(SnapshotRegionalSummary).where(
        SnapshotRegionalSummary.observed_at == observed_at
    ).limit(1)
    row = session.execute(stmt).scalar_one_or_none()
    if row is None:
        row = SnapshotRegionalSummary(observed_at=observed_at, station_count=0)
        session.add(row)

    row.avg_temperature = _float_or_none(summary_row.get("avg_temperature"))
    row.avg_humidity = _float_or_none(summary_row.get("avg_humidity"))
    row.avg_pressure = _float_or_none(summary_row.get("avg_pressure"))
    row.max_wind_speed = _float_or_none(summary_row.get("max_wind_speed"))
    row.total_precipitation = _float_or_none(summary_row.get("total_precipitation"))
    row.station_count = int(summary_row.get("station_count") or 0)
    session.flush()
    return row


def write_snapshot(
    engine: Engine,
    *,
    stations: Sequence[StationRecord] = (),
    monitored: Sequence[StationRecord] = (),
    observations: Iterable[ObservationRecord] = (),
    summary: Optional[pd.DataFrame] = None,
) -> None:
    """Persist a run's working tables in one transaction."""
    with Session(engine) as session, session.begin():
        for station in stations:
            ensure_station(session, station)
        for station in monitored:
            ensure_station(session, station, monitored=True)
        count = 0
        for record in observations:
            ensure_observation(session, record)
            count += 1
        summaries = 0
        if summary is not None:
            for summary_row in summary.to_dict("records"):
                ensure_regional_summary(session, summary_row)
                summaries += 1
    logger.info(
        "Saved %d stations (%d monitored), %d observations and %d summaries",
        len(stations), len(monitored), count, summaries,
    )


def _station_record(row: SnapshotStation) -> StationRecord:
    return StationRecord(
        station_id=row.station_id,
        station_name=row.station_name,
        longitude=row.longitude,
        latitude=row.latitude,
    )


def load_stations(engine: Engine, *, monitored_only: bool = False) -> List[StationRecord]:
    """Read stations back from a snapshot, ordered by station id."""
    stmt = select(SnapshotStation).order_by(SnapshotStation.station_id)
    if monitored_only:
        stmt = stmt.where(SnapshotStation.monitored.is_(True))
    with Session(engine) as session:
        return [_station_record(row) for row in session.execute(stmt).scalars().all()]


def load_observations(engine: Engine) -> List[ObservationRecord]:
    """Read observation records back from a snapshot, ordered by timestamp then station."""
    stmt = select(SnapshotObservation).order_by(
        SnapshotObservation.observed_at, SnapshotObservation.station_id
    )
    with Session(engine) as session:
        return [
            ObservationRecord(
                timestamp=row.observed_at,
                station_id=row.station_id,
                station_name=row.station_name,
                measurements=json.loads(row.measurements_json or "{}"),
            )
            for row in session.execute(stmt).scalars().all()
        ]
