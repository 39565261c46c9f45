"""Extract target-station observations from IPMA's time-first snapshot."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
from pydantic import ValidationError

from station_insight.catalog import station_names_by_id
from station_insight.models.stations import (
    Measurements,
    ObservationRecord,
    ObservationSnapshotPayload,
    StationRecord,
    normalize_station_id,
)
from station_insight.utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="observations")

MISSING_SENTINEL = -99.0
LOCAL_TZ = "Europe/Lisbon"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M"

# IPMA parameter name -> detail table column
PARAMETER_COLUMNS: Dict[str, str] = {
    "temperatura": "temperature_c",
    "humidade": "humidity_percent",
    "pressao": "pressure_hpa",
    "intensidadeVentoKM": "wind_speed_kmh",
    "radiacao": "solar_radiation_wm2",
    "precAcumulada": "precipitation_mm",
}
OBSERVATION_COLUMNS = ["timestamp", "station_id", "station_name", *PARAMETER_COLUMNS.values()]

PARAMETER_DESCRIPTIONS: Dict[str, str] = {
    "temperatura": "Air temperature (°C) - affects plant growth rates and stress",
    "humidade": "Relative humidity (%) - influences disease pressure and transpiration",
    "pressao": "Atmospheric pressure (hPa) - indicates weather pattern stability",
    "intensidadeVento": "Wind speed (m/s) - affects spray applications and pollination",
    "intensidadeVentoKM": "Wind speed (km/h) - same as above in different units",
    "idDireccVento": "Wind direction code - important for spray drift calculations",
    "radiacao": "Solar radiation (W/m²) - drives photosynthesis and energy balance",
    "precAcumulada": "Accumulated precipitation (mm) - critical for irrigation decisions",
}

SnapshotInput = Union[ObservationSnapshotPayload, Mapping[str, Any]]


class MalformedSnapshotError(ValueError):
    """Raised when an observation snapshot does not have the time-first shape."""


def parse_snapshot(raw: SnapshotInput) -> ObservationSnapshotPayload:
    """Validate a decoded ``observations.json`` body."""
    if isinstance(raw, ObservationSnapshotPayload):
        return raw
    try:
        return ObservationSnapshotPayload.model_validate(raw or {})
    except ValidationError as exc:
        raise MalformedSnapshotError(f"Observation snapshot is malformed: {exc}") from exc


def is_missing(value: Optional[float]) -> bool:
    return value is None or value == MISSING_SENTINEL


def clean_measurements(measurements: Mapping[str, Optional[float]]) -> Measurements:
    """Replace sentinel readings with None; every other value passes through."""
    return {
        name: None if value == MISSING_SENTINEL else value
        for name, value in measurements.items()
    }


def extract_observations(
    snapshot: SnapshotInput,
    target_ids: Iterable[Any],
    catalog: Sequence[StationRecord] = (),
) -> List[ObservationRecord]:
    """
    Walk the snapshot and emit one record per present, non-null target station.

    Target ids and catalog ids are normalised to text before matching. A
    station missing from ``catalog`` gets ``station_name=None``. The result
    follows snapshot iteration order; sort by timestamp before time-series use.
    """
    payload = parse_snapshot(snapshot)
    targets = {normalize_station_id(sid) for sid in target_ids}
    names = station_names_by_id(catalog)

    records: List[ObservationRecord] = []
    for timestamp, period in payload.root.items():
        matches = targets.intersection(period)
        if not matches:
            continue
        logger.debug("Timestamp %s - found data for %d target stations", timestamp, len(matches))
        for station_id in sorted(matches):
            measurements = period[station_id]
            if measurements is None:
                continue
            records.append(
                ObservationRecord(
                    timestamp=timestamp,
                    station_id=station_id,
                    station_name=names.get(station_id),
                    measurements=clean_measurements(measurements),
                )
            )

    logger.info(
        "Extracted %d observations for %d target stations across %d timestamps",
        len(records),
        len(targets),
        len(payload.root),
    )
    return records


def observations_frame(records: Iterable[ObservationRecord]) -> pd.DataFrame:
    """
    Detail table of observations, one row per record, sorted by timestamp.

    Timestamps are parsed as Lisbon local time. Missing readings are NaN.
    """
    rows = []
    for rec in records:
        row: Dict[str, Any] = {
            "timestamp": rec.timestamp,
            "station_id": rec.station_id,
            "station_name": rec.station_name,
        }
        for param, column in PARAMETER_COLUMNS.items():
            row[column] = rec.measurements.get(param)
        rows.append(row)

    frame = pd.DataFrame(rows, columns=OBSERVATION_COLUMNS)
    for column in PARAMETER_COLUMNS.values():
        frame[column] = pd.to_numeric(frame[column], errors="coerce")
    # snapshot keys are unique wall times; a repeated fall-back hour is read as summer time
    frame["timestamp"] = pd.to_datetime(frame["timestamp"], format=TIMESTAMP_FORMAT).dt.tz_localize(
        LOCAL_TZ, ambiguous=np.ones(len(frame), dtype=bool), nonexistent="shift_forward"
    )
    return frame.sort_values(["timestamp", "station_id"], kind="stable").reset_index(drop=True)


def describe_measurements(measurements: Mapping[str, Optional[float]]) -> List[str]:
    """Human-readable explanation and quality line for each parameter of one observation."""
    lines = []
    for param in measurements:
        description = PARAMETER_DESCRIPTIONS.get(param)
        if description:
            lines.append(f"{param}: {description}")
    for param, value in measurements.items():
        if is_missing(value):
            lines.append(f"{param}: Missing data (sensor maintenance or malfunction)")
        else:
            lines.append(f"{param}: {value} - Valid measurement")
    return lines


def timestamp_coverage(snapshot: SnapshotInput) -> Dict[str, Any]:
    """Earliest/latest timestamp and the most common interval (hours) in a snapshot."""
    payload = parse_snapshot(snapshot)
    if not payload.root:
        return {"periods": 0, "earliest": None, "latest": None, "typical_interval_hours": None}
    parsed = pd.to_datetime(pd.Series(payload.timestamps()), format=TIMESTAMP_FORMAT, errors="coerce")
    parsed = parsed.dropna().sort_values()
    interval = None
    if len(parsed) > 1:
        deltas = parsed.diff().dropna().dt.total_seconds() / 3600
        interval = float(deltas.mode().iloc[0])
    return {
        "periods": len(payload.root),
        "earliest": parsed.iloc[0] if len(parsed) else None,
        "latest": parsed.iloc[-1] if len(parsed) else None,
        "typical_interval_hours": interval,
    }
