"""Turn the IPMA station catalog payload into station rows and tables."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Union

import pandas as pd
from pydantic import ValidationError

from station_insight.models.stations import (
    MalformedCatalogError,
    RegionBoundary,
    StationCatalogPayload,
    StationRecord,
)
from station_insight.utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="catalog")

PORTUGAL = RegionBoundary(west=-9.6, east=-6.2, south=36.9, north=42.2, name="Portugal")
STATION_COLUMNS = ["station_id", "station_name", "longitude", "latitude"]

CatalogInput = Union[StationCatalogPayload, Sequence[Dict[str, Any]], Dict[str, Any]]


def _as_payload(raw: CatalogInput) -> StationCatalogPayload:
    if isinstance(raw, StationCatalogPayload):
        return raw
    try:
        if isinstance(raw, dict):
            if "features" in raw:
                return StationCatalogPayload.from_features(raw["features"])
            return StationCatalogPayload.model_validate(raw)
        return StationCatalogPayload.from_features(list(raw))
    except (ValidationError, AttributeError, TypeError) as exc:
        raise MalformedCatalogError(f"Station catalog payload is malformed: {exc}") from exc


def build_station_catalog(raw: CatalogInput) -> List[StationRecord]:
    """
    Build one StationRecord per catalog row.

    ``raw`` may be the feature list returned by ``stations.json``, a
    FeatureCollection dict, a ``{"coordinates": ..., "properties": ...}`` dict
    or an already validated StationCatalogPayload.
    """
    payload = _as_payload(raw)
    if len(payload.coordinates) != len(payload.properties):
        raise MalformedCatalogError(
            f"Catalog has {len(payload.coordinates)} coordinate pairs "
            f"but {len(payload.properties)} property rows"
        )

    records: List[StationRecord] = []
    for coords, props in zip(payload.coordinates, payload.properties):
        if len(coords) < 2:
            raise MalformedCatalogError(
                f"Station {props.station_id} has an incomplete coordinate pair: {coords!r}"
            )
        records.append(
            StationRecord(
                station_id=props.station_id,
                station_name=props.station_name,
                longitude=coords[0],
                latitude=coords[1],
            )
        )

    logger.info("Built station catalog with %d stations", len(records))
    return records


def stations_frame(stations: Iterable[StationRecord]) -> pd.DataFrame:
    """Convert station records into a table with the canonical station columns."""
    rows = [s.model_dump() for s in stations]
    return pd.DataFrame(rows, columns=STATION_COLUMNS)


def stations_from_frame(frame: pd.DataFrame) -> List[StationRecord]:
    """Rebuild station records from a table produced by ``stations_frame``."""
    return [
        StationRecord(
            station_id=str(row.station_id),
            station_name=row.station_name,
            longitude=float(row.longitude),
            latitude=float(row.latitude),
        )
        for row in frame.itertuples(index=False)
    ]


@dataclass(frozen=True)
class CoordinateSummary:
    station_count: int
    min_longitude: float
    max_longitude: float
    min_latitude: float
    max_latitude: float
    within_bounds: bool


def coordinate_summary(
    stations: Sequence[StationRecord],
    bounds: RegionBoundary = PORTUGAL,
) -> CoordinateSummary:
    """Report coordinate ranges and whether every station sits inside ``bounds``."""
    if not stations:
        raise ValueError("Cannot summarise an empty station catalog")
    longitudes = [s.longitude for s in stations]
    latitudes = [s.latitude for s in stations]
    return CoordinateSummary(
        station_count=len(stations),
        min_longitude=min(longitudes),
        max_longitude=max(longitudes),
        min_latitude=min(latitudes),
        max_latitude=max(latitudes),
        within_bounds=all(bounds.contains(s.longitude, s.latitude) for s in stations),
    )


def station_names_by_id(stations: Iterable[StationRecord]) -> Dict[str, str]:
    """Map canonical station id to display name; the first entry wins on duplicates."""
    names: Dict[str, str] = {}
    for station in stations:
        names.setdefault(station.station_id, station.station_name)
    return names
