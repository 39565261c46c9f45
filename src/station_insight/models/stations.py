"""Pydantic schemas for IPMA station catalog and observation payloads."""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator


class MalformedCatalogError(ValueError):
    """Raised when a station catalog payload cannot be turned into station rows."""


def normalize_station_id(value: Any) -> str:
    """
    Return the canonical text form of a station identifier.

    The catalog carries numeric ids (``1210881`` or ``1210881.0``) while the
    observation snapshot keys stations by string, so both sides are reduced
    to the same plain-digit text before any comparison.
    """
    if isinstance(value, bool):
        raise TypeError(f"Unsupported station id: {value!r}")
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            as_float = float(text)
        except ValueError:
            return text
        if math.isfinite(as_float) and as_float.is_integer() and "." in text:
            return str(int(as_float))
        return text
    raise TypeError(f"Unsupported station id: {value!r}")


class StationProperties(BaseModel):
    """Attribute half of a catalog feature (``properties``)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    station_id: str = Field(alias="idEstacao")
    station_name: str = Field(alias="localEstacao")

    @field_validator("station_id", mode="before")
    @classmethod
    def _canonical_id(cls, value: Any) -> str:
        return normalize_station_id(value)


class StationCatalogPayload(BaseModel):
    """
    Station catalog split into its two parallel arrays.

    ``coordinates[i]`` is the ``[longitude, latitude]`` pair of the station
    described by ``properties[i]``. Lengths are checked by the catalog builder,
    not here, so a mismatched payload can still be inspected.
    """

    model_config = ConfigDict(extra="ignore")

    coordinates: List[List[float]]
    properties: List[StationProperties]

    @classmethod
    def from_features(cls, features: List[Dict[str, Any]]) -> "StationCatalogPayload":
        """Split a GeoJSON-style feature list into coordinates and properties."""
        coordinates = []
        properties = []
        for feature in features:
            geometry = feature.get("geometry") or {}
            coords = geometry.get("coordinates")
            if coords is not None:
                coordinates.append(coords)
            props = feature.get("properties")
            if props is not None:
                properties.append(props)
        return cls.model_validate({"coordinates": coordinates, "properties": properties})


class StationRecord(BaseModel):
    """One station of the catalog."""

    model_config = ConfigDict(frozen=True)

    station_id: str
    station_name: str
    longitude: float
    latitude: float


class RegionBoundary(BaseModel):
    """Inclusive longitude/latitude box, optionally with a named centre point."""

    model_config = ConfigDict(frozen=True)

    west: float
    east: float
    south: float
    north: float
    name: Optional[str] = None
    center_lat: Optional[float] = None
    center_lon: Optional[float] = None

    def contains(self, longitude: float, latitude: float) -> bool:
        return (
            self.west <= longitude <= self.east
            and self.south <= latitude <= self.north
        )


Measurements = Dict[str, Optional[float]]


class ObservationSnapshotPayload(RootModel[Dict[str, Dict[str, Optional[Measurements]]]]):
    """Time-first observation snapshot: ``{timestamp: {station_id: measurements | null}}``."""

    def timestamps(self) -> List[str]:
        return list(self.root)

    def stations_at(self, timestamp: str) -> Dict[str, Optional[Measurements]]:
        return self.root.get(timestamp, {})


class ObservationRecord(BaseModel):
    """A single (timestamp, station) observation after sentinel cleanup."""

    model_config = ConfigDict(frozen=True)

    timestamp: str
    station_id: str
    station_name: Optional[str] = None
    measurements: Measurements = Field(default_factory=dict)

    @property
    def key(self) -> str:
        """Composite ``timestamp_stationid`` key, unique within a snapshot."""
        return f"{self.timestamp}_{self.station_id}"
