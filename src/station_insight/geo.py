"""Geographic filters, great-circle distances and network coverage helpers."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from station_insight.models.stations import RegionBoundary, StationRecord

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0
COVERAGE_GAP_KM = 50.0
DEFAULT_RADIUS_KM = 50.0
GOOD_DENSITY_PER_1000_KM2 = 1.0

ALGARVE = RegionBoundary(west=-9.0, east=-7.0, south=36.9, north=37.5, name="Algarve")
PORTO = RegionBoundary(
    west=-8.9, east=-8.3, south=40.9, north=41.4,
    name="Porto Metropolitan Area", center_lat=41.1579, center_lon=-8.6291,
)
COIMBRA = RegionBoundary(
    west=-8.7, east=-8.1, south=39.9, north=40.5,
    name="Coimbra Central Region", center_lat=40.2033, center_lon=-8.4103,
)
EVORA = RegionBoundary(
    west=-8.2, east=-7.6, south=38.2, north=38.9,
    name="Évora Alentejo Region", center_lat=38.5667, center_lon=-7.9067,
)
REGIONS: Dict[str, RegionBoundary] = {"Porto": PORTO, "Coimbra": COIMBRA, "Evora": EVORA}

ALGARVE_TOWNS = (
    "Faro",
    "Tavira",
    "Olhão",
    "EPPO",
    "Lagos",
    "Portimão",
    "Sagres",
    "Albufeira",
)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in km between two points, rounded to 0.1 km."""
    lat1_rad, lon1_rad = math.radians(lat1), math.radians(lon1)
    lat2_rad, lon2_rad = math.radians(lat2), math.radians(lon2)
    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    if a > 1.0:  # float noise on antipodal points
        a = 1.0
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 1)


def filter_by_region(
    stations: Iterable[StationRecord],
    boundary: RegionBoundary,
) -> List[StationRecord]:
    """Stations inside ``boundary``; edges count as inside."""
    return [s for s in stations if boundary.contains(s.longitude, s.latitude)]


def filter_by_names(
    stations: Iterable[StationRecord],
    patterns: Iterable[str],
) -> List[StationRecord]:
    """Stations whose name contains any of ``patterns``, ignoring case."""
    needles = [p.casefold() for p in patterns if p]
    if not needles:
        return []
    return [
        s for s in stations
        if any(needle in s.station_name.casefold() for needle in needles)
    ]


def filter_by_radius(
    stations: Iterable[StationRecord],
    lat: float,
    lon: float,
    radius_km: float = DEFAULT_RADIUS_KM,
) -> List[StationRecord]:
    """Stations within ``radius_km`` of (lat, lon)."""
    return [
        s for s in stations
        if haversine_km(lat, lon, s.latitude, s.longitude) <= radius_km
    ]


def combine_stations(*groups: Iterable[StationRecord]) -> List[StationRecord]:
    """Union of station groups, deduplicated by station_id, first occurrence kept."""
    seen = set()
    combined: List[StationRecord] = []
    for group in groups:
        for station in group:
            if station.station_id in seen:
                continue
            seen.add(station.station_id)
            combined.append(station)
    return combined


def target_station_ids(stations: Iterable[StationRecord]) -> List[str]:
    return [s.station_id for s in stations]


# --------------------------------------------------------------------------- #
# Coverage analysis                                                           #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class StationPairDistance:
    first: StationRecord
    second: StationRecord
    distance_km: float

    @property
    def is_gap(self) -> bool:
        return self.distance_km > COVERAGE_GAP_KM


def pairwise_distances(stations: Sequence[StationRecord]) -> List[StationPairDistance]:
    """Distance for every unordered pair of stations, in input order."""
    pairs: List[StationPairDistance] = []
    for i in range(len(stations) - 1):
        for j in range(i + 1, len(stations)):
            a, b = stations[i], stations[j]
            pairs.append(
                StationPairDistance(
                    first=a,
                    second=b,
                    distance_km=haversine_km(a.latitude, a.longitude, b.latitude, b.longitude),
                )
            )
    return pairs


def coverage_quality(max_distance_km: Optional[float]) -> str:
    """Grade a network by its largest inter-station distance."""
    if max_distance_km is None:
        return "Insufficient"
    if max_distance_km <= 25:
        return "Excellent"
    if max_distance_km <= 40:
        return "Good"
    if max_distance_km <= 60:
        return "Marginal"
    return "Poor"


@dataclass(frozen=True)
class NetworkExtent:
    center_latitude: float
    center_longitude: float
    longitude_span: float
    latitude_span: float
    approx_area_km2: float
    density_per_1000_km2: Optional[float]

    @property
    def has_good_density(self) -> bool:
        return (
            self.density_per_1000_km2 is not None
            and self.density_per_1000_km2 > GOOD_DENSITY_PER_1000_KM2
        )


def network_extent(stations: Sequence[StationRecord]) -> NetworkExtent:
    """
    Centre, span and rough station density of a monitoring network.

    The area is a flat ``span_lon * span_lat * 111**2`` approximation; a
    network with zero area (one station, or stations on a line) has no
    density.
    """
    if not stations:
        raise ValueError("Cannot compute the extent of an empty network")
    longitudes = [s.longitude for s in stations]
    latitudes = [s.latitude for s in stations]
    lon_span = max(longitudes) - min(longitudes)
    lat_span = max(latitudes) - min(latitudes)
    area = lon_span * lat_span * KM_PER_DEGREE * KM_PER_DEGREE
    density = (len(stations) / area) * 1000 if area > 0 else None
    return NetworkExtent(
        center_latitude=sum(latitudes) / len(latitudes),
        center_longitude=sum(longitudes) / len(longitudes),
        longitude_span=lon_span,
        latitude_span=lat_span,
        approx_area_km2=area,
        density_per_1000_km2=density,
    )


@dataclass(frozen=True)
class RegionalCoverage:
    region: RegionBoundary
    boundary_stations: List[StationRecord]
    radius_stations: List[StationRecord]
    stations: List[StationRecord]
    min_distance_km: Optional[float]
    max_distance_km: Optional[float]
    avg_distance_km: Optional[float]
    quality: str


def regional_coverage(
    catalog: Sequence[StationRecord],
    region: RegionBoundary,
    radius_km: float = DEFAULT_RADIUS_KM,
) -> RegionalCoverage:
    """Combine box and radius selection for ``region`` and grade its coverage."""
    in_box = filter_by_region(catalog, region)
    in_radius: List[StationRecord] = []
    if region.center_lat is not None and region.center_lon is not None:
        in_radius = filter_by_radius(catalog, region.center_lat, region.center_lon, radius_km)
    combined = combine_stations(in_box, in_radius)

    distances = [p.distance_km for p in pairwise_distances(combined)]
    if distances:
        min_d, max_d = min(distances), max(distances)
        avg_d = sum(distances) / len(distances)
    else:
        min_d = max_d = avg_d = None

    return RegionalCoverage(
        region=region,
        boundary_stations=in_box,
        radius_stations=in_radius,
        stations=combined,
        min_distance_km=min_d,
        max_distance_km=max_d,
        avg_distance_km=avg_d,
        quality=coverage_quality(max_d),
    )
