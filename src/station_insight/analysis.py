"""Regional summaries, data-quality reports and agricultural advisories."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from station_insight.catalog import stations_frame
from station_insight.models.stations import ObservationRecord, StationRecord
from station_insight.observations import (
    MISSING_SENTINEL,
    SnapshotInput,
    extract_observations,
    is_missing,
    observations_frame,
    parse_snapshot,
)
from station_insight.utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="analysis")

# Advisory thresholds
HEAT_STRESS_C = 35.0
MODERATE_HEAT_C = 30.0
DISEASE_PRESSURE_HUMIDITY = 80.0
LOW_HUMIDITY = 30.0
SPRAY_UNSUITABLE_WIND_KMH = 20.0
SPRAY_CAUTION_WIND_KMH = 10.0
TREND_DELTA_C = 2.0

# Temperature plausibility
EXTREME_LOW_C, EXTREME_HIGH_C = -5.0, 50.0
UNUSUAL_LOW_C, UNUSUAL_HIGH_C = 5.0, 45.0
COASTAL_RANGE_C = 5.0

# Data-quality tiers (percent complete)
HIGH_RELIABILITY = 90.0
MODERATE_RELIABILITY = 70.0

# Microclimate split
COASTAL_LONGITUDE = -8.0
HIGHER_ELEVATION_LATITUDE = 37.5

QUALITY_PARAMETERS: Dict[str, str] = {
    "temperatura": "Temperature",
    "humidade": "Humidity",
    "pressao": "Pressure",
    "intensidadeVentoKM": "Wind",
    "radiacao": "Solar_Radiation",
    "precAcumulada": "Precipitation",
}
_MISSING_COLUMNS: Dict[str, str] = {
    "temperatura": "missing_temperature",
    "humidade": "missing_humidity",
    "pressao": "missing_pressure",
    "intensidadeVentoKM": "missing_wind",
    "radiacao": "missing_radiation",
    "precAcumulada": "missing_precipitation",
}


def _round_or_none(value: Any, ndigits: int = 1) -> Optional[float]:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(value):
        return None
    return round(value, ndigits)


# --------------------------------------------------------------------------- #
# Regional summaries                                                          #
# --------------------------------------------------------------------------- #
def summarize_by_timestamp(frame: pd.DataFrame) -> pd.DataFrame:
    """Per-timestamp regional summary across all stations; absent readings are ignored."""
    summary = (
        frame.groupby("timestamp", sort=True)
        .agg(
            avg_temperature=("temperature_c", "mean"),
            avg_humidity=("humidity_percent", "mean"),
            avg_pressure=("pressure_hpa", "mean"),
            max_wind_speed=("wind_speed_kmh", "max"),
            total_precipitation=("precipitation_mm", "sum"),
            station_count=("station_id", "size"),
        )
        .reset_index()
    )
    return summary


@dataclass(frozen=True)
class CurrentConditions:
    observation_time: Any
    avg_temperature: Optional[float]
    min_temperature: Optional[float]
    max_temperature: Optional[float]
    avg_humidity: Optional[float]
    max_wind_speed: Optional[float]
    total_stations: int


def current_conditions(frame: pd.DataFrame) -> Optional[CurrentConditions]:
    """Summary of the latest timestamp in a detail table, or None when it is empty."""
    if frame.empty or frame["timestamp"].isna().all():
        return None
    latest = frame["timestamp"].max()
    now = frame[frame["timestamp"] == latest]
    return CurrentConditions(
        observation_time=latest,
        avg_temperature=_round_or_none(now["temperature_c"].mean()),
        min_temperature=_round_or_none(now["temperature_c"].min()),
        max_temperature=_round_or_none(now["temperature_c"].max()),
        avg_humidity=_round_or_none(now["humidity_percent"].mean()),
        max_wind_speed=_round_or_none(now["wind_speed_kmh"].max()),
        total_stations=len(now),
    )


@dataclass(frozen=True)
class Advisory:
    category: str
    label: str
    message: str
    actions: Tuple[str, ...] = field(default_factory=tuple)


def advisories(conditions: CurrentConditions) -> List[Advisory]:
    """
    Map current conditions to temperature, humidity and wind advisories.

    A category whose reading is absent at every station produces no advisory.
    """
    result: List[Advisory] = []

    max_temp = conditions.max_temperature
    if max_temp is not None:
        if max_temp > HEAT_STRESS_C:
            result.append(Advisory(
                "temperature", "heat-stress",
                "HIGH TEMPERATURE ALERT: Potential heat stress conditions",
                ("Consider postponing field work during midday hours",
                 "Monitor irrigation needs closely"),
            ))
        elif max_temp > MODERATE_HEAT_C:
            result.append(Advisory(
                "temperature", "moderate-heat", "MODERATE HEAT: Monitor crop stress indicators",
            ))
        else:
            result.append(Advisory(
                "temperature", "temperature-favorable",
                "TEMPERATURE: Favorable conditions for most operations",
            ))

    humidity = conditions.avg_humidity
    if humidity is not None:
        if humidity > DISEASE_PRESSURE_HUMIDITY:
            result.append(Advisory(
                "humidity", "disease-pressure",
                "HIGH HUMIDITY: Increased disease pressure risk",
                ("Delay fungicide applications until humidity drops",
                 "Monitor for foliar disease development"),
            ))
        elif humidity < LOW_HUMIDITY:
            result.append(Advisory(
                "humidity", "low-humidity",
                "LOW HUMIDITY: Potential plant stress and increased irrigation needs",
            ))
        else:
            result.append(Advisory(
                "humidity", "humidity-favorable",
                "HUMIDITY: Favorable conditions for most agricultural activities",
            ))

    wind = conditions.max_wind_speed
    if wind is not None:
        if wind > SPRAY_UNSUITABLE_WIND_KMH:
            result.append(Advisory(
                "wind", "unsuitable-for-spraying",
                "HIGH WIND WARNING: Unsuitable for spray applications",
                ("Risk of drift and uneven coverage",
                 "Postpone pesticide and fertilizer applications"),
            ))
        elif wind > SPRAY_CAUTION_WIND_KMH:
            result.append(Advisory(
                "wind", "spray-with-caution",
                "MODERATE WIND: Use caution with spray applications",
                ("Consider wind direction and drift potential",),
            ))
        else:
            result.append(Advisory(
                "wind", "spray-favorable", "WIND: Favorable conditions for spray applications",
            ))

    return result


def render_advisories(items: Iterable[Advisory]) -> List[str]:
    lines = []
    for item in items:
        lines.append(item.message)
        lines.extend(f"   -> {action}" for action in item.actions)
    return lines


def temperature_trend(summary: pd.DataFrame) -> Optional[str]:
    """'warming', 'cooling' or 'stable' from the last two regional averages."""
    temps = summary["avg_temperature"].dropna()
    if len(temps) < 2:
        return None
    delta = temps.iloc[-1] - temps.iloc[-2]
    if delta > TREND_DELTA_C:
        return "warming"
    if delta < -TREND_DELTA_C:
        return "cooling"
    return "stable"


# --------------------------------------------------------------------------- #
# Temperature validation                                                      #
# --------------------------------------------------------------------------- #
def validate_temperature(value: Optional[float]) -> str:
    if value is None or value == MISSING_SENTINEL:
        return "missing_data"
    if value < EXTREME_LOW_C or value > EXTREME_HIGH_C:
        return "extreme_value"
    if value < UNUSUAL_LOW_C or value > UNUSUAL_HIGH_C:
        return "unusual_value"
    return "valid"


def temperature_validation(records: Iterable[ObservationRecord]) -> pd.DataFrame:
    """One row per observation that carries a temperature key, with a validation status."""
    rows = []
    for rec in records:
        if "temperatura" not in rec.measurements:
            continue
        value = rec.measurements["temperatura"]
        rows.append({
            "station_id": rec.station_id,
            "station_name": rec.station_name,
            "timestamp": rec.timestamp,
            "temperature": value,
            "validation_status": validate_temperature(value),
        })
    return pd.DataFrame(
        rows,
        columns=["station_id", "station_name", "timestamp", "temperature", "validation_status"],
    )


def temperature_range(validation: pd.DataFrame) -> Optional[float]:
    """Spread of all non-missing temperatures, whatever their status; None with fewer than two rows."""
    if len(validation) < 2:
        return None
    temps = pd.to_numeric(validation["temperature"], errors="coerce").dropna()
    if temps.empty:
        return None
    return _round_or_none(temps.max() - temps.min())


# --------------------------------------------------------------------------- #
# Data quality                                                                #
# --------------------------------------------------------------------------- #
def reliability_tier(completeness: float) -> str:
    if completeness >= HIGH_RELIABILITY:
        return "high"
    if completeness >= MODERATE_RELIABILITY:
        return "moderate"
    return "low"


def station_quality_report(
    snapshot: SnapshotInput,
    catalog: Sequence[StationRecord],
) -> pd.DataFrame:
    """
    Missing-value counts per station across every timestamp of a snapshot.

    Only stations present in ``catalog`` are reported. A parameter counts as
    missing when its key is absent or carries the sentinel.
    """
    payload = parse_snapshot(snapshot)
    catalogued = {s.station_id for s in catalog}
    reporting = {sid for period in payload.root.values() for sid in period}
    records = extract_observations(payload, reporting & catalogued, catalog)

    per_station: Dict[str, Dict[str, Any]] = {}
    for rec in records:
        row = per_station.setdefault(rec.station_id, {
            "station_id": rec.station_id,
            "station_name": rec.station_name,
            "total_observations": 0,
            **{column: 0 for column in _MISSING_COLUMNS.values()},
        })
        row["total_observations"] += 1
        for param, column in _MISSING_COLUMNS.items():
            if is_missing(rec.measurements.get(param)):
                row[column] += 1

    columns = [
        "station_id", "station_name", "total_observations",
        *_MISSING_COLUMNS.values(), "overall_completeness", "reliability",
    ]
    rows = []
    for row in per_station.values():
        possible = row["total_observations"] * len(_MISSING_COLUMNS)
        missing = sum(row[column] for column in _MISSING_COLUMNS.values())
        completeness = round((possible - missing) / possible * 100, 1)
        rows.append({**row, "overall_completeness": completeness,
                     "reliability": reliability_tier(completeness)})

    report = pd.DataFrame(rows, columns=columns)
    return report.sort_values(
        ["overall_completeness", "station_id"], ascending=[False, True], kind="stable"
    ).reset_index(drop=True)


def parameter_reliability(quality: pd.DataFrame) -> pd.DataFrame:
    """Completeness percentage of each key parameter over all station observations."""
    total = int(quality["total_observations"].sum()) if not quality.empty else 0
    rows = []
    for param, label in QUALITY_PARAMETERS.items():
        missing = int(quality[_MISSING_COLUMNS[param]].sum()) if total else 0
        completeness = round((total - missing) / total * 100, 1) if total else None
        rows.append({"parameter": label, "total_missing": missing, "completeness_percent": completeness})
    frame = pd.DataFrame(rows, columns=["parameter", "total_missing", "completeness_percent"])
    return frame.sort_values("completeness_percent", ascending=False, kind="stable").reset_index(drop=True)


def quality_recommendations(quality: pd.DataFrame, reliability: pd.DataFrame) -> List[str]:
    lines = []
    by_param = dict(zip(reliability["parameter"], reliability["completeness_percent"]))
    solar = by_param.get("Solar_Radiation")
    if solar is not None and not pd.isna(solar) and solar < 70:
        lines.append("Solar radiation data shows low reliability - consider supplementary sources")
    wind = by_param.get("Wind")
    if wind is not None and not pd.isna(wind) and wind < 80:
        lines.append("Wind data reliability concerns - verify critical spray application decisions")
    if not quality.empty and (quality["reliability"] == "low").sum() > 0.2 * len(quality):
        lines.append("Consider implementing redundant monitoring for agricultural applications")
    return lines


# --------------------------------------------------------------------------- #
# Agricultural decision support                                               #
# --------------------------------------------------------------------------- #
def evapotranspiration_index(temperature: Optional[float], humidity: Optional[float]) -> Optional[float]:
    if temperature is None or humidity is None:
        return None
    return temperature * (100 - humidity) / 100


def irrigation_priority(et_index: Optional[float]) -> str:
    if et_index is None:
        return "Minimal"
    if et_index > 1500:
        return "High"
    if et_index > 1000:
        return "Moderate"
    if et_index > 500:
        return "Low"
    return "Minimal"


def spray_suitability(
    temperature: Optional[float],
    humidity: Optional[float],
    wind_speed: Optional[float],
) -> str:
    if wind_speed is not None and wind_speed > 15:
        return "Too_Windy"
    if temperature is not None and temperature > 35:
        return "Too_Hot"
    if humidity is not None and humidity > 85:
        return "Too_Humid"
    if wind_speed is not None and wind_speed < 3:
        return "Too_Calm"
    return "Suitable"


def disease_risk(temperature: Optional[float], humidity: Optional[float]) -> str:
    if temperature is None or humidity is None:
        return "Low"
    if 20 <= temperature <= 30 and humidity >= 80:
        return "Very_High"
    if 15 <= temperature <= 35 and humidity >= 70:
        return "High"
    if 10 <= temperature <= 40 and humidity >= 60:
        return "Moderate"
    return "Low"


def _nan_to_none(value: Any) -> Optional[float]:
    return None if value is None or pd.isna(value) else float(value)


def agricultural_recommendations(frame: pd.DataFrame) -> pd.DataFrame:
    """Irrigation, spray and disease indicators per station at the latest timestamp."""
    columns = [
        "station_id", "station_name", "temperature_c", "humidity_percent", "wind_speed_kmh",
        "evapotranspiration_index", "irrigation_priority", "spray_suitability", "disease_risk",
    ]
    if frame.empty:
        return pd.DataFrame(columns=columns)
    latest = frame[frame["timestamp"] == frame["timestamp"].max()]

    rows = []
    for row in latest.itertuples(index=False):
        temp = _nan_to_none(row.temperature_c)
        humid = _nan_to_none(row.humidity_percent)
        wind = _nan_to_none(row.wind_speed_kmh)
        et_index = evapotranspiration_index(temp, humid)
        rows.append({
            "station_id": row.station_id,
            "station_name": row.station_name,
            "temperature_c": temp,
            "humidity_percent": humid,
            "wind_speed_kmh": wind,
            "evapotranspiration_index": et_index,
            "irrigation_priority": irrigation_priority(et_index),
            "spray_suitability": spray_suitability(temp, humid, wind),
            "disease_risk": disease_risk(temp, humid),
        })
    result = pd.DataFrame(rows, columns=columns)
    return result.sort_values(
        "evapotranspiration_index", ascending=False, na_position="last", kind="stable"
    ).reset_index(drop=True)


# --------------------------------------------------------------------------- #
# Microclimate                                                                #
# --------------------------------------------------------------------------- #
def microclimate_frame(
    records: Iterable[ObservationRecord],
    catalog: Sequence[StationRecord],
) -> pd.DataFrame:
    """Detail table joined with station coordinates and classified by location and zone."""
    detail = observations_frame(records)
    stations = stations_frame(catalog).drop_duplicates("station_id")
    joined = detail.merge(
        stations[["station_id", "longitude", "latitude"]], on="station_id", how="inner"
    )
    joined["location_type"] = joined["longitude"].lt(COASTAL_LONGITUDE).map(
        {True: "Coastal", False: "Inland"}
    )
    joined["elevation_zone"] = joined["latitude"].gt(HIGHER_ELEVATION_LATITUDE).map(
        {True: "Higher_Elevation", False: "Lower_Elevation"}
    )
    return joined


def location_summary(micro: pd.DataFrame) -> pd.DataFrame:
    """Coastal/inland averages per timestamp, keeping groups with more than one station."""
    summary = (
        micro.groupby(["timestamp", "location_type"], sort=True)
        .agg(
            avg_temperature=("temperature_c", "mean"),
            avg_humidity=("humidity_percent", "mean"),
            station_count=("station_id", "size"),
        )
        .reset_index()
    )
    return summary[summary["station_count"] > 1].reset_index(drop=True)


def coastal_inland_difference(summary: pd.DataFrame) -> Optional[Tuple[float, float]]:
    """(inland - coastal temperature, coastal - inland humidity), or None if a side is missing."""
    coastal = summary[summary["location_type"] == "Coastal"]
    inland = summary[summary["location_type"] == "Inland"]
    if coastal.empty or inland.empty:
        return None
    temp_diff = inland["avg_temperature"].mean() - coastal["avg_temperature"].mean()
    humid_diff = coastal["avg_humidity"].mean() - inland["avg_humidity"].mean()
    return _round_or_none(temp_diff, 2), _round_or_none(humid_diff, 2)


def elevation_summary(micro: pd.DataFrame) -> pd.DataFrame:
    return (
        micro.groupby("elevation_zone", sort=True)
        .agg(
            avg_temperature=("temperature_c", "mean"),
            min_temperature=("temperature_c", "min"),
            max_temperature=("temperature_c", "max"),
            station_count=("station_id", "nunique"),
        )
        .reset_index()
    )

