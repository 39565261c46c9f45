import pandas as pd
import pytest

from station_insight import analysis as an
from station_insight.catalog import build_station_catalog
from station_insight.models.stations import ObservationRecord
from station_insight.observations import extract_observations, observations_frame

ALGARVE_IDS = ["1210881", "1210883", "1210863"]


@pytest.fixture
def catalog(station_features):
    return build_station_catalog(station_features)


@pytest.fixture
def records(observation_snapshot, catalog):
    return extract_observations(observation_snapshot, ALGARVE_IDS, catalog)


@pytest.fixture
def frame(records):
    return observations_frame(records)


def _conditions(max_temp=25.0, humidity=50.0, wind=5.0):
    return an.CurrentConditions(
        observation_time=None,
        avg_temperature=max_temp,
        min_temperature=max_temp,
        max_temperature=max_temp,
        avg_humidity=humidity,
        max_wind_speed=wind,
        total_stations=1,
    )


def test_summarize_by_timestamp(frame):
    summary = an.summarize_by_timestamp(frame)

    assert list(summary["station_count"]) == [2, 3]
    assert summary["avg_temperature"].tolist() == [30.0, 34.0]
    assert summary["max_wind_speed"].tolist() == [12.0, 22.0]
    assert summary["total_precipitation"].tolist() == pytest.approx([0.0, 0.4])


def test_current_conditions_uses_latest_timestamp(frame):
    conditions = an.current_conditions(frame)

    assert conditions.total_stations == 3
    assert conditions.max_temperature == 36.0
    assert conditions.min_temperature == 32.0
    assert conditions.avg_humidity == pytest.approx(51.7)
    assert conditions.max_wind_speed == 22.0
    assert conditions.observation_time == pd.Timestamp("2025-08-10 14:00", tz="Europe/Lisbon")


def test_current_conditions_empty_frame():
    assert an.current_conditions(observations_frame([])) is None


def test_current_conditions_all_missing_temperature():
    records = [
        ObservationRecord(timestamp="2025-08-10T14:00", station_id="1", measurements={"temperatura": None}),
    ]
    conditions = an.current_conditions(observations_frame(records))
    assert conditions.max_temperature is None
    assert conditions.total_stations == 1


@pytest.mark.parametrize(
    "max_temp, label",
    [(35.1, "heat-stress"), (35.0, "moderate-heat"), (30.1, "moderate-heat"), (30.0, "temperature-favorable")],
)
def test_temperature_advisory_thresholds(max_temp, label):
    items = an.advisories(_conditions(max_temp=max_temp))
    assert [a.label for a in items if a.category == "temperature"] == [label]


@pytest.mark.parametrize(
    "humidity, label",
    [(80.1, "disease-pressure"), (80.0, "humidity-favorable"), (29.9, "low-humidity"), (30.0, "humidity-favorable")],
)
def test_humidity_advisory_thresholds(humidity, label):
    items = an.advisories(_conditions(humidity=humidity))
    assert [a.label for a in items if a.category == "humidity"] == [label]


@pytest.mark.parametrize(
    "wind, label",
    [(20.1, "unsuitable-for-spraying"), (20.0, "spray-with-caution"), (10.0, "spray-favorable")],
)
def test_wind_advisory_thresholds(wind, label):
    items = an.advisories(_conditions(wind=wind))
    assert [a.label for a in items if a.category == "wind"] == [label]


def test_missing_category_emits_no_advisory():
    items = an.advisories(_conditions(max_temp=None))
    assert [a.category for a in items] == ["humidity", "wind"]


def test_render_advisories_includes_actions(frame):
    lines = an.render_advisories(an.advisories(an.current_conditions(frame)))

    assert lines[0] == "HIGH TEMPERATURE ALERT: Potential heat stress conditions"
    assert "   -> Monitor irrigation needs closely" in lines
    assert "HIGH WIND WARNING: Unsuitable for spray applications" in lines


@pytest.mark.parametrize(
    "temps, trend",
    [([20.0, 22.1], "warming"), ([22.1, 20.0], "cooling"), ([20.0, 22.0], "stable"), ([20.0], None)],
)
def test_temperature_trend(temps, trend):
    assert an.temperature_trend(pd.DataFrame({"avg_temperature": temps})) == trend


@pytest.mark.parametrize(
    "value, status",
    [
        (None, "missing_data"),
        (-99.0, "missing_data"),
        (-5.1, "extreme_value"),
        (50.1, "extreme_value"),
        (4.9, "unusual_value"),
        (45.1, "unusual_value"),
        (5.0, "valid"),
        (45.0, "valid"),
    ],
)
def test_validate_temperature(value, status):
    assert an.validate_temperature(value) == status


def test_temperature_validation_and_range(records):
    validation = an.temperature_validation(records)

    assert len(validation) == 5
    sagres = validation[validation["station_id"] == "1210863"]
    assert sagres["validation_status"].tolist() == ["missing_data"]
    assert an.temperature_range(validation) == 7.0


def test_temperature_range_needs_two_rows():
    assert an.temperature_range(an.temperature_validation([])) is None


def test_station_quality_report(observation_snapshot, catalog):
    report = an.station_quality_report(observation_snapshot, catalog)

    assert set(report["station_id"]) == {"1210881", "1210883", "1210863", "1200545"}
    faro = report.set_index("station_id").loc["1210881"]
    assert faro["total_observations"] == 2
    assert faro["overall_completeness"] == 100.0
    assert faro["reliability"] == "high"

    sagres = report.set_index("station_id").loc["1210863"]
    assert sagres["total_observations"] == 1
    assert sagres["missing_temperature"] == 1
    assert sagres["missing_radiation"] == 1
    assert sagres["overall_completeness"] == pytest.approx(66.7)
    assert sagres["reliability"] == "low"

    assert report["overall_completeness"].is_monotonic_decreasing


def test_station_quality_report_ignores_uncatalogued(observation_snapshot, catalog):
    only_faro = [s for s in catalog if s.station_id == "1210881"]
    report = an.station_quality_report(observation_snapshot, only_faro)
    assert report["station_id"].tolist() == ["1210881"]


def test_parameter_reliability_and_recommendations(observation_snapshot, catalog):
    quality = an.station_quality_report(observation_snapshot, catalog)
    reliability = an.parameter_reliability(quality)

    by_param = dict(zip(reliability["parameter"], reliability["completeness_percent"]))
    assert by_param["Temperature"] == pytest.approx(83.3)
    assert by_param["Solar_Radiation"] == pytest.approx(66.7)
    assert by_param["Humidity"] == 100.0

    lines = an.quality_recommendations(quality, reliability)
    assert lines[0].startswith("Solar radiation data shows low reliability")
    assert "Consider implementing redundant monitoring for agricultural applications" in lines


def test_evapotranspiration_and_irrigation():
    assert an.evapotranspiration_index(30.0, 40.0) == pytest.approx(18.0)
    assert an.evapotranspiration_index(None, 40.0) is None
    assert an.irrigation_priority(1500.1) == "High"
    assert an.irrigation_priority(1000.1) == "Moderate"
    assert an.irrigation_priority(500.1) == "Low"
    assert an.irrigation_priority(18.0) == "Minimal"


@pytest.mark.parametrize(
    "temp, humid, wind, expected",
    [
        (25, 50, 16, "Too_Windy"),
        (36, 50, 5, "Too_Hot"),
        (25, 86, 5, "Too_Humid"),
        (25, 50, 2, "Too_Calm"),
        (25, 50, 5, "Suitable"),
    ],
)
def test_spray_suitability(temp, humid, wind, expected):
    assert an.spray_suitability(temp, humid, wind) == expected


@pytest.mark.parametrize(
    "temp, humid, expected",
    [(25, 80, "Very_High"), (33, 75, "High"), (12, 65, "Moderate"), (25, 50, "Low"), (None, 90, "Low")],
)
def test_disease_risk(temp, humid, expected):
    assert an.disease_risk(temp, humid) == expected


def test_agricultural_recommendations_latest_only(frame):
    recs = an.agricultural_recommendations(frame)

    assert len(recs) == 3
    assert recs.iloc[0]["station_id"] == "1210883"
    assert recs.iloc[-1]["station_id"] == "1210863"
    assert pd.isna(recs.iloc[-1]["evapotranspiration_index"])
    assert recs.iloc[-1]["spray_suitability"] == "Too_Windy"


def test_agricultural_recommendations_empty():
    assert an.agricultural_recommendations(observations_frame([])).empty


def test_microclimate_comparison(catalog):
    readings = {
        "1210863": (24.0, 70.0),  # Sagres
        "1200575": (26.0, 60.0),  # Lisboa
        "1210881": (32.0, 45.0),  # Faro
        "1210883": (34.0, 41.0),  # Tavira
    }
    snapshot = {
        "2025-08-10T14:00": {
            sid: {"temperatura": temp, "humidade": humid} for sid, (temp, humid) in readings.items()
        }
    }
    records = extract_observations(snapshot, readings, catalog)
    micro = an.microclimate_frame(records, catalog)

    types = dict(zip(micro["station_id"], micro["location_type"]))
    assert types["1210863"] == "Coastal"
    assert types["1210881"] == "Inland"
    zones = dict(zip(micro["station_id"], micro["elevation_zone"]))
    assert zones["1200575"] == "Higher_Elevation"
    assert zones["1210881"] == "Lower_Elevation"

    summary = an.location_summary(micro)
    assert (summary["station_count"] > 1).all()
    assert set(summary["location_type"]) == {"Coastal", "Inland"}

    temp_diff, humid_diff = an.coastal_inland_difference(summary)
    assert temp_diff == pytest.approx(8.0)
    assert humid_diff == pytest.approx(22.0)

    elevation = an.elevation_summary(micro).set_index("elevation_zone")
    assert elevation.loc["Higher_Elevation", "station_count"] == 1
    assert elevation.loc["Lower_Elevation", "station_count"] == 3


def test_coastal_inland_difference_needs_both_sides():
    summary = pd.DataFrame(
        {"location_type": ["Inland"], "avg_temperature": [30.0], "avg_humidity": [50.0]}
    )
    assert an.coastal_inland_difference(summary) is None


def test_summarize_by_timestamp_keeps_fall_back_hour(catalog):
    snapshot = {
        "2025-10-26T00:00": {"1210881": {"temperatura": 15.0}},
        "2025-10-26T01:00": {"1210881": {"temperatura": 14.0}},
        "2025-10-26T02:00": {"1210881": {"temperatura": 13.0}},
    }
    frame = observations_frame(extract_observations(snapshot, ["1210881"], catalog))

    summary = an.summarize_by_timestamp(frame)

    assert len(summary) == 3
    assert summary["avg_temperature"].tolist() == [15.0, 14.0, 13.0]
    assert an.temperature_trend(summary) == "stable"


def test_temperature_range_spans_flagged_readings():
    records = [
        ObservationRecord(timestamp="2025-08-10T14:00", station_id="1", measurements={"temperatura": 4.0}),
        ObservationRecord(timestamp="2025-08-10T14:00", station_id="2", measurements={"temperatura": 20.0}),
        ObservationRecord(timestamp="2025-08-10T14:00", station_id="3", measurements={"temperatura": None}),
    ]
    validation = an.temperature_validation(records)

    assert validation["validation_status"].tolist() == ["unusual_value", "valid", "missing_data"]
    assert an.temperature_range(validation) == 16.0
