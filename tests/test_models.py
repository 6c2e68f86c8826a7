import pytest
from pydantic import ValidationError

from air_monitor.models import (
    AirQualityIndex,
    AirQualityLevel,
    Distance,
    Measurement,
    Ranking,
    Station,
    Statistics,
)


@pytest.mark.parametrize("label, expected", [
    ("Bardzo dobry", AirQualityLevel.VERY_GOOD),
    ("dobry", AirQualityLevel.GOOD),
    ("  UMIARKOWANY ", AirQualityLevel.MODERATE),
    ("Dostateczny", AirQualityLevel.SUFFICIENT),
    ("Zły", AirQualityLevel.BAD),
    ("bardzo zły", AirQualityLevel.VERY_BAD),
    ("Very good", AirQualityLevel.VERY_GOOD),
    ("Bad", AirQualityLevel.BAD),
])
def test_from_label_parses_known_labels(label, expected):
    assert AirQualityLevel.from_label(label) is expected


@pytest.mark.parametrize("label", [None, "", "Brak indeksu", "Dobre"])
def test_from_label_returns_none_for_unknown(label):
    assert AirQualityLevel.from_label(label) is None


def test_severity_follows_declaration_order():
    assert [level.severity for level in AirQualityLevel] == [0, 1, 2, 3, 4, 5]
    assert AirQualityLevel.GOOD.is_better_than(AirQualityLevel.MODERATE)
    assert AirQualityLevel.VERY_BAD.is_worse_than(AirQualityLevel.BAD)
    assert not AirQualityLevel.GOOD.is_worse_than(AirQualityLevel.GOOD)


def test_is_good_only_for_two_best_levels():
    assert [level for level in AirQualityLevel if level.is_good()] == [
        AirQualityLevel.VERY_GOOD, AirQualityLevel.GOOD
    ]


def test_measurement_create_maps_index_and_pollutants(now):
    index = AirQualityIndex(station_id=7, calculation_date=now, overall_level="Umiarkowany",
                            so2_level="Bardzo dobry", no2_level="Nieznany", pm10_level=None)
    measurement = Measurement.create(7, "Gdańsk", index, {"PM10": 41.5, "PM2.5": 20.0, "O3": 0.0, "C6H6": 1.0})

    assert measurement.station_id == 7
    assert measurement.measurement_date == now
    assert measurement.overall_index_level is AirQualityLevel.MODERATE
    assert measurement.so2_index_level is AirQualityLevel.VERY_GOOD
    assert measurement.no2_index_level is None
    assert measurement.pm25_index_level is None
    assert measurement.pm10_value == 41.5
    assert measurement.pm25_value == 20.0
    assert measurement.o3_value == 0.0
    assert measurement.co_value is None
    assert measurement.id is None
    assert measurement.created_at.tzinfo is not None
    assert not measurement.has_good_air_quality()


def test_measurement_is_immutable(make_measurement):
    measurement = make_measurement(pm10=10.0)
    with pytest.raises(ValidationError):
        measurement.pm10_value = 20.0


def test_most_common_level_breaks_ties_towards_better_level(now):
    stats = Statistics(station_id=1, period_start=now, period_end=now, measurement_count=4,
                       level_counts={AirQualityLevel.BAD: 2, AirQualityLevel.GOOD: 2})
    assert stats.most_common_level is AirQualityLevel.GOOD


def test_most_common_level_is_none_without_levels(now):
    stats = Statistics(station_id=1, period_start=now, period_end=now, measurement_count=3)
    assert stats.most_common_level is None
    assert stats.model_dump()["most_common_level"] is None


def test_distance_rejects_negative_values():
    station = Station(id=1)
    with pytest.raises(ValidationError):
        Distance(station=station, distance_km=-0.001)
    assert Distance(station=station, distance_km=0.0).distance_km == 0.0


def test_ranking_requires_positive_rank():
    with pytest.raises(ValidationError):
        Ranking(rank=0, station=Station(id=1))
    ranking = Ranking(rank=1, station=Station(id=1), dominant_quality_level=AirQualityLevel.VERY_GOOD)
    assert ranking.has_good_air_quality()
