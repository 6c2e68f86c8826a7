import pytest

from air_monitor.aggregation import average, calculate_statistics, level_histogram, rank_stations
from air_monitor.models import AirQualityLevel


def test_average_distinguishes_zero_from_missing():
    assert average([]) is None
    assert average([0.0, 0.0]) == 0.0


def test_statistics_absent_for_empty_window(now):
    assert calculate_statistics(1, now, now, []) is None


def test_statistics_over_non_null_samples(make_measurement, now):
    measurements = [
        make_measurement(hours_ago=3, pm10=10.0, pm25=None, level=AirQualityLevel.GOOD, so2_value=0.0),
        make_measurement(hours_ago=2, pm10=30.0, pm25=8.0, level=AirQualityLevel.GOOD),
        make_measurement(hours_ago=1, pm10=None, pm25=12.0, level=AirQualityLevel.BAD, no2_value=15.0),
        make_measurement(hours_ago=0, pm10=20.0, pm25=None, level=None),
    ]

    stats = calculate_statistics(1, now, now, measurements)

    assert stats.station_id == 1
    assert stats.station_name == "Station 1"
    assert stats.measurement_count == 4
    assert stats.pm10.avg == pytest.approx(20.0)
    assert (stats.pm10.min, stats.pm10.max) == (10.0, 30.0)
    assert stats.pm25.avg == pytest.approx(10.0)
    assert stats.so2_avg == 0.0
    assert stats.no2_avg == 15.0
    assert stats.co_avg is None
    assert stats.o3_avg is None
    assert stats.level_counts[AirQualityLevel.GOOD] == 2
    assert stats.level_counts[AirQualityLevel.BAD] == 1
    assert sum(stats.level_counts.values()) == 3
    assert stats.most_common_level is AirQualityLevel.GOOD


def test_statistics_without_pm_samples_reports_absent_summaries(make_measurement, now):
    stats = calculate_statistics(1, now, now, [make_measurement(o3_value=40.0)])
    assert stats.pm10 is None
    assert stats.pm25 is None
    assert stats.o3_avg == 40.0


def test_level_histogram_has_six_buckets(make_measurement):
    histogram = level_histogram([make_measurement(level=AirQualityLevel.VERY_BAD)])
    assert list(histogram) == list(AirQualityLevel)
    assert histogram[AirQualityLevel.VERY_BAD] == 1


def test_ranking_with_pm10_only_uses_pm10_average(make_measurement):
    measurements = [
        make_measurement(station_id=1, hours_ago=2, pm10=30.0),
        make_measurement(station_id=1, hours_ago=1, pm10=10.0),
        make_measurement(station_id=2, hours_ago=1, pm10=12.0),
    ]

    rankings = rank_stations(measurements, limit=10)

    assert [(r.station.id, r.average_score) for r in rankings] == [(2, 12.0), (1, 20.0)]


def test_ranking_orders_by_pm10_then_pm25_with_dense_ranks(make_measurement):
    measurements = [
        make_measurement(station_id=1, pm10=20.0, pm25=10.0),
        make_measurement(station_id=2, pm10=10.0, pm25=30.0),
        make_measurement(station_id=3, pm10=20.0, pm25=10.0),
        make_measurement(station_id=4, pm10=20.0, pm25=5.0),
        make_measurement(station_id=5, pm10=None, pm25=1.0),
    ]

    rankings = rank_stations(measurements, limit=10)

    assert [r.station.id for r in rankings] == [2, 4, 1, 3, 5]
    assert [r.rank for r in rankings] == [1, 2, 3, 3, 4]
    assert rankings[0].average_score == 20.0
    assert rankings[-1].average_score == 1.0


def test_ranking_excludes_stations_without_pm_data(make_measurement):
    measurements = [
        make_measurement(station_id=1, pm10=5.0),
        make_measurement(station_id=2, no2_value=40.0),
    ]
    assert [r.station.id for r in rank_stations(measurements, limit=10)] == [1]


def test_ranking_takes_first_seen_level_and_counts_samples(make_measurement):
    measurements = [
        make_measurement(station_id=1, hours_ago=3, pm10=5.0, level=None),
        make_measurement(station_id=1, hours_ago=2, pm10=5.0, level=AirQualityLevel.MODERATE),
        make_measurement(station_id=1, hours_ago=1, pm10=5.0, level=AirQualityLevel.VERY_GOOD),
    ]

    ranking = rank_stations(measurements, limit=10)[0]

    assert ranking.dominant_quality_level is AirQualityLevel.MODERATE
    assert ranking.measurement_count == 3
    assert ranking.station.name == "Station 1"
    assert (ranking.station.city, ranking.station.latitude, ranking.station.longitude) == ("", 0.0, 0.0)


def test_ranking_truncates_after_ranking(make_measurement):
    measurements = [make_measurement(station_id=i, pm10=float(i)) for i in range(1, 8)]
    rankings = rank_stations(measurements, limit=5)
    assert [r.rank for r in rankings] == [1, 2, 3, 4, 5]
