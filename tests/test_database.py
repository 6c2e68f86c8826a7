from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from influxdb_client.client.flux_table import FluxRecord

from air_monitor.config import Settings
from air_monitor.database import MEASUREMENT, InfluxHistoryStore, to_measurement, to_point
from air_monitor.models import AirQualityLevel


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def influx_store(client):
    return InfluxHistoryStore(client, bucket="air", org="gios")


def flux_tables(*records):
    table = MagicMock()
    table.records = list(records)
    return [table]


def flux_record(now, **values):
    return FluxRecord(table=0, values={"_time": now, "station_id": "1", **values})


def test_to_point_skips_null_fields(make_measurement):
    measurement = make_measurement(pm10=12.5, level=AirQualityLevel.GOOD).model_copy(update={"id": "r1"})

    line = to_point(measurement).to_line_protocol()

    assert line.startswith(f"{MEASUREMENT},station_id=1 ")
    assert 'record_id="r1"' in line
    assert 'overall_index_level="GOOD"' in line
    assert "pm10_value=12.5" in line
    assert "pm25_value" not in line
    assert "so2_index_level" not in line


def test_to_measurement_maps_record(now):
    record = flux_record(now, record_id="r1", station_name="Kraków", overall_index_level="MODERATE",
                         pm10_index_level="UNKNOWN", pm10_value=41.0, created_at=now.isoformat())

    measurement = to_measurement(record)

    assert measurement.id == "r1"
    assert measurement.station_id == 1
    assert measurement.measurement_date == now
    assert measurement.overall_index_level is AirQualityLevel.MODERATE
    assert measurement.pm10_index_level is None
    assert measurement.pm10_value == 41.0
    assert measurement.pm25_value is None
    assert measurement.created_at == now


def test_save_writes_points_and_assigns_identity(influx_store, client, make_measurement):
    saved = influx_store.save(make_measurement(pm10=1.0))

    assert saved.id
    write = client.write_api.return_value.write
    write.assert_called_once()
    assert write.call_args.kwargs["bucket"] == "air"
    assert len(write.call_args.kwargs["record"]) == 1


def test_save_propagates_write_errors(influx_store, client, make_measurement):
    client.write_api.return_value.write.side_effect = RuntimeError("influx down")
    with pytest.raises(RuntimeError):
        influx_store.save(make_measurement())


def test_station_range_query_filters_and_sorts_ascending(influx_store, client, now):
    query = client.query_api.return_value.query
    query.return_value = flux_tables(flux_record(now, record_id="a"))

    result = influx_store.find_by_station_id_and_date_range(1, now - timedelta(days=1), now)

    flux = query.call_args.args[0]
    assert [m.id for m in result] == ["a"]
    assert 'r["station_id"] == "1"' in flux
    assert "desc: false" in flux
    assert 'from(bucket: "air")' in flux


def test_find_latest_returns_none_when_empty(influx_store, client):
    client.query_api.return_value.query.return_value = []
    assert influx_store.find_latest_by_station_id(1) is None
    flux = client.query_api.return_value.query.call_args.args[0]
    assert "limit(n: 1)" in flux
    assert "desc: true" in flux


def test_has_recent_measurement(influx_store, client, now):
    query = client.query_api.return_value.query
    query.return_value = flux_tables(flux_record(now))
    assert influx_store.has_recent_measurement(1, now - timedelta(minutes=50))

    query.return_value = flux_tables()
    assert not influx_store.has_recent_measurement(1, now - timedelta(minutes=50))


def test_delete_older_than_uses_delete_api(influx_store, client, now):
    influx_store.delete_older_than(now)

    kwargs = client.delete_api.return_value.delete.call_args.kwargs
    assert kwargs["stop"] < now
    assert kwargs["predicate"] == f'_measurement="{MEASUREMENT}"'
    assert kwargs["bucket"] == "air"


def test_statistics_from_query_results(influx_store, client, now):
    client.query_api.return_value.query.return_value = flux_tables(
        flux_record(now - timedelta(hours=1), pm10_value=10.0, overall_index_level="GOOD"),
        flux_record(now, pm10_value=20.0, overall_index_level="GOOD"),
    )

    stats = influx_store.calculate_statistics(1, now - timedelta(days=1), now)

    assert stats.measurement_count == 2
    assert stats.pm10.avg == 15.0
    assert stats.most_common_level is AirQualityLevel.GOOD


def test_from_settings_requires_influx_variables():
    with pytest.raises(ValueError, match="Missing required InfluxDB"):
        InfluxHistoryStore.from_settings(Settings(influxdb_url="http://localhost:8086"))
