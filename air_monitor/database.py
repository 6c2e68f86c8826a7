# file: air_monitor/database.py

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytz
from influxdb_client import InfluxDBClient, Point
from influxdb_client.client.flux_table import FluxRecord
from influxdb_client.client.write_api import SYNCHRONOUS

from air_monitor import aggregation
from air_monitor.config import Settings
from air_monitor.models import AirQualityLevel, Measurement, Ranking, Statistics

MEASUREMENT = "air_quality_measurements"
EPOCH = datetime(1970, 1, 1, tzinfo=pytz.utc)
# Flux range stops are exclusive, ours are inclusive
INCLUSIVE_STOP = timedelta(microseconds=1)

LEVEL_FIELDS = ["overall_index_level", "so2_index_level", "no2_index_level", "pm10_index_level", "pm25_index_level"]
VALUE_FIELDS = ["pm10_value", "pm25_value", "so2_value", "no2_value", "co_value", "o3_value"]


def _flux_time(value: datetime) -> str:
    return value.astimezone(pytz.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _parse_level(name: Any) -> Optional[AirQualityLevel]:
    if name is None:
        return None
    try:
        return AirQualityLevel[name]
    except KeyError:
        logging.warning(f"Unknown air quality level from database: {name}")
        return None


def to_point(measurement: Measurement) -> Point:
    """Convert a measurement to an InfluxDB point; null fields are simply not written."""
    point = (
        Point(MEASUREMENT)
        .tag("station_id", str(measurement.station_id))
        .time(measurement.measurement_date)
        .field("record_id", measurement.id)
        .field("created_at", measurement.created_at.isoformat())
    )
    if measurement.station_name is not None:
        point.field("station_name", measurement.station_name)
    for field in LEVEL_FIELDS:
        level = getattr(measurement, field)
        if level is not None:
            point.field(field, level.name)
    for field in VALUE_FIELDS:
        value = getattr(measurement, field)
        if value is not None:
            point.field(field, float(value))
    return point


def to_measurement(record: FluxRecord) -> Measurement:
    """Map a pivoted Flux record back to a measurement."""
    values: Dict[str, Any] = record.values
    created_at = values.get("created_at")
    return Measurement(
        id=values.get("record_id"),
        station_id=int(values["station_id"]),
        station_name=values.get("station_name"),
        measurement_date=record.get_time(),
        **{field: _parse_level(values.get(field)) for field in LEVEL_FIELDS},
        **{field: values.get(field) for field in VALUE_FIELDS},
        created_at=datetime.fromisoformat(created_at) if created_at else record.get_time(),
    )


class InfluxHistoryStore:
    """HistoryStore persisting measurements as points in an InfluxDB bucket."""

    def __init__(self, client: InfluxDBClient, bucket: str, org: str) -> None:
        self.client = client
        self.bucket = bucket
        self.org = org
        self.query_api = client.query_api()
        self.write_api = client.write_api(write_options=SYNCHRONOUS)
        self.delete_api = client.delete_api()

    @classmethod
    def from_settings(cls, settings: Settings) -> "InfluxHistoryStore":
        settings.require_influxdb()
        client = InfluxDBClient(url=settings.influxdb_url, token=settings.influxdb_token, org=settings.influxdb_org)
        return cls(client, settings.influxdb_bucket, settings.influxdb_org)

    def close(self) -> None:
        self.client.close()

    def save(self, measurement: Measurement) -> Measurement:
        return self.save_all([measurement])[0]

    def save_all(self, measurements: List[Measurement]) -> List[Measurement]:
        saved = [m if m.id else m.model_copy(update={"id": uuid.uuid4().hex}) for m in measurements]
        if not saved:
            return []
        logging.debug(f"Saving {len(saved)} air quality measurements")
        try:
            self.write_api.write(bucket=self.bucket, org=self.org, record=[to_point(m) for m in saved])
        except Exception as e:
            logging.error(f"Error saving air quality data to InfluxDB: {e}")
            raise
        return saved

    def _query(self, start: datetime, end: datetime, station_id: int | None = None,
               desc: bool = False, limit: int | None = None) -> List[Measurement]:
        station_filter = f'|> filter(fn: (r) => r["station_id"] == "{int(station_id)}")' if station_id is not None else ""
        limit_clause = f"|> limit(n: {int(limit)})" if limit else ""
        query = f'''
            from(bucket: "{self.bucket}")
            |> range(start: {_flux_time(start)}, stop: {_flux_time(end + INCLUSIVE_STOP)})
            |> filter(fn: (r) => r._measurement == "{MEASUREMENT}")
            {station_filter}
            |> pivot(rowKey: ["_time"], columnKey: ["_field"], valueColumn: "_value")
            |> group()
            |> sort(columns: ["_time"], desc: {str(desc).lower()})
            {limit_clause}
        '''
        try:
            tables = self.query_api.query(query, org=self.org)
        except Exception as e:
            logging.error(f"Error querying air quality measurements: {e}")
            raise
        return [to_measurement(record) for table in tables for record in table.records]

    def find_latest_by_station_id(self, station_id: int) -> Optional[Measurement]:
        latest = self._query(EPOCH, datetime.now(pytz.utc), station_id=station_id, desc=True, limit=1)
        return latest[0] if latest else None

    def find_by_station_id_and_date_range(self, station_id: int, start: datetime,
                                          end: datetime) -> List[Measurement]:
        return self._query(start, end, station_id=station_id)

    def find_by_date_range(self, start: datetime, end: datetime) -> List[Measurement]:
        return self._query(start, end, desc=True)

    def has_recent_measurement(self, station_id: int, threshold: datetime) -> bool:
        query = f'''
            from(bucket: "{self.bucket}")
            |> range(start: {_flux_time(threshold)})
            |> filter(fn: (r) => r._measurement == "{MEASUREMENT}")
            |> filter(fn: (r) => r["station_id"] == "{int(station_id)}")
            |> filter(fn: (r) => r._field == "record_id")
            |> limit(n: 1)
        '''
        tables = self.query_api.query(query, org=self.org)
        return any(table.records for table in tables)

    def delete_older_than(self, threshold: datetime) -> None:
        logging.info(f"Deleting air quality measurements older than {threshold}")
        self.delete_api.delete(
            start=EPOCH,
            stop=threshold - INCLUSIVE_STOP,
            predicate=f'_measurement="{MEASUREMENT}"',
            bucket=self.bucket,
            org=self.org,
        )

    def calculate_statistics(self, station_id: int, start: datetime, end: datetime) -> Optional[Statistics]:
        measurements = self.find_by_station_id_and_date_range(station_id, start, end)
        return aggregation.calculate_statistics(station_id, start, end, measurements)

    def get_ranking(self, start: datetime, end: datetime, limit: int) -> List[Ranking]:
        return aggregation.rank_stations(self._query(start, end), limit)

    def find_by_geo_bounds(self, min_lat: float, max_lat: float, min_lon: float, max_lon: float,
                           start: datetime, end: datetime) -> List[Measurement]:
        # measurements carry no coordinates; needs a station location index first
        logging.warning("find_by_geo_bounds is not implemented yet")
        return []
