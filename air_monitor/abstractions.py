# file: air_monitor/abstractions.py

"""Ports between the sync engine, the GIOŚ adapter and the measurement store."""

from datetime import datetime
from typing import List, Optional, Protocol

from air_monitor.models import AirQualityIndex, Measurement, Ranking, SensorMeasurement, Station, Statistics


class AirQualityProvider(Protocol):
    """Live source of stations, indexes and sensor readings.

    Implementations never raise for network or parsing problems; they degrade
    to an empty list or None instead.
    """

    async def find_all_stations(self) -> List[Station]:
        ...

    async def find_index_by_station_id(self, station_id: int) -> Optional[AirQualityIndex]:
        ...

    async def find_measurements_by_station_id(self, station_id: int) -> List[SensorMeasurement]:
        ...


class HistoryStore(Protocol):
    """Durable time series of canonical measurements, with derived aggregates."""

    def save(self, measurement: Measurement) -> Measurement:
        """Persist a measurement and return it with its assigned id."""
        ...

    def save_all(self, measurements: List[Measurement]) -> List[Measurement]:
        ...

    def find_latest_by_station_id(self, station_id: int) -> Optional[Measurement]:
        ...

    def find_by_station_id_and_date_range(self, station_id: int, start: datetime,
                                          end: datetime) -> List[Measurement]:
        """Inclusive range, oldest first."""
        ...

    def find_by_date_range(self, start: datetime, end: datetime) -> List[Measurement]:
        """Inclusive range over all stations, newest first."""
        ...

    def has_recent_measurement(self, station_id: int, threshold: datetime) -> bool:
        ...

    def delete_older_than(self, threshold: datetime) -> None:
        ...

    def calculate_statistics(self, station_id: int, start: datetime,
                             end: datetime) -> Optional[Statistics]:
        ...

    def get_ranking(self, start: datetime, end: datetime, limit: int) -> List[Ranking]:
        ...

    def find_by_geo_bounds(self, min_lat: float, max_lat: float, min_lon: float, max_lon: float,
                           start: datetime, end: datetime) -> List[Measurement]:
        ...
