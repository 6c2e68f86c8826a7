# file: air_monitor/memory_store.py

import logging
import threading
import uuid
from datetime import datetime
from typing import List, Optional

from air_monitor import aggregation
from air_monitor.models import Measurement, Ranking, Statistics


class InMemoryHistoryStore:
    """A process-local HistoryStore emulating the InfluxDB store for tests and local runs."""

    def __init__(self) -> None:
        self._records: List[Measurement] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def save(self, measurement: Measurement) -> Measurement:
        return self.save_all([measurement])[0]

    def save_all(self, measurements: List[Measurement]) -> List[Measurement]:
        saved = [m if m.id else m.model_copy(update={"id": uuid.uuid4().hex}) for m in measurements]
        logging.debug(f"Saving {len(saved)} air quality measurements")
        with self._lock:
            self._records.extend(saved)
        return saved

    def _snapshot(self) -> List[Measurement]:
        with self._lock:
            return list(self._records)

    def find_latest_by_station_id(self, station_id: int) -> Optional[Measurement]:
        records = [m for m in self._snapshot() if m.station_id == station_id]
        return max(records, key=lambda m: m.measurement_date, default=None)

    def find_by_station_id_and_date_range(self, station_id: int, start: datetime,
                                          end: datetime) -> List[Measurement]:
        records = [m for m in self._snapshot()
                   if m.station_id == station_id and start <= m.measurement_date <= end]
        return sorted(records, key=lambda m: m.measurement_date)

    def find_by_date_range(self, start: datetime, end: datetime) -> List[Measurement]:
        records = [m for m in self._snapshot() if start <= m.measurement_date <= end]
        return sorted(records, key=lambda m: m.measurement_date, reverse=True)

    def has_recent_measurement(self, station_id: int, threshold: datetime) -> bool:
        return any(m.station_id == station_id and m.measurement_date >= threshold for m in self._snapshot())

    def delete_older_than(self, threshold: datetime) -> None:
        logging.info(f"Deleting air quality measurements older than {threshold}")
        with self._lock:
            self._records = [m for m in self._records if m.measurement_date >= threshold]

    def calculate_statistics(self, station_id: int, start: datetime, end: datetime) -> Optional[Statistics]:
        measurements = self.find_by_station_id_and_date_range(station_id, start, end)
        return aggregation.calculate_statistics(station_id, start, end, measurements)

    def get_ranking(self, start: datetime, end: datetime, limit: int) -> List[Ranking]:
        measurements = sorted(self.find_by_date_range(start, end), key=lambda m: m.measurement_date)
        return aggregation.rank_stations(measurements, limit)

    def find_by_geo_bounds(self, min_lat: float, max_lat: float, min_lon: float, max_lon: float,
                           start: datetime, end: datetime) -> List[Measurement]:
        logging.warning("find_by_geo_bounds is not implemented yet")
        return []
