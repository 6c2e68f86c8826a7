# file: air_monitor/sync.py

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Tuple

from tqdm.asyncio import tqdm

from air_monitor.abstractions import AirQualityProvider, HistoryStore
from air_monitor.models import Measurement, SensorMeasurement, Station
from air_monitor.utils import get_current_time

SAVED = "saved"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class SyncReport:
    """Outcome counts of one synchronization pass."""

    successful: int = 0
    skipped: int = 0
    failed: int = 0
    cleanup_ok: bool = False
    skipped_pass: bool = False

    def record(self, outcome: str) -> None:
        if outcome == SAVED:
            self.successful += 1
        elif outcome == SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1


def extract_latest_sensor_values(measurements: List[SensorMeasurement]) -> Dict[str, float]:
    """Latest non-null value per pollutant code, chosen by reading date rather than list position."""
    latest: Dict[str, Tuple[datetime, float]] = {}
    for sensor in measurements:
        for reading in sensor.readings:
            if reading.value is None:
                continue
            current = latest.get(sensor.param_code)
            if current is None or reading.date > current[0]:
                latest[sensor.param_code] = (reading.date, reading.value)
    return {code: value for code, (_, value) in latest.items()}


class AirQualitySyncService:
    """Copies the live GIOŚ state of every station into the history store.

    Both entry points, sync_air_quality_data (scheduler) and
    trigger_manual_sync, run the same pass under one non-blocking lock, so
    passes never overlap. A pass never raises: per-station errors and cleanup
    errors are logged and counted.
    """

    def __init__(self, provider: AirQualityProvider, store: HistoryStore, *,
                 freshness: timedelta = timedelta(minutes=50),
                 retention: timedelta = timedelta(days=90),
                 concurrency: int = 8,
                 show_progress: bool = False,
                 clock: Callable[[], datetime] = get_current_time) -> None:
        self.provider = provider
        self.store = store
        self.freshness = freshness
        self.retention = retention
        self.concurrency = max(1, concurrency)
        self.show_progress = show_progress
        self.clock = clock
        self._pass_lock = threading.Lock()

    async def sync_air_quality_data(self) -> SyncReport:
        """Scheduled entry point."""
        return await self._run_exclusive("scheduled")

    async def trigger_manual_sync(self) -> SyncReport:
        """Manual entry point for admin or testing use."""
        logging.info("Manual sync triggered")
        return await self._run_exclusive("manual")

    async def _run_exclusive(self, source: str) -> SyncReport:
        if not self._pass_lock.acquire(blocking=False):
            logging.warning(f"Skipping {source} sync: another pass is still running")
            return SyncReport(skipped_pass=True)
        try:
            return await self.run_pass()
        finally:
            self._pass_lock.release()

    async def run_pass(self) -> SyncReport:
        logging.info("Starting air quality data synchronization")
        report = SyncReport()
        try:
            stations = await self.provider.find_all_stations()
            logging.info(f"Found {len(stations)} stations to sync")

            semaphore = asyncio.Semaphore(self.concurrency)

            async def bounded(station: Station) -> str:
                async with semaphore:
                    return await self._sync_station_safely(station)

            tasks = [asyncio.create_task(bounded(station)) for station in stations]
            with tqdm(total=len(tasks), desc="Syncing stations", disable=not self.show_progress) as pbar:
                for future in asyncio.as_completed(tasks):
                    report.record(await future)
                    pbar.update(1)

            logging.info(f"Sync completed: {report.successful} successful, {report.failed} failed, "
                         f"{report.skipped} skipped")
        except Exception as e:
            logging.error(f"Error during air quality data synchronization: {e}")

        report.cleanup_ok = await self._cleanup_old_data()
        return report

    async def _sync_station_safely(self, station: Station) -> str:
        try:
            return await self._sync_station(station)
        except Exception as e:
            logging.error(f"Failed to sync data for station {station.id}: {e}")
            return FAILED

    async def _sync_station(self, station: Station) -> str:
        threshold = self.clock() - self.freshness
        if await asyncio.to_thread(self.store.has_recent_measurement, station.id, threshold):
            logging.debug(f"Skipping station {station.id} - has recent measurement")
            return SKIPPED

        index = await self.provider.find_index_by_station_id(station.id)
        if index is None:
            logging.debug(f"No index data for station {station.id}")
            return SKIPPED

        sensors = await self.provider.find_measurements_by_station_id(station.id)
        measurement = Measurement.create(station.id, station.name, index, extract_latest_sensor_values(sensors))

        await asyncio.to_thread(self.store.save, measurement)
        logging.debug(f"Saved measurement for station {station.name}: {index.overall_level}")
        return SAVED

    async def _cleanup_old_data(self) -> bool:
        """Remove measurements past the retention period."""
        threshold = self.clock() - self.retention
        try:
            await asyncio.to_thread(self.store.delete_older_than, threshold)
            logging.info(f"Cleaned up measurements older than {threshold}")
            return True
        except Exception as e:
            logging.error(f"Error cleaning up old measurements: {e}")
            return False
