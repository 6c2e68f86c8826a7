# file: air_monitor/service.py

import logging
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Tuple

from air_monitor.abstractions import AirQualityProvider, HistoryStore
from air_monitor.errors import UpstreamUnavailableError
from air_monitor.models import (
    AirQualityIndex,
    Distance,
    Measurement,
    Ranking,
    SensorMeasurement,
    Station,
    Statistics,
)
from air_monitor.utils import clamp, get_current_time, haversine_km, parse_date_range

MIN_DAYS, MAX_DAYS = 1, 90
MIN_RANKING_LIMIT, MAX_RANKING_LIMIT = 5, 50
MIN_RADIUS_KM, MAX_RADIUS_KM = 1.0, 100.0


class AirQualityQueryService:
    """Read path over live GIOŚ data and the measurement history.

    Day counts, ranking limits and search radii are clamped into range rather
    than rejected. Lookups that find nothing return None.
    """

    def __init__(self, provider: AirQualityProvider, store: HistoryStore,
                 clock: Callable[[], datetime] = get_current_time) -> None:
        self.provider = provider
        self.store = store
        self.clock = clock

    def _window(self, days: int) -> Tuple[datetime, datetime]:
        end = self.clock()
        return end - timedelta(days=int(clamp(days, MIN_DAYS, MAX_DAYS))), end

    async def get_all_stations(self) -> List[Station]:
        return await self.provider.find_all_stations()

    async def get_current_air_quality(self, station_id: int) -> Optional[AirQualityIndex]:
        logging.info(f"Fetching current air quality for station {station_id}")
        return await self.provider.find_index_by_station_id(station_id)

    async def get_current_measurements(self, station_id: int) -> Optional[List[SensorMeasurement]]:
        measurements = await self.provider.find_measurements_by_station_id(station_id)
        return measurements or None

    def get_latest_measurement(self, station_id: int) -> Optional[Measurement]:
        """Most recent stored measurement; never calls GIOŚ."""
        return self.store.find_latest_by_station_id(station_id)

    def get_historical_data(self, station_id: int, days: int) -> List[Measurement]:
        start, end = self._window(days)
        logging.info(f"Fetching history for station {station_id} from {start} to {end}")
        return self.store.find_by_station_id_and_date_range(station_id, start, end)

    def get_measurements_in_range(self, start: str | date | datetime,
                                  end: str | date | datetime) -> List[Measurement]:
        """All stations' measurements in an inclusive range, newest first."""
        start_dt, end_dt = parse_date_range(start, end)
        return self.store.find_by_date_range(start_dt, end_dt)

    def get_statistics(self, station_id: int, days: int) -> Optional[Statistics]:
        start, end = self._window(days)
        return self.store.calculate_statistics(station_id, start, end)

    def get_ranking(self, days: int, limit: int) -> List[Ranking]:
        start, end = self._window(days)
        effective_limit = int(clamp(limit, MIN_RANKING_LIMIT, MAX_RANKING_LIMIT))
        return self.store.get_ranking(start, end, effective_limit)

    async def find_nearest_stations(self, latitude: float, longitude: float,
                                    radius_km: float) -> List[Distance]:
        """Stations within radius_km of the point, nearest first."""
        radius = clamp(radius_km, MIN_RADIUS_KM, MAX_RADIUS_KM)
        stations = await self.provider.find_all_stations()
        if not stations:
            raise UpstreamUnavailableError("Station list is not available")

        distances = [
            Distance(station=station,
                     distance_km=haversine_km(latitude, longitude, station.latitude, station.longitude))
            for station in stations
        ]
        # stable sort: equal distances keep upstream station order
        return sorted((d for d in distances if d.distance_km <= radius), key=lambda d: d.distance_km)
