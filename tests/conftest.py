from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
import pytz

from air_monitor.memory_store import InMemoryHistoryStore
from air_monitor.models import AirQualityIndex, Measurement, Station

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=pytz.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def store():
    return InMemoryHistoryStore()


@pytest.fixture
def stations():
    return [
        Station(id=1, name="Warszawa-Marszałkowska", city="Warszawa", latitude=52.2297, longitude=21.0122),
        Station(id=2, name="Warszawa-Targówek", city="Warszawa", latitude=52.2397, longitude=21.0222),
        Station(id=3, name="Kraków-Bujaka", city="Kraków", latitude=50.0647, longitude=19.9450),
    ]


@pytest.fixture
def provider(stations):
    # AirQualityProvider fake; every coroutine is an AsyncMock
    fake = AsyncMock()
    fake.find_all_stations.return_value = stations
    fake.find_index_by_station_id.side_effect = lambda station_id: AirQualityIndex(
        station_id=station_id, calculation_date=NOW, overall_level="Dobry", pm10_level="Dobry"
    )
    fake.find_measurements_by_station_id.return_value = []
    return fake


@pytest.fixture
def make_measurement():
    def factory(station_id=1, hours_ago=0, pm10=None, pm25=None, level=None, **extra):
        return Measurement(
            station_id=station_id,
            station_name=extra.pop("station_name", f"Station {station_id}"),
            measurement_date=NOW - timedelta(hours=hours_ago),
            overall_index_level=level,
            pm10_value=pm10,
            pm25_value=pm25,
            **extra,
        )
    return factory
