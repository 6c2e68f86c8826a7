# file: air_monitor/gios_api.py

import asyncio
import logging
import ssl
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional

import aiohttp
import certifi
from pydantic import ValidationError

from air_monitor.errors import UpstreamUnavailableError
from air_monitor.models import AirQualityIndex, Reading, SensorMeasurement, Station
from air_monitor.schemas import (
    MISSING,
    ContainerKeys,
    GiosDataValueDto,
    GiosIndexDto,
    GiosSensorDto,
    GiosStationDto,
    parse_coordinate,
    parse_gios_datetime,
    resolve_container,
)
from air_monitor.utils import get_current_time

GIOS_URL = "https://api.gios.gov.pl/pjp-api/v1/rest"

URI_STATION_FIND_ALL = "/station/findAll"
URI_AQ_INDEX = "/aqindex/getIndex/{station_id}"
URI_STATION_SENSORS = "/station/sensors/{station_id}"
URI_SENSOR_DATA = "/data/getData/{sensor_id}"

USER_AGENT = "air-monitor/0.2"
UNKNOWN_PARAM_CODE = "N/A"
UNKNOWN_PARAM_NAME = "Unknown parameter"


def build_ssl_context() -> ssl.SSLContext:
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    ssl_context.set_ciphers("DEFAULT@SECLEVEL=1")  # GIOŚ still negotiates older cipher suites
    return ssl_context


class GiosAirQualityAdapter:
    """AirQualityProvider backed by the GIOŚ REST API.

    Every public method swallows network and parsing errors and returns an
    empty result instead, so a broken upstream response never reaches callers.
    """

    def __init__(self, base_url: str = GIOS_URL, timeout: float = 10.0, timezone: str = "Europe/Warsaw",
                 container_keys: ContainerKeys | None = None,
                 session: aiohttp.ClientSession | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.timezone = timezone
        self.keys = container_keys or ContainerKeys()
        self._session = session

    @asynccontextmanager
    async def _session_scope(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self._session is not None:
            yield self._session
            return
        connector = aiohttp.TCPConnector(ssl=build_ssl_context())
        async with aiohttp.ClientSession(connector=connector, timeout=self.timeout,
                                         headers={"User-Agent": USER_AGENT}) as session:
            yield session

    async def _get_json(self, session: aiohttp.ClientSession, path: str) -> Any:
        """GET a path and decode JSON, raising UpstreamUnavailableError on any failure."""
        url = f"{self.base_url}{path}"
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise UpstreamUnavailableError(f"GET {path}: HTTP {response.status}")
                return await response.json(content_type=None)
        except UpstreamUnavailableError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise UpstreamUnavailableError(f"GET {path}: {e}") from e

    async def find_all_stations(self) -> List[Station]:
        """Fetch the station list; an unrecognised payload yields an empty list."""
        try:
            async with self._session_scope() as session:
                root = await self._get_json(session, URI_STATION_FIND_ALL)
        except Exception as e:
            logging.error(f"Error fetching stations: {e}")
            return []

        logging.debug("GIOŚ stations response: %s", root)

        stations_node = resolve_container(root, self.keys.stations)
        if stations_node is MISSING and isinstance(root, list):
            stations_node = root
        if not isinstance(stations_node, list):
            logging.warning("Stations list not found in GIOŚ response")
            return []

        try:
            return [self._to_station(GiosStationDto.model_validate(item)) for item in stations_node]
        except (ValidationError, TypeError) as e:
            logging.error(f"Error mapping stations: {e}")
            return []

    async def find_index_by_station_id(self, station_id: int) -> Optional[AirQualityIndex]:
        """Fetch the live index; None when GIOŚ has nothing for the station."""
        try:
            async with self._session_scope() as session:
                root = await self._get_json(session, URI_AQ_INDEX.format(station_id=station_id))
            logging.debug("GIOŚ index response for station %s: %s", station_id, root)

            index_node = resolve_container(root, self.keys.index)
            if index_node is MISSING:
                index_node = root
            if isinstance(index_node, list):
                if not index_node:
                    return None
                index_node = index_node[0]

            dto = GiosIndexDto.model_validate(index_node)
            # GIOŚ answers with an all-null object instead of an empty body when there is no index
            if dto.id is None:
                return None
            return self._to_index(dto, station_id)
        except Exception as e:
            logging.error(f"Error parsing air quality index for station {station_id}: {e}")
            return None

    async def find_measurements_by_station_id(self, station_id: int) -> List[SensorMeasurement]:
        """Fetch every sensor of a station together with its reading series."""
        try:
            async with self._session_scope() as session:
                sensors = await self._fetch_sensors(session, station_id)
                measurements = []
                for sensor in sensors:
                    if sensor.id is None:
                        continue
                    readings = await self._fetch_sensor_data(session, sensor.id)
                    measurements.append(SensorMeasurement(
                        sensor_id=sensor.id,
                        param_code=sensor.param_code or UNKNOWN_PARAM_CODE,
                        param_name=sensor.param_name or UNKNOWN_PARAM_NAME,
                        readings=readings,
                    ))
                return measurements
        except Exception as e:
            logging.error(f"Error fetching measurements for station {station_id}: {e}")
            return []

    async def _fetch_sensors(self, session: aiohttp.ClientSession, station_id: int) -> List[GiosSensorDto]:
        try:
            root = await self._get_json(session, URI_STATION_SENSORS.format(station_id=station_id))
            logging.debug("GIOŚ sensors response for station %s: %s", station_id, root)

            sensors_node = resolve_container(root, self.keys.sensors)
            if sensors_node is MISSING:
                sensors_node = root
            if isinstance(sensors_node, list):
                return [GiosSensorDto.model_validate(item) for item in sensors_node]
        except Exception as e:
            logging.error(f"Error fetching sensors for station {station_id}: {e}")
        return []

    async def _fetch_sensor_data(self, session: aiohttp.ClientSession, sensor_id: int) -> List[Reading]:
        try:
            root = await self._get_json(session, URI_SENSOR_DATA.format(sensor_id=sensor_id))
            logging.debug("GIOŚ data response for sensor %s: %s", sensor_id, root)

            values_node = resolve_container(root, self.keys.readings)
            if isinstance(values_node, list):
                return self._to_readings(values_node)
        except Exception as e:
            logging.error(f"Error fetching data for sensor {sensor_id}: {e}")
        return []

    def _to_readings(self, entries: List[Any]) -> List[Reading]:
        """Drop entries without a value or with a date that does not parse."""
        readings = []
        for entry in entries:
            try:
                dto = GiosDataValueDto.model_validate(entry)
                if dto.value is None or dto.date is None:
                    continue
                readings.append(Reading(date=parse_gios_datetime(dto.date, self.timezone), value=dto.value))
            except (ValidationError, ValueError) as e:
                logging.debug(f"Skipping malformed reading {entry!r}: {e}")
        return readings

    def _to_station(self, dto: GiosStationDto) -> Station:
        return Station(
            id=dto.id if dto.id is not None else 0,
            name=dto.station_name,
            city=dto.city_name or "",
            address=dto.address_street,
            latitude=parse_coordinate(dto.gegr_lat),
            longitude=parse_coordinate(dto.gegr_lon),
        )

    def _to_index(self, dto: GiosIndexDto, station_id: int) -> AirQualityIndex:
        calculation_date = (parse_gios_datetime(dto.st_calc_date, self.timezone)
                            if dto.st_calc_date else get_current_time())
        return AirQualityIndex(
            station_id=station_id,
            calculation_date=calculation_date,
            overall_level=dto.st_index_level,
            so2_level=dto.so2_index_level,
            no2_level=dto.no2_index_level,
            pm10_level=dto.pm10_index_level,
        )

