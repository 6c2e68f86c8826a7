# file: air_monitor/main.py

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Any, Dict, List

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from air_monitor.abstractions import HistoryStore
from air_monitor.config import Settings
from air_monitor.database import InfluxHistoryStore
from air_monitor.errors import DataNotFoundError, InvalidInputError, UpstreamUnavailableError
from air_monitor.gios_api import GiosAirQualityAdapter
from air_monitor.models import (
    AirQualityIndex,
    Distance,
    Measurement,
    Ranking,
    SensorMeasurement,
    Station,
    Statistics,
)
from air_monitor.scheduler import run_schedule
from air_monitor.service import AirQualityQueryService
from air_monitor.stores import build_store
from air_monitor.sync import AirQualitySyncService

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


@dataclass
class Components:
    settings: Settings
    store: HistoryStore
    sync_service: AirQualitySyncService
    query_service: AirQualityQueryService


def build_components(settings: Settings) -> Components:
    """Wire the adapter, store, sync and query services from settings."""
    provider = GiosAirQualityAdapter(
        base_url=settings.gios_api_url,
        timeout=settings.request_timeout,
        timezone=settings.gios_timezone,
    )
    store = build_store(settings)
    sync_service = AirQualitySyncService(
        provider,
        store,
        freshness=timedelta(minutes=settings.freshness_minutes),
        retention=timedelta(days=settings.retention_days),
        concurrency=settings.sync_concurrency,
        show_progress=settings.sync_progress,
    )
    return Components(settings, store, sync_service, AirQualityQueryService(provider, store))


def create_app(components: Components | None = None, run_background_jobs: bool = True) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build components, start the scheduler and run an initial sync."""
        if getattr(app.state, "components", None) is None:
            settings = Settings.from_env()
            logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
            app.state.components = build_components(settings)
        current: Components = app.state.components

        stop_scheduler = None
        if run_background_jobs:
            stop_scheduler = run_schedule(current.sync_service, current.settings.sync_minute)
            if current.settings.sync_on_startup:
                await current.sync_service.sync_air_quality_data()
        yield
        if stop_scheduler is not None:
            stop_scheduler.set()
        if isinstance(current.store, InfluxHistoryStore):
            current.store.close()

    app = FastAPI(
        title="Air Quality Monitoring - GIOŚ",
        description="Live and historical air quality for GIOŚ monitoring stations.",
        version="0.2",
        lifespan=lifespan,
    )
    app.state.components = components

    @app.exception_handler(DataNotFoundError)
    async def not_found_handler(request: Request, exc: DataNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(UpstreamUnavailableError)
    async def upstream_handler(request: Request, exc: UpstreamUnavailableError):
        logging.error(f"Upstream unavailable: {exc}")
        return JSONResponse(status_code=503, content={"detail": "GIOŚ service is temporarily unavailable"})

    def query_service(request: Request) -> AirQualityQueryService:
        return request.app.state.components.query_service

    def sync_service(request: Request) -> AirQualitySyncService:
        return request.app.state.components.sync_service

    @app.get("/stations", response_model=List[Station])
    async def stations(service: AirQualityQueryService = Depends(query_service)):
        """List all GIOŚ monitoring stations."""
        return await service.get_all_stations()

    @app.get("/stations/nearest", response_model=List[Distance])
    async def nearest_stations(
        lat: float = Query(..., description="Latitude of the query point"),
        lon: float = Query(..., description="Longitude of the query point"),
        radius: float = Query(10.0, description="Search radius in km, clamped to 1-100"),
        service: AirQualityQueryService = Depends(query_service),
    ):
        return await service.find_nearest_stations(lat, lon, radius)

    @app.get("/stations/{station_id}/index", response_model=AirQualityIndex)
    async def current_index(station_id: int, service: AirQualityQueryService = Depends(query_service)):
        """Live air quality index of a station."""
        index = await service.get_current_air_quality(station_id)
        if index is None:
            raise DataNotFoundError(station_id, "air quality index")
        return index

    @app.get("/stations/{station_id}/measurements", response_model=List[SensorMeasurement])
    async def current_measurements(station_id: int, service: AirQualityQueryService = Depends(query_service)):
        measurements = await service.get_current_measurements(station_id)
        if measurements is None:
            raise DataNotFoundError(station_id, "sensor measurements")
        return measurements

    @app.get("/stations/{station_id}/latest", response_model=Measurement)
    async def latest_measurement(station_id: int, service: AirQualityQueryService = Depends(query_service)):
        measurement = service.get_latest_measurement(station_id)
        if measurement is None:
            raise DataNotFoundError(station_id, "stored measurement")
        return measurement

    @app.get("/stations/{station_id}/history", response_model=List[Measurement])
    async def history(
        station_id: int,
        days: int = Query(7, description="Days back, clamped to 1-90"),
        service: AirQualityQueryService = Depends(query_service),
    ):
        return service.get_historical_data(station_id, days)

    @app.get("/stations/{station_id}/statistics", response_model=Statistics)
    async def statistics(
        station_id: int,
        days: int = Query(7, description="Days back, clamped to 1-90"),
        service: AirQualityQueryService = Depends(query_service),
    ):
        stats = service.get_statistics(station_id, days)
        if stats is None:
            raise DataNotFoundError(station_id, "statistics")
        return stats

    @app.get("/measurements", response_model=List[Measurement])
    async def measurements_in_range(
        start: str = Query(..., description="Start date, YYYY-MM-DD or ISO-8601"),
        end: str = Query(..., description="End date, YYYY-MM-DD or ISO-8601"),
        service: AirQualityQueryService = Depends(query_service),
    ):
        return service.get_measurements_in_range(start, end)

    @app.get("/ranking", response_model=List[Ranking])
    async def ranking(
        days: int = Query(7, description="Days back, clamped to 1-90"),
        limit: int = Query(10, description="Number of stations, clamped to 5-50"),
        service: AirQualityQueryService = Depends(query_service),
    ):
        """Stations from the cleanest to the most polluted."""
        return service.get_ranking(days, limit)

    @app.post("/sync/trigger", response_model=Dict[str, Any])
    async def trigger_sync(service: AirQualitySyncService = Depends(sync_service)):
        """Run a synchronization pass now."""
        return asdict(await service.trigger_manual_sync())

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
