# file: air_monitor/config.py

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read once from the environment (and .env)."""

    gios_api_url: str = "https://api.gios.gov.pl/pjp-api/v1/rest"
    request_timeout: float = 10.0
    gios_timezone: str = "Europe/Warsaw"

    storage_backend: str = "influxdb"
    influxdb_url: str | None = None
    influxdb_token: str | None = None
    influxdb_org: str | None = None
    influxdb_bucket: str | None = None

    sync_minute: int = 5
    freshness_minutes: int = 50
    retention_days: int = 90
    sync_concurrency: int = 8
    sync_on_startup: bool = True
    sync_progress: bool = False

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            gios_api_url=os.getenv("GIOS_API_URL", defaults.gios_api_url),
            request_timeout=float(os.getenv("GIOS_REQUEST_TIMEOUT", defaults.request_timeout)),
            gios_timezone=os.getenv("GIOS_TIMEZONE", defaults.gios_timezone),
            storage_backend=os.getenv("STORAGE_BACKEND", defaults.storage_backend).lower(),
            influxdb_url=os.getenv("INFLUXDB_URL"),
            influxdb_token=os.getenv("INFLUXDB_TOKEN"),
            influxdb_org=os.getenv("INFLUXDB_ORG"),
            influxdb_bucket=os.getenv("INFLUXDB_BUCKET"),
            sync_minute=int(os.getenv("SYNC_MINUTE", defaults.sync_minute)),
            freshness_minutes=int(os.getenv("SYNC_FRESHNESS_MINUTES", defaults.freshness_minutes)),
            retention_days=int(os.getenv("RETENTION_DAYS", defaults.retention_days)),
            sync_concurrency=int(os.getenv("SYNC_CONCURRENCY", defaults.sync_concurrency)),
            sync_on_startup=_env_bool("SYNC_ON_STARTUP", defaults.sync_on_startup),
            sync_progress=_env_bool("SYNC_PROGRESS", defaults.sync_progress),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )

    def require_influxdb(self) -> None:
        """Validate environment variables needed by the InfluxDB store."""
        if not all([self.influxdb_url, self.influxdb_token, self.influxdb_org, self.influxdb_bucket]):
            raise ValueError("Missing required InfluxDB environment variables")
