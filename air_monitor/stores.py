# file: air_monitor/stores.py

from air_monitor.abstractions import HistoryStore
from air_monitor.config import Settings
from air_monitor.database import InfluxHistoryStore
from air_monitor.memory_store import InMemoryHistoryStore


def build_store(settings: Settings) -> HistoryStore:
    """History store selected by STORAGE_BACKEND."""
    if settings.storage_backend == "memory":
        return InMemoryHistoryStore()
    if settings.storage_backend == "influxdb":
        return InfluxHistoryStore.from_settings(settings)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
