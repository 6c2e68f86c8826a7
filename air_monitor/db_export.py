# file: air_monitor/db_export.py

import json
import logging
from datetime import datetime, timedelta

from air_monitor.abstractions import HistoryStore
from air_monitor.config import Settings
from air_monitor.stores import build_store
from air_monitor.utils import get_current_time


def export_to_json(store: HistoryStore, output_file: str = "air_quality_export.json",
                   retention_days: int = 90, end: datetime | None = None) -> int:
    """Export every retained measurement to a JSON file, oldest first."""
    end = end or get_current_time()
    try:
        measurements = store.find_by_date_range(end - timedelta(days=retention_days), end)
        data = [m.model_dump(mode="json") for m in reversed(measurements)]

        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        logging.info(f"Exported {len(data)} records to {output_file}")
        return len(data)
    except Exception as e:
        logging.error(f"Error exporting data: {e}")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    settings = Settings.from_env()
    export_to_json(build_store(settings), retention_days=settings.retention_days)
