# file: air_monitor/db_import.py

import json
import logging

from air_monitor.abstractions import HistoryStore
from air_monitor.config import Settings
from air_monitor.stores import build_store
from air_monitor.models import Measurement


def import_from_json(store: HistoryStore, input_file: str = "air_quality_export.json") -> int:
    """Import measurements from a JSON export into the store."""
    try:
        with open(input_file, "r", encoding="utf-8") as f:
            data = json.load(f)

        logging.info(f"Loaded {len(data)} records from {input_file}")

        measurements = [Measurement.model_validate(entry) for entry in data]
        saved = store.save_all(measurements)
        logging.info(f"Imported {len(saved)} measurements")
        return len(saved)
    except Exception as e:
        logging.error(f"Error importing data: {e}")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    import_from_json(build_store(Settings.from_env()))
