# file: air_monitor/scheduler.py

import asyncio
import logging
import threading

import schedule

from air_monitor.sync import AirQualitySyncService


def run_schedule(sync_service: AirQualitySyncService, minute: int = 5,
                 scheduler: schedule.Scheduler | None = None) -> threading.Event:
    """Run the sync pass every hour at the given minute in a background thread.

    Returns an event that stops the thread once set.
    """
    scheduler = scheduler or schedule.Scheduler()
    stop = threading.Event()

    def job():
        try:
            report = asyncio.run(sync_service.sync_air_quality_data())
            logging.info(f"Scheduled sync finished: {report}")
        except Exception as e:
            logging.error(f"Scheduled job failed: {e}")

    scheduler.every().hour.at(f":{minute % 60:02d}").do(job)

    def run_continuously():
        while not stop.wait(1):
            scheduler.run_pending()

    thread = threading.Thread(target=run_continuously, daemon=True)
    thread.start()
    logging.info(f"Scheduler started in background thread (every hour at :{minute % 60:02d})")
    return stop
