from unittest.mock import MagicMock

import schedule

from air_monitor.scheduler import run_schedule


def test_run_schedule_registers_hourly_job():
    scheduler = schedule.Scheduler()
    sync_service = MagicMock()

    stop = run_schedule(sync_service, minute=5, scheduler=scheduler)
    stop.set()

    assert len(scheduler.jobs) == 1
    job = scheduler.jobs[0]
    assert job.unit == "hours"
    assert job.at_time.minute == 5
