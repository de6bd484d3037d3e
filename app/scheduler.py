# app/scheduler.py
"""
In-process scheduler for the lifecycle sweeps.

Interval jobs run on APScheduler's BackgroundScheduler:
- expire_offers: moves open offers past expires_at to expired
- warn_expiring_offers: tells creators about offers expiring soon
- warn_content_deadlines: content deadline reminders for active collaborations

All jobs are safe to overlap with user traffic; the expiry sweep relies on
the row_version check and the reminders on compare-and-set flags.
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED

from app.core.config import settings
from app.background_tasks.collaboration_tasks import warn_content_deadlines
from app.background_tasks.offer_tasks import expire_offers, warn_expiring_offers

logger = logging.getLogger(__name__)

scheduler = None


def _lifecycle_jobs():
    """(job id, callable, trigger, description) for every scheduled job."""
    return [
        (
            "expire_offers",
            expire_offers,
            IntervalTrigger(minutes=settings.EXPIRE_SWEEP_INTERVAL_MINUTES),
            f"every {settings.EXPIRE_SWEEP_INTERVAL_MINUTES} minutes",
        ),
        (
            "warn_expiring_offers",
            warn_expiring_offers,
            IntervalTrigger(hours=1),
            "hourly",
        ),
        (
            "warn_content_deadlines",
            warn_content_deadlines,
            IntervalTrigger(minutes=settings.CONTENT_DEADLINE_SWEEP_INTERVAL_MINUTES),
            f"every {settings.CONTENT_DEADLINE_SWEEP_INTERVAL_MINUTES} minutes",
        ),
    ]


def _log_job_event(event):
    if event.code == EVENT_JOB_MISSED:
        logger.warning(
            f"Job {event.job_id} missed its run at {event.scheduled_run_time}"
        )
        return
    logger.error(
        f"Job {event.job_id} raised {event.exception!r}",
        exc_info=(type(event.exception), event.exception, None) if event.exception else None,
    )
    if event.traceback:
        logger.error(f"Traceback for job {event.job_id}:\n{event.traceback}")


def init_scheduler():
    """Start the lifecycle jobs. Called once from the application lifespan."""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return scheduler

    scheduler = BackgroundScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,  # A backlog of missed sweeps runs once
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
    )

    for job_id, func, trigger, cadence in _lifecycle_jobs():
        scheduler.add_job(func=func, trigger=trigger, id=job_id, replace_existing=True)
        logger.info(f"Scheduled {job_id} ({cadence})")

    scheduler.add_listener(_log_job_event, EVENT_JOB_ERROR | EVENT_JOB_MISSED)
    scheduler.start()
    logger.info("Scheduler started")
    return scheduler


def shutdown_scheduler():
    """Stop the jobs, letting a running sweep finish its current item."""
    global scheduler

    if scheduler is None:
        return
    scheduler.shutdown(wait=True)
    scheduler = None
    logger.info("Scheduler stopped")
