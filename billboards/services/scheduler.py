"""
Planificateur de maintenance (APScheduler) / Maintenance scheduler (APScheduler).

Toutes les RECONCILIATION_INTERVAL_MINUTES minutes, et une fois au demarrage :
maintenance des statuts puis reconciliation Propositions <-> Locations.
Every RECONCILIATION_INTERVAL_MINUTES minutes, and once at startup: status
maintenance then Proposal <-> Rental reconciliation.

Usage:
    from billboards.services.scheduler import start_scheduler, shutdown_scheduler

    # dans le lifespan FastAPI / in the FastAPI lifespan
    start_scheduler()
    ...
    shutdown_scheduler()
"""

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from billboards.config import settings

logger = logging.getLogger("billboards.scheduler")

JOB_ID = "maintenance_job"

_scheduler: AsyncIOScheduler | None = None


async def maintenance_job(session_factory=None):
    """Statuts + reconciliation / Status maintenance + reconciliation."""
    from billboards.database import async_session
    from billboards.services.lifecycle import expire_elapsed
    from billboards.services.reconciler import Reconciler

    factory = session_factory or async_session
    started = datetime.now(timezone.utc)
    logger.info("Maintenance job started")

    try:
        async with factory() as db:
            await expire_elapsed(db)
    except Exception as exc:
        # La reconciliation doit tourner quand meme / Reconciliation still runs
        logger.error("Status maintenance failed: %s", exc, exc_info=True)

    try:
        stats = await Reconciler(factory).run_reconciliation()
    except Exception as exc:
        logger.error("Reconciliation job failed: %s", exc, exc_info=True)
        return None

    duration = (datetime.now(timezone.utc) - started).total_seconds()
    logger.info("Maintenance job finished in %.1fs (corrective actions: %s)", duration, stats.corrective_actions)
    return stats


def start_scheduler(interval_minutes: int | None = None):
    """Demarrer le planificateur / Start the scheduler."""
    global _scheduler

    if _scheduler is not None:
        logger.warning("Scheduler already running")
        return

    interval = interval_minutes or settings.RECONCILIATION_INTERVAL_MINUTES
    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        maintenance_job,
        trigger=IntervalTrigger(minutes=interval),
        id=JOB_ID,
        name="Status maintenance + reconciliation",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(timezone.utc),
    )
    _scheduler.start()
    logger.info(
        "Scheduler started: every %s min, next run %s", interval, _scheduler.get_job(JOB_ID).next_run_time
    )


def shutdown_scheduler():
    global _scheduler

    if _scheduler is None:
        return

    _scheduler.shutdown(wait=False)
    _scheduler = None
    logger.info("Scheduler stopped")


def get_scheduler() -> AsyncIOScheduler | None:
    return _scheduler
