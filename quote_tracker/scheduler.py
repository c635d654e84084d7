"""
Scheduler Module
================
Daily reminder sweep for quotes still pending after the threshold.

Runs inside the API process when `SCHEDULER_ENABLED` is set, or standalone:

    quote-tracker-scheduler            # run on the daily schedule
    quote-tracker-scheduler --once     # run one sweep and exit
"""

import argparse
import asyncio

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from quote_tracker.config.settings import Settings, settings as default_settings
from quote_tracker.database.base import build_engine, build_session_factory, close_db, init_db
from quote_tracker.services.notifications import NotificationDispatcher, build_dispatcher
from quote_tracker.services.quotes import SQLAlchemyQuoteStore
from quote_tracker.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

REMINDER_JOB_ID = "reminder_sweep"


async def run_reminder_sweep(dispatcher: NotificationDispatcher) -> dict[str, int]:
    """
    Run one sweep and log the outcome.
    
    Called by the scheduler daily; an exception is logged so the next run
    still happens.
    """
    logger.info("scheduled_reminder_sweep_started")
    try:
        result = await dispatcher.bulk_reminder_sweep()
    except Exception as exc:
        logger.error(
            "scheduled_reminder_sweep_failed",
            error_type=type(exc).__name__,
            error_message=str(exc),
        )
        return {"processed": 0, "successful": 0, "failed": 0}
    
    logger.info("scheduled_reminder_sweep_completed", **result.to_dict())
    return result.to_dict()


def build_scheduler(
    dispatcher: NotificationDispatcher,
    settings: Settings | None = None,
) -> AsyncIOScheduler:
    """
    Scheduler with the daily reminder job registered but not started.
    
    Args:
        dispatcher: Dispatcher the sweep runs on
        settings: Source of the sweep hour
    """
    settings = settings or default_settings
    scheduler = AsyncIOScheduler(timezone="UTC")
    
    trigger = CronTrigger(hour=settings.reminder_sweep_hour, minute=0, timezone="UTC")
    scheduler.add_job(
        run_reminder_sweep,
        trigger=trigger,
        args=[dispatcher],
        id=REMINDER_JOB_ID,
        name="Pending quote reminder sweep",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    
    logger.info(
        "reminder_sweep_scheduled",
        hour=f"{settings.reminder_sweep_hour:02d}:00 UTC",
    )
    return scheduler


async def _run(once: bool, settings: Settings) -> None:
    engine = build_engine(settings.database, echo=settings.debug)
    await init_db(engine)
    dispatcher = build_dispatcher(SQLAlchemyQuoteStore(build_session_factory(engine)), settings)
    
    try:
        if once:
            await run_reminder_sweep(dispatcher)
            return
        
        scheduler = build_scheduler(dispatcher, settings)
        scheduler.start()
        try:
            await asyncio.Event().wait()
        finally:
            scheduler.shutdown(wait=False)
    finally:
        await close_db(engine)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Quote Tracker Scheduler - Remind clients about pending quotes"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep and exit",
    )
    args = parser.parse_args(argv)
    
    setup_logging(default_settings)
    try:
        asyncio.run(_run(args.once, default_settings))
    except (KeyboardInterrupt, SystemExit):
        logger.info("scheduler_stopped")


if __name__ == "__main__":
    main()
