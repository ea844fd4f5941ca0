import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from core import config
from services.tournament import refresh_tournament_statuses

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(timezone="UTC")


async def refresh_statuses_job():
    promoted = await refresh_tournament_statuses()
    if promoted:
        logger.info("Status refresh promoted %d tournament(s)", promoted)


def start_scheduler():
    if config.STATUS_REFRESH_SECONDS <= 0:
        logger.info("Tournament status refresh job disabled.")
        return
    scheduler.add_job(
        refresh_statuses_job,
        "interval",
        seconds=config.STATUS_REFRESH_SECONDS,
        id="refresh_tournament_statuses",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("Scheduler started, refreshing tournament statuses every %ss.", config.STATUS_REFRESH_SECONDS)


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
