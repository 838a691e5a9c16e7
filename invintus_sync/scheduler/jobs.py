"""Invintus Sync - Scheduler Jobs.

APScheduler daily job that purges and refetches the cached player
preferences at the configured hour.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlmodel import Session

from invintus_sync.config import settings
from invintus_sync.database import engine
from invintus_sync.core.options import load_options
from invintus_sync.connectors.invintus.cache import TransientCache
from invintus_sync.connectors.invintus.client import InvintusAPIError, InvintusClient
from invintus_sync.connectors.invintus.endpoints import InvintusEndpoints
from invintus_sync.core.logging import get_logger

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()


async def refresh_preferences_job(session_engine=None):
    """Purge the cached player preferences and fetch them again."""
    logger.info("Scheduled player preference refresh starting...")
    with Session(session_engine or engine) as session:
        options = load_options(session)
        client = InvintusClient(
            api_key=options.invintus_api_key, client_id=options.invintus_client_id
        )
        try:
            endpoints = InvintusEndpoints(client, TransientCache(session))
            preferences = await endpoints.refresh_player_preferences()
            logger.info(f"Refreshed {len(preferences)} player preferences")
        except InvintusAPIError as e:
            logger.error(
                f"Scheduled preference refresh failed: {e}",
                extra={"status_code": e.status_code},
            )
        finally:
            await client.close()


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler.add_job(
        refresh_preferences_job,
        "cron",
        hour=settings.preferences_refresh_hour,
        minute=0,
        id="refresh_player_preferences",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started. Player preferences refresh at {settings.preferences_refresh_hour}:00 UTC"
    )


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
