import asyncio
import logging
from datetime import timedelta
from ..services.notification_service import NotificationService

logger = logging.getLogger(__name__)

async def cleanup_old_notifications(notifications: NotificationService, retention: timedelta) -> int:
    """
    Delete notifications older than the retention window.

    Runs as one batched delete so a large backlog does not turn into one
    round trip per notification.
    """
    logger.info("Starting notification cleanup")
    result = await notifications.cleanup(retention)
    logger.info("Completed notification cleanup: %d deleted", result["deleted_count"])
    return result["deleted_count"]

async def run_scheduled_tasks(notifications: NotificationService, retention: timedelta, interval_seconds: int = 3600):
    """
    Run all scheduled tasks periodically until cancelled.
    """
    while True:
        try:
            await cleanup_old_notifications(notifications, retention)

            # Wait for next run
            await asyncio.sleep(interval_seconds)

        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Error in scheduled tasks")
            await asyncio.sleep(60)  # Wait a minute before retrying
