import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config import settings
from utils.app_utils import get_scanner

logger = logging.getLogger(__name__)

# Create a shared scheduler instance
scheduler = AsyncIOScheduler(timezone=settings.TIMEZONE)


async def scan_overdue_check_ins():
    try:
        emitted = await get_scanner().scan()
        if emitted:
            logger.info(f"Escalation scan sent {len(emitted)} notification(s)")
    except Exception as e:
        logger.error(f"Error during escalation scan: {e}")

# Add overdue check-in scan to scheduler
scheduler.add_job(
    scan_overdue_check_ins,
    "interval",
    minutes=settings.ESCALATION_INTERVAL_MINUTES,
    id="scan_overdue_check_ins",
    max_instances=1,
    coalesce=True,
)
