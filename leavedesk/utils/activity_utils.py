import logging
from datetime import datetime
from pytz import UTC
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


async def log_admin_activity(collection, actor: str = None, type: str = None, action: str = None,
                             request_id: str = None, status: str = None):
    """
    Log an admin activity.

    Args:
        collection: The system activity collection, or None to skip.
        actor (str): Display name of whoever acted.
        type (str): Kind of activity, e.g. "decision" or "check_in".
        action (str): What happened, e.g. "approved".
        request_id (str): The request acted on.
        status (str): "success" or "failed".
    """
    if collection is None:
        return
    log_entry = {
        "actor": actor,
        "type": type,
        "action": action,
        "request_id": request_id,
        "status": status,
        "timestamp": datetime.now(UTC)
    }
    try:
        await collection.insert_one(log_entry)
    except PyMongoError as e:
        logger.error(f"Could not record {type}/{action} for {request_id}: {e}")
