from functools import lru_cache
from typing import Optional

from fastapi import Header

from config import settings
from db import employees_collection, partition_collections, request_ids_collection, system_activity_collection
from exceptions import get_conflict_exception, get_unknown_entity_exception, get_user_exception
from schemas.leave import LifecycleResponse
from utils.cache_utils import get_redis_client
from utils.directory_utils import EmployeeDirectory
from utils.escalation_utils import EscalationScanner
from utils.image_utils import ImageStore
from utils.ledger_utils import RequestLedger
from utils.lifecycle_utils import LifecycleEngine, LifecycleResult, Outcome
from utils.notification_utils import NotificationRouter, TelegramNotifier


@lru_cache
def get_ledger() -> RequestLedger:
    return RequestLedger(partition_collections, request_ids_collection)


@lru_cache
def get_cache():
    return get_redis_client(settings)


@lru_cache
def get_directory() -> EmployeeDirectory:
    return EmployeeDirectory(employees_collection, settings, get_cache())


@lru_cache
def get_notifications() -> NotificationRouter:
    return NotificationRouter(TelegramNotifier(settings), settings)


@lru_cache
def get_images() -> ImageStore:
    return ImageStore(settings)


@lru_cache
def get_engine() -> LifecycleEngine:
    return LifecycleEngine(
        ledger=get_ledger(),
        directory=get_directory(),
        notifications=get_notifications(),
        images=get_images(),
        settings=settings,
        activity_collection=system_activity_collection,
    )


@lru_cache
def get_scanner() -> EscalationScanner:
    return EscalationScanner(get_ledger(), get_directory(), get_notifications(), settings)


async def get_current_admin(x_admin_key: Optional[str] = Header(None)) -> str:
    """
    Resolve the X-Admin-Key header to the admin's display name.

    Raises:
        HTTPException: 401 when the key is missing or not a known admin.
    """
    if not x_admin_key or x_admin_key not in settings.ADMIN_ROLES:
        raise get_user_exception()
    return settings.ADMIN_ROLES[x_admin_key]


def lifecycle_response(result: LifecycleResult, message: str = "") -> LifecycleResponse:
    """
    Turn an engine result into the response body, or raise 404 / 409 for
    business outcomes that did not succeed.
    """
    if result.outcome == Outcome.NOT_FOUND:
        raise get_unknown_entity_exception(result.message)
    if not result.ok:
        raise get_conflict_exception(result.message)
    return LifecycleResponse(
        status=result.outcome.value,
        request_id=result.request_id,
        message=message,
        request_status=result.request.status.value if result.request else None,
    )
