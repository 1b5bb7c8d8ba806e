import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from config import Settings
from models.leaves import EscalationTier, LeaveCategory, LeaveRequest, LeaveStatus
from utils.directory_utils import EmployeeDirectory
from utils.ledger_utils import RequestLedger
from utils.notification_utils import NotificationRouter
from utils.time_utils import local_at, now_utc, to_local

logger = logging.getLogger(__name__)

HALF_DAY = 0.5

# (hour, minute) in local time on the start date unless noted
HALF_DAY_APPROVAL_CUTOFF = (8, 31)
HALF_DAY_FIRST_DEADLINE = (11, 30)
HALF_DAY_SECOND_DEADLINE = (14, 30)
FULL_DAY_DEADLINE = (18, 0)
NEXT_DAY_DEADLINE = (5, 0)  # on the day after the start date


def next_tier(request: LeaveRequest, now: datetime, tz_name: str) -> Optional[EscalationTier]:
    """
    The tier an approved, not yet checked-in outing has just crossed, or
    None when nothing new is due.

    Half-day outings are only tracked when approved before 08:31 on the
    start date. Each track advances one tier per call and stops at its
    last tier.
    """
    if request.status != LeaveStatus.APPROVED or request.is_checked_in:
        return None

    start_day = request.start_date.date()
    mark = request.escalation_mark

    if request.duration == HALF_DAY:
        if request.approval_timestamp is None:
            return None
        cutoff = local_at(start_day, *HALF_DAY_APPROVAL_CUTOFF, tz_name)
        if to_local(request.approval_timestamp, tz_name) >= cutoff:
            return None
        if now > local_at(start_day, *HALF_DAY_FIRST_DEADLINE, tz_name) and mark is None:
            return EscalationTier.HALF_DAY_1
        if now > local_at(start_day, *HALF_DAY_SECOND_DEADLINE, tz_name) and mark == EscalationTier.HALF_DAY_1:
            return EscalationTier.HALF_DAY_2
        return None

    if now > local_at(start_day, *FULL_DAY_DEADLINE, tz_name) and mark is None:
        return EscalationTier.OVERDUE_TIME
    next_day = start_day + timedelta(days=1)
    if now > local_at(next_day, *NEXT_DAY_DEADLINE, tz_name) and mark != EscalationTier.OVERDUE_DAY:
        return EscalationTier.OVERDUE_DAY
    return None


class EscalationScanner:
    """
    Periodic sweep over approved outings that were never checked in.

    The tier is written with a conditional update on the previous mark
    before the message goes out; if that write fails or loses, nothing is
    sent and the next tick tries again.
    """

    def __init__(
        self,
        ledger: RequestLedger,
        directory: EmployeeDirectory,
        notifications: NotificationRouter,
        settings: Settings,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.ledger = ledger
        self.directory = directory
        self.notifications = notifications
        self.timezone = settings.TIMEZONE
        self.placeholder_photo_url = settings.PLACEHOLDER_PHOTO_URL
        self.clock = clock

    async def photo_for(self, employee_id: str) -> str:
        try:
            entry = await self.directory.lookup(employee_id)
        except Exception as e:
            logger.warning(f"Directory lookup for {employee_id} failed, using placeholder: {e}")
            return self.placeholder_photo_url
        if entry is None or not entry.photo_url:
            return self.placeholder_photo_url
        return entry.photo_url

    async def escalate(self, request: LeaveRequest, tier: EscalationTier) -> bool:
        previous = request.escalation_mark.value if request.escalation_mark else None
        updated = await self.ledger.compare_and_set(
            LeaveCategory.PERMISSION,
            request.request_id,
            expected={"escalation_mark": previous, "check_in_timestamp": None},
            fields={"escalation_mark": tier.value},
        )
        if updated is None:
            logger.info(f"Escalation {tier.value} for {request.request_id} already handled elsewhere")
            return False

        photo_url = await self.photo_for(request.employee_id)
        await self.notifications.escalation(request, tier, photo_url)
        logger.info(f"Escalated {request.request_id} to {tier.value}")
        return True

    async def scan(self, now: Optional[datetime] = None) -> List[Tuple[str, EscalationTier]]:
        now = to_local(now or self.clock(), self.timezone)
        emitted = []
        try:
            rows = await self.ledger.read_partition(
                LeaveCategory.PERMISSION, {"status": LeaveStatus.APPROVED.value}
            )
        except Exception as e:
            logger.error(f"Escalation scan aborted: {e}")
            await self.notifications.system_health("escalation.scan", e)
            return emitted

        for row in rows:
            request_id = row.get("request_id")
            try:
                request = LeaveRequest.from_document(row)
                tier = next_tier(request, now, self.timezone)
                if tier is not None and await self.escalate(request, tier):
                    emitted.append((request.request_id, tier))
            except Exception as e:
                logger.error(f"Escalation check failed for {request_id}: {e}")
        return emitted
