from datetime import date, datetime
from typing import Callable, Optional, Union

from models.leaves import LeaveCategory, LeaveRequest, LeaveStatus
from schemas.leave import MonthlyStats
from utils.duration_utils import parse_duration
from utils.ledger_utils import RequestLedger, normalize_date
from utils.time_utils import now_utc, to_local

DEFAULT_TIMEZONE = "Asia/Phnom_Penh"


async def get_monthly_leave_stats(
    ledger: RequestLedger,
    employee_id: str,
    reference_date: Optional[Union[date, datetime]] = None,
    tz_name: str = DEFAULT_TIMEZONE,
    clock: Callable[[], datetime] = now_utc,
) -> MonthlyStats:
    """
    Approved requests of one employee whose start date falls in the
    reference month, counted across every category.

    Without a reference date the current month is taken in `tz_name`,
    not in the server's own timezone.
    """
    reference_date = reference_date or to_local(clock(), tz_name)
    employee_id = str(employee_id or "").strip()
    stats = MonthlyStats()

    for category, row in await ledger.read_all():
        if str(row.get("employee_id") or "").strip() != employee_id:
            continue
        if row.get("status") != LeaveStatus.APPROVED.value:
            continue
        start_date = normalize_date(row.get("start_date"))
        if start_date is None:
            continue
        if start_date.month != reference_date.month or start_date.year != reference_date.year:
            continue

        stats.total_requests += 1
        stats.total_days += parse_duration(row.get("duration_label") or row.get("duration"))
        if category == LeaveCategory.PERMISSION:
            stats.permission_count += 1
        elif category == LeaveCategory.LEAVE:
            stats.leave_count += 1
        else:
            stats.home_leave_count += 1

    return stats


def request_status_view(request: Optional[LeaveRequest]) -> dict:
    """
    What an employee sees when polling one request.

    An admin-assisted check-in is reported as "AdminCheckedIn"; a
    rejection carries its reason.
    """
    if request is None:
        return {"status": "Not Found"}
    view = {"status": request.status.value, "leave_type": request.category.value}
    if request.status == LeaveStatus.APPROVED and request.is_checked_in and request.admin_checkin_note:
        view["status"] = "AdminCheckedIn"
    elif request.status == LeaveStatus.REJECTED:
        view["reason"] = request.rejection_reason or ""
    return view
