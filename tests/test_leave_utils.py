from datetime import date, datetime

from models.leaves import LeaveCategory, LeaveRequest, LeaveStatus
from utils.leave_utils import get_monthly_leave_stats, request_status_view

from conftest import FrozenClock, TZ_NAME, utc_at_local


async def test_monthly_stats_count_approved_requests_in_the_month(ledger, make_request):
    await make_request(category=LeaveCategory.PERMISSION, status=LeaveStatus.APPROVED,
                       start_date=date(2024, 5, 3), duration=1, duration_label="1")
    await make_request(category=LeaveCategory.LEAVE, status=LeaveStatus.APPROVED,
                       start_date=date(2024, 5, 14), end_date=date(2024, 5, 15), duration=2, duration_label="2")
    await make_request(category=LeaveCategory.PERMISSION, status=LeaveStatus.APPROVED,
                       start_date=date(2024, 5, 20), duration=0.5, duration_label="មួយព្រឹក")
    # excluded: previous month, not approved, someone else
    await make_request(category=LeaveCategory.LEAVE, status=LeaveStatus.APPROVED,
                       start_date=date(2024, 4, 29), duration=3, duration_label="3")
    await make_request(category=LeaveCategory.LEAVE, status=LeaveStatus.PENDING,
                       start_date=date(2024, 5, 21), duration=1, duration_label="1")
    await make_request(employee_id="E002", status=LeaveStatus.APPROVED,
                       start_date=date(2024, 5, 22), duration=1, duration_label="1")

    stats = await get_monthly_leave_stats(ledger, " E001 ", datetime(2024, 5, 25))

    assert stats.total_requests == 3
    assert stats.total_days == 3.5
    assert stats.permission_count == 2
    assert stats.leave_count == 1
    assert stats.home_leave_count == 0


async def test_home_leave_counts_toward_totals(ledger, make_request):
    await make_request(category=LeaveCategory.HOME_LEAVE, status=LeaveStatus.APPROVED,
                       start_date=date(2024, 5, 2), duration=4, duration_label="4")

    stats = await get_monthly_leave_stats(ledger, "E001", date(2024, 5, 1))

    assert stats.total_requests == 1
    assert stats.total_days == 4
    assert stats.home_leave_count == 1


async def test_current_month_follows_the_configured_timezone(ledger, make_request):
    await make_request(status=LeaveStatus.APPROVED, start_date=date(2024, 5, 31))
    await make_request(status=LeaveStatus.APPROVED, start_date=date(2024, 6, 1))

    # 03:00 on 1 June in Phnom Penh is still 31 May in UTC
    clock = FrozenClock(utc_at_local(2024, 6, 1, 3, 0))
    stats = await get_monthly_leave_stats(ledger, "E001", tz_name=TZ_NAME, clock=clock)

    assert stats.total_requests == 1
    assert stats.permission_count == 1


def _request(**fields) -> LeaveRequest:
    base = {
        "request_id": "REQ-1",
        "employee_id": "E001",
        "employee_name": "Dara",
        "category": LeaveCategory.PERMISSION,
        "start_date": datetime(2024, 5, 10),
        "end_date": datetime(2024, 5, 10),
    }
    base.update(fields)
    return LeaveRequest(**base)


def test_request_status_view():
    assert request_status_view(None) == {"status": "Not Found"}
    assert request_status_view(_request()) == {"status": "Pending", "leave_type": "Permission"}
    assert request_status_view(_request(status=LeaveStatus.REJECTED, rejection_reason="No cover")) == {
        "status": "Rejected", "leave_type": "Permission", "reason": "No cover",
    }
    admin_checked_in = _request(
        status=LeaveStatus.APPROVED,
        check_in_timestamp=datetime(2024, 5, 10, 9, 0),
        admin_checkin_note="Phone battery died",
    )
    assert request_status_view(admin_checked_in)["status"] == "AdminCheckedIn"
