from datetime import date
from fastapi import APIRouter, HTTPException, Depends, Query, status
from typing import Optional
from config import settings
from models.leaves import LeaveRequest
from schemas.employee import EmployeeInfo, VerifyEmployee, VerifyEmployeeResponse
from schemas.leave import CheckIn, CreateLeave, DuplicateCheck, EditLeave, LifecycleResponse, MonthlyStats
from utils.app_utils import get_directory, get_engine, get_ledger, lifecycle_response
from utils.directory_utils import EmployeeDirectory
from utils.ledger_utils import RequestLedger
from utils.leave_utils import get_monthly_leave_stats, request_status_view
from utils.lifecycle_utils import LifecycleEngine
from utils.message_utils import DUPLICATE_MESSAGE, category_name
from exceptions import InvalidInput, UpstreamUnavailable, get_unknown_entity_exception, get_upstream_exception

router = APIRouter()


@router.post("/verify", response_model=VerifyEmployeeResponse)
async def verify_employee(
    payload: VerifyEmployee,
    directory: EmployeeDirectory = Depends(get_directory),
    ledger: RequestLedger = Depends(get_ledger),
):
    """
    Verify an employee id against the directory.
    Args:
        payload (VerifyEmployee): The employee id to check.
    Returns:
        VerifyEmployeeResponse: On success the employee's name and photo plus the
        state of their latest request; otherwise an error status with a localized message.
    Raises:
        HTTPException:
            - 503: If the directory or the ledger cannot be read
    """
    try:
        verified = await directory.verify(payload.employee_id)
        if verified["status"] != "success":
            return VerifyEmployeeResponse(verification_status="error", message=verified["message"])

        leave_status = await ledger.latest_status(payload.employee_id)
    except UpstreamUnavailable as e:
        raise get_upstream_exception(e)

    return VerifyEmployeeResponse(
        verification_status="success",
        employee_info=EmployeeInfo(name=verified["name"], photo_url=verified["photo_url"]),
        leave_status=leave_status,
    )


@router.post("/duplicates/check")
async def check_duplicate(payload: DuplicateCheck, ledger: RequestLedger = Depends(get_ledger)):
    """
    Check whether the employee already has a request of this category
    starting on the same day. `request_id` excludes the request being edited.
    """
    try:
        is_duplicate = await ledger.is_duplicate(
            payload.employee_id, payload.leave_type, payload.start_date, payload.request_id
        )
    except UpstreamUnavailable as e:
        raise get_upstream_exception(e)

    message = ""
    if is_duplicate:
        message = DUPLICATE_MESSAGE.format(
            employee_id=payload.employee_id.strip(), category=category_name(payload.leave_type)
        )
    return {"is_duplicate": is_duplicate, "message": message}


@router.post("/requests", status_code=status.HTTP_201_CREATED, response_model=LifecycleResponse)
async def submit_request(submission: CreateLeave, engine: LifecycleEngine = Depends(get_engine)):
    """Submit a new leave request.
    Args:
        submission (CreateLeave): Request details and optional base64 images.
    Returns:
        LifecycleResponse: The new request id with status Pending.
    Raises:
        HTTPException:
            - 400: If the duration is not positive or the end date is before the start date
            - 409: If the employee is ineligible or already has a request for that day
            - 503: If the ledger or directory is unavailable
    """
    try:
        result = await engine.submit(submission)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UpstreamUnavailable as e:
        raise get_upstream_exception(e)

    return lifecycle_response(result, message="Request submitted successfully")


@router.get("/requests/{request_id}/status")
async def get_request_status(request_id: str, ledger: RequestLedger = Depends(get_ledger)):
    """
    Current state of a request as shown to the employee:
    "AdminCheckedIn", "Rejected" with its reason, the raw status, or "Not Found".
    """
    try:
        request = await ledger.get(request_id)
    except UpstreamUnavailable as e:
        raise get_upstream_exception(e)
    return request_status_view(request)


@router.get("/requests/{request_id}", response_model=LeaveRequest)
async def get_request_details(request_id: str, ledger: RequestLedger = Depends(get_ledger)):
    try:
        request = await ledger.get(request_id)
    except UpstreamUnavailable as e:
        raise get_upstream_exception(e)

    if request is None:
        raise get_unknown_entity_exception("Request not found")
    return request


@router.put("/requests/{request_id}", response_model=LifecycleResponse)
async def resubmit_request(request_id: str, changes: EditLeave, engine: LifecycleEngine = Depends(get_engine)):
    """Edit a request and send it back for approval.
    The request returns to Pending whatever its previous status, and its
    approver, approval time, rejection reason and admin note are cleared.
    Changing the leave type moves it to that category under the same id.
    Args:
        request_id (str): The request to edit.
        changes (EditLeave): The new submission fields.
    Returns:
        LifecycleResponse: The request id with status Pending.
    Raises:
        HTTPException:
            - 400: If the duration or dates are invalid
            - 404: If the request does not exist
            - 409: If the edit would duplicate another request or the employee is ineligible
            - 503: If the ledger or directory is unavailable
    """
    try:
        result = await engine.resubmit(request_id, changes)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UpstreamUnavailable as e:
        raise get_upstream_exception(e)

    return lifecycle_response(result, message="Request resubmitted successfully")


@router.post("/requests/{request_id}/check-in", response_model=LifecycleResponse)
async def check_in(request_id: str, payload: CheckIn, engine: LifecycleEngine = Depends(get_engine)):
    """
    Record the employee's return with an optional photo and location.
    Only approved requests can be checked in, and only the first check-in
    is kept; anything else gets 409.
    """
    try:
        result = await engine.check_in(request_id, payload.photo_image_data, payload.latitude, payload.longitude)
    except UpstreamUnavailable as e:
        raise get_upstream_exception(e)

    return lifecycle_response(result, message="Check-in recorded")


@router.get("/stats/{employee_id}", response_model=MonthlyStats)
async def get_monthly_stats(
    employee_id: str,
    reference_date: Optional[date] = Query(None, description="Any day in the month to report, defaults to today"),
    ledger: RequestLedger = Depends(get_ledger),
):
    """
    Approved requests of an employee in one month, counted across all categories.
    """
    try:
        return await get_monthly_leave_stats(ledger, employee_id, reference_date, tz_name=settings.TIMEZONE)
    except UpstreamUnavailable as e:
        raise get_upstream_exception(e)
