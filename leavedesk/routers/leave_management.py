from fastapi import APIRouter, Depends
from typing import Optional
from models.leaves import LeaveStatus
from schemas.leave import AdminCheckIn, LifecycleResponse, RejectLeave
from utils.app_utils import get_current_admin, get_engine, get_scanner, lifecycle_response
from utils.escalation_utils import EscalationScanner
from utils.lifecycle_utils import LifecycleEngine
from exceptions import UpstreamUnavailable, get_upstream_exception

router = APIRouter()


@router.post("/escalations/scan")
async def run_escalation_scan(
    admin_name: str = Depends(get_current_admin),
    scanner: EscalationScanner = Depends(get_scanner),
):
    """
    Run one overdue check-in scan now instead of waiting for the scheduler.
    Returns:
        dict: The escalations sent during this scan, each with request_id and tier.
    """
    emitted = await scanner.scan()
    return {"escalations": [{"request_id": request_id, "tier": tier.value} for request_id, tier in emitted]}


@router.post("/{request_id}/approve", response_model=LifecycleResponse)
async def approve_request(
    request_id: str,
    admin_name: str = Depends(get_current_admin),
    engine: LifecycleEngine = Depends(get_engine),
):
    """
    Approve a pending request.
    Only one decision is ever recorded for a request, even when several
    admins act at the same time.
    Args:
        request_id (str): The request to approve.
        admin_name (str): Display name resolved from the X-Admin-Key header.
    Returns:
        LifecycleResponse: The request id and its new status.
    Raises:
        HTTPException:
            - 401: If the admin key is missing or unknown
            - 404: If the request does not exist
            - 409: If the request was already approved or rejected
            - 503: If the ledger is unavailable
    """
    try:
        result = await engine.decide(request_id, LeaveStatus.APPROVED, admin_name)
    except UpstreamUnavailable as e:
        raise get_upstream_exception(e)

    return lifecycle_response(result, message=f"Approved by {admin_name}")


@router.post("/{request_id}/reject", response_model=LifecycleResponse)
async def reject_request(
    request_id: str,
    payload: Optional[RejectLeave] = None,
    admin_name: str = Depends(get_current_admin),
    engine: LifecycleEngine = Depends(get_engine),
):
    """
    Reject a pending request with an optional reason.
    Raises:
        HTTPException:
            - 401: If the admin key is missing or unknown
            - 404: If the request does not exist
            - 409: If the request was already approved or rejected
            - 503: If the ledger is unavailable
    """
    reason = payload.reason if payload else None
    try:
        result = await engine.decide(request_id, LeaveStatus.REJECTED, admin_name, reason)
    except UpstreamUnavailable as e:
        raise get_upstream_exception(e)

    return lifecycle_response(result, message=f"Rejected by {admin_name}")


@router.post("/{request_id}/check-in", response_model=LifecycleResponse)
async def admin_check_in(
    request_id: str,
    payload: AdminCheckIn,
    admin_name: str = Depends(get_current_admin),
    engine: LifecycleEngine = Depends(get_engine),
):
    """
    Check an employee in on their behalf, with a note explaining why.
    The request must be approved and not yet checked in, otherwise 409.
    """
    try:
        result = await engine.admin_check_in(request_id, admin_name, payload.note)
    except UpstreamUnavailable as e:
        raise get_upstream_exception(e)

    return lifecycle_response(result, message=f"Checked in by {admin_name}")


@router.delete("/{request_id}", response_model=LifecycleResponse)
async def delete_request(
    request_id: str,
    admin_name: str = Depends(get_current_admin),
    engine: LifecycleEngine = Depends(get_engine),
):
    """
    Permanently delete a request.
    """
    try:
        result = await engine.delete(request_id, admin_name)
    except UpstreamUnavailable as e:
        raise get_upstream_exception(e)

    return lifecycle_response(result, message="Request deleted")
