import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Union

from pydantic import BaseModel

from config import Settings
from exceptions import InvalidInput
from models.leaves import LeaveCategory, LeaveRequest, LeaveStatus
from schemas.leave import CreateLeave, EditLeave
from utils import message_utils
from utils.activity_utils import log_admin_activity
from utils.directory_utils import EmployeeDirectory
from utils.duration_utils import parse_duration
from utils.image_utils import ImageStore, location_link
from utils.leave_utils import get_monthly_leave_stats
from utils.ledger_utils import RequestLedger
from utils.notification_utils import NotificationRouter
from utils.time_utils import now_utc, start_of_day, to_local

logger = logging.getLogger(__name__)

TELEGRAM_REJECTION_REASON = "Rejected via Telegram"


class Outcome(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    ALREADY_PROCESSED = "already_processed"
    ALREADY_CHECKED_IN = "already_checked_in"
    DUPLICATE = "duplicate"
    INELIGIBLE = "ineligible"
    NOT_APPROVED = "not_approved"


class LifecycleResult(BaseModel):
    outcome: Outcome
    request_id: Optional[str] = None
    request: Optional[LeaveRequest] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCESS


def not_found(request_id: str) -> LifecycleResult:
    return LifecycleResult(outcome=Outcome.NOT_FOUND, request_id=request_id, message=message_utils.NOT_FOUND_MESSAGE)


class LifecycleEngine:
    """
    Moves requests through Pending -> Approved | Rejected and records
    check-ins.

    Business outcomes come back as LifecycleResult values; only malformed
    input (InvalidInput) and store failures (UpstreamUnavailable) raise.
    """

    def __init__(
        self,
        ledger: RequestLedger,
        directory: EmployeeDirectory,
        notifications: NotificationRouter,
        images: ImageStore,
        settings: Settings,
        activity_collection=None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.ledger = ledger
        self.directory = directory
        self.notifications = notifications
        self.images = images
        self.settings = settings
        self.activity_collection = activity_collection
        self.clock = clock

    def _validate(self, number_of_days, start_date, end_date) -> float:
        duration = parse_duration(number_of_days)
        if duration <= 0:
            raise InvalidInput(f"Invalid number of days: {number_of_days!r}")
        if end_date < start_date:
            raise InvalidInput("End date must not be before the start date")
        return duration

    async def _attachments(self, employee_id: str, request_id: str, category: LeaveCategory,
                           payload: Union[CreateLeave, EditLeave]) -> dict:
        attachments = {}
        # outings carry no selfie or location at submission
        if category != LeaveCategory.PERMISSION:
            selfie_url = await self.images.save_base64_image(
                payload.selfie_image_data, f"Selfie_{employee_id}_{request_id}", self.settings.SELFIE_FOLDER
            )
            if selfie_url:
                attachments["selfie_url"] = selfie_url
            link = location_link(payload.latitude, payload.longitude)
            if link:
                attachments["location_link"] = link

        if payload.document_image_data:
            attachments["document_urls"] = await self.images.save_many(
                payload.document_image_data, f"Document_{employee_id}_{request_id}", self.settings.DOCUMENT_FOLDER
            )
        receipt_url = await self.images.save_base64_image(
            payload.payment_receipt_image_data, f"Payment_{employee_id}_{request_id}", self.settings.PAYMENT_RECEIPT_FOLDER
        )
        if receipt_url:
            attachments["payment_receipt_url"] = receipt_url
        return attachments

    async def _guard_submission(self, employee_id: str, category: LeaveCategory, start_date,
                                exclude_request_id: Optional[str] = None) -> Optional[LifecycleResult]:
        eligibility = await self.directory.is_eligible(employee_id)
        if not eligibility.allowed:
            return LifecycleResult(outcome=Outcome.INELIGIBLE, request_id=exclude_request_id, message=eligibility.reason or "")

        if await self.ledger.is_duplicate(employee_id, category, start_date, exclude_request_id):
            return LifecycleResult(
                outcome=Outcome.DUPLICATE,
                request_id=exclude_request_id,
                message=message_utils.DUPLICATE_MESSAGE.format(
                    employee_id=employee_id, category=message_utils.category_name(category)
                ),
            )
        return None

    async def _announce(self, request: LeaveRequest, now: datetime, resubmitted: bool = False):
        reference = to_local(now, self.settings.TIMEZONE)
        stats = await get_monthly_leave_stats(self.ledger, request.employee_id, reference)
        await self.notifications.request_submitted(request, stats, reference, resubmitted=resubmitted)

    async def submit(self, submission: CreateLeave) -> LifecycleResult:
        employee_id = submission.employee_id.strip()
        category = LeaveCategory(submission.leave_type)
        duration = self._validate(submission.number_of_days, submission.start_date, submission.end_date)

        rejected = await self._guard_submission(employee_id, category, submission.start_date)
        if rejected is not None:
            return rejected

        now = self.clock()
        request_id = await self.ledger.allocate_request_id(now)
        attachments = await self._attachments(employee_id, request_id, category, submission)

        request = LeaveRequest(
            request_id=request_id,
            created_at=now,
            employee_id=employee_id,
            employee_name=submission.employee_name,
            category=category,
            start_date=start_of_day(submission.start_date),
            end_date=start_of_day(submission.end_date),
            duration=duration,
            duration_label=str(submission.number_of_days).strip(),
            reason=submission.reason,
            **attachments,
        )
        await self.ledger.append(request)
        await self._announce(request, now)
        return LifecycleResult(outcome=Outcome.SUCCESS, request_id=request_id, request=request)

    async def decide(self, request_id: str, outcome: LeaveStatus, actor: str,
                     reason: Optional[str] = None) -> LifecycleResult:
        outcome = LeaveStatus(outcome)
        if outcome == LeaveStatus.PENDING:
            raise InvalidInput("A decision must be Approved or Rejected")

        found = await self.ledger.locate(request_id)
        if found is None:
            return not_found(request_id)
        category, document = found

        already_processed = LifecycleResult(
            outcome=Outcome.ALREADY_PROCESSED,
            request_id=request_id,
            request=LeaveRequest.from_document(document),
            message=message_utils.ALREADY_PROCESSED_MESSAGE,
        )
        if document.get("status") != LeaveStatus.PENDING.value:
            return already_processed

        fields = {
            "status": outcome.value,
            "approver": actor,
            "approval_timestamp": self.clock(),
        }
        if outcome == LeaveStatus.REJECTED:
            fields["rejection_reason"] = reason

        updated = await self.ledger.compare_and_set(
            category, request_id, expected={"status": LeaveStatus.PENDING.value}, fields=fields
        )
        if updated is None:
            logger.info(f"Decision on {request_id} by {actor} lost to a concurrent decision")
            return already_processed

        await self.directory.invalidate()
        request = LeaveRequest.from_document(updated)
        logger.info(f"{request_id} {outcome.value} by {actor}")

        await self.notifications.request_decided(request)
        await log_admin_activity(self.activity_collection, actor=actor, type="decision",
                                 action=outcome.value.lower(), request_id=request_id, status="success")
        return LifecycleResult(outcome=Outcome.SUCCESS, request_id=request_id, request=request)

    async def handle_action(self, action: str, request_id: str, actor_key: str) -> Optional[LifecycleResult]:
        """Approve/reject coming from a chat button; unknown admin keys fall back to the default name."""
        actor = self.settings.admin_name(actor_key)
        if action == "approve":
            return await self.decide(request_id, LeaveStatus.APPROVED, actor)
        if action == "reject":
            return await self.decide(request_id, LeaveStatus.REJECTED, actor, TELEGRAM_REJECTION_REASON)
        logger.warning(f"Ignoring unknown action {action!r} for {request_id}")
        return None

    async def resubmit(self, request_id: str, changes: EditLeave) -> LifecycleResult:
        found = await self.ledger.locate(request_id)
        if found is None:
            return not_found(request_id)
        _, document = found
        existing = LeaveRequest.from_document(document)

        category = LeaveCategory(changes.leave_type)
        duration = self._validate(changes.number_of_days, changes.start_date, changes.end_date)
        rejected = await self._guard_submission(existing.employee_id, category, changes.start_date,
                                                exclude_request_id=request_id)
        if rejected is not None:
            return rejected

        attachments = await self._attachments(existing.employee_id, request_id, category, changes)
        updates = {
            "category": category,
            "start_date": start_of_day(changes.start_date),
            "end_date": start_of_day(changes.end_date),
            "duration": duration,
            "duration_label": str(changes.number_of_days).strip(),
            "reason": changes.reason,
            "status": LeaveStatus.PENDING,
            "approver": None,
            "approval_timestamp": None,
            "admin_checkin_note": None,
            "rejection_reason": None,
        }
        updates.update(attachments)
        request = existing.model_copy(update=updates)

        await self.ledger.replace(category, request)
        await self.directory.invalidate()
        logger.info(f"{request_id} resubmitted as {category.value}")

        await self._announce(request, self.clock(), resubmitted=True)
        return LifecycleResult(outcome=Outcome.SUCCESS, request_id=request_id, request=request)

    async def _check_in(self, request_id: str, fields_for, actor: Optional[str] = None) -> LifecycleResult:
        found = await self.ledger.locate(request_id)
        if found is None:
            return not_found(request_id)
        category, document = found

        already_checked_in = LifecycleResult(
            outcome=Outcome.ALREADY_CHECKED_IN,
            request_id=request_id,
            request=LeaveRequest.from_document(document),
            message=message_utils.ALREADY_CHECKED_IN_MESSAGE,
        )
        if document.get("check_in_timestamp"):
            return already_checked_in
        if document.get("status") != LeaveStatus.APPROVED.value:
            return LifecycleResult(
                outcome=Outcome.NOT_APPROVED,
                request_id=request_id,
                request=LeaveRequest.from_document(document),
                message=message_utils.NOT_APPROVED_MESSAGE,
            )

        fields = await fields_for(document)
        fields["check_in_timestamp"] = self.clock()
        expected = {"check_in_timestamp": None, "status": LeaveStatus.APPROVED.value}
        updated = await self.ledger.compare_and_set(category, request_id, expected=expected, fields=fields)
        if updated is None:
            return already_checked_in

        await self.directory.invalidate()
        request = LeaveRequest.from_document(updated)
        logger.info(f"{request_id} checked in" + (f" by {actor}" if actor else ""))

        await self.notifications.checked_in(request, actor)
        await log_admin_activity(self.activity_collection, actor=actor or request.employee_name, type="check_in",
                                 action="admin" if actor else "self", request_id=request_id, status="success")
        return LifecycleResult(outcome=Outcome.SUCCESS, request_id=request_id, request=request)

    async def check_in(self, request_id: str, photo_data: Optional[str] = None,
                       latitude: Optional[float] = None, longitude: Optional[float] = None) -> LifecycleResult:
        async def fields_for(document: dict) -> dict:
            employee_id = str(document.get("employee_id") or "").strip()
            photo_url = await self.images.save_base64_image(
                photo_data, f"Checkin_{employee_id}_{request_id}", self.settings.CHECKIN_FOLDER
            )
            return {
                "check_in_photo_url": photo_url,
                "check_in_location_link": location_link(latitude, longitude),
            }

        return await self._check_in(request_id, fields_for)

    async def admin_check_in(self, request_id: str, actor: str, note: str) -> LifecycleResult:
        async def fields_for(document: dict) -> dict:
            return {"admin_checkin_note": note}

        return await self._check_in(request_id, fields_for, actor=actor)

    async def delete(self, request_id: str, actor: Optional[str] = None) -> LifecycleResult:
        if not await self.ledger.delete(request_id):
            return not_found(request_id)
        await self.directory.invalidate()
        logger.info(f"{request_id} deleted" + (f" by {actor}" if actor else ""))
        await log_admin_activity(self.activity_collection, actor=actor, type="request",
                                 action="deleted", request_id=request_id, status="success")
        return LifecycleResult(outcome=Outcome.SUCCESS, request_id=request_id)
