from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional

UTC = timezone.utc


class LeaveCategory(str, Enum):
    PERMISSION = "Permission"
    LEAVE = "Leave"
    HOME_LEAVE = "HomeLeave"


class LeaveStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class EscalationTier(str, Enum):
    HALF_DAY_1 = "HalfDay1"
    HALF_DAY_2 = "HalfDay2"
    OVERDUE_TIME = "OverdueTime"
    OVERDUE_DAY = "OverdueDay"


class LeaveRequest(BaseModel):
    request_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    employee_id: str
    employee_name: str
    category: LeaveCategory
    start_date: datetime # local midnight
    end_date: datetime
    duration: float = 0
    duration_label: str = ""
    reason: str = ""
    status: LeaveStatus = LeaveStatus.PENDING
    approver: Optional[str] = None
    approval_timestamp: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    selfie_url: Optional[str] = None
    document_urls: List[str] = Field(default_factory=list)
    location_link: Optional[str] = None
    payment_receipt_url: Optional[str] = None
    check_in_timestamp: Optional[datetime] = None
    check_in_photo_url: Optional[str] = None
    check_in_location_link: Optional[str] = None
    admin_checkin_note: Optional[str] = None
    escalation_mark: Optional[EscalationTier] = None

    @property
    def is_checked_in(self) -> bool:
        return self.check_in_timestamp is not None

    def to_document(self) -> dict:
        document = self.model_dump()
        for key, value in document.items():
            if isinstance(value, Enum):
                document[key] = value.value
        return document

    @classmethod
    def from_document(cls, document: dict) -> "LeaveRequest":
        data = {key: value for key, value in document.items() if key != "_id"}
        return cls(**data)
