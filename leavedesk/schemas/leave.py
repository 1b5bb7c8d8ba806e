from datetime import date
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Union

from models.leaves import LeaveCategory


def strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class CreateLeave(BaseModel):
    employee_id: str = Field(..., min_length=1)
    employee_name: str = Field(..., min_length=1)
    leave_type: LeaveCategory
    start_date: date
    end_date: date
    number_of_days: Union[str, float]
    reason: str = Field(..., min_length=1)
    selfie_image_data: Optional[str] = None
    document_image_data: List[str] = Field(default_factory=list)
    payment_receipt_image_data: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("employee_id", "employee_name", "reason")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return strip_required(value)


class EditLeave(BaseModel):
    leave_type: LeaveCategory
    start_date: date
    end_date: date
    number_of_days: Union[str, float]
    reason: str = Field(..., min_length=1)
    selfie_image_data: Optional[str] = None
    document_image_data: List[str] = Field(default_factory=list)
    payment_receipt_image_data: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, value: str) -> str:
        return strip_required(value)


class DuplicateCheck(BaseModel):
    employee_id: str
    leave_type: LeaveCategory
    start_date: date
    request_id: Optional[str] = None


class CheckIn(BaseModel):
    photo_image_data: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class AdminCheckIn(BaseModel):
    note: str = Field(..., min_length=1)


class RejectLeave(BaseModel):
    reason: Optional[str] = None


class MonthlyStats(BaseModel):
    total_requests: int = 0
    total_days: float = 0
    permission_count: int = 0
    leave_count: int = 0
    home_leave_count: int = 0


class LifecycleResponse(BaseModel):
    status: str
    request_id: str
    message: str = ""
    request_status: Optional[str] = None
