from pydantic import BaseModel
from typing import Optional


class VerifyEmployee(BaseModel):
    employee_id: Optional[str] = None


class EmployeeInfo(BaseModel):
    name: str
    photo_url: str = ""


class VerifyEmployeeResponse(BaseModel):
    verification_status: str
    message: Optional[str] = None
    employee_info: Optional[EmployeeInfo] = None
    leave_status: Optional[dict] = None
