from pydantic import BaseModel, ConfigDict
from typing import List, Optional, Union
from enum import Enum

class NotificationType(str, Enum):
    LEAVE_REQUEST = "leave_request"
    LEAVE_APPROVED = "leave_approved"
    LEAVE_REJECTED = "leave_rejected"
    LEAVE_RESUBMITTED = "leave_resubmitted"
    CHECK_IN = "check_in"
    ESCALATION = "escalation"
    SYSTEM_HEALTH = "system_health"

class InlineButton(BaseModel):
    text: str
    callback_data: str

class InlineKeyboard(BaseModel):
    inline_keyboard: List[List[InlineButton]]

class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="allow")
    id: Union[int, str]

class TelegramMessage(BaseModel):
    model_config = ConfigDict(extra="allow")
    message_id: int
    chat: TelegramChat
    text: Optional[str] = ""

class CallbackQuery(BaseModel):
    model_config = ConfigDict(extra="allow")
    id: Optional[str] = None
    data: Optional[str] = None
    message: Optional[TelegramMessage] = None

class TelegramUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")
    update_id: Optional[int] = None
    callback_query: Optional[CallbackQuery] = None

class ActionCallback(BaseModel):
    action: str
    request_id: str
    actor_key: str = ""

    @classmethod
    def parse(cls, data: Optional[str]) -> Optional["ActionCallback"]:
        """`approve_REQ-1700000000000_<adminKey>`; the admin key may itself contain underscores."""
        if not data:
            return None
        parts = data.split("_", 2)
        if len(parts) < 2 or not parts[0] or not parts[1]:
            return None
        actor_key = parts[2] if len(parts) > 2 else ""
        return cls(action=parts[0], request_id=parts[1], actor_key=actor_key)
