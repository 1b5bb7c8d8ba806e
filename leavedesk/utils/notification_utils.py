import logging
from typing import Optional

import httpx

from config import Settings
from models.leaves import EscalationTier, LeaveRequest, LeaveStatus
from schemas.leave import MonthlyStats
from schemas.notification import InlineKeyboard, NotificationType
from utils import message_utils

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """
    Sends HTML messages to every configured (bot token, chat id) pair.

    Inline keyboards are only attached for the action bot. Failures are
    logged per chat and never raised.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.channels = settings.telegram_channels
        self.action_bot_token = settings.ACTION_BOT_TOKEN
        self.api_url = settings.TELEGRAM_API_URL.rstrip("/")
        self.timeout = settings.TELEGRAM_TIMEOUT
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def send(self, message: str, keyboard: Optional[InlineKeyboard] = None) -> int:
        if not self.channels:
            logger.info("Telegram channels are not configured. Skipping notification.")
            return 0

        delivered = 0
        async with self._client() as client:
            for token, chat_id in self.channels:
                payload = {"chat_id": chat_id, "text": message, "parse_mode": "HTML"}
                if keyboard is not None and token == self.action_bot_token:
                    payload["reply_markup"] = keyboard.model_dump()
                try:
                    response = await client.post(f"{self.api_url}/bot{token}/sendMessage", json=payload)
                    response.raise_for_status()
                    delivered += 1
                    logger.info(f"Sent message to chat {chat_id}")
                except httpx.HTTPStatusError as e:
                    logger.error(f"Telegram rejected message for chat {chat_id}: {e.response.status_code} {e.response.text}")
                except httpx.HTTPError as e:
                    logger.error(f"Error sending to chat {chat_id}: {e}")
        return delivered

    async def edit(self, chat_id, message_id: int, text: str) -> bool:
        if not self.action_bot_token:
            logger.warning("ACTION_BOT_TOKEN is not set, cannot edit message")
            return False
        payload = {
            "chat_id": str(chat_id),
            "message_id": message_id,
            "text": text,
            "parse_mode": "HTML",
            "reply_markup": {"inline_keyboard": []},
        }
        try:
            async with self._client() as client:
                response = await client.post(f"{self.api_url}/bot{self.action_bot_token}/editMessageText", json=payload)
                response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error(f"Could not edit Telegram message {message_id} in chat {chat_id}: {e}")
            return False


class NotificationRouter:
    def __init__(self, notifier, settings: Settings):
        self.notifier = notifier
        self.timezone = settings.TIMEZONE
        self.action_admin_key = settings.ACTION_ADMIN_KEY

    async def dispatch(self, notification_type: NotificationType, message: str, keyboard: Optional[InlineKeyboard] = None):
        try:
            await self.notifier.send(message, keyboard)
        except Exception as e:
            # ledger writes are never rolled back on a failed send
            logger.error(f"Notification {notification_type.value} failed: {e}")

    async def request_submitted(self, request: LeaveRequest, stats: MonthlyStats, reference, resubmitted: bool = False):
        message = message_utils.new_request_message(request, stats, reference, resubmitted=resubmitted)
        keyboard = message_utils.decision_keyboard(request.request_id, self.action_admin_key)
        notification_type = NotificationType.LEAVE_RESUBMITTED if resubmitted else NotificationType.LEAVE_REQUEST
        await self.dispatch(notification_type, message, keyboard)

    async def request_decided(self, request: LeaveRequest):
        notification_type = (
            NotificationType.LEAVE_APPROVED if request.status == LeaveStatus.APPROVED else NotificationType.LEAVE_REJECTED
        )
        await self.dispatch(notification_type, message_utils.decision_message(request))

    async def checked_in(self, request: LeaveRequest, actor: Optional[str] = None):
        await self.dispatch(NotificationType.CHECK_IN, message_utils.check_in_message(request, self.timezone, actor))

    async def escalation(self, request: LeaveRequest, tier: EscalationTier, photo_url: str):
        message = message_utils.escalation_message(request, tier, photo_url, self.timezone)
        await self.dispatch(NotificationType.ESCALATION, message)

    async def system_health(self, operation: str, error: Exception):
        await self.dispatch(NotificationType.SYSTEM_HEALTH, message_utils.system_health_message(operation, error))

    async def edit(self, chat_id, message_id: int, text: str):
        try:
            await self.notifier.edit(chat_id, message_id, text)
        except Exception as e:
            logger.error(f"Editing message {message_id} failed: {e}")
