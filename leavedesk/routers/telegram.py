import logging
from fastapi import APIRouter, Depends
from models.leaves import LeaveStatus
from schemas.notification import ActionCallback, TelegramUpdate
from utils.app_utils import get_engine, get_notifications
from utils.lifecycle_utils import LifecycleEngine
from utils.message_utils import action_failed_text, action_result_text
from utils.notification_utils import NotificationRouter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook")
async def telegram_webhook(
    update: TelegramUpdate,
    engine: LifecycleEngine = Depends(get_engine),
    notifications: NotificationRouter = Depends(get_notifications),
):
    """
    Receive approve/reject button presses from the action bot.
    The callback data has the form `<action>_<request_id>_<admin_key>`; the
    admin key is resolved to a display name, falling back to the default
    admin name when unknown. The original message is edited in place with
    the result. Telegram always gets a 200 so it does not redeliver.
    Returns:
        dict: {"status": "ok"}
    """
    callback_query = update.callback_query
    if callback_query is None or callback_query.message is None:
        return {"status": "ok"}

    message = callback_query.message
    original_text = message.text or ""
    callback = ActionCallback.parse(callback_query.data)

    result = None
    error_message = None
    try:
        if callback is not None:
            result = await engine.handle_action(callback.action, callback.request_id, callback.actor_key)
    except Exception as e:
        logger.error(f"Webhook action {callback_query.data!r} failed: {e}")
        error_message = str(e)

    if result is not None and result.ok:
        text = action_result_text(original_text, result.request.status == LeaveStatus.APPROVED, result.request.approver)
    else:
        text = action_failed_text(original_text, error_message or (result.message if result else None))
    await notifications.edit(message.chat.id, message.message_id, text)

    return {"status": "ok"}
