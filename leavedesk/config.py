from typing import Dict, List, Tuple

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_TITLE: str = "Leave Desk"
    PRODUCTION_MODE: bool = False

    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "leave_desk"

    # Telegram: tokens and chat ids are paired by position
    TELEGRAM_BOT_TOKENS: str = ""
    TELEGRAM_CHAT_IDS: str = ""
    ACTION_BOT_TOKEN: str = ""
    ACTION_ADMIN_KEY: str = "admin"
    TELEGRAM_API_URL: str = "https://api.telegram.org"
    TELEGRAM_TIMEOUT: float = 10.0

    ADMIN_ROLES: Dict[str, str] = {}
    DEFAULT_ADMIN_NAME: str = "Admin"

    PUBLIC_BASE_URL: str = "http://localhost:11000"
    SELFIE_FOLDER: str = "selfie"
    DOCUMENT_FOLDER: str = "document"
    PAYMENT_RECEIPT_FOLDER: str = "payment_receipt"
    CHECKIN_FOLDER: str = "checkin"

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0
    EMPLOYEE_CACHE_TTL: int = 3600  # seconds
    BLOCKED_WORK_STATUS: str = "inactive"

    TIMEZONE: str = "Asia/Phnom_Penh"
    ESCALATION_INTERVAL_MINUTES: int = 5
    PLACEHOLDER_PHOTO_URL: str = "https://placehold.co/200x200?text=No+Photo"

    @property
    def telegram_channels(self) -> List[Tuple[str, str]]:
        """Pair bot tokens with chat ids, dropping incomplete pairs."""
        tokens = [token.strip() for token in self.TELEGRAM_BOT_TOKENS.split(",")]
        chat_ids = [chat_id.strip() for chat_id in self.TELEGRAM_CHAT_IDS.split(",")]
        return [(token, chat_id) for token, chat_id in zip(tokens, chat_ids) if token and chat_id]

    def admin_name(self, admin_key: str) -> str:
        return self.ADMIN_ROLES.get(admin_key, self.DEFAULT_ADMIN_NAME)

    class Config:
        env_file = ".env"
        extra = "ignore"
        frozen = True


settings = Settings()
