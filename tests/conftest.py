import asyncio
from datetime import date, datetime

import pytest
import pytz
from fakeredis import FakeAsyncRedis, FakeServer
from mongomock_motor import AsyncMongoMockClient

from config import Settings
from models.leaves import LeaveCategory, LeaveRequest, LeaveStatus
from utils.directory_utils import EmployeeDirectory
from utils.escalation_utils import EscalationScanner
from utils.image_utils import ImageStore
from utils.ledger_utils import RequestLedger
from utils.lifecycle_utils import LifecycleEngine
from utils.notification_utils import NotificationRouter
from utils.time_utils import start_of_day

TZ_NAME = "Asia/Phnom_Penh"
TZ = pytz.timezone(TZ_NAME)


def local(*args) -> datetime:
    return TZ.localize(datetime(*args))


def utc_at_local(*args) -> datetime:
    """A local wall-clock time expressed in UTC, the form timestamps are stored in."""
    return local(*args).astimezone(pytz.UTC)


class RecordingNotifier:
    """Stands in for the Telegram client and keeps everything it was asked to send."""

    def __init__(self):
        self.sent = []
        self.edits = []

    async def send(self, message, keyboard=None):
        self.sent.append((message, keyboard))
        return 1

    async def edit(self, chat_id, message_id, text):
        self.edits.append((chat_id, message_id, text))
        return True


class InterleavingLedger(RequestLedger):
    """
    A ledger that hands control back to the event loop after every lookup
    and insert, the way a real network round trip would, so concurrent
    callers actually overlap.
    """

    async def locate(self, request_id):
        found = await super().locate(request_id)
        await asyncio.sleep(0)
        return found

    async def append(self, request):
        await asyncio.sleep(0)
        return await super().append(request)


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        ADMIN_ROLES={"boss-key": "Sokha"},
        DEFAULT_ADMIN_NAME="Admin",
        ACTION_ADMIN_KEY="boss-key",
        PUBLIC_BASE_URL="http://testserver",
        TIMEZONE=TZ_NAME,
        PLACEHOLDER_PHOTO_URL="http://testserver/placeholder.png",
    )


@pytest.fixture
def mongo_db():
    return AsyncMongoMockClient()["leave_desk_test"]


@pytest.fixture
def partitions(mongo_db):
    return {
        LeaveCategory.PERMISSION: mongo_db.permission_requests,
        LeaveCategory.LEAVE: mongo_db.leave_requests,
        LeaveCategory.HOME_LEAVE: mongo_db.home_leave_requests,
    }


@pytest.fixture
def ledger(partitions, mongo_db):
    return RequestLedger(partitions, mongo_db.request_ids)


@pytest.fixture
def redis_server():
    return FakeServer()


@pytest.fixture
def cache(redis_server):
    return FakeAsyncRedis(server=redis_server, decode_responses=True)


@pytest.fixture
def directory(mongo_db, settings, cache):
    return EmployeeDirectory(mongo_db.employees, settings, cache)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def notifications(notifier, settings):
    return NotificationRouter(notifier, settings)


@pytest.fixture
def images(settings, tmp_path):
    return ImageStore(settings, upload_dir=str(tmp_path))


@pytest.fixture
def clock():
    return FrozenClock(utc_at_local(2024, 5, 10, 7, 0))


@pytest.fixture
def engine(ledger, directory, notifications, images, settings, mongo_db, clock):
    return LifecycleEngine(
        ledger=ledger,
        directory=directory,
        notifications=notifications,
        images=images,
        settings=settings,
        activity_collection=mongo_db.system_activity,
        clock=clock,
    )


@pytest.fixture
def scanner(ledger, directory, notifications, settings, clock):
    return EscalationScanner(ledger, directory, notifications, settings, clock=clock)


@pytest.fixture
async def employees(mongo_db):
    await mongo_db.employees.insert_many([
        {"employee_id": "E001", "name": "Dara", "photo_url": "http://photos/e001.jpg", "work_status": "active"},
        {"employee_id": "E002", "name": "Vichea", "photo_url": "", "work_status": "inactive"},
        {"employee_id": "E003", "name": "Bopha"},
    ])


@pytest.fixture
def make_request(ledger):
    """Append a request straight to the ledger, bypassing submission checks."""
    counter = {"next": 1}

    async def _make(**overrides) -> LeaveRequest:
        start = overrides.pop("start_date", date(2024, 5, 10))
        fields = {
            "request_id": f"REQ-{counter['next']}",
            "employee_id": "E001",
            "employee_name": "Dara",
            "category": LeaveCategory.PERMISSION,
            "start_date": start_of_day(start),
            "end_date": start_of_day(overrides.pop("end_date", start)),
            "duration": 1,
            "duration_label": "1",
            "reason": "Family matter",
            "status": LeaveStatus.PENDING,
        }
        fields.update(overrides)
        counter["next"] += 1
        return await ledger.append(LeaveRequest(**fields))

    return _make
