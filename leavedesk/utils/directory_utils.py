import logging
from typing import Dict, Optional

from pydantic import BaseModel
from pymongo.errors import PyMongoError

from config import Settings
from exceptions import UpstreamUnavailable
from models.employees import DirectoryEntry
from utils.cache_utils import CacheKeys, delete_from_cache, get_from_cache, set_to_cache

logger = logging.getLogger(__name__)

INVALID_ID_MESSAGE = "អត្តលេខមិនត្រឹមត្រូវ។"
MISSING_ID_MESSAGE = "សូម​បញ្ចូល​អត្តលេខ។"
INELIGIBLE_MESSAGE = "អត្តលេខ {employee_id} មិនមានសិទ្ធិស្នើសុំច្បាប់ទេ (ស្ថានភាពការងារ: {work_status})។"


class Eligibility(BaseModel):
    allowed: bool
    reason: Optional[str] = None


class EmployeeDirectory:
    """
    Redis-cached map of employee_id -> {name, photo_url} built from the
    employees collection.

    The whole map is rebuilt when the cached copy is missing or has
    expired. Every worker shares the same key, so an explicit invalidate
    after a lifecycle transition is seen by all of them. When redis is
    unreachable the map is rebuilt from MongoDB on each call.
    """

    def __init__(self, collection, settings: Settings, cache, key: str = CacheKeys.EMPLOYEE_DIRECTORY):
        self.collection = collection
        self.cache = cache
        self.key = key
        self.ttl = settings.EMPLOYEE_CACHE_TTL
        self.blocked_work_status = settings.BLOCKED_WORK_STATUS

    async def get(self) -> Optional[Dict[str, DirectoryEntry]]:
        cached = await get_from_cache(self.cache, self.key)
        if cached is None:
            return None
        return {employee_id: DirectoryEntry(**entry) for employee_id, entry in cached.items()}

    async def set(self, entries: Dict[str, DirectoryEntry]):
        payload = {employee_id: entry.model_dump() for employee_id, entry in entries.items()}
        await set_to_cache(self.cache, self.key, payload, self.ttl)

    async def invalidate(self):
        await delete_from_cache(self.cache, self.key)

    async def load(self) -> Dict[str, DirectoryEntry]:
        entries = {}
        try:
            async for employee in self.collection.find({}, {"employee_id": 1, "name": 1, "photo_url": 1}):
                employee_id = str(employee.get("employee_id") or "").strip()
                if not employee_id:
                    continue
                entries[employee_id] = DirectoryEntry(
                    name=employee.get("name") or "",
                    photo_url=employee.get("photo_url") or "",
                )
        except PyMongoError as e:
            logger.error(f"Employee directory rebuild failed: {e}")
            raise UpstreamUnavailable("directory.load", cause=e)
        return entries

    async def get_map(self) -> Dict[str, DirectoryEntry]:
        entries = await self.get()
        if entries is None:
            entries = await self.load()
            await self.set(entries)
            logger.info(f"Employee directory rebuilt with {len(entries)} entries")
        return entries

    async def lookup(self, employee_id: str) -> Optional[DirectoryEntry]:
        if not employee_id or not str(employee_id).strip():
            return None
        entries = await self.get_map()
        return entries.get(str(employee_id).strip())

    async def verify(self, employee_id: Optional[str]) -> dict:
        if not employee_id or not employee_id.strip():
            return {"status": "error", "message": MISSING_ID_MESSAGE}
        entry = await self.lookup(employee_id)
        if entry is None:
            return {"status": "error", "message": INVALID_ID_MESSAGE}
        return {"status": "success", "name": entry.name, "photo_url": entry.photo_url}

    async def is_eligible(self, employee_id: str) -> Eligibility:
        """Only an explicit blocked work status refuses; missing data is allowed."""
        employee_id = str(employee_id or "").strip()
        try:
            employee = await self.collection.find_one({"employee_id": employee_id}, {"work_status": 1})
        except PyMongoError as e:
            logger.error(f"Eligibility lookup failed for employee {employee_id}: {e}")
            raise UpstreamUnavailable("directory.is_eligible", cause=e)

        work_status = (employee or {}).get("work_status")
        if work_status is not None and str(work_status).strip() == self.blocked_work_status:
            return Eligibility(
                allowed=False,
                reason=INELIGIBLE_MESSAGE.format(employee_id=employee_id, work_status=work_status),
            )
        return Eligibility(allowed=True)
