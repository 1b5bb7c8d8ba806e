import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from exceptions import UpstreamUnavailable
from models.leaves import LeaveCategory, LeaveRequest, LeaveStatus
from utils.time_utils import as_utc, now_utc, start_of_day

logger = logging.getLogger(__name__)


def normalize_date(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, (date, datetime)):
        return start_of_day(value)
    try:
        return start_of_day(datetime.fromisoformat(str(value).strip()))
    except ValueError:
        return None


class RequestLedger:
    """
    Leave requests, one collection per category, keyed by request_id.

    Every read and write goes through here so store failures surface as
    UpstreamUnavailable with the operation and request id attached.
    """

    def __init__(self, partitions: Dict[LeaveCategory, object], reservations):
        self.partitions = partitions
        self.reservations = reservations

    def collection(self, category: LeaveCategory):
        return self.partitions[LeaveCategory(category)]

    async def ensure_indexes(self):
        for category, collection in self.partitions.items():
            try:
                await collection.create_index("request_id", unique=True)
                await collection.create_index([("employee_id", ASCENDING), ("start_date", ASCENDING)])
            except PyMongoError as e:
                raise UpstreamUnavailable(f"ledger.ensure_indexes[{category.value}]", cause=e)

    async def read_partition(self, category: LeaveCategory, query: Optional[dict] = None) -> List[dict]:
        """Rows of one partition in insertion order."""
        try:
            cursor = self.collection(category).find(query or {}).sort("_id", ASCENDING)
            return await cursor.to_list(length=None)
        except PyMongoError as e:
            raise UpstreamUnavailable(f"ledger.read_partition[{LeaveCategory(category).value}]", cause=e)

    async def read_all(self) -> Iterable[Tuple[LeaveCategory, dict]]:
        rows = []
        for category in self.partitions:
            for document in await self.read_partition(category):
                rows.append((category, document))
        return rows

    async def allocate_request_id(self, moment: Optional[datetime] = None) -> str:
        # ids are millisecond stamps; bump until one is free and reserved
        millis = int(as_utc(moment or now_utc()).timestamp() * 1000)
        while True:
            request_id = f"REQ-{millis}"
            if await self.locate(request_id) is None and await self.reserve(request_id):
                return request_id
            millis += 1

    async def reserve(self, request_id: str) -> bool:
        """
        Claim `request_id` for every partition at once.

        The reservation is an insert keyed on the id itself, so of two
        submissions racing for the same millisecond only one gets it.
        """
        try:
            await self.reservations.insert_one({"_id": request_id, "reserved_at": now_utc()})
        except DuplicateKeyError:
            logger.info(f"Request id {request_id} already taken, trying the next one")
            return False
        except PyMongoError as e:
            raise UpstreamUnavailable("ledger.reserve", request_id, e)
        return True

    async def append(self, request: LeaveRequest) -> LeaveRequest:
        try:
            await self.collection(request.category).insert_one(request.to_document())
        except PyMongoError as e:
            raise UpstreamUnavailable("ledger.append", request.request_id, e)
        logger.info(f"Appended {request.request_id} to {request.category.value}")
        return request

    async def locate(self, request_id: str) -> Optional[Tuple[LeaveCategory, dict]]:
        if not request_id:
            return None
        for category, collection in self.partitions.items():
            try:
                document = await collection.find_one({"request_id": request_id})
            except PyMongoError as e:
                raise UpstreamUnavailable("ledger.locate", request_id, e)
            if document:
                return category, document
        return None

    async def get(self, request_id: str) -> Optional[LeaveRequest]:
        found = await self.locate(request_id)
        if found is None:
            return None
        return LeaveRequest.from_document(found[1])

    async def compare_and_set(
        self,
        category: LeaveCategory,
        request_id: str,
        expected: dict,
        fields: dict,
    ) -> Optional[dict]:
        """
        Write `fields` only if the stored row still matches `expected`.

        The check and the write are a single conditional update on the
        store, so two writers racing on the same row cannot both win.
        Returns the updated row, or None when the condition no longer holds.
        """
        condition = {"request_id": request_id}
        condition.update(expected)
        try:
            return await self.collection(category).find_one_and_update(
                condition,
                {"$set": fields},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise UpstreamUnavailable("ledger.compare_and_set", request_id, e)

    async def replace(self, category: LeaveCategory, request: LeaveRequest):
        """Store `request` under `category`, moving it out of any other partition."""
        try:
            await self.collection(category).replace_one(
                {"request_id": request.request_id}, request.to_document(), upsert=True
            )
            for other, collection in self.partitions.items():
                if other != LeaveCategory(category):
                    await collection.delete_one({"request_id": request.request_id})
        except PyMongoError as e:
            raise UpstreamUnavailable("ledger.replace", request.request_id, e)

    async def delete(self, request_id: str) -> bool:
        found = await self.locate(request_id)
        if found is None:
            return False
        category, _ = found
        try:
            result = await self.collection(category).delete_one({"request_id": request_id})
        except PyMongoError as e:
            raise UpstreamUnavailable("ledger.delete", request_id, e)
        return result.deleted_count > 0

    async def is_duplicate(
        self,
        employee_id: str,
        category: LeaveCategory,
        start_date,
        exclude_request_id: Optional[str] = None,
    ) -> bool:
        employee_id = str(employee_id or "").strip()
        candidate = normalize_date(start_date)
        if not employee_id or candidate is None:
            return False

        for row in await self.read_partition(category):
            if str(row.get("employee_id") or "").strip() != employee_id:
                continue
            if normalize_date(row.get("start_date")) != candidate:
                continue
            if exclude_request_id and row.get("request_id") == exclude_request_id:
                continue
            return True
        return False

    async def latest_status(self, employee_id: str) -> dict:
        """
        Current request state for an employee.

        A Pending request, or an Approved one still waiting for check-in,
        wins over everything else; otherwise the most recently created
        request is reported.
        """
        employee_id = str(employee_id or "").strip()
        latest = {"status": "Clear", "timestamp": 0}

        for category in self.partitions:
            rows = await self.read_partition(category)
            for row in reversed(rows):
                if str(row.get("employee_id") or "").strip() != employee_id:
                    continue
                status = row.get("status")
                if status == LeaveStatus.PENDING.value or (
                    status == LeaveStatus.APPROVED.value and not row.get("check_in_timestamp")
                ):
                    return {"status": status, "request_id": row.get("request_id"), "category": category.value}

                created_at = row.get("created_at")
                timestamp = as_utc(created_at).timestamp() if isinstance(created_at, datetime) else 0
                if timestamp > latest["timestamp"]:
                    latest = {
                        "status": status,
                        "request_id": row.get("request_id"),
                        "category": category.value,
                        "timestamp": timestamp,
                        "reason": row.get("rejection_reason") or "",
                    }
        return latest
