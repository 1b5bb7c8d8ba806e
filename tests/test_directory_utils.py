from fakeredis import FakeAsyncRedis
from redis.exceptions import ConnectionError as RedisConnectionError

from utils.cache_utils import CacheKeys
from utils.directory_utils import INVALID_ID_MESSAGE, MISSING_ID_MESSAGE, EmployeeDirectory


class UnreachableRedis:
    async def get(self, key):
        raise RedisConnectionError("connection refused")

    async def setex(self, key, ttl, value):
        raise RedisConnectionError("connection refused")

    async def delete(self, key):
        raise RedisConnectionError("connection refused")


async def test_verify_known_employee(directory, employees):
    result = await directory.verify(" E001 ")

    assert result == {"status": "success", "name": "Dara", "photo_url": "http://photos/e001.jpg"}


async def test_verify_unknown_and_missing_ids(directory, employees):
    assert await directory.verify("E999") == {"status": "error", "message": INVALID_ID_MESSAGE}
    assert await directory.verify("  ") == {"status": "error", "message": MISSING_ID_MESSAGE}


async def test_cache_is_stored_in_redis_with_the_ttl(directory, cache, settings, employees):
    await directory.get_map()

    ttl = await cache.ttl(CacheKeys.EMPLOYEE_DIRECTORY)
    assert 0 < ttl <= settings.EMPLOYEE_CACHE_TTL
    assert "E001" in await cache.get(CacheKeys.EMPLOYEE_DIRECTORY)


async def test_invalidate_reaches_every_worker(mongo_db, settings, redis_server, employees):
    worker_a = EmployeeDirectory(mongo_db.employees, settings, FakeAsyncRedis(server=redis_server, decode_responses=True))
    worker_b = EmployeeDirectory(mongo_db.employees, settings, FakeAsyncRedis(server=redis_server, decode_responses=True))
    await worker_b.get_map()

    await mongo_db.employees.insert_one({"employee_id": "E004", "name": "Kanha"})
    assert await worker_b.lookup("E004") is None

    await worker_a.invalidate()
    assert (await worker_b.lookup("E004")).name == "Kanha"


async def test_expired_cache_is_rebuilt(directory, cache, mongo_db, employees):
    await directory.get_map()
    await mongo_db.employees.insert_one({"employee_id": "E005", "name": "Rith"})

    # what redis does once the ttl runs out
    await cache.delete(CacheKeys.EMPLOYEE_DIRECTORY)
    assert (await directory.lookup("E005")).name == "Rith"


async def test_unreachable_cache_falls_back_to_the_collection(mongo_db, settings, employees, caplog):
    directory = EmployeeDirectory(mongo_db.employees, settings, UnreachableRedis())

    assert (await directory.lookup("E001")).name == "Dara"
    await directory.invalidate()
    assert "connection refused" in caplog.text


async def test_only_the_blocked_work_status_is_ineligible(directory, employees):
    blocked = await directory.is_eligible("E002")
    assert not blocked.allowed
    assert "E002" in blocked.reason

    assert (await directory.is_eligible("E001")).allowed
    # no work status recorded
    assert (await directory.is_eligible("E003")).allowed
    # not in the directory at all
    assert (await directory.is_eligible("E999")).allowed
