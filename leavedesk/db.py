from motor.motor_asyncio import AsyncIOMotorClient
from config import settings
from models.leaves import LeaveCategory


client = AsyncIOMotorClient(settings.MONGODB_URL)
db = client[settings.MONGODB_DB_NAME]


permission_requests_collection = db.permission_requests
leave_requests_collection = db.leave_requests
home_leave_requests_collection = db.home_leave_requests
employees_collection = db.employees
system_activity_collection = db.system_activity
# one document per issued request id, across all partitions
request_ids_collection = db.request_ids

# one collection per leave category
partition_collections = {
    LeaveCategory.PERMISSION: permission_requests_collection,
    LeaveCategory.LEAVE: leave_requests_collection,
    LeaveCategory.HOME_LEAVE: home_leave_requests_collection,
}
