import logging
from datetime import datetime, timezone

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING

from .errors import InvalidArgument

logger = logging.getLogger(__name__)


######################
# Database Connection
######################
def connect(settings):
    """Create the Mongo client and return the forum database handle"""
    timeout = settings.store_timeout_ms
    client = AsyncIOMotorClient(
        settings.mongodb_uri,
        serverSelectionTimeoutMS=timeout,
        connectTimeoutMS=timeout,
        socketTimeoutMS=timeout,
        # Failures are surfaced to the caller, never retried
        retryWrites=False,
        retryReads=False,
    )
    return client[settings.database_name]


async def ping(db):
    """Confirm the deployment is reachable"""
    await db.command("ping")
    logger.info("Pinged deployment, connected to database %s", db.name)


async def ensure_indexes(db):
    """Initialize DB indexes on startup"""
    # Unique constraints
    await db.users.create_index("uid", unique=True)
    await db.tags.create_index("name", unique=True)

    # Sorting & query optimization
    await db.posts.create_index([("createdAt", DESCENDING)])
    await db.posts.create_index([("authorId", ASCENDING), ("createdAt", DESCENDING)])
    await db.posts.create_index([("tag", ASCENDING)])
    await db.comments.create_index([("postId", ASCENDING), ("createdAt", DESCENDING)])
    await db.reports.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
    await db.announcements.create_index([("createdAt", DESCENDING)])


##########
# Helpers
##########
def utcnow():
    return datetime.now(timezone.utc)


def object_id(value: str, what: str = "id") -> ObjectId:
    """Parse a store identity, rejecting malformed values before any store call"""
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(value):
        raise InvalidArgument(f"Invalid {what}.")
    return ObjectId(value)


def serialize(doc: dict) -> dict:
    """Convert a Mongo document into a JSON-friendly dict"""
    if not doc:
        return doc
    d = {**doc}
    for k, v in list(d.items()):
        if isinstance(v, ObjectId):
            d[k] = str(v)
        elif isinstance(v, datetime):
            d[k] = v.isoformat()
    return d
