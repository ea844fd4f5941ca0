import logging
from datetime import timezone

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from core import config

logger = logging.getLogger(__name__)


def default_id():
    return str(ObjectId())


async def create_indexes():
    await db.users.create_index("username", unique=True)
    await db.users.create_index("email", unique=True)
    # One registration per user and tournament
    await db.tournament_registrations.create_index(
        [("user_id", ASCENDING), ("tournament_id", ASCENDING)], unique=True
    )
    await db.tournaments.create_index([("status", ASCENDING), ("start_time", ASCENDING)])
    await db.user_matches.create_index([("user_id", ASCENDING), ("registered_at", DESCENDING)])
    await db.transactions.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await db.notifications.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await db.email_otps.create_index("email", unique=True)
    logger.info("Database indexes ensured.")


client = None
db = None


def initialize_db_connection(mongo_client=None):
    global client, db
    client = mongo_client if mongo_client is not None else AsyncIOMotorClient(config.MONGODB_URL)
    db = client[config.MONGODB_DB]
    logger.info("Database connection initialized.")


def get_db():
    return db


async def run_transaction(callback):
    """Run ``callback(session)`` inside a MongoDB transaction and return its result.

    The callback is retried by the driver on transient errors (write conflicts) and
    on unknown commit results, so it must only write through the session it is
    given. With transactions disabled it runs once with ``session=None``.
    """
    if not config.MONGODB_TRANSACTIONS:
        return await callback(None)
    async with await client.start_session() as session:
        return await session.with_transaction(callback)


def is_transient(error: PyMongoError) -> bool:
    return error.has_error_label("TransientTransactionError") or \
        error.has_error_label("UnknownTransactionCommitResult")


def as_utc(value):
    # pymongo hands back naive datetimes that are already UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
