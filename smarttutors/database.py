import logging

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING

from smarttutors.config import MONGO_URI, DATABASE_NAME

logger = logging.getLogger(__name__)

client = None
db = None


async def connect_to_mongo():
    global client, db

    if not MONGO_URI:
        raise ValueError("MONGO_URI environment variable is not set! Check your .env file.")

    client = AsyncIOMotorClient(MONGO_URI)
    db = client[DATABASE_NAME]
    await client.admin.command("ping")

    if "mongodb+srv" in MONGO_URI:
        logger.info("Connected to MongoDB Atlas (database=%s)", DATABASE_NAME)
    else:
        logger.warning("Connected to LOCAL MongoDB (database=%s)", DATABASE_NAME)

    await ensure_indexes(db)


async def ensure_indexes(database):
    """Create the indexes the workflow relies on."""
    # One application per registered tutor and tuition; guests carry no tutor_id
    await database.applications.create_index(
        [("tutor_id", ASCENDING), ("tuition_id", ASCENDING)],
        unique=True,
        partialFilterExpression={"tutor_id": {"$type": "string"}},
        name="uniq_tutor_tuition",
    )
    await database.applications.create_index([("applied_at", DESCENDING)])
    await database.tuitions.create_index("code", unique=True)
    await database.tutors.create_index("tutor_id", unique=True)
    await database.tutors.create_index("phone", unique=True)
    await database.admins.create_index("username", unique=True)
    await database.notification_outbox.create_index([("status", ASCENDING), ("created_at", ASCENDING)])


async def close_mongo_connection():
    if client:
        client.close()


def get_db():
    return db
