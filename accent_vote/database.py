import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from .config import settings

logger = structlog.get_logger(__name__)

class Database:
    client: AsyncIOMotorClient = None
    database: AsyncIOMotorDatabase = None

db = Database()

async def connect_db():
    db.client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=True)
    db.database = db.client[settings.MONGODB_DB]
    logger.info("database_connected", database=settings.MONGODB_DB)

    # Create indexes after connection
    await create_indexes()

async def close_db():
    db.client.close()
    logger.info("database_closed")

async def create_indexes():
    """Create indexes, including the one-vote-per-device uniqueness guarantees"""

    # Indexes for polls collection
    await db.database.polls.create_index([("created_at", -1)])
    await db.database.polls.create_index([("status", 1), ("deadline", 1)])

    # Word votes: at most one vote per (word, device)
    await db.database.votes.create_index(
        [("word_id", 1), ("device_id", 1)],
        unique=True
    )
    await db.database.votes.create_index([("word_id", 1), ("prefecture", 1)])
    await db.database.votes.create_index([("device_id", 1), ("voted_at", -1)])

    # Poll votes: at most one vote per (poll, device)
    await db.database.poll_votes.create_index(
        [("poll_id", 1), ("device_id", 1)],
        unique=True
    )
    await db.database.poll_votes.create_index([("poll_id", 1), ("prefecture", 1)])

    logger.info("database_indexes_created")
