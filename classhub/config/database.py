# classhub/config/database.py

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument
import logging
from .settings import settings

logger = logging.getLogger(__name__)

# Global database client
_client: AsyncIOMotorClient = None
_database: AsyncIOMotorDatabase = None

async def connect_to_mongo():
    """Create database connection"""
    global _client, _database

    try:
        logger.info("🔌 Connecting to MongoDB...")

        _client = AsyncIOMotorClient(
            settings.mongodb_url,
            maxPoolSize=settings.mongodb_max_pool_size,
            minPoolSize=settings.mongodb_min_pool_size,
            maxIdleTimeMS=settings.mongodb_max_idle_time_ms,
            serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms
        )

        _database = _client[settings.database_name]

        # Test connection
        await _database.command("ping")
        logger.info("✅ Connected to MongoDB successfully")

    except Exception as e:
        logger.error(f"❌ Failed to connect to MongoDB: {e}")
        raise

def get_database() -> AsyncIOMotorDatabase:
    """Get database instance"""
    if _database is None:
        raise RuntimeError("Database not initialized. Call connect_to_mongo() first.")
    return _database

def set_database(database: AsyncIOMotorDatabase):
    """Install an already-open database (used by tests and scripts)"""
    global _database
    _database = database

async def close_mongo_connection():
    """Close database connection"""
    global _client, _database
    if _client:
        _client.close()
        logger.info("🔌 MongoDB connection closed")
    _client = None
    _database = None

async def next_sequence(name: str) -> int:
    """Atomically increment and return the named counter"""
    db = get_database()
    counter = await db.counters.find_one_and_update(
        {"_id": name},
        {"$inc": {"sequence": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER
    )
    return counter.get("sequence", 1)

async def create_indexes():
    """Create database indexes"""
    try:
        db = get_database()
        logger.info("📊 Creating database indexes...")

        # ============================================================================
        # USERS
        # ============================================================================
        await db.users.create_index("email", unique=True)
        await db.users.create_index([("role", 1), ("is_active", 1)])
        await db.token_blacklist.create_index("token_jti")

        # ============================================================================
        # STUDENTS
        # ============================================================================
        await db.students.create_index("student_id", unique=True)
        await db.students.create_index("parent_id")
        await db.students.create_index([("is_active", 1), ("created_at", -1)])

        # ============================================================================
        # PROGRAMS
        # ============================================================================
        await db.programs.create_index("program_id", unique=True)
        await db.programs.create_index("name", unique=True)
        await db.programs.create_index([("category", 1), ("is_active", 1)])
        await db.programs.create_index("tutor_id")

        # ============================================================================
        # SESSIONS
        # ============================================================================
        await db.sessions.create_index("session_id", unique=True)
        await db.sessions.create_index([("program_id", 1), ("date", 1)])
        await db.sessions.create_index([("tutor_id", 1), ("date", 1)])
        await db.sessions.create_index("date")
        await db.sessions.create_index("status")
        await db.sessions.create_index("attendance.student_id")

        # ============================================================================
        # RESOURCES
        # ============================================================================
        await db.resources.create_index("resource_id", unique=True)
        await db.resources.create_index([("type", 1), ("language", 1)])

        logger.info("✅ Database indexes created")

    except Exception as e:
        logger.error(f"❌ Error creating indexes: {e}")
        raise
