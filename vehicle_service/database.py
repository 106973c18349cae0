# vehicle_service/database.py
import logging
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from pymongo.errors import PyMongoError
from vehicle_service.config import get_settings

logger = logging.getLogger(__name__)

VEHICLES = "vehicles"

class Database:
    client: AsyncIOMotorClient = None
    db = None

db = Database()

async def connect_to_mongo():
    settings = get_settings()
    db.client = AsyncIOMotorClient(settings.MONGODB_URI, serverSelectionTimeoutMS=5000)
    db.db = db.client[settings.MONGODB_DB_NAME]
    logger.info("Connected to MongoDB: %s", settings.MONGODB_DB_NAME)

async def close_mongo_connection():
    if db.client:
        db.client.close()
        logger.info("Closed MongoDB connection")

async def get_database():
    return db.db

async def ensure_indexes(database):
    collections = await database.list_collection_names()
    if VEHICLES not in collections:
        await database.create_collection(VEHICLES)

    # VIN is unique across every tenant
    await database[VEHICLES].create_index([("vin", ASCENDING)], unique=True)
    # partner id is unique only where present
    await database[VEHICLES].create_index([("shopWareId", ASCENDING)], unique=True, sparse=True)
    await database[VEHICLES].create_index([("userId", ASCENDING)])

async def init_db():
    if not db.client:
        await connect_to_mongo()
    try:
        await ensure_indexes(db.db)
        logger.info("Database initialized successfully!")
        return True
    except PyMongoError as e:
        logger.error("Database initialization failed: %s", e)
        return False

async def ping(database) -> bool:
    try:
        await database.command("ping")
        return True
    except PyMongoError as e:
        logger.warning("MongoDB ping failed: %s", e)
        return False
