import os
import asyncio
import logging
from typing import Optional

import redis.asyncio as redis
from motor.motor_asyncio import AsyncIOMotorClient
from prometheus_client import start_http_server

from .storage import CachedManager, InMemoryManager, Manager, MongoManager

logger = logging.getLogger(__name__)

REDIS: Optional[redis.Redis] = None
MONGO: Optional[AsyncIOMotorClient] = None

MAX_RETRIES = 3
RETRY_DELAY = 3  # seconds

STORAGE_MODES = ('inmemory', 'mongo', 'cached')


def init_metrics(port: int = None):
    """Initialize Prometheus metrics server"""
    port = port or int(os.getenv('METRICS_PORT', '8001'))
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
    except Exception as e:
        logger.warning(f'Prometheus start failed: {e}')


async def redis_startup() -> Optional[redis.Redis]:
    """Connect to Redis with retries; leaves REDIS as None if it stays unreachable"""
    global REDIS

    redis_url = os.getenv('REDIS_URL', 'redis://redis:6379/0')

    for attempt in range(MAX_RETRIES):
        try:
            logger.info(f"Attempting to connect to Redis: {redis_url} (attempt {attempt + 1}/{MAX_RETRIES})")

            REDIS = redis.from_url(
                redis_url,
                decode_responses=False,
                max_connections=20,
                health_check_interval=30,
                socket_connect_timeout=5,
                socket_timeout=5
            )

            await REDIS.ping()

            logger.info("Redis connected successfully")
            break

        except Exception as e:
            logger.warning(f'Redis startup attempt {attempt + 1} failed: {e}')
            if REDIS:
                try:
                    await REDIS.aclose()
                except Exception as close_error:
                    logger.warning(f'Closing failed Redis client raised: {close_error}')
                REDIS = None

            if attempt < MAX_RETRIES - 1:
                logger.info(f"Retrying Redis connection in {RETRY_DELAY} seconds...")
                await asyncio.sleep(RETRY_DELAY)
            else:
                logger.error("Failed to connect to Redis after all retries")

    return REDIS


async def mongo_startup() -> AsyncIOMotorClient:
    """Connect to MongoDB with retries; raises if it stays unreachable"""
    global MONGO

    mongo_url = os.getenv('MONGO_URL', 'mongodb://mongo:27017')

    for attempt in range(MAX_RETRIES):
        try:
            logger.info(f"Attempting to connect to MongoDB: {mongo_url} (attempt {attempt + 1}/{MAX_RETRIES})")

            MONGO = AsyncIOMotorClient(
                mongo_url,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=5000,
                socketTimeoutMS=5000,
                maxPoolSize=50,
                minPoolSize=5,
            )

            await MONGO.admin.command('ping')

            logger.info("MongoDB connected successfully")
            return MONGO

        except Exception as e:
            logger.warning(f'MongoDB startup attempt {attempt + 1} failed: {e}')
            if MONGO:
                MONGO.close()
                MONGO = None

            if attempt < MAX_RETRIES - 1:
                logger.info(f"Retrying MongoDB connection in {RETRY_DELAY} seconds...")
                await asyncio.sleep(RETRY_DELAY)

    raise RuntimeError(f"Failed to connect to MongoDB at {mongo_url} after {MAX_RETRIES} attempts")


async def _mongo_manager() -> MongoManager:
    client = await mongo_startup()
    db_name = os.getenv('MONGO_DB_NAME', 'microblog')
    timeout = float(os.getenv('MONGO_TIMEOUT_SECONDS', '5'))
    manager = MongoManager(client[db_name], timeout=timeout)
    await manager.ensure_indexes()
    return manager


async def build_manager(mode: str = None) -> Manager:
    """Build the storage backend selected by STORAGE_MODE"""
    mode = mode or os.getenv('STORAGE_MODE', 'inmemory')

    if mode == 'inmemory':
        manager = InMemoryManager()
    elif mode == 'mongo':
        manager = await _mongo_manager()
    elif mode == 'cached':
        persistent = await _mongo_manager()
        client = await redis_startup()
        if client is None:
            logger.warning("Cached storage running without Redis; reads go straight to MongoDB")
        manager = CachedManager(client, persistent)
    else:
        raise ValueError(f"Unknown STORAGE_MODE {mode!r}, expected one of {', '.join(STORAGE_MODES)}")

    logger.info(f"Storage mode: {mode}")
    return manager


async def shutdown_connections():
    """Gracefully shutdown all connections"""
    global REDIS, MONGO
    logger.info("Shutting down connections...")

    if REDIS:
        try:
            await REDIS.aclose()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")
        REDIS = None

    if MONGO:
        MONGO.close()
        logger.info("MongoDB connection closed")
        MONGO = None
