"""
MongoDB connection helper.

A single MongoClient is created on first use and cached for the process.
Concurrent first callers wait on a lock instead of opening parallel connections;
a failed connect leaves the cache empty so the next call retries.
"""

import logging
import threading
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

from .config import get_settings

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
_lock = threading.Lock()

MISSING_URI_MESSAGE = (
    "Missing MONGODB_URI environment variable. "
    "Please add MONGODB_URI=your_connection_string to your .env file. "
    "Example: MONGODB_URI=mongodb://localhost:27017/your-database"
)


def get_client() -> MongoClient:
    """Return the cached MongoClient, connecting on first call."""
    global _client

    # Validate at connection time, not import time
    uri = get_settings().mongodb_uri
    if not uri:
        raise RuntimeError(MISSING_URI_MESSAGE)

    if _client is not None:
        logger.debug("MongoDB already connected")
        return _client

    with _lock:
        if _client is not None:
            return _client

        client = MongoClient(uri, serverSelectionTimeoutMS=5000)
        try:
            client.admin.command("ping")
        except Exception as e:
            logger.error(f"MongoDB connection error: {e}")
            client.close()
            raise

        host = client.address[0] if client.address else uri
        logger.info(f"MongoDB connected: {host}")
        _client = client
        return _client


def get_db(name: Optional[str] = None) -> Database:
    """Database handle on the cached client (MONGODB_DB_NAME by default)."""
    return get_client()[name or get_settings().mongodb_db_name]


def close_client() -> None:
    global _client
    with _lock:
        if _client is not None:
            _client.close()
            _client = None
            logger.info("MongoDB connection closed")
