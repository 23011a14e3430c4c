# db.py
import logging
import threading
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

import config
from partitions import DateCollectionPartitions, DateFieldPartitions, Partitions

logger = logging.getLogger("jobs.db")

_client: Optional[MongoClient] = None
_lock = threading.Lock()


def get_client() -> MongoClient:
    """Process-wide client, created on first use. MongoClient pools connections itself."""
    global _client
    if _client is None:
        with _lock:
            if _client is None:
                _client = MongoClient(config.get_mongodb_uri(), appname="job-dashboard")
                logger.info("🔌 MongoDB client created.")
    return _client


def close_client():
    global _client
    with _lock:
        if _client is not None:
            _client.close()
            _client = None
            logger.info("🧹 MongoDB client closed.")


def get_database() -> Database:
    return get_client()[config.MONGODB_DB]


def build_partitions(db: Database, scheme: str = None) -> Partitions:
    scheme = scheme or config.JOB_PARTITION_SCHEME
    if scheme == "field":
        return DateFieldPartitions(db, config.JOB_COLLECTION, config.JOB_DATE_FIELD)
    if scheme != "collection":
        logger.warning("Unknown JOB_PARTITION_SCHEME %r, using per-date collections", scheme)
    return DateCollectionPartitions(db, config.JOB_COLLECTION_PREFIX)
