# config.py
import os

from dotenv import load_dotenv

from errors import ConfigurationError

# load .env before reading any MONGODB_* values
load_dotenv()

MONGODB_DB = os.getenv("MONGODB_DB", "job_list")

# "collection": one collection per date, "field": one shared collection
JOB_PARTITION_SCHEME = os.getenv("JOB_PARTITION_SCHEME", "collection")
JOB_COLLECTION_PREFIX = os.getenv("JOB_COLLECTION_PREFIX", "job_applications_")
JOB_COLLECTION = os.getenv("JOB_COLLECTION", "job_applications")
JOB_DATE_FIELD = os.getenv("JOB_DATE_FIELD", "scraped_on")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def get_mongodb_uri() -> str:
    """
    Connection string for the job database.

    Read at call time so a missing value only breaks the handlers that need it.
    """
    uri = os.getenv("MONGODB_URI", "").strip()
    if not uri:
        raise ConfigurationError("MongoDB URI not configured")
    return uri
