# partitions.py
"""
Storage adapters for date partitions.

Jobs are grouped by the date they were scraped on. Two layouts exist in the
job database and both are served through the same small interface:

* ``DateCollectionPartitions``: one collection per date, named
  ``job_applications_YYYY-MM-DD``.
* ``DateFieldPartitions``: a single ``job_applications`` collection where each
  document carries its date in ``scraped_on``.

``scope(date)`` hands back the collection and base filter that select one
partition, so the services can run the same queries against either layout.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database

from models import DATE_KEY, JobStatus, PartitionCount, is_date_key

logger = logging.getLogger("jobs.partitions")

# missing and null status both count as pending
PENDING_FILTER = {"status": {"$in": [JobStatus.PENDING.value, None]}}

Scope = Tuple[Collection, dict]


class Partitions(ABC):
    """Interface shared by both layouts."""

    @abstractmethod
    def list_dates(self) -> List[str]:
        """Every date key present, in no particular order."""
        raise NotImplementedError

    @abstractmethod
    def scope(self, date: str) -> Optional[Scope]:
        """Collection and base filter for one date, or None for a malformed key."""
        raise NotImplementedError

    @abstractmethod
    def partition_counts(self, limit: int) -> List[PartitionCount]:
        """Total and pending counts for the ``limit`` most recent dates."""
        raise NotImplementedError

    def recent_dates(self) -> List[str]:
        return sorted(set(self.list_dates()), reverse=True)


class DateCollectionPartitions(Partitions):
    def __init__(self, db: Database, prefix: str = "job_applications_"):
        self.db = db
        self.prefix = prefix

    def list_dates(self) -> List[str]:
        dates = []
        for name in self.db.list_collection_names():
            if not name.startswith(self.prefix):
                continue
            key = name[len(self.prefix):]
            if is_date_key(key):
                dates.append(key)
            else:
                logger.debug("Skipping collection with malformed date: %s", name)
        return dates

    def scope(self, date: str) -> Optional[Scope]:
        if not is_date_key(date):
            return None
        return self.db[f"{self.prefix}{date}"], {}

    def partition_counts(self, limit: int) -> List[PartitionCount]:
        counts = []
        for date in self.recent_dates()[:limit]:
            collection = self.db[f"{self.prefix}{date}"]
            counts.append(
                PartitionCount(
                    date=date,
                    total_count=collection.count_documents({}),
                    pending_count=collection.count_documents(PENDING_FILTER),
                )
            )
        return counts


class DateFieldPartitions(Partitions):
    def __init__(self, db: Database, collection: str = "job_applications",
                 date_field: str = "scraped_on"):
        self.collection = db[collection]
        self.date_field = date_field

    def list_dates(self) -> List[str]:
        values = self.collection.distinct(self.date_field)
        return [v for v in values if is_date_key(v)]

    def scope(self, date: str) -> Optional[Scope]:
        if not is_date_key(date):
            return None
        return self.collection, {self.date_field: date}

    def partition_counts(self, limit: int) -> List[PartitionCount]:
        match = {self.date_field: {"$regex": DATE_KEY.pattern}}
        group = {"$group": {"_id": f"${self.date_field}", "count": {"$sum": 1}}}

        totals = list(self.collection.aggregate([
            {"$match": match},
            group,
            {"$sort": {"_id": DESCENDING}},
            {"$limit": limit},
        ]))
        pending = {
            row["_id"]: row["count"]
            for row in self.collection.aggregate([
                {"$match": {**match, **PENDING_FILTER}},
                group,
            ])
        }
        return [
            PartitionCount(
                date=row["_id"],
                total_count=row["count"],
                pending_count=pending.get(row["_id"], 0),
            )
            for row in totals
        ]
