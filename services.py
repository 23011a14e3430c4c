# services.py
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError

from errors import ValidationError
from models import (
    STATUS_OPTIONS,
    DatePage,
    Job,
    JobPage,
    PartitionCount,
    is_date_key,
    normalize_grade,
)
from partitions import PENDING_FILTER, Partitions

logger = logging.getLogger("jobs.services")


def utc_timestamp() -> str:
    # 2024-03-01T12:00:00.000Z
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _rank(doc: dict) -> Tuple[int, str, object]:
    """(normalised grade, job id, _id) for one projected document."""
    grade = normalize_grade(doc.get("grade"))
    job_id = doc.get("job_id")
    return (grade if grade is not None else 0), ("" if job_id is None else str(job_id)), doc["_id"]


def _after_cursor(rank: tuple, last_grade: int, last_job_id: Optional[str]) -> bool:
    grade, job_id, _ = rank
    if grade < last_grade:
        return True
    return last_job_id is not None and grade == last_grade and job_id > last_job_id


def _to_job(doc: dict) -> Optional[Job]:
    try:
        return Job.from_document(doc)
    except PydanticValidationError as e:
        logger.warning("Skipping unreadable job document %s: %s", doc.get("_id"), e)
        return None


class DateDirectoryService:
    def __init__(self, partitions: Partitions):
        self.partitions = partitions

    def list_dates(self, limit: int = 10, cursor: Optional[str] = None,
                   offset: int = 0) -> DatePage:
        """
        Dates newest first. With a cursor, only dates strictly older than it;
        otherwise a plain offset slice. The cursor wins when both are given.
        """
        if limit < 1:
            raise ValidationError("limit must be a positive integer")
        if offset < 0:
            raise ValidationError("offset must not be negative")

        try:
            dates = self.partitions.recent_dates()
        except PyMongoError as e:
            logger.exception("Error fetching job dates: %s", e)
            return DatePage()

        if cursor:
            dates = [d for d in dates if d < cursor]
        else:
            dates = dates[offset:]

        page = dates[:limit]
        has_more = len(dates) > limit
        return DatePage(
            dates=page,
            next_cursor=page[-1] if has_more else None,
            has_more=has_more,
        )

    def status_counts(self, limit: int = 10) -> List[PartitionCount]:
        if limit < 1:
            raise ValidationError("limit must be a positive integer")
        try:
            return self.partitions.partition_counts(limit)
        except PyMongoError as e:
            logger.exception("Error fetching job stats: %s", e)
            return []

    def date_counts(self, limit: int = 10) -> List[dict]:
        return [
            {"date": c.date, "count": c.total_count}
            for c in self.status_counts(limit)
        ]


class JobPartitionService:
    def __init__(self, partitions: Partitions):
        self.partitions = partitions

    def list_jobs(self, date: str, limit: int = 20, last_grade: Optional[int] = None,
                  last_job_id: Optional[str] = None, include_counts: bool = True) -> JobPage:
        """
        One page of a date's jobs, best grade first.

        Ordering uses the normalised grade, so legacy boolean, boxed and string
        grades rank alongside numeric ones. Stored grade types differ, which
        rules out sorting on the raw field: the partition's grades are read
        through a narrow projection, ranked here, and only the page's
        documents are fetched in full. Ungraded jobs rank as 0.

        ``last_grade`` alone keeps only jobs graded strictly lower, so jobs sharing
        the boundary grade with the previous page are skipped. Passing
        ``last_job_id`` as well resumes inside that grade instead.
        """
        if not is_date_key(date):
            raise ValidationError("Invalid date format. Use YYYY-MM-DD")
        if limit < 1:
            raise ValidationError("limit must be a positive integer")

        empty = JobPage(date=date)
        if include_counts:
            empty.total_count = 0
            empty.pending_count = 0

        collection, base = self.partitions.scope(date)

        try:
            ranked = sorted(
                (_rank(doc) for doc in collection.find(base, {"grade": 1, "job_id": 1})),
                key=lambda r: (-r[0], r[1]),
            )
            if last_grade is not None:
                ranked = [r for r in ranked if _after_cursor(r, last_grade, last_job_id)]

            has_more = len(ranked) > limit
            ranked = ranked[:limit]

            by_id = {}
            if ranked:
                ids = [r[2] for r in ranked]
                by_id = {d["_id"]: d for d in collection.find({**base, "_id": {"$in": ids}})}

            total = pending = None
            if include_counts:
                total = collection.count_documents(base)
                pending = collection.count_documents({**base, **PENDING_FILTER})
        except PyMongoError as e:
            logger.exception("Error fetching jobs for %s: %s", date, e)
            return empty

        jobs = []
        for _, _, oid in ranked:
            job = _to_job(by_id[oid]) if oid in by_id else None
            if job is not None:
                jobs.append(job)

        page = JobPage(
            date=date,
            jobs=jobs,
            has_more=has_more,
            total_count=total,
            pending_count=pending,
        )
        if ranked:
            page.next_grade, page.next_job_id = ranked[-1][0], ranked[-1][1]
        return page

    def _find(self, job_id: str, date: str) -> Optional[dict]:
        scope = self.partitions.scope(date)
        if scope is None:
            return None
        collection, base = scope
        return collection.find_one({**base, "job_id": job_id})

    def _candidate_dates(self, date: Optional[str]) -> List[str]:
        # without a date every partition is searched, newest first
        if date is not None:
            return [date]
        return self.partitions.recent_dates()

    def get_job(self, job_id: str, date: Optional[str] = None) -> Optional[Job]:
        try:
            for d in self._candidate_dates(date):
                doc = self._find(job_id, d)
                if doc is not None:
                    return _to_job(doc)
        except PyMongoError as e:
            logger.exception("Error fetching job with ID %s: %s", job_id, e)
        return None

    def update_job_status(self, job_id: str, status: str, date: Optional[str] = None) -> bool:
        """
        Set ``status`` and ``updated_at`` on one job.

        Success means the store modified a document. Documents that already
        carry ``status`` are not matched, so repeating an update returns False.
        """
        if not status:
            logger.warning("Refusing empty status for job %s", job_id)
            return False
        if status not in STATUS_OPTIONS:
            logger.warning("Job %s set to unknown status %r", job_id, status)

        try:
            for d in self._candidate_dates(date):
                scope = self.partitions.scope(d)
                if scope is None:
                    continue
                collection, base = scope
                if date is None and collection.find_one({**base, "job_id": job_id}, {"_id": 1}) is None:
                    continue
                result = collection.update_one(
                    {**base, "job_id": job_id, "status": {"$ne": status}},
                    {"$set": {"status": status, "updated_at": utc_timestamp()}},
                )
                if result.modified_count > 0:
                    logger.info("✏️ Job %s on %s set to %s", job_id, d, status)
                return result.modified_count > 0
        except PyMongoError as e:
            logger.exception("Error updating job status for job %s: %s", job_id, e)
        return False
