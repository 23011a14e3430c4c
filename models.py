# models.py
import math
import re
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import field_validator
from sqlmodel import SQLModel, Field

DATE_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MAX_GRADE = 1000


class JobStatus(str, Enum):
    PENDING = "Pending"
    APPLIED = "Applied"
    INTERVIEW = "Interview"
    REJECTED = "Rejected"
    OFFER = "Offer"
    HIRED = "Hired"
    DECLINED = "Declined"
    EXPIRED = "Expired"


STATUS_OPTIONS = [s.value for s in JobStatus]


def is_date_key(value: Any) -> bool:
    return isinstance(value, str) and bool(DATE_KEY.match(value))


def unbox_number(value: Any) -> Any:
    """
    Unwrap extended-JSON numbers such as {"$numberInt": "5"}.

    Anything that is not a single-key box is returned unchanged.
    """
    if isinstance(value, dict) and len(value) == 1:
        key, inner = next(iter(value.items()))
        if key in ("$numberInt", "$numberLong", "$numberDouble"):
            return inner
    return value


def _to_number(value: Any) -> Union[int, float, None]:
    """Finite int or float, or None when the value is not a usable number."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    return None


def _to_int(value: Any) -> Optional[int]:
    number = _to_number(value)
    return None if number is None else int(number)


def normalize_grade(value: Any) -> Optional[int]:
    # legacy records stored a boolean "good match" flag instead of a score
    if value is True:
        return MAX_GRADE
    grade = _to_int(unbox_number(value))
    if grade is None:
        return None
    return max(0, min(grade, MAX_GRADE))


def normalize_experience(value: Any) -> Union[int, float, None]:
    number = _to_number(unbox_number(value))
    if isinstance(number, float) and not number.is_integer():
        return number
    return None if number is None else int(number)


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _iso_dates(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class Job(SQLModel):
    id: Optional[str] = None  # str(_id)
    job_id: Optional[str] = None
    title: Any = None
    company: Any = None
    work_location: Any = None
    work_style: Any = None
    description: Any = None
    experience_required: Union[int, float, None] = None
    skills: Any = None  # list or one delimited string
    grade: Optional[int] = None
    date_listed: Any = None
    date_applied: Any = None  # "Pending" until applied
    created_at: Any = None
    scraped_on: Any = None
    updated_at: Any = None
    status: str = JobStatus.PENDING.value
    job_link: Any = None
    application_link: Any = None
    hr_link: Any = None
    hr_name: Any = None
    resume: Any = None
    connect_request: Any = None
    reposted: Any = None
    questions: Any = Field(default_factory=list)  # Q&A pairs, stored shape varies

    @field_validator("job_id", mode="before")
    @classmethod
    def _job_id(cls, v):
        return _to_text(v)

    @field_validator("grade", mode="before")
    @classmethod
    def _grade(cls, v):
        return normalize_grade(v)

    @field_validator("experience_required", mode="before")
    @classmethod
    def _experience(cls, v):
        return normalize_experience(v)

    @field_validator("date_listed", "date_applied", "created_at", "scraped_on", "updated_at", mode="before")
    @classmethod
    def _dates(cls, v):
        return _iso_dates(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _to_text(v) or JobStatus.PENDING.value

    @field_validator("questions", mode="before")
    @classmethod
    def _questions(cls, v):
        return [] if v is None else v

    @classmethod
    def from_document(cls, doc: dict) -> "Job":
        data = dict(doc)
        oid = data.pop("_id", None)
        if oid is not None:
            data["id"] = str(oid)
        return cls.model_validate(data)


class JobPage(SQLModel):
    date: str
    jobs: List[Job] = Field(default_factory=list)
    has_more: bool = False
    next_grade: Optional[int] = None
    next_job_id: Optional[str] = None
    total_count: Optional[int] = None
    pending_count: Optional[int] = None


class DatePage(SQLModel):
    dates: List[str] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


class PartitionCount(SQLModel):
    date: str
    total_count: int = 0
    pending_count: int = 0


class StatusUpdate(SQLModel):
    status: str = Field(min_length=1)

    @field_validator("status", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v
