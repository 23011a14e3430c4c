# main.py
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

import config
from db import build_partitions, close_client, get_database
from errors import JobsError, NotFoundError, PersistenceError
from models import StatusUpdate
from partitions import Partitions
from services import DateDirectoryService, JobPartitionService

# ------------------------------
# Logging
# ------------------------------
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("jobs.app")


# ------------------------------
# Dependencies
# ------------------------------
def get_partitions() -> Partitions:
    return build_partitions(get_database())


def get_date_directory(partitions: Partitions = Depends(get_partitions)) -> DateDirectoryService:
    return DateDirectoryService(partitions)


def get_job_partitions(partitions: Partitions = Depends(get_partitions)) -> JobPartitionService:
    return JobPartitionService(partitions)


@contextmanager
def failure_message(message: str):
    """Anything unexpected inside the block becomes a 500 carrying only ``message``."""
    try:
        yield
    except JobsError:
        raise
    except Exception as e:
        logger.exception("%s: %s", message, e)
        raise PersistenceError(message) from e


# ------------------------------
# FastAPI setup
# ------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Job dashboard API starting (partition scheme: %s).", config.JOB_PARTITION_SCHEME)
    yield
    close_client()


app = FastAPI(title="Job Application Dashboard", lifespan=lifespan)


@app.exception_handler(JobsError)
async def jobs_error_handler(request: Request, exc: JobsError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ())[1:]) or "request"
        message = f"Invalid {field}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


# ------------------------------
# Routes
# ------------------------------
@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/jobs/dates")
def list_job_dates(
    limit: int = 10,
    cursor: Optional[str] = None,
    offset: int = 0,
    directory: DateDirectoryService = Depends(get_date_directory),
):
    with failure_message("Failed to fetch job dates"):
        page = directory.list_dates(limit=limit, cursor=cursor, offset=offset)
    return {"dates": page.dates, "nextCursor": page.next_cursor, "hasMore": page.has_more}


@app.get("/api/jobs/stats")
def job_stats(limit: int = 10, directory: DateDirectoryService = Depends(get_date_directory)):
    with failure_message("Failed to fetch job statistics"):
        stats = directory.date_counts(limit)
    return {"dateStats": stats}


@app.get("/api/jobs/status-stats")
def job_status_stats(limit: int = 10, directory: DateDirectoryService = Depends(get_date_directory)):
    with failure_message("Failed to fetch job status statistics"):
        stats = directory.status_counts(limit)
    return {
        "statusStats": [
            {"date": s.date, "totalCount": s.total_count, "pendingCount": s.pending_count}
            for s in stats
        ]
    }


@app.get("/api/jobs/{date}")
def list_jobs(
    date: str,
    limit: int = 20,
    last_grade: Optional[int] = Query(None, alias="lastGrade"),
    last_job_id: Optional[str] = Query(None, alias="lastJobId"),
    jobs: JobPartitionService = Depends(get_job_partitions),
):
    with failure_message("Failed to fetch jobs"):
        page = jobs.list_jobs(date, limit=limit, last_grade=last_grade, last_job_id=last_job_id)
    return {
        "date": page.date,
        "jobs": [j.model_dump() for j in page.jobs],
        "totalCount": page.total_count,
        "pendingCount": page.pending_count,
        "pagination": {
            "hasMore": page.has_more,
            "nextGrade": page.next_grade,
            "nextJobId": page.next_job_id,
        },
    }


@app.get("/api/jobs/{date}/{job_id}")
def get_job(date: str, job_id: str, jobs: JobPartitionService = Depends(get_job_partitions)):
    with failure_message("Failed to fetch job"):
        job = jobs.get_job(job_id, date)
    if job is None:
        raise NotFoundError("Job not found")
    return {"job": job.model_dump()}


@app.put("/api/jobs/{date}/{job_id}/status")
def update_job_status(
    date: str,
    job_id: str,
    body: StatusUpdate,
    jobs: JobPartitionService = Depends(get_job_partitions),
):
    with failure_message("Failed to update job status"):
        updated = jobs.update_job_status(job_id, body.status, date)
    if not updated:
        raise NotFoundError("Failed to update job status or job not found")
    return {"success": True}
