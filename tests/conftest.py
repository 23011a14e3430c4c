"""Shared fixtures: an in-memory MongoDB, job factory and an API client."""

import mongomock
import pytest
from fastapi.testclient import TestClient

from partitions import DateCollectionPartitions, DateFieldPartitions


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["job_list"]


@pytest.fixture
def make_job():
    """Factory for raw job documents as the scraper stores them."""

    def _make(job_id, grade=500, **overrides):
        doc = {
            "job_id": job_id,
            "title": "Backend Engineer",
            "company": "TestCorp",
            "work_location": "Remote",
            "work_style": "Remote",
            "description": "Build and run APIs.",
            "experience_required": 3,
            "skills": ["Python", "MongoDB"],
            "grade": grade,
            "date_listed": "2024-03-01",
            "date_applied": "Pending",
            "created_at": "2024-03-01T08:00:00.000Z",
            "job_link": f"https://example.com/jobs/{job_id}",
            "questions": [],
        }
        doc.update(overrides)
        return doc

    return _make


@pytest.fixture
def collection_partitions(mongo_db):
    return DateCollectionPartitions(mongo_db)


@pytest.fixture
def field_partitions(mongo_db):
    return DateFieldPartitions(mongo_db)


@pytest.fixture
def seed_dates(mongo_db):
    """Insert documents into per-date collections: seed_dates({"2024-03-01": [doc, ...]})."""

    def _seed(by_date):
        for date, docs in by_date.items():
            if docs:
                mongo_db[f"job_applications_{date}"].insert_many([dict(d) for d in docs])

    return _seed


@pytest.fixture
def seed_shared(mongo_db):
    """Insert documents into the shared collection, tagging each with scraped_on."""

    def _seed(by_date):
        for date, docs in by_date.items():
            mongo_db["job_applications"].insert_many(
                [dict(d, scraped_on=date) for d in docs]
            )

    return _seed


@pytest.fixture
def client(collection_partitions):
    from main import app, get_partitions

    app.dependency_overrides[get_partitions] = lambda: collection_partitions
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
