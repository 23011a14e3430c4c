"""Tests for main.py — HTTP routes."""

import pytest

import db
from main import app, get_partitions


@pytest.fixture
def seeded(seed_dates, make_job):
    seed_dates({
        "2024-03-01": [
            make_job("a1", grade=900),
            make_job("a2", grade=700, status="Applied"),
            make_job("a3", grade=500),
        ],
        "2024-03-02": [make_job("b1", grade=800, experience_required={"$numberInt": "5"})],
        "2024-03-03": [make_job("c1", grade=True)],
    })


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_dates_pages(client, seeded):
    first = client.get("/api/jobs/dates", params={"limit": 2}).json()
    assert first == {"dates": ["2024-03-03", "2024-03-02"], "nextCursor": "2024-03-02", "hasMore": True}

    second = client.get("/api/jobs/dates", params={"limit": 2, "cursor": first["nextCursor"]}).json()
    assert second == {"dates": ["2024-03-01"], "nextCursor": None, "hasMore": False}


def test_dates_bad_limit(client):
    resp = client.get("/api/jobs/dates", params={"limit": "lots"})
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_stats(client, seeded):
    body = client.get("/api/jobs/stats").json()
    assert body["dateStats"][0] == {"date": "2024-03-03", "count": 1}
    assert len(body["dateStats"]) == 3


def test_status_stats(client, seeded):
    body = client.get("/api/jobs/status-stats", params={"limit": 1}).json()
    assert body == {"statusStats": [{"date": "2024-03-03", "totalCount": 1, "pendingCount": 1}]}


def test_list_jobs(client, seeded):
    resp = client.get("/api/jobs/2024-03-01", params={"limit": 2})
    body = resp.json()

    assert resp.status_code == 200
    assert body["date"] == "2024-03-01"
    assert [j["job_id"] for j in body["jobs"]] == ["a1", "a2"]
    assert body["totalCount"] == 3
    assert body["pendingCount"] == 2
    assert body["pagination"] == {"hasMore": True, "nextGrade": 700, "nextJobId": "a2"}


def test_list_jobs_next_page(client, seeded):
    body = client.get("/api/jobs/2024-03-01", params={"limit": 2, "lastGrade": 700}).json()

    assert [j["job_id"] for j in body["jobs"]] == ["a3"]
    assert body["pagination"]["hasMore"] is False


def test_list_jobs_normalised(client, seeded):
    job = client.get("/api/jobs/2024-03-02").json()["jobs"][0]
    assert job["experience_required"] == 5
    assert job["status"] == "Pending"


def test_list_jobs_invalid_date(client):
    resp = client.get("/api/jobs/March-1st")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid date format. Use YYYY-MM-DD"}


def test_list_jobs_empty_partition(client):
    body = client.get("/api/jobs/2019-01-01").json()
    assert body["jobs"] == []
    assert body["totalCount"] == 0
    assert body["pagination"]["hasMore"] is False


def test_get_job(client, seeded):
    resp = client.get("/api/jobs/2024-03-03/c1")
    assert resp.status_code == 200
    assert resp.json()["job"]["grade"] == 1000


def test_get_job_not_found(client, seeded):
    resp = client.get("/api/jobs/2024-03-01/c1")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Job not found"}


def test_update_status(client, seeded):
    resp = client.put("/api/jobs/2024-03-01/a1/status", json={"status": "Interview"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    job = client.get("/api/jobs/2024-03-01/a1").json()["job"]
    assert job["status"] == "Interview"
    assert job["updated_at"].endswith("Z")


def test_update_status_repeat_is_404(client, seeded):
    client.put("/api/jobs/2024-03-01/a1/status", json={"status": "Applied"})
    resp = client.put("/api/jobs/2024-03-01/a1/status", json={"status": "Applied"})
    assert resp.status_code == 404


def test_update_status_unknown_job(client, seeded):
    resp = client.put("/api/jobs/2024-03-01/zzz/status", json={"status": "Applied"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Failed to update job status or job not found"}


@pytest.mark.parametrize("body", [{}, {"status": ""}, {"status": "   "}])
def test_update_status_missing_status(client, seeded, body):
    resp = client.put("/api/jobs/2024-03-01/a1/status", json=body)
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_unexpected_failure_is_generic_500(client, monkeypatch):
    from services import JobPartitionService

    def boom(*args, **kwargs):
        raise RuntimeError("secret connection detail")

    monkeypatch.setattr(JobPartitionService, "list_jobs", boom)
    resp = client.get("/api/jobs/2024-03-01")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to fetch jobs"}


def test_missing_uri_is_500(monkeypatch):
    from fastapi.testclient import TestClient

    monkeypatch.delenv("MONGODB_URI", raising=False)
    monkeypatch.setattr(db, "_client", None)
    app.dependency_overrides.pop(get_partitions, None)

    with TestClient(app) as c:
        resp = c.get("/api/jobs/dates")

    assert resp.status_code == 500
    assert resp.json() == {"error": "MongoDB URI not configured"}


def test_list_jobs_with_odd_documents(client, seed_dates, make_job):
    seed_dates({"2024-03-01": [
        make_job("odd", grade=900, title=404, connect_request=True),
        make_job("nan", grade=float("nan"), experience_required=float("inf")),
    ]})

    resp = client.get("/api/jobs/2024-03-01")
    jobs = resp.json()["jobs"]

    assert resp.status_code == 200
    assert [j["job_id"] for j in jobs] == ["odd", "nan"]
    assert jobs[0]["title"] == 404
    assert jobs[0]["connect_request"] is True
    assert jobs[1]["grade"] is None
    assert jobs[1]["experience_required"] is None


def test_next_grade_can_be_sent_back(client, seed_dates, make_job):
    seed_dates({"2024-03-01": [
        make_job("frac", grade=812.6),
        make_job("legacy", grade={"$numberInt": "640"}),
        make_job("top", grade=950),
    ]})

    first = client.get("/api/jobs/2024-03-01", params={"limit": 2}).json()
    assert first["pagination"]["nextGrade"] == 812

    second = client.get(
        "/api/jobs/2024-03-01",
        params={"limit": 2, "lastGrade": first["pagination"]["nextGrade"]},
    )
    assert second.status_code == 200
    assert [j["job_id"] for j in second.json()["jobs"]] == ["legacy"]
