"""Analysis API tests."""

from unittest.mock import AsyncMock, patch

from httpx import AsyncClient

from repowiki.llm.client import LLMMalformedResponseError
from repowiki.repo.github import GitHubNotFoundError, GitHubRateLimitError


async def test_analyze_returns_202_and_runs_job(api_client: AsyncClient):
    """POST /api/analyze accepts the request and the job runs to completion."""
    response = await api_client.post("/api/analyze", json={"url": "https://github.com/o/r"})

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "pending"
    assert body["message"] == "Analysis started"

    status = await api_client.get(f"/api/analyze/{body['job_id']}")

    assert status.status_code == 200
    job = status.json()
    assert job["status"] == "completed"
    assert job["progress"] == 100
    assert job["repository_id"] == body["repository_id"]
    assert job["repository_name"] == "o/r"
    assert job["result"]["subsystem_count"] == 3
    assert any("src/demo/ghost.py" in w for w in job["result"]["warnings"])
    assert job["error_message"] is None


async def test_same_repository_reuses_id(api_client: AsyncClient):
    first = await api_client.post("/api/analyze", json={"url": "https://github.com/o/r"})
    second = await api_client.post("/api/analyze", json={"url": "git@github.com:o/r.git"})

    assert first.json()["repository_id"] == second.json()["repository_id"]
    assert first.json()["job_id"] != second.json()["job_id"]


async def test_invalid_url_returns_400(api_client: AsyncClient):
    response = await api_client.post("/api/analyze", json={"url": "https://example.com/o/r"})

    assert response.status_code == 400
    assert "Invalid GitHub repository URL" in response.json()["detail"]


async def test_missing_url_returns_422(api_client: AsyncClient):
    response = await api_client.post("/api/analyze", json={})

    assert response.status_code == 422


async def test_repository_missing_on_github_returns_404(api_client: AsyncClient, fake_source):
    missing = AsyncMock(side_effect=GitHubNotFoundError("Not found on GitHub: o/r"))

    with patch.object(fake_source, "get_repository_metadata", missing):
        response = await api_client.post("/api/analyze", json={"url": "https://github.com/o/r"})

    assert response.status_code == 404


async def test_github_rate_limit_returns_429(api_client: AsyncClient, fake_source):
    limited = AsyncMock(side_effect=GitHubRateLimitError("rate limited", retry_after=60))

    with patch.object(fake_source, "get_repository_metadata", limited):
        response = await api_client.post("/api/analyze", json={"url": "https://github.com/o/r"})

    assert response.status_code == 429


async def test_unknown_job_returns_404(api_client: AsyncClient):
    response = await api_client.get("/api/analyze/does-not-exist")

    assert response.status_code == 404


async def test_failed_job_reports_error(api_client: AsyncClient, stub_llm):
    stub_llm.complete.side_effect = LLMMalformedResponseError(
        "LLM returned an empty response", raw_response=""
    )

    response = await api_client.post("/api/analyze", json={"url": "https://github.com/o/r"})
    job = (await api_client.get(f"/api/analyze/{response.json()['job_id']}")).json()

    assert job["status"] == "failed"
    assert "Malformed analysis response" in job["error_message"]
