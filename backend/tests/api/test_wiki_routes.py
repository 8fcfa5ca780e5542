"""Wiki API tests."""

import pytest
from httpx import AsyncClient


@pytest.fixture
async def analyzed_repository_id(api_client: AsyncClient) -> int:
    """Run a full analysis (and the wiki generation it triggers) through the API."""
    response = await api_client.post("/api/analyze", json={"url": "https://github.com/o/r"})
    return response.json()["repository_id"]


async def test_get_wiki_returns_subsystems_and_pages(
    api_client: AsyncClient, analyzed_repository_id: int
):
    response = await api_client.get(f"/api/wiki/{analyzed_repository_id}")

    assert response.status_code == 200
    wiki = response.json()
    assert wiki["has_wiki"] is True
    assert wiki["repository"]["name"] == "r"
    assert wiki["repository"]["analyzed_at"] is not None
    assert [s["name"] for s in wiki["subsystems"]] == ["CLI", "API", "Storage"]
    assert all(s["has_page"] for s in wiki["subsystems"])
    assert len(wiki["pages"]) == 3


async def test_hallucinated_file_not_persisted(
    api_client: AsyncClient, analyzed_repository_id: int
):
    wiki = (await api_client.get(f"/api/wiki/{analyzed_repository_id}")).json()

    api = next(s for s in wiki["subsystems"] if s["name"] == "API")
    assert api["files"] == ["src/demo/api.py"]
    assert api["complexity"] == "medium"


async def test_page_citations_link_to_github(api_client: AsyncClient, analyzed_repository_id: int):
    wiki = (await api_client.get(f"/api/wiki/{analyzed_repository_id}")).json()
    api = next(s for s in wiki["subsystems"] if s["name"] == "API")

    response = await api_client.get(f"/api/wiki/{analyzed_repository_id}/pages/{api['id']}")

    assert response.status_code == 200
    page = response.json()["page"]
    assert page["citations"][0]["url"] == "https://github.com/o/r/blob/main/src/demo/api.py#L1-L2"
    assert page["table_of_contents"][0]["anchor"] == "overview"


async def test_citations_to_files_outside_subsystem_dropped(
    api_client: AsyncClient, analyzed_repository_id: int
):
    wiki = (await api_client.get(f"/api/wiki/{analyzed_repository_id}")).json()
    cli = next(s for s in wiki["subsystems"] if s["name"] == "CLI")

    page = (
        await api_client.get(f"/api/wiki/{analyzed_repository_id}/pages/{cli['id']}")
    ).json()["page"]

    assert page["citations"] == []


async def test_generate_wiki_returns_202(
    api_client: AsyncClient, analyzed_repository_id: int, stub_llm
):
    calls_before = stub_llm.complete.await_count

    response = await api_client.post(
        f"/api/wiki/generate/{analyzed_repository_id}", params={"force": "true"}
    )

    assert response.status_code == 202
    body = response.json()
    assert body["subsystem_count"] == 3
    assert body["force"] is True
    assert stub_llm.complete.await_count == calls_before + 3


async def test_generate_wiki_without_force_skips_existing_pages(
    api_client: AsyncClient, analyzed_repository_id: int, stub_llm
):
    calls_before = stub_llm.complete.await_count

    response = await api_client.post(f"/api/wiki/generate/{analyzed_repository_id}")

    assert response.status_code == 202
    assert stub_llm.complete.await_count == calls_before


async def test_generate_wiki_unknown_repository_returns_404(api_client: AsyncClient):
    response = await api_client.post("/api/wiki/generate/999")

    assert response.status_code == 404


async def test_generate_wiki_without_subsystems_returns_404(api_client: AsyncClient, store):
    repository = store.insert_repository(url="https://github.com/o/empty", owner="o", name="empty")

    response = await api_client.post(f"/api/wiki/generate/{repository.id}")

    assert response.status_code == 404
    assert "No subsystems" in response.json()["detail"]


async def test_unknown_wiki_and_page_return_404(
    api_client: AsyncClient, analyzed_repository_id: int
):
    assert (await api_client.get("/api/wiki/999")).status_code == 404
    missing_page = await api_client.get(f"/api/wiki/{analyzed_repository_id}/pages/999")
    assert missing_page.status_code == 404


async def test_wiki_before_generation_has_no_pages(api_client: AsyncClient, store):
    repository = store.insert_repository(url="https://github.com/o/new", owner="o", name="new")

    wiki = (await api_client.get(f"/api/wiki/{repository.id}")).json()

    assert wiki["has_wiki"] is False
    assert wiki["subsystems"] == []
