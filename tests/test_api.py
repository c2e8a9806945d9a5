from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from inkfinder.search.pipeline import SearchPipeline


@pytest.fixture()
def client(pipeline: SearchPipeline) -> TestClient:
    return TestClient(create_app(pipeline))


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_chat_routes_search_requests(client: TestClient) -> None:
    response = client.post("/chat", json={"text": "show me arm tattoos"})

    assert response.status_code == 200
    body = response.json()
    assert body["isImageSearch"] is True
    assert body["searchParams"]["type"] == "bodyPart"
    assert [item["filename"] for item in body["results"]] == ["rose.jpg", "skull.jpg"]
    assert body["results"][0]["attributes"]["bodyPart"] == "arm"
    assert body["response"] == "Here are 2 images with tattoos on the arm."
    assert body["error"] is None


def test_chat_ignores_ordinary_messages(client: TestClient) -> None:
    body = client.post("/chat", json={"text": "what time is it?"}).json()

    assert body["isImageSearch"] is False
    assert body["results"] == []


def test_chat_missing_reference_is_not_found(client: TestClient) -> None:
    response = client.post("/chat", json={"text": "find images similar to local:missing/ghost.jpg"})

    assert response.status_code == 404


def test_search_pages(client: TestClient) -> None:
    payload = {"intent": {"type": "bodyPart", "part": "arm"}, "page": 1, "pageSize": 1}

    body = client.post("/search", json=payload).json()

    assert body["totalCount"] == 2
    assert body["page"] == 1
    assert [item["path"] for item in body["results"]] == ["local:arm/skull.jpg"]


def test_search_ambiguity_is_reported_not_raised(client: TestClient) -> None:
    body = client.post("/search", json={"intent": {"type": "path"}}).json()

    assert body["results"] == []
    assert body["error"]


def test_search_similar_upload(client: TestClient, embedder) -> None:
    response = client.post(
        "/search/similar",
        files={"image": ("query.png", b"\x89PNG fake", "image/png")},
        data={"limit": "2"},
    )

    assert response.status_code == 200
    body = response.json()
    assert [item["path"] for item in body["results"]] == ["local:arm/rose.jpg", "local:arm/skull.jpg"]
    assert body["results"][0]["similarity"] == pytest.approx(1.0)
    assert embedder.calls == [b"\x89PNG fake"]


def test_search_similar_without_embedder_is_bad_gateway(store, settings) -> None:
    client = TestClient(create_app(SearchPipeline(store=store, settings=settings)))

    response = client.post("/search/similar", files={"image": ("q.png", b"bytes", "image/png")})

    assert response.status_code == 502


def test_browse_endpoints(client: TestClient) -> None:
    assert client.get("/body-parts").json() == {"counts": {"arm": 2, "back": 1, "leg": 1}}
    folders = {item["path"]: item["count"] for item in client.get("/folders").json()["folders"]}
    assert folders["local:leg"] == 1


def test_search_with_non_numeric_limit_uses_default(client: TestClient) -> None:
    response = client.post("/search", json={"intent": {"type": "bodyPart", "part": "arm", "limit": "lots"}})

    assert response.status_code == 200
    assert response.json()["totalCount"] == 2


def test_search_similar_rejects_empty_upload(client: TestClient, embedder) -> None:
    response = client.post("/search/similar", files={"image": ("empty.png", b"", "image/png")})

    assert response.status_code == 400
    assert embedder.calls == []


def test_chat_store_failure_is_not_a_server_error(client: TestClient, store) -> None:
    with store._connect() as conn:
        conn.execute("DROP TABLE image_embeddings")

    response = client.post("/chat", json={"text": "find images similar to local:arm/rose.jpg"})

    assert response.status_code == 200
    body = response.json()
    assert body["results"] == []
    assert body["error"]
