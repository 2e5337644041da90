"""
Tests for the HTTP API.
"""

import base64

import pytest
from fastapi.testclient import TestClient

from nodeblog.main import create_app


TOKEN = "test-token"
AUTH = {"Authorization": f"Bearer {TOKEN}"}


@pytest.fixture
def client(node):
    app = create_app(node=node, auth_token=TOKEN)
    with TestClient(app) as client:
        yield client


class TestAuth:

    def test_missing_token(self, client):
        response = client.get("/v1/blogs/posts")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_wrong_token(self, client):
        response = client.get("/v1/blogs/posts", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_wrong_scheme(self, client):
        response = client.get("/v1/blogs/posts", headers={"Authorization": f"Basic {TOKEN}"})
        assert response.status_code == 401

    def test_post_requires_token(self, client, node):
        response = client.post("/v1/blogs/posts", json={"text": "hello"})
        assert response.status_code == 401
        assert node.store.get_message_count() == 0


class TestBlogPosts:

    def test_empty_feed(self, client):
        response = client.get("/v1/blogs/posts", headers=AUTH)
        assert response.status_code == 200
        assert response.json() == []

    def test_create_and_list(self, client, local_author):
        created = client.post("/v1/blogs/posts", json={"text": "hello"}, headers=AUTH)
        assert created.status_code == 200
        body = created.json()
        assert body["text"] == "hello"
        assert body["authorStatus"] == "ourselves"

        posts = client.get("/v1/blogs/posts", headers=AUTH).json()
        assert len(posts) == 1
        assert posts[0] == body

    def test_bytes_are_base64(self, client, local_author):
        body = client.post("/v1/blogs/posts", json={"text": "hello"}, headers=AUTH).json()

        author = body["author"]
        assert base64.b64decode(author["id"]) == local_author.id
        assert base64.b64decode(author["publicKey"]) == local_author.public_key
        assert author["formatVersion"] == 1
        assert author["name"] == "alice"
        assert len(base64.b64decode(body["id"])) == 32
        assert body["parentId"] is None

    def test_private_key_not_exposed(self, client, local_author):
        client.post("/v1/blogs/posts", json={"text": "hello"}, headers=AUTH)
        raw = client.get("/v1/blogs/posts", headers=AUTH).text

        assert base64.b64encode(local_author.private_key).decode("ascii") not in raw
        assert "privateKey" not in raw

    def test_text_too_long(self, client, node):
        response = client.post(
            "/v1/blogs/posts",
            json={"text": "a" * 40000},
            headers=AUTH,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Blog post text is too long"
        assert node.store.get_message_count() == 0

    def test_unencodable_text(self, client, node):
        client.post("/v1/blogs/posts", json={"text": "before"}, headers=AUTH)

        response = client.post(
            "/v1/blogs/posts",
            content=b'{"text": "a\\ud800b"}',
            headers={**AUTH, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Blog post text is not valid UTF-8"
        assert node.store.get_message_count() == 1

    def test_missing_text(self, client):
        response = client.post("/v1/blogs/posts", json={}, headers=AUTH)
        assert response.status_code == 422

    def test_feed_order(self, client, clock):
        client.post("/v1/blogs/posts", json={"text": "first"}, headers=AUTH)
        clock.advance(1)
        client.post("/v1/blogs/posts", json={"text": "second"}, headers=AUTH)

        posts = client.get("/v1/blogs/posts", headers=AUTH).json()
        assert [p["text"] for p in posts] == ["first", "second"]
        assert posts[0]["timeReceived"] < posts[1]["timeReceived"]


class TestSystem:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_detailed(self, client):
        response = client.get("/health/detailed")
        assert response.status_code == 200
        checks = response.json()["checks"]
        assert checks["identity"]["author_name"] == "alice"
        assert checks["blog_store"]["status"] == "healthy"

    def test_metrics(self, client):
        client.post("/v1/blogs/posts", json={"text": "hello"}, headers=AUTH)
        summary = client.get("/metrics").json()
        assert summary["posts_created"] >= 1
        assert summary["requests_total"] >= 1

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
