"""
Site endpoints through the Flask dispatcher (auth, posts, search) and the
transport adapter's envelope behaviour.
"""

import asyncio
import socket
from datetime import datetime, timedelta, timezone

from flask import g

from api.dispatch import client_disconnected
from api.serializers import error_envelope, with_request_meta
from services.publishing import publish_due

ARTICLE = {
    "title": "Council approves harbour plan",
    "excerpt": "The vote passed 7-2.",
    "body": "After a four-hour session the council approved the harbour redevelopment plan.",
    "tags": ["Local News", "harbour"],
}


def create_article(client, auth_header, **overrides):
    response = client.post("/api/posts/article", json={**ARTICLE, **overrides}, headers=auth_header("editor"))
    assert response.status_code == 200, response.get_json()
    return response.get_json()["data"]


class TestAuthEndpoints:
    def test_login_returns_token_and_sets_cookie(self, client, password):
        response = client.post("/api/auth/login", json={"email": "editor@example.com", "password": password})

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["user"] == {"id": 2, "email": "editor@example.com", "role": "editor", "displayName": "Editor"}
        cookie = response.headers["Set-Cookie"]
        assert cookie.startswith(f"session={data['token']}")
        assert "HttpOnly" in cookie

    def test_login_cookie_authenticates_me(self, client, password):
        client.post("/api/auth/login", json={"email": "writer@example.com", "password": password})
        response = client.get("/api/auth/me")

        assert response.status_code == 200
        assert response.get_json()["data"]["role"] == "writer"

    def test_bad_password_is_401(self, client):
        response = client.post("/api/auth/login", json={"email": "editor@example.com", "password": "wrong"})

        assert response.status_code == 401
        assert "Set-Cookie" not in response.headers

    def test_logout_clears_cookie(self, client):
        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.headers["Set-Cookie"].startswith("session=;")

    def test_me_requires_authentication(self, client):
        assert client.get("/api/auth/me").status_code == 401


class TestPostEndpoints:
    def test_article_lifecycle(self, client, auth_header):
        created = create_article(client, auth_header)
        assert created["status"] == "draft"
        assert created["tags"] == ["local-news", "harbour"]

        # Drafts are not listed by default
        listed = client.get("/api/posts").get_json()["data"]
        assert listed["total"] == 0

        patched = client.patch(
            f"/api/posts/{created['uuid']}",
            json={"status": "published", "title": "Council approves harbour plan 7-2"},
            headers=auth_header("editor"),
        ).get_json()["data"]
        assert patched["status"] == "published"
        assert patched["publishedAt"] is not None

        listed = client.get("/api/posts?kind=article&tag=harbour").get_json()["data"]
        assert [p["uuid"] for p in listed["items"]] == [created["uuid"]]

        fetched = client.get(f"/api/posts/{created['uuid']}").get_json()["data"]
        assert fetched["title"] == "Council approves harbour plan 7-2"

    def test_list_pagination_bounds(self, client):
        response = client.get("/api/posts?limit=101")
        assert response.status_code == 400
        assert response.get_json()["error"]["fields"][0]["field"] == "limit"

    def test_get_unknown_post_is_404(self, client):
        response = client.get("/api/posts/does-not-exist")
        assert response.status_code == 404
        assert response.get_json()["error"]["kind"] == "NotFoundError"

    def test_writer_cannot_create_article(self, client, auth_header):
        response = client.post("/api/posts/article", json=ARTICLE, headers=auth_header("writer"))
        assert response.status_code == 403

    def test_gallery_fields_rejected_on_article(self, client, auth_header):
        created = create_article(client, auth_header)
        response = client.patch(
            f"/api/posts/{created['uuid']}", json={"credits": "x"}, headers=auth_header("editor"),
        )
        assert response.status_code == 400
        assert response.get_json()["error"]["fields"] == [{"field": "credits", "message": "Only gallery posts carry this field"}]

    def test_delete_is_admin_only(self, client, auth_header):
        created = create_article(client, auth_header)

        assert client.delete(f"/api/posts/{created['uuid']}", headers=auth_header("editor")).status_code == 403
        response = client.delete(f"/api/posts/{created['uuid']}", headers=auth_header("admin"))
        assert response.get_json()["data"] == {"uuid": created["uuid"], "deleted": True}
        assert client.get(f"/api/posts/{created['uuid']}").status_code == 404

    def test_schedule_and_publish(self, client, services, auth_header):
        created = create_article(client, auth_header)
        publish_at = datetime.now(timezone.utc) + timedelta(hours=2)

        response = client.post(
            f"/api/posts/{created['uuid']}/schedule",
            json={"publishAt": publish_at.isoformat()},
            headers=auth_header("editor"),
        )

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["status"] == "scheduled"
        assert data["jobId"]

        published = asyncio.run(publish_due(services, now=publish_at + timedelta(seconds=1)))
        assert published == [created["uuid"]]
        assert client.get(f"/api/posts/{created['uuid']}").get_json()["data"]["status"] == "published"

    def test_schedule_in_past_is_400(self, client, auth_header):
        created = create_article(client, auth_header)
        response = client.post(
            f"/api/posts/{created['uuid']}/schedule",
            json={"publishAt": "2001-01-01T00:00:00Z"},
            headers=auth_header("editor"),
        )
        assert response.status_code == 400
        assert response.get_json()["error"]["fields"][0]["field"] == "publishAt"

    def test_schedule_of_post_deleted_midway_is_404(self, client, services, auth_header, monkeypatch):
        created = create_article(client, auth_header)
        schedule = services.scheduler.schedule

        async def schedule_then_delete(post_uuid, run_at):
            job = await schedule(post_uuid, run_at)
            await services.posts.delete(post_uuid)
            return job

        monkeypatch.setattr(services.scheduler, "schedule", schedule_then_delete)
        response = client.post(
            f"/api/posts/{created['uuid']}/schedule",
            json={"publishAt": (datetime.now(timezone.utc) + timedelta(hours=1)).isoformat()},
            headers=auth_header("editor"),
        )

        assert response.status_code == 404
        assert services.scheduler.jobs == []

    def test_patch_rejects_explicit_null(self, client, auth_header):
        created = create_article(client, auth_header)

        response = client.patch(
            f"/api/posts/{created['uuid']}",
            json={"title": None, "mainImageCaption": None, "status": None},
            headers=auth_header("editor"),
        )

        assert response.status_code == 400
        assert {f["field"] for f in response.get_json()["error"]["fields"]} == {"title", "mainImageCaption", "status"}
        fetched = client.get(f"/api/posts/{created['uuid']}")
        assert fetched.status_code == 200
        assert fetched.get_json()["data"]["title"] == ARTICLE["title"]

    def test_patch_with_null_tags_clears_them(self, client, auth_header):
        created = create_article(client, auth_header)

        response = client.patch(
            f"/api/posts/{created['uuid']}", json={"tags": None}, headers=auth_header("editor"),
        )

        assert response.status_code == 200
        assert response.get_json()["data"]["tags"] == []


class TestSearchEndpoint:
    def test_search_finds_published_posts(self, client, auth_header):
        create_article(client, auth_header, publish=True)
        create_article(client, auth_header, title="Unrelated draft", body="Nothing to see")

        response = client.get("/api/search?q=harbour")

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["query"] == "harbour"
        assert [hit["title"] for hit in data["hits"]] == [ARTICLE["title"]]

    def test_query_too_short(self, client):
        response = client.get("/api/search?q=h")
        assert response.status_code == 400
        assert response.get_json()["error"]["fields"][0]["field"] == "q"


class TestTransport:
    def test_unmatched_route_uses_envelope(self, client):
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        body = response.get_json()
        assert body["ok"] is False
        assert body["error"]["kind"] == "NotFoundError"

    def test_wrong_method_is_404(self, client):
        assert client.put("/api/posts").status_code == 404

    def test_non_json_body_is_400(self, client, auth_header):
        response = client.post(
            "/api/posts/article", data="title=x", headers={**auth_header("editor"), "Content-Type": "text/plain"},
        )
        assert response.status_code == 400
        assert response.get_json()["error"]["fields"][0]["field"] == "body"

    def test_request_id_is_echoed(self, client):
        response = client.get("/api/posts", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.get_json()["meta"]["requestId"] == "req-123"

    def test_malformed_request_id_is_replaced(self, client):
        response = client.get("/api/posts", headers={"X-Request-ID": "bad id\twith spaces"})
        assert response.headers["X-Request-ID"] != "bad id\twith spaces"

    def test_health(self, client):
        assert client.get("/health").get_json()["status"] == "healthy"


class TestClientDisconnect:
    """The werkzeug client socket drives the engine's abandonment checks."""

    def test_open_and_closed_peer(self):
        left, right = socket.socketpair()
        try:
            assert client_disconnected(left) is False
            right.close()
            assert client_disconnected(left) is True
        finally:
            left.close()

    def test_disconnected_client_gets_499_and_handler_never_runs(self, client, services, auth_header):
        left, right = socket.socketpair()
        right.close()
        try:
            response = client.post(
                "/api/posts/article",
                json=ARTICLE,
                headers=auth_header("editor"),
                environ_overrides={"werkzeug.socket": left},
            )
        finally:
            left.close()

        assert response.status_code == 499
        assert asyncio.run(services.posts.list(page=1, limit=10, status=None))[1] == 0

    def test_connected_client_is_served(self, client):
        left, right = socket.socketpair()
        try:
            response = client.get("/api/posts", environ_overrides={"werkzeug.socket": left})
        finally:
            left.close()
            right.close()

        assert response.status_code == 200


class TestEnvelopeHelpers:
    def test_error_envelope_carries_request_id(self, app):
        with app.test_request_context("/api/posts"):
            g.request_id = "req-42"
            body = error_envelope("NotFoundError", "Post x not found")

        assert body == {
            "ok": False,
            "error": {"kind": "NotFoundError", "message": "Post x not found"},
            "meta": {"requestId": "req-42"},
        }

    def test_error_envelope_fields_and_no_request(self):
        body = error_envelope("ValidationError", "Invalid input", fields=[{"field": "title", "message": "Required"}])
        assert body["error"]["fields"] == [{"field": "title", "message": "Required"}]
        assert body["meta"] == {}

    def test_with_request_meta_keeps_existing_meta(self, app):
        with app.test_request_context("/api/posts"):
            g.request_id = "req-7"
            body = with_request_meta({"ok": True, "data": [], "meta": {"page": 1}})

        assert body == {"ok": True, "data": [], "meta": {"page": 1, "requestId": "req-7"}}
