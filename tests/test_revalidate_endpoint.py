"""
Unit Tests for the Revalidation Webhook Endpoint and Blog Routes.

Uses Flask's test client against an app wired to a real PageCache and
Revalidator; only the Storyblok client is mocked.

Test Coverage:
    - Method, secret and payload checks (405, 401, 400)
    - Path derivation for blog and non-blog stories
    - Per-path results and partial failure reporting
    - Unexpected errors converted to 500 JSON responses
    - End-to-end: cached page changes only after revalidation
    - Blog page serving, id redirects, nested stories and health check
"""
import copy

import pytest

from errors import AuthorizationError, RevalidationError, StoryblokAPIError
from revalidation import PageCache, Revalidator
from webhook import create_app, check_secret

SECRET = "test-revalidation-secret"


@pytest.fixture
def valid_payload():
    return {
        "text": "The user editor@example.com published the Story Hello Storyblok",
        "action": "published",
        "space_id": 1001,
        "story_id": 501,
        "full_slug": "blog/hello-storyblok",
    }


def _post(client, payload, secret=SECRET, **kwargs):
    query = {"secret": secret} if secret is not None else {}
    return client.post("/api/revalidate", query_string=query, json=payload, **kwargs)


def _edit_first_story(mock_storyblok_client, stories_response, **changes):
    edited = copy.deepcopy(stories_response)
    edited["stories"][0].update(changes)
    mock_storyblok_client.get_stories.side_effect = lambda **kwargs: copy.deepcopy(edited)


class TestCheckSecret:
    """Test the constant-time secret check."""

    def test_matching_secret(self):
        assert check_secret(SECRET, SECRET) is None

    @pytest.mark.parametrize("provided", [None, "", 42, ["x"], "wrong", SECRET + " "])
    def test_mismatch_raises(self, provided):
        with pytest.raises(AuthorizationError):
            check_secret(provided, SECRET)


class TestRequestChecks:
    """Test rejection of malformed or unauthorized requests."""

    @pytest.mark.parametrize("method", ["get", "put", "delete", "patch"])
    def test_non_post_rejected(self, client, method):
        response = getattr(client, method)("/api/revalidate")
        assert response.status_code == 405
        assert response.get_json() == {"message": "Method not allowed"}

    def test_wrong_secret_rejected(self, client, valid_payload):
        response = _post(client, valid_payload, secret="wrong")
        assert response.status_code == 401
        assert response.get_json() == {"message": "Invalid token"}

    def test_wrong_secret_rejected_before_payload_validation(self, client):
        response = _post(client, {"unexpected": True}, secret="wrong")
        assert response.status_code == 401

    def test_missing_secret_rejected(self, client, valid_payload):
        response = _post(client, valid_payload, secret=None)
        assert response.status_code == 401

    def test_secret_in_body_accepted(self, client, valid_payload):
        response = _post(client, {**valid_payload, "secret": SECRET}, secret=None)
        assert response.status_code == 200

    @pytest.mark.parametrize("missing", ["action", "story_id", "full_slug"])
    def test_missing_required_field(self, client, valid_payload, missing):
        del valid_payload[missing]
        response = _post(client, valid_payload)

        assert response.status_code == 400
        data = response.get_json()
        assert data["message"] == "Invalid webhook payload. Required: action, story_id, full_slug"
        assert missing in data["details"]

    @pytest.mark.parametrize("field,value", [("action", ""), ("story_id", 0), ("full_slug", ""), ("story_id", None)])
    def test_empty_required_field(self, client, valid_payload, field, value):
        valid_payload[field] = value
        assert _post(client, valid_payload).status_code == 400

    def test_non_json_body(self, client):
        response = client.post(
            "/api/revalidate",
            query_string={"secret": SECRET},
            data="not json",
            content_type="text/plain"
        )
        assert response.status_code == 400

    def test_unconfigured_secret_refuses_requests(self, page_cache, valid_payload):
        app = create_app(page_cache, config={"revalidation": {}})
        with app.test_client() as unconfigured:
            response = unconfigured.post("/api/revalidate", json=valid_payload)
        assert response.status_code == 500
        assert response.get_json() == {"message": "Revalidation is not configured"}

    def test_secret_from_environment(self, page_cache, valid_payload, monkeypatch):
        monkeypatch.setenv("REVALIDATION_SECRET", "env-secret")
        app = create_app(page_cache, config={"revalidation": {}})
        with app.test_client() as env_client:
            assert _post(env_client, valid_payload, secret="env-secret").status_code == 200
            assert _post(env_client, valid_payload, secret=SECRET).status_code == 401


class TestRevalidation:
    """Test successful revalidation responses."""

    def test_blog_story_revalidates_detail_and_index(self, client, valid_payload, page_cache):
        response = _post(client, valid_payload)

        assert response.status_code == 200
        data = response.get_json()
        assert data["revalidated"] is True
        assert data["webhook"] == {
            "action": "published",
            "story_id": 501,
            "full_slug": "blog/hello-storyblok",
        }
        assert data["paths"] == ["/blog/hello-storyblok", "/blog"]
        assert data["results"] == [
            {"path": "/blog/hello-storyblok", "success": True},
            {"path": "/blog", "success": True},
        ]
        assert data["successCount"] == "2/2"
        assert data["timestamp"]
        assert page_cache.cached_paths() == ["/blog", "/blog/hello-storyblok"]

    def test_paths_for_arbitrary_blog_slug(self, client, valid_payload):
        valid_payload["full_slug"] = "blog/my-post"
        data = _post(client, valid_payload).get_json()

        assert data["paths"] == ["/blog/my-post", "/blog"]
        # No such post in the fixture: its page is simply dropped
        assert data["successCount"] == "2/2"

    def test_non_blog_story_is_a_no_op(self, client, valid_payload, page_cache):
        valid_payload["full_slug"] = "about-us"
        response = _post(client, valid_payload)

        assert response.status_code == 200
        data = response.get_json()
        assert data["message"] == "No paths to revalidate for this story type"
        assert data["full_slug"] == "about-us"
        assert "paths" not in data
        assert page_cache.cached_paths() == []

    def test_partial_failure_reported_per_path(self, client, valid_payload, page_cache, monkeypatch):
        original = page_cache.revalidate

        def flaky_revalidate(path):
            if path == "/blog/hello-storyblok":
                raise RevalidationError(path, "render failed")
            original(path)

        monkeypatch.setattr(page_cache, "revalidate", flaky_revalidate)
        response = _post(client, valid_payload)

        assert response.status_code == 200
        data = response.get_json()
        assert data["successCount"] == "1/2"
        assert data["results"] == [
            {"path": "/blog/hello-storyblok", "success": False,
             "error": "Failed to revalidate /blog/hello-storyblok: render failed"},
            {"path": "/blog", "success": True},
        ]

    def test_upstream_outage_fails_each_path(self, client, valid_payload, mock_storyblok_client):
        mock_storyblok_client.get_stories.side_effect = StoryblokAPIError("HTTP 503", status_code=503)
        data = _post(client, valid_payload).get_json()

        assert data["successCount"] == "0/2"
        assert all(not r["success"] for r in data["results"])

    def test_unexpected_error_returns_500(self, app, client, valid_payload, monkeypatch):
        def explode(paths):
            raise RuntimeError("boom")

        monkeypatch.setattr(app.config["REVALIDATOR"], "revalidate_paths", explode)
        response = _post(client, valid_payload)

        assert response.status_code == 500
        assert response.get_json() == {"message": "Error processing webhook", "error": "boom"}


class TestBlogRoutes:
    """Test page serving through the Flask app."""

    def test_blog_index(self, client):
        response = client.get("/blog")
        assert response.status_code == 200
        assert response.mimetype == "text/html"
        assert b"Hello Storyblok" in response.data

    def test_blog_post(self, client):
        response = client.get("/blog/hello-storyblok")
        assert response.status_code == 200
        assert b"Welcome to the blog." in response.data

    def test_blog_post_by_id_redirects(self, client, page_cache):
        response = client.get("/blog/501")
        assert response.status_code == 301
        assert response.headers["Location"].endswith("/blog/hello-storyblok")
        assert "/blog/501" not in page_cache

    def test_id_url_shows_revalidated_content(self, client, valid_payload, mock_storyblok_client, stories_response):
        assert b"Fresh paragraph" not in client.get("/blog/501", follow_redirects=True).data

        _edit_first_story(
            mock_storyblok_client, stories_response,
            content={"body": [{"component": "text", "content": "Fresh paragraph"}]}
        )
        assert _post(client, valid_payload).get_json()["successCount"] == "2/2"

        response = client.get("/blog/501", follow_redirects=True)
        assert response.status_code == 200
        assert b"Fresh paragraph" in response.data

    def test_nested_story_revalidated(self, client, valid_payload, mock_storyblok_client, stories_response):
        stories_response["stories"][0]["full_slug"] = "blog/2024/hello-storyblok"
        assert client.get("/blog/2024/hello-storyblok").status_code == 200

        _edit_first_story(
            mock_storyblok_client, stories_response,
            content={"body": [{"component": "text", "content": "Fresh paragraph"}]}
        )
        valid_payload["full_slug"] = "blog/2024/hello-storyblok"
        data = _post(client, valid_payload).get_json()

        assert data["paths"] == ["/blog/2024/hello-storyblok", "/blog"]
        assert data["successCount"] == "2/2"
        assert b"Fresh paragraph" in client.get("/blog/2024/hello-storyblok").data
        assert b"Fresh paragraph" in client.get("/blog/hello-storyblok", follow_redirects=True).data

    def test_blog_post_not_found(self, client):
        assert client.get("/blog/nope").status_code == 404

    def test_cold_render_failure_returns_500(self, client, mock_storyblok_client):
        mock_storyblok_client.get_stories.side_effect = StoryblokAPIError("HTTP 503", status_code=503)
        assert client.get("/blog").status_code == 500

    def test_page_updates_only_after_revalidation(self, client, valid_payload, mock_storyblok_client, stories_response):
        assert b"Fresh paragraph" not in client.get("/blog/hello-storyblok").data

        edited = copy.deepcopy(stories_response)
        edited["stories"][0]["content"] = {"body": [{"component": "text", "content": "Fresh paragraph"}]}
        mock_storyblok_client.get_stories.side_effect = lambda **kwargs: copy.deepcopy(edited)

        assert b"Fresh paragraph" not in client.get("/blog/hello-storyblok").data
        assert _post(client, valid_payload).status_code == 200
        assert b"Fresh paragraph" in client.get("/blog/hello-storyblok").data

    def test_stale_page_served_when_revalidation_fails(self, client, valid_payload, mock_storyblok_client):
        client.get("/blog")
        mock_storyblok_client.get_stories.side_effect = StoryblokAPIError("HTTP 500", status_code=500)

        assert _post(client, valid_payload).get_json()["successCount"] == "0/2"
        response = client.get("/blog")
        assert response.status_code == 200
        assert b"Hello Storyblok" in response.data

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "healthy", "cached_pages": 0}
