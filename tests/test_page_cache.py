"""
Tests for the page cache and its revalidation primitive.

The cache sits on a real PageRenderer and BlogContentService; only the
Storyblok client is mocked, so the tests can change what "Storyblok"
returns between renders.
"""
import copy

import pytest

from errors import RevalidationError, StoryblokAPIError
from pages import resolve_route, normalize_path, Route


def _set_stories(mock_client, data):
    mock_client.get_stories.side_effect = lambda **kwargs: copy.deepcopy(data)


class TestRouting:
    """Test path normalization and route resolution."""

    def test_index_route(self):
        assert resolve_route("/blog") == Route("index")
        assert resolve_route("/blog/") == Route("index")

    def test_post_route(self):
        assert resolve_route("/blog/my-post") == Route("post", "my-post")

    def test_nested_post_route(self):
        assert resolve_route("/blog/2024/hello/") == Route("post", "2024/hello")

    @pytest.mark.parametrize("path", ["/", "/about", "/blogs", "/blogs/x"])
    def test_unknown_routes(self, path):
        assert resolve_route(path) is None

    def test_normalize_strips_query_and_trailing_slash(self):
        assert normalize_path("/blog/x/?preview=1") == "/blog/x"
        assert normalize_path("/") == "/"


class TestGet:
    """Test serving pages from the cache."""

    def test_index_rendered_once_then_cached(self, page_cache, mock_storyblok_client):
        first = page_cache.get("/blog")
        second = page_cache.get("/blog/")

        assert first.status == 200
        assert "Hello Storyblok" in first.html
        assert second is first
        assert mock_storyblok_client.get_stories.call_count == 1
        assert "/blog" in page_cache

    def test_post_page_by_slug(self, page_cache):
        page = page_cache.get("/blog/hello-storyblok")
        assert page.status == 200
        assert "Welcome to the blog." in page.html
        assert "A plain text block." in page.html
        assert "Post ID: 501" in page.html

    def test_post_id_redirects_to_canonical_path(self, page_cache):
        page = page_cache.get("/blog/502")
        assert page.status == 301
        assert page.location == "/blog/second-post"
        assert "/blog/502" not in page_cache

    def test_nested_story_served_at_full_slug(self, page_cache, mock_storyblok_client, stories_response):
        stories_response["stories"][0]["full_slug"] = "blog/2024/hello-storyblok"
        _set_stories(mock_storyblok_client, stories_response)

        page = page_cache.get("/blog/2024/hello-storyblok")
        assert page.status == 200
        assert "Welcome to the blog." in page.html

        alias = page_cache.get("/blog/hello-storyblok")
        assert alias.status == 301
        assert alias.location == "/blog/2024/hello-storyblok"
        assert page_cache.cached_paths() == ["/blog/2024/hello-storyblok"]

    def test_index_links_to_canonical_paths(self, page_cache, mock_storyblok_client, stories_response):
        stories_response["stories"][0]["full_slug"] = "blog/2024/hello-storyblok"
        _set_stories(mock_storyblok_client, stories_response)

        html = page_cache.get("/blog").html
        assert 'href="/blog/2024/hello-storyblok"' in html
        assert 'href="/blog/second-post"' in html

    def test_missing_post_is_404_and_not_cached(self, page_cache):
        page = page_cache.get("/blog/does-not-exist")
        assert page.status == 404
        assert "/blog/does-not-exist" not in page_cache

    def test_unknown_path_is_404(self, page_cache, mock_storyblok_client):
        assert page_cache.get("/about").status == 404
        mock_storyblok_client.get_stories.assert_not_called()

    def test_cold_render_failure_propagates(self, page_cache, mock_storyblok_client):
        mock_storyblok_client.get_stories.side_effect = StoryblokAPIError("HTTP 503", status_code=503)
        with pytest.raises(StoryblokAPIError):
            page_cache.get("/blog")

    def test_html_is_escaped(self, page_cache, mock_storyblok_client, stories_response):
        stories_response["stories"][0]["name"] = "<script>alert(1)</script>"
        _set_stories(mock_storyblok_client, stories_response)

        html = page_cache.get("/blog").html
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html

    def test_page_embeds_post_data(self, page_cache):
        html = page_cache.get("/blog/hello-storyblok").html
        assert 'id="page-data"' in html
        assert '"fullSlug": "blog/hello-storyblok"' in html


class TestRevalidate:
    """Test the revalidation primitive."""

    def test_revalidate_replaces_cached_page(self, page_cache, mock_storyblok_client, stories_response):
        page_cache.get("/blog/hello-storyblok")

        stories_response["stories"][0]["content"] = {"body": [{"component": "text", "content": "Edited body"}]}
        _set_stories(mock_storyblok_client, stories_response)

        # Still stale until revalidated
        assert "Edited body" not in page_cache.get("/blog/hello-storyblok").html

        page_cache.revalidate("/blog/hello-storyblok")
        assert "Edited body" in page_cache.get("/blog/hello-storyblok").html

    def test_revalidate_uncached_path_caches_it(self, page_cache):
        page_cache.revalidate("/blog")
        assert "/blog" in page_cache

    def test_failed_revalidation_keeps_stale_page(self, page_cache, mock_storyblok_client):
        original = page_cache.get("/blog")
        mock_storyblok_client.get_stories.side_effect = StoryblokAPIError("HTTP 500", status_code=500)

        with pytest.raises(RevalidationError) as exc_info:
            page_cache.revalidate("/blog")

        assert exc_info.value.path == "/blog"
        assert "Failed to revalidate /blog" in str(exc_info.value)
        assert page_cache.peek("/blog") is original

    def test_removed_post_is_evicted(self, page_cache, mock_storyblok_client, stories_response):
        page_cache.get("/blog/second-post")
        stories_response["stories"] = [s for s in stories_response["stories"] if s["slug"] != "second-post"]
        _set_stories(mock_storyblok_client, stories_response)

        page_cache.revalidate("/blog/second-post")

        assert "/blog/second-post" not in page_cache
        assert page_cache.get("/blog/second-post").status == 404

    def test_moved_post_is_evicted_from_old_path(self, page_cache, mock_storyblok_client, stories_response):
        page_cache.get("/blog/hello-storyblok")
        stories_response["stories"][0]["full_slug"] = "blog/archive/hello-storyblok"
        _set_stories(mock_storyblok_client, stories_response)

        page_cache.revalidate("/blog/hello-storyblok")

        assert "/blog/hello-storyblok" not in page_cache
        assert page_cache.get("/blog/hello-storyblok").location == "/blog/archive/hello-storyblok"

    def test_revalidating_an_alias_caches_nothing(self, page_cache):
        page_cache.revalidate("/blog/501")
        assert page_cache.cached_paths() == []

    def test_unknown_path_raises(self, page_cache):
        with pytest.raises(RevalidationError, match="no page matches"):
            page_cache.revalidate("/about")


class TestPrerender:
    """Test startup cache warming."""

    def test_prerenders_index_and_first_posts(self, page_cache):
        rendered = page_cache.prerender(limit=2)

        assert rendered == ["/blog", "/blog/hello-storyblok", "/blog/second-post"]
        assert page_cache.cached_paths() == sorted(rendered)

    def test_prerenders_nested_posts_at_full_slug(self, page_cache, mock_storyblok_client, stories_response):
        stories_response["stories"][0]["full_slug"] = "blog/2024/hello-storyblok"
        _set_stories(mock_storyblok_client, stories_response)

        assert page_cache.prerender(limit=1) == ["/blog", "/blog/2024/hello-storyblok"]

    def test_prerender_survives_upstream_failure(self, page_cache, mock_storyblok_client):
        mock_storyblok_client.get_stories.side_effect = StoryblokAPIError("down")
        assert page_cache.prerender() == []
        assert page_cache.cached_paths() == []
