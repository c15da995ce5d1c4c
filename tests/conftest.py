"""
Pytest configuration and shared fixtures for all tests.

This module provides shared fixtures for the test suite, including:
- Environment isolation (no real credentials leak into tests)
- Storyblok response fixtures
- A content service backed by a mocked Storyblok client
- A Flask test client wired to a real PageCache and Revalidator
"""
import copy
import json
from pathlib import Path
from unittest.mock import Mock

import pytest

from storyblok import StoryblokContentAPIClient, BlogContentService
from pages import PageRenderer
from revalidation import PageCache, Revalidator
from webhook import create_app

FIXTURES_DIR = Path(__file__).parent / "fixtures"
TEST_SECRET = "test-revalidation-secret"


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Remove credentials from the environment so config fallbacks are deterministic."""
    monkeypatch.delenv("REVALIDATION_SECRET", raising=False)
    monkeypatch.delenv("NEXT_PUBLIC_STORYBLOK_CONTENT_API_ACCESS_TOKEN", raising=False)


@pytest.fixture
def stories_response():
    """Load a realistic Storyblok stories response from the JSON fixture.

    The fixture holds three blog stories, newest first:
    - a rich text + text + image body
    - a direct "content" field with no body
    - an empty body (mapped to the placeholder text)
    """
    with open(FIXTURES_DIR / "storyblok_stories.json", "r") as f:
        return json.load(f)


@pytest.fixture
def mock_storyblok_client(stories_response):
    """A Storyblok client mock returning a fresh copy of stories_response on each call."""
    client = Mock(spec=StoryblokContentAPIClient)
    client.enabled = True
    client.get_stories.side_effect = lambda **kwargs: copy.deepcopy(stories_response)
    return client


@pytest.fixture
def content_service(mock_storyblok_client):
    return BlogContentService(mock_storyblok_client)


@pytest.fixture
def page_cache(content_service):
    return PageCache(PageRenderer(content_service))


@pytest.fixture
def test_config():
    return {
        "timezone": "UTC",
        "revalidation": {"secret": TEST_SECRET, "max_workers": 4},
        "relay": {"revalidate_url": "http://localhost:5000/api/revalidate", "timeout": 5},
        "cors": {"enabled": False, "origins": []},
    }


@pytest.fixture
def app(page_cache, test_config):
    app = create_app(page_cache, revalidator=Revalidator(page_cache, max_workers=4), config=test_config)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Create a Flask test client for testing endpoints.

    Yields:
        FlaskClient: Test client for making HTTP requests
    """
    with app.test_client() as client:
        yield client
