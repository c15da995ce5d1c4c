"""
Storyblok Content Delivery API Client.

This module provides a client for the read-only Storyblok Content Delivery
API (v2) used to retrieve published blog stories. The client is constructed
explicitly and passed to the services that need it; there is no module-level
singleton.

Caching is deliberately absent: every call goes to the CDN API so that a
page regenerated after a webhook always sees the freshly published story.
"""
import logging
from typing import Any, Dict, Optional

import requests

from errors import StoryblokAPIError

logger = logging.getLogger(__name__)


class StoryblokContentAPIClient:
    """
    Client for the Storyblok Content Delivery API.

    Storyblok spaces are pinned to a region; the region selects the API host.
    Requests are authenticated with the space's public or preview access token.

    Attributes:
        access_token: Storyblok content API access token
        region: Space region code (eu, us, ap, ca, cn)
        api_url: Base URL of the regional API host
        timeout: Request timeout in seconds
        per_page: Page size used when listing stories (max 100)
    """

    REGION_HOSTS = {
        "eu": "https://api.storyblok.com",
        "us": "https://api-us.storyblok.com",
        "ap": "https://api-ap.storyblok.com",
        "ca": "https://api-ca.storyblok.com",
        "cn": "https://app.storyblokchina.cn",
    }
    API_VERSION = "v2"
    MAX_PER_PAGE = 100
    # Safety limit to prevent infinite pagination loops
    MAX_PAGES = 50

    def __init__(
        self,
        access_token: Optional[str],
        region: str = "eu",
        timeout: int = 30,
        per_page: int = MAX_PER_PAGE
    ):
        """
        Initialize the Storyblok Content Delivery API client.

        Args:
            access_token: Storyblok access token (None disables the client)
            region: Space region code (eu, us, ap, ca, cn)
            timeout: Request timeout in seconds
            per_page: Number of stories requested per page (clamped to 1..100)

        Raises:
            ValueError: If region is not a known Storyblok region
        """
        region = (region or "eu").lower()
        if region not in self.REGION_HOSTS:
            raise ValueError(
                f"Unknown Storyblok region '{region}'. "
                f"Expected one of: {', '.join(sorted(self.REGION_HOSTS))}"
            )

        self.access_token = access_token
        self.region = region
        self.api_url = self.REGION_HOSTS[region]
        self.timeout = timeout
        self.per_page = max(1, min(per_page, self.MAX_PER_PAGE))
        self.enabled = bool(access_token)

        if self.enabled:
            logger.info(f"StoryblokContentAPIClient initialized for region '{self.region}' ({self.api_url})")
        else:
            logger.warning("StoryblokContentAPIClient disabled - missing access token")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "StoryblokContentAPIClient":
        """
        Create a StoryblokContentAPIClient from configuration dictionary.

        The access token is resolved from storyblok.access_token, then the
        storyblok.access_token_file Docker secret, then the
        NEXT_PUBLIC_STORYBLOK_CONTENT_API_ACCESS_TOKEN environment variable.

        Args:
            config: Configuration dictionary with storyblok settings

        Returns:
            Configured StoryblokContentAPIClient instance
        """
        from config import resolve_secret, STORYBLOK_TOKEN_ENV

        storyblok_config = config.get("storyblok", {})
        access_token = resolve_secret(storyblok_config, "access_token", STORYBLOK_TOKEN_ENV)

        return cls(
            access_token=access_token,
            region=storyblok_config.get("region", "eu"),
            timeout=storyblok_config.get("timeout", 30),
            per_page=storyblok_config.get("per_page", cls.MAX_PER_PAGE)
        )

    def _build_url(self, endpoint: str) -> str:
        """Build full API URL for an endpoint."""
        return f"{self.api_url}/{self.API_VERSION}/cdn/{endpoint}"

    def _make_request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """
        Make a request to the Storyblok Content Delivery API.

        Unlike a best-effort client, failures are raised rather than swallowed:
        callers that generate pages rely on the exception to keep serving the
        last good page.

        Args:
            endpoint: API endpoint (e.g., "stories")
            params: Optional query parameters

        Returns:
            The successful HTTP response

        Raises:
            StoryblokAPIError: On timeout, connection failure or non-2xx status
        """
        url = self._build_url(endpoint)
        request_params = dict(params or {})
        request_params["token"] = self.access_token

        try:
            response = requests.get(url, params=request_params, timeout=self.timeout)
            response.raise_for_status()
            return response
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout requesting Storyblok API: {url}")
            raise StoryblokAPIError(f"Timeout requesting Storyblok API: {url}") from e
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"HTTP error from Storyblok API: {status_code} for {url}")
            raise StoryblokAPIError(
                f"Storyblok API returned HTTP {status_code} for {endpoint}",
                status_code=status_code
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error from Storyblok API: {e}")
            raise StoryblokAPIError(f"Request to Storyblok API failed: {e}") from e

    def _get_json(self, endpoint: str, params: Dict[str, Any]) -> tuple[Any, Optional[int]]:
        """Request an endpoint and return (decoded body, Total header as int or None)."""
        response = self._make_request(endpoint, params)
        try:
            data = response.json()
        except ValueError as e:
            raise StoryblokAPIError(f"Storyblok API returned invalid JSON for {endpoint}") from e

        total_header = response.headers.get("Total")
        try:
            total = int(total_header) if total_header is not None else None
        except ValueError:
            total = None
        return data, total

    def get_stories(
        self,
        starts_with: Optional[str] = None,
        version: str = "published",
        sort_by: Optional[str] = None,
        extra_params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Retrieve all stories matching the given filters.

        Storyblok paginates story listings and reports the total number of
        matching stories in the "Total" response header. This method follows
        the pages and returns a single document with every story merged into
        the "stories" array.

        The first page's body is returned untouched if it has no "stories"
        list, so the caller can report the malformed response.

        Args:
            starts_with: Full slug prefix filter (e.g., "blog/")
            version: "published" or "draft"
            sort_by: Sort expression (e.g., "first_published_at:desc")
            extra_params: Additional query parameters passed through as-is

        Returns:
            Decoded JSON body of the first page, with "stories" extended by
            any further pages

        Raises:
            StoryblokAPIError: If any page request fails

        Example:
            >>> client = StoryblokContentAPIClient(token)
            >>> data = client.get_stories(starts_with="blog/", sort_by="first_published_at:desc")
            >>> len(data["stories"])
            12
        """
        params: Dict[str, Any] = {
            "version": version,
            "per_page": self.per_page,
            "page": 1
        }
        if starts_with:
            params["starts_with"] = starts_with
        if sort_by:
            params["sort_by"] = sort_by
        if extra_params:
            params.update(extra_params)

        data, total = self._get_json("stories", params)
        if not isinstance(data, dict) or not isinstance(data.get("stories"), list):
            return data

        stories = list(data["stories"])
        page = 1
        while total is not None and len(stories) < total:
            page += 1
            if page > self.MAX_PAGES:
                logger.warning("Reached maximum page limit when fetching Storyblok stories")
                break

            page_data, _ = self._get_json("stories", {**params, "page": page})
            page_stories = page_data.get("stories") if isinstance(page_data, dict) else None
            if not page_stories:
                break
            stories.extend(page_stories)

        logger.debug(f"Fetched {len(stories)} stories from Storyblok across {page} page(s)")
        return {**data, "stories": stories}
