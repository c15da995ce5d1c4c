"""
Blog content service.

Reads every published story under the blog folder from Storyblok and maps it
to BlogPost records. All lookups re-fetch the full collection and filter in
memory; the blog is small and the page cache above this layer is what keeps
request volume low.

Errors are not retried here. They propagate to the page layer, which keeps
serving the last successfully rendered page until a later revalidation works.
"""
import logging
from typing import List, Optional

from errors import ConfigurationError, StoryblokResponseError
from schema import STORIES_RESPONSE_SCHEMA, parse

from .mapper import BlogPost, story_to_post
from .storyblok_api import StoryblokContentAPIClient

logger = logging.getLogger(__name__)

BLOG_PREFIX = "blog/"
SORT_ORDER = "first_published_at:desc"


class BlogContentService:
    """Content fetcher for blog posts.

    Attributes:
        client: Storyblok Content Delivery API client
        starts_with: Full slug prefix of the blog folder
    """

    def __init__(self, client: StoryblokContentAPIClient, starts_with: str = BLOG_PREFIX):
        self.client = client
        self.starts_with = starts_with

    def get_all_posts(self) -> List[BlogPost]:
        """Fetch all published blog posts, newest first.

        Returns:
            List of BlogPost, ordered by first publication time descending.
            An empty blog folder yields an empty list.

        Raises:
            ConfigurationError: If the client has no access token
            StoryblokAPIError: If the Storyblok request fails
            StoryblokResponseError: If the response has no stories array
        """
        if not self.client.enabled:
            raise ConfigurationError(
                "NEXT_PUBLIC_STORYBLOK_CONTENT_API_ACCESS_TOKEN is required but not set. "
                "Please configure your Storyblok access token."
            )

        data = self.client.get_stories(
            starts_with=self.starts_with,
            version="published",
            sort_by=SORT_ORDER
        )

        result = parse(data, STORIES_RESPONSE_SCHEMA)
        if not result.ok:
            logger.error(f"Invalid response from Storyblok API: {result.error}")
            raise StoryblokResponseError(
                "Invalid response from Storyblok API: missing stories data. "
                "This could indicate an API issue or incorrect space configuration.",
                path=result.error.path
            )

        stories = result.value["stories"]
        if not stories:
            logger.info("No blog posts found in Storyblok space")
            return []

        posts = [story_to_post(story) for story in stories]
        logger.debug(f"Mapped {len(posts)} blog posts from Storyblok")
        return posts

    def post_key(self, post: BlogPost) -> str:
        """Return the detail page key of a post: its full slug below the blog folder.

        Example:
            >>> service.post_key(post)  # post.full_slug == "blog/2024/hello"
            '2024/hello'
        """
        if post.full_slug.startswith(self.starts_with):
            key = post.full_slug[len(self.starts_with):].strip("/")
            if key:
                return key
        return post.slug or post.id

    def get_post_by_key(self, key: str) -> Optional[BlogPost]:
        """Return the post whose detail page key is key, or None."""
        return next((post for post in self.get_all_posts() if self.post_key(post) == key), None)

    def get_post_by_id(self, post_id: str) -> Optional[BlogPost]:
        """Return the post with the given id, or None."""
        return next((post for post in self.get_all_posts() if post.id == post_id), None)

    def get_post_by_slug(self, slug: str) -> Optional[BlogPost]:
        """Return the post with the given slug, or None."""
        return next((post for post in self.get_all_posts() if post.slug == slug), None)

    def get_post_ids(self) -> List[str]:
        return [post.id for post in self.get_all_posts()]

    def get_post_slugs(self) -> List[str]:
        return [post.slug for post in self.get_all_posts()]

    def get_post_keys(self) -> List[str]:
        return [self.post_key(post) for post in self.get_all_posts()]
