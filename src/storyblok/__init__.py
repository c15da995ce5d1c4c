"""Storyblok Content Package.

This package connects the blog to the Storyblok headless CMS:

    StoryblokContentAPIClient: Requests-based Content Delivery API client
    BlogContentService: Fetches published blog stories as BlogPost records
    BlogPost: Immutable, normalized blog post
    story_to_post: Best-effort mapping from a raw story to a BlogPost

Usage:
    >>> from config import load_config
    >>> from storyblok import StoryblokContentAPIClient, BlogContentService
    >>> client = StoryblokContentAPIClient.from_config(load_config())
    >>> posts = BlogContentService(client).get_all_posts()
"""
from .storyblok_api import StoryblokContentAPIClient
from .blog import BlogContentService, BLOG_PREFIX
from .mapper import BlogPost, story_to_post

__all__ = [
    "StoryblokContentAPIClient",
    "BlogContentService",
    "BLOG_PREFIX",
    "BlogPost",
    "story_to_post",
]
