"""Mapping from a changed Storyblok story to the cached pages it appears on."""
from typing import List

from pages import INDEX_PATH
from storyblok import BLOG_PREFIX


def paths_for_full_slug(full_slug: str) -> List[str]:
    """Return the page paths to revalidate when the story at full_slug changes.

    A blog story affects its own detail page and the list page. The detail
    page is keyed by the full slug below the blog folder, subfolders
    included. Stories outside the blog folder appear on no cached page.

    Example:
        >>> paths_for_full_slug("blog/my-post")
        ['/blog/my-post', '/blog']
        >>> paths_for_full_slug("blog/2024/my-post")
        ['/blog/2024/my-post', '/blog']
        >>> paths_for_full_slug("about")
        []
    """
    if not full_slug.startswith(BLOG_PREFIX):
        return []

    slug = full_slug[len(BLOG_PREFIX):].strip("/")
    paths = []
    if slug:
        paths.append(f"{INDEX_PATH}/{slug}")
    paths.append(INDEX_PATH)
    return paths
