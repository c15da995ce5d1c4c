"""
Story to BlogPost mapping.

Converts a raw Storyblok story (a loosely typed dict owned by the CMS) into
the flat, immutable BlogPost record the pages render. Mapping is best-effort
and never raises: unexpected shapes simply contribute no text, and a post
with no extractable text gets a placeholder body naming the story.
"""
import json
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from .richtext import extract_text

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 200
EXCERPT_SUFFIX = "..."
DEFAULT_AUTHOR = "Storyblok CMS"
BLOCK_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class BlogPost:
    """A blog post as rendered by the list and detail pages.

    Attributes:
        id: Storyblok story id, as a string
        title: Story name
        content: Plain text body, never empty
        excerpt: First 200 characters of content plus "...", or content itself
        author: Fixed author label (the content type has no author field)
        published_at: First publication time, falling back to last publication
        updated_at: Last update time
        slug: Story slug (e.g. "my-post")
        full_slug: Hierarchical story path (e.g. "blog/my-post")
    """
    id: str
    title: str
    content: str
    excerpt: str
    author: str
    published_at: Optional[str]
    updated_at: Optional[str]
    slug: str
    full_slug: str

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase JSON form of the post."""
        data = asdict(self)
        return {
            "id": data["id"],
            "title": data["title"],
            "content": data["content"],
            "excerpt": data["excerpt"],
            "author": data["author"],
            "publishedAt": data["published_at"],
            "updatedAt": data["updated_at"],
            "slug": data["slug"],
            "fullSlug": data["full_slug"],
        }


def _serialize(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)


def _block_text(block: Any) -> str:
    """Extract the text contributed by one body block."""
    if isinstance(block, str):
        return block
    if not isinstance(block, dict):
        return ""

    component = block.get("component")
    if component == "richtext" and block.get("text"):
        return extract_text(block["text"])
    if component == "text" and block.get("content"):
        return _serialize(block["content"])
    return ""


def extract_content(story_content: Any) -> str:
    """Extract the plain text body of a story's content object.

    A "body" list of blocks takes precedence; each block contributes text by
    component type and the non-empty pieces are separated by blank lines.
    Without a body list, a direct "content" field is used, serialized to JSON
    if it is not already a string.
    """
    if not isinstance(story_content, dict):
        return ""

    body = story_content.get("body")
    if isinstance(body, list):
        pieces: List[str] = [_block_text(block) for block in body]
        return BLOCK_SEPARATOR.join(piece for piece in pieces if piece)

    direct = story_content.get("content")
    if direct:
        return _serialize(direct)
    return ""


def make_excerpt(content: str) -> str:
    """Return the first 200 characters of content followed by "...", or content if shorter."""
    if len(content) > EXCERPT_LENGTH:
        return content[:EXCERPT_LENGTH] + EXCERPT_SUFFIX
    return content


def _as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def story_to_post(story: Any) -> BlogPost:
    """Map one Storyblok story to a BlogPost.

    Args:
        story: Story dictionary from the Storyblok stories response

    Returns:
        The normalized BlogPost. Content is never empty.

    Example:
        >>> post = story_to_post({"id": 1, "name": "Hello", "slug": "hello",
        ...     "full_slug": "blog/hello",
        ...     "content": {"body": [{"component": "text", "content": "Hello"}]}})
        >>> post.content
        'Hello'
    """
    if not isinstance(story, dict):
        logger.warning(f"Unexpected story type {type(story).__name__}; mapping as empty story")
        story = {}

    name = _as_str(story.get("name"))
    content = extract_content(story.get("content"))

    if content:
        excerpt = make_excerpt(content)
    else:
        content = f"This is the blog post: {name}"
        excerpt = content

    return BlogPost(
        id=_as_str(story.get("id")),
        title=name,
        content=content,
        excerpt=excerpt,
        author=DEFAULT_AUTHOR,
        published_at=story.get("first_published_at") or story.get("published_at"),
        updated_at=story.get("updated_at"),
        slug=_as_str(story.get("slug")),
        full_slug=_as_str(story.get("full_slug")),
    )
