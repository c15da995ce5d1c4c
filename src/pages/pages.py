"""
Blog page renderers.

Two routes exist, mirroring the statically generated pages of the blog:

    /blog          list of all posts, newest first
    /blog/<key>    one post; key is the story's full slug below the blog
                   folder, e.g. /blog/2024/hello for "blog/2024/hello"

A post reached by its bare slug or its id instead of its key gets a redirect
to the canonical URL. Redirects are never cached, so every post has exactly
one cached page and that is the page revalidation targets.

Rendering always reads fresh content through BlogContentService; caching is
the job of revalidation.page_cache.PageCache, which calls render() on first
request and again whenever a path is revalidated.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from storyblok import BlogContentService, BlogPost

logger = logging.getLogger(__name__)

INDEX_PATH = "/blog"
_POST_PATH_PATTERN = re.compile(r"^/blog/(?P<key>.+)$")


@dataclass(frozen=True)
class Route:
    """A resolved page route.

    Attributes:
        name: "index" or "post"
        key: Post key (full slug below the blog folder), None for the index
    """
    name: str
    key: Optional[str] = None


@dataclass(frozen=True)
class Page:
    """A rendered page.

    Attributes:
        path: Request path the page was rendered for
        status: HTTP status to serve it with
        html: Rendered document
        location: Redirect target for 301 pages
    """
    path: str
    status: int
    html: str
    location: Optional[str] = None

    @property
    def cacheable(self) -> bool:
        return self.status == 200


def normalize_path(path: str) -> str:
    """Strip query string and trailing slash so /blog/ and /blog share one cache entry."""
    path = path.split("?", 1)[0]
    if len(path) > 1:
        path = path.rstrip("/")
    return path or "/"


def resolve_route(path: str) -> Optional[Route]:
    """Map a request path to a Route, or None if no page lives there."""
    path = normalize_path(path)
    if path == INDEX_PATH:
        return Route("index")
    match = _POST_PATH_PATTERN.match(path)
    if match:
        return Route("post", match.group("key"))
    return None


def format_date(value: Any) -> str:
    """Jinja filter: render an ISO-8601 timestamp as YYYY-MM-DD, passing other values through."""
    if not value:
        return ""
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except ValueError:
        return str(value)


class PageRenderer:
    """Renders blog pages from Storyblok content.

    Attributes:
        content_service: Source of BlogPost records
        site_title: Heading of the list page
    """

    def __init__(self, content_service: BlogContentService, site_title: str = "ISR Blog Example"):
        self.content_service = content_service
        self.site_title = site_title
        self.env = Environment(
            loader=PackageLoader("pages", "templates"),
            autoescape=select_autoescape(["html"])
        )
        self.env.filters["date"] = format_date

    def _render_template(self, template_name: str, page_data: Dict[str, Any], **context: Any) -> str:
        template = self.env.get_template(template_name)
        return template.render(site_title=self.site_title, page_data=page_data, **context)

    def post_path(self, post: BlogPost) -> str:
        return f"{INDEX_PATH}/{self.content_service.post_key(post)}"

    def render_index(self) -> Page:
        posts = self.content_service.get_all_posts()
        entries = [(post, self.post_path(post)) for post in posts]
        html = self._render_template(
            "index.html",
            {"posts": [post.to_dict() for post in posts]},
            entries=entries
        )
        logger.debug(f"Rendered blog index with {len(posts)} posts")
        return Page(path=INDEX_PATH, status=200, html=html)

    def render_post(self, key: str) -> Optional[Page]:
        """Render a post detail page.

        Args:
            key: Post key; a bare slug or post id yields a redirect page

        Returns:
            The rendered Page, or None if no post matches the key
        """
        post = self.content_service.get_post_by_key(key)
        if post is None:
            alias = self.content_service.get_post_by_slug(key) or self.content_service.get_post_by_id(key)
            if alias is None:
                return None
            return self.render_redirect(f"{INDEX_PATH}/{key}", self.post_path(alias))

        html = self._render_template("post.html", {"post": post.to_dict()}, post=post)
        logger.debug(f"Rendered blog post page: id={post.id}, slug='{post.slug}'")
        return Page(path=f"{INDEX_PATH}/{key}", status=200, html=html)

    def render(self, route: Route) -> Optional[Page]:
        """Render the page for a resolved route; None means the post does not exist."""
        if route.name == "index":
            return self.render_index()
        return self.render_post(route.key)

    def render_redirect(self, path: str, location: str) -> Page:
        html = self.env.from_string(
            "<!DOCTYPE html><html><head><title>Moved</title></head>"
            '<body><p>Moved to <a href="{{ location }}">{{ location }}</a>.</p></body></html>'
        ).render(location=location)
        return Page(path=path, status=301, html=html, location=location)

    def render_not_found(self, path: str) -> Page:
        html = self.env.from_string(
            "<!DOCTYPE html><html><head><title>Not found</title></head>"
            "<body><h1>404</h1><p>{{ path }} could not be found.</p>"
            '<p><a href="/blog">Back to Blog</a></p></body></html>'
        ).render(path=path)
        return Page(path=path, status=404, html=html)
