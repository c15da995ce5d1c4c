"""
In-process cache of rendered blog pages.

Pages are rendered on first request and then served from memory with no
time-based expiry. The only way a cached page changes is revalidate(path),
which renders the page again from fresh Storyblok content and swaps it in.
If that render fails, the stale page stays in place and keeps being served.
"""
import logging
import threading
from typing import Dict, List, Optional

from errors import RevalidationError
from pages import Page, PageRenderer, INDEX_PATH, normalize_path, resolve_route

logger = logging.getLogger(__name__)


class PageCache:
    """Thread-safe map of request path to rendered Page.

    Attributes:
        renderer: PageRenderer used for first renders and revalidation
    """

    def __init__(self, renderer: PageRenderer):
        self.renderer = renderer
        self._pages: Dict[str, Page] = {}
        self._lock = threading.Lock()

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return normalize_path(path) in self._pages

    def cached_paths(self) -> List[str]:
        with self._lock:
            return sorted(self._pages)

    def peek(self, path: str) -> Optional[Page]:
        """Return the cached page for path without rendering."""
        with self._lock:
            return self._pages.get(normalize_path(path))

    def _store(self, path: str, page: Page) -> None:
        with self._lock:
            self._pages[path] = page

    def _evict(self, path: str) -> bool:
        with self._lock:
            return self._pages.pop(path, None) is not None

    def get(self, path: str) -> Page:
        """Return the page for path, rendering and caching it on a miss.

        Unknown paths and missing posts produce a 404 page that is not cached,
        so a post published later is picked up on its first request. Redirects
        from a post's slug or id to its canonical path are not cached either.

        Raises:
            ISRBlogError: If a cold render fails (nothing stale to fall back on)
        """
        path = normalize_path(path)
        route = resolve_route(path)
        if route is None:
            return self.renderer.render_not_found(path)

        cached = self.peek(path)
        if cached is not None:
            return cached

        logger.info(f"Cache miss, rendering page: {path}")
        page = self.renderer.render(route)
        if page is None:
            return self.renderer.render_not_found(path)

        if page.cacheable:
            self._store(path, page)
        return page

    def revalidate(self, path: str) -> None:
        """Render path again from fresh content and replace the cached page.

        A post that no longer exists has its cached page evicted, so the next
        request gets a 404 instead of stale content. The same holds for a path
        that now only redirects, e.g. after a post moved to another folder.

        Raises:
            RevalidationError: If path matches no page or rendering fails.
                The previously cached page, if any, is left in place.
        """
        path = normalize_path(path)
        route = resolve_route(path)
        if route is None:
            raise RevalidationError(path, "no page matches this path")

        try:
            page = self.renderer.render(route)
        except Exception as e:
            raise RevalidationError(path, str(e)) from e

        if page is None or not page.cacheable:
            if self._evict(path):
                logger.info(f"Evicted cached page no longer served at {path}")
            return

        self._store(path, page)
        logger.debug(f"Replaced cached page: {path}")

    def prerender(self, limit: int = 2) -> List[str]:
        """Warm the cache with the list page and the first limit posts.

        This is the startup counterpart of build-time static generation.
        Remaining posts are rendered on their first request. Failures are
        logged and skipped, since the pages will render on demand later.

        Returns:
            Paths that were rendered successfully
        """
        rendered: List[str] = []
        try:
            keys = self.renderer.content_service.get_post_keys()
        except Exception as e:
            logger.error(f"Prerender skipped, could not list posts: {e}")
            return rendered

        paths = [INDEX_PATH] + [f"{INDEX_PATH}/{key}" for key in keys[:limit] if key]
        for path in paths:
            try:
                self.revalidate(path)
            except RevalidationError as e:
                logger.error(f"Prerender failed: {e}")
                continue
            rendered.append(path)

        logger.info(f"Prerendered {len(rendered)} page(s): {', '.join(rendered)}")
        return rendered
