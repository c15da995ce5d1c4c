"""Blog page rendering: route resolution and Jinja2 templates for the list and detail pages."""
from .pages import Page, PageRenderer, Route, resolve_route, normalize_path, INDEX_PATH

__all__ = ["Page", "PageRenderer", "Route", "resolve_route", "normalize_path", "INDEX_PATH"]
