"""On-demand page revalidation.

    PageCache: Rendered pages kept until explicitly revalidated
    Revalidator: Concurrent, failure-isolated revalidation of many paths
    paths_for_full_slug: Cached pages affected by a changed Storyblok story
"""
from .page_cache import PageCache
from .revalidator import Revalidator, RevalidationResult, RevalidationSummary
from .paths import paths_for_full_slug

__all__ = [
    "PageCache",
    "Revalidator",
    "RevalidationResult",
    "RevalidationSummary",
    "paths_for_full_slug",
]
