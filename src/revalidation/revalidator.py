"""
Concurrent revalidation of cached pages.

Every requested path is revalidated on a thread pool. Each task catches its
own failure and turns it into a result, so one failed path never aborts the
others; the caller gets a per-path report plus an aggregate count.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .page_cache import PageCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RevalidationResult:
    """Outcome of revalidating one path."""
    path: str
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"path": self.path, "success": self.success}
        if not self.success:
            data["error"] = self.error or "Unknown error"
        return data


@dataclass(frozen=True)
class RevalidationSummary:
    """Aggregate of a revalidation batch, results in request order."""
    results: List[RevalidationResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def partial_failure(self) -> bool:
        """True when some, but not all, paths failed."""
        return 0 < self.success_count < self.total

    @property
    def success_ratio(self) -> str:
        return f"{self.success_count}/{self.total}"


class Revalidator:
    """Fans revalidation out over a thread pool and joins on all of it.

    Attributes:
        page_cache: Cache whose revalidate(path) primitive is invoked
        max_workers: Upper bound on concurrent revalidations
    """

    def __init__(self, page_cache: PageCache, max_workers: int = 10):
        self.page_cache = page_cache
        self.max_workers = max_workers

    def _revalidate_one(self, path: str) -> RevalidationResult:
        """Revalidate a single path; failures are captured, never raised."""
        try:
            self.page_cache.revalidate(path)
            logger.info(f"Successfully revalidated: {path}")
            return RevalidationResult(path=path, success=True)
        except Exception as e:
            logger.error(f"Failed to revalidate {path}: {e}")
            return RevalidationResult(path=path, success=False, error=str(e) or type(e).__name__)

    def revalidate_paths(self, paths: List[str]) -> RevalidationSummary:
        """Revalidate all paths concurrently and wait for every one to finish.

        Args:
            paths: Request paths of the cached pages to regenerate

        Returns:
            RevalidationSummary with one result per path, in input order
        """
        if not paths:
            return RevalidationSummary()

        workers = max(1, min(self.max_workers, len(paths)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._revalidate_one, path) for path in paths]
            wait(futures)

        results = []
        for path, future in zip(paths, futures):
            try:
                results.append(future.result())
            except Exception as e:
                logger.error(f"Revalidation task for {path} failed: {e}", exc_info=True)
                results.append(RevalidationResult(path=path, success=False, error="Task failed"))

        summary = RevalidationSummary(results=results)
        logger.info(f"Revalidation complete: {summary.success_count} succeeded, "
                    f"{summary.total - summary.success_count} failed")
        return summary
