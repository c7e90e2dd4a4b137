"""
In-Memory Posting Cache

Two process-local caches sit in front of the recruitment API:
- JobCache (5min TTL): the whole listing batch, fetched in one large page
- DetailCache (1hr TTL): individual posting details keyed by posting id

JobCache Semantics:
    - Stale when empty or older than the TTL.
    - A refresh annotates every record with decimalDay / ongoingYn /
      ddayLabel relative to the refresh date and replaces the batch
      wholesale; postings are never merged or mutated individually.
    - Concurrent callers that find the cache stale share one in-flight
      refresh (single-flight), so a burst of requests makes one upstream call.
    - A failed refresh leaves the previous batch untouched. The caller
      either gets UpstreamError or, with serve_stale_on_error, the old batch.

Usage:
    cache = JobCache(fetcher=client.fetch_list, ttl=300)
    jobs = await cache.get_jobs()
"""

import asyncio
import logging
import time
from collections import Counter
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import ValidationError

from public_jobs.exceptions import UpstreamError
from public_jobs.middleware.metrics import (
    record_cache_hit,
    record_cache_miss,
    update_cached_postings,
)
from public_jobs.schemas import JobPosting, JobPostingDetail
from public_jobs.services.dates import day_count, dday_label, is_ongoing

logger = logging.getLogger(__name__)

ListFetcher = Callable[[], Awaitable[List[Dict[str, Any]]]]
DetailFetcher = Callable[[int], Awaitable[Optional[Dict[str, Any]]]]

P = TypeVar("P", bound=JobPosting)


def to_posting(
    raw: Dict[str, Any],
    today: date,
    model: Type[P] = JobPosting,
) -> Optional[P]:
    """
    Validate a raw upstream record and attach its derived date fields.

    Args:
        raw: One record from the API's ``result``
        today: Reference date for the D-day calculation
        model: JobPosting or JobPostingDetail

    Returns:
        The annotated posting, or None when the record is unusable
    """
    try:
        posting = model.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Skipping malformed posting {raw.get('recrutPblntSn')!r}: {e.error_count()} errors")
        return None

    days = day_count(posting.pbanc_end_ymd, today)
    posting.decimal_day = days
    posting.ongoing_yn = "Y" if is_ongoing(posting.pbanc_end_ymd, today) else "N"
    posting.dday_label = dday_label(days)
    return posting


class JobCache:
    """
    TTL cache over the full posting list.

    Attributes:
        jobs: Current batch (replaced atomically on refresh)
        last_fetch_time: Clock reading of the last successful refresh
        stats: Hit/miss/refresh counters
    """

    def __init__(
        self,
        fetcher: ListFetcher,
        ttl: float = 300,
        clock: Callable[[], float] = time.monotonic,
        today: Callable[[], date] = date.today,
        serve_stale_on_error: bool = False,
    ):
        self.fetcher = fetcher
        self.ttl = ttl
        self.clock = clock
        self.today = today
        self.serve_stale_on_error = serve_stale_on_error

        self.jobs: List[JobPosting] = []
        self.last_fetch_time: Optional[float] = None
        self._inflight: Optional[asyncio.Future] = None
        self.stats: Dict[str, int] = {"hits": 0, "misses": 0, "refreshes": 0, "failures": 0}

    def needs_refresh(self) -> bool:
        if not self.jobs or self.last_fetch_time is None:
            return True
        return self.clock() - self.last_fetch_time > self.ttl

    async def refresh(self) -> List[JobPosting]:
        """
        Fetch the listing batch and replace the cached jobs.

        Raises:
            UpstreamError: The fetch failed; the cache is left as it was
            ConfigurationError: No service key is configured
        """
        try:
            raw_jobs = await self.fetcher()
        except UpstreamError:
            self.stats["failures"] += 1
            raise

        today = self.today()
        jobs = []
        for raw in raw_jobs:
            if not isinstance(raw, dict):
                continue
            posting = to_posting(raw, today)
            if posting is not None:
                jobs.append(posting)

        # Duplicate ids are passed through; upstream is assumed not to send them
        duplicates = [sn for sn, n in Counter(j.recrut_pblnt_sn for j in jobs).items() if n > 1]
        if duplicates:
            logger.warning(f"Upstream returned {len(duplicates)} duplicate posting ids, e.g. {duplicates[:5]}")

        self.jobs = jobs
        self.last_fetch_time = self.clock()
        self.stats["refreshes"] += 1
        update_cached_postings(len(jobs))
        logger.info(f"Posting cache refreshed: {len(jobs)} of {len(raw_jobs)} records kept")
        return jobs

    async def _refresh_shared(self) -> List[JobPosting]:
        try:
            return await self.refresh()
        finally:
            self._inflight = None

    async def get_jobs(self) -> List[JobPosting]:
        """
        Return the current batch, refreshing it first if it is stale.

        Callers arriving while a refresh is running wait for that refresh
        instead of starting their own.
        """
        if not self.needs_refresh():
            self.stats["hits"] += 1
            record_cache_hit("list")
            return self.jobs

        self.stats["misses"] += 1
        record_cache_miss("list")

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh_shared())
        inflight = self._inflight

        try:
            return await asyncio.shield(inflight)
        except UpstreamError as e:
            if self.serve_stale_on_error and self.jobs:
                logger.warning(f"Refresh failed, serving {len(self.jobs)} stale postings: {e}")
                return self.jobs
            raise

    def get_stats(self) -> Dict[str, Any]:
        hits = self.stats["hits"]
        total = hits + self.stats["misses"]
        return {
            **self.stats,
            "size": len(self.jobs),
            "hit_rate": hits / total if total > 0 else 0.0,
        }


class DetailCache:
    """TTL cache of posting details, keyed by posting id."""

    def __init__(
        self,
        fetcher: DetailFetcher,
        ttl: float = 3600,
        clock: Callable[[], float] = time.monotonic,
        today: Callable[[], date] = date.today,
        max_entries: int = 500,
    ):
        self.fetcher = fetcher
        self.ttl = ttl
        self.clock = clock
        self.today = today
        self.max_entries = max_entries
        self._entries: Dict[int, Tuple[float, JobPostingDetail]] = {}

    async def get(self, sn: int) -> Optional[JobPostingDetail]:
        """
        Get a posting's detail, fetching it when absent or expired.

        Unknown postings are not cached, so a posting that appears later
        is picked up on the next request.
        """
        entry = self._entries.get(sn)
        if entry is not None and self.clock() - entry[0] <= self.ttl:
            record_cache_hit("detail")
            return entry[1]

        record_cache_miss("detail")
        raw = await self.fetcher(sn)
        if raw is None:
            self._entries.pop(sn, None)
            return None

        detail = to_posting(raw, self.today(), JobPostingDetail)
        if detail is None:
            return None

        if sn not in self._entries and len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda key: self._entries[key][0])
            del self._entries[oldest]
        self._entries[sn] = (self.clock(), detail)
        return detail

    def __len__(self) -> int:
        return len(self._entries)
