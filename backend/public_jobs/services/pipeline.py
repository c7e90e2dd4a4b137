"""
Listing Pipeline - Filter, Sort, Statistics, Pagination

Turns the cached posting batch and one request's JobQuery into a page of
results plus an aggregate snapshot.

Processing Order (fixed):
    1. Ongoing filter      (onlyOngoing → ongoingYn == 'Y')
    2. Keyword filter      (title OR institution, case-insensitive)
    3. Category filters    (OR within a category, AND across categories)
    4. Sort                (latest | deadline | personnel, stable)
    5. Stats snapshot      (taken here, before the stat bucket)
    6. Stat bucket filter  (endingSoon | newJobs, optional)
    7. Pagination          (1-indexed, out-of-range pages are empty)

The snapshot in step 5 reflects the active filters but not the stat card
the user drilled into, so the stats panel stays stable while the list
narrows.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from public_jobs.schemas import JobPosting, StatsSnapshot
from public_jobs.services.dates import ENDING_SOON_DAYS, is_new_posting

MISSING_DAY_SORT_KEY = 9999


class SortMode(str, Enum):
    LATEST = "latest"
    DEADLINE = "deadline"
    PERSONNEL = "personnel"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortMode":
        try:
            return cls(value)
        except ValueError:
            return cls.LATEST


class StatFilter(str, Enum):
    ENDING_SOON = "endingSoon"
    NEW_JOBS = "newJobs"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["StatFilter"]:
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class JobQuery:
    """Filter/sort/pagination request for one listing call."""

    keyword: str = ""
    regions: List[str] = field(default_factory=list)
    hire_types: List[str] = field(default_factory=list)
    recruit_types: List[str] = field(default_factory=list)
    ncs_types: List[str] = field(default_factory=list)
    education_types: List[str] = field(default_factory=list)
    only_ongoing: bool = True
    sort: SortMode = SortMode.LATEST
    stat_filter: Optional[StatFilter] = None
    page: int = 1
    limit: int = 20


@dataclass
class PipelineResult:
    total_count: int
    items: List[JobPosting]
    stats: StatsSnapshot


def matches_any(field_value: str, selected: Sequence[str]) -> bool:
    """
    True if any selected label occurs in a comma-delimited upstream field.

    Plain substring matching, as the upstream lists are free text
    (e.g. ``"서울,경기"``).
    """
    return any(value in field_value for value in selected)


# Category filters: (query attribute, posting attribute)
CATEGORY_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("regions", "work_rgn_nm_lst"),
    ("hire_types", "hire_type_nm_lst"),
    ("recruit_types", "recrut_se_nm"),
    ("ncs_types", "ncs_cd_nm_lst"),
    ("education_types", "acbg_cond_nm_lst"),
)


def filter_postings(jobs: Sequence[JobPosting], query: JobQuery) -> List[JobPosting]:
    """Apply the ongoing, keyword and category filters (steps 1-3)."""
    filtered = list(jobs)

    if query.only_ongoing:
        filtered = [job for job in filtered if job.ongoing_yn == "Y"]

    keyword = query.keyword.strip().lower()
    if keyword:
        filtered = [
            job for job in filtered
            if keyword in job.recrut_pbanc_ttl.lower() or keyword in job.inst_nm.lower()
        ]

    for query_attr, posting_attr in CATEGORY_FIELDS:
        selected = getattr(query, query_attr)
        if not selected:
            continue
        filtered = [
            job for job in filtered
            if matches_any(getattr(job, posting_attr), selected)
        ]

    return filtered


def _deadline_key(job: JobPosting) -> int:
    return job.decimal_day if job.decimal_day is not None else MISSING_DAY_SORT_KEY


SORT_KEYS: Dict[SortMode, Tuple[Callable[[JobPosting], object], bool]] = {
    SortMode.DEADLINE: (_deadline_key, False),
    SortMode.PERSONNEL: (lambda job: job.recrut_nope or 0, True),
    # YYYYMMDD strings order the same as the dates they encode
    SortMode.LATEST: (lambda job: job.pbanc_bgng_ymd, True),
}


def sort_postings(jobs: Sequence[JobPosting], mode: SortMode = SortMode.LATEST) -> List[JobPosting]:
    """Stable sort; ties keep their cached (upstream) order."""
    key, descending = SORT_KEYS[mode]
    return sorted(jobs, key=key, reverse=descending)


def is_ending_soon_posting(job: JobPosting) -> bool:
    return job.decimal_day is not None and 0 <= job.decimal_day <= ENDING_SOON_DAYS


def compute_stats(jobs: Sequence[JobPosting], now: Optional[datetime] = None) -> StatsSnapshot:
    now = now or datetime.now()
    return StatsSnapshot(
        total_count=len(jobs),
        ending_soon=sum(1 for job in jobs if is_ending_soon_posting(job)),
        new_jobs=sum(1 for job in jobs if is_new_posting(job.pbanc_bgng_ymd, now)),
        institutions=len({job.inst_nm for job in jobs if job.inst_nm}),
    )


def apply_stat_filter(
    jobs: Sequence[JobPosting],
    stat_filter: Optional[StatFilter],
    now: Optional[datetime] = None,
) -> List[JobPosting]:
    if stat_filter is StatFilter.ENDING_SOON:
        return [job for job in jobs if is_ending_soon_posting(job)]
    if stat_filter is StatFilter.NEW_JOBS:
        now = now or datetime.now()
        return [job for job in jobs if is_new_posting(job.pbanc_bgng_ymd, now)]
    return list(jobs)


def paginate(jobs: Sequence[JobPosting], page: int, limit: int) -> List[JobPosting]:
    if page < 1 or limit < 1:
        return []
    start = (page - 1) * limit
    return list(jobs[start:start + limit])


def run_pipeline(
    jobs: Sequence[JobPosting],
    query: JobQuery,
    now: Optional[datetime] = None,
) -> PipelineResult:
    """
    Run the full listing pipeline over a cached batch.

    Args:
        jobs: Annotated postings from the cache
        query: The request's filters, sort, stat bucket and page
        now: Reference time for the "new posting" window

    Returns:
        PipelineResult with the count after the stat bucket (before
        pagination), the requested page, and the pre-bucket stats
    """
    now = now or datetime.now()

    filtered = filter_postings(jobs, query)
    ordered = sort_postings(filtered, query.sort)
    stats = compute_stats(ordered, now)
    bucketed = apply_stat_filter(ordered, query.stat_filter, now)

    return PipelineResult(
        total_count=len(bucketed),
        items=paginate(bucketed, query.page, query.limit),
        stats=stats,
    )
