"""
Trend Aggregation - Top-N counts for the dashboard charts

Series:
    - regions:   first listed work region, provincial names folded to short form
    - ncs:       primary job classification
    - hireTypes: primary employment type
    - monthly:   postings per start month (most recent months, ascending)

Counts are taken over the same filtered collection the listing endpoint
would paginate, ignoring sort and pagination.
"""

import re
from collections import Counter
from typing import Callable, Dict, List, Sequence

from public_jobs.schemas import JobPosting, TrendDatum
from public_jobs.services.dates import DATE_PATTERN

FALLBACK_LABEL = "기타"

REGION_ALIASES: Dict[str, str] = {
    "서울특별시": "서울",
    "인천광역시": "인천",
    "경기도": "경기",
    "강원도": "강원",
    "강원특별자치도": "강원",
    "세종특별자치시": "세종",
    "충청남도": "충남",
    "대전광역시": "대전",
    "충청북도": "충북",
    "경상북도": "경북",
    "전라북도": "전북",
    "전북특별자치도": "전북",
    "대구광역시": "대구",
    "울산광역시": "울산",
    "경상남도": "경남",
    "부산광역시": "부산",
    "광주광역시": "광주",
    "전라남도": "전남",
    "제주특별자치도": "제주",
}

_LABEL_SPLIT = re.compile(r"[,\n/]")


def normalize_region(region_text: str) -> str:
    first = region_text.split(",")[0].strip()
    if not first:
        return FALLBACK_LABEL
    if first in REGION_ALIASES:
        return REGION_ALIASES[first]
    for alias, short in REGION_ALIASES.items():
        if alias in first:
            return short
    return first


def primary_label(value: str, fallback: str = FALLBACK_LABEL) -> str:
    for item in _LABEL_SPLIT.split(value):
        if item.strip():
            return item.strip()
    return fallback


def count_by_label(
    jobs: Sequence[JobPosting],
    picker: Callable[[JobPosting], str],
    limit: int = 6,
) -> List[TrendDatum]:
    # most_common keeps first-seen order between equal counts
    counts = Counter(picker(job) for job in jobs)
    return [TrendDatum(label=label, count=count) for label, count in counts.most_common(limit)]


def monthly_trend(jobs: Sequence[JobPosting], limit: int = 6) -> List[TrendDatum]:
    counts = Counter(
        job.pbanc_bgng_ymd[:6] for job in jobs if DATE_PATTERN.match(job.pbanc_bgng_ymd)
    )
    months = sorted(counts)[-limit:]
    return [TrendDatum(label=f"{month[2:4]}.{month[4:6]}", count=counts[month]) for month in months]


def build_trends(jobs: Sequence[JobPosting]) -> Dict[str, List[TrendDatum]]:
    return {
        "regions": count_by_label(jobs, lambda job: normalize_region(job.work_rgn_nm_lst), limit=8),
        "ncs": count_by_label(jobs, lambda job: primary_label(job.ncs_cd_nm_lst)),
        "hire_types": count_by_label(jobs, lambda job: primary_label(job.hire_type_nm_lst)),
        "monthly": monthly_trend(jobs),
    }
