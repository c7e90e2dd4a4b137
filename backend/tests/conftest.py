"""Shared fixtures: a fixed clock and raw/annotated posting factories."""

from datetime import date, datetime, timedelta
from typing import Any, Dict

import pytest

from public_jobs.schemas import JobPosting
from public_jobs.services.cache import to_posting

TODAY = date(2024, 3, 15)
NOW = datetime(2024, 3, 15, 12, 0)


def ymd(offset_days: int, base: date = TODAY) -> str:
    """YYYYMMDD string ``offset_days`` from the fixed test date."""
    return (base + timedelta(days=offset_days)).strftime("%Y%m%d")


def raw_posting(sn: int, **overrides: Any) -> Dict[str, Any]:
    record = {
        "recrutPblntSn": sn,
        "instNm": f"기관{sn}",
        "recrutPbancTtl": f"공고 {sn}",
        "ncsCdNmLst": "정보통신",
        "hireTypeNmLst": "정규직",
        "workRgnNmLst": "서울",
        "recrutSeNm": "신입",
        "acbgCondNmLst": "학력무관",
        "recrutNope": 1,
        "pbancBgngYmd": ymd(-20),
        "pbancEndYmd": ymd(10),
    }
    record.update(overrides)
    return record


@pytest.fixture
def make_posting():
    """Build an annotated JobPosting as the cache would store it."""

    def _make(sn: int, **overrides: Any) -> JobPosting:
        posting = to_posting(raw_posting(sn, **overrides), TODAY)
        assert posting is not None
        return posting

    return _make
