"""
Search-box suggestions drawn from institution names and job classifications.

Ranking, in order:
    1. candidates that start with the query before those that merely contain it
    2. institutions before classification keywords
    3. Korean dictionary order of the text
"""

from typing import Dict, List, Sequence, Tuple

from public_jobs.schemas import JobPosting, Suggestion

DEFAULT_LIMIT = 8
MAX_LIMIT = 20

INSTITUTION = "institution"
KEYWORD = "keyword"


def normalize(value: str) -> str:
    return value.strip().lower()


def clamp_limit(limit: int) -> int:
    return min(max(limit, 1), MAX_LIMIT)


def collect_candidates(jobs: Sequence[JobPosting], query: str) -> List[Suggestion]:
    """Distinct institutions and classification tokens containing ``query``."""
    needle = normalize(query)
    found: Dict[Tuple[str, str], Suggestion] = {}

    for job in jobs:
        inst = job.inst_nm.strip()
        if inst and needle in normalize(inst):
            found[(INSTITUTION, inst)] = Suggestion(text=inst, type=INSTITUTION)

        for chunk in job.ncs_cd_nm_lst.split(","):
            keyword = chunk.strip()
            if keyword and needle in normalize(keyword):
                found[(KEYWORD, keyword)] = Suggestion(text=keyword, type=KEYWORD)

    return list(found.values())


def rank_suggestions(items: Sequence[Suggestion], query: str, limit: int = DEFAULT_LIMIT) -> List[Suggestion]:
    needle = normalize(query)

    def sort_key(item: Suggestion):
        prefix_tier = 0 if normalize(item.text).startswith(needle) else 1
        type_tier = 0 if item.type == INSTITUTION else 1
        # Hangul syllables are encoded in dictionary order
        return (prefix_tier, type_tier, item.text.casefold(), item.text)

    return sorted(items, key=sort_key)[:limit]


def suggest(jobs: Sequence[JobPosting], query: str, limit: int = DEFAULT_LIMIT) -> List[Suggestion]:
    if not query.strip():
        return []
    return rank_suggestions(collect_candidates(jobs, query), query, clamp_limit(limit))
