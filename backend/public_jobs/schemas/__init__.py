from public_jobs.schemas.job import (
    JobPosting,
    JobPostingDetail,
    JobFile,
    JobStep,
    StatsSnapshot,
    JobListResponse,
    JobDetailResponse,
    Suggestion,
    SuggestionResponse,
    TrendDatum,
    TrendResponse,
)

__all__ = [
    "JobPosting",
    "JobPostingDetail",
    "JobFile",
    "JobStep",
    "StatsSnapshot",
    "JobListResponse",
    "JobDetailResponse",
    "Suggestion",
    "SuggestionResponse",
    "TrendDatum",
    "TrendResponse",
]
