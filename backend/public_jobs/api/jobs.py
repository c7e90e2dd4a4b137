"""
Jobs API - Listing, Suggestions, Trends and Detail

Endpoints:
    GET /jobs              - filtered, sorted, paginated postings + stats
    GET /jobs/suggestions  - search-box suggestions
    GET /jobs/trends       - top-N counts over the filtered postings
    GET /jobs/{sn}         - one posting's detail

Every endpoint answers with the same envelope on success and failure
(``resultCode``, ``resultMsg`` and the endpoint's payload keys), so clients
parse one shape. Failures use HTTP 500 with an empty payload.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from public_jobs.config import Settings, get_settings
from public_jobs.exceptions import ConfigurationError, PublicJobsError
from public_jobs.schemas import (
    JobDetailResponse,
    JobListResponse,
    SuggestionResponse,
    TrendResponse,
)
from public_jobs.services.cache import DetailCache, JobCache
from public_jobs.services.pipeline import (
    JobQuery,
    SortMode,
    StatFilter,
    apply_stat_filter,
    filter_postings,
    run_pipeline,
)
from public_jobs.services.suggestions import DEFAULT_LIMIT, clamp_limit, suggest
from public_jobs.services.trends import build_trends

logger = logging.getLogger(__name__)
router = APIRouter()

FALSE_VALUES = {"false", "0", "n", "no"}


# ==================== Dependencies ====================

def get_job_cache(request: Request) -> JobCache:
    return request.app.state.job_cache


def get_detail_cache(request: Request) -> DetailCache:
    return request.app.state.detail_cache


def get_now() -> datetime:
    return datetime.now()


# ==================== Parameter Parsing ====================

def parse_positive_int(value: Optional[str], default: int) -> int:
    """Parse a positive integer, falling back to ``default`` for anything else."""
    try:
        parsed = int(value) if value is not None else default
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 1 else default


def parse_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_bool(value: Optional[str], default: bool = True) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in FALSE_VALUES


def require_service_key(settings: Settings) -> None:
    if not settings.data_go_kr_api_key:
        raise ConfigurationError("API key not configured")


def error_response(envelope: BaseModel, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope.model_dump(by_alias=True))


# ==================== Endpoints ====================

@router.get("", response_model=JobListResponse)
async def list_jobs(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    keyword: Optional[str] = Query(None),
    regions: Optional[str] = Query(None),
    hire_types: Optional[str] = Query(None, alias="hireTypes"),
    recruit_types: Optional[str] = Query(None, alias="recruitTypes"),
    ncs_types: Optional[str] = Query(None, alias="ncsTypes"),
    education_types: Optional[str] = Query(None, alias="educationTypes"),
    only_ongoing: Optional[str] = Query(None, alias="onlyOngoing"),
    sort: Optional[str] = Query(None),
    stat_filter: Optional[str] = Query(None, alias="statFilter"),
    settings: Settings = Depends(get_settings),
    cache: JobCache = Depends(get_job_cache),
    now: datetime = Depends(get_now),
):
    query = JobQuery(
        keyword=keyword or "",
        regions=parse_list(regions),
        hire_types=parse_list(hire_types),
        recruit_types=parse_list(recruit_types),
        ncs_types=parse_list(ncs_types),
        education_types=parse_list(education_types),
        only_ongoing=parse_bool(only_ongoing),
        sort=SortMode.parse(sort),
        stat_filter=StatFilter.parse(stat_filter),
        page=parse_positive_int(page, 1),
        limit=parse_positive_int(limit, settings.default_page_size),
    )

    try:
        require_service_key(settings)
        jobs = await cache.get_jobs()
    except PublicJobsError as e:
        logger.error(f"Jobs listing failed: {e}")
        return error_response(JobListResponse(result_code=500, result_msg=str(e)))

    outcome = run_pipeline(jobs, query, now)
    return JobListResponse(
        total_count=outcome.total_count,
        result=outcome.items,
        stats=outcome.stats,
    )


@router.get("/suggestions", response_model=SuggestionResponse)
async def get_suggestions(
    q: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    settings: Settings = Depends(get_settings),
    cache: JobCache = Depends(get_job_cache),
):
    text = (q or "").strip()
    size = clamp_limit(parse_positive_int(limit, DEFAULT_LIMIT))

    try:
        require_service_key(settings)
        if not text:
            return SuggestionResponse()
        jobs = await cache.get_jobs()
    except PublicJobsError as e:
        logger.error(f"Suggestions failed: {e}")
        return error_response(SuggestionResponse(result_code=500, result_msg=str(e)))

    return SuggestionResponse(suggestions=suggest(jobs, text, size))


@router.get("/trends", response_model=TrendResponse)
async def get_trends(
    keyword: Optional[str] = Query(None),
    regions: Optional[str] = Query(None),
    hire_types: Optional[str] = Query(None, alias="hireTypes"),
    recruit_types: Optional[str] = Query(None, alias="recruitTypes"),
    ncs_types: Optional[str] = Query(None, alias="ncsTypes"),
    education_types: Optional[str] = Query(None, alias="educationTypes"),
    only_ongoing: Optional[str] = Query(None, alias="onlyOngoing"),
    stat_filter: Optional[str] = Query(None, alias="statFilter"),
    settings: Settings = Depends(get_settings),
    cache: JobCache = Depends(get_job_cache),
    now: datetime = Depends(get_now),
):
    query = JobQuery(
        keyword=keyword or "",
        regions=parse_list(regions),
        hire_types=parse_list(hire_types),
        recruit_types=parse_list(recruit_types),
        ncs_types=parse_list(ncs_types),
        education_types=parse_list(education_types),
        only_ongoing=parse_bool(only_ongoing),
        stat_filter=StatFilter.parse(stat_filter),
    )

    try:
        require_service_key(settings)
        jobs = await cache.get_jobs()
    except PublicJobsError as e:
        logger.error(f"Trends failed: {e}")
        return error_response(TrendResponse(result_code=500, result_msg=str(e)))

    selected = apply_stat_filter(filter_postings(jobs, query), query.stat_filter, now)
    return TrendResponse(total_count=len(selected), **build_trends(selected))


@router.get("/{sn}", response_model=JobDetailResponse)
async def get_job(
    sn: str,
    settings: Settings = Depends(get_settings),
    details: DetailCache = Depends(get_detail_cache),
):
    try:
        require_service_key(settings)
    except PublicJobsError as e:
        logger.error(f"Job detail {sn} failed: {e}")
        return error_response(JobDetailResponse(result_code=500, result_msg=str(e)))

    if not (sn.isascii() and sn.isdigit()):
        return error_response(
            JobDetailResponse(result_code=400, result_msg="Invalid posting id"),
            status_code=400,
        )

    try:
        detail = await details.get(int(sn))
    except PublicJobsError as e:
        logger.error(f"Job detail {sn} failed: {e}")
        return error_response(JobDetailResponse(result_code=500, result_msg=str(e)))

    if detail is None:
        return error_response(
            JobDetailResponse(result_code=404, result_msg="Job not found"),
            status_code=404,
        )

    return JobDetailResponse(result=detail)
