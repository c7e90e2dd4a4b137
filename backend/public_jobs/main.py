"""
Public Jobs API - Main Application Entry Point

Browse/search front-end proxy over the public-institution recruitment API.

Architecture:
    FastAPI App
    ├── Lifespan Management (upstream client + caches on app.state)
    ├── CORS Middleware (front-end origins from settings)
    ├── Prometheus Middleware (/metrics)
    └── API Router
        └── /jobs - listing, suggestions, trends, detail
"""

import logging
from contextlib import asynccontextmanager
from functools import partial

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from public_jobs.api import api_router
from public_jobs.config import get_settings
from public_jobs.middleware import setup_metrics
from public_jobs.services.cache import DetailCache, JobCache
from public_jobs.services.upstream import RecruitmentClient

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle events.

    Startup:
        1. Open the shared HTTP client for the recruitment API
        2. Create the listing and detail caches on app.state

    Shutdown:
        1. Close the HTTP client
    """
    http_client = httpx.AsyncClient(timeout=settings.upstream_timeout_seconds)
    client = RecruitmentClient(settings, http_client=http_client)

    app.state.job_cache = JobCache(
        fetcher=partial(client.fetch_list, num_rows=settings.list_fetch_rows, page_no=1),
        ttl=settings.cache_ttl_seconds,
        serve_stale_on_error=settings.serve_stale_on_error,
    )
    app.state.detail_cache = DetailCache(
        fetcher=client.fetch_detail,
        ttl=settings.detail_cache_ttl_seconds,
    )
    if not settings.data_go_kr_api_key:
        logger.warning("DATA_GO_KR_API_KEY is not set; job endpoints will answer 500")

    yield

    await http_client.aclose()


app = FastAPI(
    title="Public Jobs API",
    description="Search and statistics over public-institution job postings",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

setup_metrics(app)
app.include_router(api_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"resultCode": 500, "resultMsg": str(exc), "result": None},
    )


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("public_jobs.main:app", host="0.0.0.0", port=8000)
