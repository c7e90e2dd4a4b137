from fastapi import APIRouter
from public_jobs.api import jobs

api_router = APIRouter()
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
