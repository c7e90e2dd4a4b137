from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    # data.go.kr service key (decoded form)
    data_go_kr_api_key: str = ""
    recruitment_api_base_url: str = "https://apis.data.go.kr/1051000/recruitment"
    upstream_timeout_seconds: float = 30.0

    # Listing cache
    list_fetch_rows: int = 1000
    cache_ttl_seconds: int = 300
    detail_cache_ttl_seconds: int = 3600
    # Answer from the previous snapshot when a refresh fails
    serve_stale_on_error: bool = False

    default_page_size: int = 20

    cors_origins: List[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
