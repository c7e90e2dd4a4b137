"""
Recruitment API Client

Thin async wrapper around the public-institution recruitment API
(data.go.kr ``1051000/recruitment``).

Endpoints used:
    GET {base}/list?serviceKey=...&resultType=json&numOfRows=...&pageNo=...
    GET {base}/detail?serviceKey=...&resultType=json&sn=...

Both answer with the envelope ``{resultCode, resultMsg, result}``.

Failure policy:
    - Missing service key raises ConfigurationError before any request.
    - Transport errors, non-2xx statuses and undecodable JSON raise
      UpstreamError; the caller decides what to do with its cache.
    - A well-formed response with an unexpected ``result`` shape is
      "no data", not an error.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from public_jobs.config import Settings, get_settings
from public_jobs.exceptions import ConfigurationError, UpstreamError
from public_jobs.middleware.metrics import record_upstream_failure, record_upstream_latency

logger = logging.getLogger(__name__)


class RecruitmentClient:
    """Client for the list and detail resources of the recruitment API."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        settings = settings or get_settings()
        self.base_url = settings.recruitment_api_base_url.rstrip("/")
        self.service_key = settings.data_go_kr_api_key
        self.timeout = settings.upstream_timeout_seconds
        self._client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _get(self, operation: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.service_key:
            raise ConfigurationError("API key not configured")

        client = await self._get_client()
        query = {"serviceKey": self.service_key, "resultType": "json", **params}
        url = f"{self.base_url}/{operation}"

        start_time = time.perf_counter()
        try:
            response = await client.get(url, params=query, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Recruitment API {operation} returned {status}: {e.response.text[:200]}")
            record_upstream_failure(operation)
            raise UpstreamError(f"API error: {status}", status_code=status) from e
        except httpx.HTTPError as e:
            logger.error(f"Recruitment API {operation} request failed: {e}")
            record_upstream_failure(operation)
            raise UpstreamError(f"API request failed: {e}") from e
        except ValueError as e:
            logger.error(f"Recruitment API {operation} sent malformed JSON: {e}")
            record_upstream_failure(operation)
            raise UpstreamError("API returned malformed JSON") from e
        finally:
            record_upstream_latency(operation, time.perf_counter() - start_time)

        if not isinstance(data, dict):
            logger.warning(f"Recruitment API {operation} payload is not an object")
            return {}
        return data

    async def fetch_list(self, num_rows: int = 1000, page_no: int = 1) -> List[Dict[str, Any]]:
        """
        Fetch one page of postings.

        Args:
            num_rows: Page size requested from the API
            page_no: 1-indexed page number

        Returns:
            The raw ``result`` records, or an empty list when the payload
            carries no list under ``result``
        """
        data = await self._get("list", {"numOfRows": num_rows, "pageNo": page_no})
        result = data.get("result")
        if not isinstance(result, list):
            logger.warning(
                f"Recruitment API list payload has no result list "
                f"(resultCode={data.get('resultCode')}, resultMsg={data.get('resultMsg')})"
            )
            return []
        return result

    async def fetch_detail(self, sn: int) -> Optional[Dict[str, Any]]:
        """Fetch one posting's detail record, or None when the API has none."""
        data = await self._get("detail", {"sn": sn})
        result = data.get("result")
        if isinstance(result, list):
            result = result[0] if result else None
        if not isinstance(result, dict) or not result:
            return None
        return result

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
