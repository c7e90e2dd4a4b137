"""
Tests for the /jobs endpoints.

The upstream fetchers, settings and clock are replaced through FastAPI
dependency overrides; the app's lifespan is not started.

Run with: pytest backend/tests/test_jobs_api.py -v
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from public_jobs.api.jobs import get_detail_cache, get_job_cache, get_now
from public_jobs.config import Settings, get_settings
from public_jobs.exceptions import UpstreamError
from public_jobs.main import app
from public_jobs.services.cache import DetailCache, JobCache

from conftest import NOW, TODAY, raw_posting, ymd


@pytest.fixture
def settings():
    return Settings(data_go_kr_api_key="test-key")


@pytest.fixture
def list_fetcher():
    return AsyncMock(return_value=[
        raw_posting(1, recrutPbancTtl="데이터 분석가", instNm="서울연구원", pbancEndYmd=ymd(5),
                    workRgnNmLst="서울", hireTypeNmLst="정규직", recrutNope=2),
        raw_posting(2, recrutPbancTtl="데이터 엔지니어", instNm="부산서부", pbancEndYmd=ymd(1),
                    workRgnNmLst="서울", hireTypeNmLst="계약직", pbancBgngYmd=ymd(-1)),
        raw_posting(3, recrutPbancTtl="데이터 관리", instNm="서울연구원", pbancEndYmd=ymd(10),
                    workRgnNmLst="부산광역시", recrutNope=5),
        raw_posting(4, recrutPbancTtl="시설 관리", pbancEndYmd=ymd(-2)),
        raw_posting(5, recrutPbancTtl="상시 채용", pbancEndYmd="", ncsCdNmLst="서비스진흥",
                    workRgnNmLst="경기도"),
    ])


@pytest.fixture
def detail_fetcher():
    return AsyncMock(return_value=raw_posting(
        42, pbancEndYmd=ymd(0), aplyQlfcCn="제한없음", scrnprcdrMthdExpln="서류-필기-면접",
        steps=[{"stepNm": "서류", "stepExpln": "적격심사"}],
    ))


@pytest.fixture
def client(settings, list_fetcher, detail_fetcher):
    job_cache = JobCache(fetcher=list_fetcher, today=lambda: TODAY)
    detail_cache = DetailCache(fetcher=detail_fetcher, today=lambda: TODAY)

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_job_cache] = lambda: job_cache
    app.dependency_overrides[get_detail_cache] = lambda: detail_cache
    app.dependency_overrides[get_now] = lambda: NOW
    yield TestClient(app)
    app.dependency_overrides.clear()


def ids(body):
    return [item["recrutPblntSn"] for item in body["result"]]


class TestListJobs:
    def test_default_listing(self, client):
        response = client.get("/jobs")

        assert response.status_code == 200
        body = response.json()
        assert body["resultCode"] == 200
        assert body["resultMsg"] == "Success"
        # Closed posting 4 dropped by the default onlyOngoing=true
        assert body["totalCount"] == 4
        assert body["stats"] == {"totalCount": 4, "endingSoon": 1, "newJobs": 1, "institutions": 3}

    def test_posting_fields_are_camel_case(self, client):
        item = client.get("/jobs", params={"sort": "deadline"}).json()["result"][0]

        assert item["recrutPblntSn"] == 2
        assert item["decimalDay"] == 1
        assert item["ongoingYn"] == "Y"
        assert item["ddayLabel"] == "D-1"
        assert item["pbancEndYmd"] == ymd(1)

    def test_keyword_deadline_page(self, client):
        params = {"keyword": "데이터", "onlyOngoing": "true", "sort": "deadline", "page": 1, "limit": 2}

        body = client.get("/jobs", params=params).json()

        assert [item["decimalDay"] for item in body["result"]] == [1, 5]
        assert body["totalCount"] == 3

    def test_only_ongoing_false_includes_closed(self, client):
        body = client.get("/jobs", params={"onlyOngoing": "false"}).json()

        assert body["totalCount"] == 5

    def test_categories_combine_with_and(self, client):
        body = client.get("/jobs", params={"regions": "서울", "hireTypes": "정규직"}).json()

        assert ids(body) == [1]

    def test_personnel_sort(self, client):
        body = client.get("/jobs", params={"sort": "personnel"}).json()

        assert ids(body)[:2] == [3, 1]

    def test_missing_end_date_sorts_last_by_deadline(self, client):
        body = client.get("/jobs", params={"sort": "deadline"}).json()

        assert ids(body)[-1] == 5
        assert "decimalDay" in body["result"][-1]
        assert body["result"][-1]["decimalDay"] is None

    def test_stat_filter_keeps_stats(self, client):
        plain = client.get("/jobs").json()
        narrowed = client.get("/jobs", params={"statFilter": "endingSoon"}).json()

        assert narrowed["stats"] == plain["stats"]
        assert narrowed["totalCount"] == 1
        assert ids(narrowed) == [2]

    def test_new_jobs_stat_filter(self, client):
        body = client.get("/jobs", params={"statFilter": "newJobs"}).json()

        assert ids(body) == [2]

    @pytest.mark.parametrize("page,limit", [("abc", "x"), ("-1", "0"), ("", "")])
    def test_bad_paging_falls_back_to_defaults(self, client, page, limit):
        body = client.get("/jobs", params={"page": page, "limit": limit}).json()

        assert body["resultCode"] == 200
        assert len(body["result"]) == 4

    def test_out_of_range_page_is_empty(self, client):
        body = client.get("/jobs", params={"page": 9, "limit": 2}).json()

        assert body["result"] == []
        assert body["totalCount"] == 4

    def test_cache_reused_between_requests(self, client, list_fetcher):
        client.get("/jobs")
        client.get("/jobs", params={"keyword": "관리"})

        assert list_fetcher.await_count == 1

    def test_missing_key_fails_before_fetch(self, client, settings, list_fetcher):
        settings.data_go_kr_api_key = ""

        response = client.get("/jobs")

        assert response.status_code == 500
        body = response.json()
        assert body["resultCode"] == 500
        assert body["result"] == []
        assert body["totalCount"] == 0
        assert body["stats"] is None
        list_fetcher.assert_not_awaited()

    def test_upstream_failure(self, client, list_fetcher):
        list_fetcher.side_effect = UpstreamError("API error: 502", status_code=502)

        response = client.get("/jobs")

        assert response.status_code == 500
        body = response.json()
        assert body["resultCode"] == 500
        assert body["resultMsg"] == "API error: 502"
        assert body["result"] == []
        assert body["totalCount"] == 0


class TestSuggestions:
    def test_ranked_suggestions(self, client):
        body = client.get("/jobs/suggestions", params={"q": "서"}).json()

        assert body["resultCode"] == 200
        assert body["suggestions"] == [
            {"text": "서울연구원", "type": "institution"},
            {"text": "서비스진흥", "type": "keyword"},
            {"text": "부산서부", "type": "institution"},
        ]

    def test_limit(self, client):
        body = client.get("/jobs/suggestions", params={"q": "서", "limit": 1}).json()

        assert len(body["suggestions"]) == 1

    def test_blank_query_skips_fetch(self, client, list_fetcher):
        body = client.get("/jobs/suggestions", params={"q": "  "}).json()

        assert body["suggestions"] == []
        list_fetcher.assert_not_awaited()

    def test_upstream_failure(self, client, list_fetcher):
        list_fetcher.side_effect = UpstreamError("boom")

        response = client.get("/jobs/suggestions", params={"q": "서"})

        assert response.status_code == 500
        assert response.json()["suggestions"] == []


class TestTrends:
    def test_trend_series(self, client):
        body = client.get("/jobs/trends").json()

        assert body["resultCode"] == 200
        assert body["totalCount"] == 4
        regions = {d["label"]: d["count"] for d in body["regions"]}
        assert regions == {"서울": 2, "부산": 1, "경기": 1}
        assert body["hireTypes"][0] == {"label": "정규직", "count": 3}
        assert sum(d["count"] for d in body["monthly"]) == 4

    def test_trends_follow_filters(self, client):
        body = client.get("/jobs/trends", params={"keyword": "데이터"}).json()

        assert body["totalCount"] == 3


class TestJobDetail:
    def test_detail(self, client, detail_fetcher):
        response = client.get("/jobs/42")

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["recrutPblntSn"] == 42
        assert result["aplyQlfcCn"] == "제한없음"
        assert result["scrnprcdrMthdExpln"] == "서류-필기-면접"
        assert result["steps"] == [{"stepNm": "서류", "stepExpln": "적격심사"}]
        assert result["decimalDay"] == 0
        assert result["ddayLabel"] == "D-DAY"
        detail_fetcher.assert_awaited_once_with(42)

    def test_not_found(self, client, detail_fetcher):
        detail_fetcher.return_value = None

        response = client.get("/jobs/7")

        assert response.status_code == 404
        assert response.json() == {"resultCode": 404, "resultMsg": "Job not found", "result": None}

    def test_invalid_id(self, client, detail_fetcher):
        response = client.get("/jobs/abc")

        assert response.status_code == 400
        assert response.json()["result"] is None
        detail_fetcher.assert_not_awaited()

    def test_upstream_failure(self, client, detail_fetcher):
        detail_fetcher.side_effect = UpstreamError("API error: 500", status_code=500)

        response = client.get("/jobs/42")

        assert response.status_code == 500
        assert response.json()["result"] is None

    def test_missing_key(self, client, settings):
        settings.data_go_kr_api_key = ""

        response = client.get("/jobs/42")

        assert response.status_code == 500
        assert response.json()["resultMsg"] == "API key not configured"

    def test_missing_key_reported_before_invalid_id(self, client, settings, detail_fetcher):
        settings.data_go_kr_api_key = ""

        response = client.get("/jobs/abc")

        assert response.status_code == 500
        assert response.json() == {
            "resultCode": 500,
            "resultMsg": "API key not configured",
            "result": None,
        }
        detail_fetcher.assert_not_awaited()


class TestUnhandledErrors:
    def test_envelope_includes_null_result(self, settings):
        broken_cache = SimpleNamespace(get_jobs=AsyncMock(side_effect=RuntimeError("cache exploded")))
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_job_cache] = lambda: broken_cache
        app.dependency_overrides[get_now] = lambda: NOW
        try:
            response = TestClient(app, raise_server_exceptions=False).get("/jobs")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {"resultCode": 500, "resultMsg": "cache exploded", "result": None}


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_metrics_exposed(self, client):
        client.get("/jobs")
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text
