"""Tests for the TMDB client (HTTP mocked with pytest-httpx)."""

import re

import httpx
import pytest
from pytest_httpx import HTTPXMock

from hallyuhub.config.settings import TMDBSettings
from hallyuhub.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    NotFoundError,
    RateLimitExceededError,
)
from hallyuhub.infrastructure.integrations.tmdb_client import TMDBClient
from hallyuhub.infrastructure.rate_limiter import RateLimiter, RateLimiterConfig


def fast_limiter() -> RateLimiter:
    return RateLimiter(config=RateLimiterConfig(max_tokens=100, refill_rate=1000.0), name="test")


@pytest.fixture
def tmdb_settings() -> TMDBSettings:
    return TMDBSettings(api_key="test-key", initial_retry_delay=0, max_retries=2)


@pytest.fixture
async def tmdb(tmdb_settings: TMDBSettings):
    client = TMDBClient(tmdb_settings, rate_limiter=fast_limiter())
    yield client
    await client.close()


class TestTMDBClientConfig:
    """Test credential handling."""

    def test_is_configured(self) -> None:
        assert TMDBClient(TMDBSettings(api_key="k")).is_configured
        assert TMDBClient(TMDBSettings(read_access_token="t")).is_configured
        assert not TMDBClient(TMDBSettings()).is_configured

    async def test_missing_credentials_raise(self) -> None:
        client = TMDBClient(TMDBSettings())

        with pytest.raises(ConfigurationError):
            await client.get_person_details(1)

    async def test_api_key_sent_as_query_param(
        self, tmdb: TMDBClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=re.compile(r".*/person/1\?.*"), json={"id": 1})

        await tmdb.get_person_details(1)

        request = httpx_mock.get_request()
        assert request is not None
        assert request.url.params["api_key"] == "test-key"
        assert request.url.params["language"] == "ko-KR"

    async def test_read_access_token_sent_as_bearer(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=re.compile(r".*/person/1/external_ids.*"), json={})
        client = TMDBClient(TMDBSettings(read_access_token="v4-token"), rate_limiter=fast_limiter())

        await client.get_person_external_ids(1)
        await client.close()

        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["Authorization"] == "Bearer v4-token"
        assert "api_key" not in request.url.params

    def test_image_url(self, tmdb: TMDBClient) -> None:
        assert tmdb.image_url("/luna.jpg") == "https://image.tmdb.org/t/p/w500/luna.jpg"
        assert tmdb.image_url(None) is None
        assert tmdb.image_url("") is None


class TestTMDBClientPeople:
    async def test_search_person_picks_most_popular(
        self, tmdb: TMDBClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=re.compile(r".*/search/person.*"),
            json={
                "results": [
                    {"id": 1, "name": "IU", "popularity": 3.2},
                    {"id": 2, "name": "IU", "popularity": 41.5},
                ]
            },
        )

        person = await tmdb.search_person("IU")

        assert person is not None
        assert person["id"] == 2

    async def test_find_person_falls_back_to_hangul(
        self, tmdb: TMDBClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=re.compile(r".*/search/person.*"), json={"results": []})
        httpx_mock.add_response(
            url=re.compile(r".*/search/person.*"), json={"results": [{"id": 7, "popularity": 1}]}
        )

        person = await tmdb.find_person("Lee Jieun", "이지은")

        assert person == {"id": 7, "popularity": 1}
        second = httpx_mock.get_requests()[1]
        assert second.url.params["query"] == "이지은"

    async def test_find_person_without_hangul(
        self, tmdb: TMDBClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=re.compile(r".*/search/person.*"), json={"results": []})

        assert await tmdb.find_person("Nobody", None) is None
        assert len(httpx_mock.get_requests()) == 1


class TestTMDBClientProductions:
    async def test_search_production_returns_results(
        self, tmdb: TMDBClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=re.compile(r".*/search/tv\?.*"),
            json={"results": [{"id": 93405, "name": "오징어 게임"}]},
        )

        results = await tmdb.search_production("tv", "오징어 게임")

        assert results == [{"id": 93405, "name": "오징어 게임"}]
        request = httpx_mock.get_request()
        assert request is not None
        assert request.url.params["query"] == "오징어 게임"
        assert request.url.params["page"] == "1"

    async def test_search_production_without_results(
        self, tmdb: TMDBClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=re.compile(r".*/search/movie.*"), json={})

        assert await tmdb.search_production("movie", "Parasite") == []

    async def test_details_append_to_response(
        self, tmdb: TMDBClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=re.compile(r".*/movie/496243\?.*"), json={"id": 496243})

        await tmdb.get_production_details("movie", 496243, append_to_response="videos")

        request = httpx_mock.get_request()
        assert request is not None
        assert request.url.params["append_to_response"] == "videos"

    @pytest.mark.parametrize(
        ("tmdb_type", "endpoint"),
        [("movie", "release_dates"), ("tv", "content_ratings")],
    )
    async def test_certifications_endpoint_per_type(
        self, tmdb: TMDBClient, httpx_mock: HTTPXMock, tmdb_type: str, endpoint: str
    ) -> None:
        httpx_mock.add_response(
            url=re.compile(rf".*/{tmdb_type}/10/{endpoint}.*"),
            json={"id": 10, "results": [{"iso_3166_1": "BR"}]},
        )

        assert await tmdb.get_production_certifications(tmdb_type, 10) == [{"iso_3166_1": "BR"}]

    def test_backdrop_url(self, tmdb: TMDBClient) -> None:
        assert tmdb.backdrop_url("/sky.jpg") == "https://image.tmdb.org/t/p/original/sky.jpg"
        assert tmdb.backdrop_url(None) is None


class TestTMDBClientErrors:
    """Test retry and error mapping."""

    async def test_404_raises_not_found_without_retry(
        self, tmdb: TMDBClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=re.compile(r".*/tv/999.*"), status_code=404)

        with pytest.raises(NotFoundError):
            await tmdb.get_production_details("tv", 999)

        assert len(httpx_mock.get_requests()) == 1

    async def test_server_error_is_retried(self, tmdb: TMDBClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=re.compile(r".*/movie/200.*"), status_code=500)
        httpx_mock.add_response(url=re.compile(r".*/movie/200.*"), json={"id": 200})

        details = await tmdb.get_production_details("movie", 200)

        assert details == {"id": 200}

    async def test_gives_up_after_max_retries(
        self, tmdb: TMDBClient, httpx_mock: HTTPXMock
    ) -> None:
        for _ in range(3):
            httpx_mock.add_response(url=re.compile(r".*/movie/200.*"), status_code=502)

        with pytest.raises(ExternalServiceError) as exc_info:
            await tmdb.get_production_details("movie", 200)

        assert exc_info.value.status_code == 502
        assert len(httpx_mock.get_requests()) == 3

    async def test_rate_limit_waits_and_retries(
        self, tmdb: TMDBClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=re.compile(r".*/person/1/combined_credits.*"),
            status_code=429,
            headers={"Retry-After": "0"},
        )
        httpx_mock.add_response(
            url=re.compile(r".*/person/1/combined_credits.*"), json={"cast": [], "crew": []}
        )

        credits = await tmdb.get_person_combined_credits(1)

        assert credits == {"cast": [], "crew": []}

    async def test_rate_limit_exhausted(self, tmdb: TMDBClient, httpx_mock: HTTPXMock) -> None:
        for _ in range(3):
            httpx_mock.add_response(
                url=re.compile(r".*/person/1/combined_credits.*"),
                status_code=429,
                headers={"Retry-After": "0"},
            )

        with pytest.raises(RateLimitExceededError) as exc_info:
            await tmdb.get_person_combined_credits(1)

        assert exc_info.value.retry_after == 0

    async def test_transport_error(self, tmdb: TMDBClient, httpx_mock: HTTPXMock) -> None:
        for _ in range(3):
            httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with pytest.raises(ExternalServiceError, match="TMDB request failed"):
            await tmdb.get_watch_providers("tv", 100)
