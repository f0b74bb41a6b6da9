"""Tests for RateLimiter request delays and 429 retry behaviour."""

import asyncio

import httpx
import pytest
import respx

from jiracrawler.config import RateLimitConfig
from jiracrawler.jira.exceptions import JiraRateLimitExhaustedError, JiraTransportError
from jiracrawler.jira.rate_limit import RateLimiter
from tests.conftest import API_URL

ISSUE_URL = f"{API_URL}/issue/TEST-123"


@pytest.fixture
async def http():
    """Plain httpx client; respx intercepts its requests."""
    async with httpx.AsyncClient() as client:
        yield client


def too_many(retry_after: str | None = None) -> httpx.Response:
    headers = {"Retry-After": retry_after} if retry_after is not None else {}
    return httpx.Response(429, headers=headers)


class TestRateLimiterInit:
    """Tests for construction and validation."""

    def test_defaults(self) -> None:
        limiter = RateLimiter()
        assert limiter.delay == 0.1
        assert limiter.max_retries == 3
        assert limiter.backoff_multiplier == 2.0
        assert limiter.enabled is True

    def test_from_config(self) -> None:
        config = RateLimitConfig(delay_ms=250, max_retries=5, backoff_multiplier=3.0, enabled=False)
        limiter = RateLimiter.from_config(config)

        assert limiter.delay == pytest.approx(0.25)
        assert limiter.max_retries == 5
        assert limiter.backoff_multiplier == 3.0
        assert limiter.enabled is False

    def test_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from jiracrawler.config import get_settings

        monkeypatch.setenv("RATE_LIMIT__DELAY_MS", "40")
        monkeypatch.setenv("RATE_LIMIT__MAX_RETRIES", "1")
        get_settings.cache_clear()

        limiter = RateLimiter.from_config()
        assert limiter.delay == pytest.approx(0.04)
        assert limiter.max_retries == 1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"delay": -0.1},
            {"max_retries": -1},
            {"backoff_multiplier": 1.0},
            {"backoff_multiplier": 0.5},
        ],
    )
    def test_rejects_invalid_settings(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            RateLimiter(**kwargs)

    def test_setters_validate(self) -> None:
        limiter = RateLimiter()
        with pytest.raises(ValueError):
            limiter.delay = -1
        with pytest.raises(ValueError):
            limiter.max_retries = -1
        assert limiter.delay == 0.1
        assert limiter.max_retries == 3

    def test_to_dict(self) -> None:
        limiter = RateLimiter(delay=0.25, max_retries=2)
        assert limiter.to_dict() == {
            "delay_ms": 250.0,
            "max_retries": 2,
            "backoff_multiplier": 2.0,
            "enabled": True,
        }


class TestWait:
    """Tests for the courtesy delay."""

    async def test_sleeps_for_delay_when_enabled(self, sleeps: list[float]) -> None:
        await RateLimiter(delay=0.3).wait()
        assert sleeps == [pytest.approx(0.3)]

    async def test_noop_when_disabled(self, sleeps: list[float]) -> None:
        await RateLimiter(delay=0.3, enabled=False).wait()
        assert sleeps == []

    async def test_noop_for_zero_delay(self, sleeps: list[float]) -> None:
        await RateLimiter(delay=0).wait()
        assert sleeps == []

    async def test_observes_updated_delay(self, sleeps: list[float]) -> None:
        limiter = RateLimiter(delay=0.1)
        limiter.delay = 0.5
        await limiter.wait()
        assert sleeps == [pytest.approx(0.5)]


class TestExecuteWithRetry:
    """Tests for retrying on HTTP 429."""

    @respx.mock
    async def test_returns_first_success(self, http: httpx.AsyncClient, sleeps: list[float]) -> None:
        route = respx.get(ISSUE_URL).mock(return_value=httpx.Response(200, json={"key": "TEST-123"}))

        response = await RateLimiter().execute_with_retry(http, http.build_request("GET", ISSUE_URL))

        assert response.status_code == 200
        assert route.call_count == 1
        assert sleeps == []

    @respx.mock
    async def test_retries_with_exponential_backoff(
        self, http: httpx.AsyncClient, sleeps: list[float]
    ) -> None:
        """N 429s then 200 makes N+1 attempts and waits at least the backoff sum."""
        route = respx.get(ISSUE_URL).mock(
            side_effect=[too_many(), too_many(), too_many(), httpx.Response(200, json={})]
        )
        limiter = RateLimiter(delay=0.1, max_retries=3, backoff_multiplier=2.0)

        response = await limiter.execute_with_retry(http, http.build_request("GET", ISSUE_URL))

        assert response.status_code == 200
        assert route.call_count == 4
        assert sleeps == [pytest.approx(0.1), pytest.approx(0.2), pytest.approx(0.4)]
        assert sum(sleeps) >= 0.7 - 1e-9

    @respx.mock
    async def test_retry_after_header_overrides_backoff(
        self, http: httpx.AsyncClient, sleeps: list[float]
    ) -> None:
        route = respx.get(ISSUE_URL).mock(
            side_effect=[too_many(retry_after="2"), httpx.Response(200, json={})]
        )

        response = await RateLimiter(delay=0.1).execute_with_retry(
            http, http.build_request("GET", ISSUE_URL)
        )

        assert response.status_code == 200
        assert route.call_count == 2
        assert sleeps == [2.0]

    @respx.mock
    async def test_unparseable_retry_after_falls_back_to_backoff(
        self, http: httpx.AsyncClient, sleeps: list[float]
    ) -> None:
        respx.get(ISSUE_URL).mock(
            side_effect=[too_many(retry_after="soon"), httpx.Response(200, json={})]
        )

        await RateLimiter(delay=0.1).execute_with_retry(http, http.build_request("GET", ISSUE_URL))

        assert sleeps == [pytest.approx(0.1)]

    @respx.mock
    async def test_zero_retry_after_falls_back_to_backoff(
        self, http: httpx.AsyncClient, sleeps: list[float]
    ) -> None:
        respx.get(ISSUE_URL).mock(
            side_effect=[too_many(retry_after="0"), httpx.Response(200, json={})]
        )

        await RateLimiter(delay=0.1).execute_with_retry(http, http.build_request("GET", ISSUE_URL))

        assert sleeps == [pytest.approx(0.1)]

    @respx.mock
    async def test_exhausted_after_max_retries(
        self, http: httpx.AsyncClient, sleeps: list[float]
    ) -> None:
        """Always 429 makes exactly max_retries + 1 attempts."""
        route = respx.get(ISSUE_URL).mock(side_effect=lambda request: too_many())
        limiter = RateLimiter(delay=0.1, max_retries=2)

        with pytest.raises(JiraRateLimitExhaustedError) as exc_info:
            await limiter.execute_with_retry(http, http.build_request("GET", ISSUE_URL))

        assert route.call_count == 3
        assert exc_info.value.attempts == 3
        assert "2 retries" in str(exc_info.value)
        # No wait after the final attempt
        assert len(sleeps) == 2

    @respx.mock
    async def test_zero_retries_is_single_attempt(
        self, http: httpx.AsyncClient, sleeps: list[float]
    ) -> None:
        route = respx.get(ISSUE_URL).mock(side_effect=lambda request: too_many())

        with pytest.raises(JiraRateLimitExhaustedError) as exc_info:
            await RateLimiter(max_retries=0).execute_with_retry(
                http, http.build_request("GET", ISSUE_URL)
            )

        assert route.call_count == 1
        assert exc_info.value.attempts == 1
        assert sleeps == []

    @respx.mock
    async def test_transport_error_is_not_retried(
        self, http: httpx.AsyncClient, sleeps: list[float]
    ) -> None:
        route = respx.get(ISSUE_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(JiraTransportError, match="connection refused"):
            await RateLimiter().execute_with_retry(http, http.build_request("GET", ISSUE_URL))

        assert route.call_count == 1
        assert sleeps == []

    @respx.mock
    async def test_timeout_is_transport_error(self, http: httpx.AsyncClient) -> None:
        respx.get(ISSUE_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

        with pytest.raises(JiraTransportError):
            await RateLimiter().execute_with_retry(http, http.build_request("GET", ISSUE_URL))

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 500, 503])
    @respx.mock
    async def test_other_statuses_returned_unretried(
        self, status: int, http: httpx.AsyncClient, sleeps: list[float]
    ) -> None:
        route = respx.get(ISSUE_URL).mock(return_value=httpx.Response(status))

        response = await RateLimiter().execute_with_retry(
            http, http.build_request("GET", ISSUE_URL)
        )

        assert response.status_code == status
        assert route.call_count == 1
        assert sleeps == []

    @respx.mock
    async def test_retries_even_when_delay_disabled(
        self, http: httpx.AsyncClient, sleeps: list[float]
    ) -> None:
        route = respx.get(ISSUE_URL).mock(side_effect=[too_many(), httpx.Response(200, json={})])

        response = await RateLimiter(delay=0.1, enabled=False).execute_with_retry(
            http, http.build_request("GET", ISSUE_URL)
        )

        assert response.status_code == 200
        assert route.call_count == 2

    @respx.mock
    async def test_settings_snapshot_per_call(
        self, http: httpx.AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Changing settings mid-call does not change the running call's budget."""
        limiter = RateLimiter(delay=0.1, max_retries=1)
        route = respx.get(ISSUE_URL).mock(side_effect=lambda request: too_many())

        async def _mutating_sleep(delay: float) -> None:
            limiter.max_retries = 10
            limiter.delay = 5.0

        monkeypatch.setattr(asyncio, "sleep", _mutating_sleep)

        with pytest.raises(JiraRateLimitExhaustedError) as exc_info:
            await limiter.execute_with_retry(http, http.build_request("GET", ISSUE_URL))

        assert route.call_count == 2
        assert exc_info.value.attempts == 2
        assert limiter.max_retries == 10

    @respx.mock
    async def test_backoff_is_cancellable(self, http: httpx.AsyncClient) -> None:
        """A long Retry-After wait is abandoned when the caller times out."""
        respx.get(ISSUE_URL).mock(side_effect=lambda request: too_many(retry_after="60"))

        with pytest.raises(TimeoutError):
            await asyncio.wait_for(
                RateLimiter().execute_with_retry(http, http.build_request("GET", ISSUE_URL)),
                timeout=0.05,
            )
