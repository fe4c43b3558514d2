# SPDX-License-Identifier: MIT
"""Tests for the HTTP fetch adapter."""

import time

import httpx
import pytest

from heritage_pipeline.config import settings
from heritage_pipeline.enrichment.geocoder import Geocoder
from heritage_pipeline.utils.http import HTTPError, RateLimitError, fetch_json, fetch_with_retry

URL = "https://example.org/api"


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("GET", URL), **kwargs)


@pytest.fixture
def no_sleep(mocker):
    return mocker.patch("heritage_pipeline.utils.http.time.sleep")


class TestFetchWithRetry:
    """Test status handling and the retry policy."""

    def test_success(self, mocker):
        mocker.patch.object(httpx.Client, "get", return_value=_response(200, json={"ok": True}))
        assert fetch_with_retry(URL).json() == {"ok": True}

    def test_http_error(self, mocker):
        mocker.patch.object(httpx.Client, "get", return_value=_response(404, text="nope"))

        with pytest.raises(HTTPError) as exc:
            fetch_with_retry(URL)
        assert exc.value.status_code == 404

    def test_rate_limit_is_retried(self, mocker, no_sleep):
        get = mocker.patch.object(httpx.Client, "get", return_value=_response(429, headers={"Retry-After": "1"}))

        with pytest.raises(RateLimitError):
            fetch_with_retry(URL)
        assert get.call_count == settings.enrichment.http_max_attempts

    def test_timeout_is_not_retried(self, mocker, no_sleep):
        get = mocker.patch.object(httpx.Client, "get", side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(httpx.TimeoutException):
            fetch_with_retry(URL)
        assert get.call_count == 1

    def test_single_attempt_does_not_retry_rate_limit(self, mocker, no_sleep):
        get = mocker.patch.object(httpx.Client, "get", return_value=_response(429))

        with pytest.raises(RateLimitError):
            fetch_with_retry(URL, max_attempts=1)
        assert get.call_count == 1
        no_sleep.assert_not_called()

    def test_no_retry_when_backoff_exceeds_budget(self, mocker, no_sleep):
        get = mocker.patch.object(httpx.Client, "get", return_value=_response(429))

        with pytest.raises(RateLimitError):
            fetch_with_retry(URL, timeout=0.5, max_attempts=5)
        assert get.call_count == 1

    def test_attempts_share_one_budget(self, mocker, no_sleep):
        get = mocker.patch.object(
            httpx.Client, "get", side_effect=[_response(429), _response(200, json={})]
        )

        fetch_with_retry(URL, timeout=5.0, max_attempts=2)

        timeouts = [call.kwargs["timeout"] for call in get.call_args_list]
        assert len(timeouts) == 2
        assert all(0 < t <= 5.0 for t in timeouts)
        assert timeouts[1] <= timeouts[0]

    def test_slow_server_after_rate_limit_stays_within_wait(self, mocker):
        def slow_after_429(*args, **kwargs):
            if get.call_count == 1:
                return _response(429)
            time.sleep(3)
            return _response(200, json=[])

        get = mocker.patch.object(httpx.Client, "get", side_effect=slow_after_429)
        geocoder = Geocoder(timeout=2.5, delay=0)

        started = time.monotonic()
        assert geocoder.geocode_approximate("Petra", "Jordan") is None
        elapsed = time.monotonic() - started

        assert get.call_count == 1
        assert elapsed < 2.5

    def test_sends_user_agent(self, mocker):
        get = mocker.patch.object(httpx.Client, "get", return_value=_response(200, json={}))
        fetch_with_retry(URL)
        assert get.call_args.kwargs["headers"]["User-Agent"] == settings.enrichment.user_agent


class TestFetchJson:
    """Test failure-to-None conversion and pacing."""

    def test_returns_decoded_json(self, mocker, no_sleep):
        mocker.patch("heritage_pipeline.utils.http.fetch_with_retry", return_value=_response(200, json={"a": 1}))
        assert fetch_json(URL) == {"a": 1}

    @pytest.mark.parametrize(
        "error",
        [
            httpx.ConnectTimeout("timeout"),
            httpx.ConnectError("refused"),
            RateLimitError("429", status_code=429),
            HTTPError("500", status_code=500),
        ],
    )
    def test_failures_return_none(self, mocker, no_sleep, error):
        mocker.patch("heritage_pipeline.utils.http.fetch_with_retry", side_effect=error)
        assert fetch_json(URL) is None

    def test_invalid_json_returns_none(self, mocker, no_sleep):
        mocker.patch("heritage_pipeline.utils.http.fetch_with_retry", return_value=_response(200, text="<html>"))
        assert fetch_json(URL) is None

    def test_sleeps_after_success(self, mocker, no_sleep):
        mocker.patch("heritage_pipeline.utils.http.fetch_with_retry", return_value=_response(200, json={}))
        fetch_json(URL)
        no_sleep.assert_called_once_with(settings.enrichment.request_delay)

    def test_sleeps_after_failure(self, mocker, no_sleep):
        mocker.patch("heritage_pipeline.utils.http.fetch_with_retry", side_effect=httpx.ConnectTimeout("t"))
        fetch_json(URL, delay=0.5)
        no_sleep.assert_called_once_with(0.5)

    def test_zero_delay_skips_sleep(self, mocker, no_sleep):
        mocker.patch("heritage_pipeline.utils.http.fetch_with_retry", return_value=_response(200, json={}))
        fetch_json(URL, delay=0)
        no_sleep.assert_not_called()

    def test_timeout_forwarded(self, mocker, no_sleep):
        fetch = mocker.patch("heritage_pipeline.utils.http.fetch_with_retry", return_value=_response(200, json={}))
        fetch_json(URL, params={"q": "x"}, timeout=10.0)
        fetch.assert_called_once_with(URL, params={"q": "x"}, timeout=10.0, max_attempts=None)
