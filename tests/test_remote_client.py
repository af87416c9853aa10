"""Tests for the single-shot remote scoring client."""

import pytest
import requests

from risk_engine.errors import RemoteRateLimitedError, RemoteUnavailableError
from risk_engine.remote_client import parse_retry_after
from tests.conftest import REMOTE_URL, make_response

CHALLENGE_PAGE = "<!DOCTYPE html><html><head><title>Just a moment...</title></head></html>"


class TestPredict:
    def test_posts_payload_to_predict_endpoint(self, remote_client, session):
        session.post.return_value = make_response(200, {"risk_level": "LOW"})

        body = remote_client.predict({"age": 30, "sex": "M", "travel_history": ""})

        assert body == {"risk_level": "LOW"}
        args, kwargs = session.post.call_args
        assert args[0] == f"{REMOTE_URL}/predict"
        assert kwargs["json"] == {"age": 30, "sex": "M", "travel_history": ""}
        assert kwargs["timeout"] == 2.0

    def test_rate_limit_with_json_body(self, remote_client, session):
        session.post.return_value = make_response(429, {"error": "slow down"}, headers={"retry-after": "5"})

        with pytest.raises(RemoteRateLimitedError) as exc_info:
            remote_client.predict({})

        assert exc_info.value.retry_after == 5.0
        assert exc_info.value.bot_challenge is False

    def test_rate_limit_with_html_body_is_bot_challenge(self, remote_client, session):
        session.post.return_value = make_response(
            429, text=CHALLENGE_PAGE, headers={"content-type": "text/html; charset=UTF-8"},
        )

        with pytest.raises(RemoteRateLimitedError) as exc_info:
            remote_client.predict({})

        assert exc_info.value.bot_challenge is True
        assert exc_info.value.retry_after is None

    def test_html_detected_without_content_type(self, remote_client, session):
        session.post.return_value = make_response(429, text=CHALLENGE_PAGE)

        with pytest.raises(RemoteRateLimitedError) as exc_info:
            remote_client.predict({})
        assert exc_info.value.bot_challenge is True

    def test_json_rate_limit_mentioning_cloudflare_is_not_bot_challenge(self, remote_client, session):
        session.post.return_value = make_response(
            429,
            {"error": "Rate limit exceeded at Cloudflare edge, retry shortly"},
            headers={"retry-after": "2"},
        )

        with pytest.raises(RemoteRateLimitedError) as exc_info:
            remote_client.predict({})

        assert exc_info.value.bot_challenge is False
        assert exc_info.value.retry_after == 2.0

    def test_json_body_without_content_type_is_not_bot_challenge(self, remote_client, session):
        session.post.return_value = make_response(
            429, text='{"message": "Just a moment, too many requests"}',
        )

        with pytest.raises(RemoteRateLimitedError) as exc_info:
            remote_client.predict({})
        assert exc_info.value.bot_challenge is False

    @pytest.mark.parametrize("exc", [
        requests.Timeout("read timed out"),
        requests.ConnectionError("connection refused"),
    ])
    def test_network_errors_are_retryable(self, remote_client, session, exc):
        session.post.side_effect = exc

        with pytest.raises(RemoteUnavailableError) as exc_info:
            remote_client.predict({})
        assert exc_info.value.retryable is True

    def test_server_error_is_retryable(self, remote_client, session):
        session.post.return_value = make_response(503, text="upstream down")

        with pytest.raises(RemoteUnavailableError) as exc_info:
            remote_client.predict({})
        assert exc_info.value.retryable is True

    def test_client_error_is_not_retryable(self, remote_client, session):
        session.post.return_value = make_response(422, {"detail": "bad sex"})

        with pytest.raises(RemoteUnavailableError) as exc_info:
            remote_client.predict({})
        assert exc_info.value.retryable is False

    def test_non_json_success_body(self, remote_client, session):
        session.post.return_value = make_response(200, text="OK")

        with pytest.raises(RemoteUnavailableError) as exc_info:
            remote_client.predict({})
        assert exc_info.value.retryable is False


class TestRetryAfter:
    @pytest.mark.parametrize("value, expected", [
        ("5", 5.0),
        ("0.5", 0.5),
        ("-1", None),
        ("Wed, 21 Oct 2026 07:28:00 GMT", None),
    ])
    def test_parse(self, value, expected):
        response = make_response(429, text="", headers={"retry-after": value})
        assert parse_retry_after(response) == expected

    def test_absent(self):
        assert parse_retry_after(make_response(429, text="")) is None
