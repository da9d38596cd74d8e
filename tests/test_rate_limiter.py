"""
Tests for the Redis rate limiter.

Uses a mocked Redis client, so no Redis server is needed.
"""

from unittest.mock import MagicMock

import pytest
import redis
from fastapi import HTTPException

from app.core.rate_limiter import RateLimiter


@pytest.fixture
def redis_client():
    return MagicMock()


@pytest.fixture
def limiter(redis_client):
    return RateLimiter(redis_client=redis_client)


class TestRateLimiter:
    """Test fixed window counting"""

    def test_first_request_starts_window(self, limiter, redis_client):
        redis_client.get.return_value = None

        limiter.check_rate_limit("forgot_password:a@x.com", max_requests=3, window_seconds=600)

        redis_client.setex.assert_called_once_with("forgot_password:a@x.com", 600, 1)
        redis_client.incr.assert_not_called()

    def test_within_limit_increments(self, limiter, redis_client):
        redis_client.get.return_value = "2"

        limiter.check_rate_limit("forgot_password:a@x.com", max_requests=3, window_seconds=600)

        redis_client.incr.assert_called_once_with("forgot_password:a@x.com")

    def test_limit_exceeded(self, limiter, redis_client):
        redis_client.get.return_value = "3"
        redis_client.ttl.return_value = 412

        with pytest.raises(HTTPException) as exc_info:
            limiter.check_rate_limit(
                "forgot_password:a@x.com",
                max_requests=3,
                window_seconds=600,
                error_message="Too many reset codes requested"
            )

        assert exc_info.value.status_code == 429
        assert "412 seconds" in exc_info.value.detail
        redis_client.incr.assert_not_called()

    def test_redis_down_allows_request(self, limiter, redis_client):
        redis_client.get.side_effect = redis.ConnectionError("Connection refused")

        limiter.check_rate_limit("forgot_password:a@x.com", max_requests=3, window_seconds=600)

    def test_reset_limit(self, limiter, redis_client):
        limiter.reset_limit("forgot_password:a@x.com")
        redis_client.delete.assert_called_once_with("forgot_password:a@x.com")

    def test_reset_limit_redis_down(self, limiter, redis_client):
        redis_client.delete.side_effect = redis.ConnectionError("Connection refused")
        limiter.reset_limit("forgot_password:a@x.com")


class TestEndpointLimits:
    """Test the limits applied to the reset endpoints"""

    def test_forgot_password_limit(self, client, monkeypatch):
        calls = []

        def mock_check(key, max_requests, window_seconds, error_message="Rate limit exceeded"):
            calls.append((key, max_requests, window_seconds))
            if len(calls) > max_requests:
                raise HTTPException(status_code=429, detail=error_message)

        monkeypatch.setattr("app.core.rate_limiter.rate_limiter.check_rate_limit", mock_check)

        responses = [
            client.post("/api/v1/auth/forgot-password", json={"email": "a@x.com"})
            for _ in range(4)
        ]

        assert [r.status_code for r in responses] == [200, 200, 200, 429]
        assert calls[0] == ("forgot_password:a@x.com", 3, 600)

    def test_verify_shares_attempt_limit_with_reset(self, client, monkeypatch):
        keys = []

        def mock_check(key, max_requests, window_seconds, error_message="Rate limit exceeded"):
            keys.append((key, max_requests, window_seconds))

        monkeypatch.setattr("app.core.rate_limiter.rate_limiter.check_rate_limit", mock_check)

        client.post("/api/v1/auth/verify-reset-code", json={"email": "a@x.com", "code": "123456"})
        client.post(
            "/api/v1/auth/reset-password",
            json={"email": "a@x.com", "code": "123456", "new_password": "NewPass1!"}
        )

        assert keys == [("reset_code_attempt:a@x.com", 10, 600)] * 2

    def test_successful_reset_clears_attempts(self, client, sender, create_account, monkeypatch):
        cleared = []
        monkeypatch.setattr("app.core.rate_limiter.rate_limiter.reset_limit", cleared.append)
        create_account(email="a@x.com")
        client.post("/api/v1/auth/forgot-password", json={"email": "a@x.com"})
        code = sender.last_code_for("a@x.com")

        response = client.post(
            "/api/v1/auth/reset-password",
            json={"email": "a@x.com", "code": code, "new_password": "NewPass1!"}
        )

        assert response.status_code == 200
        assert cleared == ["reset_code_attempt:a@x.com"]

    def test_failed_reset_keeps_attempts(self, client, sender, create_account, monkeypatch):
        cleared = []
        monkeypatch.setattr("app.core.rate_limiter.rate_limiter.reset_limit", cleared.append)
        create_account(email="a@x.com")
        client.post("/api/v1/auth/forgot-password", json={"email": "a@x.com"})
        code = sender.last_code_for("a@x.com")
        wrong = "100000" if code != "100000" else "100001"

        rejected_code = client.post(
            "/api/v1/auth/reset-password",
            json={"email": "a@x.com", "code": wrong, "new_password": "NewPass1!"}
        )
        rejected_password = client.post(
            "/api/v1/auth/reset-password",
            json={"email": "a@x.com", "code": code, "new_password": "password"}
        )

        assert rejected_code.status_code == 400
        assert rejected_password.status_code == 400
        assert cleared == []
