"""Redis rate limiting middleware, against a mocked Redis client."""
from unittest.mock import MagicMock

import pytest
import redis
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from redis_rate_limiter import RedisRateLimiter


@pytest.fixture
def redis_client():
    client = MagicMock()
    pipe = MagicMock()
    pipe.execute.return_value = [0, 0, 1, True]
    client.pipeline.return_value = pipe
    client.zcount.return_value = 0
    return client


@pytest.fixture
def limited_app(redis_client):
    app = FastAPI()
    app.add_middleware(
        RedisRateLimiter,
        redis_client=redis_client,
        requests_per_minute=5,
        window_seconds=60
    )

    @app.get("/ping")
    def ping():
        return {"ok": True}

    @app.get("/missing")
    def missing():
        raise HTTPException(status_code=404, detail="nope")

    return TestClient(app)


def test_allows_requests_under_the_limit(limited_app, redis_client):
    redis_client.pipeline.return_value.execute.return_value = [0, 4, 1, True]

    response = limited_app.get("/ping")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_rejects_requests_over_the_limit(limited_app, redis_client):
    redis_client.pipeline.return_value.execute.return_value = [0, 5, 1, True]

    response = limited_app.get("/ping")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"
    assert "Rate limit exceeded" in response.json()["detail"]


def test_limits_by_forwarded_client_ip(limited_app, redis_client):
    limited_app.get("/ping", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

    pipe = redis_client.pipeline.return_value
    key = pipe.zremrangebyscore.call_args[0][0]
    assert key == "rate:ip:203.0.113.7"


def test_fails_open_when_redis_is_down(limited_app, redis_client):
    redis_client.pipeline.return_value.execute.side_effect = redis.ConnectionError("down")

    response = limited_app.get("/ping")

    assert response.status_code == 200


def test_records_not_found_responses(limited_app, redis_client):
    response = limited_app.get("/missing")

    assert response.status_code == 404
    keys = [call[0][0] for call in redis_client.zadd.call_args_list]
    assert "suspicious:404:testclient" in keys
    assert "suspicious:4xx:testclient" in keys


def test_successful_responses_are_not_recorded(limited_app, redis_client):
    limited_app.get("/ping")

    redis_client.zadd.assert_not_called()


def test_suspicious_activity_tracking_survives_redis_errors(limited_app, redis_client):
    redis_client.zadd.side_effect = redis.ConnectionError("down")

    response = limited_app.get("/missing")

    assert response.status_code == 404
