"""
tests/test_rate_limiting.py — Tests for rate limiting behavior

Covers: the limiter key (proxy-aware client address), Redis storage
fallback, and limited routes responding normally while limits are
disabled in tests.

Called by: pytest
Depends on: smartify.rate_limit, routers/otp.py, routers/agent.py
"""

import os
from unittest.mock import MagicMock, patch


def test_limiter_keys_on_client_address():
    from smartify.rate_limit import client_key, limiter

    assert limiter._key_func is client_key


def test_client_key_prefers_forwarded_first_hop():
    from smartify.rate_limit import client_key

    request = MagicMock()
    request.headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.2"}
    assert client_key(request) == "203.0.113.7"


def test_client_key_falls_back_to_peer():
    from smartify.rate_limit import client_key

    request = MagicMock()
    request.headers = {}
    request.client.host = "10.1.1.1"
    assert client_key(request) == "10.1.1.1"


def test_limiter_disabled_in_test_mode():
    from smartify.rate_limit import limiter

    assert os.environ.get("RATE_LIMIT_ENABLED") == "false"
    assert limiter.enabled is False


def test_otp_route_responds_under_repeated_calls(public_client):
    for _ in range(8):
        resp = public_client.post("/api/otp/send", json={"email": "loop@gmail.com"})
        assert resp.status_code == 200


def test_resolve_storage_no_redis():
    """_resolve_storage returns None when Redis is not configured."""
    with patch("smartify.rate_limit.settings") as mock_settings:
        mock_settings.cache_backend = "memory"
        mock_settings.redis_url = ""
        from smartify.rate_limit import _resolve_storage

        assert _resolve_storage() is None


def test_resolve_storage_redis_unavailable():
    """_resolve_storage returns None when Redis ping fails."""
    import redis as redis_lib

    with patch("smartify.rate_limit.settings") as mock_settings:
        mock_settings.cache_backend = "redis"
        mock_settings.redis_url = "redis://localhost:6379/15"
        with patch.object(redis_lib, "from_url") as mock_from_url:
            mock_from_url.return_value.ping.side_effect = ConnectionError
            from smartify.rate_limit import _resolve_storage

            assert _resolve_storage() is None


def test_resolve_storage_redis_available():
    import redis as redis_lib

    with patch("smartify.rate_limit.settings") as mock_settings:
        mock_settings.cache_backend = "redis"
        mock_settings.redis_url = "redis://cache:6379/0"
        with patch.object(redis_lib, "from_url") as mock_from_url:
            mock_from_url.return_value.ping.return_value = True
            from smartify.rate_limit import _resolve_storage

            assert _resolve_storage() == "redis://cache:6379/0"
