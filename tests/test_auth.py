import base64

import pytest
from starlette.requests import Request

from coldstart_mcp_server.config.settings import settings
from coldstart_mcp_server.security.auth import (
    AuthenticationError,
    AuthorizationError,
    RateLimitError,
    SecurityManager,
)


def make_request(headers=None, client_ip="10.0.0.1", query_string=b""):
    raw_headers = [(name.lower().encode(), value.encode()) for name, value in (headers or {}).items()]
    return Request({
        "type": "http",
        "method": "POST",
        "path": "/mcp",
        "headers": raw_headers,
        "query_string": query_string,
        "client": (client_ip, 51000),
    })


@pytest.fixture
def auth_settings(monkeypatch):
    monkeypatch.setattr(settings, "HTTP_AUTH_ENABLED", True)
    monkeypatch.setattr(settings, "HTTP_AUTH_METHOD", "api_key")
    monkeypatch.setattr(settings, "HTTP_API_KEY", "secret-key")
    monkeypatch.setattr(settings, "HTTP_BEARER_TOKEN", "secret-token")
    monkeypatch.setattr(settings, "HTTP_BASIC_USERNAME", "admin")
    monkeypatch.setattr(settings, "HTTP_BASIC_PASSWORD", "hunter2")
    monkeypatch.setattr(settings, "HTTP_IP_WHITELIST", "")
    monkeypatch.setattr(settings, "HTTP_RATE_LIMIT_ENABLED", False)
    monkeypatch.setattr(settings, "BEHIND_PROXY", False)
    return settings


@pytest.mark.asyncio
async def test_api_key_from_header_or_query(auth_settings):
    manager = SecurityManager()

    assert await manager.authenticate(make_request({"X-API-Key": "secret-key"}))
    assert await manager.authenticate(make_request(query_string=b"api_key=secret-key"))


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"X-API-Key": "wrong"}])
async def test_api_key_rejected(auth_settings, headers):
    with pytest.raises(AuthenticationError):
        await SecurityManager().authenticate(make_request(headers))


@pytest.mark.asyncio
async def test_bearer(auth_settings, monkeypatch):
    monkeypatch.setattr(settings, "HTTP_AUTH_METHOD", "bearer")
    manager = SecurityManager()

    assert await manager.authenticate(make_request({"Authorization": "Bearer secret-token"}))
    with pytest.raises(AuthenticationError):
        await manager.authenticate(make_request({"Authorization": "Bearer nope"}))
    with pytest.raises(AuthenticationError):
        await manager.authenticate(make_request({"Authorization": "Basic secret-token"}))


@pytest.mark.asyncio
async def test_basic(auth_settings, monkeypatch):
    monkeypatch.setattr(settings, "HTTP_AUTH_METHOD", "basic")
    manager = SecurityManager()

    good = base64.b64encode(b"admin:hunter2").decode()
    bad = base64.b64encode(b"admin:letmein").decode()

    assert await manager.authenticate(make_request({"Authorization": f"Basic {good}"}))
    with pytest.raises(AuthenticationError):
        await manager.authenticate(make_request({"Authorization": f"Basic {bad}"}))
    with pytest.raises(AuthenticationError):
        await manager.authenticate(make_request({"Authorization": "Basic !!!"}))


@pytest.mark.asyncio
async def test_disabled_auth_lets_everything_through(auth_settings, monkeypatch):
    monkeypatch.setattr(settings, "HTTP_AUTH_ENABLED", False)

    assert await SecurityManager().authenticate(make_request())


def test_missing_credential_is_generated(auth_settings, monkeypatch):
    monkeypatch.setattr(settings, "HTTP_API_KEY", "")

    SecurityManager()

    assert len(settings.HTTP_API_KEY) >= 32


@pytest.mark.asyncio
async def test_ip_whitelist(auth_settings, monkeypatch):
    monkeypatch.setattr(settings, "HTTP_IP_WHITELIST", "10.0.0.0/24, 192.168.1.5, bogus")
    manager = SecurityManager()

    assert manager.check_ip_whitelist("10.0.0.42")
    assert manager.check_ip_whitelist("192.168.1.5")
    assert not manager.check_ip_whitelist("192.168.1.6")
    assert not manager.check_ip_whitelist("not-an-ip")
    with pytest.raises(AuthorizationError):
        await manager.authenticate(make_request({"X-API-Key": "secret-key"}, client_ip="172.16.0.1"))


@pytest.mark.asyncio
async def test_rate_limit_blocks_after_limit(auth_settings, monkeypatch):
    monkeypatch.setattr(settings, "HTTP_RATE_LIMIT_ENABLED", True)
    manager = SecurityManager(max_requests_per_minute=2)
    request = make_request({"X-API-Key": "secret-key"})

    await manager.authenticate(request)
    await manager.authenticate(request)
    with pytest.raises(RateLimitError):
        await manager.authenticate(request)

    # Other clients are counted separately
    assert await manager.authenticate(make_request({"X-API-Key": "secret-key"}, client_ip="10.0.0.2"))


def test_client_ip_honours_proxy_headers_only_when_trusted(auth_settings, monkeypatch):
    request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    manager = SecurityManager()

    assert manager.get_client_ip(request) == "10.0.0.1"

    monkeypatch.setattr(settings, "BEHIND_PROXY", True)
    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", True)

    assert manager.get_client_ip(request) == "203.0.113.7"
    assert manager.get_client_ip(make_request({"X-Forwarded-For": "garbage", "X-Real-IP": "198.51.100.2"})) == "198.51.100.2"
