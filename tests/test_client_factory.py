import pytest
from fastapi import HTTPException
from starlette.requests import Request

from coldstart_mcp_server.api_client import client_factory
from coldstart_mcp_server.config.settings import settings
from conftest import FakeTracingBackend


def make_request(headers):
    return Request({
        "type": "http",
        "method": "POST",
        "path": "/mcp",
        "headers": [(name.lower().encode(), value.encode()) for name, value in headers.items()],
        "query_string": b"",
    })


def test_headers_override_settings(monkeypatch):
    monkeypatch.setattr(settings, "AWS_REGION", "us-east-1")
    monkeypatch.setattr(settings, "AWS_PROFILE", None)

    options = client_factory.extract_aws_options_from_headers(make_request({"X-AWS-Region": "eu-west-1", "X-AWS-Profile": "ops"}))

    assert options == {"region_name": "eu-west-1", "profile_name": "ops"}


def test_missing_headers_fall_back_to_settings(monkeypatch):
    monkeypatch.setattr(settings, "AWS_REGION", "us-east-1")
    monkeypatch.setattr(settings, "AWS_PROFILE", "default")

    options = client_factory.extract_aws_options_from_headers(make_request({}))

    assert options == {"region_name": "us-east-1", "profile_name": "default"}


def test_malformed_region_is_rejected():
    with pytest.raises(HTTPException) as exc_info:
        client_factory.extract_aws_options_from_headers(make_request({"X-AWS-Region": "us east/1"}))

    assert exc_info.value.status_code == 400


def test_request_context_round_trip(monkeypatch):
    fallback = FakeTracingBackend()
    monkeypatch.setattr(client_factory, "create_xray_client", lambda: fallback)
    backend = FakeTracingBackend()

    client_factory.set_request_context(backend)
    try:
        assert client_factory.get_current_tracing_client() is backend
    finally:
        client_factory.clear_request_context()

    assert client_factory.get_current_tracing_client() is fallback
