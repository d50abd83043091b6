"""
Factory module for creating X-Ray client instances from HTTP request headers.
"""

from contextvars import ContextVar
from typing import Optional
from fastapi import Request, HTTPException
from .xray_client import XRayTracingClient, create_xray_client
from ..config.settings import settings


def extract_aws_options_from_headers(request: Request) -> dict:
    """
    Extract AWS client options from HTTP headers.

    Optional headers:
    - X-AWS-Region: The X-Ray region (defaults to settings)
    - X-AWS-Profile: A named AWS profile on the server host

    Args:
        request: FastAPI Request object

    Returns:
        dict with client options: {region_name, profile_name}

    Raises:
        HTTPException: If a header value is malformed
    """
    region_name = request.headers.get("X-AWS-Region")
    profile_name = request.headers.get("X-AWS-Profile")

    if region_name is not None and not region_name.replace("-", "").isalnum():
        raise HTTPException(
            status_code=400,
            detail=f"Invalid X-AWS-Region header: {region_name}"
        )

    return {
        "region_name": region_name or settings.AWS_REGION,
        "profile_name": profile_name or settings.AWS_PROFILE
    }


def create_xray_client_from_request(request: Request) -> XRayTracingClient:
    """
    Create an X-Ray client from HTTP request headers.

    Args:
        request: FastAPI Request object

    Returns:
        XRayTracingClient configured for the requested region/profile

    Raises:
        HTTPException: If a header value is malformed
    """
    options = extract_aws_options_from_headers(request)
    return create_xray_client(**options)


# Request-scoped tracing client for tools called over HTTP
_current_tracing_client: ContextVar[Optional[XRayTracingClient]] = ContextVar("current_tracing_client", default=None)

def set_request_context(tracing_client: XRayTracingClient):
    """Store the tracing client of the current request for tools to access."""
    _current_tracing_client.set(tracing_client)

def get_current_tracing_client():
    """Get the tracing client of the current request, or a default one from settings."""
    return _current_tracing_client.get() or create_xray_client()

def clear_request_context():
    """Clear the current request context."""
    _current_tracing_client.set(None)
