import secrets
import base64
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional, List, Union
from fastapi import HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param
import ipaddress
import logging

from ..config.settings import settings

logger = logging.getLogger(__name__)

class AuthenticationError(HTTPException):
    """Custom authentication error exception."""
    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

class AuthorizationError(HTTPException):
    """Custom authorization error exception."""
    def __init__(self, detail: str = "Access denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

class RateLimitError(HTTPException):
    """Custom rate limit error exception."""
    def __init__(self, detail: str = "Rate limit exceeded"):
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)

def _matches(supplied: str, expected: str) -> bool:
    return bool(expected) and secrets.compare_digest(supplied.encode(), expected.encode())

class SecurityManager:
    """Authentication, IP allow-listing and rate limiting for the HTTP transport."""

    def __init__(self, max_requests_per_minute: Optional[int] = None):
        self.max_requests = max_requests_per_minute or settings.MAX_REQUESTS_PER_MINUTE
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._blocked_until: Dict[str, float] = {}
        self.ip_whitelist = self._parse_ip_whitelist(settings.HTTP_IP_WHITELIST)
        self._ensure_auth_credentials()

    @staticmethod
    def _parse_ip_whitelist(raw: str) -> Optional[List[Union[ipaddress.IPv4Network, ipaddress.IPv6Network]]]:
        """Parse a comma-separated list of IPs/CIDRs."""
        whitelist = []
        for entry in (raw or "").split(","):
            entry = entry.strip()
            if not entry:
                continue
            try:
                whitelist.append(ipaddress.ip_network(entry, strict=False))
            except ValueError as e:
                logger.warning(f"Invalid IP in whitelist: {entry} - {e}")
        return whitelist or None

    def _ensure_auth_credentials(self):
        """Generate a credential for the configured method if none was provided."""
        if not settings.HTTP_AUTH_ENABLED:
            return
        generated = {
            "api_key": ("HTTP_API_KEY", 32),
            "bearer": ("HTTP_BEARER_TOKEN", 32),
            "basic": ("HTTP_BASIC_PASSWORD", 16),
        }.get(settings.HTTP_AUTH_METHOD)
        if generated is None:
            return
        attribute, size = generated
        if not getattr(settings, attribute):
            value = secrets.token_urlsafe(size)
            logger.warning(f"No {attribute} provided. Generated one for this process: {value}")
            setattr(settings, attribute, value)

    def check_ip_whitelist(self, client_ip: str) -> bool:
        if not self.ip_whitelist:
            return True
        try:
            address = ipaddress.ip_address(client_ip)
        except ValueError:
            logger.warning(f"Invalid client IP address: {client_ip}")
            return False
        return any(address in network for network in self.ip_whitelist)

    def check_rate_limit(self, client_id: str) -> bool:
        """Sliding one-minute window; a client over the limit is blocked for a minute."""
        if not settings.HTTP_RATE_LIMIT_ENABLED:
            return True

        now = time.time()
        if now < self._blocked_until.get(client_id, 0):
            return False

        requests = self._requests[client_id]
        while requests and now - requests[0] > 60:
            requests.popleft()

        if len(requests) >= self.max_requests:
            self._blocked_until[client_id] = now + 60
            logger.warning(f"Rate limit exceeded for client {client_id}")
            return False

        requests.append(now)
        return True

    async def authenticate_api_key(self, request: Request) -> bool:
        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if not api_key:
            raise AuthenticationError("Missing API key")
        if not _matches(api_key, settings.HTTP_API_KEY):
            raise AuthenticationError("Invalid API key")
        return True

    async def authenticate_bearer(self, request: Request) -> bool:
        scheme, token = get_authorization_scheme_param(request.headers.get("Authorization"))
        if scheme.lower() != "bearer":
            raise AuthenticationError("Missing or invalid bearer authorization")
        if not token or not _matches(token, settings.HTTP_BEARER_TOKEN):
            raise AuthenticationError("Invalid bearer token")
        return True

    async def authenticate_basic(self, request: Request) -> bool:
        scheme, credentials = get_authorization_scheme_param(request.headers.get("Authorization"))
        if scheme.lower() != "basic" or not credentials:
            raise AuthenticationError("Missing or invalid basic authorization")
        try:
            username, password = base64.b64decode(credentials).decode("utf-8").split(":", 1)
        except (ValueError, UnicodeDecodeError):
            raise AuthenticationError("Invalid credentials format")
        if not (_matches(username, settings.HTTP_BASIC_USERNAME) and _matches(password, settings.HTTP_BASIC_PASSWORD)):
            raise AuthenticationError("Invalid username or password")
        return True

    async def authenticate(self, request: Request) -> bool:
        """Main authentication method."""
        if not settings.HTTP_AUTH_ENABLED:
            return True

        client_ip = self.get_client_ip(request)
        if not self.check_ip_whitelist(client_ip):
            raise AuthorizationError(f"IP address {client_ip} not in whitelist")

        client_id = f"{client_ip}:{request.headers.get('User-Agent', 'unknown')}"
        if not self.check_rate_limit(client_id):
            raise RateLimitError("Rate limit exceeded. Please try again later.")

        if settings.HTTP_AUTH_METHOD == "api_key":
            return await self.authenticate_api_key(request)
        elif settings.HTTP_AUTH_METHOD == "bearer":
            return await self.authenticate_bearer(request)
        elif settings.HTTP_AUTH_METHOD == "basic":
            return await self.authenticate_basic(request)
        else:
            raise AuthenticationError(f"Unsupported authentication method: {settings.HTTP_AUTH_METHOD}")

    def get_client_ip(self, request: Request) -> str:
        """Client address, honouring X-Forwarded-For / X-Real-IP behind a trusted proxy."""
        if settings.BEHIND_PROXY and settings.TRUST_PROXY_HEADERS:
            forwarded_for = request.headers.get("X-Forwarded-For")
            if forwarded_for:
                # Format: "client_ip, proxy1_ip, proxy2_ip"
                candidate = forwarded_for.split(",")[0].strip()
                if self._is_valid_ip(candidate):
                    return candidate
            real_ip = (request.headers.get("X-Real-IP") or "").strip()
            if real_ip and self._is_valid_ip(real_ip):
                return real_ip

        return request.client.host if request.client else "unknown"

    @staticmethod
    def _is_valid_ip(ip: str) -> bool:
        try:
            ipaddress.ip_address(ip)
            return True
        except ValueError:
            return False

# Create a singleton instance
security_manager = SecurityManager()
