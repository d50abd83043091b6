# Security module
from .auth import security_manager, AuthenticationError, AuthorizationError, RateLimitError

__all__ = ["security_manager", "AuthenticationError", "AuthorizationError", "RateLimitError"]
