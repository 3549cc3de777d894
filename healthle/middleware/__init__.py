"""Middleware modules for the application."""

from healthle.middleware.audit_log import AuditLogMiddleware
from healthle.middleware.auth_state import AuthStateMiddleware
from healthle.middleware.correlation import CorrelationIdMiddleware
from healthle.middleware.rate_limit import RateLimitMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "AuthStateMiddleware",
    "RateLimitMiddleware",
    "AuditLogMiddleware",
]
