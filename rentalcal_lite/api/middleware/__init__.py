"""Middleware components for request processing."""

from .correlation_id import correlation_id_middleware, get_request_id
from .cors import cors_middleware
from .not_found import not_found_middleware

__all__ = ["correlation_id_middleware", "cors_middleware", "get_request_id", "not_found_middleware"]
