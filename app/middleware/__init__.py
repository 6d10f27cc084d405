"""
Middleware package for the Realty Search API.
"""

from .request_context import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware"
]
