"""
API route handlers for the Realty Search API.
"""

from .search import router as search_router
from .properties import router as properties_router, admin_router as admin_properties_router
from .categories import router as categories_router, admin_router as admin_categories_router
from .content import blog_router, review_router

__all__ = [
    "search_router",
    "properties_router",
    "admin_properties_router",
    "categories_router",
    "admin_categories_router",
    "blog_router",
    "review_router",
]
