"""
Service layer for business logic implementation.
Contains the image pipeline, search, admin content management and error handling.
"""

from .image_processor import ImageFile, ImageProcessor
from .upload import UploadOrchestrator, UploadReport, GalleryResult, ItemResult, EntityKind, FileState
from .search import SearchService
from .search_page import SearchPageController
from .autocomplete import AutocompleteController
from .property import PropertyService
from .content import CategoryService, BlogPostService, ReviewService
from .error_handler import ErrorHandlerService, register_exception_handlers

__all__ = [
    "ImageFile",
    "ImageProcessor",
    "UploadOrchestrator",
    "UploadReport",
    "GalleryResult",
    "ItemResult",
    "EntityKind",
    "FileState",
    "SearchService",
    "SearchPageController",
    "AutocompleteController",
    "PropertyService",
    "CategoryService",
    "BlogPostService",
    "ReviewService",
    "ErrorHandlerService",
    "register_exception_handlers"
]
