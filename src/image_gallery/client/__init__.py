"""HTTP client for the gallery REST API."""

from __future__ import annotations

from .api import GalleryApiClient  # noqa: F401
from .errors import (  # noqa: F401
    ApiError,
    ApiRequestError,
    ApiResponseError,
    UploadValidationError,
)
from .models import ImageRecord, PresignedUpload, UserProfile  # noqa: F401

__all__ = [
    "GalleryApiClient",
    "ApiError",
    "ApiRequestError",
    "ApiResponseError",
    "UploadValidationError",
    "ImageRecord",
    "PresignedUpload",
    "UserProfile",
]
