"""Exception types raised by :class:`~image_gallery.client.api.GalleryApiClient`."""

from __future__ import annotations


class ApiError(RuntimeError):
    """Base class for gallery API failures."""


class ApiRequestError(ApiError):
    """The API answered with a non-2xx status or could not be reached."""

    def __init__(self, status_code: int | None, reason: str, body: str = "") -> None:
        if status_code is None:
            message = f"API request failed: {reason}"
        else:
            message = f"API request failed: {status_code} {reason} - {body}"
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.body = body


class ApiResponseError(ApiError):
    """The API answered 2xx but flagged ``success: false`` or a malformed body."""


class UploadValidationError(ApiError, ValueError):
    """Upload input rejected before any request was made."""
