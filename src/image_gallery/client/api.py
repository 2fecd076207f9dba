"""Client for the gallery REST API.

Bearer credentials are supplied by an injected ``token_provider`` callable
(typically :meth:`SessionTokenStore.get_access_token`), so no mutable token
state lives on a shared client object.

Usage::

    client = GalleryApiClient("https://api.example.com", token_provider=store.get_access_token)
    config = client.get_config()
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Final

import requests
from cachetools import TTLCache

from image_gallery.auth.models import ProviderConfig
from image_gallery.client.errors import (
    ApiRequestError,
    ApiResponseError,
    UploadValidationError,
)
from image_gallery.client.models import ImageRecord, PresignedUpload, UserProfile

_LOG = logging.getLogger("image-gallery.client.api")

MAX_IMAGE_NAME: Final[int] = 40
MAX_IMAGE_DESCRIPTION: Final[int] = 120
MAX_NICKNAME: Final[int] = 20

TokenProvider = Callable[[], "str | None"]


class GalleryApiClient:
    """Thin wrapper around the ``/v1`` gallery endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        token_provider: TokenProvider | None = None,
        session: Any = None,
        timeout: tuple[float, float] = (5, 20),
        config_ttl_seconds: int = 300,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        # ``requests`` module or a ``requests.Session``; both expose ``request``
        self._http = session if session is not None else requests
        self.timeout = timeout
        self._config_cache: TTLCache | None = (
            TTLCache(maxsize=1, ttl=config_ttl_seconds) if config_ttl_seconds > 0 else None
        )
        self._config_lock = threading.Lock()

    def with_token_provider(self, token_provider: TokenProvider | None) -> "GalleryApiClient":
        """Return a client sharing transport and config cache but using *token_provider*."""
        clone = copy.copy(self)
        clone.token_provider = token_provider
        return clone

    # ------------------------------------------------------------------ #
    # transport                                                          #
    # ------------------------------------------------------------------ #
    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self._http.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            _LOG.warning("%s %s failed: %s", method, endpoint, exc)
            raise ApiRequestError(None, str(exc)) from exc

        if not resp.ok:
            _LOG.warning("%s %s returned %s", method, endpoint, resp.status_code)
            raise ApiRequestError(resp.status_code, resp.reason or "", resp.text)
        try:
            return resp.json()
        except ValueError:
            raise ApiResponseError(f"{method} {endpoint} returned invalid JSON") from None

    @staticmethod
    def _require_success(data: Any, fallback: str) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise ApiResponseError(fallback)
        if not data.get("success"):
            raise ApiResponseError(data.get("error") or data.get("message") or fallback)
        return data

    # ------------------------------------------------------------------ #
    # endpoints                                                          #
    # ------------------------------------------------------------------ #
    def get_config(self) -> ProviderConfig:
        """Return the Cognito domain and client id published by the API."""
        with self._config_lock:
            if self._config_cache is not None and "config" in self._config_cache:
                return self._config_cache["config"]

            data = self._require_success(
                self._request("GET", "/v1/config"), "Failed to get config from API server"
            )
            domain = data.get("cognitoDomain")
            client_id = data.get("cognitoClientId")
            if not domain or not client_id:
                raise ApiResponseError("Config response lacks cognitoDomain or cognitoClientId")

            config = ProviderConfig(domain=domain, client_id=client_id)
            if self._config_cache is not None:
                self._config_cache["config"] = config
            return config

    def health_check(self) -> dict[str, Any]:
        return self._request("GET", "/health")

    def get_user(self, sub: str) -> UserProfile:
        data = self._require_success(
            self._request("GET", f"/v1/users/{sub}"), "Failed to get user data"
        )
        return UserProfile.from_payload(data.get("user") or {})

    def update_nickname(self, sub: str, nickname: str | None) -> UserProfile:
        """Set (or clear with ``None``/blank) the nickname of *sub*."""
        value = (nickname or "").strip() or None
        if value is not None and len(value) > MAX_NICKNAME:
            raise UploadValidationError(f"Nickname must be {MAX_NICKNAME} characters or less")
        data = self._require_success(
            self._request("PUT", f"/v1/users/{sub}/nickname", json={"nickname": value}),
            "Failed to update nickname",
        )
        return UserProfile.from_payload(data.get("user") or {})

    def get_images(self, search: str | None = None) -> list[ImageRecord]:
        term = (search or "").strip()
        params = {"search": term} if term else None
        data = self._require_success(
            self._request("GET", "/v1/images", params=params), "Failed to list images"
        )
        return [ImageRecord.from_payload(item) for item in data.get("images") or []]

    def get_presigned_url(
        self, image_name: str, image_description: str | None = None
    ) -> PresignedUpload:
        data = self._require_success(
            self._request(
                "POST",
                "/v1/images/presigned-url",
                json={"imageName": image_name, "imageDescription": image_description},
            ),
            "Failed to get upload URL",
        )
        if not data.get("presignedUrl"):
            raise ApiResponseError(data.get("message") or "Failed to get upload URL")
        return PresignedUpload(
            presigned_url=data["presignedUrl"],
            image_id=data.get("imageId"),
            uuid_filename=data.get("uuidFilename"),
            message=data.get("message"),
        )

    def upload_to_presigned_url(self, presigned_url: str, data: bytes, content_type: str) -> None:
        """PUT *data* to object storage.  No bearer token is sent."""
        try:
            resp = self._http.request(
                "PUT",
                presigned_url,
                data=data,
                headers={"Content-Type": content_type},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ApiRequestError(None, f"Upload failed: {exc}") from exc
        if not resp.ok:
            raise ApiRequestError(resp.status_code, f"Upload failed: {resp.reason}", resp.text)

    def upload_image(
        self,
        image_name: str,
        image_description: str | None,
        data: bytes,
        content_type: str,
    ) -> PresignedUpload:
        """Validate input, reserve an upload slot and push the file."""
        name = (image_name or "").strip()
        description = (image_description or "").strip() or None
        if not name:
            raise UploadValidationError("Please enter an image name")
        if not data:
            raise UploadValidationError("Please select a file")
        if len(name) > MAX_IMAGE_NAME:
            raise UploadValidationError(
                f"Image name must be {MAX_IMAGE_NAME} characters or less"
            )
        if description is not None and len(description) > MAX_IMAGE_DESCRIPTION:
            raise UploadValidationError(
                f"Image description must be {MAX_IMAGE_DESCRIPTION} characters or less"
            )

        upload = self.get_presigned_url(name, description)
        self.upload_to_presigned_url(upload.presigned_url, data, content_type)
        _LOG.info("Uploaded image id=%s", upload.image_id)
        return upload
