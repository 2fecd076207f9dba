"""Records returned by the gallery API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from image_gallery.client.errors import ApiResponseError


@dataclass(frozen=True, slots=True)
class UserProfile:
    sub: str
    email: str
    nickname: str | None = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "UserProfile":
        try:
            return cls(sub=data["sub"], email=data["email"], nickname=data.get("nickname"))
        except (KeyError, TypeError):
            raise ApiResponseError("Malformed user payload") from None

    def to_dict(self) -> dict[str, Any]:
        return {"sub": self.sub, "email": self.email, "nickname": self.nickname}


@dataclass(frozen=True, slots=True)
class ImageRecord:
    id: int
    image_name: str
    url: str
    image_description: str | None = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "ImageRecord":
        try:
            return cls(
                id=int(data["id"]),
                image_name=data["imageName"],
                url=data["url"],
                image_description=data.get("imageDescription"),
            )
        except (KeyError, TypeError, ValueError):
            raise ApiResponseError("Malformed image payload") from None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "imageName": self.image_name,
            "imageDescription": self.image_description,
            "url": self.url,
        }


@dataclass(frozen=True, slots=True)
class PresignedUpload:
    """Result of ``POST /v1/images/presigned-url``."""

    presigned_url: str
    image_id: int | None = None
    uuid_filename: str | None = None
    message: str | None = None
