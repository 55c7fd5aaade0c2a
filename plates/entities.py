import base64
import binascii
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .exceptions import InvalidImageError

_DATA_URI = re.compile(r"^data:(?P<media_type>[^;,]*)(?P<params>(?:;[^;,]*)*),(?P<payload>.*)$", re.DOTALL)
DEFAULT_MEDIA_TYPE = "image/jpeg"


@dataclass(frozen=True)
class EncodedImage:
    """Binary image payload tagged with its media type."""
    media_type: str
    data: bytes = field(repr=False)

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def extension(self) -> str:
        sub = self.media_type.split("/")[-1].lower()
        return "jpg" if sub == "jpeg" else sub

    def to_data_uri(self) -> str:
        return f"data:{self.media_type};base64,{self.b64}"

    @classmethod
    def from_data_uri(cls, uri: str) -> "EncodedImage":
        m = _DATA_URI.match((uri or "").strip())
        if not m or ";base64" not in m.group("params"):
            raise InvalidImageError("Expected a base64 data URI")
        try:
            data = base64.b64decode(m.group("payload"), validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidImageError(f"Malformed base64 payload: {e}") from e
        return cls(media_type=m.group("media_type") or DEFAULT_MEDIA_TYPE, data=data)


class PlateMode(str, Enum):
    ADD = "add"
    REPLACE = "replace"


@dataclass(frozen=True)
class PlateRequest:
    """DTO coming *into* the use-case."""
    source_image: EncodedImage
    plate_text: str
    style: str
    mode: PlateMode = PlateMode.ADD
    skip_detection: bool = False

    def to_payload(self) -> dict:
        """JSON-safe form, for handing the request to a Celery worker."""
        return {
            "image": self.source_image.to_data_uri(),
            "plate_text": self.plate_text,
            "style": self.style,
            "mode": self.mode.value,
            "skip_detection": self.skip_detection,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "PlateRequest":
        return cls(
            source_image=EncodedImage.from_data_uri(payload["image"]),
            plate_text=payload["plate_text"],
            style=payload["style"],
            mode=PlateMode(payload.get("mode", PlateMode.ADD.value)),
            skip_detection=bool(payload.get("skip_detection", False)),
        )


@dataclass
class GenerationAttempt:
    number: int
    image: Optional[EncodedImage] = None
    verified: bool = False


@dataclass(frozen=True)
class ModelReply:
    """What a multimodal model answered: optional text and any inline images."""
    text: Optional[str] = None
    images: Tuple[EncodedImage, ...] = ()


@dataclass(frozen=True)
class PlateResult:
    """DTO going *out* of the use-case. `verified=False` is a best-effort image."""
    image: EncodedImage
    verified: bool
    attempts: int
