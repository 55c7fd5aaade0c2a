import cv2
import numpy as np
import pytest

from plates.entities import EncodedImage, ModelReply


class FakeModel:
    """Scripted stand-in for IMultimodalModel.

    Each ask() consumes the next scripted reply; the last one repeats.
    Strings become text replies, exceptions are raised.
    """

    def __init__(self, *replies):
        self.replies = list(replies) or [ModelReply()]
        self.calls = []

    async def ask(self, instruction, images=()):
        self.calls.append((instruction, list(images)))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            return ModelReply(text=reply)
        return reply


def encode_png(img: np.ndarray) -> EncodedImage:
    ok, buf = cv2.imencode(".png", img)
    assert ok
    return EncodedImage(media_type="image/png", data=buf.tobytes())


def image_reply(tag: bytes) -> ModelReply:
    return ModelReply(images=(EncodedImage(media_type="image/png", data=tag),))


@pytest.fixture
def opaque_png() -> EncodedImage:
    return encode_png(np.full((8, 8, 3), 120, np.uint8))


@pytest.fixture
def rgba_png():
    """Build an 8x8 BGRA png; `holes` maps flat pixel index -> alpha."""
    def _make(holes=None):
        img = np.full((8, 8, 4), 200, np.uint8)
        img[..., 3] = 255
        flat = img.reshape(-1, 4)
        for index, alpha in (holes or {}).items():
            flat[index, 3] = alpha
        return encode_png(img)
    return _make


@pytest.fixture
def plate_keys(settings):
    settings.GEMINI_API_KEY = "gemini-test-key"
    settings.OPENAI_API_KEY = "sk-test"
    settings.PLATE_VISION_BACKEND = "openai"
    return settings


@pytest.fixture(autouse=True)
def local_cache(settings):
    # no redis under test; the job store only needs a working cache
    settings.CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "platemorph-tests",
        }
    }
    return settings
