import logging
import re

import cv2
import numpy as np

from .entities import EncodedImage
from .exceptions import TransparentImageError
from .interfaces import IMultimodalModel
from .prompts import DETECTION_PROMPT, VERIFICATION_PROMPT

log = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


# ---------- helpers ----------------------------------------------------------
def clean_plate_text(text: str) -> str:
    return _NON_ALNUM.sub("", text or "").upper()


def plate_text_matches(observed: str, expected: str, min_ratio: float = 0.8) -> bool:
    """
    Fuzzy containment: the reading may carry extra characters around the plate,
    or be slightly truncated, but not by more than (1 - min_ratio) of its length.
    """
    found, wanted = clean_plate_text(observed), clean_plate_text(expected)
    if wanted in found:
        return True
    return found in wanted and len(found) >= len(wanted) * min_ratio


def _sampled_alpha(img: np.ndarray, stride: int) -> np.ndarray | None:
    # every `stride`-th pixel of the flattened image, alpha scaled to 8 bits
    if img.ndim != 3 or img.shape[2] != 4:
        return None
    alpha = img[..., 3].reshape(-1)[::stride]
    if img.dtype == np.uint16:
        alpha = (alpha >> 8).astype(np.uint8)
    return alpha


def _to_bgr8(img: np.ndarray) -> np.ndarray:
    if img.dtype == np.uint16:
        img = (img / 257).astype(np.uint8)
    if img.ndim == 3 and img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    return img


# ---------- concrete services ------------------------------------------------
class ImageNormalizer:
    """
    Turns any upload into an opaque JPEG before it reaches the model.
    Never fails except for transparent images, which the user has to fix.
    """

    def __init__(self, enabled: bool = True, jpeg_quality: int = 95,
                 alpha_threshold: int = 250, alpha_stride: int = 4):
        self._enabled = enabled
        self._quality = jpeg_quality
        self._threshold = alpha_threshold
        self._stride = alpha_stride

    def normalize(self, image: EncodedImage) -> EncodedImage:
        if not self._enabled:
            return image
        try:
            img = cv2.imdecode(np.frombuffer(image.data, np.uint8), cv2.IMREAD_UNCHANGED)
            if img is None:
                log.warning("Failed to load image for preprocessing, falling back to original")
                return image

            self._reject_transparent(img)

            ok, buf = cv2.imencode(".jpg", _to_bgr8(img), [cv2.IMWRITE_JPEG_QUALITY, self._quality])
            if not ok:
                log.warning("JPEG encoding failed, falling back to original")
                return image
            return EncodedImage(media_type="image/jpeg", data=buf.tobytes())
        except TransparentImageError:
            raise
        except Exception as exc:
            log.warning("Image preprocessing failed, falling back to original: %s", exc)
            return image

    def _reject_transparent(self, img: np.ndarray) -> None:
        try:
            alpha = _sampled_alpha(img, self._stride)
            transparent = alpha is not None and bool((alpha < self._threshold).any())
        except Exception as exc:
            log.warning("Could not analyze image alpha channel, proceeding carefully: %s", exc)
            return
        if transparent:
            raise TransparentImageError()


class PlatePresenceDetector:
    def __init__(self, model: IMultimodalModel):
        self._model = model

    async def detect(self, image: EncodedImage) -> bool:
        """True when the model answers YES; any failure counts as no plate."""
        try:
            reply = await self._model.ask(DETECTION_PROMPT, [image])
            return "YES" in (reply.text or "").strip().upper()
        except Exception as exc:
            log.warning("Failed to check for existing plate: %s", exc)
            return False


class PlateTextVerifier:
    def __init__(self, model: IMultimodalModel):
        self._model = model

    async def verify(self, image: EncodedImage, expected_text: str) -> bool:
        try:
            reply = await self._model.ask(VERIFICATION_PROMPT, [image])
            found = reply.text or ""
            log.info("[Verification] Expected: %s, Found: %s",
                     clean_plate_text(expected_text), clean_plate_text(found))
            return plate_text_matches(found, expected_text)
        except Exception as exc:
            log.warning("Verification failed, assuming imperfect generation: %s", exc)
            return False
