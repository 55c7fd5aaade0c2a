import json
import logging
from typing import Any, Sequence

from django.conf import settings
from google import genai
from google.genai import types as genai_types
from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI

from .entities import EncodedImage, ModelReply
from .exceptions import ConfigurationError
from .services import ImageNormalizer, PlatePresenceDetector, PlateTextVerifier
from .usecases import GeneratePlateUseCase

log = logging.getLogger(__name__)

DEFAULT_GEMINI_VISION_MODEL = "gemini-2.5-flash"
DEFAULT_OPENAI_VISION_MODEL = "gpt-4.1"


def _content_to_str(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for p in content:
            if isinstance(p, str):
                parts.append(p)
            elif isinstance(p, dict) and p.get("type") == "text":
                parts.append(p.get("text", ""))
        return "\n".join(parts).strip()
    try:
        return json.dumps(content, ensure_ascii=False)
    except Exception:
        return str(content)


class GeminiMultimodalModel:
    """Google Gen AI adapter; returns text parts and inline image parts."""

    def __init__(self, api_key: str, model: str):
        self.model = model
        self._client = genai.Client(api_key=api_key)

    async def ask(self, instruction: str, images: Sequence[EncodedImage] = ()) -> ModelReply:
        parts = [genai_types.Part.from_bytes(data=img.data, mime_type=img.media_type) for img in images]
        parts.append(genai_types.Part.from_text(text=instruction))

        response = await self._client.aio.models.generate_content(model=self.model, contents=parts)

        texts, out_images = [], []
        candidates = response.candidates or []
        content = candidates[0].content if candidates else None
        for part in (content.parts if content and content.parts else []):
            if part.text:
                texts.append(part.text)
            inline = part.inline_data
            if inline and inline.data:
                out_images.append(EncodedImage(media_type=inline.mime_type or "image/png", data=inline.data))
        return ModelReply(text="".join(texts) or None, images=tuple(out_images))


class OpenAIVisionModel:
    """LangChain ChatOpenAI adapter for text answers about images."""

    def __init__(self, api_key: str, model: str = DEFAULT_OPENAI_VISION_MODEL, temperature: float = 0):
        self.model = model
        self._llm = ChatOpenAI(model=model, temperature=temperature, api_key=api_key)

    async def ask(self, instruction: str, images: Sequence[EncodedImage] = ()) -> ModelReply:
        content = [{"type": "text", "text": instruction}]
        content += [{"type": "image_url", "image_url": {"url": img.to_data_uri()}} for img in images]
        response = await self._llm.ainvoke([HumanMessage(content=content)])
        return ModelReply(text=_content_to_str(response.content) or None)


# ---------- wiring -----------------------------------------------------------
def _require(name: str) -> str:
    value = getattr(settings, name, None)
    if not value:
        raise ConfigurationError(f"{name} is missing in environment variables.")
    return value


def build_vision_model():
    backend = (getattr(settings, "PLATE_VISION_BACKEND", "openai") or "openai").lower()
    model = getattr(settings, "PLATE_VISION_MODEL", None)
    if backend == "gemini":
        return GeminiMultimodalModel(_require("GEMINI_API_KEY"), model or DEFAULT_GEMINI_VISION_MODEL)
    if backend == "openai":
        return OpenAIVisionModel(_require("OPENAI_API_KEY"), model or DEFAULT_OPENAI_VISION_MODEL)
    raise ConfigurationError(f"Unknown PLATE_VISION_BACKEND: {backend!r}")


def build_generate_usecase() -> GeneratePlateUseCase:
    """Fresh use case per request/task. Fails fast on missing credentials."""
    generator = GeminiMultimodalModel(_require("GEMINI_API_KEY"), settings.PLATE_IMAGE_MODEL)
    vision = build_vision_model()
    log.debug("Wired plate generation: image=%s vision=%s", generator.model, vision.model)
    return GeneratePlateUseCase(
        normalizer=ImageNormalizer(enabled=settings.PLATE_NORMALIZE_IMAGES),
        detector=PlatePresenceDetector(vision),
        verifier=PlateTextVerifier(vision),
        generator=generator,
        max_retries=settings.PLATE_MAX_RETRIES,
    )
