from __future__ import annotations
from typing import Callable, Protocol, Sequence

from .entities import EncodedImage, ModelReply

ProgressCallback = Callable[[str], None]


class IMultimodalModel(Protocol):
    """Ask a multimodal model one question; get text and/or images back.

    Detection, verification and generation all go through this one contract,
    so adapters are swappable in tests.
    """

    async def ask(self, instruction: str, images: Sequence[EncodedImage] = ()) -> ModelReply: ...
