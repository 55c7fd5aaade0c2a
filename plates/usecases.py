import logging
from typing import Optional

from .entities import GenerationAttempt, PlateMode, PlateRequest, PlateResult
from .exceptions import ExhaustedRetriesError, GenerationError, PlateDetectedSignal
from .interfaces import IMultimodalModel, ProgressCallback
from .prompts import build_edit_prompt
from .services import ImageNormalizer, PlatePresenceDetector, PlateTextVerifier

log = logging.getLogger(__name__)

MAX_RETRIES = 4


class GeneratePlateUseCase:
    """
    Application-layer orchestration:
    normalize -> (detect) -> up to `max_retries` x {generate -> verify}.

    The first verified attempt wins. When none verifies, the image of the
    last attempt that produced one is returned as a best-effort result.
    """

    def __init__(self, normalizer: ImageNormalizer, detector: PlatePresenceDetector,
                 verifier: PlateTextVerifier, generator: IMultimodalModel,
                 max_retries: int = MAX_RETRIES):
        self._normalizer = normalizer
        self._detector = detector
        self._verifier = verifier
        self._generator = generator
        self._max_retries = max_retries

    async def execute(self, req: PlateRequest, on_progress: Optional[ProgressCallback] = None) -> PlateResult:
        report = on_progress or (lambda _status: None)

        # 1) canonical image; transparency errors go straight to the caller
        report("Checking image...")
        image = self._normalizer.normalize(req.source_image)

        # 2) don't stack a second plate on a car that already has one
        if req.mode == PlateMode.ADD and not req.skip_detection:
            report("Scanning for existing plates...")
            if await self._detector.detect(image):
                raise PlateDetectedSignal()

        prompt = build_edit_prompt(req.mode, req.plate_text, req.style)
        last: Optional[GenerationAttempt] = None
        last_error: Optional[Exception] = None

        # 3) bounded generate/verify loop
        for number in range(1, self._max_retries + 1):
            attempt = GenerationAttempt(number=number)
            try:
                report("Generating plate..." if number == 1
                       else f"Refining details (Attempt {number}/{self._max_retries})...")

                reply = await self._generator.ask(prompt, [image])
                if not reply.images:
                    raise GenerationError("No image was returned by the model.")
                attempt.image = reply.images[0]
                last = attempt

                report("Verifying plate text...")
                attempt.verified = await self._verifier.verify(attempt.image, req.plate_text)
                if attempt.verified:
                    return PlateResult(image=attempt.image, verified=True, attempts=number)
                log.info("Attempt %d failed verification. Retrying...", number)
            except Exception as exc:
                log.error("Attempt %d error: %s", number, exc)
                last_error = exc

        # 4) best effort beats a hard failure
        if last is not None:
            log.warning("No attempt verified; returning attempt %d unverified", last.number)
            return PlateResult(image=last.image, verified=False, attempts=self._max_retries)

        if last_error is not None and str(last_error):
            raise ExhaustedRetriesError(str(last_error)) from last_error
        raise ExhaustedRetriesError()
