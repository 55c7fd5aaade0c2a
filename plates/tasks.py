import logging

from asgiref.sync import async_to_sync
from celery import shared_task

from .clients import build_generate_usecase
from .entities import PlateRequest
from .exceptions import PlateError
from .jobs import JobProgressStore

log = logging.getLogger(__name__)


@shared_task(bind=True)
def generate_plate_task(self, payload: dict):
    """
    Celery task that:
      1) Rebuilds the PlateRequest from its JSON payload
      2) Runs the generation use case, pushing progress to the cache
      3) Returns a dict with the data-URI image, or the classified error
    """
    job = JobProgressStore(self.request.id)
    try:
        req = PlateRequest.from_payload(payload)
        usecase = build_generate_usecase()
        result = async_to_sync(usecase.execute)(req, on_progress=job.push)
    except PlateError as exc:
        log.warning("Plate job %s ended with %s: %s", self.request.id, exc.code, exc)
        job.push(str(exc))
        return {"status": "error", "code": exc.code, "error": str(exc)}

    job.push("Complete!")
    return {
        "status": "done",
        "image": result.image.to_data_uri(),
        "verified": result.verified,
        "attempts": result.attempts,
    }
