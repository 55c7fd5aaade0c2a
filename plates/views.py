import logging
import time

from asgiref.sync import async_to_sync
from celery.result import AsyncResult
from celery.utils import uuid
from django.conf import settings
from django.http import HttpResponse
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from .clients import build_generate_usecase
from .exceptions import (
    ConfigurationError,
    ExhaustedRetriesError,
    PlateDetectedSignal,
    PlateError,
    TransparentImageError,
)
from .jobs import JobProgressStore
from .serializers import PlateGenerateInputSerializer
from .tasks import generate_plate_task

log = logging.getLogger(__name__)

ERROR_STATUS = {
    TransparentImageError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    PlateDetectedSignal: status.HTTP_409_CONFLICT,
    ExhaustedRetriesError: status.HTTP_502_BAD_GATEWAY,
    ConfigurationError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _error_response(exc: PlateError) -> Response:
    body = {"code": exc.code, "error": str(exc)}
    if isinstance(exc, PlateDetectedSignal):
        # client confirms with skip_detection=true or resubmits with mode=replace
        body["options"] = ["skip_detection", "replace"]
    return Response(body, status=ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR))


@method_decorator(csrf_exempt, name="dispatch")
class GeneratePlateAPIView(APIView):
    """
    POST a car photo plus plate text/style/mode, receive the edited image.
    X-Plate-Verified tells whether the plate text was read back correctly.
    """
    authentication_classes = []
    permission_classes = []
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request, *args, **kwargs):
        ser = PlateGenerateInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        command = ser.to_request()

        try:
            usecase = build_generate_usecase()
            result = async_to_sync(usecase.execute)(command)
        except PlateError as exc:
            log.info("Plate generation stopped: %s", exc.code)
            return _error_response(exc)

        resp = HttpResponse(result.image.data, content_type=result.image.media_type)
        filename = f"platemorph-{int(time.time() * 1000)}.{result.image.extension}"
        resp["Content-Disposition"] = f'attachment; filename="{filename}"'
        resp["X-Plate-Verified"] = "true" if result.verified else "false"
        resp["X-Plate-Attempts"] = str(result.attempts)
        return resp


@method_decorator(csrf_exempt, name="dispatch")
class PlateJobCreateAPIView(APIView):
    authentication_classes = []
    permission_classes = []
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request, *args, **kwargs):
        ser = PlateGenerateInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        payload = ser.to_request().to_payload()
        # must precede the enqueue: the worker writes to the same key
        task_id = uuid()
        JobProgressStore(task_id).push("Initializing...")
        generate_plate_task.apply_async(args=[payload], task_id=task_id)
        return Response({"task_id": task_id}, status=status.HTTP_202_ACCEPTED)


class PlateJobStatusAPIView(APIView):
    authentication_classes = []
    permission_classes = []

    def get(self, request, task_id, *args, **kwargs):
        if not settings.CELERY_RESULT_BACKEND:
            exc = ConfigurationError("CELERY_RESULT_BACKEND is missing in environment variables.")
            return _error_response(exc)
        res = AsyncResult(task_id, app=generate_plate_task.app)
        body = {
            "task_id": task_id,
            "state": res.state,
            "status_message": JobProgressStore(task_id).latest(),
        }
        if res.successful():
            outcome = res.result or {}
            if outcome.get("status") == "done":
                body["result"] = {k: outcome[k] for k in ("image", "verified", "attempts")}
            else:
                body["code"] = outcome.get("code")
                body["error"] = outcome.get("error")
        elif res.failed():
            body["error"] = str(res.result)
        return Response(body)
