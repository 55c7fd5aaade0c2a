from django.urls import path
from .views import GeneratePlateAPIView, PlateJobCreateAPIView, PlateJobStatusAPIView

urlpatterns = [
    path("generate/", GeneratePlateAPIView.as_view(), name="generate-plate"),
    path("jobs/", PlateJobCreateAPIView.as_view(), name="plate-job-create"),
    path("jobs/<str:task_id>/", PlateJobStatusAPIView.as_view(), name="plate-job-status"),
]
