from django.urls import path, include

urlpatterns = [
    path("plates/", include('plates.urls')),
]
