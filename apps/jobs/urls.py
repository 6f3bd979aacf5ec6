"""URL routing for the job queue."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import ScheduledJobViewSet

router = DefaultRouter()
router.register(r"", ScheduledJobViewSet, basename="scheduled-job")

urlpatterns = [
    path("", include(router.urls)),
]
