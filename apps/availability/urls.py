"""URL routing for the venue calendar."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import (
    AvailabilityBlockViewSet,
    AvailabilityCalendarView,
    AvailabilityCheckView,
    BlackoutDateViewSet,
)

router = DefaultRouter()
router.register(r"blocks", AvailabilityBlockViewSet, basename="availability-block")
router.register(r"blackouts", BlackoutDateViewSet, basename="blackout")

urlpatterns = [
    path("check/", AvailabilityCheckView.as_view(), name="availability-check"),
    path("calendar/", AvailabilityCalendarView.as_view(), name="availability-calendar"),
    path("", include(router.urls)),
]
