"""API views for the venue calendar."""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.bookings.services import candidate_for

from .filters import AvailabilityBlockFilterSet, BlackoutDateFilterSet
from .models import AvailabilityBlock, BlackoutDate
from .serializers import (
    AvailabilityBlockSerializer,
    AvailabilityCheckSerializer,
    BlackoutDateSerializer,
    CalendarQuerySerializer,
)
from .services import build_availability_service


class AvailabilityCheckView(APIView):
    """Tri-state answer for a single requested window."""

    permission_classes = [permissions.AllowAny]

    def post(self, request):  # type: ignore
        serializer = AvailabilityCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        candidate = candidate_for(data["booking_type"], data["event_date"], data["start_time"], data["end_time"])

        verdict = build_availability_service().check(candidate)
        return Response(
            {
                "status": verdict.status.value,
                "available": verdict.is_available,
                "reason": verdict.reason,
                "conflict": verdict.conflict.to_dict() if verdict.conflict else None,
            }
        )


class AvailabilityCalendarView(APIView):
    """Day-by-day status for a date range."""

    permission_classes = [permissions.AllowAny]

    def get(self, request):  # type: ignore
        query = CalendarQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        try:
            days = build_availability_service().calendar(query.validated_data["start"], query.validated_data["end"])
        except ValueError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response([{**day, "date": day["date"].isoformat()} for day in days])


class AvailabilityBlockViewSet(viewsets.ModelViewSet):
    """Manual holds on the calendar."""

    serializer_class = AvailabilityBlockSerializer
    queryset = AvailabilityBlock.objects.select_related("created_by").all()
    permission_classes = [permissions.IsAdminUser]
    filter_backends = [DjangoFilterBackend]
    filterset_class = AvailabilityBlockFilterSet

    def perform_create(self, serializer):  # type: ignore
        serializer.save(created_by=self.request.user)


class BlackoutDateViewSet(viewsets.ModelViewSet):
    serializer_class = BlackoutDateSerializer
    queryset = BlackoutDate.objects.all()
    permission_classes = [permissions.IsAdminUser]
    filter_backends = [DjangoFilterBackend]
    filterset_class = BlackoutDateFilterSet
