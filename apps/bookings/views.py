"""API views for the booking domain."""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter, SearchFilter  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.availability.services import ConflictError

from .domain.lifecycle import LifecycleTransitionError
from .filters import BookingFilterSet
from .models import Booking
from .serializers import (
    BookingCreateSerializer,
    BookingEventSerializer,
    BookingSerializer,
    CancelSerializer,
    HostReportSerializer,
    RescheduleSerializer,
)
from .services import BookingStateError, build_booking_service


def conflict_response(exc: ConflictError) -> Response:
    return Response(exc.as_response(), status=status.HTTP_409_CONFLICT)


def state_error_response(exc: Exception) -> Response:
    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Bookings of the venue.

    Anyone may request a booking; everything else is staff only. Lifecycle
    moves go through actions so every change passes the service layer.
    """

    queryset = Booking.objects.all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAdminUser]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    filterset_class = BookingFilterSet
    search_fields = ["reservation_code", "full_name", "email"]
    ordering_fields = ["event_date", "created_at"]

    def get_permissions(self):  # type: ignore
        if self.action == "create":
            return [permissions.AllowAny()]
        return super().get_permissions()

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        if self.action == "reschedule":
            return RescheduleSerializer
        if self.action == "cancel":
            return CancelSerializer
        if self.action == "host_report":
            return HostReportSerializer
        return BookingSerializer

    def get_service(self):
        return build_booking_service()

    def _respond(self, booking: Booking, code: int = status.HTTP_200_OK) -> Response:
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data, status=code)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            booking = self.get_service().create_booking(serializer.to_details())
        except ConflictError as exc:
            return conflict_response(exc)
        except BookingStateError as exc:
            return state_error_response(exc)
        return self._respond(booking, status.HTTP_201_CREATED)

    def _run(self, operation, *args, **kwargs) -> Response:
        booking: Booking = self.get_object()  # type: ignore
        try:
            result = operation(booking, *args, **kwargs)
        except ConflictError as exc:
            return conflict_response(exc)
        except (BookingStateError, LifecycleTransitionError) as exc:
            return state_error_response(exc)
        if isinstance(result, Booking):
            return self._respond(result)
        return result

    @action(detail=True, methods=["post"], url_path="record-deposit")
    def record_deposit(self, request, pk=None):  # type: ignore
        return self._run(self.get_service().record_deposit)

    @action(detail=True, methods=["post"], url_path="record-balance")
    def record_balance(self, request, pk=None):  # type: ignore
        return self._run(self.get_service().record_balance_payment)

    @action(detail=True, methods=["post"], url_path="pre-event-ready")
    def pre_event_ready(self, request, pk=None):  # type: ignore
        return self._run(self.get_service().mark_pre_event_ready)

    @action(detail=True, methods=["post"], url_path="complete-review")
    def complete_review(self, request, pk=None):  # type: ignore
        return self._run(self.get_service().complete_review)

    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(self.get_service().reschedule_booking, **serializer.validated_data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(self.get_service().cancel_booking, serializer.validated_data["reason"])

    @action(detail=True, methods=["post"], url_path="host-report")
    def host_report(self, request, pk=None):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service = self.get_service()

        def submit(booking):
            report = service.submit_host_report(booking, **serializer.validated_data)
            return Response(HostReportSerializer(report).data, status=status.HTTP_200_OK)

        return self._run(submit)

    @action(detail=True, methods=["get"])
    def events(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        return Response(BookingEventSerializer(booking.events.all(), many=True).data)

    @action(detail=True, methods=["get"])
    def jobs(self, request, pk=None):  # type: ignore
        from apps.jobs.serializers import ScheduledJobSerializer

        booking: Booking = self.get_object()  # type: ignore
        return Response(ScheduledJobSerializer(booking.scheduled_jobs.all(), many=True).data)
