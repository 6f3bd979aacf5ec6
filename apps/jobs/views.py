"""API views for the job queue."""

from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .filters import ScheduledJobFilterSet
from .metrics import job_health
from .models import ScheduledJob
from .serializers import RetrySerializer, ScheduledJobSerializer
from .store import JobStore

logger = logging.getLogger(__name__)


class ScheduledJobViewSet(viewsets.ReadOnlyModelViewSet):
    """Inspect the queue and requeue failed jobs by hand."""

    serializer_class = ScheduledJobSerializer
    queryset = ScheduledJob.objects.select_related("booking").all()
    permission_classes = [permissions.IsAdminUser]
    filter_backends = [DjangoFilterBackend]
    filterset_class = ScheduledJobFilterSet

    @action(detail=True, methods=["post"])
    def retry(self, request, pk=None):  # type: ignore
        job: ScheduledJob = self.get_object()  # type: ignore
        if job.status != ScheduledJob.Status.FAILED:
            return Response(
                {"detail": f"Only failed jobs can be retried, this one is {job.status}."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        serializer = RetrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        JobStore().requeue(job, run_at=serializer.validated_data["run_at"])
        logger.info(f"Job {job.pk} ({job.job_type}) requeued by {request.user}")
        return Response(ScheduledJobSerializer(job).data)

    @action(detail=False, methods=["get"])
    def health(self, request):  # type: ignore
        return Response(job_health())
