"""Closed set of job types and the families they belong to."""

from __future__ import annotations

from typing import Optional

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class JobType(models.TextChoices):
    CREATE_BALANCE_PAYMENT_LINK = "create_balance_payment_link", _("Create balance payment link")
    BALANCE_RETRY_1 = "balance_retry_1", _("Balance reminder 1")
    BALANCE_RETRY_2 = "balance_retry_2", _("Balance reminder 2")
    BALANCE_RETRY_3 = "balance_retry_3", _("Balance reminder 3")
    HOST_REPORT_PRE_START = "host_report_pre_start", _("Host report: pre start")
    HOST_REPORT_DURING = "host_report_during", _("Host report: during event")
    HOST_REPORT_POST = "host_report_post", _("Host report: post event")
    SET_LIFECYCLE_IN_PROGRESS = "set_lifecycle_in_progress", _("Start event")


class JobFamily(models.TextChoices):
    BALANCE = "balance", _("Balance payment")
    HOST_REPORT = "host_report", _("Host report reminders")
    LIFECYCLE = "lifecycle", _("Lifecycle moves")


FAMILY_OF: dict[JobType, JobFamily] = {
    JobType.CREATE_BALANCE_PAYMENT_LINK: JobFamily.BALANCE,
    JobType.BALANCE_RETRY_1: JobFamily.BALANCE,
    JobType.BALANCE_RETRY_2: JobFamily.BALANCE,
    JobType.BALANCE_RETRY_3: JobFamily.BALANCE,
    JobType.HOST_REPORT_PRE_START: JobFamily.HOST_REPORT,
    JobType.HOST_REPORT_DURING: JobFamily.HOST_REPORT,
    JobType.HOST_REPORT_POST: JobFamily.HOST_REPORT,
    JobType.SET_LIFECYCLE_IN_PROGRESS: JobFamily.LIFECYCLE,
}

# Chain successors; the last job of a chain maps to None.
NEXT_IN_CHAIN: dict[JobType, Optional[JobType]] = {
    JobType.CREATE_BALANCE_PAYMENT_LINK: JobType.BALANCE_RETRY_2,
    JobType.BALANCE_RETRY_1: JobType.BALANCE_RETRY_2,
    JobType.BALANCE_RETRY_2: JobType.BALANCE_RETRY_3,
    JobType.BALANCE_RETRY_3: None,
    JobType.HOST_REPORT_PRE_START: JobType.HOST_REPORT_DURING,
    JobType.HOST_REPORT_DURING: JobType.HOST_REPORT_POST,
    JobType.HOST_REPORT_POST: None,
    JobType.SET_LIFECYCLE_IN_PROGRESS: None,
}

BALANCE_ATTEMPT_NUMBER: dict[JobType, int] = {
    JobType.CREATE_BALANCE_PAYMENT_LINK: 1,
    JobType.BALANCE_RETRY_1: 1,
    JobType.BALANCE_RETRY_2: 2,
    JobType.BALANCE_RETRY_3: 3,
}


def types_in(family: JobFamily) -> list[JobType]:
    return [job_type for job_type, owner in FAMILY_OF.items() if owner == family]


def family_of(job_type: str) -> Optional[JobFamily]:
    try:
        return FAMILY_OF[JobType(job_type)]
    except ValueError:
        return None
