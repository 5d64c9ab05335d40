"""Celery tasks for reminder delivery."""

import typing as t
from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q
from django.template.loader import render_to_string
from django.utils import timezone

from common.tasks import deliver_email
from notifications.enums import ReminderKind, ReminderStatus
from notifications.models import ReminderJob
from notifications.service.retry_policy import Retry, next_retry_decision

logger = structlog.get_logger(__name__)


@shared_task(name="notifications.deliver_reminder", acks_late=True)
def deliver_reminder(job_id: str, user_id: str, event_id: str, attempts: int) -> str:
    """Deliver one reminder attempt.

    The job row is locked for the whole attempt and marked completed before the task returns;
    the broker only acknowledges the message afterwards. A redelivered message therefore finds
    the job completed, or with a different attempt count, and does nothing.

    Args:
        job_id: The ReminderJob to deliver.
        user_id: The recipient, for logging.
        event_id: The event, for logging.
        attempts: Failed attempts the job had when this message was scheduled.

    Returns:
        One of "completed", "skipped", "retrying" or "abandoned".
    """
    context = {"job_id": job_id, "user_id": user_id, "event_id": event_id, "attempts": attempts}
    with transaction.atomic():
        job = (
            ReminderJob.objects.select_for_update(of=("self",))
            .select_related("user", "event", "event__organiser")
            .filter(pk=job_id)
            .first()
        )
        if job is None:
            logger.info("reminder_skipped", reason="job_missing", **context)
            return "skipped"
        if job.is_terminal or job.attempts != attempts:
            logger.info("reminder_skipped", reason="stale_message", status=job.status, **context)
            return "skipped"

        skip_reason = _skip_reason(job)
        if skip_reason:
            _complete(job, note=f"skipped: {skip_reason}")
            logger.info("reminder_skipped", reason=skip_reason, **context)
            return "skipped"

        try:
            # Savepoint; the job row must stay writable if the email log insert fails.
            with transaction.atomic():
                _send(job)
        except Exception as e:
            return _handle_failure(job, e, context)
        _complete(job)

    logger.info("reminder_delivered", kind=job.kind, **context)
    return "completed"


@shared_task(name="notifications.scan_upcoming_reminders")
def scan_upcoming_reminders() -> int:
    """Make sure events starting soon have their reminder jobs.

    Runs every hour via Celery beat.
    """
    from notifications.service.reminder_service import ensure_upcoming_reminders

    window_start, window_end = settings.REMINDER_SCAN_WINDOW_HOURS
    ensured = ensure_upcoming_reminders(window_start, window_end)
    logger.info("reminder_scan_finished", jobs=ensured, window_start=window_start, window_end=window_end)
    return ensured


def _skip_reason(job: ReminderJob) -> str | None:
    event = job.event
    if event.is_deleted:
        return "event_deleted"
    if event.has_started:
        return "event_started"
    if (
        job.kind == ReminderKind.ATTENDEE_REMINDER
        and not event.registrations.active().filter(user_id=job.user_id).exists()
    ):
        return "not_registered"
    if job.kind == ReminderKind.ORGANISER_SUMMARY and not job.user.email:
        return "no_email"
    return None


def _complete(job: ReminderJob, note: str = "") -> None:
    job.status = ReminderStatus.COMPLETED
    job.completed_at = timezone.now()
    job.last_error = note
    job.save(update_fields=["status", "completed_at", "last_error", "updated_at"])


def _handle_failure(job: ReminderJob, error: Exception, context: dict[str, t.Any]) -> str:
    job.attempts += 1
    job.last_error = str(error)
    decision = next_retry_decision(job.attempts, error)
    if isinstance(decision, Retry):
        job.fire_at = timezone.now() + timedelta(seconds=decision.delay_seconds)
        job.save(update_fields=["attempts", "last_error", "fire_at", "updated_at"])
        payload = {**context, "attempts": job.attempts}
        transaction.on_commit(
            lambda: deliver_reminder.apply_async(kwargs=payload, countdown=decision.delay_seconds)
        )
        logger.warning(
            "reminder_retry_scheduled",
            delay_seconds=decision.delay_seconds,
            error=str(error),
            **payload,
        )
        return "retrying"

    job.status = ReminderStatus.ABANDONED
    job.save(update_fields=["attempts", "last_error", "status", "updated_at"])
    logger.error("reminder_abandoned", reason=decision.reason, **{**context, "attempts": job.attempts})
    return "abandoned"


def _send(job: ReminderJob) -> None:
    event = job.event
    context: dict[str, t.Any] = {"event": event, "user": job.user, "site_name": settings.SITE_NAME}
    if job.kind == ReminderKind.ORGANISER_SUMMARY:
        context["totals"] = event.registrations.aggregate(
            active=Count("id", filter=Q(cancelled=False)),
            internal=Count("id", filter=Q(cancelled=False, external=False)),
            external=Count("id", filter=Q(cancelled=False, external=True)),
            cancelled=Count("id", filter=Q(cancelled=True)),
        )
        deliver_email(
            to=job.user.email,
            subject=f"Registration summary for {event.name}",
            body=render_to_string("notifications/emails/organiser_summary.txt", context),
        )
        return

    registration = event.registrations.active().filter(user_id=job.user_id).first()
    deliver_email(
        to=registration.email if registration else job.user.email,
        subject=f"Reminder: {event.name} starts soon",
        body=render_to_string("notifications/emails/event_reminder.txt", context),
    )
