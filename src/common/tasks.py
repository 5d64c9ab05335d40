"""Email delivery and housekeeping tasks."""

from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone

from common.models import EmailLog, SiteSettings

logger = structlog.get_logger(__name__)

EMAIL_LOG_RETENTION = timedelta(days=7)
EMAIL_BODY_RETENTION = timedelta(days=1)


def deliver_email(*, to: str | list[str], subject: str, body: str, html_body: str | None = None) -> None:
    """Send an email right away and log one row per recipient.

    Recipients go in BCC. Errors from the mail backend propagate, so the reminder worker can
    count a failed attempt.
    """
    site_settings = SiteSettings.get_solo()
    recipients = [
        to_safe_email_address(address, site_settings=site_settings) for address in ([to] if isinstance(to, str) else to)
    ]
    message = EmailMultiAlternatives(
        subject=subject,
        body=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        bcc=recipients,
        reply_to=[site_settings.reply_to_email] if site_settings.reply_to_email else None,
    )
    if html_body:
        message.attach_alternative(html_body, "text/html")
    message.send(fail_silently=False)
    EmailLog.objects.bulk_create(EmailLog.for_message(recipient, subject, body, html_body) for recipient in recipients)
    logger.info("email_sent", recipients=len(recipients), subject=subject)


@shared_task(name="common.send_email")
def send_email(*, to: str | list[str], subject: str, body: str, html_body: str | None = None) -> None:
    """Send an email from a worker.

    Args:
        to: One address or a list of addresses.
        subject: The subject line.
        body: The plain-text body.
        html_body: Optional HTML alternative.
    """
    deliver_email(to=to, subject=subject, body=body, html_body=html_body)


@shared_task(name="common.cleanup_email_logs")
def cleanup_email_logs() -> None:
    """Delete old email logs and strip the bodies of the ones kept."""
    now = timezone.now()
    deleted, _ = EmailLog.objects.filter(sent_at__lte=now - EMAIL_LOG_RETENTION).delete()
    stripped = EmailLog.objects.filter(sent_at__lte=now - EMAIL_BODY_RETENTION, compressed_body__isnull=False).update(
        compressed_body=None, compressed_html=None
    )
    logger.info("email_logs_cleaned", deleted=deleted, stripped=stripped)


def to_safe_email_address(email: str, site_settings: SiteSettings | None = None) -> str:
    """Rewrite an address onto the catch-all mailbox unless live emails are on.

    ``sam@uni.test`` becomes ``<catchall-user>+sam_at_uni_dot_test@<catchall-domain>``.
    """
    site_settings = site_settings or SiteSettings.get_solo()
    if site_settings.live_emails:
        return email
    user, domain = site_settings.internal_catchall_email.split("@", 1)
    return f"{user}+{email.replace('@', '_at_').replace('.', '_dot_')}@{domain}"
