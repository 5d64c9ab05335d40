import gzip
import typing as t
import uuid

from django.conf import settings
from django.db import models
from solo.models import SingletonModel


class TimeStampedModel(models.Model):
    """UUID primary key plus creation and update timestamps.

    Every save runs ``full_clean`` so model-level invariants hold no matter which code path writes.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        abstract = True

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Validate, then save."""
        self.full_clean()
        super().save(*args, **kwargs)


class SiteSettings(SingletonModel):
    """Runtime switches the operators can flip from the admin."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    live_emails = models.BooleanField(
        default=False, help_text="Send to real recipients. When off, mail goes to the catch-all address."
    )
    frontend_base_url = models.URLField(
        default=settings.FRONTEND_BASE_URL, help_text="Used for onboarding and checkout return links"
    )
    internal_catchall_email = models.EmailField(
        verbose_name="Internal Catchall Email",
        help_text="Receives every email while live emails are off.",
        default=settings.INTERNAL_CATCHALL_EMAIL,
    )
    reply_to_email = models.EmailField(
        blank=True, help_text="Reply-To for registration and reminder emails. Empty means no Reply-To."
    )

    def __str__(self) -> str:  # pragma: no cover
        return "Site Settings"

    class Meta:
        verbose_name = "Site Settings"
        verbose_name_plural = "Site Settings"


def _compress(text: str | None) -> bytes | None:
    return gzip.compress(text.encode()) if text else None


def _decompress(data: bytes | memoryview | None) -> str | None:
    return gzip.decompress(bytes(data)).decode() if data else None


class EmailLog(TimeStampedModel):
    """A sent email, one row per recipient. Bodies are gzipped and dropped after a day."""

    to = models.EmailField(db_index=True)
    subject = models.TextField(db_index=True)
    sent_at = models.DateTimeField(auto_now_add=True, db_index=True)
    compressed_body = models.BinaryField(null=True, blank=True)
    compressed_html = models.BinaryField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["to", "sent_at"], name="ix_emaillog_to_sentat"),
        ]

    def __str__(self) -> str:
        return f"Email to: {self.to}"

    @classmethod
    def for_message(cls, to: str, subject: str, body: str, html_body: str | None = None) -> "EmailLog":
        """Build an unsaved log row for one recipient."""
        return cls(to=to, subject=subject, compressed_body=_compress(body), compressed_html=_compress(html_body))

    @property
    def body(self) -> str | None:
        return _decompress(self.compressed_body)

    @property
    def html(self) -> str | None:
        return _decompress(self.compressed_html)
