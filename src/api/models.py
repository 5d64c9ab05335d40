"""API models."""

from django.conf import settings
from django.db import models

from common.models import TimeStampedModel


def get_version() -> str:
    """Get the current version of the application."""
    return settings.VERSION


class Error(TimeStampedModel):
    """A distinct unhandled error, identified by the hash of its path and traceback."""

    md5 = models.CharField(max_length=32, unique=True, editable=False)
    path = models.CharField(max_length=2048, db_index=True)
    server_version = models.CharField(max_length=32, default=get_version, db_index=True)
    traceback = models.TextField()
    payload = models.BinaryField(null=True, blank=True)
    json_payload = models.JSONField(null=True, blank=True)
    request_metadata = models.JSONField(null=True, blank=True)
    issue_url = models.URLField(blank=True)
    issue_solved = models.BooleanField(default=False)

    def __str__(self) -> str:
        return f"{self.path} ({self.md5[:8]})"


class ErrorOccurrence(models.Model):
    signature = models.ForeignKey(Error, on_delete=models.CASCADE, related_name="occurrences")
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-timestamp"]
