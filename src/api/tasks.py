"""Tasks for tracking internal errors."""

import base64
import hashlib
import typing as t

import structlog
from celery import shared_task
from ninja_jwt.token_blacklist.models import OutstandingToken
from ninja_jwt.utils import aware_utcnow

from .models import Error, ErrorOccurrence

logger = structlog.get_logger(__name__)


@shared_task(name="api.track_internal_error")
def track_internal_error(
    *,
    path: str,
    traceback_str: str,
    encoded_payload: str | None = None,
    json_payload: t.Any = None,
    metadata: dict[str, t.Any] | None = None,
) -> str:
    """Record an unhandled error, grouping repeats of the same traceback on the same path."""
    md5 = hashlib.md5(f"{path}\n{traceback_str}".encode(), usedforsecurity=False).hexdigest()
    error, created = Error.objects.get_or_create(
        md5=md5,
        defaults={
            "path": path[:2048],
            "traceback": traceback_str,
            "payload": base64.b64decode(encoded_payload) if encoded_payload else None,
            "json_payload": json_payload,
            "request_metadata": metadata,
        },
    )
    ErrorOccurrence.objects.create(signature=error)
    if created:
        logger.warning("internal_error_tracked", path=path, md5=md5)
    return str(error.pk)


@shared_task(name="api.flush_expired_tokens")
def flush_expired_tokens() -> None:
    """Flushes any expired tokens in the outstanding token list.

    This task is designed to be run periodically to clean up expired tokens.
    """
    OutstandingToken.objects.filter(expires_at__lte=aware_utcnow()).delete()
