"""Retry decisions for reminder delivery.

Pure functions: nothing here sends mail or touches the queue.
"""

from dataclasses import dataclass

from django.conf import settings


@dataclass(frozen=True)
class Retry:
    delay_seconds: int


@dataclass(frozen=True)
class Abandon:
    reason: str


RetryDecision = Retry | Abandon


def next_retry_decision(
    attempts: int,
    error: str | BaseException | None = None,
    *,
    base_backoff_seconds: int | None = None,
    max_attempts: int | None = None,
) -> RetryDecision:
    """Decide what happens after failed delivery attempt number ``attempts``.

    The delay grows linearly: ``base * attempts``. Once ``attempts`` reaches the ceiling the job
    is abandoned.
    """
    base = settings.REMINDER_BASE_BACKOFF_SECONDS if base_backoff_seconds is None else base_backoff_seconds
    ceiling = settings.REMINDER_MAX_ATTEMPTS if max_attempts is None else max_attempts
    if attempts < 1:
        raise ValueError("attempts counts failed attempts and starts at 1")
    if attempts >= ceiling:
        reason = f"gave up after {attempts} attempts"
        return Abandon(reason=f"{reason}: {error}" if error else reason)
    return Retry(delay_seconds=base * attempts)
