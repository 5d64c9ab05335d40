"""Polls a checkout session until it is paid, fails, times out or the caller gives up.

The processor is only eventually consistent, so a timeout is not a failure: the payment may
still land and the caller should offer a manual re-check.
"""

import threading
import typing as t
from dataclasses import dataclass
from enum import StrEnum

import structlog

from events.exceptions import PaymentProcessorUnavailableError
from events.service.stripe_service import CheckoutSessionState, CheckoutStatus

logger = structlog.get_logger(__name__)


class PollOutcome(StrEnum):
    PAID = "paid"
    TIMEOUT = "timeout"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PollResult:
    outcome: PollOutcome
    attempts: int
    state: CheckoutSessionState | None = None


class CheckoutPoller:
    """Bounded polling loop over a status fetcher.

    Sleeps on ``cancel_event`` between polls, so setting it wakes the poller at once and no
    further request is made.
    """

    def __init__(
        self,
        fetch_status: t.Callable[[str], CheckoutSessionState],
        *,
        interval_seconds: float = 3.0,
        max_attempts: int = 20,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Initialize the poller."""
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.fetch_status = fetch_status
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        """Stop polling. Safe to call from another thread."""
        self.cancel_event.set()

    def poll(self, session_id: str, on_paid: t.Callable[[CheckoutSessionState], t.Any] | None = None) -> PollResult:
        """Poll until the session settles or attempts run out.

        ``on_paid`` runs exactly once, and only when the session is seen as paid.
        """
        state: CheckoutSessionState | None = None
        for attempt in range(1, self.max_attempts + 1):
            if self.cancel_event.is_set():
                return self._cancelled(session_id, attempt - 1, state)
            try:
                state = self.fetch_status(session_id)
            except PaymentProcessorUnavailableError as e:
                logger.warning("checkout_poll_error", session_id=session_id, attempt=attempt, error=str(e))
            else:
                if state.status == CheckoutStatus.PAID:
                    logger.info("checkout_poll_paid", session_id=session_id, attempts=attempt)
                    if on_paid is not None:
                        on_paid(state)
                    return PollResult(PollOutcome.PAID, attempt, state)
                if state.status in (CheckoutStatus.EXPIRED, CheckoutStatus.FAILED):
                    logger.info("checkout_poll_failed", session_id=session_id, attempts=attempt, status=state.status)
                    return PollResult(PollOutcome.FAILED, attempt, state)
            if attempt < self.max_attempts and self.cancel_event.wait(self.interval_seconds):
                return self._cancelled(session_id, attempt, state)
        logger.info("checkout_poll_timeout", session_id=session_id, attempts=self.max_attempts)
        return PollResult(PollOutcome.TIMEOUT, self.max_attempts, state)

    def _cancelled(self, session_id: str, attempts: int, state: CheckoutSessionState | None) -> PollResult:
        logger.info("checkout_poll_cancelled", session_id=session_id, attempts=attempts)
        return PollResult(PollOutcome.CANCELLED, attempts, state)
