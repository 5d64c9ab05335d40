import threading
import time
from unittest.mock import MagicMock

import pytest

from events.exceptions import PaymentProcessorUnavailableError
from events.service.checkout_poller import CheckoutPoller, PollOutcome
from events.service.stripe_service import CheckoutSessionState, CheckoutStatus


def _state(status: CheckoutStatus) -> CheckoutSessionState:
    return CheckoutSessionState(
        session_id="cs_test_1",
        status=status,
        amount=2500,
        currency="gbp",
        event_id="event",
        ticket_id="ticket",
        user_id="user",
    )


class ScriptedFetcher:
    """Returns the scripted statuses in order, repeating the last one."""

    def __init__(self, *results: CheckoutStatus | Exception) -> None:
        self.results = list(results)
        self.calls = 0

    def __call__(self, session_id: str) -> CheckoutSessionState:
        result = self.results[min(self.calls, len(self.results) - 1)]
        self.calls += 1
        if isinstance(result, Exception):
            raise result
        return _state(result)


def test_paid_after_a_few_polls() -> None:
    fetcher = ScriptedFetcher(CheckoutStatus.OPEN, CheckoutStatus.OPEN, CheckoutStatus.PAID)
    on_paid = MagicMock()

    result = CheckoutPoller(fetcher, interval_seconds=0).poll("cs_test_1", on_paid=on_paid)

    assert result.outcome == PollOutcome.PAID
    assert result.attempts == 3
    assert result.state is not None and result.state.status == CheckoutStatus.PAID
    on_paid.assert_called_once_with(result.state)


def test_timeout_is_not_failure() -> None:
    fetcher = ScriptedFetcher(CheckoutStatus.OPEN)
    on_paid = MagicMock()

    result = CheckoutPoller(fetcher, interval_seconds=0, max_attempts=4).poll("cs_test_1", on_paid=on_paid)

    assert result.outcome == PollOutcome.TIMEOUT
    assert result.attempts == 4
    assert fetcher.calls == 4
    on_paid.assert_not_called()


@pytest.mark.parametrize("status", [CheckoutStatus.EXPIRED, CheckoutStatus.FAILED])
def test_expired_or_failed_session_stops_polling(status: CheckoutStatus) -> None:
    fetcher = ScriptedFetcher(CheckoutStatus.OPEN, status)

    result = CheckoutPoller(fetcher, interval_seconds=0).poll("cs_test_1")

    assert result.outcome == PollOutcome.FAILED
    assert result.attempts == 2
    assert fetcher.calls == 2


def test_processor_errors_count_as_attempts() -> None:
    fetcher = ScriptedFetcher(PaymentProcessorUnavailableError("down"), CheckoutStatus.PAID)

    result = CheckoutPoller(fetcher, interval_seconds=0).poll("cs_test_1")

    assert result.outcome == PollOutcome.PAID
    assert result.attempts == 2


def test_processor_errors_until_timeout() -> None:
    fetcher = ScriptedFetcher(PaymentProcessorUnavailableError("down"))

    result = CheckoutPoller(fetcher, interval_seconds=0, max_attempts=3).poll("cs_test_1")

    assert result.outcome == PollOutcome.TIMEOUT
    assert result.state is None


def test_cancelled_before_start_makes_no_request() -> None:
    fetcher = ScriptedFetcher(CheckoutStatus.PAID)
    cancel_event = threading.Event()
    cancel_event.set()

    result = CheckoutPoller(fetcher, cancel_event=cancel_event).poll("cs_test_1")

    assert result.outcome == PollOutcome.CANCELLED
    assert result.attempts == 0
    assert fetcher.calls == 0


def test_cancel_interrupts_the_wait_and_stops_requests() -> None:
    fetcher = ScriptedFetcher(CheckoutStatus.OPEN)
    poller = CheckoutPoller(fetcher, interval_seconds=30, max_attempts=5)
    timer = threading.Timer(0.05, poller.cancel)

    started = time.monotonic()
    timer.start()
    result = poller.poll("cs_test_1")
    elapsed = time.monotonic() - started

    assert result.outcome == PollOutcome.CANCELLED
    assert result.attempts == 1
    assert fetcher.calls == 1
    assert elapsed < 5


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        CheckoutPoller(ScriptedFetcher(CheckoutStatus.OPEN), max_attempts=0)
