"""Wait for a checkout session to be paid and register the buyer."""

import signal
import typing as t
from uuid import UUID

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from events.service import stripe_service
from events.service.checkout_poller import CheckoutPoller, PollOutcome
from events.service.stripe_service import CheckoutSessionState


class Command(BaseCommand):
    """Poll a checkout session and finalize the registration once it is paid."""

    help = "Poll a Stripe checkout session and register the user once it is paid."

    def add_arguments(self, parser: t.Any) -> None:
        """Add command arguments."""
        parser.add_argument("session_id", type=str, help="Stripe checkout session id")
        parser.add_argument("user_id", type=UUID, help="Id of the user who opened the session")
        parser.add_argument(
            "--interval",
            type=float,
            default=settings.CHECKOUT_POLL_INTERVAL_SECONDS,
            help="Seconds between polls",
        )
        parser.add_argument(
            "--max-attempts",
            type=int,
            default=settings.CHECKOUT_POLL_MAX_ATTEMPTS,
            help="Polls before giving up",
        )

    def handle(self, *args: t.Any, **options: t.Any) -> None:
        """Run the poller."""
        User = get_user_model()
        try:
            user = User.objects.get(pk=options["user_id"])
        except User.DoesNotExist:
            raise CommandError(f'User "{options["user_id"]}" does not exist')

        session_id = options["session_id"]
        poller = CheckoutPoller(
            stripe_service.get_checkout_status,
            interval_seconds=options["interval"],
            max_attempts=options["max_attempts"],
        )
        previous_handler = signal.signal(signal.SIGINT, lambda *_: poller.cancel())

        def on_paid(state: CheckoutSessionState) -> None:
            outcome = stripe_service.finalize_checkout(session_id, user, state=state)
            if outcome is not None:
                self.stdout.write(f"Registration: {outcome.status}")

        try:
            result = poller.poll(session_id, on_paid=on_paid)
        finally:
            signal.signal(signal.SIGINT, previous_handler)

        match result.outcome:
            case PollOutcome.PAID:
                self.stdout.write(self.style.SUCCESS(f"Paid after {result.attempts} attempt(s)."))
            case PollOutcome.TIMEOUT:
                self.stdout.write(
                    self.style.WARNING("Payment not confirmed yet. It may still complete; re-check later.")
                )
            case PollOutcome.CANCELLED:
                self.stdout.write(self.style.WARNING("Polling cancelled."))
            case PollOutcome.FAILED:
                final_status = result.state.status if result.state else "failed"
                raise CommandError(f"Checkout {session_id} ended as {final_status}")
