from django.conf import settings
from django.db import models

from common.models import TimeStampedModel


class SettlementAccount(TimeStampedModel):
    """An organiser's Stripe Connect account.

    The capability flags are a cache of what Stripe last reported. They are refreshed on every
    status check and never trusted on their own to open a checkout.
    """

    organiser = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="settlement_account"
    )
    stripe_account_id = models.CharField(max_length=255, unique=True)
    card_payments_enabled = models.BooleanField(default=False)
    transfers_enabled = models.BooleanField(default=False)
    payouts_enabled = models.BooleanField(default=False)
    onboarding_complete = models.BooleanField(default=False)
    last_synced_at = models.DateTimeField(null=True, blank=True)

    def __str__(self) -> str:
        return f"{self.stripe_account_id} ({self.organiser_id})"

    @property
    def can_take_payments(self) -> bool:
        """Whether the cached flags allow destination charges."""
        return self.card_payments_enabled and self.transfers_enabled
