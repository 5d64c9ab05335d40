"""Settlement and checkout schemas."""

from uuid import UUID

from ninja import Schema

from events.service.settlement_status import SettlementStatus
from events.service.stripe_service import CheckoutStatus


class SettlementAccountResponse(Schema):
    account_id: str
    onboarding_url: str


class SettlementStatusResponse(Schema):
    has_account: bool
    status: SettlementStatus
    card_payments_enabled: bool
    transfers_enabled: bool
    payouts_enabled: bool


class CheckoutPayload(Schema):
    ticket_id: UUID
    organiser_account_id: str | None = None


class CheckoutSessionResponse(Schema):
    session_id: str
    client_secret: str


class CheckoutStatusResponse(Schema):
    status: CheckoutStatus
    amount: int | None = None
    currency: str | None = None
    event_id: UUID | None = None
