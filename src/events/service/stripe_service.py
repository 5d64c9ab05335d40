import typing as t
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from uuid import UUID

import stripe
import structlog
from django.conf import settings
from django.db import transaction
from django.template.loader import render_to_string
from django.utils import timezone
from stripe.checkout import Session

from accounts.models import CampusUser
from common.models import SiteSettings
from common.tasks import send_email
from events.exceptions import (
    CheckoutSessionMismatchError,
    CheckoutUnavailableError,
    PaymentProcessorUnavailableError,
    RefundNotAllowedError,
    SettlementNotConfiguredError,
    TicketNotPurchasableError,
)
from events.models import Event, Registration, SettlementAccount, TicketType
from events.service import capacity_service, registration_service, ticket_catalog
from events.service.settlement_status import SettlementStatus, compute_settlement_status

logger = structlog.get_logger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY
stripe.max_network_retries = settings.STRIPE_MAX_NETWORK_RETRIES

# Payment intent states of a completed session whose delayed payment did not go through.
FAILED_PAYMENT_INTENT_STATES = ("requires_payment_method", "canceled")


class CheckoutStatus(StrEnum):
    OPEN = "open"
    PAID = "paid"
    EXPIRED = "expired"
    FAILED = "failed"


@dataclass(frozen=True)
class CheckoutSessionState:
    session_id: str
    status: CheckoutStatus
    amount: int | None
    currency: str | None
    event_id: str | None
    ticket_id: str | None
    user_id: str | None
    payment_intent_id: str | None = None


@dataclass(frozen=True)
class SettlementStatusReport:
    has_account: bool
    status: SettlementStatus
    card_payments_enabled: bool = False
    transfers_enabled: bool = False
    payouts_enabled: bool = False


def _field(obj: t.Any, name: str) -> t.Any:
    """Read an optional attribute off a Stripe object."""
    if obj is None:
        return None
    return getattr(obj, name, None)


# Settlement accounts


def create_connect_account(organiser: CampusUser) -> SettlementAccount:
    """Create a Stripe Connect Express account for an organiser, requesting card payments and transfers."""
    account = stripe.Account.create(
        type="express",
        country=settings.STRIPE_CONNECT_COUNTRY,
        email=organiser.email or None,
        capabilities={
            "card_payments": {"requested": True},
            "transfers": {"requested": True},
        },
        metadata={"organiser_id": str(organiser.pk)},
    )
    settlement_account = SettlementAccount.objects.create(organiser=organiser, stripe_account_id=account.id)
    logger.info("settlement_account_created", organiser_id=str(organiser.pk), stripe_account_id=account.id)
    return settlement_account


def create_account_link(account_id: str) -> str:
    """Create a one-time onboarding link for a Stripe Connect account."""
    frontend_base_url = SiteSettings.get_solo().frontend_base_url
    account_link = stripe.AccountLink.create(
        account=account_id,
        refresh_url=f"{frontend_base_url}/organiser/settlement?stripe_refresh=true",
        return_url=f"{frontend_base_url}/organiser/settlement?stripe_success=true",
        type="account_onboarding",
    )
    return t.cast(str, account_link.url)


def create_settlement_account(organiser: CampusUser) -> tuple[str, str]:
    """Return the organiser's Stripe account id and a fresh onboarding link.

    The account is created on first use and reused afterwards.
    """
    settlement_account = SettlementAccount.objects.filter(organiser=organiser).first()
    try:
        if settlement_account is None:
            settlement_account = create_connect_account(organiser)
        onboarding_url = create_account_link(settlement_account.stripe_account_id)
    except stripe.StripeError as e:
        logger.error("settlement_onboarding_failed", organiser_id=str(organiser.pk), error=str(e))
        raise PaymentProcessorUnavailableError(str(e)) from e
    return settlement_account.stripe_account_id, onboarding_url


def get_account_details(account_id: str) -> stripe.Account:
    """Retrieve details for a connected Stripe account."""
    return t.cast(stripe.Account, stripe.Account.retrieve(account_id))


def sync_settlement_account(settlement_account: SettlementAccount, account: stripe.Account) -> SettlementAccount:
    """Refresh the cached capability flags from a live Stripe account."""
    capabilities = _field(account, "capabilities")
    settlement_account.card_payments_enabled = _field(capabilities, "card_payments") == "active"
    settlement_account.transfers_enabled = _field(capabilities, "transfers") == "active"
    settlement_account.payouts_enabled = bool(_field(account, "payouts_enabled"))
    settlement_account.onboarding_complete = bool(_field(account, "details_submitted"))
    settlement_account.last_synced_at = timezone.now()
    settlement_account.save(
        update_fields=[
            "card_payments_enabled",
            "transfers_enabled",
            "payouts_enabled",
            "onboarding_complete",
            "last_synced_at",
            "updated_at",
        ]
    )
    return settlement_account


def _account_status(account: stripe.Account) -> SettlementStatus:
    requirements = _field(account, "requirements")
    outstanding = set(_field(requirements, "currently_due") or []) | set(_field(requirements, "past_due") or [])
    return compute_settlement_status(_field(requirements, "disabled_reason"), outstanding)


def get_settlement_status(organiser: CampusUser) -> SettlementStatusReport:
    """Report the organiser's onboarding state, always recomputed from the live account."""
    settlement_account = SettlementAccount.objects.filter(organiser=organiser).first()
    if settlement_account is None:
        return SettlementStatusReport(has_account=False, status=SettlementStatus.NOT_STARTED)
    try:
        account = get_account_details(settlement_account.stripe_account_id)
    except stripe.StripeError as e:
        logger.warning(
            "settlement_status_inconclusive",
            organiser_id=str(organiser.pk),
            stripe_account_id=settlement_account.stripe_account_id,
            error=str(e),
        )
        return SettlementStatusReport(
            has_account=True,
            status=SettlementStatus.INCONCLUSIVE,
            card_payments_enabled=settlement_account.card_payments_enabled,
            transfers_enabled=settlement_account.transfers_enabled,
            payouts_enabled=settlement_account.payouts_enabled,
        )
    settlement_account = sync_settlement_account(settlement_account, account)
    return SettlementStatusReport(
        has_account=True,
        status=_account_status(account),
        card_payments_enabled=settlement_account.card_payments_enabled,
        transfers_enabled=settlement_account.transfers_enabled,
        payouts_enabled=settlement_account.payouts_enabled,
    )


# Checkout


def resolve_settlement_account(event: Event, requested_account_id: str | None = None) -> SettlementAccount:
    """Find the account that receives this event's revenue and make sure it can take payments.

    The account always comes from the event's organiser. A client-supplied id must match it.
    """
    settlement_account = SettlementAccount.objects.filter(organiser_id=event.organiser_id).first()
    if settlement_account is None:
        raise SettlementNotConfiguredError("The organiser has no settlement account.")
    if requested_account_id and requested_account_id != settlement_account.stripe_account_id:
        raise SettlementNotConfiguredError("The settlement account does not belong to this event's organiser.")
    try:
        account = get_account_details(settlement_account.stripe_account_id)
    except stripe.StripeError as e:
        logger.error(
            "settlement_account_lookup_failed",
            event_id=str(event.pk),
            stripe_account_id=settlement_account.stripe_account_id,
            error=str(e),
        )
        raise PaymentProcessorUnavailableError(str(e)) from e
    settlement_account = sync_settlement_account(settlement_account, account)
    if not settlement_account.can_take_payments:
        raise SettlementNotConfiguredError("The organiser's settlement account cannot take card payments yet.")
    return settlement_account


def describe_price(price_id: str) -> tuple[Decimal, str]:
    """Unit amount and currency of a Stripe price, for caching on the ticket type."""
    try:
        price = stripe.Price.retrieve(price_id)
    except stripe.StripeError as e:
        logger.error("price_lookup_failed", price_id=price_id, error=str(e))
        raise PaymentProcessorUnavailableError(str(e)) from e
    return Decimal(price.unit_amount or 0) / Decimal(100), str(price.currency).upper()


def application_fee_for(unit_amount: int) -> int:
    """Platform fee in minor units for a given unit amount."""
    fee = Decimal(unit_amount) * Decimal(settings.PLATFORM_FEE_PERCENT) / Decimal(100)
    return int(fee.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def create_checkout_session(
    event: Event, ticket: TicketType, user: CampusUser, organiser_account_id: str | None = None
) -> tuple[str, str]:
    """Open an embedded Stripe Checkout Session for a ticket.

    Funds go to the organiser's account as a destination charge. The platform fee is fixed on the
    session when it is created.

    Returns:
        The session id and the client secret for the embedded checkout.
    """
    if not ticket.price_id:
        raise TicketNotPurchasableError(f"Ticket type {ticket.pk} has no price reference.")
    current = ticket_catalog.current_ticket(event.pk)
    if current is None or current.pk != ticket.pk:
        raise CheckoutUnavailableError("not_on_release")
    if ticket.is_sold_out:
        raise CheckoutUnavailableError("sold_out")
    if Registration.objects.active().filter(event=event, user=user).exists():
        raise CheckoutUnavailableError("already_registered")
    if not capacity_service.has_capacity(event.pk).available:
        raise CheckoutUnavailableError("event_full")

    settlement_account = resolve_settlement_account(event, organiser_account_id)
    metadata = {
        "event_id": str(event.pk),
        "ticket_id": str(ticket.pk),
        "user_id": str(user.pk),
    }
    frontend_base_url = SiteSettings.get_solo().frontend_base_url
    try:
        price = stripe.Price.retrieve(ticket.price_id)
        application_fee_amount = application_fee_for(price.unit_amount)
        session = Session.create(
            ui_mode="embedded",
            mode="payment",
            line_items=[{"price": ticket.price_id, "quantity": 1}],
            customer_email=user.email or None,
            return_url=f"{frontend_base_url}/events/{event.pk}/checkout/return?session_id={{CHECKOUT_SESSION_ID}}",
            payment_intent_data={
                "application_fee_amount": application_fee_amount,
                "transfer_data": {"destination": settlement_account.stripe_account_id},
                "metadata": metadata,
            },
            metadata=metadata,
        )
    except stripe.StripeError as e:
        logger.error("checkout_session_failed", error=str(e), **metadata)
        raise PaymentProcessorUnavailableError(str(e)) from e

    logger.info(
        "checkout_session_created",
        session_id=session.id,
        application_fee_amount=application_fee_amount,
        destination=settlement_account.stripe_account_id,
        **metadata,
    )
    return session.id, session.client_secret


def checkout_state_from_session(session: Session) -> CheckoutSessionState:
    """Map a Stripe Checkout Session onto the states the platform cares about.

    A complete but unpaid session is waiting on a delayed payment method and stays open, unless
    its payment intent has already failed.
    """
    payment_status = _field(session, "payment_status")
    session_status = _field(session, "status")
    payment_intent = _field(session, "payment_intent")
    if payment_status in ("paid", "no_payment_required"):
        status = CheckoutStatus.PAID
    elif session_status == "expired":
        status = CheckoutStatus.EXPIRED
    elif session_status == "complete" and _field(payment_intent, "status") in FAILED_PAYMENT_INTENT_STATES:
        status = CheckoutStatus.FAILED
    else:
        status = CheckoutStatus.OPEN
    metadata = _field(session, "metadata")
    return CheckoutSessionState(
        session_id=session.id,
        status=status,
        amount=_field(session, "amount_total"),
        currency=_field(session, "currency"),
        event_id=_field(metadata, "event_id"),
        ticket_id=_field(metadata, "ticket_id"),
        user_id=_field(metadata, "user_id"),
        payment_intent_id=payment_intent if isinstance(payment_intent, str) else _field(payment_intent, "id"),
    )


def get_checkout_status(session_id: str) -> CheckoutSessionState:
    """Read a checkout session's current state from Stripe."""
    try:
        session = Session.retrieve(session_id, expand=["payment_intent"])
    except stripe.StripeError as e:
        logger.warning("checkout_status_unavailable", session_id=session_id, error=str(e))
        raise PaymentProcessorUnavailableError(str(e)) from e
    return checkout_state_from_session(session)


def finalize_checkout(
    session_id: str, user: CampusUser, state: CheckoutSessionState | None = None
) -> registration_service.RegistrationOutcome | None:
    """Turn a paid checkout session into a registration.

    Returns ``None`` while the session is not paid. A session registers at most once.
    """
    existing = Registration.objects.filter(checkout_session_id=session_id).first()
    if existing is not None:
        if existing.user_id != user.pk:
            raise CheckoutSessionMismatchError(session_id)
        if existing.cancelled:
            return registration_service.RegistrationOutcome(
                registration_service.RegistrationStatus.REJECTED,
                registration=existing,
                reason="registration_cancelled",
            )
        return registration_service.RegistrationOutcome(
            registration_service.RegistrationStatus.ALREADY_REGISTERED, registration=existing
        )

    state = state or get_checkout_status(session_id)
    if state.status != CheckoutStatus.PAID:
        return None
    if state.user_id != str(user.pk) or not state.event_id:
        raise CheckoutSessionMismatchError(session_id)

    outcome = registration_service.register(
        UUID(state.event_id),
        user,
        ticket_type_id=UUID(state.ticket_id) if state.ticket_id else None,
        checkout_session_id=session_id,
        payment=registration_service.PaymentDetails(
            payment_intent_id=state.payment_intent_id or "",
            amount=state.amount,
            currency=(state.currency or "").upper(),
        ),
    )
    if not outcome.is_registered:
        # Paid but not registered: needs a manual refund of the payment intent.
        logger.error(
            "paid_checkout_not_registered",
            session_id=session_id,
            event_id=state.event_id,
            user_id=str(user.pk),
            payment_intent_id=state.payment_intent_id,
            status=outcome.status,
            reason=outcome.reason,
        )
    return outcome


# Refunds


@dataclass(frozen=True)
class RefundResult:
    refund_id: str
    amount: int
    currency: str
    is_full_refund: bool
    status: str | None


def refund_registration(registration: Registration, amount: int | None = None, reason: str = "") -> RefundResult:
    """Refund a paid registration, fully or in part.

    The refund is taken back from the organiser's account together with the matching share of the
    platform fee. The refunded total is tracked on the registration so nothing is refunded twice.
    The registration itself stays active; the organiser or the attendee cancels it separately.

    Args:
        registration: The registration to refund.
        amount: Minor units to refund. Defaults to everything not refunded yet.
        reason: Shown to the attendee in the refund email.

    Raises:
        RefundNotAllowedError: Nothing is left to refund, or Stripe refused the refund.
        PaymentProcessorUnavailableError: Stripe could not be reached.
    """
    with transaction.atomic():
        registration = Registration.objects.select_for_update().select_related("event").get(pk=registration.pk)
        remaining = registration.refundable_amount
        if not registration.payment_intent_id:
            raise RefundNotAllowedError("no_payment")
        if remaining <= 0:
            raise RefundNotAllowedError("already_refunded")
        to_refund = min(amount, remaining) if amount else remaining
        already_refunded = registration.amount_refunded
        try:
            refund = stripe.Refund.create(
                payment_intent=registration.payment_intent_id,
                amount=to_refund,
                reason="requested_by_customer",
                refund_application_fee=True,
                reverse_transfer=True,
                metadata={
                    "event_id": str(registration.event_id),
                    "registration_id": str(registration.pk),
                    "refund_reason": reason or "Organiser initiated refund",
                },
                idempotency_key=f"refund-{registration.pk}-{already_refunded}-{to_refund}",
            )
        except stripe.InvalidRequestError as e:
            logger.warning("refund_refused", registration_id=str(registration.pk), code=e.code, error=str(e))
            raise RefundNotAllowedError(e.code or "refused") from e
        except stripe.StripeError as e:
            logger.error("refund_failed", registration_id=str(registration.pk), error=str(e))
            raise PaymentProcessorUnavailableError(str(e)) from e

        registration.amount_refunded = already_refunded + to_refund
        registration.save(update_fields=["amount_refunded", "updated_at"])
        result = RefundResult(
            refund_id=refund.id,
            amount=to_refund,
            currency=registration.currency,
            is_full_refund=registration.refundable_amount == 0,
            status=_field(refund, "status"),
        )
        transaction.on_commit(lambda: _send_refund_email(registration, result, reason))

    logger.info(
        "registration_refunded",
        registration_id=str(registration.pk),
        event_id=str(registration.event_id),
        refund_id=result.refund_id,
        amount=result.amount,
        is_full_refund=result.is_full_refund,
    )
    return result


def _send_refund_email(registration: Registration, result: RefundResult, reason: str) -> None:
    context = {
        "registration": registration,
        "event": registration.event,
        "amount": Decimal(result.amount) / Decimal(100),
        "original_amount": Decimal(registration.amount_paid or 0) / Decimal(100),
        "currency": result.currency,
        "is_full_refund": result.is_full_refund,
        "reason": reason,
        "site_name": settings.SITE_NAME,
    }
    send_email.delay(
        to=registration.email,
        subject=f"Refund processed: {registration.event.name}",
        body=render_to_string("events/emails/refund_confirmation.txt", context),
    )
