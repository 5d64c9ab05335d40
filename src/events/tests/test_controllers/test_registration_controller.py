import typing as t
from unittest.mock import MagicMock, patch

import orjson
import pytest
from django.test.client import Client
from django.urls import reverse

from accounts.models import CampusUser
from events.exceptions import (
    CheckoutUnavailableError,
    PaymentProcessorUnavailableError,
    RefundNotAllowedError,
    SettlementNotConfiguredError,
)
from events.models import Event, Registration, TicketType
from events.service.stripe_service import RefundResult

pytestmark = pytest.mark.django_db


def _post(client: Client, url: str, data: dict[str, t.Any] | None = None) -> t.Any:
    return client.post(url, data=orjson.dumps(data or {}), content_type="application/json")


class TestCapacityAndTicket:
    def test_capacity_is_public(self, event: Event) -> None:
        response = Client().get(reverse("api:event_capacity", kwargs={"event_id": event.pk}))

        assert response.status_code == 200
        assert response.json() == {"available": True}

    def test_current_ticket(self, event: Event, free_ticket: TicketType) -> None:
        response = Client().get(reverse("api:current_ticket", kwargs={"event_id": event.pk}))

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(free_ticket.pk)
        assert data["remaining"] == 2
        assert data["sold_out"] is False

    def test_no_current_ticket(self, event: Event) -> None:
        response = Client().get(reverse("api:current_ticket", kwargs={"event_id": event.pk}))

        assert response.status_code == 404


class TestRegister:
    def test_register_then_register_again(self, attendee_client: Client, event: Event, attendee: CampusUser) -> None:
        url = reverse("api:event_register", kwargs={"event_id": event.pk})

        first = _post(attendee_client, url, {"name": "Sam Student"})
        second = _post(attendee_client, url)

        assert first.status_code == 200
        assert first.json() == {"success": True, "registered": False, "error": None}
        assert second.status_code == 200
        assert second.json()["registered"] is True
        assert Registration.objects.get(event=event, user=attendee).name == "Sam Student"

    def test_full_event(self, attendee_client: Client, event: Event, outsider: CampusUser) -> None:
        event.capacity = 1
        event.save()
        Registration.objects.create(event=event, user=outsider, name="O", email=outsider.email)

        response = _post(attendee_client, reverse("api:event_register", kwargs={"event_id": event.pk}))

        assert response.status_code == 409
        assert response.json()["success"] is False
        assert response.json()["error"] == "event_full"

    def test_paid_event_needs_checkout(self, attendee_client: Client, paid_event: Event) -> None:
        response = _post(attendee_client, reverse("api:event_register", kwargs={"event_id": paid_event.pk}))

        assert response.status_code == 400
        assert response.json()["error"] == "payment_required"

    def test_requires_authentication(self, event: Event) -> None:
        response = _post(Client(), reverse("api:event_register", kwargs={"event_id": event.pk}))

        assert response.status_code == 401

    def test_deleted_event(self, attendee_client: Client, event: Event) -> None:
        Event.objects.filter(pk=event.pk).update(is_deleted=True)

        response = _post(attendee_client, reverse("api:event_register", kwargs={"event_id": event.pk}))

        assert response.status_code == 404

    def test_registration_is_throttled(self, attendee_client: Client, event: Event) -> None:
        url = reverse("api:event_register", kwargs={"event_id": event.pk})

        statuses = [_post(attendee_client, url).status_code for _ in range(4)]

        assert statuses == [200, 200, 200, 429]


class TestDeregister:
    def test_deregister(self, attendee_client: Client, event: Event, attendee: CampusUser) -> None:
        Registration.objects.create(event=event, user=attendee, name="A", email=attendee.email)
        url = reverse("api:event_deregister", kwargs={"event_id": event.pk})

        first = attendee_client.post(url)
        second = attendee_client.post(url)

        assert first.status_code == 200
        assert first.json()["success"] is True
        assert second.status_code == 404
        assert second.json() == {"success": False, "message": None, "error": "not_registered"}


class TestRegistrationList:
    def test_organiser_sees_registrations(
        self, organiser_client: Client, event: Event, attendee: CampusUser, outsider: CampusUser
    ) -> None:
        Registration.objects.create(event=event, user=attendee, name="A", email=attendee.email)
        Registration.objects.create(event=event, user=outsider, name="O", email=outsider.email, external=True)

        response = organiser_client.get(reverse("api:event_registrations", kwargs={"event_id": event.pk}))

        assert response.status_code == 200
        data = response.json()
        assert data["totals"] == {
            "active": 2,
            "internal": 1,
            "external": 1,
            "cancelled": 0,
            "revenue": 0,
            "refunded": 0,
        }
        assert {r["user_id"] for r in data["registrations"]} == {str(attendee.pk), str(outsider.pk)}
        assert "registered_at" in data["registrations"][0]

    def test_include_cancelled(self, organiser_client: Client, event: Event, attendee: CampusUser) -> None:
        Registration.objects.create(event=event, user=attendee, name="A", email=attendee.email, cancelled=True)
        url = reverse("api:event_registrations", kwargs={"event_id": event.pk})

        without = organiser_client.get(url).json()
        with_cancelled = organiser_client.get(url, {"include_cancelled": "true"}).json()

        assert without["registrations"] == []
        assert len(with_cancelled["registrations"]) == 1
        assert with_cancelled["totals"]["cancelled"] == 1

    def test_attendee_is_forbidden(self, attendee_client: Client, event: Event) -> None:
        response = attendee_client.get(reverse("api:event_registrations", kwargs={"event_id": event.pk}))

        assert response.status_code == 403


class TestCheckout:
    @patch("events.service.stripe_service.create_checkout_session")
    def test_checkout(
        self,
        mock_create: MagicMock,
        attendee_client: Client,
        paid_event: Event,
        paid_ticket: TicketType,
        attendee: CampusUser,
    ) -> None:
        mock_create.return_value = ("cs_test_1", "cs_test_1_secret")

        response = _post(
            attendee_client,
            reverse("api:event_checkout", kwargs={"event_id": paid_event.pk}),
            {"ticket_id": str(paid_ticket.pk)},
        )

        assert response.status_code == 200
        assert response.json() == {"session_id": "cs_test_1", "client_secret": "cs_test_1_secret"}
        event_arg, ticket_arg, user_arg = mock_create.call_args.args
        assert (event_arg, ticket_arg, user_arg) == (paid_event, paid_ticket, attendee)

    @pytest.mark.parametrize(
        "error,status_code",
        [
            (SettlementNotConfiguredError("no account"), 400),
            (CheckoutUnavailableError("sold_out"), 409),
            (PaymentProcessorUnavailableError("down"), 503),
        ],
    )
    @patch("events.service.stripe_service.create_checkout_session")
    def test_checkout_errors(
        self,
        mock_create: MagicMock,
        attendee_client: Client,
        paid_event: Event,
        paid_ticket: TicketType,
        error: Exception,
        status_code: int,
    ) -> None:
        mock_create.side_effect = error

        response = _post(
            attendee_client,
            reverse("api:event_checkout", kwargs={"event_id": paid_event.pk}),
            {"ticket_id": str(paid_ticket.pk)},
        )

        assert response.status_code == status_code

    def test_settlement_not_configured_body(
        self, attendee_client: Client, paid_event: Event, paid_ticket: TicketType
    ) -> None:
        response = _post(
            attendee_client,
            reverse("api:event_checkout", kwargs={"event_id": paid_event.pk}),
            {"ticket_id": str(paid_ticket.pk)},
        )

        assert response.status_code == 400
        assert response.json() == {"detail": "settlement not configured"}

    def test_ticket_of_another_event(
        self, attendee_client: Client, event: Event, paid_ticket: TicketType
    ) -> None:
        response = _post(
            attendee_client,
            reverse("api:event_checkout", kwargs={"event_id": event.pk}),
            {"ticket_id": str(paid_ticket.pk)},
        )

        assert response.status_code == 404


class TestRefund:
    @pytest.fixture
    def paid_registration(self, paid_event: Event, attendee: CampusUser) -> Registration:
        return Registration.objects.create(
            event=paid_event,
            user=attendee,
            name="A",
            email=attendee.email,
            checkout_session_id="cs_test_1",
            payment_intent_id="pi_test_1",
            amount_paid=2500,
            currency="GBP",
        )

    def _url(self, registration: Registration) -> str:
        return reverse(
            "api:refund_registration",
            kwargs={"event_id": registration.event_id, "registration_id": registration.pk},
        )

    @patch("events.service.stripe_service.refund_registration")
    def test_organiser_refunds_part(
        self, mock_refund: MagicMock, organiser_client: Client, paid_registration: Registration
    ) -> None:
        mock_refund.return_value = RefundResult(
            refund_id="re_test_1", amount=1000, currency="GBP", is_full_refund=False, status="succeeded"
        )

        response = _post(organiser_client, self._url(paid_registration), {"amount": 1000, "reason": " Moved "})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "refund_id": "re_test_1",
            "amount": 1000,
            "currency": "GBP",
            "is_full_refund": False,
            "status": "succeeded",
        }
        registration_arg = mock_refund.call_args.args[0]
        assert registration_arg.pk == paid_registration.pk
        assert mock_refund.call_args.kwargs == {"amount": 1000, "reason": "Moved"}

    @patch("events.service.stripe_service.refund_registration")
    def test_attendee_is_forbidden(
        self, mock_refund: MagicMock, attendee_client: Client, paid_registration: Registration
    ) -> None:
        response = _post(attendee_client, self._url(paid_registration))

        assert response.status_code == 403
        mock_refund.assert_not_called()

    def test_registration_of_another_event(
        self, organiser_client: Client, event: Event, paid_registration: Registration
    ) -> None:
        url = reverse(
            "api:refund_registration", kwargs={"event_id": event.pk, "registration_id": paid_registration.pk}
        )

        assert _post(organiser_client, url).status_code == 404

    def test_non_positive_amount(self, organiser_client: Client, paid_registration: Registration) -> None:
        assert _post(organiser_client, self._url(paid_registration), {"amount": 0}).status_code == 422

    @patch("events.service.stripe_service.refund_registration", side_effect=RefundNotAllowedError("already_refunded"))
    def test_nothing_left_to_refund(
        self, mock_refund: MagicMock, organiser_client: Client, paid_registration: Registration
    ) -> None:
        response = _post(organiser_client, self._url(paid_registration))

        assert response.status_code == 400
        assert response.json() == {"detail": "Refund not possible.", "reason": "already_refunded"}
