from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import orjson
import pytest
from django.test.client import Client
from django.urls import reverse

from accounts.models import CampusUser
from conftest import CampusUserFactory, client_for
from events.models import Event, Registration, TicketType

pytestmark = pytest.mark.django_db


class TestCreateEvent:
    def test_organiser_creates_event(
        self, organiser_client: Client, organiser: CampusUser, next_week: datetime
    ) -> None:
        payload = {"name": "  Quiz Night ", "start": next_week.isoformat(), "capacity": 40}

        response = organiser_client.post(
            reverse("api:create_event"), data=orjson.dumps(payload), content_type="application/json"
        )

        assert response.status_code == 201
        event = Event.objects.get(pk=response.json()["id"])
        assert event.name == "Quiz Night"
        assert event.organiser == organiser
        assert event.capacity == 40

    def test_non_organiser_is_forbidden(self, attendee_client: Client, next_week: datetime) -> None:
        payload = {"name": "Quiz Night", "start": next_week.isoformat()}

        response = attendee_client.post(
            reverse("api:create_event"), data=orjson.dumps(payload), content_type="application/json"
        )

        assert response.status_code == 403
        assert not Event.objects.exists()

    def test_end_before_start_is_rejected(self, organiser_client: Client, next_week: datetime) -> None:
        payload = {
            "name": "Quiz Night",
            "start": next_week.isoformat(),
            "end": (next_week - timedelta(hours=1)).isoformat(),
        }

        response = organiser_client.post(
            reverse("api:create_event"), data=orjson.dumps(payload), content_type="application/json"
        )

        assert response.status_code == 422


class TestEditEvent:
    def test_edit(self, organiser_client: Client, event: Event) -> None:
        response = organiser_client.patch(
            reverse("api:edit_event", kwargs={"event_id": event.pk}),
            data=orjson.dumps({"capacity": 25, "description": "Bring a friend"}),
            content_type="application/json",
        )

        assert response.status_code == 200
        event.refresh_from_db()
        assert event.capacity == 25
        assert event.description == "Bring a friend"

    def test_capacity_frozen_once_registered(
        self, organiser_client: Client, event: Event, attendee: CampusUser
    ) -> None:
        Registration.objects.create(event=event, user=attendee, name="A", email=attendee.email)

        response = organiser_client.patch(
            reverse("api:edit_event", kwargs={"event_id": event.pk}),
            data=orjson.dumps({"capacity": 25}),
            content_type="application/json",
        )

        assert response.status_code == 400
        assert "capacity" in response.json()["errors"]
        event.refresh_from_db()
        assert event.capacity == 10

    def test_other_organiser_is_forbidden(self, event: Event, campus_user_factory: CampusUserFactory) -> None:
        other = campus_user_factory(is_organiser=True)

        response = client_for(other).patch(
            reverse("api:edit_event", kwargs={"event_id": event.pk}),
            data=orjson.dumps({"capacity": 25}),
            content_type="application/json",
        )

        assert response.status_code == 403


def test_delete_event_is_soft(organiser_client: Client, event: Event) -> None:
    response = organiser_client.delete(reverse("api:delete_event", kwargs={"event_id": event.pk}))

    assert response.status_code == 200
    event.refresh_from_db()
    assert event.is_deleted is True
    assert organiser_client.delete(reverse("api:delete_event", kwargs={"event_id": event.pk})).status_code == 404


class TestTicketTypes:
    @patch("events.service.event_service.describe_price")
    def test_price_is_read_from_stripe(
        self, mock_describe: MagicMock, organiser_client: Client, paid_event: Event
    ) -> None:
        mock_describe.return_value = (Decimal("12.50"), "GBP")

        response = organiser_client.post(
            reverse("api:create_ticket_type", kwargs={"event_id": paid_event.pk}),
            data=orjson.dumps({"name": "Standard", "price_id": "price_standard", "price": "99", "quantity": 100}),
            content_type="application/json",
        )

        assert response.status_code == 201
        ticket = TicketType.objects.get(event=paid_event)
        assert ticket.price == Decimal("12.50")
        assert ticket.price_id == "price_standard"
        mock_describe.assert_called_once_with("price_standard")

    def test_paid_event_needs_price_id(self, organiser_client: Client, paid_event: Event) -> None:
        response = organiser_client.post(
            reverse("api:create_ticket_type", kwargs={"event_id": paid_event.pk}),
            data=orjson.dumps({"name": "Standard"}),
            content_type="application/json",
        )

        assert response.status_code == 400
        assert "price_id" in response.json()["errors"]

    def test_list_in_release_order(self, organiser_client: Client, event: Event) -> None:
        TicketType.objects.create(event=event, name="Second", release_order=2)
        TicketType.objects.create(event=event, name="First", release_order=1)

        response = organiser_client.get(reverse("api:list_ticket_types", kwargs={"event_id": event.pk}))

        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["First", "Second"]
