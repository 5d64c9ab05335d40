from unittest.mock import MagicMock, patch

import pytest
import stripe
from django.test.client import Client
from django.urls import reverse

from events.models import SettlementAccount
from events.tests.conftest import live_account

pytestmark = pytest.mark.django_db


@patch("stripe.AccountLink.create")
@patch("stripe.Account.create")
def test_create_account(
    mock_account_create: MagicMock, mock_link_create: MagicMock, organiser_client: Client
) -> None:
    mock_account_create.return_value = live_account("acct_new")
    mock_link_create.return_value = MagicMock(url="https://connect.stripe.com/setup/e/acct_new")

    response = organiser_client.post(reverse("api:settlement_account"))

    assert response.status_code == 200
    assert response.json() == {
        "account_id": "acct_new",
        "onboarding_url": "https://connect.stripe.com/setup/e/acct_new",
    }


@patch("stripe.Account.create", side_effect=stripe.APIConnectionError("network down"))
def test_create_account_processor_down(mock_account_create: MagicMock, organiser_client: Client) -> None:
    response = organiser_client.post(reverse("api:settlement_account"))

    assert response.status_code == 503


def test_only_organisers(attendee_client: Client) -> None:
    assert attendee_client.post(reverse("api:settlement_account")).status_code == 403
    assert attendee_client.get(reverse("api:settlement_status")).status_code == 403


def test_status_not_started(organiser_client: Client) -> None:
    response = organiser_client.get(reverse("api:settlement_status"))

    assert response.status_code == 200
    assert response.json() == {
        "has_account": False,
        "status": "not_started",
        "card_payments_enabled": False,
        "transfers_enabled": False,
        "payouts_enabled": False,
    }


@patch("stripe.Account.retrieve")
def test_status_approved(
    mock_retrieve: MagicMock, organiser_client: Client, settlement_account: SettlementAccount
) -> None:
    mock_retrieve.return_value = live_account()

    response = organiser_client.get(reverse("api:settlement_status"))

    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    mock_retrieve.assert_called_once_with("acct_organiser")


@patch("stripe.Account.retrieve", side_effect=stripe.APIConnectionError("network down"))
def test_status_inconclusive(
    mock_retrieve: MagicMock, organiser_client: Client, settlement_account: SettlementAccount
) -> None:
    response = organiser_client.get(reverse("api:settlement_status"))

    assert response.status_code == 200
    assert response.json()["status"] == "inconclusive"
    assert response.json()["card_payments_enabled"] is True
