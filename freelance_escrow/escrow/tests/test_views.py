import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.tests.factories import AdminFactory, ClientFactory
from escrow.models import EscrowLedger
from payments.models import Transaction
from payments.tests.factories import EscrowLedgerFactory


pytestmark = pytest.mark.django_db


def as_user(user):
    api = APIClient()
    api.force_authenticate(user=user)
    return api


def test_list_shows_only_own_ledgers():
    mine = EscrowLedgerFactory()
    EscrowLedgerFactory()

    response = as_user(mine.transaction.client).get(reverse("escrow-list"))

    assert response.status_code == status.HTTP_200_OK
    assert [row["id"] for row in response.json()["results"]] == [str(mine.pk)]


def test_freelancer_sees_their_ledgers():
    ledger = EscrowLedgerFactory(transaction__status=Transaction.ESCROWED, status=EscrowLedger.HELD)

    response = as_user(ledger.transaction.freelancer).get(reverse("escrow-list"), {"status": EscrowLedger.HELD})

    row = response.json()["results"][0]
    assert row["amount_held"] == str(ledger.amount_held)
    assert row["can_release"] is True
    assert row["can_refund"] is True


def test_admin_sees_all():
    EscrowLedgerFactory()
    EscrowLedgerFactory()

    response = as_user(AdminFactory()).get(reverse("escrow-list"))

    assert response.json()["count"] == 2


def test_detail_permissions():
    ledger = EscrowLedgerFactory()
    url = reverse("escrow-detail", args=[ledger.pk])

    assert as_user(ledger.transaction.client).get(url).status_code == status.HTTP_200_OK
    assert as_user(ClientFactory()).get(url).status_code == status.HTTP_403_FORBIDDEN
    assert as_user(AdminFactory()).get(url).json()["transaction_id"] == str(ledger.transaction.pk)
