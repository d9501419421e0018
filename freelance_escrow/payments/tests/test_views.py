import hashlib
from decimal import Decimal
from unittest import mock

import pytest
import requests
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.tests.factories import AdminFactory, ClientFactory, FreelancerFactory
from escrow.models import EscrowLedger
from payments.models import Transaction
from payments.tests.factories import EscrowLedgerFactory
from payments.tests.fakes import FakeProvider
from user_projects.tests.factories import ProposalFactory, UserProjectFactory


pytestmark = pytest.mark.django_db

REFUND_REASON = "The freelancer never delivered the work"
RESOLUTION_NOTES = "Reviewed the conversation and the deliverables"


@pytest.fixture
def fake_provider():
    provider = FakeProvider()
    with mock.patch("payments.services.get_payment_provider", return_value=provider):
        yield provider


@pytest.fixture
def client_user():
    return ClientFactory()


@pytest.fixture
def freelancer():
    return FreelancerFactory()


@pytest.fixture
def api(client_user):
    api = APIClient()
    api.force_authenticate(user=client_user)
    return api


def as_user(user):
    api = APIClient()
    api.force_authenticate(user=user)
    return api


@pytest.fixture
def proposal(client_user, freelancer):
    project = UserProjectFactory(client=client_user)
    return ProposalFactory(project=project, freelancer=freelancer, bid_amount=Decimal("500.00"))


def initiate(api, proposal, payment_method="flouci"):
    return api.post(reverse("payment-initiate"), {
        "project_id": proposal.project_id,
        "proposal_id": proposal.pk,
        "payment_method": payment_method,
    }, format="json")


class TestInitiate:
    def test_returns_link_and_breakdown(self, api, proposal, fake_provider):
        response = initiate(api, proposal)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        txn_id = data["transaction"]["id"]
        assert data["payment_link"] == f"https://pay.test/{txn_id}"
        assert data["amount_to_pay"] == "525.00"
        assert data["breakdown"] == {
            "project_amount": "500.00",
            "platform_fee": "25.00",
            "freelancer_fee": "10.00",
            "net_amount": "490.00",
            "total": "525.00",
        }
        assert data["escrow"]["status"] == EscrowLedger.PENDING_PAYMENT
        assert data["escrow"]["amount_held"] == "525.00"

    def test_duplicate_returns_conflict(self, api, proposal, fake_provider):
        initiate(api, proposal)

        response = initiate(api, proposal)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert "already initiated" in response.json()["detail"]

    def test_freelancer_is_forbidden(self, proposal, freelancer, fake_provider):
        response = initiate(as_user(freelancer), proposal)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_invalid_payment_method(self, api, proposal, fake_provider):
        response = initiate(api, proposal, payment_method="paypal")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_requires_authentication(self, proposal):
        response = initiate(APIClient(), proposal)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestPaymentLifecycle:
    def test_verify_then_release(self, api, proposal, fake_provider):
        txn_id = initiate(api, proposal).json()["transaction"]["id"]

        verify = api.post(reverse("payment-verify", args=[txn_id]))
        assert verify.status_code == status.HTTP_200_OK
        assert verify.json()["transaction"]["status"] == Transaction.ESCROWED
        assert verify.json()["transaction"]["escrow"]["status"] == EscrowLedger.HELD

        again = api.post(reverse("payment-verify", args=[txn_id]))
        assert again.status_code == status.HTTP_409_CONFLICT

        release = api.post(reverse("payment-release", args=[txn_id]))
        assert release.status_code == status.HTTP_200_OK
        assert release.json()["transaction"]["status"] == Transaction.RELEASED

    def test_refund_and_admin_resolution(self, api, proposal, fake_provider):
        txn_id = initiate(api, proposal).json()["transaction"]["id"]
        api.post(reverse("payment-verify", args=[txn_id]))

        short = api.post(reverse("payment-refund", args=[txn_id]), {"reason": "too short"}, format="json")
        assert short.status_code == status.HTTP_400_BAD_REQUEST

        refund = api.post(reverse("payment-refund", args=[txn_id]), {"reason": REFUND_REASON}, format="json")
        assert refund.status_code == status.HTTP_200_OK
        assert refund.json()["transaction"]["escrow"]["status"] == EscrowLedger.DISPUTED

        client_resolve = api.post(
            reverse("payment-resolve-dispute", args=[txn_id]),
            {"resolution": "refund", "notes": RESOLUTION_NOTES},
            format="json",
        )
        assert client_resolve.status_code == status.HTTP_403_FORBIDDEN

        resolve = as_user(AdminFactory()).post(
            reverse("payment-resolve-dispute", args=[txn_id]),
            {"resolution": "refund", "notes": RESOLUTION_NOTES},
            format="json",
        )
        assert resolve.status_code == status.HTTP_200_OK
        assert resolve.json()["transaction"]["status"] == Transaction.REFUNDED
        assert resolve.json()["transaction"]["refund_reason"] == RESOLUTION_NOTES

    def test_manual_payment_confirmation(self, api, proposal, fake_provider):
        txn_id = initiate(api, proposal, payment_method="bank_transfer").json()["transaction"]["id"]

        verify = api.post(reverse("payment-verify", args=[txn_id]))
        assert verify.status_code == status.HTTP_400_BAD_REQUEST
        assert "manual confirmation" in verify.json()["detail"]

        forbidden = api.post(reverse("payment-confirm", args=[txn_id]), {"reference": "BT-1"}, format="json")
        assert forbidden.status_code == status.HTTP_403_FORBIDDEN

        confirm = as_user(AdminFactory()).post(reverse("payment-confirm", args=[txn_id]), {"reference": "BT-1"}, format="json")
        assert confirm.status_code == status.HTTP_200_OK
        assert confirm.json()["transaction"]["status"] == Transaction.ESCROWED
        assert confirm.json()["transaction"]["payment_gateway_reference"] == "BT-1"

    def test_unknown_transaction(self, api, fake_provider):
        response = api.post(reverse("payment-release", args=["00000000-0000-0000-0000-000000000000"]))

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestTransactionHistory:
    def test_list_is_scoped_and_filterable(self, api, client_user, freelancer):
        mine = EscrowLedgerFactory(transaction__proposal__project__client=client_user).transaction
        held = EscrowLedgerFactory(
            transaction__proposal__project__client=client_user,
            transaction__status=Transaction.ESCROWED,
            status=EscrowLedger.HELD,
        ).transaction
        EscrowLedgerFactory()

        response = api.get(reverse("transaction-list"))
        assert response.status_code == status.HTTP_200_OK
        ids = {row["id"] for row in response.json()["results"]}
        assert ids == {str(mine.pk), str(held.pk)}

        filtered = api.get(reverse("transaction-list"), {"status": Transaction.ESCROWED})
        assert [row["id"] for row in filtered.json()["results"]] == [str(held.pk)]

        by_method = api.get(reverse("transaction-list"), {"payment_method": Transaction.D17})
        assert by_method.json()["results"] == []

    def test_admin_sees_everything(self):
        EscrowLedgerFactory()
        EscrowLedgerFactory()

        response = as_user(AdminFactory()).get(reverse("transaction-list"))

        assert response.json()["count"] == 2

    def test_detail_permissions(self, api):
        txn = EscrowLedgerFactory().transaction

        assert api.get(reverse("transaction-detail", args=[txn.pk])).status_code == status.HTTP_403_FORBIDDEN
        assert as_user(txn.freelancer).get(reverse("transaction-detail", args=[txn.pk])).status_code == status.HTTP_200_OK
        assert as_user(txn.client).get(reverse("transaction-detail", args=[txn.pk])).json()["id"] == str(txn.pk)


class TestWebhookEndpoint:
    def test_signed_d17_callback(self):
        ledger = EscrowLedgerFactory(transaction__payment_method=Transaction.D17)
        txn = ledger.transaction
        payload = {
            "payment_id": "d17-1",
            "order_id": str(txn.pk),
            "status": "completed",
            "amount": "525",
            "signature": hashlib.sha256(f"d17-1{txn.pk}525d17-key".encode()).hexdigest(),
        }

        response = APIClient().post(reverse("payment-webhook", args=["d17"]), payload, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "received"}
        txn.refresh_from_db()
        assert txn.status == Transaction.ESCROWED

    def test_bad_signature_gets_neutral_acknowledgement(self):
        ledger = EscrowLedgerFactory(transaction__payment_method=Transaction.D17)
        payload = {
            "payment_id": "d17-1",
            "order_id": str(ledger.transaction.pk),
            "status": "completed",
            "amount": "525",
            "signature": "forged",
        }

        response = APIClient().post(reverse("payment-webhook", args=["d17"]), payload, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "received"}
        ledger.transaction.refresh_from_db()
        assert ledger.transaction.status == Transaction.PENDING

    def test_unknown_provider(self):
        response = APIClient().post(reverse("payment-webhook", args=["paypal"]), {}, format="json")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_gateway_outage_asks_for_retry(self, pending_ledger):
        with mock.patch("payments.providers.base.requests.request") as request:
            request.side_effect = requests.exceptions.Timeout("slow")
            response = APIClient().post(reverse("payment-webhook", args=["flouci"]), {
                "payment_id": pending_ledger.transaction.payment_gateway_reference,
                "developer_tracking_id": str(pending_ledger.transaction.pk),
                "status": "SUCCESS",
            }, format="json")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_amount_mismatch_is_acknowledged_without_escrowing(self):
        ledger = EscrowLedgerFactory(transaction__payment_method=Transaction.D17)
        txn = ledger.transaction
        payload = {
            "payment_id": "d17-1",
            "order_id": str(txn.pk),
            "status": "completed",
            "amount": "5",
            "signature": hashlib.sha256(f"d17-1{txn.pk}5d17-key".encode()).hexdigest(),
        }

        response = APIClient().post(reverse("payment-webhook", args=["d17"]), payload, format="json")

        assert response.status_code == status.HTTP_200_OK
        txn.refresh_from_db()
        assert txn.status == Transaction.PENDING
