import pytest
from django.db import IntegrityError

from payments.exceptions import InvalidStateTransition
from payments.models import Transaction
from payments.tests.factories import TransactionFactory


pytestmark = pytest.mark.django_db


class TestTransactionTransitions:
    def test_confirm_funds(self):
        txn = TransactionFactory()

        txn.confirm_funds(gateway_response={"status": "SUCCESS"})

        assert txn.status == Transaction.ESCROWED
        assert txn.escrowed_at is not None
        assert txn.payment_gateway_response == {"status": "SUCCESS"}

    def test_fail_is_terminal(self):
        txn = TransactionFactory()
        txn.fail()

        assert txn.status == Transaction.FAILED
        for action in (txn.confirm_funds, txn.release, txn.refund, txn.fail):
            with pytest.raises(InvalidStateTransition):
                action()

    def test_release_and_refund_need_escrowed(self):
        txn = TransactionFactory()

        with pytest.raises(InvalidStateTransition) as exc:
            txn.release()
        assert exc.value.current_state == Transaction.PENDING
        assert exc.value.action == "release"

        with pytest.raises(InvalidStateTransition):
            txn.refund()

    def test_refund_records_reason(self):
        txn = TransactionFactory(status=Transaction.ESCROWED)

        txn.refund(reason="Work was never delivered")

        assert txn.status == Transaction.REFUNDED
        assert txn.refunded_at is not None
        assert txn.refund_reason == "Work was never delivered"

    def test_released_is_terminal(self):
        txn = TransactionFactory(status=Transaction.ESCROWED)
        txn.release()

        with pytest.raises(InvalidStateTransition):
            txn.refund()


class TestTransactionConstraints:
    def test_one_transaction_per_proposal(self):
        txn = TransactionFactory()

        with pytest.raises(IntegrityError):
            TransactionFactory(proposal=txn.proposal)

    def test_manual_methods(self):
        assert TransactionFactory(payment_method=Transaction.BANK_TRANSFER).is_manual
        assert TransactionFactory(payment_method=Transaction.EDINAR).is_manual
        assert not TransactionFactory(payment_method=Transaction.D17).is_manual

    def test_net_amount_matches_fees(self):
        txn = TransactionFactory()

        assert txn.net_amount == txn.amount - txn.freelancer_fee
        assert txn.total_to_escrow == txn.amount + txn.client_fee
