import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from payments.exceptions import (
    AlreadyInitiated,
    AmountMismatch,
    GatewayError,
    GatewayUnavailable,
    IntegrityViolation,
    InvalidResolution,
    InvalidTransactionState,
    NoGatewayReference,
    NotAuthorized,
    NotFound,
    ProposalNotAccepted,
    ReasonTooShort,
    UnsupportedPaymentMethod,
)
from payments.fees import FeeBreakdown, calculate_fees, round2
from payments.models import Transaction
from payments.services import PaymentService
from user_projects.models import Proposal, UserProject
from .models import EscrowLedger

logger = logging.getLogger(__name__)

MIN_REASON_LENGTH = 20

# Every (transaction status, ledger status) pair the two rows may legally be in.
CONSISTENT_STATES = {
    (Transaction.PENDING, EscrowLedger.PENDING_PAYMENT),
    (Transaction.FAILED, EscrowLedger.PENDING_PAYMENT),
    (Transaction.ESCROWED, EscrowLedger.HELD),
    (Transaction.ESCROWED, EscrowLedger.DISPUTED),
    (Transaction.RELEASED, EscrowLedger.RELEASED),
    (Transaction.REFUNDED, EscrowLedger.REFUNDED),
}


@dataclass
class PaymentInitiation:
    transaction: Transaction
    escrow: EscrowLedger
    payment_link: Optional[str]
    gateway_payment_id: Optional[str]
    fees: FeeBreakdown


class EscrowService:
    """
    Orchestrates the escrow payment flow over Transaction and EscrowLedger.

    Every mutation locks the transaction row and its ledger inside one
    database transaction, so concurrent requests on the same payment are
    serialized and the loser re-reads the committed state. Gateway calls are
    made outside those locks.
    """

    def __init__(self, payment_service=None):
        self.payment_service = payment_service or PaymentService()

    # ------------------------------------------------------------------ #
    # helpers
    # ------------------------------------------------------------------ #
    def _lock(self, transaction_id):
        txn = Transaction.objects.select_for_update().filter(pk=transaction_id).first()
        if txn is None:
            raise NotFound('Transaction not found')
        ledger = EscrowLedger.objects.select_for_update().filter(transaction=txn).first()
        return txn, ledger

    def _check_integrity(self, txn, ledger):
        if ledger is None:
            logger.critical(f"Transaction {txn.pk} ({txn.status}) has no escrow ledger")
            raise IntegrityViolation(f"Transaction {txn.pk} has no escrow ledger")

        if (txn.status, ledger.status) not in CONSISTENT_STATES:
            logger.critical(
                f"Integrity violation on transaction {txn.pk}: "
                f"transaction is '{txn.status}' but escrow {ledger.pk} is '{ledger.status}'"
            )
            raise IntegrityViolation(
                f"Transaction is '{txn.status}' but escrow is '{ledger.status}'"
            )

        if ledger.amount_held != txn.amount + txn.client_fee:
            logger.critical(
                f"Integrity violation on transaction {txn.pk}: escrow holds {ledger.amount_held}, "
                f"expected {txn.amount + txn.client_fee}"
            )
            raise IntegrityViolation("Escrow amount does not match transaction total")

    def _settle_project(self, project_id, status):
        project = UserProject.objects.select_for_update().get(pk=project_id)
        project.set_status(status)

    def _is_client(self, user, txn):
        return txn.client_id == user.id

    # ------------------------------------------------------------------ #
    # initiation
    # ------------------------------------------------------------------ #
    def initiate_payment(self, *, user, project_id, proposal_id, payment_method):
        """
        Create the pending Transaction and its EscrowLedger for an accepted
        proposal, then ask the gateway for a payment link.

        The two rows are committed before the gateway is called; a gateway
        failure leaves them pending and returns `payment_link=None`.
        """
        if user.role != user.CLIENT:
            raise NotAuthorized('Only clients can initiate payments')

        if payment_method not in dict(Transaction.PAYMENT_METHOD_CHOICES):
            raise UnsupportedPaymentMethod(f"Unsupported payment method: {payment_method}")

        with transaction.atomic():
            project = UserProject.objects.select_for_update().filter(pk=project_id).first()
            if project is None:
                raise NotFound('Project not found')

            if project.client_id != user.id:
                raise NotAuthorized('Only the project owner can initiate payment')

            proposal = Proposal.objects.select_for_update().filter(pk=proposal_id, project=project).first()
            if proposal is None:
                raise NotFound('Proposal not found for this project')

            if not proposal.is_accepted:
                raise ProposalNotAccepted()

            if Transaction.objects.filter(project=project, proposal=proposal).exists():
                raise AlreadyInitiated()

            fees = calculate_fees(proposal.bid_amount)

            try:
                with transaction.atomic():
                    txn = Transaction.objects.create(
                        project=project,
                        proposal=proposal,
                        client=user,
                        freelancer=proposal.freelancer,
                        amount=fees.amount,
                        client_fee=fees.client_fee,
                        freelancer_fee=fees.freelancer_fee,
                        net_amount=fees.net_amount,
                        payment_method=payment_method,
                        status=Transaction.PENDING,
                    )
                    ledger = EscrowLedger.objects.create(
                        transaction=txn,
                        project=project,
                        amount_held=fees.total_to_escrow,
                        status=EscrowLedger.PENDING_PAYMENT,
                    )
            except IntegrityError:
                logger.warning(f"Duplicate payment initiation for project {project.pk}, proposal {proposal.pk}")
                raise AlreadyInitiated()

        logger.info(
            f"Payment initiated: transaction {txn.pk} ({payment_method}) for project {project.pk}, "
            f"amount {fees.amount}, total to escrow {fees.total_to_escrow}"
        )

        payment_link = None
        gateway_payment_id = None
        try:
            charge = self.payment_service.initiate(
                payment_method=payment_method,
                amount=fees.total_to_escrow,
                transaction_id=txn.pk,
                contact_email=user.email,
            )
        except (GatewayError, GatewayUnavailable) as e:
            logger.error(f"Gateway initiation failed for transaction {txn.pk}: {str(e)}")
        else:
            payment_link = charge.payment_link
            gateway_payment_id = charge.external_payment_id
            if gateway_payment_id:
                with transaction.atomic():
                    locked = Transaction.objects.select_for_update().get(pk=txn.pk)
                    locked.payment_gateway_reference = gateway_payment_id
                    locked.payment_gateway_response = charge.raw
                    locked.save(update_fields=['payment_gateway_reference', 'payment_gateway_response', 'updated_at'])
                txn = locked

        return PaymentInitiation(
            transaction=txn,
            escrow=ledger,
            payment_link=payment_link,
            gateway_payment_id=gateway_payment_id,
            fees=fees,
        )

    # ------------------------------------------------------------------ #
    # funding confirmation
    # ------------------------------------------------------------------ #
    def apply_gateway_outcome(self, transaction_id, settled, response, *, action='verify', strict=True, amount_confirmed=None):
        """
        Move a pending transaction to escrowed (and its ledger to held) when
        the gateway settled, or to failed otherwise.

        A settlement whose `amount_confirmed` differs from the ledger's
        `amount_held` raises AmountMismatch and changes nothing.

        Returns `(transaction, ledger, changed)`. When the transaction is no
        longer pending, raises InvalidTransactionState if `strict`, else
        returns unchanged rows.
        """
        with transaction.atomic():
            txn, ledger = self._lock(transaction_id)
            self._check_integrity(txn, ledger)

            if txn.status != Transaction.PENDING:
                if strict:
                    raise InvalidTransactionState(txn.status, action)
                logger.info(f"Ignoring {action} for transaction {txn.pk}: already {txn.status}")
                return txn, ledger, False

            if settled:
                if amount_confirmed is not None and round2(amount_confirmed) != ledger.amount_held:
                    logger.error(
                        f"Transaction {txn.pk} settled for {amount_confirmed}, escrow {ledger.pk} expects {ledger.amount_held}"
                    )
                    raise AmountMismatch(
                        f"Gateway confirmed {amount_confirmed} but escrow expects {ledger.amount_held}."
                    )
                txn.confirm_funds(gateway_response=response)
                ledger.confirm_funds()
                txn.save()
                ledger.save()
                logger.info(f"Transaction {txn.pk} escrowed, escrow {ledger.pk} holding {ledger.amount_held}")
            else:
                txn.fail(gateway_response=response)
                txn.save()
                logger.warning(f"Transaction {txn.pk} failed: gateway did not settle the payment")

        return txn, ledger, True

    def verify_payment(self, *, user, transaction_id):
        txn = Transaction.objects.filter(pk=transaction_id).first()
        if txn is None:
            raise NotFound('Transaction not found')

        if not (user.is_admin or self._is_client(user, txn)):
            raise NotAuthorized('Only the paying client or an admin can verify this payment')

        if txn.is_manual or not txn.payment_gateway_reference:
            raise NoGatewayReference()

        if txn.status != Transaction.PENDING:
            raise InvalidTransactionState(txn.status, 'verify')

        verification = self.payment_service.verify(
            payment_method=txn.payment_method,
            external_payment_id=txn.payment_gateway_reference,
        )
        logger.info(f"Gateway reports transaction {txn.pk} as '{verification.remote_status}'")

        txn, _, _ = self.apply_gateway_outcome(
            txn.pk, verification.settled, verification.raw,
            action='verify', amount_confirmed=verification.amount_confirmed,
        )
        return txn

    def confirm_manual_payment(self, *, user, transaction_id, reference=None):
        """Admin confirmation of an offline (bank transfer / e-Dinar) payment."""
        if not user.is_admin:
            raise NotAuthorized('Only admins can confirm manual payments')

        with transaction.atomic():
            txn, ledger = self._lock(transaction_id)
            self._check_integrity(txn, ledger)

            if not txn.is_manual:
                raise InvalidTransactionState(
                    txn.payment_method,
                    'confirm manually',
                    detail=f"Payments made with '{txn.payment_method}' must be verified with the gateway",
                )

            if txn.status != Transaction.PENDING:
                raise InvalidTransactionState(txn.status, 'confirm')

            reference = reference or f"MANUAL-{uuid.uuid4().hex[:12].upper()}"
            txn.payment_gateway_reference = reference
            txn.confirm_funds(gateway_response={
                'manual': True,
                'reference': reference,
                'confirmed_by': user.email,
                'confirmed_at': timezone.now().isoformat(),
            })
            ledger.confirm_funds()
            txn.save()
            ledger.save()

        logger.info(f"Manual payment {txn.pk} confirmed by {user.email} with reference {reference}")
        return txn

    # ------------------------------------------------------------------ #
    # settlement
    # ------------------------------------------------------------------ #
    def release_payment(self, *, user, transaction_id):
        with transaction.atomic():
            txn, ledger = self._lock(transaction_id)

            if not (user.is_admin or self._is_client(user, txn)):
                raise NotAuthorized('Only the client or an admin can release this payment')

            self._check_integrity(txn, ledger)

            if txn.status != Transaction.ESCROWED:
                raise InvalidTransactionState(txn.status, 'release')
            if not ledger.can_release():
                raise InvalidTransactionState(ledger.status, 'release')

            txn.release()
            ledger.release()
            txn.save()
            ledger.save()
            self._settle_project(txn.project_id, UserProject.COMPLETED)

        logger.info(f"Transaction {txn.pk} released to freelancer {txn.freelancer_id}, net {txn.net_amount}")
        return txn

    def request_refund(self, *, user, transaction_id, reason):
        with transaction.atomic():
            txn, ledger = self._lock(transaction_id)

            if not self._is_client(user, txn):
                raise NotAuthorized('Only the client can request a refund')

            reason = (reason or '').strip()
            if len(reason) < MIN_REASON_LENGTH:
                raise ReasonTooShort('Refund reason must be at least 20 characters')

            self._check_integrity(txn, ledger)

            if txn.status != Transaction.ESCROWED:
                raise InvalidTransactionState(txn.status, 'refund')
            if ledger.status != EscrowLedger.HELD:
                raise InvalidTransactionState(ledger.status, 'refund')

            ledger.open_dispute(reason)
            ledger.save()

        logger.info(f"Refund requested on transaction {txn.pk}; escrow {ledger.pk} disputed")
        return txn

    def resolve_dispute(self, *, user, transaction_id, resolution, notes):
        if not user.is_admin:
            raise NotAuthorized('Only admins can resolve disputes')

        notes = (notes or '').strip()
        if len(notes) < MIN_REASON_LENGTH:
            raise ReasonTooShort('Resolution notes must be at least 20 characters')

        if resolution not in EscrowLedger.RESOLUTIONS:
            raise InvalidResolution()

        with transaction.atomic():
            txn, ledger = self._lock(transaction_id)
            self._check_integrity(txn, ledger)

            if ledger.status != EscrowLedger.DISPUTED:
                raise InvalidTransactionState(ledger.status, 'resolve dispute', detail='Can only resolve disputed escrows')

            if resolution == EscrowLedger.RELEASE:
                txn.release()
                project_status = UserProject.COMPLETED
            else:
                txn.refund(reason=notes)
                project_status = UserProject.CANCELLED

            ledger.resolve(resolution, notes)
            txn.save()
            ledger.save()
            self._settle_project(txn.project_id, project_status)

        logger.info(f"Dispute on transaction {txn.pk} resolved by {user.email}: {resolution}")
        return txn

    # ------------------------------------------------------------------ #
    # queries
    # ------------------------------------------------------------------ #
    def get_transaction(self, *, user, transaction_id):
        txn = Transaction.objects.select_related('project', 'proposal', 'client', 'freelancer').filter(pk=transaction_id).first()
        if txn is None:
            raise NotFound('Transaction not found')
        if not (user.is_admin or txn.client_id == user.id or txn.freelancer_id == user.id):
            raise NotAuthorized('Not authorised to view this transaction')
        return txn

    def list_transactions(self, *, user, status=None, payment_method=None):
        queryset = Transaction.objects.select_related('project', 'client', 'freelancer', 'escrow')
        if not user.is_admin:
            queryset = queryset.filter(Q(client=user) | Q(freelancer=user))
        if status:
            queryset = queryset.filter(status=status)
        if payment_method:
            queryset = queryset.filter(payment_method=payment_method)
        return queryset.order_by('-created_at')
