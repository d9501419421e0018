"""
Gateway callback handling.

Callbacks are untrusted hints. Signed ones (D17) are checked before any
lookup; unsigned ones (Flouci) only move money state after the gateway
confirms the payment through `verify`. Every state change goes through the
same locked transition as client-side verification, so repeated deliveries
are no-ops.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from escrow.services import EscrowService
from .exceptions import InvalidSignature, NotFound
from .models import Transaction, WebhookEvent
from .services import PaymentService

logger = logging.getLogger(__name__)

WEBHOOK_PROVIDERS = ('flouci', 'd17')


@dataclass
class WebhookResult:
    provider: str
    transaction: Optional[Transaction]
    processed: bool
    outcome: str


class WebhookReceiver:
    def __init__(self, payment_service=None, escrow_service=None):
        self.payment_service = payment_service or PaymentService()
        self.escrow_service = escrow_service or EscrowService(payment_service=self.payment_service)

    def _resolve_transaction(self, notification):
        reference = notification.transaction_reference
        if reference:
            try:
                txn = Transaction.objects.filter(pk=reference).first()
            except (ValueError, ValidationError):
                txn = None
            if txn is not None:
                return txn

        if notification.external_payment_id:
            return Transaction.objects.filter(payment_gateway_reference=notification.external_payment_id).first()
        return None

    def _record_event(self, provider_name, notification, txn):
        try:
            with transaction.atomic():
                WebhookEvent.objects.create(
                    provider=provider_name,
                    event_id=notification.event_id,
                    status=notification.remote_status,
                    transaction=txn,
                )
        except IntegrityError:
            logger.info(f"Duplicate {provider_name} webhook event {notification.event_id}")

    def handle(self, provider_name, payload):
        if provider_name not in WEBHOOK_PROVIDERS:
            raise NotFound(f"Unknown webhook provider: {provider_name}")

        provider = self.payment_service.get_provider(provider_name)
        notification = provider.parse_webhook(payload or {})

        if provider.signs_webhooks and not provider.verify_webhook_signature(payload or {}):
            logger.warning(f"Rejected {provider_name} webhook with invalid signature for payment {notification.external_payment_id}")
            raise InvalidSignature()

        txn = self._resolve_transaction(notification)
        if txn is None:
            logger.warning(
                f"{provider_name} webhook for unknown transaction "
                f"(reference={notification.transaction_reference}, payment={notification.external_payment_id})"
            )
            return WebhookResult(provider_name, None, False, 'unknown_transaction')

        if txn.payment_method != provider_name:
            logger.warning(f"{provider_name} webhook targets transaction {txn.pk} paid with {txn.payment_method}")
            return WebhookResult(provider_name, txn, False, 'provider_mismatch')

        if txn.status != Transaction.PENDING:
            logger.info(f"{provider_name} webhook for transaction {txn.pk} ignored: already {txn.status}")
            return WebhookResult(provider_name, txn, False, 'already_processed')

        if provider.signs_webhooks:
            if not (notification.settled or notification.failed):
                logger.info(f"{provider_name} webhook for transaction {txn.pk} still {notification.remote_status}")
                return WebhookResult(provider_name, txn, False, 'pending')
            settled = notification.settled
            amount_confirmed = notification.amount
            response = notification.raw
        else:
            reference = txn.payment_gateway_reference or notification.external_payment_id
            if not reference:
                logger.warning(f"{provider_name} webhook for transaction {txn.pk} has no payment reference")
                return WebhookResult(provider_name, txn, False, 'no_reference')

            verification = provider.verify(reference)
            if verification.settled:
                settled = True
            elif verification.failed and notification.failed:
                settled = False
            else:
                logger.info(
                    f"{provider_name} webhook for transaction {txn.pk} not confirmed by gateway "
                    f"(remote status {verification.remote_status})"
                )
                return WebhookResult(provider_name, txn, False, 'unconfirmed')
            amount_confirmed = verification.amount_confirmed
            response = {'webhook': notification.raw, 'verification': verification.raw}

        with transaction.atomic():
            txn, _, changed = self.escrow_service.apply_gateway_outcome(
                txn.pk, settled, response, action='webhook', strict=False,
                amount_confirmed=amount_confirmed,
            )
            if changed:
                self._record_event(provider_name, notification, txn)

        outcome = txn.status if changed else 'already_processed'
        logger.info(f"{provider_name} webhook processed for transaction {txn.pk}: {outcome}")
        return WebhookResult(provider_name, txn, changed, outcome)
