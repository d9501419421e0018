import hashlib
import hmac
import logging
from decimal import Decimal, InvalidOperation

from .base import BasePaymentProvider, GatewayCharge, GatewayVerification, WebhookNotification
from ..exceptions import GatewayError, GatewayUnavailable

logger = logging.getLogger(__name__)


def format_amount(amount):
    """Render an amount the way D17 signs it: integral values carry no decimals."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        return str(amount)
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), 'f')


def parse_amount(amount):
    if amount is None or amount == '':
        return None
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        return None
    return value if value.is_finite() else None


class D17Provider(BasePaymentProvider):
    """D17 mobile wallet. Amounts in dinars; callbacks are signed with the API key."""

    name = 'd17'
    signs_webhooks = True

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.base_url = self._setting('base_url', 'D17_API_URL', 'https://api.d17.tn/v1').rstrip('/')
        self.merchant_id = self._setting('merchant_id', 'D17_MERCHANT_ID', '')
        self.api_key = self._setting('api_key', 'D17_API_KEY', '')
        self.frontend_url = self._setting('frontend_url', 'FRONTEND_URL', 'http://localhost:3000').rstrip('/')
        self.backend_url = self._setting('backend_url', 'BACKEND_URL', 'http://localhost:8000').rstrip('/')

    def _ensure_configured(self):
        if not self.merchant_id or not self.api_key:
            logger.error("D17 credentials are not configured")
            raise GatewayUnavailable("D17 gateway is not configured.")

    def _headers(self):
        return {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
        }

    def initiate(self, amount, transaction_id, contact_email=None):
        self._ensure_configured()
        transaction_id = str(transaction_id)

        payload = {
            'amount': float(Decimal(str(amount)).quantize(Decimal('0.01'))),
            'merchant_id': self.merchant_id,
            'order_id': transaction_id,
            'return_url': f"{self.frontend_url}/payments/return?transaction_id={transaction_id}",
            'callback_url': f"{self.backend_url}/api/v1/payments/webhook/d17/",
        }
        if contact_email:
            payload['customer_email'] = contact_email

        logger.info(f"Initiating D17 payment for transaction {transaction_id}, amount: {amount}")
        data = self._request('POST', f"{self.base_url}/payments/create", json=payload, headers=self._headers())

        if not data.get('success') or not data.get('payment_id'):
            logger.error(f"D17 rejected payment initiation for {transaction_id}: {data.get('message')}")
            raise GatewayError(data.get('message') or "D17 payment initiation failed")

        logger.info(f"D17 payment initiated: {data['payment_id']}")
        return GatewayCharge(
            external_payment_id=data['payment_id'],
            payment_link=data.get('payment_url'),
            raw=data,
        )

    def verify(self, external_payment_id):
        self._ensure_configured()

        logger.info(f"Verifying D17 payment: {external_payment_id}")
        data = self._request('GET', f"{self.base_url}/payments/{external_payment_id}", headers=self._headers())

        if not data.get('success'):
            logger.error(f"D17 could not verify payment {external_payment_id}: {data}")
            raise GatewayError("D17 payment verification failed")

        remote_status = str(data.get('status', '')).lower()
        amount = data.get('amount')
        logger.info(f"D17 payment {external_payment_id} status: {remote_status}")
        return GatewayVerification(
            settled=remote_status == 'completed',
            remote_status=remote_status,
            amount_confirmed=Decimal(str(amount)) if amount is not None else None,
            raw=data,
            failed=remote_status == 'failed',
        )

    def expected_signature(self, payload):
        message = (
            f"{payload.get('payment_id', '')}"
            f"{payload.get('order_id', '')}"
            f"{format_amount(payload.get('amount', ''))}"
            f"{self.api_key}"
        )
        return hashlib.sha256(message.encode('utf-8')).hexdigest()

    def verify_webhook_signature(self, payload):
        signature = payload.get('signature')
        if not signature or not self.api_key:
            return False
        return hmac.compare_digest(self.expected_signature(payload), str(signature))

    def parse_webhook(self, payload):
        remote_status = str(payload.get('status', '')).lower()
        return WebhookNotification(
            external_payment_id=payload.get('payment_id'),
            transaction_reference=payload.get('order_id'),
            remote_status=remote_status,
            settled=remote_status == 'completed',
            failed=remote_status == 'failed',
            raw=payload,
            amount=parse_amount(payload.get('amount')),
        )
