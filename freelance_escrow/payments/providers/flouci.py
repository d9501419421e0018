import logging
from decimal import Decimal, ROUND_HALF_UP

from .base import BasePaymentProvider, GatewayCharge, GatewayVerification, WebhookNotification
from ..exceptions import GatewayError, GatewayUnavailable

logger = logging.getLogger(__name__)

MILLIMES_PER_DINAR = Decimal('1000')


def to_millimes(amount):
    return int((Decimal(str(amount)) * MILLIMES_PER_DINAR).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_millimes(value):
    return (Decimal(str(value)) / MILLIMES_PER_DINAR).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


class FlouciProvider(BasePaymentProvider):
    """
    Flouci hosted checkout. Amounts travel in millimes.

    Flouci callbacks are not signed, so a callback is only a hint: the
    receiver confirms it through `verify` before touching any money state.
    """

    name = 'flouci'
    signs_webhooks = False

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.base_url = self._setting('base_url', 'FLOUCI_API_URL', 'https://developers.flouci.com/api').rstrip('/')
        self.app_token = self._setting('app_token', 'FLOUCI_APP_TOKEN', '')
        self.app_secret = self._setting('app_secret', 'FLOUCI_APP_SECRET', '')
        self.session_timeout_secs = self._setting('session_timeout_secs', 'FLOUCI_SESSION_TIMEOUT_SECS', 1200)
        self.frontend_url = self._setting('frontend_url', 'FRONTEND_URL', 'http://localhost:3000').rstrip('/')

    def _ensure_configured(self):
        if not self.app_token or not self.app_secret:
            logger.error("Flouci credentials are not configured")
            raise GatewayUnavailable("Flouci gateway is not configured.")

    def initiate(self, amount, transaction_id, contact_email=None):
        self._ensure_configured()
        transaction_id = str(transaction_id)

        payload = {
            'amount': to_millimes(amount),
            'app_token': self.app_token,
            'app_secret': self.app_secret,
            'accept_card': True,
            'session_timeout_secs': self.session_timeout_secs,
            'success_link': f"{self.frontend_url}/payments/success?transaction_id={transaction_id}",
            'fail_link': f"{self.frontend_url}/payments/failure?transaction_id={transaction_id}",
            'developer_tracking_id': transaction_id,
        }

        logger.info(f"Initiating Flouci payment for transaction {transaction_id}, amount: {amount}")
        data = self._request('POST', f"{self.base_url}/generate_payment", json=payload)

        result = data.get('result') or {}
        if not data.get('success') or not result.get('_id'):
            logger.error(f"Flouci rejected payment initiation for {transaction_id}: {data}")
            raise GatewayError("Flouci payment initiation failed")

        logger.info(f"Flouci payment initiated: {result['_id']}")
        return GatewayCharge(
            external_payment_id=result['_id'],
            payment_link=result.get('link'),
            raw=data,
        )

    def verify(self, external_payment_id):
        self._ensure_configured()

        logger.info(f"Verifying Flouci payment: {external_payment_id}")
        data = self._request(
            'GET',
            f"{self.base_url}/verify_payment/{external_payment_id}",
            params={'app_token': self.app_token, 'app_secret': self.app_secret},
        )

        result = data.get('result') or {}
        if not data.get('success') or not result:
            logger.error(f"Flouci could not verify payment {external_payment_id}: {data}")
            raise GatewayError("Flouci payment verification failed")

        remote_status = str(result.get('status', '')).upper()
        amount = result.get('amount')
        verification = GatewayVerification(
            settled=remote_status == 'SUCCESS',
            remote_status=remote_status,
            amount_confirmed=from_millimes(amount) if amount is not None else None,
            raw=data,
            failed=remote_status == 'FAILED',
        )
        logger.info(f"Flouci payment {external_payment_id} status: {remote_status}")
        return verification

    def parse_webhook(self, payload):
        remote_status = str(payload.get('status', '')).upper()
        return WebhookNotification(
            external_payment_id=payload.get('payment_id'),
            transaction_reference=payload.get('developer_tracking_id'),
            remote_status=remote_status,
            settled=remote_status == 'SUCCESS',
            failed=remote_status == 'FAILED',
            raw=payload,
        )
