import logging

from .base import BasePaymentProvider, GatewayCharge, WebhookNotification
from ..exceptions import NoGatewayReference

logger = logging.getLogger(__name__)


class ManualProvider(BasePaymentProvider):
    """
    Bank transfer and e-Dinar. Money arrives offline and an admin confirms it,
    so there is no payment link, no gateway reference and nothing to verify.
    """

    signs_webhooks = False

    def __init__(self, name='manual', **kwargs):
        super().__init__(**kwargs)
        self.name = name

    def initiate(self, amount, transaction_id, contact_email=None):
        logger.info(f"Manual {self.name} payment expected for transaction {transaction_id}, amount: {amount}")
        return GatewayCharge(external_payment_id=None, payment_link=None, raw={})

    def verify(self, external_payment_id):
        raise NoGatewayReference()

    def parse_webhook(self, payload):
        return WebhookNotification(
            external_payment_id=None,
            transaction_reference=None,
            remote_status='',
            settled=False,
            failed=False,
            raw=payload,
        )
