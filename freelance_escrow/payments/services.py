import logging

from .providers import get_payment_provider

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Provider adapter. This class does NOT create or update Transaction/Escrow
    records; it only calls the payment provider for a payment method.
    """
    def __init__(self, provider_factory=None):
        self.provider_factory = provider_factory or get_payment_provider

    def get_provider(self, payment_method):
        return self.provider_factory(payment_method)

    def initiate(self, *, payment_method, amount, transaction_id, contact_email=None):
        provider = self.get_provider(payment_method)
        return provider.initiate(amount, str(transaction_id), contact_email=contact_email)

    def verify(self, *, payment_method, external_payment_id):
        provider = self.get_provider(payment_method)
        return provider.verify(external_payment_id)
