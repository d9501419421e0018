from .base import BasePaymentProvider, GatewayCharge, GatewayVerification, WebhookNotification
from .d17 import D17Provider
from .flouci import FlouciProvider
from .manual import ManualProvider

PROVIDERS = {
    'flouci': FlouciProvider,
    'd17': D17Provider,
}

MANUAL_METHODS = ('bank_transfer', 'edinar')


def get_payment_provider(provider_name: str, **kwargs) -> BasePaymentProvider:
    """
    Factory function to get payment provider instances.

    Args:
        provider_name: Payment method name (flouci, d17, bank_transfer, edinar)
        **kwargs: Provider configuration overriding Django settings

    Returns:
        BasePaymentProvider: Payment provider instance
    """
    if provider_name in MANUAL_METHODS:
        return ManualProvider(name=provider_name, **kwargs)

    if provider_name not in PROVIDERS:
        raise ValueError(f"Unknown payment provider: {provider_name}")

    return PROVIDERS[provider_name](**kwargs)
