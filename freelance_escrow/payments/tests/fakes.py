from decimal import Decimal

from payments.exceptions import GatewayError
from payments.providers import BasePaymentProvider, GatewayCharge, GatewayVerification, WebhookNotification
from payments.services import PaymentService


class FakeProvider(BasePaymentProvider):
    """In-memory gateway. `settle` and `amount` decide what `verify` reports."""

    name = "fake"

    def __init__(self, settle=True, fail_initiate=False, fail_verify=False, signs_webhooks=False, amount=None, **kwargs):
        super().__init__(**kwargs)
        self.settle = settle
        self.amount = amount
        self.fail_initiate = fail_initiate
        self.fail_verify = fail_verify
        self.signs_webhooks = signs_webhooks
        self.initiated = []
        self.verified = []

    def initiate(self, amount, transaction_id, contact_email=None):
        if self.fail_initiate:
            raise GatewayError("fake gateway down")
        self.initiated.append((Decimal(amount), transaction_id, contact_email))
        return GatewayCharge(
            external_payment_id=f"fake-{transaction_id}",
            payment_link=f"https://pay.test/{transaction_id}",
            raw={"success": True},
        )

    def verify(self, external_payment_id):
        self.verified.append(external_payment_id)
        if self.fail_verify:
            raise GatewayError("fake gateway down")
        status = "SUCCESS" if self.settle else "FAILED"
        return GatewayVerification(
            settled=self.settle,
            remote_status=status,
            amount_confirmed=self.amount,
            raw={"result": {"status": status}},
            failed=not self.settle,
        )

    def verify_webhook_signature(self, payload):
        return payload.get("signature") == "good"

    def parse_webhook(self, payload):
        status = str(payload.get("status", "")).upper()
        return WebhookNotification(
            external_payment_id=payload.get("payment_id"),
            transaction_reference=payload.get("developer_tracking_id"),
            remote_status=status,
            settled=status == "SUCCESS",
            failed=status == "FAILED",
            raw=payload,
        )


def fake_payment_service(provider):
    return PaymentService(provider_factory=lambda payment_method: provider)
