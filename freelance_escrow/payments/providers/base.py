import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

import requests
from django.conf import settings

from ..exceptions import GatewayError

logger = logging.getLogger(__name__)


@dataclass
class GatewayCharge:
    """Result of asking a gateway for a payment session."""
    external_payment_id: Optional[str]
    payment_link: Optional[str]
    raw: dict = field(default_factory=dict)


@dataclass
class GatewayVerification:
    """Remote settlement status of a payment session."""
    settled: bool
    remote_status: str
    amount_confirmed: Optional[Decimal] = None
    raw: dict = field(default_factory=dict)
    failed: bool = False


@dataclass
class WebhookNotification:
    """Provider callback normalised to the fields the receiver needs."""
    external_payment_id: Optional[str]
    transaction_reference: Optional[str]
    remote_status: str
    settled: bool
    failed: bool
    raw: dict = field(default_factory=dict)
    # Amount the callback reports, when the provider signs it.
    amount: Optional[Decimal] = None

    @property
    def event_id(self):
        return f"{self.external_payment_id or self.transaction_reference}:{self.remote_status}"


class BasePaymentProvider(ABC):
    """
    Abstract base class for all payment providers.
    Defines the common interface that all payment providers must implement.
    """

    name = None
    # Whether callbacks carry a signature we can check locally.
    signs_webhooks = False

    def __init__(self, **kwargs):
        """Initialize the payment provider with configuration."""
        self.config = kwargs
        self.timeout = kwargs.get('timeout', settings.PAYMENT_GATEWAY_TIMEOUT)

    @abstractmethod
    def initiate(self, amount: Decimal, transaction_id: str, contact_email: Optional[str] = None) -> GatewayCharge:
        """
        Open a payment session for the amount the client must pay.

        Args:
            amount: Total to collect, in major currency units
            transaction_id: Our transaction id, echoed back by the gateway
            contact_email: Optional payer contact

        Returns:
            GatewayCharge with the external payment id and payer link

        Raises:
            GatewayUnavailable: credentials are not configured
            GatewayError: transport failure, timeout or remote rejection
        """

    @abstractmethod
    def verify(self, external_payment_id: str) -> GatewayVerification:
        """
        Ask the gateway whether a payment session settled. Read-only.

        Raises:
            GatewayError: transport failure, timeout or remote rejection
        """

    def verify_webhook_signature(self, payload: dict) -> bool:
        """Override in providers that sign their callbacks."""
        return True

    @abstractmethod
    def parse_webhook(self, payload: dict) -> WebhookNotification:
        """Normalise a raw callback body."""

    def _setting(self, key, setting_name, default=None) -> Any:
        value = self.config.get(key)
        if value is None:
            value = getattr(settings, setting_name, default)
        return value

    def _request(self, method, url, **kwargs) -> dict:
        """
        Perform an HTTP call to the gateway and return the decoded JSON body.
        Any transport, HTTP or decoding failure becomes a GatewayError.
        """
        try:
            response = requests.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout as e:
            logger.error(f"{self.name} request timed out after {self.timeout}s: {str(e)}")
            raise GatewayError(f"{self.name} gateway timed out")
        except requests.exceptions.RequestException as e:
            logger.error(f"{self.name} API request failed: {str(e)}")
            raise GatewayError(f"{self.name} gateway request failed")
        except ValueError as e:
            logger.error(f"{self.name} returned a non-JSON response: {str(e)}")
            raise GatewayError(f"{self.name} gateway returned an invalid response")
