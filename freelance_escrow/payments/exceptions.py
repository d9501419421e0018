"""
Errors raised by the escrow payment flow.

They are DRF APIExceptions so the services can raise them directly and the
views leave them to DRF's exception handler, which renders `{"detail": ...}`
responses with the right HTTP status.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class PaymentError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Payment operation failed.'
    default_code = 'payment_error'


class InvalidAmount(PaymentError):
    default_detail = 'Amount must be a positive number.'
    default_code = 'invalid_amount'


class GatewayUnavailable(PaymentError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Payment gateway is not configured.'
    default_code = 'gateway_unavailable'


class GatewayError(PaymentError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'Payment gateway request failed.'
    default_code = 'gateway_error'


class AmountMismatch(GatewayError):
    default_detail = 'Gateway confirmed a different amount than the escrow expects.'
    default_code = 'amount_mismatch'


class InvalidSignature(PaymentError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Webhook signature is invalid.'
    default_code = 'invalid_signature'


class AlreadyInitiated(PaymentError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Payment already initiated for this project.'
    default_code = 'already_initiated'


class NoGatewayReference(PaymentError):
    default_detail = 'No payment gateway reference found. Use manual confirmation for offline payments.'
    default_code = 'no_gateway_reference'


class ProposalNotAccepted(PaymentError):
    default_detail = 'Can only initiate payment for accepted proposals.'
    default_code = 'proposal_not_accepted'


class InvalidTransactionState(PaymentError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Transaction is not in a state that allows this action.'
    default_code = 'invalid_transaction_state'

    def __init__(self, current_state, action, detail=None):
        self.current_state = current_state
        self.action = action
        if detail is None:
            detail = f"Cannot {action} payment with status '{current_state}'"
        super().__init__(detail)


class InvalidStateTransition(PaymentError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'State transition not allowed.'
    default_code = 'invalid_state_transition'

    def __init__(self, current_state, action):
        self.current_state = current_state
        self.action = action
        super().__init__(f"Transition '{action}' is not allowed from state '{current_state}'")


class ReasonTooShort(PaymentError):
    default_detail = 'Reason must be at least 20 characters.'
    default_code = 'reason_too_short'


class InvalidResolution(PaymentError):
    default_detail = 'Resolution must be either "release" or "refund".'
    default_code = 'invalid_resolution'


class UnsupportedPaymentMethod(PaymentError):
    default_detail = 'Unsupported payment method.'
    default_code = 'unsupported_payment_method'


class NotAuthorized(PaymentError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You are not authorized to perform this action.'
    default_code = 'not_authorized'


class NotFound(PaymentError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class IntegrityViolation(PaymentError):
    """Transaction and escrow ledger disagree. Never auto-corrected."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Transaction and escrow ledger are out of sync.'
    default_code = 'integrity_violation'
