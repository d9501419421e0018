import logging

from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema

from escrow.serializers import EscrowLedgerSerializer
from escrow.services import EscrowService
from . import serializers as my_serializers
from .exceptions import AmountMismatch, GatewayError, GatewayUnavailable, InvalidSignature
from .filters import TransactionFilter
from .permissions import IsAdminRole
from .webhooks import WebhookReceiver

logger = logging.getLogger(__name__)

transaction_id_param = openapi.Parameter(
    'transaction_id',
    openapi.IN_PATH,
    description="Transaction UUID",
    type=openapi.TYPE_STRING,
    format=openapi.FORMAT_UUID,
)


def transaction_response(txn, message=None, http_status=status.HTTP_200_OK):
    data = {'transaction': my_serializers.TransactionSerializer(txn).data}
    if message:
        data['message'] = message
    return Response(data, status=http_status)


class InitiatePaymentView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Initiate escrow payment for an accepted proposal",
        request_body=my_serializers.InitiatePaymentSerializer,
        responses={
            201: openapi.Response(description="Transaction and escrow created; payment link when the gateway answered"),
            400: "Validation error or proposal not accepted",
            403: "Not the project client",
            404: "Project or proposal not found",
            409: "Payment already initiated",
        }
    )
    def post(self, request):
        serializer = my_serializers.InitiatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = EscrowService().initiate_payment(user=request.user, **serializer.validated_data)

        return Response({
            'message': 'Payment initiated successfully',
            'transaction': my_serializers.TransactionSerializer(result.transaction).data,
            'escrow': EscrowLedgerSerializer(result.escrow).data,
            'payment_link': result.payment_link,
            'gateway_payment_id': result.gateway_payment_id,
            'amount_to_pay': str(result.fees.total_to_escrow),
            'breakdown': result.fees.as_dict(),
        }, status=status.HTTP_201_CREATED)


class VerifyPaymentView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Verify a payment with its gateway",
        manual_parameters=[transaction_id_param],
        responses={
            200: my_serializers.TransactionSerializer(),
            400: "No gateway reference",
            409: "Transaction is not pending",
            502: "Gateway error",
        }
    )
    def post(self, request, transaction_id):
        txn = EscrowService().verify_payment(user=request.user, transaction_id=transaction_id)
        if txn.status == txn.ESCROWED:
            message = 'Payment verified and funds held in escrow'
        else:
            message = 'Payment was not completed'
        return transaction_response(txn, message)


class ConfirmManualPaymentView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdminRole]

    @swagger_auto_schema(
        operation_summary="Confirm an offline bank transfer or e-Dinar payment",
        manual_parameters=[transaction_id_param],
        request_body=my_serializers.ManualConfirmationSerializer,
        responses={200: my_serializers.TransactionSerializer(), 403: "Forbidden", 409: "Invalid state"}
    )
    def post(self, request, transaction_id):
        serializer = my_serializers.ManualConfirmationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        txn = EscrowService().confirm_manual_payment(
            user=request.user,
            transaction_id=transaction_id,
            reference=serializer.validated_data.get('reference') or None,
        )
        return transaction_response(txn, 'Manual payment confirmed and funds held in escrow')


class ReleasePaymentView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Release escrowed funds to the freelancer",
        manual_parameters=[transaction_id_param],
        responses={200: my_serializers.TransactionSerializer(), 403: "Forbidden", 409: "Invalid state"}
    )
    def post(self, request, transaction_id):
        txn = EscrowService().release_payment(user=request.user, transaction_id=transaction_id)
        return transaction_response(txn, 'Payment released to freelancer')


class RequestRefundView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Request a refund (opens a dispute)",
        manual_parameters=[transaction_id_param],
        request_body=my_serializers.RefundRequestSerializer,
        responses={200: my_serializers.TransactionSerializer(), 400: "Reason too short", 403: "Forbidden", 409: "Invalid state"}
    )
    def post(self, request, transaction_id):
        serializer = my_serializers.RefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        txn = EscrowService().request_refund(
            user=request.user,
            transaction_id=transaction_id,
            reason=serializer.validated_data['reason'],
        )
        return transaction_response(txn, 'Refund request submitted. Admin will review the dispute.')


class ResolveDisputeView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdminRole]

    @swagger_auto_schema(
        operation_summary="Resolve a disputed escrow (admin)",
        manual_parameters=[transaction_id_param],
        request_body=my_serializers.ResolveDisputeSerializer,
        responses={200: my_serializers.TransactionSerializer(), 400: "Validation error", 403: "Forbidden", 409: "Invalid state"}
    )
    def post(self, request, transaction_id):
        serializer = my_serializers.ResolveDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        resolution = serializer.validated_data['resolution']
        txn = EscrowService().resolve_dispute(
            user=request.user,
            transaction_id=transaction_id,
            resolution=resolution,
            notes=serializer.validated_data['notes'],
        )
        return transaction_response(txn, f'Dispute resolved: {resolution}')


class TransactionListView(generics.ListAPIView):
    """List transactions where the current user is the client or the freelancer."""
    serializer_class = my_serializers.TransactionSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_class = TransactionFilter

    @swagger_auto_schema(
        operation_summary="Transaction history for the current user",
        responses={200: my_serializers.TransactionSerializer(many=True)}
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return EscrowService().list_transactions(user=self.request.user)


class TransactionDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Retrieve a transaction",
        manual_parameters=[transaction_id_param],
        responses={200: my_serializers.TransactionSerializer(), 403: "Forbidden", 404: "Not found"}
    )
    def get(self, request, transaction_id):
        txn = EscrowService().get_transaction(user=request.user, transaction_id=transaction_id)
        return Response(my_serializers.TransactionSerializer(txn).data)


class PaymentWebhookView(APIView):
    """
    Gateway callbacks. Unauthenticated; every accepted delivery, including
    ones with a bad signature, gets the same acknowledgement.
    """
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_summary="Payment gateway callback",
        manual_parameters=[
            openapi.Parameter('provider', openapi.IN_PATH, description="flouci or d17", type=openapi.TYPE_STRING)
        ],
        responses={200: "Received", 404: "Unknown provider", 503: "Gateway unavailable"}
    )
    def post(self, request, provider):
        payload = request.data if isinstance(request.data, dict) else {}
        try:
            WebhookReceiver().handle(provider, dict(payload))
        except InvalidSignature:
            logger.warning(f"{provider} webhook signature check failed from {request.META.get('REMOTE_ADDR')}")
        except AmountMismatch as e:
            logger.error(f"{provider} webhook refused: {str(e)}")
        except (GatewayError, GatewayUnavailable) as e:
            logger.error(f"{provider} webhook could not be confirmed with the gateway: {str(e)}")
            return Response({'status': 'retry'}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response({'status': 'received'}, status=status.HTTP_200_OK)
