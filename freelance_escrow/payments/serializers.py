from rest_framework import serializers

from accounts.serializers import UserSummarySerializer
from escrow.models import EscrowLedger
from escrow.serializers import EscrowLedgerSerializer
from .models import Transaction


class TransactionSerializer(serializers.ModelSerializer):
    project_id = serializers.IntegerField(source="project.id", read_only=True)
    project_title = serializers.CharField(source="project.title", read_only=True)
    proposal_id = serializers.IntegerField(source="proposal.id", read_only=True)
    client = UserSummarySerializer(read_only=True)
    freelancer = UserSummarySerializer(read_only=True)
    escrow = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = [
            'id',
            'project_id',
            'project_title',
            'proposal_id',
            'client',
            'freelancer',
            'amount',
            'client_fee',
            'freelancer_fee',
            'net_amount',
            'payment_method',
            'status',
            'payment_gateway_reference',
            'escrowed_at',
            'released_at',
            'refunded_at',
            'refund_reason',
            'created_at',
            'updated_at',
            'escrow',
        ]
        read_only_fields = fields

    def get_escrow(self, obj):
        try:
            ledger = obj.escrow
        except EscrowLedger.DoesNotExist:
            return None
        return EscrowLedgerSerializer(ledger).data


class InitiatePaymentSerializer(serializers.Serializer):
    project_id = serializers.IntegerField()
    proposal_id = serializers.IntegerField()
    payment_method = serializers.ChoiceField(choices=Transaction.PAYMENT_METHOD_CHOICES)


class RefundRequestSerializer(serializers.Serializer):
    # Length is enforced by the service after trimming.
    reason = serializers.CharField(max_length=1000, allow_blank=True, trim_whitespace=False)


class ResolveDisputeSerializer(serializers.Serializer):
    resolution = serializers.CharField()
    notes = serializers.CharField(max_length=1000, allow_blank=True, trim_whitespace=False)


class ManualConfirmationSerializer(serializers.Serializer):
    reference = serializers.CharField(max_length=255, required=False, allow_blank=True)
