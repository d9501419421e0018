from rest_framework import serializers

from .models import EscrowLedger


class EscrowLedgerSerializer(serializers.ModelSerializer):
    transaction_id = serializers.UUIDField(source="transaction.id", read_only=True)
    project_id = serializers.IntegerField(source="project.id", read_only=True)
    project_title = serializers.CharField(source="project.title", read_only=True)
    can_release = serializers.SerializerMethodField()
    can_refund = serializers.SerializerMethodField()

    class Meta:
        model = EscrowLedger
        fields = (
            "id",
            "transaction_id",
            "project_id",
            "project_title",
            "amount_held",
            "status",
            "hold_started_at",
            "hold_released_at",
            "dispute_reason",
            "dispute_opened_at",
            "dispute_resolved_at",
            "resolution_notes",
            "can_release",
            "can_refund",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_can_release(self, obj):
        return obj.can_release()

    def get_can_refund(self, obj):
        return obj.can_refund()
