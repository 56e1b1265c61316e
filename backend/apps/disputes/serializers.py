"""
Dispute serializers.
Output shapes for disputes and request validation for every endpoint.
"""
from decimal import Decimal
from rest_framework import serializers
from apps.disputes.models import Dispute, DisputeStatus, DisputeStatusLog, DisputeType

IDENTITY_MAX_LENGTH = 256
REFERENCE_MAX_LENGTH = 2048


class DisputeStatusLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = DisputeStatusLog
        fields = ['from_status', 'to_status', 'changed_by', 'reason', 'created_at']
        read_only_fields = fields


class DisputeSerializer(serializers.ModelSerializer):
    """Serializer for dispute responses."""
    appealed_from_dispute_id = serializers.UUIDField(source='appealed_from_id', read_only=True)

    class Meta:
        model = Dispute
        fields = [
            'id', 'split_id', 'raised_by', 'dispute_type', 'description',
            'status', 'evidence', 'resolution', 'resolved_by', 'resolved_at',
            'appealed_from_dispute_id', 'appeal_reason', 'appeal_count',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class DisputeDetailSerializer(DisputeSerializer):
    """Serializer for dispute detail, with the status history."""
    status_logs = DisputeStatusLogSerializer(many=True, read_only=True)

    class Meta(DisputeSerializer.Meta):
        fields = DisputeSerializer.Meta.fields + ['status_logs']
        read_only_fields = fields


# ===== REQUEST SERIALIZERS =====

class EvidenceSerializer(serializers.Serializer):
    """
    Evidence bundle. Only supplied keys appear in validated_data, which
    the appeal overlay relies on.
    """
    images = serializers.ListField(
        child=serializers.CharField(max_length=REFERENCE_MAX_LENGTH),
        required=False
    )
    receipts = serializers.ListField(
        child=serializers.CharField(max_length=REFERENCE_MAX_LENGTH),
        required=False
    )
    description = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    metadata = serializers.DictField(required=False)


class CreateDisputeSerializer(serializers.Serializer):
    """Serializer for creating disputes."""
    split_id = serializers.UUIDField()
    raised_by = serializers.CharField(max_length=IDENTITY_MAX_LENGTH, required=False)
    dispute_type = serializers.ChoiceField(choices=DisputeType.choices)
    description = serializers.CharField(max_length=5000)
    evidence = EvidenceSerializer(required=False)


class ListDisputesSerializer(serializers.Serializer):
    """Query parameters for the dispute list."""
    split_id = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=DisputeStatus.choices, required=False)
    raised_by = serializers.CharField(max_length=IDENTITY_MAX_LENGTH, required=False)
    dispute_type = serializers.ChoiceField(choices=DisputeType.choices, required=False)
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, default=20)


class StatisticsQuerySerializer(serializers.Serializer):
    split_id = serializers.UUIDField(required=False)


class AddEvidenceSerializer(serializers.Serializer):
    """Serializer for adding evidence."""
    evidence = EvidenceSerializer()
    actor_identity = serializers.CharField(max_length=IDENTITY_MAX_LENGTH, required=False)


class UpdateStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DisputeStatus.choices)


class AdjustmentSerializer(serializers.Serializer):
    participant_id = serializers.CharField(max_length=IDENTITY_MAX_LENGTH)
    original_amount = serializers.DecimalField(max_digits=18, decimal_places=6, min_value=Decimal('0'))
    new_amount = serializers.DecimalField(max_digits=18, decimal_places=6, min_value=Decimal('0'))


class CompensationSerializer(serializers.Serializer):
    participant_id = serializers.CharField(max_length=IDENTITY_MAX_LENGTH)
    amount = serializers.DecimalField(max_digits=18, decimal_places=6, min_value=Decimal('0'))
    reason = serializers.CharField(max_length=1000)


class ResolveDisputeSerializer(serializers.Serializer):
    """Serializer for admin resolution."""
    decision = serializers.CharField(max_length=1000)
    reasoning = serializers.CharField(max_length=5000)
    adjustments = AdjustmentSerializer(many=True, required=False)
    compensations = CompensationSerializer(many=True, required=False)
    resolved_by = serializers.CharField(max_length=IDENTITY_MAX_LENGTH, required=False)


class RejectDisputeSerializer(serializers.Serializer):
    """Serializer for admin rejection."""
    reasoning = serializers.CharField(max_length=5000)
    rejected_by = serializers.CharField(max_length=IDENTITY_MAX_LENGTH, required=False)


class AppealDisputeSerializer(serializers.Serializer):
    """Serializer for appeals."""
    appeal_reason = serializers.CharField(max_length=5000)
    appealed_by = serializers.CharField(max_length=IDENTITY_MAX_LENGTH, required=False)
    additional_evidence = EvidenceSerializer(required=False)
