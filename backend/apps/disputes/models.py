"""
Disputes models - disagreements over a split's outcome.
Immutable audit trail: appeals create new rows, nothing is deleted.
"""
import uuid
from django.db import models
from django.db.models import Q
from apps.disputes.domain import Evidence, Resolution


class DisputeStatus(models.TextChoices):
    OPEN = 'open', 'Open'
    UNDER_REVIEW = 'under_review', 'Under Review'
    RESOLVED = 'resolved', 'Resolved'
    REJECTED = 'rejected', 'Rejected'
    APPEALED = 'appealed', 'Appealed'


class DisputeType(models.TextChoices):
    INCORRECT_AMOUNT = 'incorrect_amount', 'Incorrect Amount'
    MISSING_PAYMENT = 'missing_payment', 'Missing Payment'
    WRONG_ITEMS = 'wrong_items', 'Wrong Items'
    OTHER = 'other', 'Other'


class Dispute(models.Model):
    """
    Dispute raised by a split participant.
    At most one OPEN dispute may exist per split.
    """
    MAX_APPEAL_COUNT = 2

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    split_id = models.UUIDField(
        db_index=True,
        help_text="Disputed split (owned by the splits collaborator)"
    )
    raised_by = models.CharField(
        max_length=256,
        db_index=True,
        help_text="Wallet address of the party that opened the dispute"
    )
    dispute_type = models.CharField(max_length=20, choices=DisputeType.choices)
    description = models.TextField(max_length=5000)
    status = models.CharField(
        max_length=20,
        choices=DisputeStatus.choices,
        default=DisputeStatus.OPEN,
        db_index=True
    )

    evidence = models.JSONField(null=True, blank=True)

    # Decision, set together at resolve or reject
    resolution = models.JSONField(null=True, blank=True)
    resolved_by = models.CharField(
        max_length=256,
        null=True,
        blank=True,
        help_text="Resolver wallet address or system identifier"
    )
    resolved_at = models.DateTimeField(null=True, blank=True)

    # Appeal chain
    appealed_from = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='appeals',
        help_text="Dispute this one appeals"
    )
    appeal_reason = models.TextField(max_length=5000, null=True, blank=True)
    appeal_count = models.PositiveIntegerField(
        default=0,
        help_text="Times this dispute has been appealed"
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Dispute'
        verbose_name_plural = 'Disputes'
        indexes = [
            models.Index(fields=['split_id', 'status'], name='dispute_split_status_idx'),
            models.Index(fields=['raised_by', 'status'], name='dispute_raiser_status_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['split_id'],
                condition=Q(status='open'),
                name='unique_open_dispute_per_split'
            ),
            models.CheckConstraint(
                condition=Q(appeal_count__lte=2),
                name='appeal_count_within_limit'
            ),
            models.CheckConstraint(
                condition=(
                    Q(resolution__isnull=True, resolved_by__isnull=True, resolved_at__isnull=True)
                    | Q(resolution__isnull=False, resolved_by__isnull=False, resolved_at__isnull=False)
                ),
                name='resolution_fields_set_together'
            ),
        ]

    def __str__(self):
        return f"Dispute {self.id} - {self.status}"

    def get_evidence(self) -> Evidence:
        return Evidence.from_dict(self.evidence)

    def set_evidence(self, evidence: Evidence) -> None:
        self.evidence = evidence.to_dict()

    def get_resolution(self):
        if self.resolution is None:
            return None
        return Resolution.from_dict(self.resolution)

    @property
    def is_appeal(self) -> bool:
        return self.appealed_from_id is not None


class DisputeStatusLog(models.Model):
    """
    Audit trail for dispute status changes.
    One row per change, including creation.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    dispute = models.ForeignKey(
        Dispute,
        on_delete=models.PROTECT,
        related_name='status_logs'
    )
    from_status = models.CharField(max_length=20, blank=True)
    to_status = models.CharField(max_length=20)
    changed_by = models.CharField(max_length=256, blank=True)
    reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['created_at']
        verbose_name = 'Dispute Status Log'
        verbose_name_plural = 'Dispute Status Logs'
        indexes = [
            models.Index(fields=['dispute', 'created_at'], name='dispute_log_created_idx'),
        ]

    def __str__(self):
        return f"{self.dispute_id}: {self.from_status or '-'} -> {self.to_status}"
