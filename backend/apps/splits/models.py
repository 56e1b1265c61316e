"""
Splits models - shared expense aggregate and its participants.
A split is frozen while a dispute against it is being adjudicated.
"""
import uuid
from decimal import Decimal
from django.db import models
from django.core.validators import MinValueValidator


class Split(models.Model):
    """
    Shared expense split between wallet-identified participants.
    """
    ACTIVE = 'active'
    COMPLETED = 'completed'

    STATUS_CHOICES = [
        (ACTIVE, 'Active'),
        (COMPLETED, 'Completed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    total_amount = models.DecimalField(
        max_digits=18,
        decimal_places=6,
        validators=[MinValueValidator(Decimal('0'))]
    )
    currency = models.CharField(max_length=12, default='XLM')
    creator = models.CharField(
        max_length=256,
        help_text="Wallet address of the split creator"
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=ACTIVE,
        db_index=True
    )

    # Freeze state, owned by dispute adjudication
    is_frozen = models.BooleanField(default=False, db_index=True)
    frozen_by_dispute_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Dispute currently holding the freeze"
    )
    frozen_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Split'
        verbose_name_plural = 'Splits'

    def __str__(self):
        return f"Split {self.id} - {self.title}"


class SplitParticipant(models.Model):
    """
    A participant's share of a split.
    """
    PAID = 'paid'
    PENDING = 'pending'

    STATUS_CHOICES = [
        (PAID, 'Paid'),
        (PENDING, 'Pending'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    split = models.ForeignKey(
        Split,
        on_delete=models.CASCADE,
        related_name='participants'
    )
    wallet_address = models.CharField(max_length=256, db_index=True)
    name = models.CharField(max_length=100, blank=True)
    amount_owed = models.DecimalField(
        max_digits=18,
        decimal_places=6,
        default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=PENDING
    )

    class Meta:
        ordering = ['wallet_address']
        verbose_name = 'Split Participant'
        verbose_name_plural = 'Split Participants'
        constraints = [
            models.UniqueConstraint(
                fields=['split', 'wallet_address'],
                name='unique_participant_per_split'
            ),
        ]

    def __str__(self):
        return f"{self.wallet_address} in Split {self.split_id}"
