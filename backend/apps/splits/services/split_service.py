"""
Split service - participant lookups, freezing and dispute adjustments.
Critical: freeze state gates fund movement on the split.
"""
import logging
from typing import Iterable, List
from django.db import transaction
from django.utils import timezone
from common.exceptions import NotFound, InvalidRequest
from apps.splits.models import Split, SplitParticipant

logger = logging.getLogger(__name__)


class SplitService:
    """
    Collaborator consumed by the dispute engine.
    Any object exposing these methods can stand in for it.
    """

    def find_split(self, split_id) -> Split:
        """
        Load a split.

        Raises:
            NotFound: If the split does not exist
        """
        try:
            return Split.objects.get(id=split_id)
        except Split.DoesNotExist:
            raise NotFound(
                f"Split {split_id} not found",
                context={'split_id': str(split_id)}
            )

    def is_participant(self, split_id, identity: str) -> bool:
        """Check if identity holds a share of the split."""
        return SplitParticipant.objects.filter(
            split_id=split_id,
            wallet_address=identity
        ).exists()

    def get_participants(self, split_id) -> List[SplitParticipant]:
        return list(SplitParticipant.objects.filter(split_id=split_id))

    @transaction.atomic
    def freeze_split(self, split_id, dispute_id) -> Split:
        """
        Freeze a split under a dispute's authority.
        A later freeze replaces the holder (appeals re-freeze).

        Args:
            split_id: Split to freeze
            dispute_id: Dispute holding the freeze

        Returns:
            Updated split
        """
        locked_split = self._lock(split_id)

        locked_split.is_frozen = True
        locked_split.frozen_by_dispute_id = dispute_id
        locked_split.frozen_at = timezone.now()
        locked_split.save(update_fields=[
            'is_frozen', 'frozen_by_dispute_id', 'frozen_at', 'updated_at'
        ])

        logger.info(f"Split {split_id} frozen by dispute {dispute_id}")
        return locked_split

    @transaction.atomic
    def unfreeze_split(self, split_id) -> Split:
        locked_split = self._lock(split_id)

        locked_split.is_frozen = False
        locked_split.frozen_by_dispute_id = None
        locked_split.frozen_at = None
        locked_split.save(update_fields=[
            'is_frozen', 'frozen_by_dispute_id', 'frozen_at', 'updated_at'
        ])

        logger.info(f"Split {split_id} unfrozen")
        return locked_split

    @transaction.atomic
    def apply_dispute_adjustments(self, split_id, adjustments: Iterable) -> List[SplitParticipant]:
        """
        Apply per-participant amount adjustments decided in a dispute.

        Args:
            split_id: Split to adjust
            adjustments: Items with participant_id and new_amount

        Returns:
            Updated participants

        Raises:
            InvalidRequest: If an adjustment names a non-participant
        """
        self._lock(split_id)

        participants = {
            participant.wallet_address: participant
            for participant in SplitParticipant.objects.select_for_update().filter(
                split_id=split_id
            )
        }

        updated = []
        for adjustment in adjustments:
            participant = participants.get(adjustment.participant_id)
            if participant is None:
                raise InvalidRequest(
                    f"{adjustment.participant_id} is not a participant of split {split_id}",
                    context={'participant_id': adjustment.participant_id}
                )

            participant.amount_owed = adjustment.new_amount
            participant.save(update_fields=['amount_owed'])
            updated.append(participant)

        logger.info(f"Applied {len(updated)} dispute adjustments to split {split_id}")
        return updated

    def _lock(self, split_id) -> Split:
        try:
            return Split.objects.select_for_update().get(id=split_id)
        except Split.DoesNotExist:
            raise NotFound(
                f"Split {split_id} not found",
                context={'split_id': str(split_id)}
            )


split_service = SplitService()
