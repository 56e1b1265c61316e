"""
Appeal service - reopens a decided dispute as a new appeal dispute.
The original row is kept; only its appeal_count changes.
"""
import logging
from typing import Any, Dict, Optional
from django.db import transaction
from common.exceptions import Forbidden, InvalidRequest, NotFound
from apps.disputes.domain import DisputeEvent
from apps.disputes.models import Dispute, DisputeStatus
from apps.disputes.services.state_machine import DisputeStateMachine

logger = logging.getLogger(__name__)


class AppealLimitReached(InvalidRequest):
    default_code = 'appeal_limit_reached'

    def __init__(self, limit: int = Dispute.MAX_APPEAL_COUNT):
        super().__init__(
            f"Maximum appeal limit ({limit}) reached",
            context={'limit': limit}
        )
        self.limit = limit


class AppealService:
    """
    Appeals against resolved or rejected disputes.
    """

    APPEALABLE_STATUSES = (DisputeStatus.RESOLVED, DisputeStatus.REJECTED)

    def __init__(self, split_service, notification_service):
        self.split_service = split_service
        self.notification_service = notification_service

    def appeal(
        self,
        dispute_id,
        appealed_by: str,
        appeal_reason: str,
        additional_evidence: Optional[Dict[str, Any]] = None
    ) -> Dispute:
        """
        Create an appeal dispute and re-freeze the split under it.

        Args:
            dispute_id: Resolved or rejected dispute being appealed
            appealed_by: Wallet address of the appellant
            appeal_reason: Why the decision is contested
            additional_evidence: Fields replacing the original evidence fields

        Returns:
            The new appeal Dispute (status APPEALED)

        Raises:
            NotFound: Original dispute does not exist
            InvalidRequest: Original is not resolved or rejected
            AppealLimitReached: Original already appealed MAX_APPEAL_COUNT times
            Forbidden: Appellant is not a split participant
        """
        with transaction.atomic():
            try:
                original = Dispute.objects.select_for_update().get(id=dispute_id)
            except Dispute.DoesNotExist:
                raise NotFound(
                    f"Dispute {dispute_id} not found",
                    context={'dispute_id': str(dispute_id)}
                )

            if original.status not in self.APPEALABLE_STATUSES:
                raise InvalidRequest(
                    "Only resolved or rejected disputes can be appealed",
                    context={'current_status': original.status}
                )

            if original.appeal_count >= Dispute.MAX_APPEAL_COUNT:
                raise AppealLimitReached(Dispute.MAX_APPEAL_COUNT)

            if not self.split_service.is_participant(original.split_id, appealed_by):
                raise Forbidden(
                    "Only split participants can appeal disputes",
                    context={'split_id': str(original.split_id)}
                )

            if original.evidence is None and not additional_evidence:
                evidence = None
            else:
                evidence = original.get_evidence().overlaid_with(additional_evidence).to_dict()

            appeal = Dispute.objects.create(
                split_id=original.split_id,
                raised_by=appealed_by,
                dispute_type=original.dispute_type,
                description=original.description,
                evidence=evidence,
                status=DisputeStatus.APPEALED,
                appealed_from=original,
                appeal_reason=appeal_reason,
                appeal_count=0
            )
            DisputeStateMachine.record(
                appeal, "", DisputeStatus.APPEALED,
                changed_by=appealed_by,
                reason=appeal_reason
            )

            original.appeal_count += 1
            original.save(update_fields=['appeal_count', 'updated_at'])

        self.split_service.freeze_split(appeal.split_id, appeal.id)

        logger.info(
            f"Dispute {original.id} appealed by {appealed_by} "
            f"({original.appeal_count}/{Dispute.MAX_APPEAL_COUNT}), appeal {appeal.id}"
        )
        self.notification_service.notify_participants(appeal, DisputeEvent.APPEALED)

        return appeal
