"""
Dispute service - main business logic for dispute management.
Handles creation, evidence, status changes, resolution and rejection.

Each operation persists first, then calls the split collaborator, then
notifies participants. These steps are not one transaction: a crash after
the dispute is saved can leave the split frozen until the step is replayed.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Union
from django.db import IntegrityError, transaction
from django.utils import timezone
from common.exceptions import Forbidden, InvalidRequest, NotFound
from apps.disputes.domain import Adjustment, Compensation, DisputeEvent, Evidence, Resolution
from apps.disputes.models import Dispute, DisputeStatus
from apps.disputes.services.appeal_service import AppealService
from apps.disputes.services.state_machine import DisputeStateMachine
from apps.disputes.services.statistics import compute_statistics

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

DECISION_STATUSES = (DisputeStatus.RESOLVED, DisputeStatus.REJECTED)


class DisputeService:
    """
    Service for managing disputes.

    Collaborators are injected so the split and notification sides can be
    replaced without touching the dispute rules.
    """

    def __init__(self, split_service=None, notification_service=None):
        if split_service is None:
            from apps.splits.services.split_service import split_service as default_split_service
            split_service = default_split_service
        if notification_service is None:
            from apps.notifications.services import NotificationService
            notification_service = NotificationService(split_service=split_service)

        self.split_service = split_service
        self.notification_service = notification_service
        self.appeals = AppealService(
            split_service=split_service,
            notification_service=notification_service
        )

    # ===== CREATE / READ =====

    def create_dispute(
        self,
        split_id,
        raised_by: str,
        dispute_type: str,
        description: str,
        evidence: Optional[Dict[str, Any]] = None
    ) -> Dispute:
        """
        Create a new dispute and freeze the associated split.

        Security:
        - Only split participants can raise disputes
        - One open dispute per split (enforced by a unique constraint)

        Args:
            split_id: Split being disputed
            raised_by: Wallet address of the raiser
            dispute_type: One of DisputeType
            description: Detailed description
            evidence: Optional evidence bundle

        Returns:
            Created Dispute
        """
        self.split_service.find_split(split_id)

        if not self.split_service.is_participant(split_id, raised_by):
            raise Forbidden(
                "Only split participants can raise disputes",
                context={'split_id': str(split_id)}
            )

        # Early exit; the unique constraint is the real guard
        if Dispute.objects.filter(split_id=split_id, status=DisputeStatus.OPEN).exists():
            raise self._open_dispute_exists(split_id)

        try:
            with transaction.atomic():
                dispute = Dispute.objects.create(
                    split_id=split_id,
                    raised_by=raised_by,
                    dispute_type=dispute_type,
                    description=description,
                    evidence=Evidence.from_dict(evidence).to_dict() if evidence else None,
                    status=DisputeStatus.OPEN
                )
                DisputeStateMachine.record(
                    dispute, "", DisputeStatus.OPEN,
                    changed_by=raised_by,
                    reason="Dispute created"
                )
        except IntegrityError:
            logger.warning(f"Concurrent open dispute on split {split_id} rejected by constraint")
            raise self._open_dispute_exists(split_id)

        self.split_service.freeze_split(split_id, dispute.id)

        logger.info(f"Dispute {dispute.id} raised on split {split_id} by {raised_by}")
        self._notify(dispute, DisputeEvent.CREATED)

        return dispute

    def list_disputes(
        self,
        split_id=None,
        status: Optional[str] = None,
        raised_by: Optional[str] = None,
        dispute_type: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Dict[str, Any]:
        """
        Find disputes with optional filtering, newest first.

        Returns:
            {'disputes': [...], 'total': count before pagination}
        """
        if page < 1:
            raise InvalidRequest("page must be at least 1", context={'page': page})
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise InvalidRequest(
                f"limit must be between 1 and {MAX_PAGE_SIZE}",
                context={'limit': limit}
            )

        queryset = Dispute.objects.all()
        if split_id:
            queryset = queryset.filter(split_id=split_id)
        if status:
            queryset = queryset.filter(status=status)
        if raised_by:
            queryset = queryset.filter(raised_by=raised_by)
        if dispute_type:
            queryset = queryset.filter(dispute_type=dispute_type)

        queryset = queryset.order_by('-created_at')
        offset = (page - 1) * limit

        return {
            'disputes': list(queryset[offset:offset + limit]),
            'total': queryset.count(),
        }

    def get_dispute(self, dispute_id) -> Dispute:
        try:
            return Dispute.objects.get(id=dispute_id)
        except Dispute.DoesNotExist:
            raise NotFound(
                f"Dispute {dispute_id} not found",
                context={'dispute_id': str(dispute_id)}
            )

    def get_statistics(self, split_id=None) -> Dict[str, Any]:
        queryset = Dispute.objects.all()
        if split_id:
            queryset = queryset.filter(split_id=split_id)

        return compute_statistics(
            queryset.only('status', 'dispute_type', 'created_at', 'resolved_at').iterator()
        )

    # ===== EVIDENCE / STATUS =====

    def add_evidence(
        self,
        dispute_id,
        evidence: Dict[str, Any],
        actor_identity: str
    ) -> Dispute:
        """
        Add evidence to an existing dispute.

        While the dispute is open only the raiser may add evidence.
        Images and receipts are appended; metadata is left untouched.
        """
        with transaction.atomic():
            dispute = self._get_for_update(dispute_id)

            if dispute.status == DisputeStatus.OPEN and dispute.raised_by != actor_identity:
                raise Forbidden(
                    "Only the dispute raiser can add evidence",
                    context={'dispute_id': str(dispute.id)}
                )

            dispute.set_evidence(
                dispute.get_evidence().merged_with(Evidence.from_dict(evidence))
            )
            dispute.save(update_fields=['evidence', 'updated_at'])

        self._notify(dispute, DisputeEvent.EVIDENCE_ADDED)

        return dispute

    def update_status(self, dispute_id, new_status: str, changed_by: str = "") -> Dispute:
        """
        Update dispute status through the transition table (admin/system use).

        Resolved and rejected are reachable only through resolve_dispute and
        reject_dispute, which record the decision and unfreeze the split.

        Raises:
            InvalidTransition: If the edge is not permitted
            InvalidRequest: If the target is a decision status
        """
        dispute = self.get_dispute(dispute_id)

        DisputeStateMachine.validate_transition(dispute.status, new_status)
        if new_status in DECISION_STATUSES:
            raise InvalidRequest(
                f"Disputes move to {new_status} only through the resolve or reject operation",
                code='decision_required',
                context={
                    'current_status': dispute.status,
                    'requested_status': new_status,
                }
            )

        dispute = DisputeStateMachine.transition(
            dispute,
            new_status,
            changed_by=changed_by,
            reason="Status update"
        )

        if new_status == DisputeStatus.UNDER_REVIEW:
            self._notify(dispute, DisputeEvent.UNDER_REVIEW)

        return dispute

    # ===== DECISIONS =====

    def resolve_dispute(
        self,
        dispute_id,
        decision: str,
        reasoning: str,
        resolved_by: str,
        adjustments: Optional[Iterable[Union[Adjustment, Dict[str, Any]]]] = None,
        compensations: Optional[Iterable[Union[Compensation, Dict[str, Any]]]] = None
    ) -> Dispute:
        """
        Resolve a dispute with a decision.

        Accepts OPEN disputes directly as well as UNDER_REVIEW ones.

        Args:
            dispute_id: Dispute to resolve
            decision: Decision text
            reasoning: Reasoning behind the decision
            resolved_by: Resolver wallet address
            adjustments: Per-participant amount changes applied to the split
            compensations: Compensations recorded with the decision

        Returns:
            Resolved Dispute
        """
        adjustments = self._as_adjustments(adjustments)
        compensations = self._as_compensations(compensations)

        with transaction.atomic():
            dispute = self._get_for_update(dispute_id)
            self._ensure_decidable(dispute, "resolved")

            for adjustment in adjustments or []:
                if not self.split_service.is_participant(dispute.split_id, adjustment.participant_id):
                    raise InvalidRequest(
                        f"{adjustment.participant_id} is not a participant of this split",
                        context={'participant_id': adjustment.participant_id}
                    )

            old_status = dispute.status
            resolution = Resolution(
                decision=decision,
                reasoning=reasoning,
                adjustments=adjustments,
                compensations=compensations,
            )
            self._apply_decision(dispute, DisputeStatus.RESOLVED, resolution, resolved_by)
            DisputeStateMachine.record(
                dispute, old_status, DisputeStatus.RESOLVED,
                changed_by=resolved_by,
                reason=decision
            )

        self.split_service.unfreeze_split(dispute.split_id)

        if adjustments:
            self.split_service.apply_dispute_adjustments(dispute.split_id, adjustments)

        logger.info(f"Dispute {dispute.id} resolved by {resolved_by}")
        self._notify(dispute, DisputeEvent.RESOLVED)

        return dispute

    def reject_dispute(self, dispute_id, reasoning: str, rejected_by: str) -> Dispute:
        """
        Reject a dispute. No adjustments are applied.
        """
        with transaction.atomic():
            dispute = self._get_for_update(dispute_id)
            self._ensure_decidable(dispute, "rejected")

            old_status = dispute.status
            resolution = Resolution(decision="rejected", reasoning=reasoning)
            self._apply_decision(dispute, DisputeStatus.REJECTED, resolution, rejected_by)
            DisputeStateMachine.record(
                dispute, old_status, DisputeStatus.REJECTED,
                changed_by=rejected_by,
                reason=reasoning
            )

        self.split_service.unfreeze_split(dispute.split_id)

        logger.info(f"Dispute {dispute.id} rejected by {rejected_by}")
        self._notify(dispute, DisputeEvent.REJECTED)

        return dispute

    def appeal_dispute(
        self,
        dispute_id,
        appealed_by: str,
        appeal_reason: str,
        additional_evidence: Optional[Dict[str, Any]] = None
    ) -> Dispute:
        return self.appeals.appeal(
            dispute_id,
            appealed_by=appealed_by,
            appeal_reason=appeal_reason,
            additional_evidence=additional_evidence
        )

    # ===== HELPERS =====

    def _get_for_update(self, dispute_id) -> Dispute:
        try:
            return Dispute.objects.select_for_update().get(id=dispute_id)
        except Dispute.DoesNotExist:
            raise NotFound(
                f"Dispute {dispute_id} not found",
                context={'dispute_id': str(dispute_id)}
            )

    @staticmethod
    def _ensure_decidable(dispute: Dispute, verb: str) -> None:
        if dispute.status not in (DisputeStatus.UNDER_REVIEW, DisputeStatus.OPEN):
            raise InvalidRequest(
                f"Only disputes under review or open can be {verb}",
                context={'current_status': dispute.status}
            )

    @staticmethod
    def _apply_decision(dispute: Dispute, status: str, resolution: Resolution, decided_by: str) -> None:
        dispute.status = status
        dispute.resolution = resolution.to_dict()
        dispute.resolved_by = decided_by
        dispute.resolved_at = timezone.now()
        dispute.save(update_fields=[
            'status', 'resolution', 'resolved_by', 'resolved_at', 'updated_at'
        ])

    @staticmethod
    def _as_adjustments(items) -> Optional[List[Adjustment]]:
        if items is None:
            return None
        return [
            item if isinstance(item, Adjustment) else Adjustment.from_dict(item)
            for item in items
        ]

    @staticmethod
    def _as_compensations(items) -> Optional[List[Compensation]]:
        if items is None:
            return None
        return [
            item if isinstance(item, Compensation) else Compensation.from_dict(item)
            for item in items
        ]

    @staticmethod
    def _open_dispute_exists(split_id) -> InvalidRequest:
        return InvalidRequest(
            "An open dispute already exists for this split",
            code='open_dispute_exists',
            context={'split_id': str(split_id)}
        )

    def _notify(self, dispute: Dispute, event: str) -> None:
        self.notification_service.notify_participants(dispute, event)
