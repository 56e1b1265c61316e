"""
Comprehensive tests for DisputeService.
Tests creation, evidence, status updates, resolution and rejection.
"""
from decimal import Decimal
from unittest import mock
import uuid
from django.db import transaction, IntegrityError
from django.db.models import QuerySet
from common.exceptions import Forbidden, InvalidRequest, NotFound
from apps.disputes.domain import Adjustment, DisputeEvent
from apps.disputes.models import Dispute, DisputeStatus, DisputeStatusLog, DisputeType
from apps.disputes.services.dispute_service import DisputeService
from apps.disputes.services.state_machine import InvalidTransition
from apps.splits.models import SplitParticipant
from apps.splits.services.split_service import split_service
from apps.disputes.tests.base import BaseDisputeTestCase, P1, P2, OUTSIDER, ADMIN


class CreateDisputeTestCase(BaseDisputeTestCase):
    """Test dispute creation."""

    def test_create_freezes_split_and_notifies(self):
        dispute = self.create_dispute(
            evidence={'images': ['ipfs://img1'], 'description': 'Photo of the bill'}
        )

        self.assertEqual(dispute.status, DisputeStatus.OPEN)
        self.assertEqual(dispute.raised_by, P1)
        self.assertEqual(dispute.dispute_type, DisputeType.INCORRECT_AMOUNT)
        self.assertEqual(dispute.evidence, {
            'images': ['ipfs://img1'],
            'receipts': [],
            'description': 'Photo of the bill',
        })
        self.assertIsNone(dispute.resolution)
        self.assertEqual(dispute.appeal_count, 0)

        split = self.refresh(self.split)
        self.assertTrue(split.is_frozen)
        self.assertEqual(split.frozen_by_dispute_id, dispute.id)

        self.assertEqual(self.sent_events(), {
            (P1, DisputeEvent.CREATED),
            (P2, DisputeEvent.CREATED),
        })

        log = DisputeStatusLog.objects.get(dispute=dispute)
        self.assertEqual(log.from_status, '')
        self.assertEqual(log.to_status, DisputeStatus.OPEN)

    def test_second_open_dispute_on_same_split_fails(self):
        self.create_dispute()

        with self.assertRaises(InvalidRequest) as ctx:
            self.create_dispute(raised_by=P2)

        self.assertEqual(ctx.exception.code, 'open_dispute_exists')
        self.assertEqual(Dispute.objects.filter(split_id=self.split.id).count(), 1)

    def test_new_dispute_allowed_once_previous_is_closed(self):
        first = self.create_dispute()
        self.service.reject_dispute(first.id, reasoning='No evidence', rejected_by=ADMIN)

        second = self.create_dispute(raised_by=P2)

        self.assertEqual(second.status, DisputeStatus.OPEN)
        self.assertEqual(self.refresh(self.split).frozen_by_dispute_id, second.id)

    def test_non_participant_cannot_create(self):
        with self.assertRaises(Forbidden):
            self.create_dispute(raised_by=OUTSIDER)

        self.assertFalse(Dispute.objects.exists())
        self.assertFalse(self.refresh(self.split).is_frozen)

    def test_unknown_split(self):
        with self.assertRaises(NotFound):
            self.service.create_dispute(
                split_id=uuid.uuid4(),
                raised_by=P1,
                dispute_type=DisputeType.OTHER,
                description='Missing'
            )

    def test_constraint_catches_concurrent_open_dispute(self):
        """A create that passes the early check still loses to the unique constraint."""
        self.create_dispute()

        with mock.patch.object(QuerySet, 'exists', return_value=False):
            fake_splits = mock.Mock()
            fake_splits.is_participant.return_value = True
            service = DisputeService(split_service=fake_splits, notification_service=mock.Mock())

            with self.assertRaises(InvalidRequest) as ctx:
                service.create_dispute(
                    split_id=self.split.id,
                    raised_by=P2,
                    dispute_type=DisputeType.OTHER,
                    description='Racing create'
                )

        self.assertEqual(ctx.exception.code, 'open_dispute_exists')
        fake_splits.freeze_split.assert_not_called()
        self.assertEqual(Dispute.objects.filter(split_id=self.split.id).count(), 1)

    def test_store_rejects_two_open_disputes(self):
        self.create_dispute()

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Dispute.objects.create(
                    split_id=self.split.id,
                    raised_by=P2,
                    dispute_type=DisputeType.OTHER,
                    description='Bypassing the service'
                )


class EvidenceTestCase(BaseDisputeTestCase):
    """Test evidence submission."""

    def test_evidence_accumulates(self):
        dispute = self.create_dispute(
            evidence={'images': ['img1'], 'metadata': {'source': 'app'}}
        )

        self.service.add_evidence(dispute.id, {'images': ['img2'], 'receipts': ['r1']}, P1)
        dispute = self.service.add_evidence(
            dispute.id, {'images': ['img1'], 'description': 'Second look'}, P1
        )

        self.assertEqual(dispute.evidence['images'], ['img1', 'img2', 'img1'])
        self.assertEqual(dispute.evidence['receipts'], ['r1'])
        self.assertEqual(dispute.evidence['description'], 'Second look')
        self.assertEqual(dispute.evidence['metadata'], {'source': 'app'})
        self.assertIn((P2, DisputeEvent.EVIDENCE_ADDED), self.sent_events())

    def test_description_kept_when_not_supplied(self):
        dispute = self.create_dispute(evidence={'description': 'Original'})

        dispute = self.service.add_evidence(dispute.id, {'receipts': ['r1']}, P1)

        self.assertEqual(dispute.evidence['description'], 'Original')

    def test_metadata_not_changed_by_evidence(self):
        dispute = self.create_dispute()

        dispute = self.service.add_evidence(dispute.id, {'metadata': {'x': 1}}, P1)

        self.assertNotIn('metadata', dispute.evidence)

    def test_only_raiser_while_open(self):
        dispute = self.create_dispute()

        with self.assertRaises(Forbidden):
            self.service.add_evidence(dispute.id, {'images': ['img']}, P2)

        self.assertIsNone(self.refresh(dispute).evidence)

    def test_other_party_allowed_under_review(self):
        dispute = self.create_dispute()
        self.service.update_status(dispute.id, DisputeStatus.UNDER_REVIEW)

        dispute = self.service.add_evidence(dispute.id, {'images': ['counter']}, P2)

        self.assertEqual(dispute.evidence['images'], ['counter'])

    def test_missing_dispute(self):
        with self.assertRaises(NotFound):
            self.service.add_evidence(uuid.uuid4(), {'images': ['img']}, P1)


class UpdateStatusTestCase(BaseDisputeTestCase):
    """Test the generic status update."""

    def test_open_to_under_review_and_back(self):
        dispute = self.create_dispute()
        notifications_before = len(self.sent_events())

        dispute = self.service.update_status(dispute.id, DisputeStatus.UNDER_REVIEW, changed_by=ADMIN)

        self.assertEqual(dispute.status, DisputeStatus.UNDER_REVIEW)
        self.assertIn((P1, DisputeEvent.UNDER_REVIEW), self.sent_events())
        self.assertIn((P2, DisputeEvent.UNDER_REVIEW), self.sent_events())
        self.assertGreater(len(self.sent_events()), notifications_before)

        with self.assertRaises(InvalidRequest) as ctx:
            self.service.update_status(dispute.id, DisputeStatus.OPEN)

        self.assertIsInstance(ctx.exception, InvalidTransition)
        self.assertEqual(ctx.exception.context['current_status'], DisputeStatus.UNDER_REVIEW)
        self.assertEqual(ctx.exception.context['requested_status'], DisputeStatus.OPEN)

    def test_resolved_to_rejected_fails(self):
        dispute = self.create_resolved_dispute()

        with self.assertRaises(InvalidTransition):
            self.service.update_status(dispute.id, DisputeStatus.REJECTED)

        self.assertEqual(self.refresh(dispute).status, DisputeStatus.RESOLVED)

    def test_open_to_rejected_requires_reject(self):
        dispute = self.create_dispute()
        notifications_before = len(self.sent_events())

        with self.assertRaises(InvalidRequest) as ctx:
            self.service.update_status(dispute.id, DisputeStatus.REJECTED)

        self.assertEqual(ctx.exception.code, 'decision_required')
        self.assertEqual(ctx.exception.context['requested_status'], DisputeStatus.REJECTED)
        dispute = self.refresh(dispute)
        self.assertEqual(dispute.status, DisputeStatus.OPEN)
        self.assertIsNone(dispute.resolution)
        self.assertTrue(self.refresh(self.split).is_frozen)
        self.assertEqual(len(self.sent_events()), notifications_before)

        dispute = self.service.reject_dispute(dispute.id, reasoning='Duplicate', rejected_by=ADMIN)
        self.assertIsNotNone(dispute.resolved_at)
        self.assertFalse(self.refresh(self.split).is_frozen)

    def test_under_review_to_resolved_requires_resolve(self):
        dispute = self.create_dispute()
        self.service.update_status(dispute.id, DisputeStatus.UNDER_REVIEW, changed_by=ADMIN)

        with self.assertRaises(InvalidRequest) as ctx:
            self.service.update_status(dispute.id, DisputeStatus.RESOLVED, changed_by=ADMIN)

        self.assertEqual(ctx.exception.code, 'decision_required')
        dispute = self.refresh(dispute)
        self.assertEqual(dispute.status, DisputeStatus.UNDER_REVIEW)
        self.assertIsNone(dispute.resolved_by)
        self.assertEqual(DisputeStatusLog.objects.filter(dispute=dispute).count(), 2)
        self.assertTrue(self.refresh(self.split).is_frozen)

    def test_illegal_edge_reported_before_decision_target(self):
        dispute = self.create_dispute()

        with self.assertRaises(InvalidTransition):
            self.service.update_status(dispute.id, DisputeStatus.RESOLVED)

    def test_missing_dispute(self):
        with self.assertRaises(NotFound):
            self.service.update_status(uuid.uuid4(), DisputeStatus.UNDER_REVIEW)


class ResolveDisputeTestCase(BaseDisputeTestCase):
    """Test resolution and rejection."""

    def setUp(self):
        super().setUp()
        self.splits = mock.Mock(wraps=split_service)
        self.service = DisputeService(split_service=self.splits)

    def test_resolve_under_review_applies_adjustments(self):
        dispute = self.create_dispute()
        self.service.update_status(dispute.id, DisputeStatus.UNDER_REVIEW)

        dispute = self.service.resolve_dispute(
            dispute.id,
            decision='split 60/40',
            reasoning='Receipt shows the extra dish',
            resolved_by=ADMIN,
            adjustments=[{'participant_id': P1, 'original_amount': 100, 'new_amount': 60}]
        )

        self.assertEqual(dispute.status, DisputeStatus.RESOLVED)
        self.assertEqual(dispute.resolved_by, ADMIN)
        self.assertIsNotNone(dispute.resolved_at)
        self.assertEqual(dispute.resolution['decision'], 'split 60/40')
        self.assertEqual(dispute.resolution['adjustments'], [
            {'participant_id': P1, 'original_amount': '100', 'new_amount': '60'}
        ])

        self.assertFalse(self.refresh(self.split).is_frozen)
        self.splits.unfreeze_split.assert_called_once_with(dispute.split_id)
        self.splits.apply_dispute_adjustments.assert_called_once_with(
            dispute.split_id,
            [Adjustment(participant_id=P1, original_amount=Decimal('100'), new_amount=Decimal('60'))]
        )

        participant = SplitParticipant.objects.get(split=self.split, wallet_address=P1)
        self.assertEqual(participant.amount_owed, Decimal('60'))
        self.assertIn((P2, DisputeEvent.RESOLVED), self.sent_events())

    def test_resolve_open_dispute_directly(self):
        dispute = self.create_dispute()

        dispute = self.service.resolve_dispute(
            dispute.id, decision='Refund', reasoning='Clear error', resolved_by=ADMIN
        )

        self.assertEqual(dispute.status, DisputeStatus.RESOLVED)
        self.assertNotIn('adjustments', dispute.resolution)
        self.splits.apply_dispute_adjustments.assert_not_called()

    def test_empty_adjustments_are_not_applied(self):
        dispute = self.create_dispute()

        self.service.resolve_dispute(
            dispute.id, decision='No change', reasoning='Amounts were right',
            resolved_by=ADMIN, adjustments=[]
        )

        self.splits.apply_dispute_adjustments.assert_not_called()

    def test_compensations_recorded(self):
        dispute = self.create_dispute()

        dispute = self.service.resolve_dispute(
            dispute.id, decision='Compensate', reasoning='Late payment',
            resolved_by=ADMIN,
            compensations=[{'participant_id': P2, 'amount': '5.5', 'reason': 'Fees'}]
        )

        self.assertEqual(
            dispute.get_resolution().compensations[0].amount,
            Decimal('5.5')
        )

    def test_adjustment_for_non_participant_rejected_before_mutation(self):
        dispute = self.create_dispute()

        with self.assertRaises(InvalidRequest):
            self.service.resolve_dispute(
                dispute.id, decision='x', reasoning='y', resolved_by=ADMIN,
                adjustments=[{'participant_id': OUTSIDER, 'original_amount': 0, 'new_amount': 10}]
            )

        dispute = self.refresh(dispute)
        self.assertEqual(dispute.status, DisputeStatus.OPEN)
        self.assertIsNone(dispute.resolution)
        self.assertTrue(self.refresh(self.split).is_frozen)

    def test_cannot_resolve_twice(self):
        dispute = self.create_resolved_dispute()

        with self.assertRaises(InvalidRequest) as ctx:
            self.service.resolve_dispute(dispute.id, decision='x', reasoning='y', resolved_by=ADMIN)

        self.assertEqual(ctx.exception.context['current_status'], DisputeStatus.RESOLVED)

    def test_reject(self):
        dispute = self.create_dispute()

        dispute = self.service.reject_dispute(dispute.id, reasoning='No evidence', rejected_by=ADMIN)

        self.assertEqual(dispute.status, DisputeStatus.REJECTED)
        self.assertEqual(dispute.resolution, {'decision': 'rejected', 'reasoning': 'No evidence'})
        self.assertEqual(dispute.resolved_by, ADMIN)
        self.assertFalse(self.refresh(self.split).is_frozen)
        self.splits.apply_dispute_adjustments.assert_not_called()
        self.assertIn((P1, DisputeEvent.REJECTED), self.sent_events())

    def test_cannot_reject_appealed_dispute(self):
        dispute = self.create_resolved_dispute()
        appeal = self.service.appeal_dispute(dispute.id, appealed_by=P1, appeal_reason='Unfair')

        with self.assertRaises(InvalidRequest):
            self.service.reject_dispute(appeal.id, reasoning='x', rejected_by=ADMIN)

    def test_resolution_fields_set_only_when_decided(self):
        open_dispute = self.create_dispute()
        other_split = self.create_split()
        resolved = self.create_resolved_dispute(split=other_split)

        for dispute in Dispute.objects.all():
            decided = dispute.status in (DisputeStatus.RESOLVED, DisputeStatus.REJECTED)
            self.assertEqual(dispute.resolution is not None, decided)
            self.assertEqual(dispute.resolved_by is not None, decided)
            self.assertEqual(dispute.resolved_at is not None, decided)

        self.assertIsNone(self.refresh(open_dispute).resolved_at)
        self.assertIsNotNone(self.refresh(resolved).resolved_at)

    def test_notification_failure_does_not_fail_resolution(self):
        dispute = self.create_dispute()

        with mock.patch('apps.notifications.backends.LocmemBackend.send', side_effect=RuntimeError('down')):
            dispute = self.service.resolve_dispute(
                dispute.id, decision='ok', reasoning='ok', resolved_by=ADMIN
            )

        self.assertEqual(self.refresh(dispute).status, DisputeStatus.RESOLVED)
        self.assertFalse(self.refresh(self.split).is_frozen)


class ListDisputesTestCase(BaseDisputeTestCase):
    """Test listing and filtering."""

    def setUp(self):
        super().setUp()
        self.first = self.backdate(self.create_dispute(), days=1)
        self.other_split = self.create_split()
        self.second = self.create_dispute(
            split=self.other_split, raised_by=P2, dispute_type=DisputeType.MISSING_PAYMENT
        )
        self.service.update_status(self.second.id, DisputeStatus.UNDER_REVIEW)

    def test_newest_first(self):
        result = self.service.list_disputes()

        self.assertEqual(result['total'], 2)
        self.assertEqual([d.id for d in result['disputes']], [self.second.id, self.first.id])

    def test_filters(self):
        self.assertEqual(
            [d.id for d in self.service.list_disputes(split_id=self.split.id)['disputes']],
            [self.first.id]
        )
        self.assertEqual(self.service.list_disputes(status=DisputeStatus.UNDER_REVIEW)['total'], 1)
        self.assertEqual(self.service.list_disputes(raised_by=P2)['total'], 1)
        self.assertEqual(
            self.service.list_disputes(dispute_type=DisputeType.WRONG_ITEMS)['total'], 0
        )

    def test_pagination_keeps_total(self):
        result = self.service.list_disputes(page=2, limit=1)

        self.assertEqual(result['total'], 2)
        self.assertEqual([d.id for d in result['disputes']], [self.first.id])

        self.assertEqual(self.service.list_disputes(page=3, limit=1)['disputes'], [])

    def test_invalid_paging(self):
        with self.assertRaises(InvalidRequest):
            self.service.list_disputes(page=0)
        with self.assertRaises(InvalidRequest):
            self.service.list_disputes(limit=101)

    def test_get_dispute(self):
        self.assertEqual(self.service.get_dispute(self.first.id), self.first)
        with self.assertRaises(NotFound):
            self.service.get_dispute(uuid.uuid4())
