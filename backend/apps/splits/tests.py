"""
Tests for the split collaborator used by disputes.
"""
import uuid
from decimal import Decimal
from django.test import TestCase
from common.exceptions import InvalidRequest, NotFound
from apps.disputes.domain import Adjustment
from apps.splits.models import Split, SplitParticipant
from apps.splits.services.split_service import SplitService


class SplitServiceTestCase(TestCase):
    """Test participant lookups, freezing and adjustments."""

    def setUp(self):
        self.service = SplitService()
        self.split = Split.objects.create(
            title='Groceries',
            total_amount=Decimal('90'),
            creator='GALICE'
        )
        for wallet in ('GALICE', 'GBOB', 'GCAROL'):
            SplitParticipant.objects.create(
                split=self.split,
                wallet_address=wallet,
                amount_owed=Decimal('30')
            )

    def test_find_split(self):
        self.assertEqual(self.service.find_split(self.split.id), self.split)

        with self.assertRaises(NotFound) as ctx:
            self.service.find_split(uuid.uuid4())
        self.assertEqual(ctx.exception.code, 'not_found')

    def test_is_participant(self):
        self.assertTrue(self.service.is_participant(self.split.id, 'GBOB'))
        self.assertFalse(self.service.is_participant(self.split.id, 'GMALLORY'))
        self.assertFalse(self.service.is_participant(uuid.uuid4(), 'GBOB'))

    def test_get_participants(self):
        wallets = [p.wallet_address for p in self.service.get_participants(self.split.id)]

        self.assertEqual(wallets, ['GALICE', 'GBOB', 'GCAROL'])

    def test_freeze_and_unfreeze(self):
        dispute_id = uuid.uuid4()

        self.service.freeze_split(self.split.id, dispute_id)
        self.split.refresh_from_db()
        self.assertTrue(self.split.is_frozen)
        self.assertEqual(self.split.frozen_by_dispute_id, dispute_id)
        self.assertIsNotNone(self.split.frozen_at)

        appeal_id = uuid.uuid4()
        self.service.freeze_split(self.split.id, appeal_id)
        self.split.refresh_from_db()
        self.assertEqual(self.split.frozen_by_dispute_id, appeal_id)

        self.service.unfreeze_split(self.split.id)
        self.split.refresh_from_db()
        self.assertFalse(self.split.is_frozen)
        self.assertIsNone(self.split.frozen_by_dispute_id)
        self.assertIsNone(self.split.frozen_at)

    def test_freeze_missing_split(self):
        with self.assertRaises(NotFound):
            self.service.freeze_split(uuid.uuid4(), uuid.uuid4())

    def test_apply_dispute_adjustments(self):
        updated = self.service.apply_dispute_adjustments(self.split.id, [
            Adjustment('GALICE', Decimal('30'), Decimal('20')),
            Adjustment('GBOB', Decimal('30'), Decimal('40')),
        ])

        self.assertEqual(len(updated), 2)
        owed = dict(
            SplitParticipant.objects.filter(split=self.split).values_list('wallet_address', 'amount_owed')
        )
        self.assertEqual(owed, {
            'GALICE': Decimal('20'),
            'GBOB': Decimal('40'),
            'GCAROL': Decimal('30'),
        })

    def test_adjustment_for_non_participant_rolls_back(self):
        with self.assertRaises(InvalidRequest):
            self.service.apply_dispute_adjustments(self.split.id, [
                Adjustment('GALICE', Decimal('30'), Decimal('0')),
                Adjustment('GMALLORY', Decimal('0'), Decimal('30')),
            ])

        alice = SplitParticipant.objects.get(split=self.split, wallet_address='GALICE')
        self.assertEqual(alice.amount_owed, Decimal('30'))
