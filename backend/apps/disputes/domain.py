"""
Dispute value types: evidence bundle, resolution record, lifecycle events.
Stored on the Dispute model as JSON via to_dict()/from_dict().
"""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional


class DisputeEvent:
    """Lifecycle events fanned out to split participants."""
    CREATED = 'dispute_created'
    EVIDENCE_ADDED = 'evidence_added'
    UNDER_REVIEW = 'under_review'
    RESOLVED = 'dispute_resolved'
    REJECTED = 'dispute_rejected'
    APPEALED = 'dispute_appealed'


@dataclass
class Evidence:
    """
    Supporting material attached to a dispute.

    Merge rules:
    - merged_with(): images/receipts append, description replaced only
      when the new one is non-empty, metadata untouched.
    - overlaid_with(): each field the caller supplied replaces the
      existing one (appeal evidence).
    """
    images: List[str] = field(default_factory=list)
    receipts: List[str] = field(default_factory=list)
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    FIELDS = ('images', 'receipts', 'description', 'metadata')

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Evidence':
        data = data or {}
        return cls(
            images=list(data.get('images') or []),
            receipts=list(data.get('receipts') or []),
            description=data.get('description'),
            metadata=data.get('metadata'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'images': list(self.images),
            'receipts': list(self.receipts),
        }
        if self.description is not None:
            data['description'] = self.description
        if self.metadata is not None:
            data['metadata'] = self.metadata
        return data

    def merged_with(self, new: 'Evidence') -> 'Evidence':
        return Evidence(
            images=self.images + new.images,
            receipts=self.receipts + new.receipts,
            description=new.description or self.description,
            metadata=self.metadata,
        )

    def overlaid_with(self, supplied: Optional[Dict[str, Any]]) -> 'Evidence':
        """
        Args:
            supplied: Raw evidence fields; keys absent or None are not supplied
        """
        overrides = {
            key: value for key, value in (supplied or {}).items()
            if key in self.FIELDS and value is not None
        }
        if 'images' in overrides:
            overrides['images'] = list(overrides['images'])
        if 'receipts' in overrides:
            overrides['receipts'] = list(overrides['receipts'])
        return replace(self, **overrides)


@dataclass(frozen=True)
class Adjustment:
    participant_id: str
    original_amount: Decimal
    new_amount: Decimal

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Adjustment':
        return cls(
            participant_id=data['participant_id'],
            original_amount=Decimal(str(data['original_amount'])),
            new_amount=Decimal(str(data['new_amount'])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'participant_id': self.participant_id,
            'original_amount': str(self.original_amount),
            'new_amount': str(self.new_amount),
        }


@dataclass(frozen=True)
class Compensation:
    participant_id: str
    amount: Decimal
    reason: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Compensation':
        return cls(
            participant_id=data['participant_id'],
            amount=Decimal(str(data['amount'])),
            reason=data['reason'],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'participant_id': self.participant_id,
            'amount': str(self.amount),
            'reason': self.reason,
        }


@dataclass(frozen=True)
class Resolution:
    """Decision recorded once, at resolve or reject."""
    decision: str
    reasoning: str
    adjustments: Optional[List[Adjustment]] = None
    compensations: Optional[List[Compensation]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Resolution':
        adjustments = data.get('adjustments')
        compensations = data.get('compensations')
        return cls(
            decision=data['decision'],
            reasoning=data['reasoning'],
            adjustments=[Adjustment.from_dict(item) for item in adjustments] if adjustments is not None else None,
            compensations=[Compensation.from_dict(item) for item in compensations] if compensations is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {'decision': self.decision, 'reasoning': self.reasoning}
        if self.adjustments is not None:
            data['adjustments'] = [adjustment.to_dict() for adjustment in self.adjustments]
        if self.compensations is not None:
            data['compensations'] = [compensation.to_dict() for compensation in self.compensations]
        return data
