# apps/customers/values.py
"""Typed replacements for the loose priority/payment JSON blobs."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from core.constants import PRIORITY_WEIGHTS, TWO_PLACES, PaymentModes
from core.exceptions import InvalidPaymentMode


@dataclass(frozen=True)
class PriorityFlags:
    senior_citizen: bool = False
    pwd: bool = False
    pregnant: bool = False

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        unknown = set(data) - set(PRIORITY_WEIGHTS)
        if unknown:
            raise ValueError(f"Unknown priority flags: {sorted(unknown)}")
        for name, value in data.items():
            if not isinstance(value, bool):
                raise ValueError(f"Priority flag {name} must be a boolean")
        return cls(**data)

    def as_dict(self):
        return {
            'senior_citizen': self.senior_citizen,
            'pwd': self.pwd,
            'pregnant': self.pregnant,
        }

    @property
    def weight(self) -> int:
        """Ordering weight: the single highest flag set"""
        return max(
            (PRIORITY_WEIGHTS[name] for name, on in self.as_dict().items() if on),
            default=0,
        )

    @property
    def score(self) -> int:
        """Reported priority score: sum of every flag set"""
        return sum(PRIORITY_WEIGHTS[name] for name, on in self.as_dict().items() if on)

    @property
    def is_priority(self) -> bool:
        return self.weight > 0


def normalize_payment_mode(value) -> Optional[str]:
    """Accept 'Bank Transfer', 'bank-transfer', 'BANK_TRANSFER' etc."""
    if value in (None, ''):
        return None
    mode = str(value).strip().lower().replace('-', '_').replace(' ', '_')
    if mode not in PaymentModes.values:
        raise InvalidPaymentMode(value)
    return mode


@dataclass(frozen=True)
class PaymentInfo:
    amount: Optional[Decimal] = None
    mode: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        amount = data.get('amount')
        if amount not in (None, ''):
            try:
                amount = Decimal(str(amount)).quantize(TWO_PLACES)
            except InvalidOperation:
                raise ValueError(f"Invalid payment amount: {amount!r}")
            if amount < 0:
                raise ValueError("Payment amount cannot be negative")
        else:
            amount = None
        return cls(amount=amount, mode=normalize_payment_mode(data.get('mode')))

    def as_dict(self):
        return {
            'amount': None if self.amount is None else str(self.amount),
            'mode': self.mode,
        }
