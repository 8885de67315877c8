"""Immutable snapshots the balance engine works on.

Routers build these from database rows (see snapshots.py) and hand them to the
engine, which never sees a Session or an ORM object.
"""
import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Union


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SETTLED = "settled"


# Only these move money between balances.
COUNTED_PAYMENT_STATUSES = frozenset({PaymentStatus.CONFIRMED, PaymentStatus.SETTLED})


@dataclass(frozen=True)
class ParticipantShare:
    """A participant's stake in one trip."""
    id: int
    name: str = ""
    email: str = ""
    user_id: Optional[int] = None
    default_shares: int = 1
    additional_amount: float = 0.0
    role: str = "participant"


@dataclass(frozen=True)
class DefaultSharesMode:
    """Split by trip-level shares plus each participant's additional amount."""


@dataclass(frozen=True)
class TransactionOverrideMode:
    """Split by per-expense share weights; additional amounts do not apply."""
    shares: Mapping[int, int]

    def __post_init__(self):
        object.__setattr__(self, "shares", MappingProxyType(dict(self.shares)))

    def weight(self, participant_id: int) -> int:
        return self.shares.get(participant_id, 1)


AllocationMode = Union[DefaultSharesMode, TransactionOverrideMode]


def resolve_allocation_mode(transaction_shares: Optional[Mapping[int, int]]) -> AllocationMode:
    if not transaction_shares:
        return DefaultSharesMode()
    return TransactionOverrideMode(shares=transaction_shares)


@dataclass(frozen=True)
class ExpenseEntry:
    id: int
    amount: float
    paid_by: int
    split_between: tuple
    mode: AllocationMode = field(default_factory=DefaultSharesMode)
    trip_id: Optional[int] = None
    original_amount: Optional[float] = None
    original_currency: Optional[str] = None
    exchange_rate: Optional[float] = None
    description: str = ""
    category: str = ""
    date: str = ""

    def __post_init__(self):
        # split_between is a set: drop repeats but keep the caller's order
        object.__setattr__(self, "split_between", tuple(dict.fromkeys(self.split_between)))


@dataclass(frozen=True)
class PaymentRecord:
    id: int
    from_user_id: int
    to_user_id: int
    amount: float
    status: PaymentStatus = PaymentStatus.PENDING
    trip_id: Optional[int] = None

    @property
    def counts(self) -> bool:
        return PaymentStatus(self.status) in COUNTED_PAYMENT_STATUSES


@dataclass(frozen=True)
class TripSnapshot:
    """Everything the cross-trip view needs to know about one trip."""
    id: int
    name: str
    expenses: tuple = ()
    participants: tuple = ()
    payments: tuple = ()
    created_by: Optional[int] = None
    base_currency: str = "USD"
