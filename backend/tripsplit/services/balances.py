"""Net balance per participant from the full expense and payment history.

Balances are always recomputed from scratch; nothing here keeps a running
ledger between calls.
"""
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from tripsplit.services.allocation import Participants, allocate, index_participants
from tripsplit.services.errors import BalanceError, UnknownParticipantError
from tripsplit.services.shares import ExpenseEntry, PaymentRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedContribution:
    kind: str  # "expense" or "payment"
    reference: int
    reason: str


@dataclass
class BalanceSheet:
    balances: dict[int, float]
    skipped: list[SkippedContribution] = field(default_factory=list)

    @property
    def warning_count(self) -> int:
        return len(self.skipped)

    @property
    def complete(self) -> bool:
        return not self.skipped


def user_lookup(participants: dict) -> dict[int, int]:
    """user_id -> participant_id for participants linked to an account."""
    return {p.user_id: p.id for p in participants.values() if p.user_id is not None}


def aggregate_balances(
    expenses: Iterable[ExpenseEntry],
    participants: Participants,
    payments: Iterable[PaymentRecord] = (),
    strict: bool = True,
) -> BalanceSheet:
    """
    Fold every expense and counted payment into per-participant balances.

    strict=True raises on the first unusable expense. strict=False drops that
    expense entirely (its payer credit too, so the sheet still sums to zero)
    and records it in `skipped`.
    """
    by_id = index_participants(participants)
    entries: dict[int, list[float]] = defaultdict(list)
    skipped: list[SkippedContribution] = []

    for expense in expenses:
        try:
            if expense.paid_by not in by_id:
                raise UnknownParticipantError(expense.paid_by, f"payer of expense {expense.id}")
            owed = allocate(expense, by_id)
        except BalanceError as exc:
            if strict:
                raise
            logger.warning("Skipping expense %s: %s", expense.id, exc)
            skipped.append(SkippedContribution("expense", expense.id, str(exc)))
            continue
        entries[expense.paid_by].append(expense.amount)
        for pid, amount in owed.items():
            entries[pid].append(-amount)

    lookup = user_lookup(by_id)
    for payment in payments:
        if not payment.counts:
            continue
        from_pid = lookup.get(payment.from_user_id)
        to_pid = lookup.get(payment.to_user_id)
        if from_pid is None or to_pid is None:
            logger.warning(
                "Skipping payment %s: users %s -> %s are not both linked to participants",
                payment.id, payment.from_user_id, payment.to_user_id,
            )
            skipped.append(SkippedContribution("payment", payment.id, "unmapped user id"))
            continue
        entries[from_pid].append(payment.amount)
        entries[to_pid].append(-payment.amount)

    # fsum is exactly rounded, so the result does not depend on input order
    balances = {pid: math.fsum(entries.get(pid, ())) for pid in by_id}
    return BalanceSheet(balances=balances, skipped=skipped)


def compute_balances(
    expenses: Iterable[ExpenseEntry],
    participants: Participants,
    payments: Iterable[PaymentRecord] = (),
    strict: bool = True,
) -> dict[int, float]:
    return aggregate_balances(expenses, participants, payments, strict=strict).balances
