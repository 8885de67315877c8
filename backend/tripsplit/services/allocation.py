"""Work out what each participant owes for a single expense."""
import logging
from typing import Iterable, Mapping, Union

from tripsplit.services.errors import InvalidExpenseError, UnknownParticipantError, ZeroShareError
from tripsplit.services.shares import (
    DefaultSharesMode,
    ExpenseEntry,
    ParticipantShare,
    TransactionOverrideMode,
)

logger = logging.getLogger(__name__)

Participants = Union[Mapping[int, ParticipantShare], Iterable[ParticipantShare]]


def index_participants(participants: Participants) -> dict[int, ParticipantShare]:
    if isinstance(participants, Mapping):
        return dict(participants)
    return {p.id: p for p in participants}


def validate_expense(expense: ExpenseEntry) -> None:
    if not expense.split_between:
        raise InvalidExpenseError(expense.id, "split_between is empty")
    if expense.amount <= 0:
        raise InvalidExpenseError(expense.id, f"amount must be positive, got {expense.amount}")
    if isinstance(expense.mode, TransactionOverrideMode):
        extra = set(expense.mode.shares) - set(expense.split_between)
        if extra:
            raise InvalidExpenseError(
                expense.id, f"transaction shares for participants outside the split: {sorted(extra)}"
            )
        bad = [pid for pid, s in expense.mode.shares.items() if s <= 0]
        if bad:
            raise InvalidExpenseError(expense.id, f"transaction shares must be positive: {sorted(bad)}")


def allocate(expense: ExpenseEntry, participants: Participants) -> dict[int, float]:
    """
    Return participant_id -> amount owed for this expense.

    Transaction shares, when present, replace the trip-level shares and
    additional amounts for this expense only. Otherwise additional amounts are
    taken off the top and the rest is pooled by default shares; if additional
    amounts exceed the expense, the pooled part is zero but the additional
    amounts still apply in full.
    """
    validate_expense(expense)
    by_id = index_participants(participants)
    for pid in expense.split_between:
        if pid not in by_id:
            raise UnknownParticipantError(pid, f"split of expense {expense.id}")

    mode = expense.mode
    if isinstance(mode, TransactionOverrideMode):
        total = sum(mode.weight(pid) for pid in expense.split_between)
        _check_total(expense, total)
        return {pid: expense.amount * mode.weight(pid) / total for pid in expense.split_between}

    if isinstance(mode, DefaultSharesMode):
        group = [by_id[pid] for pid in expense.split_between]
        total_shares = sum(p.default_shares for p in group)
        _check_total(expense, total_shares)
        total_additional = sum(p.additional_amount for p in group)
        shareable = max(expense.amount - total_additional, 0.0)
        return {
            p.id: shareable * p.default_shares / total_shares + p.additional_amount
            for p in group
        }

    raise TypeError(f"Unsupported allocation mode: {mode!r}")


def _check_total(expense: ExpenseEntry, total: int) -> None:
    if total <= 0:
        logger.error(
            "Expense %s: total shares is %s for split %s; refusing to divide",
            expense.id, total, list(expense.split_between),
        )
        raise ZeroShareError(expense.id)
