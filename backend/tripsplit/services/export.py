"""Per-currency running totals and the trip CSV export."""
import csv
import io
import math
from collections import defaultdict
from typing import Iterable, Sequence

from tripsplit.services.allocation import allocate, index_participants
from tripsplit.services.shares import ExpenseEntry, ParticipantShare


def bucket_of(expense: ExpenseEntry, base_currency: str) -> tuple[str, float]:
    """Currency and amount an expense is reported in: as entered, else the trip currency."""
    currency = expense.original_currency or base_currency
    amount = expense.original_amount if expense.original_amount else expense.amount
    return currency, amount


def expense_effects(
    expense: ExpenseEntry, participants: dict[int, ParticipantShare], base_currency: str
) -> tuple[str, dict[int, float]]:
    """Net effect of one expense on each participant, in the expense's own currency."""
    currency, bucket_amount = bucket_of(expense, base_currency)
    scale = bucket_amount / expense.amount
    effects: dict[int, float] = defaultdict(float)
    effects[expense.paid_by] += bucket_amount
    for pid, owed in allocate(expense, participants).items():
        effects[pid] -= owed * scale
    return currency, dict(effects)


def currency_totals(
    expenses: Iterable[ExpenseEntry],
    participants: Iterable[ParticipantShare],
    base_currency: str,
) -> dict[int, dict[str, float]]:
    """participant_id -> {currency: running total}; positive means owed money."""
    by_id = index_participants(participants)
    parts: dict[int, dict[str, list[float]]] = {pid: defaultdict(list) for pid in by_id}
    for expense in expenses:
        currency, effects = expense_effects(expense, by_id, base_currency)
        for pid, value in effects.items():
            parts[pid][currency].append(value)
    return {
        pid: {cur: math.fsum(values) for cur, values in buckets.items()}
        for pid, buckets in parts.items()
    }


def _cell(value: float) -> str:
    rounded = round(value, 2)
    return f"{rounded:.2f}" if rounded else ""


def write_trip_csv(
    expenses: Sequence[ExpenseEntry],
    participants: Sequence[ParticipantShare],
    base_currency: str,
    today: str = "",
) -> str:
    by_id = index_participants(participants)
    order = list(by_id)

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Date", "Description", "Category", "Cost", "Currency"] + [by_id[pid].name for pid in order])

    currencies: list[str] = []
    for e in expenses:
        currency, effects = expense_effects(e, by_id, base_currency)
        if currency not in currencies:
            currencies.append(currency)
        _, amount = bucket_of(e, base_currency)
        writer.writerow(
            [e.date, e.description, e.category, f"{amount:.2f}", currency]
            + [_cell(effects.get(pid, 0.0)) for pid in order]
        )

    writer.writerow([])
    totals = currency_totals(expenses, participants, base_currency)
    for currency in currencies:
        writer.writerow(
            [today, "Total balance", "", "", currency]
            + [_cell(totals[pid].get(currency, 0.0)) for pid in order]
        )
    return output.getvalue()
