"""Spending breakdowns: per-category trip stats and a personal report across trips."""
import csv
import io
import logging
import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable, Optional

from tripsplit.schemas import (
    CategoryTotal,
    ParticipantSpending,
    PersonalCurrencyTotal,
    PersonalExpenseLine,
    PersonalReport,
    TripStats,
)
from tripsplit.services.allocation import allocate, index_participants
from tripsplit.services.cross_trip import resolve_participant
from tripsplit.services.errors import BalanceError
from tripsplit.services.export import bucket_of
from tripsplit.services.shares import ExpenseEntry, TripSnapshot

logger = logging.getLogger(__name__)

PRESET_DAYS = {"30days": 30, "60days": 60, "90days": 90}


def category_totals(expenses: Iterable[ExpenseEntry]) -> list[CategoryTotal]:
    """Spend per category, largest first. Uncategorised expenses count as "other"."""
    parts: dict[str, list[float]] = defaultdict(list)
    for e in expenses:
        parts[e.category or "other"].append(e.amount)
    sums = {cat: math.fsum(values) for cat, values in parts.items()}
    total = math.fsum(sums.values())
    out = [
        CategoryTotal(
            category=cat,
            amount=round(amount, 2),
            percentage=round(amount / total * 100, 1) if total > 0 else 0.0,
        )
        for cat, amount in sums.items()
    ]
    out.sort(key=lambda c: (-c.amount, c.category))
    return out


def trip_stats(trip: TripSnapshot) -> TripStats:
    paid: dict[int, list[float]] = {p.id: [] for p in trip.participants}
    for e in trip.expenses:
        paid.setdefault(e.paid_by, []).append(e.amount)
    names = {p.id: p.name for p in trip.participants}
    return TripStats(
        trip_id=trip.id,
        base_currency=trip.base_currency,
        total_expenses=round(math.fsum(e.amount for e in trip.expenses), 2),
        expense_count=len(trip.expenses),
        category_totals=category_totals(trip.expenses),
        participant_spending=[
            ParticipantSpending(participant_id=pid, name=names.get(pid, str(pid)), paid=round(math.fsum(v), 2))
            for pid, v in paid.items()
        ],
    )


def _year_before(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # 29 February
        return day.replace(year=day.year - 1, day=28)


def date_range(
    preset: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    today: Optional[date] = None,
) -> tuple[date, date]:
    """Resolve a preset ("30days", "60days", "90days", "1year", "custom") to inclusive dates."""
    today = today or date.today()
    if preset in PRESET_DAYS:
        return today - timedelta(days=PRESET_DAYS[preset]), today
    if preset == "1year":
        return _year_before(today), today
    if preset == "custom":
        start = start or today - timedelta(days=30)
        end = end or today
        if start > end:
            raise ValueError("start date is after end date")
        return start, end
    raise ValueError(f"unknown date range preset: {preset}")


def _spent_on(expense: ExpenseEntry) -> Optional[date]:
    if not expense.date:
        return None
    return date.fromisoformat(expense.date[:10])


def personal_report(
    user_id: int,
    user_email: Optional[str],
    trips: Iterable[TripSnapshot],
    start: date,
    end: date,
) -> PersonalReport:
    """
    Every expense the user paid for or shares in between start and end, with
    what they paid, their share and the difference.

    Amounts are in each expense's own currency; the share is the usual
    allocation scaled like the trip CSV export. Expenses that cannot be
    allocated are left out and counted in warning_count.
    """
    lines: list[PersonalExpenseLine] = []
    warning_count = 0
    for trip in trips:
        me = resolve_participant(trip, user_id, user_email)
        if me is None:
            continue
        by_id = index_participants(trip.participants)
        for e in trip.expenses:
            spent_on = _spent_on(e)
            if spent_on is None or not start <= spent_on <= end:
                continue
            paid_it = e.paid_by == me.id
            if not paid_it and me.id not in e.split_between:
                continue
            currency, cost = bucket_of(e, trip.base_currency)
            share = 0.0
            if me.id in e.split_between:
                try:
                    share = allocate(e, by_id)[me.id] * cost / e.amount
                except BalanceError as exc:
                    logger.warning("Leaving expense %s out of the personal report: %s", e.id, exc)
                    warning_count += 1
                    continue
            you_paid = cost if paid_it else 0.0
            lines.append(PersonalExpenseLine(
                expense_id=e.id,
                trip_id=trip.id,
                trip_name=trip.name,
                spent_on=spent_on.isoformat(),
                description=e.description,
                category=e.category,
                cost=cost,
                currency=currency,
                you_paid=you_paid,
                your_share=share,
                net=you_paid - share,
            ))

    lines.sort(key=lambda line: (line.spent_on, line.expense_id), reverse=True)

    by_currency: dict[str, list[PersonalExpenseLine]] = {}
    for line in lines:
        by_currency.setdefault(line.currency, []).append(line)
    totals = [
        PersonalCurrencyTotal(
            currency=currency,
            paid=round(math.fsum(line.you_paid for line in group), 2),
            share=round(math.fsum(line.your_share for line in group), 2),
            net=round(math.fsum(line.net for line in group), 2),
        )
        for currency, group in by_currency.items()
    ]
    return PersonalReport(start=start, end=end, lines=lines, totals=totals, warning_count=warning_count)


def _signed(value: float) -> str:
    value = round(value, 2) + 0.0  # no "-0.00"
    return f"+{value:.2f}" if value >= 0 else f"{value:.2f}"


def write_personal_csv(report: PersonalReport) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(
        ["Date", "Trip", "Description", "Category", "Cost", "Currency", "You Paid", "Your Share", "Net"]
    )
    for line in report.lines:
        writer.writerow([
            line.spent_on, line.trip_name, line.description, line.category, f"{line.cost:.2f}", line.currency,
            f"{line.you_paid:.2f}" if line.you_paid > 0 else "",
            f"{line.your_share:.2f}",
            _signed(line.net),
        ])
    writer.writerow([])
    for t in report.totals:
        writer.writerow(["", "TOTALS", "", "", "", t.currency, f"{t.paid:.2f}", f"{t.share:.2f}", _signed(t.net)])
    return output.getvalue()
