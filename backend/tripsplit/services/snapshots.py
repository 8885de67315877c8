"""Turn database rows into the frozen snapshots the engine consumes."""
from tripsplit.models import Expense, Participant, Payment, Trip
from tripsplit.services.shares import (
    ExpenseEntry,
    ParticipantShare,
    PaymentRecord,
    PaymentStatus,
    TripSnapshot,
    resolve_allocation_mode,
)


def participant_share(p: Participant) -> ParticipantShare:
    return ParticipantShare(
        id=p.id,
        name=p.name,
        email=p.email or "",
        user_id=p.user_id,
        default_shares=p.default_shares,
        additional_amount=p.additional_amount or 0.0,
        role=p.role,
    )


def expense_entry(e: Expense) -> ExpenseEntry:
    # JSON columns come back with string keys
    shares = {int(k): int(v) for k, v in (e.transaction_shares or {}).items()}
    return ExpenseEntry(
        id=e.id,
        trip_id=e.trip_id,
        amount=e.amount,
        paid_by=e.paid_by,
        split_between=tuple(p.id for p in e.split_between),
        mode=resolve_allocation_mode(shares),
        original_amount=e.original_amount,
        original_currency=e.original_currency,
        exchange_rate=e.exchange_rate,
        description=e.description or "",
        category=e.category or "",
        date=e.spent_on.strftime("%Y-%m-%d") if e.spent_on else "",
    )


def payment_record(p: Payment) -> PaymentRecord:
    return PaymentRecord(
        id=p.id,
        trip_id=p.trip_id,
        from_user_id=p.from_user_id,
        to_user_id=p.to_user_id,
        amount=p.amount,
        status=PaymentStatus(p.status),
    )


def trip_snapshot(trip: Trip) -> TripSnapshot:
    return TripSnapshot(
        id=trip.id,
        name=trip.name,
        created_by=trip.created_by,
        base_currency=trip.base_currency,
        participants=tuple(participant_share(p) for p in trip.participants),
        expenses=tuple(expense_entry(e) for e in trip.expenses),
        payments=tuple(payment_record(p) for p in trip.payments),
    )
