"""Who owes me, and whom do I owe, across every trip I am part of."""
import logging
import math
from typing import Iterable, Optional

from tripsplit.schemas import DetailedBalances, PersonBalance, TripAmount
from tripsplit.services.balances import aggregate_balances
from tripsplit.services.settlement_calculator import EPSILON
from tripsplit.services.shares import ParticipantShare, TripSnapshot

logger = logging.getLogger(__name__)


def resolve_participant(
    trip: TripSnapshot, user_id: int, user_email: Optional[str]
) -> Optional[ParticipantShare]:
    """Find the user's participant row: linked account, then email, then trip creator."""
    for p in trip.participants:
        if p.user_id is not None and p.user_id == user_id:
            return p
    if user_email:
        email = user_email.strip().lower()
        for p in trip.participants:
            if p.user_id is None and p.email and p.email.strip().lower() == email:
                return p
    if trip.created_by == user_id:
        admins = [p for p in trip.participants if p.user_id is None and p.role == "admin"]
        if len(admins) == 1:
            return admins[0]
    return None


def _person_key(trip: TripSnapshot, participant: ParticipantShare) -> tuple:
    # participant ids are per trip; the same person is recognised across trips
    # by linked account, then by email
    if participant.user_id is not None:
        return ("user", participant.user_id)
    if participant.email:
        return ("email", participant.email.strip().lower())
    return ("participant", trip.id, participant.id)


def _round_breakdown(amounts: list[float]) -> tuple[int, list[int]]:
    """Round to cents so the parts still add up to the rounded total (largest remainder)."""
    total = round(math.fsum(amounts) * 100)
    exact = [a * 100 for a in amounts]
    cents = [math.floor(x) for x in exact]
    short = total - sum(cents)
    by_remainder = sorted(range(len(exact)), key=lambda k: (-(exact[k] - cents[k]), k))
    for k in by_remainder[:max(short, 0)]:
        cents[k] += 1
    return total, cents


class _Counterparty:
    def __init__(self, participant: ParticipantShare):
        self.participant = participant
        self.trips: list[tuple[TripSnapshot, float]] = []

    def add(self, trip: TripSnapshot, amount: float):
        self.trips.append((trip, amount))

    def to_schema(self) -> PersonBalance:
        p = self.participant
        total, cents = _round_breakdown([a for _, a in self.trips])
        return PersonBalance(
            participant_id=p.id,
            participant_name=p.name,
            participant_email=p.email,
            total_amount=total / 100,
            trips=[
                TripAmount(trip_id=t.id, trip_name=t.name, amount=c / 100)
                for (t, _), c in zip(self.trips, cents)
            ],
        )


def aggregate_across_trips(
    user_id: int,
    user_email: Optional[str],
    trips: Iterable[TripSnapshot],
) -> DetailedBalances:
    """
    Merge per-trip balances into per-counterparty totals for one user.

    Each trip is computed leniently. Trips where the user cannot be found are
    skipped and counted, and the result is flagged incomplete if anything was
    left out.
    """
    owed_by_me: dict[tuple, _Counterparty] = {}
    owed_to_me: dict[tuple, _Counterparty] = {}
    skipped_trips: list[int] = []
    warning_count = 0

    for trip in trips:
        if not trip.expenses or not trip.participants:
            continue
        me = resolve_participant(trip, user_id, user_email)
        if me is None:
            logger.info("User %s is not a participant of trip %s; skipping", user_id, trip.id)
            skipped_trips.append(trip.id)
            continue

        sheet = aggregate_balances(trip.expenses, trip.participants, trip.payments, strict=False)
        warning_count += sheet.warning_count
        my_balance = sheet.balances.get(me.id, 0.0)
        logger.debug("Trip %s: balances=%s, user participant=%s", trip.id, sheet.balances, me.id)

        for other in trip.participants:
            if other.id == me.id:
                continue
            their_balance = sheet.balances.get(other.id, 0.0)
            if my_balance < 0 < their_balance:
                target = owed_by_me
                amount = min(-my_balance, their_balance)
            elif their_balance < 0 < my_balance:
                target = owed_to_me
                amount = min(my_balance, -their_balance)
            else:
                continue
            if amount <= EPSILON:
                continue
            target.setdefault(_person_key(trip, other), _Counterparty(other)).add(trip, amount)

    return DetailedBalances(
        owed_by_me=[c.to_schema() for c in owed_by_me.values()],
        owed_to_me=[c.to_schema() for c in owed_to_me.values()],
        skipped_trips=skipped_trips,
        warning_count=warning_count,
        incomplete=bool(skipped_trips or warning_count),
    )
