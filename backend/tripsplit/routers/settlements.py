"""Settlements: balances and suggested payments for a trip, and the cross-trip dashboard."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tripsplit.database import get_db
from tripsplit.models import User
from tripsplit.schemas import SettlementSummary, ParticipantBalance, DetailedBalances, TripStats
from tripsplit.auth import get_current_user, get_trip_for_member, trips_for_user
from tripsplit.services.balances import compute_balances
from tripsplit.services.cross_trip import aggregate_across_trips
from tripsplit.services.errors import InvalidExpenseError, UnknownParticipantError, ZeroShareError
from tripsplit.services.progress import settlement_progress
from tripsplit.services.reports import trip_stats
from tripsplit.services.settlement_calculator import compute_settlements, round_settlements
from tripsplit.services.snapshots import trip_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.get("/trip/{trip_id}", response_model=SettlementSummary)
def get_settlements(
    trip_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trip = get_trip_for_member(db, trip_id, current_user)
    snapshot = trip_snapshot(trip)

    try:
        balances = compute_balances(snapshot.expenses, snapshot.participants, snapshot.payments, strict=True)
    except InvalidExpenseError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except (UnknownParticipantError, ZeroShareError) as exc:
        logger.error("Trip %s balances failed: %s", trip_id, exc)
        raise HTTPException(status_code=409, detail=f"Data inconsistency: {exc}")

    names = {p.id: p.name for p in snapshot.participants}
    return SettlementSummary(
        trip_id=trip.id,
        base_currency=trip.base_currency,
        balances=[
            ParticipantBalance(participant_id=pid, name=names[pid], net_balance=round(bal, 2))
            for pid, bal in balances.items()
        ],
        settlements=round_settlements(compute_settlements(balances)),
        progress=settlement_progress(sum(e.amount for e in snapshot.expenses), snapshot.payments),
    )


@router.get("/dashboard", response_model=DetailedBalances)
def get_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trips = trips_for_user(db, current_user)
    result = aggregate_across_trips(current_user.id, current_user.email, [trip_snapshot(t) for t in trips])
    if result.incomplete:
        logger.warning(
            "Dashboard for user %s is incomplete: %d trip(s) skipped, %d contribution(s) dropped",
            current_user.id, len(result.skipped_trips), result.warning_count,
        )
    return result


@router.get("/trip/{trip_id}/stats", response_model=TripStats)
def get_trip_stats(
    trip_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trip = get_trip_for_member(db, trip_id, current_user)
    return trip_stats(trip_snapshot(trip))
