"""Trips: create, list, get, update, delete; manage participants and their shares."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tripsplit.database import get_db
from tripsplit.models import User, Trip, Participant, Expense
from tripsplit.schemas import (
    TripCreate, TripUpdate, TripResponse, ParticipantCreate, ParticipantUpdate, ParticipantResponse,
)
from tripsplit.auth import get_current_user, get_trip_for_member

router = APIRouter(prefix="/trips", tags=["trips"])


def _trip_response(trip: Trip) -> TripResponse:
    return TripResponse(
        id=trip.id,
        name=trip.name,
        description=trip.description,
        base_currency=trip.base_currency,
        created_by=trip.created_by,
        created_at=trip.created_at,
        participants=[ParticipantResponse.model_validate(p) for p in trip.participants],
    )


def _get_participant(trip: Trip, participant_id: int) -> Participant:
    participant = next((p for p in trip.participants if p.id == participant_id), None)
    if not participant:
        raise HTTPException(status_code=404, detail="Participant not in this trip")
    return participant


@router.get("", response_model=list[TripResponse])
def list_trips(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trips = (
        db.query(Trip)
        .filter((Trip.created_by == current_user.id) | Trip.participants.any(Participant.user_id == current_user.id))
        .order_by(Trip.id)
        .all()
    )
    return [_trip_response(t) for t in trips]


@router.post("", response_model=TripResponse)
def create_trip(
    data: TripCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trip = Trip(
        name=data.name,
        description=data.description,
        base_currency=data.base_currency.upper(),
        created_by=current_user.id,
    )
    trip.participants = [
        Participant(
            user_id=current_user.id,
            name=current_user.name or current_user.email,
            email=current_user.email,
            default_shares=data.default_shares,
            role="admin",
        )
    ]
    db.add(trip)
    db.commit()
    db.refresh(trip)
    return _trip_response(trip)


@router.get("/{trip_id}", response_model=TripResponse)
def get_trip(
    trip_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _trip_response(get_trip_for_member(db, trip_id, current_user))


@router.patch("/{trip_id}", response_model=TripResponse)
def update_trip(
    trip_id: int,
    data: TripUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trip = get_trip_for_member(db, trip_id, current_user)
    if data.name is not None:
        trip.name = data.name
    if data.description is not None:
        trip.description = data.description
    db.commit()
    db.refresh(trip)
    return _trip_response(trip)


@router.delete("/{trip_id}", status_code=204)
def delete_trip(
    trip_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trip = get_trip_for_member(db, trip_id, current_user)
    if trip.created_by != current_user.id:
        raise HTTPException(status_code=403, detail="Only the trip creator can delete it")
    db.delete(trip)
    db.commit()


@router.post("/{trip_id}/participants", response_model=TripResponse)
def add_participant(
    trip_id: int,
    data: ParticipantCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trip = get_trip_for_member(db, trip_id, current_user)
    email = data.email.lower() if data.email else None
    if email and any(p.email == email for p in trip.participants):
        raise HTTPException(status_code=400, detail="Participant already in trip")
    user = db.query(User).filter(User.email == email).first() if email else None
    if user and any(p.user_id == user.id for p in trip.participants):
        raise HTTPException(status_code=400, detail="Participant already in trip")
    trip.participants.append(Participant(
        name=data.name,
        email=email,
        user_id=user.id if user else None,
        default_shares=data.default_shares,
        additional_amount=data.additional_amount,
    ))
    db.commit()
    db.refresh(trip)
    return _trip_response(trip)


@router.patch("/{trip_id}/participants/{participant_id}", response_model=ParticipantResponse)
def update_participant(
    trip_id: int,
    participant_id: int,
    data: ParticipantUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trip = get_trip_for_member(db, trip_id, current_user)
    participant = _get_participant(trip, participant_id)
    if data.name is not None:
        participant.name = data.name
    if data.email is not None:
        email = data.email.lower()
        others = [p for p in trip.participants if p.id != participant.id]
        if any(p.email == email for p in others):
            raise HTTPException(status_code=400, detail="Participant already in trip")
        user = db.query(User).filter(User.email == email).first()
        if user and any(p.user_id == user.id for p in others):
            raise HTTPException(status_code=400, detail="Participant already in trip")
        participant.email = email
        if participant.user_id is None and user:
            participant.user_id = user.id
    if data.default_shares is not None:
        participant.default_shares = data.default_shares
    if data.additional_amount is not None:
        participant.additional_amount = data.additional_amount
    db.commit()
    db.refresh(participant)
    return ParticipantResponse.model_validate(participant)


@router.delete("/{trip_id}/participants/{participant_id}", response_model=TripResponse)
def remove_participant(
    trip_id: int,
    participant_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trip = get_trip_for_member(db, trip_id, current_user)
    participant = _get_participant(trip, participant_id)
    if participant.user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot remove yourself")
    in_use = any(
        e.paid_by == participant.id or participant in e.split_between
        for e in db.query(Expense).filter(Expense.trip_id == trip.id).all()
    )
    if in_use:
        raise HTTPException(status_code=409, detail="Participant still has expenses in this trip")
    trip.participants.remove(participant)
    db.commit()
    db.refresh(trip)
    return _trip_response(trip)
