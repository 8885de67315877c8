"""Expenses: create, list, update, delete, export; personal report across trips."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from tripsplit.database import get_db
from tripsplit.models import User, Trip, Expense
from tripsplit.schemas import (
    ExpenseCreate, ExpenseUpdate, ExpenseResponse, EXPENSE_CATEGORIES, DateRangePreset, PersonalReport,
)
from tripsplit.auth import get_current_user, get_trip_for_member, trips_for_user
from tripsplit.services.errors import BalanceError
from tripsplit.services.export import write_trip_csv
from tripsplit.services.reports import date_range, personal_report, write_personal_csv
from tripsplit.services.snapshots import trip_snapshot

router = APIRouter(prefix="/expenses", tags=["expenses"])


def _expense_response(exp: Expense) -> ExpenseResponse:
    shares = None
    if exp.transaction_shares:
        shares = {int(k): v for k, v in exp.transaction_shares.items()}
    return ExpenseResponse(
        id=exp.id,
        trip_id=exp.trip_id,
        paid_by=exp.paid_by,
        amount=exp.amount,
        description=exp.description,
        category=exp.category,
        spent_on=exp.spent_on,
        transaction_shares=shares,
        original_amount=exp.original_amount,
        original_currency=exp.original_currency,
        exchange_rate=exp.exchange_rate,
        created_at=exp.created_at,
        split_between=[p.id for p in exp.split_between],
    )


def _check_category(category: Optional[str]):
    if category and category not in EXPENSE_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Invalid category. Must be one of: {', '.join(EXPENSE_CATEGORIES)}")


def _resolve_split(trip: Trip, split_between: list[int], shares: Optional[dict[int, int]]):
    if not split_between:
        raise HTTPException(status_code=400, detail="At least one participant required")
    wanted = set(split_between)
    participants = [p for p in trip.participants if p.id in wanted]
    if len(participants) != len(wanted):
        raise HTTPException(status_code=400, detail="All split participants must be in the trip")
    if shares:
        if not set(shares) <= wanted:
            raise HTTPException(status_code=400, detail="Transaction shares must only name split participants")
        if any(s < 1 for s in shares.values()):
            raise HTTPException(status_code=400, detail="Transaction shares must be positive")
    return participants


def _check_payer(trip: Trip, paid_by: int):
    if not any(p.id == paid_by for p in trip.participants):
        raise HTTPException(status_code=400, detail="Payer must be a trip participant")


@router.post("", response_model=ExpenseResponse)
def create_expense(
    data: ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trip = get_trip_for_member(db, data.trip_id, current_user)
    _check_payer(trip, data.paid_by)
    participants = _resolve_split(trip, data.split_between, data.transaction_shares)
    _check_category(data.category)

    expense = Expense(
        trip_id=trip.id,
        paid_by=data.paid_by,
        amount=data.amount,
        description=data.description,
        category=data.category,
        spent_on=data.spent_on or date.today(),
        transaction_shares=data.transaction_shares or None,
        original_amount=data.original_amount,
        original_currency=data.original_currency.upper() if data.original_currency else None,
        exchange_rate=data.exchange_rate,
    )
    expense.split_between = participants
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return _expense_response(expense)


@router.get("", response_model=list[ExpenseResponse])
def list_expenses(
    trip_id: int,
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    get_trip_for_member(db, trip_id, current_user)
    q = db.query(Expense).filter(Expense.trip_id == trip_id)

    if search:
        q = q.filter(Expense.description.ilike(f"%{search}%"))
    if category:
        q = q.filter(Expense.category == category)

    expenses = q.order_by(Expense.spent_on.desc(), Expense.id.desc()).offset(offset).limit(limit).all()
    return [_expense_response(e) for e in expenses]


@router.get("/export")
def export_expenses(
    trip_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trip = get_trip_for_member(db, trip_id, current_user)
    snapshot = trip_snapshot(trip)
    try:
        content = write_trip_csv(
            snapshot.expenses, snapshot.participants, trip.base_currency, today=date.today().isoformat()
        )
    except BalanceError as exc:
        raise HTTPException(status_code=409, detail=f"Cannot export, data inconsistency: {exc}")

    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=expenses-trip-{trip_id}.csv"},
    )


def _personal_report(db: Session, user: User, preset: str, start: Optional[date], end: Optional[date]):
    try:
        start, end = date_range(preset, start, end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    trips = [trip_snapshot(t) for t in trips_for_user(db, user)]
    return personal_report(user.id, user.email, trips, start, end)


@router.get("/personal", response_model=PersonalReport)
def get_personal_report(
    preset: DateRangePreset = Query("30days"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _personal_report(db, current_user, preset, start, end)


@router.get("/personal/export")
def export_personal_report(
    preset: DateRangePreset = Query("30days"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    report = _personal_report(db, current_user, preset, start, end)
    return StreamingResponse(
        iter([write_personal_csv(report)]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=expenses-{report.start}-{report.end}.csv"},
    )


@router.get("/{expense_id}", response_model=ExpenseResponse)
def get_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expense = db.query(Expense).filter(Expense.id == expense_id).first()
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    get_trip_for_member(db, expense.trip_id, current_user)
    return _expense_response(expense)


@router.patch("/{expense_id}", response_model=ExpenseResponse)
def update_expense(
    expense_id: int,
    data: ExpenseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expense = db.query(Expense).filter(Expense.id == expense_id).first()
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    trip = get_trip_for_member(db, expense.trip_id, current_user)

    if data.amount is not None:
        expense.amount = data.amount
    if data.description is not None:
        expense.description = data.description
    if data.category is not None:
        _check_category(data.category)
        expense.category = data.category or None
    if data.paid_by is not None:
        _check_payer(trip, data.paid_by)
        expense.paid_by = data.paid_by

    split_ids = data.split_between
    if split_ids is None:
        split_ids = [p.id for p in expense.split_between]
    if data.clear_transaction_shares:
        shares = None
    elif data.transaction_shares is not None:
        shares = data.transaction_shares
    else:
        shares = {int(k): v for k, v in (expense.transaction_shares or {}).items()}
    expense.split_between = _resolve_split(trip, split_ids, shares)
    expense.transaction_shares = shares or None

    db.commit()
    db.refresh(expense)
    return _expense_response(expense)


@router.delete("/{expense_id}", status_code=204)
def delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expense = db.query(Expense).filter(Expense.id == expense_id).first()
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    get_trip_for_member(db, expense.trip_id, current_user)
    db.delete(expense)
    db.commit()
