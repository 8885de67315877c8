"""Payments between trip members: record, list, confirm."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tripsplit.database import get_db
from tripsplit.models import User, Payment
from tripsplit.schemas import PaymentCreate, PaymentResponse, PaymentStatusUpdate
from tripsplit.auth import get_current_user, get_trip_for_member

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("", response_model=PaymentResponse)
def record_payment(
    data: PaymentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    trip = get_trip_for_member(db, data.trip_id, current_user)
    if data.to_user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot pay yourself")
    if not any(p.user_id == data.to_user_id for p in trip.participants):
        raise HTTPException(status_code=400, detail="Recipient must be a linked trip participant")

    payment = Payment(
        trip_id=trip.id,
        from_user_id=current_user.id,
        to_user_id=data.to_user_id,
        amount=data.amount,
        status="pending",
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return PaymentResponse.model_validate(payment)


@router.get("", response_model=list[PaymentResponse])
def list_payments(
    trip_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    get_trip_for_member(db, trip_id, current_user)
    payments = (
        db.query(Payment)
        .filter(Payment.trip_id == trip_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )
    return [PaymentResponse.model_validate(p) for p in payments]


@router.patch("/{payment_id}", response_model=PaymentResponse)
def update_payment_status(
    payment_id: int,
    data: PaymentStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    get_trip_for_member(db, payment.trip_id, current_user)
    if current_user.id not in (payment.from_user_id, payment.to_user_id):
        raise HTTPException(status_code=403, detail="Not a party to this payment")
    # the recipient confirms money arrived; once confirmed only they can change it
    if current_user.id != payment.to_user_id and (data.status != "pending" or payment.status != "pending"):
        raise HTTPException(status_code=403, detail="Only the recipient can change a payment's confirmation")
    logger.info("Payment %s: %s -> %s by user %s", payment.id, payment.status, data.status, current_user.id)
    payment.status = data.status
    db.commit()
    db.refresh(payment)
    return PaymentResponse.model_validate(payment)
