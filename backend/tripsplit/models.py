"""SQLAlchemy models."""
from sqlalchemy import Column, Integer, String, Float, ForeignKey, Table, DateTime, Date, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from tripsplit.database import Base

expense_splits = Table(
    "expense_splits",
    Base.metadata,
    Column("expense_id", Integer, ForeignKey("expenses.id", ondelete="CASCADE"), primary_key=True),
    Column("participant_id", Integer, ForeignKey("participants.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    participations = relationship("Participant", back_populates="user")


class Trip(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(512), nullable=True)
    base_currency = Column(String(3), nullable=False, default="USD")
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    participants = relationship(
        "Participant", back_populates="trip", cascade="all, delete-orphan", order_by="Participant.id"
    )
    expenses = relationship(
        "Expense", back_populates="trip", cascade="all, delete-orphan", order_by="Expense.id"
    )
    payments = relationship("Payment", back_populates="trip", cascade="all, delete-orphan")


class Participant(Base):
    """A person on a trip. Shares and additional amount are per trip."""
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    default_shares = Column(Integer, nullable=False, default=1)
    additional_amount = Column(Float, nullable=False, default=0.0)
    role = Column(String(20), nullable=False, default="participant")

    trip = relationship("Trip", back_populates="participants")
    user = relationship("User", back_populates="participations")


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    paid_by = Column(Integer, ForeignKey("participants.id"), nullable=False)
    amount = Column(Float, nullable=False)  # in the trip's base currency
    description = Column(String(512), nullable=True)
    category = Column(String(100), nullable=True)
    spent_on = Column(Date, nullable=True)
    transaction_shares = Column(JSON, nullable=True)
    original_amount = Column(Float, nullable=True)
    original_currency = Column(String(3), nullable=True)
    exchange_rate = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    trip = relationship("Trip", back_populates="expenses")
    payer = relationship("Participant", foreign_keys=[paid_by])
    split_between = relationship("Participant", secondary=expense_splits, order_by="Participant.id")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    amount = Column(Float, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    trip = relationship("Trip", back_populates="payments")
