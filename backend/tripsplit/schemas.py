"""Pydantic schemas for request/response."""
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


# ----- User -----
class UserBase(BaseModel):
    email: EmailStr
    name: Optional[str] = None


class UserCreate(UserBase):
    password: str = Field(min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(UserBase):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ----- Participant -----
class ParticipantCreate(BaseModel):
    name: str
    email: Optional[EmailStr] = None
    default_shares: int = Field(1, ge=1)
    additional_amount: float = Field(0.0, ge=0)


class ParticipantUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    default_shares: Optional[int] = Field(None, ge=1)
    additional_amount: Optional[float] = Field(None, ge=0)


class ParticipantResponse(BaseModel):
    id: int
    trip_id: int
    name: str
    email: Optional[str] = None
    user_id: Optional[int] = None
    default_shares: int
    additional_amount: float
    role: str

    class Config:
        from_attributes = True


# ----- Trip -----
class TripBase(BaseModel):
    name: str
    description: Optional[str] = None
    base_currency: str = Field("USD", min_length=3, max_length=3)


class TripCreate(TripBase):
    # shares the creator represents in this trip
    default_shares: int = Field(1, ge=1)


class TripUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class TripResponse(TripBase):
    id: int
    created_by: int
    created_at: Optional[datetime] = None
    participants: list[ParticipantResponse] = []

    class Config:
        from_attributes = True


# ----- Expense -----
EXPENSE_CATEGORIES = [
    "food",
    "transport",
    "accommodation",
    "activities",
    "shopping",
    "groceries",
    "health",
    "other",
]


class ExpenseBase(BaseModel):
    amount: float = Field(gt=0)
    description: Optional[str] = None
    split_between: list[int]
    transaction_shares: Optional[dict[int, int]] = None
    category: Optional[str] = None
    spent_on: Optional[date] = None
    original_amount: Optional[float] = Field(None, gt=0)
    original_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    exchange_rate: Optional[float] = Field(None, gt=0)

    @field_validator("transaction_shares")
    @classmethod
    def positive_shares(cls, v):
        if v and any(s < 1 for s in v.values()):
            raise ValueError("transaction shares must be positive integers")
        return v


class ExpenseCreate(ExpenseBase):
    trip_id: int
    paid_by: int


class ExpenseUpdate(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    description: Optional[str] = None
    paid_by: Optional[int] = None
    split_between: Optional[list[int]] = None
    transaction_shares: Optional[dict[int, int]] = None
    clear_transaction_shares: bool = False
    category: Optional[str] = None


class ExpenseResponse(ExpenseBase):
    id: int
    trip_id: int
    paid_by: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ----- Payment -----
PaymentStatusLiteral = Literal["pending", "confirmed", "settled"]


class PaymentCreate(BaseModel):
    trip_id: int
    to_user_id: int
    amount: float = Field(gt=0)


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatusLiteral


class PaymentResponse(BaseModel):
    id: int
    trip_id: int
    from_user_id: int
    to_user_id: int
    amount: float
    status: PaymentStatusLiteral
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ----- Settlement -----
class SettlementItem(BaseModel):
    from_participant_id: int
    to_participant_id: int
    amount: float


class ParticipantBalance(BaseModel):
    participant_id: int
    name: str
    net_balance: float


class SettlementProgress(BaseModel):
    settled: float
    total: float
    remaining: float
    percentage: float
    fully_settled: bool


class SettlementSummary(BaseModel):
    trip_id: int
    base_currency: str
    balances: list[ParticipantBalance]
    settlements: list[SettlementItem]
    progress: SettlementProgress


# ----- Dashboard -----
class TripAmount(BaseModel):
    trip_id: int
    trip_name: str
    amount: float


class PersonBalance(BaseModel):
    # trip amounts are rounded by largest remainder so they add up to total_amount
    participant_id: int
    participant_name: str
    participant_email: Optional[str] = None
    total_amount: float
    trips: list[TripAmount] = []


class DetailedBalances(BaseModel):
    owed_by_me: list[PersonBalance] = []
    owed_to_me: list[PersonBalance] = []
    skipped_trips: list[int] = []
    warning_count: int = 0
    # set when some trips or contributions could not be included
    incomplete: bool = False


# ----- Reports -----
class CategoryTotal(BaseModel):
    category: str
    amount: float
    percentage: float


class ParticipantSpending(BaseModel):
    participant_id: int
    name: str
    paid: float


class TripStats(BaseModel):
    trip_id: int
    base_currency: str
    total_expenses: float
    expense_count: int
    category_totals: list[CategoryTotal] = []
    participant_spending: list[ParticipantSpending] = []


DateRangePreset = Literal["30days", "60days", "90days", "1year", "custom"]


class PersonalExpenseLine(BaseModel):
    expense_id: int
    trip_id: int
    trip_name: str
    spent_on: str
    description: str
    category: str
    cost: float
    currency: str
    you_paid: float
    your_share: float
    net: float


class PersonalCurrencyTotal(BaseModel):
    currency: str
    paid: float
    share: float
    net: float


class PersonalReport(BaseModel):
    start: date
    end: date
    lines: list[PersonalExpenseLine] = []
    totals: list[PersonalCurrencyTotal] = []
    warning_count: int = 0
