"""Auth: JWT and password hashing."""
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from tripsplit.database import get_db
from tripsplit.models import Participant, Trip, User

SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-secret-change-me")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
security = HTTPBearer(auto_error=False)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": str(user.id), "email": user.email, "exp": expire}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not credentials:
        raise unauthorized
    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = int(payload["sub"])
    except (JWTError, KeyError, ValueError):
        raise unauthorized
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise unauthorized
    return user


def get_trip_for_member(db: Session, trip_id: int, user: User) -> Trip:
    """Load a trip the user created or is a linked participant of."""
    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    if trip.created_by != user.id and not any(p.user_id == user.id for p in trip.participants):
        raise HTTPException(status_code=403, detail="Not a participant of this trip")
    return trip


def link_guest_participants(db: Session, user: User) -> int:
    """Attach participants added by email before this user signed up."""
    guests = (
        db.query(Participant)
        .filter(Participant.user_id.is_(None), Participant.email == user.email)
        .all()
    )
    for p in guests:
        p.user_id = user.id
    return len(guests)


def trips_for_user(db: Session, user: User) -> list[Trip]:
    """Trips the user created, is linked to, or was added to by email."""
    return (
        db.query(Trip)
        .filter(
            (Trip.created_by == user.id)
            | Trip.participants.any(Participant.user_id == user.id)
            | Trip.participants.any(Participant.email == user.email)
        )
        .order_by(Trip.id)
        .all()
    )
