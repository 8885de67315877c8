"""Auth routes: register, login."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tripsplit.database import get_db
from tripsplit.models import User
from tripsplit.schemas import UserCreate, UserLogin, UserResponse, Token
from tripsplit.auth import get_password_hash, verify_password, create_access_token, link_guest_participants

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=Token)
def register(data: UserCreate, db: Session = Depends(get_db)):
    email = data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")
    user = User(email=email, hashed_password=get_password_hash(data.password), name=data.name)
    db.add(user)
    db.flush()
    linked = link_guest_participants(db, user)
    if linked:
        logger.info("Linked %d existing participant(s) to new user %s", linked, user.id)
    db.commit()
    db.refresh(user)
    return Token(access_token=create_access_token(user), user=UserResponse.model_validate(user))


@router.post("/login", response_model=Token)
def login(data: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email.lower()).first()
    if not user or not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return Token(access_token=create_access_token(user), user=UserResponse.model_validate(user))
