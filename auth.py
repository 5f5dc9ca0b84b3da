from datetime import datetime, timedelta, timezone
import logging

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from categories import create_default_categories
from config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from database import get_db, User
from errors import ConflictError, UnauthorizedError
from schemas import DeviceToken, Token, UserCreate, UserLogin, UserOut, UserUpdate

logger = logging.getLogger(__name__)

auth_router = APIRouter()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> int:
    """User id carried by ``token``; UnauthorizedError when it cannot be trusted."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Could not validate credentials")

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        raise UnauthorizedError("Could not validate credentials")
    return int(subject)


def token_for(user: User) -> Token:
    # PyJWT requires a string subject
    return Token(access_token=create_access_token(data={"sub": str(user.id)}))


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    user = db.get(User, decode_token(token))
    if user is None:
        raise UnauthorizedError("Could not validate credentials")
    return user


@auth_router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, db: Session = Depends(get_db)):
    if db.query(User).filter(User.email == user.email).first():
        raise ConflictError("Email already registered")

    new_user = User(
        email=user.email,
        name=user.name,
        password=generate_password_hash(user.password),
        device_tokens=[],
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    create_default_categories(db, new_user.id)
    logger.info("Registered user %s", new_user.id)
    return token_for(new_user)


@auth_router.post("/login", response_model=Token)
def login(user: UserLogin, db: Session = Depends(get_db)):
    db_user = db.query(User).filter(User.email == user.email).first()
    if not db_user or not check_password_hash(db_user.password, user.password):
        raise UnauthorizedError("Invalid credentials")
    return token_for(db_user)


@auth_router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@auth_router.patch("/me", response_model=UserOut)
def update_profile(
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if data.name is not None:
        current_user.name = data.name
    db.commit()
    db.refresh(current_user)
    return current_user


@auth_router.post("/device-tokens")
def add_device_token(
    data: DeviceToken,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    tokens = list(current_user.device_tokens or [])
    if data.token not in tokens:
        # reassign so the JSON column is flagged dirty
        current_user.device_tokens = tokens + [data.token]
        db.commit()
    return {"message": "Device token registered", "count": len(current_user.device_tokens)}


@auth_router.delete("/device-tokens")
def remove_device_token(
    data: DeviceToken,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    tokens = [t for t in (current_user.device_tokens or []) if t != data.token]
    current_user.device_tokens = tokens
    db.commit()
    return {"message": "Device token removed", "count": len(tokens)}
