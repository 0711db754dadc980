import logging
import re
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import EmailStr, Field, field_validator
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aithreya.api.common import CamelModel, ok
from aithreya.core.auth import get_current_user
from aithreya.core.database import get_db
from aithreya.core.errors import Conflict, Unauthenticated
from aithreya.core.security import REFRESH, ExpiredToken, MalformedToken, PasswordHasher, TokenService
from aithreya.models.orm import EducationLevel, Interest, Language, User, utcnow
from aithreya.services.gamification import update_streak

logger = logging.getLogger(__name__)

router = APIRouter()

# profile fields a client may clear by sending null
CLEARABLE_PROFILE_FIELDS = {"phone_number", "avatar", "date_of_birth"}

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _check_password_strength(value: str) -> str:
    if len(value) < 6:
        raise ValueError("Password must be at least 6 characters long")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


class RegisterBody(CamelModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str
    phone_number: Optional[str] = Field(default=None, pattern=r"^[0-9]{10}$")
    preferred_language: Optional[Language] = None
    education_level: Optional[EducationLevel] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return _check_password_strength(v)


class LoginBody(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshBody(CamelModel):
    refresh_token: str = Field(min_length=1)


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone_number: Optional[str] = Field(default=None, pattern=r"^[0-9]{10}$")
    avatar: Optional[str] = Field(default=None, max_length=500)
    date_of_birth: Optional[date] = None
    preferred_language: Optional[Language] = None
    education_level: Optional[EducationLevel] = None
    interests: Optional[List[Interest]] = None
    dark_mode: Optional[bool] = None
    notifications_enabled: Optional[bool] = None

    @field_validator("date_of_birth")
    @classmethod
    def born_in_past(cls, v: Optional[date]) -> Optional[date]:
        if v is not None and v >= date.today():
            raise ValueError("Date of birth must be in the past")
        return v


class ChangePasswordBody(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return _check_password_strength(v)


def _tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def _hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def _token_pair(tokens: TokenService, user: User) -> dict:
    return {
        "token": tokens.issue_access_token(user.id),
        "refreshToken": tokens.issue_refresh_token(user.id),
    }


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(func.lower(User.email) == email.strip().lower()))


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterBody, request: Request, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    if find_user_by_email(db, email) is not None:
        raise Conflict.for_field("email", "User already exists with this email")

    user = User(
        name=payload.name,
        email=email,
        password_hash=_hasher(request).hash(payload.password),
        phone_number=payload.phone_number,
        preferred_language=(payload.preferred_language or Language.EN).value,
        education_level=(payload.education_level or EducationLevel.GENERAL).value,
        interests=[],
        last_login_at=utcnow(),
    )
    update_streak(user, utcnow().date())
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict.for_field("email", "User already exists with this email")
    logger.info(f"User registered: id={user.id}")
    return ok({"user": user.to_dict(), **_token_pair(_tokens(request), user)}, "User registered successfully")


@router.post("/login")
def login(payload: LoginBody, request: Request, db: Session = Depends(get_db)):
    hasher = _hasher(request)
    user = find_user_by_email(db, payload.email)
    if user is None:
        valid = hasher.dummy_verify(payload.password)
    else:
        valid = hasher.verify(payload.password, user.password_hash)
    if not valid:
        logger.info("Login failed")
        raise Unauthenticated("Invalid email or password")
    if not user.is_active:
        raise Unauthenticated("User account is deactivated.")

    user.last_login_at = utcnow()
    update_streak(user, utcnow().date())
    db.commit()
    return ok({"user": user.to_dict(), **_token_pair(_tokens(request), user)}, "Login successful")


@router.post("/refresh-token")
def refresh_token(payload: RefreshBody, request: Request, db: Session = Depends(get_db)):
    tokens = _tokens(request)
    try:
        claims = tokens.verify(payload.refresh_token, REFRESH)
    except ExpiredToken:
        raise Unauthenticated("Refresh token expired. Please login again.")
    except MalformedToken:
        raise Unauthenticated("Invalid refresh token")

    user = db.get(User, claims.user_id)
    if user is None or not user.is_active:
        raise Unauthenticated("Invalid refresh token")
    return ok(_token_pair(tokens, user), "Token refreshed successfully")


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return ok({"user": user.to_dict()})


@router.put("/profile")
def update_profile(payload: ProfileUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field not in CLEARABLE_PROFILE_FIELDS:
            continue
        if field == "interests":
            value = [Interest(v).value for v in value]
        elif field in ("preferred_language", "education_level"):
            value = value.value
        setattr(user, field, value)
    db.commit()
    return ok({"user": user.to_dict()}, "Profile updated successfully")


@router.put("/change-password")
def change_password(
    payload: ChangePasswordBody,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    hasher = _hasher(request)
    if not hasher.verify(payload.current_password, user.password_hash):
        raise Unauthenticated("Current password is incorrect")
    user.password_hash = hasher.hash(payload.new_password)
    db.commit()
    logger.info(f"Password changed for user id={user.id}")
    return ok(_token_pair(_tokens(request), user), "Password changed successfully")


@router.post("/logout")
def logout(user: User = Depends(get_current_user)):
    # Tokens are stateless; the client discards them.
    return ok(message="Logged out successfully")
