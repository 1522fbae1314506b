"""Player accounts: sign-up, password checks and profile updates."""

from __future__ import annotations

import re
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from ..errors import DuplicateName, NotFound, ValidationFailed
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.user import User
from ..principal import Principal

logger = get_logger(__name__)

_hasher = PasswordHasher()
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_DISPLAY_NAME = 3
MIN_PASSWORD = 6


def _normalize_email(email: str) -> str:
    email = email.strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValidationFailed("Invalid email address.")
    return email


def _validate_display_name(display_name: str) -> str:
    display_name = display_name.strip()
    if len(display_name) < MIN_DISPLAY_NAME:
        raise ValidationFailed(
            f"The display name must have at least {MIN_DISPLAY_NAME} characters."
        )
    return display_name


def signup(
    *,
    display_name: str,
    email: str,
    password: str,
    session_factory: SessionFactory,
) -> User:
    """Create a player account funded with the starting cash."""

    display_name = _validate_display_name(display_name)
    email = _normalize_email(email)
    if len(password) < MIN_PASSWORD:
        raise ValidationFailed(f"The password must have at least {MIN_PASSWORD} characters.")

    password_hash = _hasher.hash(password)
    try:
        with session_factory() as session:
            existing = session.exec(select(User.id).where(User.email == email)).first()
            if existing is not None:
                raise DuplicateName("An account with this email already exists.")
            user = User(display_name=display_name, email=email, password_hash=password_hash)
            session.add(user)
            session.flush()
            session.refresh(user)
    except IntegrityError as exc:
        raise DuplicateName("An account with this email already exists.") from exc

    logger.info("User signed up", extra={"user_id": user.id})
    return user


def authenticate(
    *,
    email: str,
    password: str,
    session_factory: SessionFactory,
) -> Optional[User]:
    """Validate credentials and return the user when correct."""

    email = email.strip().lower()
    if not email:
        return None
    with session_factory() as session:
        user = session.exec(select(User).where(User.email == email)).first()
        if user is None:
            return None
        try:
            _hasher.verify(user.password_hash, password)
        except (VerifyMismatchError, InvalidHash, VerificationError):
            logger.warning("Failed login", extra={"user_id": user.id})
            return None

        if _hasher.check_needs_rehash(user.password_hash):
            user.password_hash = _hasher.hash(password)
            session.add(user)
        return user


def get_user(user_id: int, session_factory: SessionFactory) -> Optional[User]:
    with session_factory() as session:
        return session.get(User, user_id)


def get_user_by_email(email: str, session_factory: SessionFactory) -> Optional[User]:
    """Fetch a user by email."""
    with session_factory() as session:
        return session.exec(select(User).where(User.email == email.strip().lower())).first()


def update_profile(
    *,
    principal: Principal,
    display_name: str,
    phone_number: Optional[str] = None,
    session_factory: SessionFactory,
) -> User:
    """Change the display name and optional phone number of a player."""

    display_name = _validate_display_name(display_name)
    with session_factory() as session:
        user = session.get(User, principal.user_id)
        if user is None:
            raise NotFound("User not found.")
        user.display_name = display_name
        user.phone_number = (phone_number or "").strip() or None
        session.add(user)
    return user


def principal_for(user: User) -> Principal:
    """The identity handed to settlement services for this user."""

    if user.id is None:
        raise ValueError("User has not been persisted yet")
    return Principal(user_id=user.id, display_name=user.display_name)
