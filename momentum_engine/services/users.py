from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from momentum_engine.core.errors import MissingAnchorError, UserNotFoundError
from momentum_engine.models.user import AccountMetadata, User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_user(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user(db: Session, email: str) -> User:
    user = find_user(db, email)
    if user is None:
        raise UserNotFoundError(email)
    return user


def get_or_create_user(db: Session, email: str) -> User:
    """Users are created on first contact; flushes so user.id is usable."""
    user = find_user(db, email)
    if user is None:
        user = User(email=normalize_email(email))
        db.add(user)
        db.flush()
        logger.info("Created user %s", user.email)
    return user


def first_checkin_date(user: User) -> Optional[date]:
    return user.account_info.first_checkin_date if user.account_info else None


def require_first_checkin_date(user: User) -> date:
    anchor = first_checkin_date(user)
    if anchor is None:
        raise MissingAnchorError(user.email)
    return anchor


def write_first_checkin_date(db: Session, user: User, day: date) -> AccountMetadata:
    """Written once; an existing anchor is returned untouched."""
    if user.account_info is not None:
        return user.account_info
    meta = AccountMetadata(user_id=user.id, first_checkin_date=day)
    db.add(meta)
    user.account_info = meta
    return meta
