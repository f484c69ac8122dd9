from datetime import datetime, date
from typing import Optional

from sqlalchemy import Integer, String, DateTime, Date, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from momentum_engine.db.base import Base


class User(Base):
    """A user namespace; every other table hangs off user_id."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    account_info: Mapped[Optional["AccountMetadata"]] = relationship(
        back_populates="user", uselist=False, lazy="joined"
    )


class AccountMetadata(Base):
    """
    metadata/accountInfo: the anchor for account age and every windowed
    calculation. Written once on the first real check-in, never mutated.
    """

    __tablename__ = "account_metadata"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    first_checkin_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    user: Mapped[User] = relationship(back_populates="account_info")
