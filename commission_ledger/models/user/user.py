"""
User Model.

The slice of the platform user record the ledger reads: the referral
link used to resolve commission beneficiaries and the points balance.
"""

from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from commission_ledger.models.base.base_model import BaseModel
from commission_ledger.models.base.mixins import TimestampMixin

__all__ = ["User"]


class User(BaseModel, TimestampMixin):
    """Platform user."""

    __tablename__ = "users"

    nickname: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="Display name",
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        unique=True,
        comment="Mobile number",
    )

    referrer_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=True,
        index=True,
        comment="User who referred this user",
    )

    points: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Loyalty points balance",
    )

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_user_points_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, referrer_id={self.referrer_id})>"
