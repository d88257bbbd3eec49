"""
Distributor Model.

Membership in the two-level referral program. ``parent_id`` is a plain
lookup key into this table, never an owning relationship.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from commission_ledger.models.base.base_model import BaseModel
from commission_ledger.models.base.mixins import TimestampMixin
from commission_ledger.models.base.types import MoneyType
from commission_ledger.schemas.common.enums import DistributorStatus

__all__ = ["Distributor"]


class Distributor(BaseModel, TimestampMixin):
    """
    Distributor account.

    Commission buckets satisfy
    ``total_commission == available_commission + frozen_commission + withdrawn_commission``.
    Cancelled commissions are removed from ``total_commission`` together
    with the bucket they were taken from.
    """

    __tablename__ = "distributors"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        unique=True,
        comment="Owning user",
    )

    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="Inviting distributor",
    )

    invite_code: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        unique=True,
        comment="Invite code shared with referred users",
    )

    level: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Tree depth, 1 for roots and 2 for invited distributors",
    )

    status: Mapped[DistributorStatus] = mapped_column(
        Enum(DistributorStatus, native_enum=False, length=50),
        nullable=False,
        default=DistributorStatus.PENDING,
        index=True,
        comment="Application status",
    )

    # Commission buckets
    total_commission: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0.00"),
    )
    available_commission: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0.00"),
    )
    frozen_commission: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0.00"),
    )
    withdrawn_commission: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0.00"),
    )

    # Team counters
    team_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Approved members within two levels",
    )
    direct_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Approved direct members",
    )

    # Review
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    reviewed_by: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, comment="Operator who approved or rejected",
    )
    reject_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("available_commission >= 0", name="ck_distributor_available_non_negative"),
        CheckConstraint("frozen_commission >= 0", name="ck_distributor_frozen_non_negative"),
        CheckConstraint("level IN (1, 2)", name="ck_distributor_level"),
    )

    @property
    def is_approved(self) -> bool:
        return self.status == DistributorStatus.APPROVED

    def __repr__(self) -> str:
        return (
            f"<Distributor(id={self.id}, user_id={self.user_id}, "
            f"status={self.status}, parent_id={self.parent_id})>"
        )
