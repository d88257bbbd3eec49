"""
Commission Model.

One row per order and commission type. The unique constraint on
``(order_id, type)`` keeps an order from paying the same level twice.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from commission_ledger.models.base.base_model import BaseModel
from commission_ledger.models.base.mixins import TimestampMixin
from commission_ledger.models.base.types import MoneyType, RateType
from commission_ledger.schemas.common.enums import CommissionStatus, CommissionType

__all__ = ["Commission"]


class Commission(BaseModel, TimestampMixin):
    """Commission earned by a distributor on a completed order."""

    __tablename__ = "commissions"

    distributor_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="Beneficiary distributor",
    )

    order_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="Source order",
    )

    from_user_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Purchasing user",
    )

    type: Mapped[CommissionType] = mapped_column(
        Enum(CommissionType, native_enum=False, length=50),
        nullable=False,
    )

    order_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    status: Mapped[CommissionStatus] = mapped_column(
        Enum(CommissionStatus, native_enum=False, length=50),
        nullable=False,
        default=CommissionStatus.PENDING,
        index=True,
    )

    settled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("order_id", "type", name="uq_commission_order_type"),
        CheckConstraint("amount > 0", name="ck_commission_amount_positive"),
        Index("ix_commissions_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Commission(id={self.id}, order_id={self.order_id}, "
            f"distributor_id={self.distributor_id}, type={self.type}, "
            f"amount={self.amount}, status={self.status})>"
        )
