"""
Withdrawal Model.

Withdrawal requests for wallet balance or distributor commission. The
requested amount is frozen on creation and either paid out or returned.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from commission_ledger.models.base.base_model import BaseModel
from commission_ledger.models.base.mixins import TimestampMixin
from commission_ledger.models.base.types import JSONType, MoneyType
from commission_ledger.schemas.common.enums import WithdrawalStatus, WithdrawalType, WithdrawTo

__all__ = ["Withdrawal"]


class Withdrawal(BaseModel, TimestampMixin):
    """Withdrawal request."""

    __tablename__ = "withdrawals"

    withdrawal_no: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="Human-facing request number",
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
        comment="Requesting user",
    )

    distributor_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="Source distributor for commission withdrawals",
    )

    type: Mapped[WithdrawalType] = mapped_column(
        Enum(WithdrawalType, native_enum=False, length=50),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False, comment="Frozen amount")
    fee: Mapped[Decimal] = mapped_column(MoneyType, nullable=False, comment="Service fee")
    actual_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, comment="Amount paid out",
    )

    withdraw_to: Mapped[WithdrawTo] = mapped_column(
        Enum(WithdrawTo, native_enum=False, length=50),
        nullable=False,
    )

    account_info: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSONType, nullable=True, comment="Payout account details",
    )

    status: Mapped[WithdrawalStatus] = mapped_column(
        Enum(WithdrawalStatus, native_enum=False, length=50),
        nullable=False,
        default=WithdrawalStatus.PENDING,
        index=True,
    )

    reject_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    operator_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_withdrawal_amount_positive"),
        CheckConstraint("fee >= 0", name="ck_withdrawal_fee_non_negative"),
        Index("ix_withdrawals_user_status", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Withdrawal(id={self.id}, no={self.withdrawal_no}, "
            f"type={self.type}, amount={self.amount}, status={self.status})>"
        )
