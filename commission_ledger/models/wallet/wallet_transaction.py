"""
Wallet Transaction Model.

Append-only log of wallet movements with before/after snapshots of both
the spendable and the frozen balance.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from commission_ledger.models.base.base_model import BaseModel
from commission_ledger.models.base.mixins import TimestampMixin
from commission_ledger.models.base.types import MoneyType
from commission_ledger.schemas.common.enums import WalletTransactionType

__all__ = ["WalletTransaction"]


class WalletTransaction(BaseModel, TimestampMixin):
    """
    Wallet ledger entry.

    ``amount`` is signed: credits to the user are positive and debits are
    negative. Freeze movements keep ``balance + frozen`` constant and are
    visible through the frozen snapshots.
    """

    __tablename__ = "wallet_transactions"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        comment="Wallet owner",
    )

    type: Mapped[WalletTransactionType] = mapped_column(
        Enum(WalletTransactionType, native_enum=False, length=50),
        nullable=False,
        index=True,
        comment="Movement type",
    )

    amount: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        comment="Signed movement amount",
    )

    balance_before: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    frozen_before: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    frozen_after: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    order_no: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        index=True,
        comment="External reference for traceability",
    )

    remark: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_wallet_transactions_user_created", "user_id", "created_at"),
    )

    @property
    def net_change(self) -> Decimal:
        """Change to ``balance + frozen_balance`` caused by this entry."""
        return (self.balance_after - self.balance_before) + (
            self.frozen_after - self.frozen_before
        )

    def __repr__(self) -> str:
        return (
            f"<WalletTransaction(id={self.id}, user_id={self.user_id}, "
            f"type={self.type}, amount={self.amount})>"
        )
