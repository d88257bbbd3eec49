"""
User Wallet Model.

One wallet per user holding spendable and frozen funds plus lifetime
totals. Rows are created lazily and never deleted.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from commission_ledger.models.base.base_model import BaseModel
from commission_ledger.models.base.mixins import TimestampMixin
from commission_ledger.models.base.types import MoneyType

__all__ = ["UserWallet"]


class UserWallet(BaseModel, TimestampMixin):
    """
    User wallet.

    ``balance`` is spendable, ``frozen_balance`` is held against an open
    obligation such as a rental deposit or an in-flight withdrawal.
    """

    __tablename__ = "user_wallets"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        unique=True,
        comment="Owning user",
    )

    balance: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        default=Decimal("0.00"),
        comment="Spendable balance",
    )

    frozen_balance: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        default=Decimal("0.00"),
        comment="Held balance",
    )

    total_recharged: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        default=Decimal("0.00"),
        comment="Lifetime recharge total",
    )

    total_consumed: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        default=Decimal("0.00"),
        comment="Lifetime spend total",
    )

    total_withdrawn: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        default=Decimal("0.00"),
        comment="Lifetime withdrawal total",
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_user_wallet_balance_non_negative"),
        CheckConstraint("frozen_balance >= 0", name="ck_user_wallet_frozen_non_negative"),
    )

    @property
    def holdings(self) -> Decimal:
        """Spendable plus frozen funds."""
        return self.balance + self.frozen_balance

    def __repr__(self) -> str:
        return (
            f"<UserWallet(user_id={self.user_id}, "
            f"balance={self.balance}, frozen={self.frozen_balance})>"
        )
