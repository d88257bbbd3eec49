"""
All enumeration types used across the ledger.

These enums represent the domain states of wallets, distributors,
commissions and withdrawals.
"""

from enum import Enum

__all__ = [
    "WalletTransactionType",
    "PointsType",
    "DistributorStatus",
    "TeamLevel",
    "CommissionType",
    "CommissionStatus",
    "WithdrawalType",
    "WithdrawalStatus",
    "WithdrawTo",
    "OrderStatus",
    "OrderType",
]


class WalletTransactionType(str, Enum):
    """Kinds of wallet ledger entries."""

    RECHARGE = "recharge"
    CONSUME = "consume"
    REFUND = "refund"
    DEPOSIT = "deposit"
    RETURN_DEPOSIT = "return_deposit"
    DEDUCT_DEPOSIT = "deduct_deposit"
    WITHDRAW_FREEZE = "withdraw_freeze"
    WITHDRAW_RETURN = "withdraw_return"
    WITHDRAW = "withdraw"


class PointsType(str, Enum):
    """Sources of points movements."""

    CONSUME = "consume"
    REFUND = "refund"
    ACTIVITY = "activity"
    ADMIN = "admin"


class DistributorStatus(str, Enum):
    """Distributor application status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TeamLevel(str, Enum):
    """Depth of a team member relative to a distributor."""

    DIRECT = "direct"
    INDIRECT = "indirect"


class CommissionType(str, Enum):
    """Commission beneficiary depth."""

    DIRECT = "direct"
    INDIRECT = "indirect"


class CommissionStatus(str, Enum):
    """Commission lifecycle status."""

    PENDING = "pending"
    SETTLED = "settled"
    CANCELLED = "cancelled"


class WithdrawalType(str, Enum):
    """Source of withdrawn funds."""

    WALLET = "wallet"
    COMMISSION = "commission"


class WithdrawalStatus(str, Enum):
    """Withdrawal request status."""

    PENDING = "pending"
    APPROVED = "approved"
    PROCESSING = "processing"
    SUCCESS = "success"
    REJECTED = "rejected"


class WithdrawTo(str, Enum):
    """Payout channel."""

    WECHAT = "wechat"
    ALIPAY = "alipay"
    BANK = "bank"


class OrderStatus(str, Enum):
    """Order statuses the ledger reacts to."""

    PENDING = "pending"
    PAID = "paid"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class OrderType(str, Enum):
    """Order categories."""

    RENTAL = "rental"
    MALL = "mall"
    HOTEL = "hotel"
    MEMBER_PACKAGE = "member_package"
