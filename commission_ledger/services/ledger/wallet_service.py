"""
Wallet ledger service.

Every balance mutation locks the wallet row, checks its precondition,
applies the delta and appends one WalletTransaction with before/after
snapshots. Public methods run as their own unit of work; the ``*_tx``
variants join the caller's transaction and raise domain exceptions so
they can be composed with other ledger steps.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from commission_ledger.core.exceptions import (
    BalanceInsufficientError,
    FrozenBalanceInsufficientError,
    ValidationException,
)
from commission_ledger.models.wallet import UserWallet, WalletTransaction
from commission_ledger.repositories.wallet import WalletRepository, WalletTransactionRepository
from commission_ledger.schemas.common.enums import WalletTransactionType
from commission_ledger.services.base import BaseService, ServiceResult
from commission_ledger.utils.money import ZERO, Number, quantize_money, to_decimal
from commission_ledger.utils.pagination_utils import Page, PaginationParams


class WalletService(BaseService[WalletRepository]):
    """
    Balance and frozen-balance mutations over user wallets.
    """

    def __init__(
        self,
        wallet_repository: WalletRepository,
        transaction_repository: WalletTransactionRepository,
        db_session: Session,
    ):
        super().__init__(wallet_repository, db_session)
        self.transaction_repository = transaction_repository

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def recharge(
        self, user_id: int, amount: Number, reference_no: Optional[str] = None, remark: Optional[str] = None
    ) -> ServiceResult[UserWallet]:
        return self._run_in_transaction(
            "recharge wallet",
            lambda: self.recharge_tx(user_id, amount, reference_no, remark),
            entity_ref=user_id,
        )

    def consume(
        self, user_id: int, amount: Number, reference_no: Optional[str] = None, remark: Optional[str] = None
    ) -> ServiceResult[UserWallet]:
        return self._run_in_transaction(
            "consume wallet balance",
            lambda: self.consume_tx(user_id, amount, reference_no, remark),
            entity_ref=user_id,
        )

    def refund(
        self, user_id: int, amount: Number, reference_no: Optional[str] = None, remark: Optional[str] = None
    ) -> ServiceResult[UserWallet]:
        return self._run_in_transaction(
            "refund to wallet",
            lambda: self.refund_tx(user_id, amount, reference_no, remark),
            entity_ref=user_id,
        )

    def freeze_deposit(
        self, user_id: int, amount: Number, reference_no: Optional[str] = None, remark: Optional[str] = None
    ) -> ServiceResult[UserWallet]:
        return self._run_in_transaction(
            "freeze deposit",
            lambda: self.freeze_deposit_tx(user_id, amount, reference_no, remark),
            entity_ref=user_id,
        )

    def unfreeze_deposit(
        self, user_id: int, amount: Number, reference_no: Optional[str] = None, remark: Optional[str] = None
    ) -> ServiceResult[UserWallet]:
        return self._run_in_transaction(
            "unfreeze deposit",
            lambda: self.unfreeze_deposit_tx(user_id, amount, reference_no, remark),
            entity_ref=user_id,
        )

    def deduct_frozen_to_consume(
        self, user_id: int, amount: Number, reference_no: Optional[str] = None, remark: Optional[str] = None
    ) -> ServiceResult[UserWallet]:
        return self._run_in_transaction(
            "deduct frozen deposit",
            lambda: self.deduct_frozen_to_consume_tx(user_id, amount, reference_no, remark),
            entity_ref=user_id,
        )

    def get_wallet(self, user_id: int) -> ServiceResult[UserWallet]:
        """Return the user's wallet, creating an empty one on first access."""
        return self._run_in_transaction(
            "get wallet",
            lambda: self._get_or_create_wallet(user_id),
            entity_ref=user_id,
        )

    def get_balance(self, user_id: int) -> ServiceResult[Decimal]:
        return self._run_query(
            "get wallet balance",
            lambda: self._read_wallet_value(user_id, "balance"),
            entity_ref=user_id,
        )

    def check_balance(self, user_id: int, amount: Number) -> ServiceResult[bool]:
        """Whether the spendable balance covers ``amount``."""
        return self._run_query(
            "check wallet balance",
            lambda: self._read_wallet_value(user_id, "balance") >= quantize_money(amount),
            entity_ref=user_id,
        )

    def get_transactions(
        self,
        user_id: int,
        tx_type: Optional[WalletTransactionType] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> ServiceResult[Page[WalletTransaction]]:
        return self._run_query(
            "list wallet transactions",
            lambda: self.transaction_repository.list_by_user(
                user_id, PaginationParams(page=page, page_size=page_size), tx_type
            ),
            entity_ref=user_id,
        )

    # ------------------------------------------------------------------ #
    # Transaction-scoped operations
    # ------------------------------------------------------------------ #

    def recharge_tx(
        self, user_id: int, amount: Number, reference_no: Optional[str] = None, remark: Optional[str] = None
    ) -> UserWallet:
        amount = self._validate_amount(amount)
        wallet = self._lock_wallet(user_id)
        self._apply(
            wallet, WalletTransactionType.RECHARGE, amount,
            balance_delta=amount, reference_no=reference_no, remark=remark,
        )
        wallet.total_recharged += amount
        return wallet

    def consume_tx(
        self, user_id: int, amount: Number, reference_no: Optional[str] = None, remark: Optional[str] = None
    ) -> UserWallet:
        amount = self._validate_amount(amount)
        wallet = self._lock_wallet(user_id)
        self._require_balance(wallet, amount)
        self._apply(
            wallet, WalletTransactionType.CONSUME, -amount,
            balance_delta=-amount, reference_no=reference_no, remark=remark,
        )
        wallet.total_consumed += amount
        return wallet

    def refund_tx(
        self, user_id: int, amount: Number, reference_no: Optional[str] = None, remark: Optional[str] = None
    ) -> UserWallet:
        amount = self._validate_amount(amount)
        wallet = self._lock_wallet(user_id)
        self._apply(
            wallet, WalletTransactionType.REFUND, amount,
            balance_delta=amount, reference_no=reference_no, remark=remark,
        )
        return wallet

    def freeze_deposit_tx(
        self, user_id: int, amount: Number, reference_no: Optional[str] = None, remark: Optional[str] = None
    ) -> UserWallet:
        amount = self._validate_amount(amount)
        wallet = self._lock_wallet(user_id)
        self._require_balance(wallet, amount)
        self._apply(
            wallet, WalletTransactionType.DEPOSIT, -amount,
            balance_delta=-amount, frozen_delta=amount,
            reference_no=reference_no, remark=remark,
        )
        return wallet

    def unfreeze_deposit_tx(
        self, user_id: int, amount: Number, reference_no: Optional[str] = None, remark: Optional[str] = None
    ) -> UserWallet:
        amount = self._validate_amount(amount)
        wallet = self._lock_wallet(user_id)
        self._require_frozen(wallet, amount)
        self._apply(
            wallet, WalletTransactionType.RETURN_DEPOSIT, amount,
            balance_delta=amount, frozen_delta=-amount,
            reference_no=reference_no, remark=remark,
        )
        return wallet

    def deduct_frozen_to_consume_tx(
        self, user_id: int, amount: Number, reference_no: Optional[str] = None, remark: Optional[str] = None
    ) -> UserWallet:
        amount = self._validate_amount(amount)
        wallet = self._lock_wallet(user_id)
        self._require_frozen(wallet, amount)
        self._apply(
            wallet, WalletTransactionType.DEDUCT_DEPOSIT, -amount,
            frozen_delta=-amount, reference_no=reference_no, remark=remark,
        )
        wallet.total_consumed += amount
        return wallet

    # Withdrawal steps, driven by WithdrawService

    def freeze_for_withdrawal_tx(self, user_id: int, amount: Number, withdrawal_no: str) -> UserWallet:
        amount = self._validate_amount(amount)
        wallet = self._lock_wallet(user_id)
        self._require_balance(wallet, amount)
        self._apply(
            wallet, WalletTransactionType.WITHDRAW_FREEZE, -amount,
            balance_delta=-amount, frozen_delta=amount,
            reference_no=withdrawal_no, remark="withdrawal requested",
        )
        return wallet

    def release_withdrawal_tx(self, user_id: int, amount: Number, withdrawal_no: str) -> UserWallet:
        amount = self._validate_amount(amount)
        wallet = self._lock_wallet(user_id)
        self._require_frozen(wallet, amount)
        self._apply(
            wallet, WalletTransactionType.WITHDRAW_RETURN, amount,
            balance_delta=amount, frozen_delta=-amount,
            reference_no=withdrawal_no, remark="withdrawal rejected",
        )
        return wallet

    def complete_withdrawal_tx(self, user_id: int, amount: Number, withdrawal_no: str) -> UserWallet:
        amount = self._validate_amount(amount)
        wallet = self._lock_wallet(user_id)
        self._require_frozen(wallet, amount)
        self._apply(
            wallet, WalletTransactionType.WITHDRAW, -amount,
            frozen_delta=-amount, reference_no=withdrawal_no, remark="withdrawal paid out",
        )
        wallet.total_withdrawn += amount
        return wallet

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_amount(amount: Number) -> Decimal:
        try:
            value = quantize_money(amount)
        except ValueError as e:
            raise ValidationException(str(e), field="amount") from e
        if value <= ZERO:
            raise ValidationException("Amount must be greater than 0", field="amount")
        return value

    @staticmethod
    def _require_balance(wallet: UserWallet, amount: Decimal) -> None:
        if wallet.balance < amount:
            raise BalanceInsufficientError(available=wallet.balance, requested=amount)

    @staticmethod
    def _require_frozen(wallet: UserWallet, amount: Decimal) -> None:
        if wallet.frozen_balance < amount:
            raise FrozenBalanceInsufficientError(available=wallet.frozen_balance, requested=amount)

    def _lock_wallet(self, user_id: int) -> UserWallet:
        wallet = self.repository.get_by_user_id_for_update(user_id)
        if wallet is None:
            wallet = self._create_wallet(user_id)
        return wallet

    def _get_or_create_wallet(self, user_id: int) -> UserWallet:
        wallet = self.repository.get_by_user_id(user_id)
        if wallet is None:
            wallet = self._create_wallet(user_id)
        return wallet

    def _create_wallet(self, user_id: int) -> UserWallet:
        """
        Insert an empty wallet for the user.

        Two concurrent first accesses race on the unique ``user_id`` key;
        the loser fails with ALREADY_EXISTS after rollback and can retry.
        """
        wallet = self.repository.create(
            UserWallet(
                user_id=user_id,
                balance=ZERO,
                frozen_balance=ZERO,
                total_recharged=ZERO,
                total_consumed=ZERO,
                total_withdrawn=ZERO,
            )
        )
        self._logger.info("Wallet created", extra={"user_id": user_id})
        return wallet

    def _read_wallet_value(self, user_id: int, attr: str) -> Decimal:
        wallet = self.repository.get_by_user_id(user_id)
        return getattr(wallet, attr) if wallet is not None else ZERO

    def _apply(
        self,
        wallet: UserWallet,
        tx_type: WalletTransactionType,
        signed_amount: Decimal,
        balance_delta: Decimal = ZERO,
        frozen_delta: Decimal = ZERO,
        reference_no: Optional[str] = None,
        remark: Optional[str] = None,
    ) -> WalletTransaction:
        balance_before = to_decimal(wallet.balance)
        frozen_before = to_decimal(wallet.frozen_balance)
        balance_after = balance_before + balance_delta
        frozen_after = frozen_before + frozen_delta

        wallet.balance = balance_after
        wallet.frozen_balance = frozen_after

        record = self.transaction_repository.create(
            WalletTransaction(
                user_id=wallet.user_id,
                type=tx_type,
                amount=signed_amount,
                balance_before=balance_before,
                balance_after=balance_after,
                frozen_before=frozen_before,
                frozen_after=frozen_after,
                order_no=reference_no,
                remark=remark,
            )
        )

        self._logger.info(
            f"Wallet {tx_type.value}",
            extra={
                "user_id": wallet.user_id,
                "tx_type": tx_type.value,
                "amount": str(signed_amount),
                "balance_after": str(balance_after),
                "frozen_after": str(frozen_after),
                "reference_no": reference_no,
            },
        )
        return record
