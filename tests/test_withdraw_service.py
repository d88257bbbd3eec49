"""Tests for the withdrawal workflow over wallet balances and commissions."""

from decimal import Decimal

import pytest

from commission_ledger.core.exceptions import ErrorCode
from commission_ledger.schemas.common.enums import (
    WithdrawalStatus,
    WithdrawalType,
    WithdrawTo,
)

OPERATOR_ID = 9000


@pytest.fixture
def funded_user(services, make_user):
    user = make_user()
    services.wallet.recharge(user.id, "100.00").unwrap()
    return user


@pytest.fixture
def earning_member(services, tree):
    """The tree's member distributor with 30.00 settled commission."""
    for order_id, amount in ((1, "100.00"), (2, "200.00")):
        for commission in services.commissions.calculate(order_id, tree["buyer"].id, amount).unwrap():
            services.commissions.settle(commission.id).unwrap()
    return tree


def _wallet(services, user):
    return services.wallet.get_wallet(user.id).unwrap()


def _member(services, tree):
    return services.distributors.get_by_id(tree["member"].id).unwrap()


class TestWalletWithdrawal:
    def test_apply_freezes_balance_and_computes_fee(self, services, funded_user):
        withdrawal = services.withdrawals.apply(
            funded_user.id, WithdrawalType.WALLET, "50.00", WithdrawTo.WECHAT, {"openid": "o-1"}
        ).unwrap()

        assert withdrawal.status == WithdrawalStatus.PENDING
        assert withdrawal.withdrawal_no.startswith("W")
        assert withdrawal.fee == Decimal("0.30")
        assert withdrawal.actual_amount == Decimal("49.70")
        assert withdrawal.account_info == {"openid": "o-1"}
        wallet = _wallet(services, funded_user)
        assert (wallet.balance, wallet.frozen_balance) == (Decimal("50.00"), Decimal("50.00"))

    def test_reject_returns_frozen_amount(self, services, funded_user):
        withdrawal = services.withdrawals.apply(
            funded_user.id, "wallet", "50.00", "alipay"
        ).unwrap()

        rejected = services.withdrawals.reject(withdrawal.id, OPERATOR_ID, "account mismatch").unwrap()

        assert rejected.status == WithdrawalStatus.REJECTED
        assert rejected.reject_reason == "account mismatch"
        assert rejected.processed_at is not None
        wallet = _wallet(services, funded_user)
        assert (wallet.balance, wallet.frozen_balance) == (Decimal("100.00"), Decimal("0.00"))

    def test_full_workflow_pays_out_frozen_amount(self, services, funded_user):
        withdrawal = services.withdrawals.apply(
            funded_user.id, WithdrawalType.WALLET, "40.00", WithdrawTo.BANK
        ).unwrap()

        assert services.withdrawals.approve(withdrawal.id, OPERATOR_ID).data.status == WithdrawalStatus.APPROVED
        assert services.withdrawals.process(withdrawal.id, OPERATOR_ID).data.status == WithdrawalStatus.PROCESSING
        completed = services.withdrawals.complete(withdrawal.id, OPERATOR_ID).unwrap()

        assert completed.status == WithdrawalStatus.SUCCESS
        assert completed.operator_id == OPERATOR_ID
        wallet = _wallet(services, funded_user)
        assert wallet.balance == Decimal("60.00")
        assert wallet.frozen_balance == Decimal("0.00")
        assert wallet.total_withdrawn == Decimal("40.00")

    def test_insufficient_balance(self, services, funded_user):
        result = services.withdrawals.apply(
            funded_user.id, WithdrawalType.WALLET, "100.01", WithdrawTo.BANK
        )

        assert result.error_code == ErrorCode.BALANCE_INSUFFICIENT
        assert services.withdrawals.get_user_withdrawals(funded_user.id).unwrap().total == 0


class TestCommissionWithdrawal:
    def test_apply_moves_available_to_frozen(self, services, earning_member):
        tree = earning_member

        services.withdrawals.apply(
            tree["member_user"].id, WithdrawalType.COMMISSION, "12.00", WithdrawTo.ALIPAY
        ).unwrap()

        member = _member(services, tree)
        assert member.available_commission == Decimal("18.00")
        assert member.frozen_commission == Decimal("12.00")

    def test_complete_moves_frozen_to_withdrawn(self, services, earning_member):
        tree = earning_member
        withdrawal = services.withdrawals.apply(
            tree["member_user"].id, WithdrawalType.COMMISSION, "30.00", WithdrawTo.ALIPAY
        ).unwrap()
        services.withdrawals.approve(withdrawal.id, OPERATOR_ID)
        services.withdrawals.process(withdrawal.id, OPERATOR_ID)

        services.withdrawals.complete(withdrawal.id, OPERATOR_ID).unwrap()

        member = _member(services, tree)
        assert member.available_commission == Decimal("0.00")
        assert member.frozen_commission == Decimal("0.00")
        assert member.withdrawn_commission == Decimal("30.00")
        assert member.total_commission == Decimal("30.00")

    def test_reject_restores_available(self, services, earning_member):
        tree = earning_member
        withdrawal = services.withdrawals.apply(
            tree["member_user"].id, WithdrawalType.COMMISSION, "30.00", WithdrawTo.ALIPAY
        ).unwrap()

        services.withdrawals.reject(withdrawal.id, OPERATOR_ID, "duplicate").unwrap()

        member = _member(services, tree)
        assert (member.available_commission, member.frozen_commission) == (Decimal("30.00"), Decimal("0.00"))

    def test_more_than_available_rejected(self, services, earning_member):
        tree = earning_member

        result = services.withdrawals.apply(
            tree["member_user"].id, WithdrawalType.COMMISSION, "30.01", WithdrawTo.ALIPAY
        )

        assert result.error_code == ErrorCode.BALANCE_INSUFFICIENT

    def test_non_distributor_cannot_withdraw_commission(self, services, make_user):
        result = services.withdrawals.apply(
            make_user().id, WithdrawalType.COMMISSION, "10.00", WithdrawTo.ALIPAY
        )

        assert result.error_code == ErrorCode.NOT_FOUND

    def test_pending_distributor_cannot_withdraw_commission(self, services, make_user):
        user = make_user()
        services.distributors.apply(user.id).unwrap()

        result = services.withdrawals.apply(
            user.id, WithdrawalType.COMMISSION, "10.00", WithdrawTo.ALIPAY
        )

        assert result.error_code == ErrorCode.INVALID_STATE_TRANSITION


class TestValidation:
    def test_below_minimum_rejected(self, services, funded_user):
        result = services.withdrawals.apply(
            funded_user.id, WithdrawalType.WALLET, "9.99", WithdrawTo.BANK
        )

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.error.field == "amount"

    @pytest.mark.parametrize(
        "withdrawal_type, amount, withdraw_to",
        [
            ("cash", "20.00", "bank"),
            ("wallet", "20.00", "paypal"),
            ("wallet", "20.001", "bank"),
            ("wallet", "-20.00", "bank"),
        ],
    )
    def test_malformed_request_rejected(self, services, funded_user, withdrawal_type, amount, withdraw_to):
        result = services.withdrawals.apply(funded_user.id, withdrawal_type, amount, withdraw_to)

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_pending_limit(self, services, test_settings, funded_user):
        for _ in range(test_settings.WITHDRAW_MAX_PENDING):
            services.withdrawals.apply(
                funded_user.id, WithdrawalType.WALLET, "10.00", WithdrawTo.BANK
            ).unwrap()

        result = services.withdrawals.apply(
            funded_user.id, WithdrawalType.WALLET, "10.00", WithdrawTo.BANK
        )

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.error.field == "amount"


class TestTransitions:
    def test_complete_requires_processing(self, services, funded_user):
        withdrawal = services.withdrawals.apply(
            funded_user.id, WithdrawalType.WALLET, "20.00", WithdrawTo.BANK
        ).unwrap()

        result = services.withdrawals.complete(withdrawal.id, OPERATOR_ID)

        assert result.error_code == ErrorCode.INVALID_STATE_TRANSITION
        assert _wallet(services, funded_user).frozen_balance == Decimal("20.00")

    def test_process_requires_approved(self, services, funded_user):
        withdrawal = services.withdrawals.apply(
            funded_user.id, WithdrawalType.WALLET, "20.00", WithdrawTo.BANK
        ).unwrap()

        assert services.withdrawals.process(withdrawal.id, OPERATOR_ID).error_code == (
            ErrorCode.INVALID_STATE_TRANSITION
        )

    def test_reject_only_from_pending(self, services, funded_user):
        withdrawal = services.withdrawals.apply(
            funded_user.id, WithdrawalType.WALLET, "20.00", WithdrawTo.BANK
        ).unwrap()
        services.withdrawals.approve(withdrawal.id, OPERATOR_ID)

        result = services.withdrawals.reject(withdrawal.id, OPERATOR_ID, "too late")

        assert result.error_code == ErrorCode.INVALID_STATE_TRANSITION

    def test_unknown_withdrawal(self, services):
        assert services.withdrawals.approve(12345, OPERATOR_ID).error_code == ErrorCode.NOT_FOUND


class TestBatch:
    def test_batch_approve_reports_each_id(self, services, funded_user):
        first = services.withdrawals.apply(
            funded_user.id, WithdrawalType.WALLET, "10.00", WithdrawTo.BANK
        ).unwrap()
        second = services.withdrawals.apply(
            funded_user.id, WithdrawalType.WALLET, "10.00", WithdrawTo.BANK
        ).unwrap()
        services.withdrawals.approve(second.id, OPERATOR_ID)

        batch = services.withdrawals.batch_approve([first.id, second.id, 777], OPERATOR_ID).unwrap()

        assert batch.succeeded == [first.id]
        assert set(batch.failed) == {second.id, 777}
        assert not batch.all_succeeded

    def test_batch_reject_and_complete(self, services, funded_user):
        ids = [
            services.withdrawals.apply(
                funded_user.id, WithdrawalType.WALLET, "10.00", WithdrawTo.BANK
            ).unwrap().id
            for _ in range(3)
        ]
        services.withdrawals.batch_reject(ids[:1], OPERATOR_ID, "fraud check").unwrap()
        services.withdrawals.batch_approve(ids[1:], OPERATOR_ID)
        for withdrawal_id in ids[1:]:
            services.withdrawals.process(withdrawal_id, OPERATOR_ID)

        batch = services.withdrawals.batch_complete(ids[1:], OPERATOR_ID).unwrap()

        assert batch.all_succeeded
        wallet = _wallet(services, funded_user)
        assert wallet.balance == Decimal("80.00")
        assert wallet.total_withdrawn == Decimal("20.00")


class TestQueries:
    def test_lookup_and_listing(self, services, funded_user, make_user):
        withdrawal = services.withdrawals.apply(
            funded_user.id, WithdrawalType.WALLET, "10.00", WithdrawTo.BANK
        ).unwrap()
        other = make_user()
        services.wallet.recharge(other.id, "30.00")
        services.withdrawals.apply(other.id, WithdrawalType.WALLET, "15.00", WithdrawTo.ALIPAY)

        assert services.withdrawals.get_by_withdrawal_no(withdrawal.withdrawal_no).data.id == withdrawal.id
        assert services.withdrawals.get_by_withdrawal_no("W0").error_code == ErrorCode.NOT_FOUND
        assert services.withdrawals.get_user_withdrawals(funded_user.id).unwrap().total == 1
        assert services.withdrawals.list_withdrawals(status=WithdrawalStatus.PENDING).unwrap().total == 2
        assert services.withdrawals.list_withdrawals(
            withdrawal_type=WithdrawalType.COMMISSION
        ).unwrap().total == 0

    def test_summary_counts_paid_out(self, services, funded_user):
        withdrawal = services.withdrawals.apply(
            funded_user.id, WithdrawalType.WALLET, "50.00", WithdrawTo.BANK
        ).unwrap()
        services.withdrawals.approve(withdrawal.id, OPERATOR_ID)
        services.withdrawals.process(withdrawal.id, OPERATOR_ID)
        services.withdrawals.complete(withdrawal.id, OPERATOR_ID)
        services.withdrawals.apply(funded_user.id, WithdrawalType.WALLET, "10.00", WithdrawTo.BANK)

        summary = services.withdrawals.get_summary().unwrap()

        assert summary.by_status[WithdrawalStatus.SUCCESS].count == 1
        assert summary.by_status[WithdrawalStatus.PENDING].amount == Decimal("10.00")
        assert summary.total_fee == Decimal("0.30")
        assert summary.total_paid_out == Decimal("49.70")

    def test_config_defaults_come_from_settings(self, services):
        config = services.withdrawals.get_config().unwrap()

        assert config.min_withdraw == Decimal("10.00")
        assert config.withdraw_fee_rate == Decimal("0.006")
        assert config.max_pending_withdrawals == 5
