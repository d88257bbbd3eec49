"""Tests for commission creation, settlement and refund reversal."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from commission_ledger.core.exceptions import ErrorCode
from commission_ledger.models.distribution import Commission
from commission_ledger.schemas.common.enums import (
    CommissionStatus,
    CommissionType,
    OrderStatus,
    WithdrawalType,
    WithdrawTo,
)


def _distributor(services, distributor_id):
    return services.distributors.get_by_id(distributor_id).unwrap()


class TestCalculate:
    def test_direct_and_indirect_commissions(self, services, tree):
        created = services.commissions.calculate(1, tree["buyer"].id, "100.00").unwrap()

        by_type = {c.type: c for c in created}
        assert set(by_type) == {CommissionType.DIRECT, CommissionType.INDIRECT}
        assert by_type[CommissionType.DIRECT].distributor_id == tree["member"].id
        assert by_type[CommissionType.DIRECT].amount == Decimal("10.00")
        assert by_type[CommissionType.INDIRECT].distributor_id == tree["root"].id
        assert by_type[CommissionType.INDIRECT].amount == Decimal("5.00")
        assert all(c.status == CommissionStatus.PENDING for c in created)

    def test_pending_commission_does_not_touch_balances(self, services, tree):
        services.commissions.calculate(1, tree["buyer"].id, "100.00")

        member = _distributor(services, tree["member"].id)
        assert member.available_commission == Decimal("0.00")
        assert member.total_commission == Decimal("0.00")

    def test_amount_rounded_half_up(self, services, tree):
        created = services.commissions.calculate(2, tree["buyer"].id, "0.45").unwrap()

        # 0.045 rounds to 0.05; 0.0225 rounds to 0.02
        assert sorted(c.amount for c in created) == [Decimal("0.02"), Decimal("0.05")]

    def test_only_direct_when_parent_missing(self, services, make_user, make_distributor):
        seller_user = make_user()
        make_distributor(seller_user)
        buyer = make_user(referrer=seller_user)

        created = services.commissions.calculate(3, buyer.id, "50.00").unwrap()

        assert [c.type for c in created] == [CommissionType.DIRECT]
        assert created[0].amount == Decimal("5.00")

    def test_no_commission_without_approved_referrer(self, services, make_user):
        referrer = make_user()
        services.distributors.apply(referrer.id)
        buyer = make_user(referrer=referrer)

        assert services.commissions.calculate(4, buyer.id, "100.00").unwrap() == []
        assert services.commissions.calculate(5, make_user().id, "100.00").unwrap() == []

    def test_duplicate_order_rejected(self, services, tree, db_session):
        services.commissions.calculate(6, tree["buyer"].id, "100.00")

        result = services.commissions.calculate(6, tree["buyer"].id, "100.00")

        assert result.error_code == ErrorCode.ALREADY_EXISTS
        assert db_session.query(Commission).filter_by(order_id=6).count() == 2

    @pytest.mark.parametrize("amount", ["0", "-1", "NaN", "Infinity", Decimal("NaN")])
    def test_non_positive_order_amount_rejected(self, services, tree, db_session, amount):
        result = services.commissions.calculate(7, tree["buyer"].id, amount)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.error.field == "order_amount"
        assert db_session.query(Commission).filter_by(order_id=7).count() == 0

    def test_rates_follow_active_setting(self, services, tree):
        services.commission_settings.update_config(
            {
                "direct_rate": "0.20",
                "indirect_rate": "0.10",
                "min_withdraw": "1.00",
                "withdraw_fee_rate": "0",
                "settle_delay_days": 0,
            }
        ).unwrap()

        created = services.commissions.calculate(8, tree["buyer"].id, "100.00").unwrap()

        assert sorted(c.amount for c in created) == [Decimal("10.00"), Decimal("20.00")]

    def test_on_order_completed_ignores_other_statuses(self, services, tree, make_order):
        order = make_order(9, tree["buyer"], status=OrderStatus.PAID)

        assert services.commissions.on_order_completed(order).unwrap() == []
        assert services.commissions.get_by_order_id(9).unwrap() == []


class TestSettle:
    def test_settle_moves_amount_to_available(self, services, tree):
        direct = services.commissions.calculate(1, tree["buyer"].id, "100.00").unwrap()[0]

        settled = services.commissions.settle(direct.id).unwrap()

        assert settled.status == CommissionStatus.SETTLED
        assert settled.settled_at is not None
        member = _distributor(services, tree["member"].id)
        assert member.available_commission == Decimal("10.00")
        assert member.total_commission == Decimal("10.00")

    def test_settle_twice_is_rejected_and_not_double_counted(self, services, tree):
        direct = services.commissions.calculate(1, tree["buyer"].id, "100.00").unwrap()[0]
        services.commissions.settle(direct.id)

        result = services.commissions.settle(direct.id)

        assert result.error_code == ErrorCode.INVALID_STATE_TRANSITION
        assert _distributor(services, tree["member"].id).available_commission == Decimal("10.00")

    def test_settle_pending_commissions_respects_delay(self, services, tree, db_session):
        old = services.commissions.calculate(1, tree["buyer"].id, "100.00").unwrap()
        services.commissions.calculate(2, tree["buyer"].id, "100.00")
        old_ids = [c.id for c in old]
        for commission in db_session.query(Commission).filter(Commission.id.in_(old_ids)):
            commission.created_at = datetime.now(timezone.utc) - timedelta(days=10)
        db_session.commit()

        settled = services.commissions.settle_pending_commissions().unwrap()

        assert settled == 2
        statuses = {c.id: c.status for c in db_session.query(Commission)}
        assert all(statuses[i] == CommissionStatus.SETTLED for i in old_ids)
        assert list(statuses.values()).count(CommissionStatus.PENDING) == 2

    def test_settle_pending_commissions_with_zero_delay(self, services, tree):
        services.commissions.calculate(1, tree["buyer"].id, "100.00")

        assert services.commissions.settle_pending_commissions(settle_delay_days=0).unwrap() == 2


class TestCancel:
    def test_cancel_pending_commissions(self, services, tree):
        services.commissions.calculate(1, tree["buyer"].id, "100.00")

        cancelled = services.commissions.cancel_by_order_id(1).unwrap()

        assert len(cancelled) == 2
        assert all(c.status == CommissionStatus.CANCELLED for c in cancelled)
        assert _distributor(services, tree["member"].id).total_commission == Decimal("0.00")

    def test_cancel_settled_commission_reverses_balances(self, services, tree):
        for commission in services.commissions.calculate(1, tree["buyer"].id, "100.00").unwrap():
            services.commissions.settle(commission.id)

        services.commissions.cancel_by_order_id(1).unwrap()

        member = _distributor(services, tree["member"].id)
        root = _distributor(services, tree["root"].id)
        assert (member.available_commission, member.total_commission) == (Decimal("0.00"), Decimal("0.00"))
        assert (root.available_commission, root.total_commission) == (Decimal("0.00"), Decimal("0.00"))

    def test_cancel_is_idempotent(self, services, tree):
        services.commissions.calculate(1, tree["buyer"].id, "100.00")
        services.commissions.cancel_by_order_id(1)

        assert services.commissions.cancel_by_order_id(1).unwrap() == []

    def test_cancelled_commission_cannot_settle(self, services, tree):
        direct = services.commissions.calculate(1, tree["buyer"].id, "100.00").unwrap()[0]
        services.commissions.cancel_by_order_id(1)

        assert services.commissions.settle(direct.id).error_code == ErrorCode.INVALID_STATE_TRANSITION

    def test_cancel_after_withdrawal_requires_reconciliation(self, services, tree):
        for commission in services.commissions.calculate(1, tree["buyer"].id, "100.00").unwrap():
            services.commissions.settle(commission.id)
        services.withdrawals.apply(
            tree["member_user"].id, WithdrawalType.COMMISSION, "10.00", WithdrawTo.ALIPAY
        ).unwrap()

        result = services.commissions.cancel_by_order_id(1)

        assert result.error_code == ErrorCode.RECONCILIATION_REQUIRED
        assert result.error.details["shortfall"] == "10.00"
        assert all(
            c.status == CommissionStatus.SETTLED
            for c in services.commissions.get_by_order_id(1).unwrap()
        )
        assert _distributor(services, tree["root"].id).available_commission == Decimal("5.00")


class TestStats:
    def test_commission_stats_by_status(self, services, tree):
        direct = services.commissions.calculate(1, tree["buyer"].id, "100.00").unwrap()[0]
        services.commissions.settle(direct.id)
        services.commissions.calculate(2, tree["buyer"].id, "30.00")
        services.commissions.calculate(3, tree["buyer"].id, "20.00")
        services.commissions.cancel_by_order_id(3)

        stats = services.commissions.get_commission_stats(tree["member"].id).unwrap()

        assert (stats.settled.count, stats.settled.amount) == (1, Decimal("10.00"))
        assert (stats.pending.count, stats.pending.amount) == (1, Decimal("3.00"))
        assert (stats.cancelled.count, stats.cancelled.amount) == (1, Decimal("2.00"))

    def test_commission_listing_filters_by_status(self, services, tree):
        direct = services.commissions.calculate(1, tree["buyer"].id, "100.00").unwrap()[0]
        services.commissions.settle(direct.id)
        services.commissions.calculate(2, tree["buyer"].id, "30.00")

        page = services.commissions.get_commissions(
            tree["member"].id, status=CommissionStatus.PENDING
        ).unwrap()

        assert page.total == 1
        assert page.items[0].order_id == 2

    def test_commission_trend_buckets_by_day(self, services, tree, db_session):
        services.commissions.calculate(1, tree["buyer"].id, "100.00")
        older = services.commissions.calculate(2, tree["buyer"].id, "30.00").unwrap()
        services.commissions.calculate(3, tree["buyer"].id, "20.00")
        services.commissions.cancel_by_order_id(3)
        for commission in db_session.query(Commission).filter(
            Commission.id.in_([c.id for c in older])
        ):
            commission.created_at = datetime.now(timezone.utc) - timedelta(days=3)
        db_session.commit()

        trend = services.commissions.get_commission_trend(tree["member"].id, days=7).unwrap()

        assert len(trend) == 7
        assert trend[-1].day == datetime.now(timezone.utc).date()
        assert (trend[-1].commission, trend[-1].orders) == (Decimal("10.00"), 1)
        assert trend[-1].direct_commission == Decimal("10.00")
        assert trend[-4].commission == Decimal("3.00")
        assert sum(point.orders for point in trend) == 2

        root_today = services.commissions.get_commission_trend(tree["root"].id).unwrap()[-1]
        assert root_today.indirect_commission == Decimal("5.00")
        assert root_today.direct_commission == Decimal("0.00")

    @pytest.mark.parametrize("days, expected", [(0, 7), (-3, 7), (1, 1), (90, 30)])
    def test_commission_trend_window_is_clamped(self, services, tree, days, expected):
        trend = services.commissions.get_commission_trend(tree["member"].id, days=days).unwrap()

        assert len(trend) == expected

    def test_commission_type_summary(self, services, tree, db_session):
        services.commissions.calculate(1, tree["buyer"].id, "100.00")
        older = services.commissions.calculate(2, tree["buyer"].id, "30.00").unwrap()
        services.commissions.calculate(3, tree["buyer"].id, "20.00")
        services.commissions.cancel_by_order_id(3)
        for commission in db_session.query(Commission).filter(
            Commission.id.in_([c.id for c in older])
        ):
            commission.created_at = datetime.now(timezone.utc) - timedelta(days=3)
        db_session.commit()

        member = {
            row.type: row
            for row in services.commissions.get_commission_type_summary(tree["member"].id).unwrap()
        }
        root = {
            row.type: row
            for row in services.commissions.get_commission_type_summary(tree["root"].id).unwrap()
        }
        recent = services.commissions.get_commission_type_summary(
            tree["member"].id, start=datetime.now(timezone.utc) - timedelta(days=1)
        ).unwrap()

        assert (member[CommissionType.DIRECT].count, member[CommissionType.DIRECT].total_amount) == (
            2,
            Decimal("13.00"),
        )
        assert member[CommissionType.INDIRECT].count == 0
        assert root[CommissionType.INDIRECT].total_amount == Decimal("6.50")
        assert [(row.type, row.count) for row in recent] == [
            (CommissionType.DIRECT, 1),
            (CommissionType.INDIRECT, 0),
        ]
