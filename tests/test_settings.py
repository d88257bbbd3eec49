"""Tests for environment settings and commission configuration updates."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from commission_ledger.config.settings import Settings
from commission_ledger.core.exceptions import ErrorCode
from commission_ledger.models.distribution import CommissionSetting


class TestSettings:
    def test_defaults(self):
        settings = Settings(DATABASE_URL="sqlite://")

        assert settings.COMMISSION_DIRECT_RATE == Decimal("0.10")
        assert settings.COMMISSION_INDIRECT_RATE == Decimal("0.05")
        assert settings.WITHDRAW_MIN_AMOUNT == Decimal("10.00")
        assert settings.is_sqlite()

    def test_log_level_is_normalized(self):
        assert Settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"COMMISSION_DIRECT_RATE": Decimal("1.5")},
            {"WITHDRAW_FEE_RATE": Decimal("-0.1")},
            {"COMMISSION_DIRECT_RATE": Decimal("0.40"), "COMMISSION_INDIRECT_RATE": Decimal("0.20")},
            {"LOG_FORMAT": "xml"},
            {"LOG_LEVEL": "LOUD"},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValidationError):
            Settings(**overrides)

    def test_environment_helpers(self):
        assert Settings(ENVIRONMENT="production").is_production()
        assert Settings(ENVIRONMENT="development").is_development()


class TestCommissionConfig:
    def _payload(self, **overrides):
        payload = {
            "direct_rate": "0.12",
            "indirect_rate": "0.06",
            "min_withdraw": "20.00",
            "withdraw_fee_rate": "0.01",
            "settle_delay_days": 3,
            "max_pending_withdrawals": 2,
        }
        payload.update(overrides)
        return payload

    def test_update_replaces_active_row(self, services, db_session):
        services.commission_settings.update_config(self._payload()).unwrap()
        services.commission_settings.update_config(self._payload(direct_rate="0.15")).unwrap()

        config = services.commission_settings.get_config().unwrap()

        assert config.direct_rate == Decimal("0.15")
        assert config.settle_delay_days == 3
        assert db_session.query(CommissionSetting).count() == 2
        assert db_session.query(CommissionSetting).filter_by(is_active=True).count() == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"direct_rate": "0.40", "indirect_rate": "0.20"},
            {"withdraw_fee_rate": "1.5"},
            {"settle_delay_days": -1},
            {"min_withdraw": "-1"},
        ],
    )
    def test_invalid_update_rejected(self, services, db_session, overrides):
        result = services.commission_settings.update_config(self._payload(**overrides))

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert db_session.query(CommissionSetting).count() == 0

    def test_withdrawal_rules_follow_active_row(self, services, make_user):
        services.commission_settings.update_config(self._payload()).unwrap()
        user = make_user()
        services.wallet.recharge(user.id, "100.00")

        below_minimum = services.withdrawals.apply(user.id, "wallet", "15.00", "bank")
        withdrawal = services.withdrawals.apply(user.id, "wallet", "20.00", "bank").unwrap()

        assert below_minimum.error_code == ErrorCode.VALIDATION_ERROR
        assert withdrawal.fee == Decimal("0.20")

    def test_config_history_newest_first(self, services):
        services.commission_settings.update_config(self._payload()).unwrap()
        services.commission_settings.update_config(self._payload(direct_rate="0.15")).unwrap()

        history = services.commission_settings.get_config_history().unwrap()
        first_page = services.commission_settings.get_config_history(page=1, page_size=1).unwrap()

        assert history.total == 2
        assert [row.direct_rate for row in history.items] == [Decimal("0.15"), Decimal("0.12")]
        assert [row.is_active for row in history.items] == [True, False]
        assert len(first_page.items) == 1
        assert first_page.has_next

    def test_config_history_empty_without_updates(self, services):
        history = services.commission_settings.get_config_history().unwrap()

        assert history.total == 0
        assert history.items == []
