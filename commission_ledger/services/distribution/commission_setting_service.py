"""
Commission setting service.

Resolves the effective commission configuration: the active settings
row when one exists, otherwise the environment defaults.
"""

from decimal import Decimal
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from commission_ledger.config.settings import Settings, get_settings
from commission_ledger.core.exceptions import InvalidConfigurationError
from commission_ledger.models.distribution import CommissionSetting
from commission_ledger.repositories.distribution import CommissionSettingRepository
from commission_ledger.schemas.distribution import CommissionConfig, CommissionConfigUpdate
from commission_ledger.services.base import BaseService, ServiceResult
from commission_ledger.utils.pagination_utils import Page, PaginationParams


class CommissionSettingService(BaseService[CommissionSettingRepository]):
    """Read and update commission parameters."""

    def __init__(
        self,
        setting_repository: CommissionSettingRepository,
        db_session: Session,
        settings: Optional[Settings] = None,
    ):
        super().__init__(setting_repository, db_session)
        self.settings = settings or get_settings()

    def get_config(self) -> ServiceResult[CommissionConfig]:
        return self._run_query("get commission config", self.load_config)

    def get_config_history(
        self, page: int = 1, page_size: int = 20
    ) -> ServiceResult[Page[CommissionSetting]]:
        """Stored configurations, newest first; the active row is the first when present."""
        return self._run_query(
            "get commission config history",
            lambda: self.repository.list_history(PaginationParams(page=page, page_size=page_size)),
        )

    def update_config(self, payload: dict) -> ServiceResult[CommissionConfig]:
        """
        Validate and store new parameters as the active configuration.

        Earlier rows are kept for history and deactivated.
        """
        try:
            update = CommissionConfigUpdate.model_validate(payload)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first["loc"]) or None
            return ServiceResult.validation_failure(
                first["msg"], field=field, details={"errors": e.errors(include_url=False)}
            )

        def _store() -> CommissionConfig:
            active = self.repository.get_active()
            if active is not None:
                active.is_active = False
            row = self.repository.create(
                CommissionSetting(is_active=True, **update.model_dump())
            )
            self._log_operation("commission config updated", row.id, extra={
                "direct_rate": str(row.direct_rate),
                "indirect_rate": str(row.indirect_rate),
            })
            return CommissionConfig.model_validate(row)

        return self._run_in_transaction("update commission config", _store)

    # ------------------------------------------------------------------ #
    # Used by other services inside their own units of work
    # ------------------------------------------------------------------ #

    def load_config(self) -> CommissionConfig:
        row = self.repository.get_active()
        if row is not None:
            return CommissionConfig.model_validate(row)

        config = CommissionConfig(
            direct_rate=self.settings.COMMISSION_DIRECT_RATE,
            indirect_rate=self.settings.COMMISSION_INDIRECT_RATE,
            min_withdraw=self.settings.WITHDRAW_MIN_AMOUNT,
            withdraw_fee_rate=self.settings.WITHDRAW_FEE_RATE,
            settle_delay_days=self.settings.COMMISSION_SETTLE_DELAY_DAYS,
            max_pending_withdrawals=self.settings.WITHDRAW_MAX_PENDING,
        )
        if config.direct_rate + config.indirect_rate > Decimal("0.5"):
            raise InvalidConfigurationError("Combined commission rate exceeds 0.5")
        return config
