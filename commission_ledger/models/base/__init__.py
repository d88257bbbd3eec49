"""Model base classes, mixins and column types."""

from commission_ledger.models.base.base_model import Base, BaseModel, ModelType
from commission_ledger.models.base.mixins import TimestampMixin, utcnow
from commission_ledger.models.base.types import JSONType, MoneyType, RateType

__all__ = [
    "Base",
    "BaseModel",
    "ModelType",
    "TimestampMixin",
    "utcnow",
    "JSONType",
    "MoneyType",
    "RateType",
]
