"""
Custom SQLAlchemy types for monetary and rate columns.
"""

import json
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from sqlalchemy import Numeric, Text, TypeDecorator


class MoneyType(TypeDecorator):
    """
    Money type with fixed precision (2 decimal places).

    Values are rounded half-up on write and always read back as Decimal.
    """

    impl = Numeric(15, 2)
    cache_ok = True

    def process_bind_param(self, value: Optional[Decimal], dialect) -> Optional[Decimal]:
        if value is None:
            return value

        if not isinstance(value, Decimal):
            value = Decimal(str(value))

        return value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    def process_result_value(self, value: Any, dialect) -> Optional[Decimal]:
        if value is None:
            return value
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


class RateType(TypeDecorator):
    """Fractional rate stored with four decimal places."""

    impl = Numeric(5, 4)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Optional[Decimal]:
        if value is None:
            return value
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return value.quantize(Decimal('0.0001'), rounding=ROUND_HALF_UP)

    def process_result_value(self, value: Any, dialect) -> Optional[Decimal]:
        if value is None:
            return value
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return value.quantize(Decimal('0.0001'), rounding=ROUND_HALF_UP)


class JSONType(TypeDecorator):
    """
    Portable JSON column stored as text.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Optional[str]:
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False, default=str)

    def process_result_value(self, value: Any, dialect) -> Any:
        if value is None:
            return None
        return json.loads(value)
