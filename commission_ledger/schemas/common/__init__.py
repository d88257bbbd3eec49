"""Common schema building blocks."""

from commission_ledger.schemas.common.base import BaseResponseSchema, BaseSchema

__all__ = ["BaseResponseSchema", "BaseSchema"]
