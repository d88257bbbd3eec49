"""
User repository.
"""

from sqlalchemy.orm import Session

from commission_ledger.models.user import User
from commission_ledger.repositories.base.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """Lookups and locked loads of platform users."""

    def __init__(self, db: Session):
        super().__init__(User, db)
