"""SQLAlchemy Base class for all models."""
from commission_ledger.models.base import Base


def import_models():
    """Import all models to register them with SQLAlchemy."""
    import commission_ledger.models  # noqa: F401


import_models()

__all__ = ["Base", "import_models"]
