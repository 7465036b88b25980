"""SQLAlchemy ORM models for EventTrack.

All models are exported from this module for convenient imports:
    from eventtrack.models import Account
"""

from eventtrack.models.account import Account
from eventtrack.models.base import Base

__all__ = [
    "Account",
    "Base",
]
