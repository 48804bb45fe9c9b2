"""
SQLAlchemy models for Adopet.

These are the authoritative PostgreSQL tables.
"""

from .user import AppUser
from .pet import PetRecord, PetStatus, Favorite
from .adoption import AdoptionRecord
from .event_log import AdoptionEvent

__all__ = [
    # Users
    "AppUser",
    # Pets
    "PetRecord",
    "PetStatus",
    "Favorite",
    # Adoption fact
    "AdoptionRecord",
    # Audit
    "AdoptionEvent",
]
