"""
Repositories over the adoption tables.
"""

from .adoption_repository import AdoptionRepository

__all__ = ["AdoptionRepository"]
