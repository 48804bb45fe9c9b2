"""
Pet listing row carrying the adoption-lifecycle fields, plus favorites.

Favorites are only ever bulk-deleted by AdoptionRepository.clear_favorites.

Lifecycle columns are written only by AdoptionService; see
adopet.lifecycle.engine for how the derived state is computed from them.
"""

import uuid
from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    Text,
    Uuid,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from adopet.clock import utcnow
from adopet.db.postgres import Base


class PetStatus:
    """Coarse pet status values."""
    AVAILABLE = "AVAILABLE"
    ADOPTED = "ADOPTED"  # Never reverts, even when the adoption is rejected


class PetRecord(Base):
    """
    One row per pet, owned by the tutor who listed it.

    pending_adopter_id is the tutor's proposal; the AdoptionRecord is the
    fact. The proposal is cleared in the same transaction that creates the
    fact or rejects the nomination.
    """

    __tablename__ = "pet_record"

    pet_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.user_id"), nullable=False)
    name = Column(String(120), nullable=False)
    status = Column(String(20), default=PetStatus.AVAILABLE, nullable=False)

    # Nomination (tutor) and self-confirmation (adopter)
    pending_adopter_id = Column(
        Uuid(as_uuid=True), ForeignKey("app_user.user_id"), nullable=True
    )
    marked_adopted_at = Column(DateTime, nullable=True)
    adopter_confirmed_at = Column(DateTime, nullable=True)

    # Platform decisions
    adoption_rejected_at = Column(DateTime, nullable=True)
    adoption_rejection_reason = Column(Text, nullable=True)
    adopet_confirmed_at = Column(DateTime, nullable=True)  # "Confirmed by Adopet" badge

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    adoption = relationship("AdoptionRecord", back_populates="pet", uselist=False)

    __table_args__ = (
        Index("ix_pet_record_status", "status"),
        Index("ix_pet_record_marked_adopted_at", "marked_adopted_at"),
    )


class Favorite(Base):
    """A user's interest marker on a pet listing."""

    __tablename__ = "favorite"

    favorite_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.user_id"), nullable=False)
    pet_id = Column(Uuid(as_uuid=True), ForeignKey("pet_record.pet_id"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "pet_id", name="uq_favorite_user_pet"),
    )
