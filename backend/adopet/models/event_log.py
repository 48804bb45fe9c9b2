"""
Adoption event ledger for audit.

Append-only: one row per applied lifecycle transition, written in the same
transaction as the transition itself.
"""

import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid, JSON, Index
from sqlalchemy.dialects.postgresql import JSONB

from adopet.clock import utcnow
from adopet.db.postgres import Base


class AdoptionEvent(Base):
    """Append-only audit ledger of adoption transitions."""

    __tablename__ = "adoption_event"

    event_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    pet_id = Column(Uuid(as_uuid=True), ForeignKey("pet_record.pet_id"), nullable=False)
    event_type = Column(String(100), nullable=False)  # Adoption.Nominated, Adoption.Finalized, etc.

    # Who acted: tutor | adopter | admin | system
    actor_kind = Column(String(20), nullable=False)
    actor_user_id = Column(Uuid(as_uuid=True), nullable=True)

    payload_json = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_adoption_event_pet", "pet_id"),
    )
