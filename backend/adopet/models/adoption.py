"""
Finalized adoption fact.

Append-only: created once per pet by AdoptionService, never updated or
deleted. The UNIQUE constraint on pet_id is the schema-level guarantee of
at most one adoption per pet.
"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Uuid, CheckConstraint
from sqlalchemy.orm import relationship

from adopet.clock import utcnow
from adopet.db.postgres import Base


class AdoptionRecord(Base):
    """One finalized adoption."""

    __tablename__ = "adoption_record"

    adoption_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    pet_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("pet_record.pet_id"),
        nullable=False,
        unique=True,
    )
    tutor_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.user_id"), nullable=False)
    adopter_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.user_id"), nullable=False)
    adopted_at = Column(DateTime, default=utcnow, nullable=False)

    pet = relationship("PetRecord", back_populates="adoption")

    __table_args__ = (
        CheckConstraint("tutor_id <> adopter_id", name="ck_adoption_tutor_not_adopter"),
    )

