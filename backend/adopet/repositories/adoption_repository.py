"""
Persistence access for the adoption lifecycle.

Every read and write AdoptionService makes against pet_record,
adoption_record and favorite goes through this class. It never commits;
the caller owns the transaction.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session as DbSession

from adopet.models import AdoptionRecord, AppUser, Favorite, PetRecord, PetStatus


class AdoptionRepository:
    """Row-level access to pets and their adoption fact."""

    def __init__(self, db: DbSession):
        self.db = db

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_pet(self, pet_id: uuid.UUID, lock: bool = False) -> Optional[PetRecord]:
        """
        Load a pet row.

        With lock=True the row is held (SELECT ... FOR UPDATE) until the
        transaction ends, serializing concurrent writers on the same pet.
        """
        query = self.db.query(PetRecord).filter(PetRecord.pet_id == pet_id)
        if lock:
            query = query.with_for_update()
        return query.one_or_none()

    def get_adoption(self, pet_id: uuid.UUID) -> Optional[AdoptionRecord]:
        return (
            self.db.query(AdoptionRecord)
            .filter(AdoptionRecord.pet_id == pet_id)
            .one_or_none()
        )

    def load(
        self, pet_id: uuid.UUID, lock: bool = False
    ) -> Tuple[Optional[PetRecord], Optional[AdoptionRecord]]:
        """Pet row plus its adoption (if any)."""
        pet = self.get_pet(pet_id, lock=lock)
        if pet is None:
            return None, None
        return pet, self.get_adoption(pet_id)

    def user_exists(self, user_id: uuid.UUID) -> bool:
        return (
            self.db.query(AppUser.user_id).filter(AppUser.user_id == user_id).first()
            is not None
        )

    def find_stalled_nominations(self, cutoff: datetime) -> List[uuid.UUID]:
        """
        Pets whose nominee confirmed but no adoption was registered in time.

        ADOPTED, no AdoptionRecord, not rejected, nominee set and confirmed,
        marked at or before the cutoff.
        """
        rows = (
            self.db.query(PetRecord.pet_id)
            .filter(
                PetRecord.status == PetStatus.ADOPTED,
                ~PetRecord.adoption.has(),
                PetRecord.adoption_rejected_at.is_(None),
                PetRecord.pending_adopter_id.isnot(None),
                PetRecord.adopter_confirmed_at.isnot(None),
                PetRecord.marked_adopted_at <= cutoff,
            )
            .order_by(PetRecord.marked_adopted_at)
            .all()
        )
        return [row.pet_id for row in rows]

    def find_unconfirmed_adoptions(self, cutoff: datetime) -> List[uuid.UUID]:
        """Registered adoptions adopted at or before the cutoff, neither confirmed nor rejected."""
        rows = (
            self.db.query(AdoptionRecord.pet_id)
            .join(PetRecord, PetRecord.pet_id == AdoptionRecord.pet_id)
            .filter(
                PetRecord.adopet_confirmed_at.is_(None),
                PetRecord.adoption_rejected_at.is_(None),
                AdoptionRecord.adopted_at <= cutoff,
            )
            .order_by(AdoptionRecord.adopted_at)
            .all()
        )
        return [row.pet_id for row in rows]

    def list_open_feed(self, limit: int = 50) -> List[PetRecord]:
        """Pets still open for adoption, newest first."""
        return (
            self.db.query(PetRecord)
            .filter(PetRecord.status == PetStatus.AVAILABLE)
            .order_by(PetRecord.created_at.desc())
            .limit(limit)
            .all()
        )

    # -------------------------------------------------------------------------
    # Writes (flushed, never committed)
    # -------------------------------------------------------------------------

    def apply_changes(self, pet: PetRecord, changes: Dict[str, Any], now: datetime) -> None:
        for column, value in changes.items():
            setattr(pet, column, value)
        pet.updated_at = now

    def add_adoption(
        self,
        pet_id: uuid.UUID,
        tutor_id: uuid.UUID,
        adopter_id: uuid.UUID,
        adopted_at: datetime,
    ) -> AdoptionRecord:
        """
        Insert the adoption fact.

        Flushes immediately so a UNIQUE(pet_id) violation surfaces here as
        an IntegrityError rather than at commit.
        """
        record = AdoptionRecord(
            pet_id=pet_id,
            tutor_id=tutor_id,
            adopter_id=adopter_id,
            adopted_at=adopted_at,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def clear_favorites(self, pet_id: uuid.UUID) -> int:
        """Delete every favorite on the pet; returns how many were removed."""
        return (
            self.db.query(Favorite)
            .filter(Favorite.pet_id == pet_id)
            .delete(synchronize_session=False)
        )
