"""
EventLogService: append-only audit of adoption transitions.

Events are added to the caller's session and committed with the transition
they describe, so the ledger never records a transition that rolled back.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session as DbSession

from adopet.lifecycle import Decision
from adopet.models import AdoptionEvent


class EventLogService:
    """INSERT-only adoption ledger; events are never updated or deleted."""

    def __init__(self, db: DbSession):
        self.db = db

    def append_event(
        self,
        pet_id: uuid.UUID,
        event_type: str,
        actor_kind: str,
        actor_user_id: Optional[uuid.UUID] = None,
        payload: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> AdoptionEvent:
        """Append an event to the ledger (added, not committed)."""
        event = AdoptionEvent(
            pet_id=pet_id,
            event_type=event_type,
            actor_kind=actor_kind,
            actor_user_id=actor_user_id,
            payload_json=payload,
        )
        if created_at is not None:
            event.created_at = created_at
        self.db.add(event)
        return event

    def record_decision(
        self, pet_id: uuid.UUID, decision: Decision, at: Optional[datetime] = None
    ) -> AdoptionEvent:
        """Log an applied lifecycle decision, stamped with the decision time."""
        action = decision.action
        return self.append_event(
            pet_id=pet_id,
            event_type=decision.event_type,
            actor_kind=action.actor_kind.value,
            actor_user_id=action.actor_user_id,
            payload=decision.audit_payload(),
            created_at=at,
        )

    def list_events(self, pet_id: uuid.UUID) -> List[AdoptionEvent]:
        """Ledger entries for one pet, oldest first."""
        return (
            self.db.query(AdoptionEvent)
            .filter(AdoptionEvent.pet_id == pet_id)
            .order_by(AdoptionEvent.created_at, AdoptionEvent.event_id)
            .all()
        )
