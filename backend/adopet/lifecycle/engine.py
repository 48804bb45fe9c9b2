"""
Adoption lifecycle engine.

Pure decision logic: given a snapshot of a pet (PetView) and an incoming
actor action, compute the Decision - field changes, an optional new
adoption, and the side effects to run after commit. No I/O happens here;
AdoptionService applies decisions inside a transaction.

TRANSITIONS below is the single source of truth for which action may move a
pet out of which derived state.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union


# =============================================================================
# Enums
# =============================================================================

class AdoptionState(str, Enum):
    """Derived lifecycle state (never stored, always computed)."""
    OPEN = "open"                                      # status=AVAILABLE
    NOMINATED = "nominated"                            # tutor named a candidate
    AWAITING_FINALIZATION = "awaiting_finalization"    # candidate self-confirmed
    FINALIZED = "finalized"                            # AdoptionRecord exists
    REJECTED = "rejected"                              # nomination rejected (terminal)


class ActorKind(str, Enum):
    TUTOR = "tutor"
    ADOPTER = "adopter"
    ADMIN = "admin"
    SYSTEM = "system"


class Outcome(str, Enum):
    APPLIED = "applied"
    NOOP = "noop"
    FAILED = "failed"


class Failure(str, Enum):
    """Decision failures; AdoptionService maps each to an adopet.errors class."""
    PET_NOT_FOUND = "pet_not_found"
    NO_ADOPTION_RECORD = "no_adoption_record"
    DUPLICATE_ADOPTION = "duplicate_adoption"
    ALREADY_FINALIZED = "already_finalized"
    SELF_ADOPTION_FORBIDDEN = "self_adoption_forbidden"
    MISSING_ADOPTER = "missing_adopter"
    NOT_PET_OWNER = "not_pet_owner"
    NOT_NOMINEE = "not_nominee"
    INVALID_STATE = "invalid_state"


class NotificationKind:
    """Notification kinds handed to the NotificationSink."""
    ADOPTION_NOMINATED = "adoption_nominated"
    ADOPTION_PENDING_REVIEW = "adoption_pending_review"
    ADOPTER_CONFIRMED = "adopter_confirmed"
    ADOPTION_FINALIZED = "adoption_finalized"
    ADOPTION_CONFIRMED_BY_PLATFORM = "adoption_confirmed_by_platform"


class EventType:
    """Audit ledger event types."""
    NOMINATED = "Adoption.Nominated"
    ADOPTER_CONFIRMED = "Adoption.AdopterConfirmed"
    FINALIZED = "Adoption.Finalized"
    AUTO_FINALIZED = "Adoption.AutoFinalized"
    NOMINATION_REJECTED = "Adoption.NominationRejected"
    PLATFORM_CONFIRMED = "Adoption.PlatformConfirmed"
    PLATFORM_REJECTED = "Adoption.PlatformRejected"
    AUTO_CONFIRMED = "Adoption.AutoConfirmed"


# =============================================================================
# Snapshots
# =============================================================================

@dataclass(frozen=True)
class AdoptionView:
    """Read-only copy of an AdoptionRecord."""

    adoption_id: uuid.UUID
    tutor_id: uuid.UUID
    adopter_id: uuid.UUID
    adopted_at: datetime

    @classmethod
    def from_record(cls, record) -> "AdoptionView":
        return cls(
            adoption_id=record.adoption_id,
            tutor_id=record.tutor_id,
            adopter_id=record.adopter_id,
            adopted_at=record.adopted_at,
        )


@dataclass(frozen=True)
class PetView:
    """
    Read-only copy of a PetRecord plus its AdoptionRecord (if any).

    This is both the engine's input and the projection AdoptionService
    returns to callers.
    """

    pet_id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    status: str
    pending_adopter_id: Optional[uuid.UUID] = None
    marked_adopted_at: Optional[datetime] = None
    adopter_confirmed_at: Optional[datetime] = None
    adoption_rejected_at: Optional[datetime] = None
    adoption_rejection_reason: Optional[str] = None
    adopet_confirmed_at: Optional[datetime] = None
    adoption: Optional[AdoptionView] = None

    @classmethod
    def from_records(cls, pet, adoption=None) -> "PetView":
        """Snapshot ORM rows. The adoption is passed in, never lazy-loaded."""
        return cls(
            pet_id=pet.pet_id,
            owner_id=pet.owner_id,
            name=pet.name,
            status=pet.status,
            pending_adopter_id=pet.pending_adopter_id,
            marked_adopted_at=pet.marked_adopted_at,
            adopter_confirmed_at=pet.adopter_confirmed_at,
            adoption_rejected_at=pet.adoption_rejected_at,
            adoption_rejection_reason=pet.adoption_rejection_reason,
            adopet_confirmed_at=pet.adopet_confirmed_at,
            adoption=AdoptionView.from_record(adoption) if adoption is not None else None,
        )

    @property
    def state(self) -> AdoptionState:
        return derive_state(self)

    @property
    def is_rejected(self) -> bool:
        return self.adoption_rejected_at is not None

    @property
    def is_platform_confirmed(self) -> bool:
        return self.adopet_confirmed_at is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        def _iso(value):
            return value.isoformat() if value else None

        def _str(value):
            return str(value) if value else None

        return {
            "pet_id": str(self.pet_id),
            "owner_id": str(self.owner_id),
            "name": self.name,
            "status": self.status,
            "state": self.state.value,
            "pending_adopter_id": _str(self.pending_adopter_id),
            "marked_adopted_at": _iso(self.marked_adopted_at),
            "adopter_confirmed_at": _iso(self.adopter_confirmed_at),
            "adoption_rejected_at": _iso(self.adoption_rejected_at),
            "adoption_rejection_reason": self.adoption_rejection_reason,
            "adopet_confirmed_at": _iso(self.adopet_confirmed_at),
            "confirmed_by_adopet": self.is_platform_confirmed,
            "adoption": (
                {
                    "adoption_id": str(self.adoption.adoption_id),
                    "tutor_id": str(self.adoption.tutor_id),
                    "adopter_id": str(self.adoption.adopter_id),
                    "adopted_at": _iso(self.adoption.adopted_at),
                }
                if self.adoption
                else None
            ),
        }


def derive_state(pet: PetView) -> AdoptionState:
    """Compute the lifecycle state from the stored field combination."""
    if pet.adoption is not None:
        return AdoptionState.FINALIZED
    if pet.adoption_rejected_at is not None:
        return AdoptionState.REJECTED
    if pet.status != "ADOPTED":
        return AdoptionState.OPEN
    if pet.adopter_confirmed_at is not None:
        return AdoptionState.AWAITING_FINALIZATION
    return AdoptionState.NOMINATED


# =============================================================================
# Actions
# =============================================================================

@dataclass(frozen=True)
class NominateAdopter:
    """Tutor marks the pet adopted, naming a candidate."""
    tutor_id: uuid.UUID
    adopter_id: Optional[uuid.UUID]

    actor_kind = ActorKind.TUTOR

    @property
    def actor_user_id(self):
        return self.tutor_id


@dataclass(frozen=True)
class ConfirmByAdopter:
    """Nominated adopter confirms they took the pet."""
    adopter_id: uuid.UUID

    actor_kind = ActorKind.ADOPTER

    @property
    def actor_user_id(self):
        return self.adopter_id


@dataclass(frozen=True)
class RegisterAdoption:
    """Admin registers the adoption (explicit adopter or the nominee)."""
    adopter_id: Optional[uuid.UUID] = None
    admin_id: Optional[uuid.UUID] = None

    actor_kind = ActorKind.ADMIN

    @property
    def actor_user_id(self):
        return self.admin_id


@dataclass(frozen=True)
class SystemTimeout:
    """Escalation: the nominee confirmed and the window elapsed with no admin action."""

    actor_kind = ActorKind.SYSTEM
    actor_user_id = None


@dataclass(frozen=True)
class RejectNomination:
    """Admin rejects the tutor's nomination before any adoption exists."""
    reason: Optional[str] = None
    admin_id: Optional[uuid.UUID] = None

    actor_kind = ActorKind.ADMIN

    @property
    def actor_user_id(self):
        return self.admin_id


@dataclass(frozen=True)
class PlatformConfirm:
    """Admin confirms a registered adoption (idempotent)."""
    admin_id: Optional[uuid.UUID] = None

    actor_kind = ActorKind.ADMIN

    @property
    def actor_user_id(self):
        return self.admin_id


@dataclass(frozen=True)
class PlatformReject:
    """Admin rejects a registered adoption post-hoc; the record is kept."""
    reason: Optional[str] = None
    admin_id: Optional[uuid.UUID] = None

    actor_kind = ActorKind.ADMIN

    @property
    def actor_user_id(self):
        return self.admin_id


@dataclass(frozen=True)
class SystemReconcile:
    """Escalation: a registered adoption sat unconfirmed past the window."""

    actor_kind = ActorKind.SYSTEM
    actor_user_id = None


Action = Union[
    NominateAdopter,
    ConfirmByAdopter,
    RegisterAdoption,
    SystemTimeout,
    RejectNomination,
    PlatformConfirm,
    PlatformReject,
    SystemReconcile,
]


_OPEN = AdoptionState.OPEN
_NOMINATED = AdoptionState.NOMINATED
_AWAITING = AdoptionState.AWAITING_FINALIZATION
_FINALIZED = AdoptionState.FINALIZED
_REJECTED = AdoptionState.REJECTED

# action -> {from_state: to_state}
TRANSITIONS: Dict[type, Dict[AdoptionState, AdoptionState]] = {
    NominateAdopter: {_OPEN: _NOMINATED},
    ConfirmByAdopter: {_NOMINATED: _AWAITING},
    RegisterAdoption: {
        _OPEN: _FINALIZED,
        _NOMINATED: _FINALIZED,
        _AWAITING: _FINALIZED,
        _REJECTED: _FINALIZED,  # manual admin override with an explicit adopter
    },
    SystemTimeout: {_AWAITING: _FINALIZED},
    RejectNomination: {_NOMINATED: _REJECTED, _AWAITING: _REJECTED},
    PlatformConfirm: {_FINALIZED: _FINALIZED},
    PlatformReject: {_FINALIZED: _FINALIZED},
    SystemReconcile: {_FINALIZED: _FINALIZED},
}


# =============================================================================
# Decisions
# =============================================================================

@dataclass(frozen=True)
class Notify:
    """Fire-and-forget notification to one user."""
    user_id: uuid.UUID
    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AwardAdoptionPoints:
    """Fire-and-forget gamification trigger for a finalized adoption."""
    tutor_id: uuid.UUID
    adopter_id: uuid.UUID


SideEffect = Union[Notify, AwardAdoptionPoints]


@dataclass(frozen=True)
class NewAdoption:
    """The AdoptionRecord a decision asks the service to insert."""
    tutor_id: uuid.UUID
    adopter_id: uuid.UUID
    adopted_at: datetime


@dataclass
class Decision:
    """Result of evaluating one action against one pet."""

    action: Any
    outcome: Outcome
    state_before: Optional[AdoptionState] = None
    state_after: Optional[AdoptionState] = None
    failure: Optional[Failure] = None
    message: str = ""
    pet_changes: Dict[str, Any] = field(default_factory=dict)
    new_adoption: Optional[NewAdoption] = None
    clear_favorites: bool = False
    effects: List[SideEffect] = field(default_factory=list)
    event_type: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.outcome == Outcome.APPLIED

    @property
    def failed(self) -> bool:
        return self.outcome == Outcome.FAILED

    def audit_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "state_before": self.state_before.value if self.state_before else None,
            "state_after": self.state_after.value if self.state_after else None,
        }
        if self.new_adoption:
            payload["tutor_id"] = str(self.new_adoption.tutor_id)
            payload["adopter_id"] = str(self.new_adoption.adopter_id)
        reason = self.pet_changes.get("adoption_rejection_reason")
        if reason:
            payload["reason"] = reason
        return payload


# =============================================================================
# Engine
# =============================================================================

class AdoptionLifecycle:
    """
    Stateless evaluator of lifecycle actions.

    Args:
        confirmation_window: how long a confirmed nomination (or an
            unconfirmed adoption) may sit before the system advances it.
        admin_user_ids: admins notified when a tutor nominates an adopter.
    """

    def __init__(
        self,
        confirmation_window: timedelta = timedelta(hours=48),
        admin_user_ids: Iterable[uuid.UUID] = (),
    ):
        self.confirmation_window = confirmation_window
        self.admin_user_ids = tuple(admin_user_ids)
        self._handlers = {
            NominateAdopter: self._nominate,
            ConfirmByAdopter: self._confirm_by_adopter,
            RegisterAdoption: self._register,
            SystemTimeout: self._system_timeout,
            RejectNomination: self._reject_nomination,
            PlatformConfirm: self._platform_confirm,
            PlatformReject: self._platform_reject,
            SystemReconcile: self._system_reconcile,
        }

    def cutoff(self, now: datetime) -> datetime:
        """Anything stamped at or before this moment has exhausted its window."""
        return now - self.confirmation_window

    def decide(self, pet: Optional[PetView], action: Action, now: datetime) -> Decision:
        if pet is None:
            return Decision(
                action=action,
                outcome=Outcome.FAILED,
                failure=Failure.PET_NOT_FOUND,
                message="Pet not found",
            )
        handler = self._handlers[type(action)]
        return handler(pet, action, now)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _target(action, state: AdoptionState) -> Optional[AdoptionState]:
        return TRANSITIONS[type(action)].get(state)

    @staticmethod
    def _fail(pet: PetView, action, failure: Failure, message: str) -> Decision:
        return Decision(
            action=action,
            outcome=Outcome.FAILED,
            state_before=pet.state,
            state_after=pet.state,
            failure=failure,
            message=message,
        )

    @staticmethod
    def _noop(pet: PetView, action, message: str) -> Decision:
        return Decision(
            action=action,
            outcome=Outcome.NOOP,
            state_before=pet.state,
            state_after=pet.state,
            message=message,
        )

    @staticmethod
    def _pair(pet: PetView, tutor_id, adopter_id, kind: str, **extra) -> List[SideEffect]:
        """One notification for each side of an adoption."""
        effects: List[SideEffect] = []
        for user_id, role in ((tutor_id, "tutor"), (adopter_id, "adopter")):
            payload = {"pet_id": str(pet.pet_id), "pet_name": pet.name, "role": role}
            payload.update(extra)
            effects.append(Notify(user_id=user_id, kind=kind, payload=payload))
        return effects

    def _finalize(
        self,
        pet: PetView,
        action,
        adopter_id: uuid.UUID,
        now: datetime,
        platform_confirmed: bool,
    ) -> Decision:
        changes: Dict[str, Any] = {
            "status": "ADOPTED",
            "pending_adopter_id": None,
            "adoption_rejected_at": None,
            "adoption_rejection_reason": None,
        }
        if pet.marked_adopted_at is None:
            changes["marked_adopted_at"] = now
        if platform_confirmed:
            changes["adopet_confirmed_at"] = now

        effects = self._pair(
            pet,
            pet.owner_id,
            adopter_id,
            NotificationKind.ADOPTION_FINALIZED,
            confirmed_by_adopet=platform_confirmed,
        )
        effects.append(AwardAdoptionPoints(tutor_id=pet.owner_id, adopter_id=adopter_id))

        return Decision(
            action=action,
            outcome=Outcome.APPLIED,
            state_before=pet.state,
            state_after=AdoptionState.FINALIZED,
            pet_changes=changes,
            new_adoption=NewAdoption(
                tutor_id=pet.owner_id, adopter_id=adopter_id, adopted_at=now
            ),
            clear_favorites=True,
            effects=effects,
            event_type=EventType.AUTO_FINALIZED if platform_confirmed else EventType.FINALIZED,
        )

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _nominate(self, pet: PetView, action: NominateAdopter, now: datetime) -> Decision:
        if action.tutor_id != pet.owner_id:
            return self._fail(pet, action, Failure.NOT_PET_OWNER, "Only the tutor can mark this pet as adopted")

        state = pet.state
        target = self._target(action, state)
        if target is None:
            if state == AdoptionState.FINALIZED:
                return self._fail(pet, action, Failure.ALREADY_FINALIZED, "Pet already has a registered adoption")
            return self._fail(pet, action, Failure.INVALID_STATE, f"Cannot nominate an adopter from state {state.value}")
        if action.adopter_id is None:
            return self._fail(pet, action, Failure.MISSING_ADOPTER, "An adopter must be nominated")
        if action.adopter_id == pet.owner_id:
            return self._fail(pet, action, Failure.SELF_ADOPTION_FORBIDDEN, "The adopter cannot be the tutor")

        payload = {"pet_id": str(pet.pet_id), "pet_name": pet.name}
        effects: List[SideEffect] = [
            Notify(
                user_id=action.adopter_id,
                kind=NotificationKind.ADOPTION_NOMINATED,
                payload=dict(payload, role="adopter"),
            )
        ]
        for admin_id in self.admin_user_ids:
            effects.append(
                Notify(
                    user_id=admin_id,
                    kind=NotificationKind.ADOPTION_PENDING_REVIEW,
                    payload=dict(payload, tutor_id=str(pet.owner_id)),
                )
            )

        return Decision(
            action=action,
            outcome=Outcome.APPLIED,
            state_before=state,
            state_after=target,
            pet_changes={
                "status": "ADOPTED",
                "pending_adopter_id": action.adopter_id,
                "marked_adopted_at": now,
                "adopter_confirmed_at": None,
            },
            clear_favorites=True,
            effects=effects,
            event_type=EventType.NOMINATED,
        )

    def _confirm_by_adopter(self, pet: PetView, action: ConfirmByAdopter, now: datetime) -> Decision:
        state = pet.state
        is_nominee = pet.pending_adopter_id is not None and pet.pending_adopter_id == action.adopter_id

        if state == AdoptionState.AWAITING_FINALIZATION and is_nominee:
            return self._noop(pet, action, "Adopter already confirmed")

        target = self._target(action, state)
        if target is None:
            if state == AdoptionState.FINALIZED:
                return self._fail(pet, action, Failure.ALREADY_FINALIZED, "Pet already has a registered adoption")
            return self._fail(pet, action, Failure.INVALID_STATE, f"Nothing to confirm in state {state.value}")
        if not is_nominee:
            return self._fail(pet, action, Failure.NOT_NOMINEE, "Only the nominated adopter can confirm")

        return Decision(
            action=action,
            outcome=Outcome.APPLIED,
            state_before=state,
            state_after=target,
            pet_changes={"adopter_confirmed_at": now},
            effects=[
                Notify(
                    user_id=pet.owner_id,
                    kind=NotificationKind.ADOPTER_CONFIRMED,
                    payload={"pet_id": str(pet.pet_id), "pet_name": pet.name, "role": "tutor"},
                )
            ],
            event_type=EventType.ADOPTER_CONFIRMED,
        )

    def _register(self, pet: PetView, action: RegisterAdoption, now: datetime) -> Decision:
        adopter_id = action.adopter_id or pet.pending_adopter_id

        if adopter_id is not None and adopter_id == pet.owner_id:
            return self._fail(pet, action, Failure.SELF_ADOPTION_FORBIDDEN, "The adopter cannot be the tutor")
        if self._target(action, pet.state) is None:
            return self._fail(pet, action, Failure.DUPLICATE_ADOPTION, "Pet already has a registered adoption")
        if adopter_id is None:
            return self._fail(pet, action, Failure.MISSING_ADOPTER, "No adopter given and no nominated candidate")

        return self._finalize(pet, action, adopter_id, now, platform_confirmed=False)

    def _system_timeout(self, pet: PetView, action: SystemTimeout, now: datetime) -> Decision:
        if self._target(action, pet.state) is None:
            return self._noop(pet, action, f"Nothing to escalate in state {pet.state.value}")
        if pet.pending_adopter_id is None:
            return self._noop(pet, action, "No nominated candidate")
        if pet.marked_adopted_at is None or pet.marked_adopted_at > self.cutoff(now):
            return self._noop(pet, action, "Confirmation window still open")
        if pet.pending_adopter_id == pet.owner_id:
            return self._fail(pet, action, Failure.SELF_ADOPTION_FORBIDDEN, "The adopter cannot be the tutor")

        return self._finalize(pet, action, pet.pending_adopter_id, now, platform_confirmed=True)

    def _reject_nomination(self, pet: PetView, action: RejectNomination, now: datetime) -> Decision:
        state = pet.state
        if state == AdoptionState.REJECTED:
            return self._noop(pet, action, "Nomination already rejected")

        target = self._target(action, state)
        if target is None:
            if state == AdoptionState.FINALIZED:
                return self._fail(pet, action, Failure.ALREADY_FINALIZED, "Pet already has a registered adoption")
            return self._fail(pet, action, Failure.INVALID_STATE, "Pet is not marked as adopted")

        return Decision(
            action=action,
            outcome=Outcome.APPLIED,
            state_before=state,
            state_after=target,
            pet_changes={
                "adoption_rejected_at": now,
                "adoption_rejection_reason": action.reason,
                "pending_adopter_id": None,
            },
            event_type=EventType.NOMINATION_REJECTED,
        )

    def _platform_confirm(self, pet: PetView, action: PlatformConfirm, now: datetime) -> Decision:
        if self._target(action, pet.state) is None:
            return self._fail(pet, action, Failure.NO_ADOPTION_RECORD, "Pet has no registered adoption")
        if pet.is_platform_confirmed:
            return self._noop(pet, action, "Adoption already confirmed")
        return self._confirm(pet, action, now, EventType.PLATFORM_CONFIRMED)

    def _platform_reject(self, pet: PetView, action: PlatformReject, now: datetime) -> Decision:
        if self._target(action, pet.state) is None:
            return self._fail(pet, action, Failure.NO_ADOPTION_RECORD, "Pet has no registered adoption")
        if pet.is_rejected:
            return self._noop(pet, action, "Adoption already rejected")

        return Decision(
            action=action,
            outcome=Outcome.APPLIED,
            state_before=pet.state,
            state_after=AdoptionState.FINALIZED,
            pet_changes={
                "adoption_rejected_at": now,
                "adoption_rejection_reason": action.reason,
                "adopet_confirmed_at": None,
            },
            event_type=EventType.PLATFORM_REJECTED,
        )

    def _system_reconcile(self, pet: PetView, action: SystemReconcile, now: datetime) -> Decision:
        if self._target(action, pet.state) is None:
            return self._noop(pet, action, "Pet has no registered adoption")
        if pet.is_platform_confirmed:
            return self._noop(pet, action, "Adoption already confirmed")
        if pet.is_rejected:
            return self._noop(pet, action, "Adoption was rejected")
        if pet.adoption.adopted_at > self.cutoff(now):
            return self._noop(pet, action, "Confirmation window still open")
        return self._confirm(pet, action, now, EventType.AUTO_CONFIRMED)

    def _confirm(self, pet: PetView, action, now: datetime, event_type: str) -> Decision:
        return Decision(
            action=action,
            outcome=Outcome.APPLIED,
            state_before=pet.state,
            state_after=AdoptionState.FINALIZED,
            pet_changes={
                "adopet_confirmed_at": now,
                "adoption_rejected_at": None,
                "adoption_rejection_reason": None,
            },
            effects=self._pair(
                pet,
                pet.adoption.tutor_id,
                pet.adoption.adopter_id,
                NotificationKind.ADOPTION_CONFIRMED_BY_PLATFORM,
            ),
            event_type=event_type,
        )


def allowed_actions(state: AdoptionState) -> Tuple[type, ...]:
    """Action types with a transition out of ``state`` (for admin tooling)."""
    return tuple(action for action, edges in TRANSITIONS.items() if state in edges)
