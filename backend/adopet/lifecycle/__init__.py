"""
Adoption lifecycle: derived states, actions and the pure decision engine.
"""

from .engine import (
    AdoptionLifecycle,
    AdoptionState,
    AdoptionView,
    ActorKind,
    Decision,
    EventType,
    Failure,
    NotificationKind,
    Notify,
    AwardAdoptionPoints,
    Outcome,
    PetView,
    TRANSITIONS,
    derive_state,
    allowed_actions,
    NominateAdopter,
    ConfirmByAdopter,
    RegisterAdoption,
    SystemTimeout,
    RejectNomination,
    PlatformConfirm,
    PlatformReject,
    SystemReconcile,
)

__all__ = [
    "AdoptionLifecycle",
    "AdoptionState",
    "AdoptionView",
    "ActorKind",
    "Decision",
    "EventType",
    "Failure",
    "NotificationKind",
    "Notify",
    "AwardAdoptionPoints",
    "Outcome",
    "PetView",
    "TRANSITIONS",
    "derive_state",
    "allowed_actions",
    # Actions
    "NominateAdopter",
    "ConfirmByAdopter",
    "RegisterAdoption",
    "SystemTimeout",
    "RejectNomination",
    "PlatformConfirm",
    "PlatformReject",
    "SystemReconcile",
]
