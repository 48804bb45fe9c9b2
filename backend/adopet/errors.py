"""
Typed failures of the adoption lifecycle.

Every failure carries a stable ``code`` (used in API payloads and logs) and
the HTTP status the blueprint answers with.

    AdoptionError
    ├── NotFound                 404
    │   ├── PetNotFound
    │   ├── NoAdoptionRecord
    │   └── UserNotFound
    └── InvalidTransition        409
        ├── SelfAdoptionForbidden
        ├── MissingAdopter
        ├── NotPetOwner
        ├── NotNominee
        ├── InvalidState
        └── AlreadyFinalized
            └── DuplicateAdoption
"""

import uuid
from typing import Optional


class AdoptionError(Exception):
    """Base class for adoption lifecycle failures."""

    code = "adoption_error"
    http_status = 400

    def __init__(self, message: str, pet_id: Optional[uuid.UUID] = None):
        super().__init__(message)
        self.message = message
        self.pet_id = pet_id

    def to_dict(self) -> dict:
        return {
            "ok": False,
            "error": self.code,
            "message": self.message,
            "pet_id": str(self.pet_id) if self.pet_id else None,
        }


class NotFound(AdoptionError):
    code = "not_found"
    http_status = 404


class PetNotFound(NotFound):
    code = "pet_not_found"


class NoAdoptionRecord(NotFound):
    code = "no_adoption_record"


class UserNotFound(NotFound):
    code = "user_not_found"


class InvalidTransition(AdoptionError):
    code = "invalid_transition"
    http_status = 409


class SelfAdoptionForbidden(InvalidTransition):
    code = "self_adoption_forbidden"


class MissingAdopter(InvalidTransition):
    code = "missing_adopter"


class NotPetOwner(InvalidTransition):
    code = "not_pet_owner"


class NotNominee(InvalidTransition):
    code = "not_nominee"


class InvalidState(InvalidTransition):
    code = "invalid_state"


class AlreadyFinalized(InvalidTransition):
    code = "already_finalized"


class DuplicateAdoption(AlreadyFinalized):
    code = "duplicate_adoption"
