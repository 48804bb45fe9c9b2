"""
AdoptionService: the only mutation surface of the adoption lifecycle.

Each operation is one engine decision applied in one transaction:

    lock pet row -> snapshot -> AdoptionLifecycle.decide -> write pet +
    adoption + favorites + audit event -> commit -> dispatch side effects

Side effects are dispatched only after commit, and their failures never
reach the caller.
"""

import logging
import uuid
from datetime import timedelta
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from adopet.clock import Clock, SystemClock
from adopet.config import config
from adopet.db.postgres import get_session_factory, session_scope
from adopet.errors import (
    AdoptionError,
    AlreadyFinalized,
    DuplicateAdoption,
    InvalidState,
    MissingAdopter,
    NoAdoptionRecord,
    NotNominee,
    NotPetOwner,
    PetNotFound,
    SelfAdoptionForbidden,
    UserNotFound,
)
from adopet.lifecycle import (
    AdoptionLifecycle,
    ConfirmByAdopter,
    Decision,
    Failure,
    NominateAdopter,
    PetView,
    PlatformConfirm,
    PlatformReject,
    RegisterAdoption,
    RejectNomination,
    SystemReconcile,
    SystemTimeout,
)
from adopet.repositories import AdoptionRepository
from adopet.services.dispatcher import SideEffectDispatcher
from adopet.services.event_log import EventLogService
from adopet.services.gamification import GamificationSink, LoggingGamificationSink
from adopet.services.notifications import FirestoreNotificationSink, NotificationSink


_FAILURE_ERRORS = {
    Failure.PET_NOT_FOUND: PetNotFound,
    Failure.NO_ADOPTION_RECORD: NoAdoptionRecord,
    Failure.DUPLICATE_ADOPTION: DuplicateAdoption,
    Failure.ALREADY_FINALIZED: AlreadyFinalized,
    Failure.SELF_ADOPTION_FORBIDDEN: SelfAdoptionForbidden,
    Failure.MISSING_ADOPTER: MissingAdopter,
    Failure.NOT_PET_OWNER: NotPetOwner,
    Failure.NOT_NOMINEE: NotNominee,
    Failure.INVALID_STATE: InvalidState,
}


def _parse_admin_ids(raw_ids: Iterable[str]) -> List[uuid.UUID]:
    admin_ids = []
    for raw in raw_ids:
        try:
            admin_ids.append(uuid.UUID(raw))
        except ValueError:
            logging.getLogger("service.AdoptionService").warning(
                f"Ignoring malformed admin user id {raw!r}"
            )
    return admin_ids


class AdoptionService:
    """
    Orchestrates adoption lifecycle transitions.

    Collaborators are injectable for tests; defaults come from config.
    """

    def __init__(
        self,
        session_factory=None,
        lifecycle: Optional[AdoptionLifecycle] = None,
        clock: Optional[Clock] = None,
        notification_sink: Optional[NotificationSink] = None,
        gamification_sink: Optional[GamificationSink] = None,
        dispatcher: Optional[SideEffectDispatcher] = None,
    ):
        self._session_factory = session_factory
        self.clock = clock or SystemClock()
        self.lifecycle = lifecycle or AdoptionLifecycle(
            confirmation_window=timedelta(hours=config.ADOPTION_CONFIRMATION_WINDOW_HOURS),
            admin_user_ids=_parse_admin_ids(config.ADMIN_USER_IDS),
        )
        self.dispatcher = dispatcher or SideEffectDispatcher(
            notification_sink or FirestoreNotificationSink(),
            gamification_sink or LoggingGamificationSink(),
        )
        self.logger = logging.getLogger("service.AdoptionService")

    @property
    def session_factory(self):
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    # -------------------------------------------------------------------------
    # Tutor / adopter operations
    # -------------------------------------------------------------------------

    def nominate_adopter(
        self, pet_id: uuid.UUID, tutor_id: uuid.UUID, adopter_id: Optional[uuid.UUID]
    ) -> PetView:
        """Tutor marks the pet as adopted, naming the candidate adopter."""
        return self._execute(pet_id, NominateAdopter(tutor_id=tutor_id, adopter_id=adopter_id))

    def confirm_by_adopter(self, pet_id: uuid.UUID, adopter_id: uuid.UUID) -> PetView:
        """Nominated adopter confirms they took the pet. Repeating it is a no-op."""
        return self._execute(pet_id, ConfirmByAdopter(adopter_id=adopter_id))

    # -------------------------------------------------------------------------
    # Admin operations
    # -------------------------------------------------------------------------

    def register_adoption(
        self,
        pet_id: uuid.UUID,
        explicit_adopter_id: Optional[uuid.UUID] = None,
        admin_id: Optional[uuid.UUID] = None,
    ) -> PetView:
        """
        Create the adoption fact.

        The explicit adopter takes precedence over the tutor's nominee.
        Raises DuplicateAdoption if the pet already has an adoption, even when
        a concurrent writer created it after our read.
        """
        return self._execute(
            pet_id, RegisterAdoption(adopter_id=explicit_adopter_id, admin_id=admin_id)
        )

    def confirm_by_platform(
        self, pet_id: uuid.UUID, admin_id: Optional[uuid.UUID] = None
    ) -> PetView:
        """Stamp the "confirmed by Adopet" badge. A second call is a silent no-op."""
        return self._execute(pet_id, PlatformConfirm(admin_id=admin_id))

    def reject_by_platform(
        self,
        pet_id: uuid.UUID,
        reason: Optional[str] = None,
        admin_id: Optional[uuid.UUID] = None,
    ) -> PetView:
        """Reject a registered adoption post-hoc. The adoption record is kept."""
        return self._execute(pet_id, PlatformReject(reason=reason, admin_id=admin_id))

    def reject_nomination(
        self,
        pet_id: uuid.UUID,
        reason: Optional[str] = None,
        admin_id: Optional[uuid.UUID] = None,
    ) -> PetView:
        """
        Reject the tutor's nomination before any adoption exists.

        The pet stays ADOPTED (off the feed) and earns no points. An admin
        can still register an adoption later with an explicit adopter.
        """
        return self._execute(pet_id, RejectNomination(reason=reason, admin_id=admin_id))

    # -------------------------------------------------------------------------
    # Escalation
    # -------------------------------------------------------------------------

    def reconcile(self) -> int:
        """
        Advance everything whose confirmation window elapsed.

        Sweep A auto-finalizes confirmed nominations nobody registered;
        Sweep B auto-confirms registered adoptions nobody confirmed. Each pet
        runs in its own transaction; one failing pet does not stop the sweep.

        Returns the number of pets advanced.
        """
        cutoff = self.lifecycle.cutoff(self.clock.now())

        with session_scope(self.session_factory) as db:
            stalled = AdoptionRepository(db).find_stalled_nominations(cutoff)
        finalized = self._sweep("stalled_nominations", stalled, SystemTimeout())

        with session_scope(self.session_factory) as db:
            unconfirmed = AdoptionRepository(db).find_unconfirmed_adoptions(cutoff)
        confirmed = self._sweep("unconfirmed_adoptions", unconfirmed, SystemReconcile())

        self.logger.info(
            f"Reconcile (cutoff={cutoff.isoformat()}): "
            f"{finalized}/{len(stalled)} auto-finalized, "
            f"{confirmed}/{len(unconfirmed)} auto-confirmed"
        )
        return finalized + confirmed

    def _sweep(self, label: str, pet_ids: List[uuid.UUID], action) -> int:
        advanced = 0
        for pet_id in pet_ids:
            try:
                _, decision = self._apply(pet_id, action)
            except Exception:
                self.logger.exception(f"[{label}] pet {pet_id} failed; continuing")
                continue

            if decision.applied:
                advanced += 1
            elif decision.failed:
                self.logger.warning(f"[{label}] pet {pet_id} skipped: {decision.message}")
            else:
                self.logger.debug(f"[{label}] pet {pet_id} unchanged: {decision.message}")
        return advanced

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_adoption_view(self, pet_id: uuid.UUID) -> PetView:
        with session_scope(self.session_factory) as db:
            pet, adoption = AdoptionRepository(db).load(pet_id)
            if pet is None:
                raise PetNotFound("Pet not found", pet_id=pet_id)
            return PetView.from_records(pet, adoption)

    def list_open_feed(self, limit: int = 50) -> List[PetView]:
        """Pets still open for adoption. ADOPTED pets (rejected ones included) never appear."""
        with session_scope(self.session_factory) as db:
            return [PetView.from_records(pet) for pet in AdoptionRepository(db).list_open_feed(limit)]

    # -------------------------------------------------------------------------
    # Transition plumbing
    # -------------------------------------------------------------------------

    def _execute(self, pet_id: uuid.UUID, action) -> PetView:
        view, decision = self._apply(pet_id, action)
        if decision.failed:
            raise self._error_for(decision, pet_id)
        return view

    def _apply(self, pet_id: uuid.UUID, action) -> Tuple[Optional[PetView], Decision]:
        """Decide and persist one action in one transaction; dispatch effects after commit."""
        now = self.clock.now()
        decision = None

        try:
            with session_scope(self.session_factory) as db:
                repo = AdoptionRepository(db)
                pet, adoption = repo.load(pet_id, lock=True)
                view = PetView.from_records(pet, adoption) if pet is not None else None

                decision = self.lifecycle.decide(view, action, now)
                if not decision.applied:
                    return view, decision

                self._check_adopter_exists(repo, decision, pet_id)

                if decision.new_adoption is not None:
                    adoption = repo.add_adoption(
                        pet_id=pet.pet_id,
                        tutor_id=decision.new_adoption.tutor_id,
                        adopter_id=decision.new_adoption.adopter_id,
                        adopted_at=decision.new_adoption.adopted_at,
                    )
                repo.apply_changes(pet, decision.pet_changes, now)
                if decision.clear_favorites:
                    removed = repo.clear_favorites(pet_id)
                    if removed:
                        self.logger.debug(f"Cleared {removed} favorite(s) on pet {pet_id}")
                EventLogService(db).record_decision(pet_id, decision, at=now)
                db.flush()

                view = PetView.from_records(pet, adoption)
        except IntegrityError as e:
            if decision is not None and decision.new_adoption is not None:
                self.logger.info(f"Pet {pet_id} was finalized by a concurrent writer")
                raise DuplicateAdoption(
                    "Pet already has a registered adoption", pet_id=pet_id
                ) from e
            raise

        self.logger.info(
            f"{decision.event_type} pet={pet_id} "
            f"{decision.state_before.value} -> {decision.state_after.value} "
            f"by {action.actor_kind.value}"
        )
        self.dispatcher.dispatch(decision.effects)
        return view, decision

    @staticmethod
    def _check_adopter_exists(repo: AdoptionRepository, decision: Decision, pet_id: uuid.UUID) -> None:
        if decision.new_adoption is not None:
            adopter_id = decision.new_adoption.adopter_id
        else:
            adopter_id = decision.pet_changes.get("pending_adopter_id")
        if adopter_id is not None and not repo.user_exists(adopter_id):
            raise UserNotFound(f"Adopter {adopter_id} not found", pet_id=pet_id)

    @staticmethod
    def _error_for(decision: Decision, pet_id: uuid.UUID) -> AdoptionError:
        error_cls = _FAILURE_ERRORS.get(decision.failure, AdoptionError)
        return error_cls(decision.message, pet_id=pet_id)


# Singleton instance
_adoption_service = None


def get_adoption_service() -> AdoptionService:
    """Get the singleton adoption service instance."""
    global _adoption_service
    if _adoption_service is None:
        _adoption_service = AdoptionService()
    return _adoption_service
