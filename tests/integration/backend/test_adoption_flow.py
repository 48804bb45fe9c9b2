"""
Integration tests for the escalation flow.

Drives AdoptionService through whole lifecycles with a frozen clock and
runs reconcile() the way the hourly scheduler does:
- Confirmed nominations auto-finalize after 48h with the badge stamped
- Registered adoptions auto-confirm after 48h without being altered
- Rejected nominations and rejected adoptions are never advanced
- One failing pet does not stop the sweep
"""

import pytest
import uuid
from datetime import timedelta
from unittest.mock import patch

from adopet.db.postgres import session_scope
from adopet.lifecycle import AdoptionState, EventType, NotificationKind
from adopet.services.escalation import EscalationScheduler
from adopet.services.event_log import EventLogService


def nominate_and_confirm(service, clock, pet, tutor, adopter):
    """T0 nominate, T0+1h adopter confirms."""
    service.nominate_adopter(pet, tutor_id=tutor, adopter_id=adopter)
    clock.advance(hours=1)
    service.confirm_by_adopter(pet, adopter_id=adopter)


class TestStalledNominations:
    """Sweep A: confirmed nominations with no admin action."""

    def test_auto_finalize_after_window(self, service, clock, pet, tutor, adopter, gamification, notifications):
        nominate_and_confirm(service, clock, pet, tutor, adopter)
        now = clock.advance(hours=48)  # T0+49h

        assert service.reconcile() == 1

        view = service.get_adoption_view(pet)
        assert view.state == AdoptionState.FINALIZED
        assert view.pending_adopter_id is None
        assert view.adoption.adopter_id == adopter
        assert view.adoption.tutor_id == tutor
        assert view.adoption.adopted_at == now
        assert view.adopet_confirmed_at == now
        assert gamification.finalized == [(tutor, adopter)]

        finalized = [p for _, kind, p in notifications.sent if kind == NotificationKind.ADOPTION_FINALIZED]
        assert len(finalized) == 2
        assert all(payload["confirmed_by_adopet"] is True for payload in finalized)

    def test_window_not_elapsed(self, service, clock, pet, tutor, adopter):
        nominate_and_confirm(service, clock, pet, tutor, adopter)
        clock.advance(hours=46)  # T0+47h

        assert service.reconcile() == 0
        assert service.get_adoption_view(pet).state == AdoptionState.AWAITING_FINALIZATION

    def test_unconfirmed_nomination_waits_for_adopter(self, service, clock, pet, tutor, adopter):
        service.nominate_adopter(pet, tutor_id=tutor, adopter_id=adopter)
        clock.advance(hours=49)

        assert service.reconcile() == 0
        assert service.get_adoption_view(pet).state == AdoptionState.NOMINATED

    def test_rejected_nomination_never_auto_finalizes(self, service, fixtures, clock, pet, tutor, adopter, gamification):
        nominate_and_confirm(service, clock, pet, tutor, adopter)
        service.reject_nomination(pet, reason="not a real adoption")
        clock.advance(hours=100)

        assert service.reconcile() == 0

        view = service.get_adoption_view(pet)
        assert view.state == AdoptionState.REJECTED
        assert view.status == "ADOPTED"
        assert fixtures.adoption_count(pet) == 0
        assert gamification.finalized == []

    def test_admin_registration_first_wins(self, service, fixtures, clock, pet, tutor, adopter):
        nominate_and_confirm(service, clock, pet, tutor, adopter)
        registered = service.register_adoption(pet)
        clock.advance(hours=48)

        # Sweep B picks it up instead, without creating a second record
        assert service.reconcile() == 1
        assert fixtures.adoption_count(pet) == 1
        assert service.get_adoption_view(pet).adoption == registered.adoption

    def test_rerun_is_idempotent(self, service, fixtures, clock, pet, tutor, adopter, notifications):
        nominate_and_confirm(service, clock, pet, tutor, adopter)
        clock.advance(hours=48)
        service.reconcile()
        sent = len(notifications.sent)

        clock.advance(hours=1)
        assert service.reconcile() == 0
        assert fixtures.adoption_count(pet) == 1
        assert len(notifications.sent) == sent


class TestUnconfirmedAdoptions:
    """Sweep B: registered adoptions nobody confirmed."""

    def test_auto_confirm_keeps_adoption_fields(self, service, clock, pet, tutor, adopter, notifications, gamification):
        registered = service.register_adoption(pet, explicit_adopter_id=adopter)
        now = clock.advance(hours=49)

        assert service.reconcile() == 1

        view = service.get_adoption_view(pet)
        assert view.adopet_confirmed_at == now
        assert view.adoption == registered.adoption
        assert sorted(notifications.recipients(NotificationKind.ADOPTION_CONFIRMED_BY_PLATFORM), key=str) == sorted(
            [tutor, adopter], key=str
        )
        # Points were awarded at registration only
        assert gamification.finalized == [(tutor, adopter)]

    def test_already_confirmed_is_skipped(self, service, clock, pet, adopter):
        service.register_adoption(pet, explicit_adopter_id=adopter)
        confirmed = service.confirm_by_platform(pet)
        clock.advance(hours=49)

        assert service.reconcile() == 0
        assert service.get_adoption_view(pet).adopet_confirmed_at == confirmed.adopet_confirmed_at

    def test_rejected_adoption_is_not_confirmed(self, service, clock, pet, adopter):
        service.register_adoption(pet, explicit_adopter_id=adopter)
        service.reject_by_platform(pet, reason="fraud")
        clock.advance(hours=49)

        assert service.reconcile() == 0

        view = service.get_adoption_view(pet)
        assert view.is_rejected
        assert not view.is_platform_confirmed

    def test_auto_confirm_is_audited_as_system(self, service, session_factory, clock, pet, adopter):
        service.register_adoption(pet, explicit_adopter_id=adopter)
        clock.advance(hours=49)
        service.reconcile()

        with session_scope(session_factory) as db:
            events = EventLogService(db).list_events(pet)
            last = (events[-1].event_type, events[-1].actor_kind, events[-1].actor_user_id)
        assert last == (EventType.AUTO_CONFIRMED, "system", None)


class TestSweepResilience:
    """One bad pet must not stop the batch."""

    def test_failing_pet_does_not_abort_sweep(self, service, fixtures, clock, tutor):
        first_adopter = fixtures.user("first")
        second_adopter = fixtures.user("second")
        bad_pet = fixtures.pet(tutor, name="Bad")
        good_pet = fixtures.pet(tutor, name="Good")
        nominate_and_confirm(service, clock, bad_pet, tutor, first_adopter)
        nominate_and_confirm(service, clock, good_pet, tutor, second_adopter)
        clock.advance(hours=60)

        original = service._apply

        def flaky(pet_id, action):
            if pet_id == bad_pet:
                raise RuntimeError("lock timeout")
            return original(pet_id, action)

        with patch.object(service, "_apply", side_effect=flaky):
            assert service.reconcile() == 1

        assert service.get_adoption_view(bad_pet).state == AdoptionState.AWAITING_FINALIZATION
        assert service.get_adoption_view(good_pet).state == AdoptionState.FINALIZED

        # The next tick picks the failed pet up again
        assert service.reconcile() == 1
        assert service.get_adoption_view(bad_pet).state == AdoptionState.FINALIZED

    def test_scheduler_tick_drives_service(self, service, clock, pet, tutor, adopter):
        nominate_and_confirm(service, clock, pet, tutor, adopter)
        clock.advance(hours=48)

        scheduler = EscalationScheduler(service, interval_seconds=3600)

        assert scheduler.tick() == 1
        assert scheduler.tick() == 0


@pytest.mark.parametrize("hours_after_confirm, expected", [(46, 0), (47, 1), (200, 1)])
def test_window_is_measured_from_nomination(service, clock, pet, tutor, adopter, hours_after_confirm, expected):
    """marked_adopted_at is T0; the adopter confirmed at T0+1h."""
    nominate_and_confirm(service, clock, pet, tutor, adopter)
    clock.advance(hours=hours_after_confirm)
    assert service.reconcile() == expected


def test_unknown_pet_ids_do_not_break_sweep(service):
    with patch("adopet.repositories.AdoptionRepository.find_stalled_nominations", return_value=[uuid.uuid4()]):
        assert service.reconcile() == 0
