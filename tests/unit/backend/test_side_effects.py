"""
Unit tests for post-commit side effects.

Tests:
- SideEffectDispatcher routing, failure isolation and background mode
- FirestoreNotificationSink inbox writes and disabled mode
"""

import threading
import uuid
from unittest.mock import MagicMock, patch

from adopet.lifecycle import AwardAdoptionPoints, Notify, NotificationKind
from adopet.services.dispatcher import SideEffectDispatcher
from adopet.services.notifications import FirestoreNotificationSink


TUTOR = uuid.uuid4()
ADOPTER = uuid.uuid4()


class TestSideEffectDispatcher:
    """Tests for SideEffectDispatcher."""

    def test_routes_effects_to_sinks(self):
        notifications = MagicMock()
        gamification = MagicMock()
        dispatcher = SideEffectDispatcher(notifications, gamification, background=False)

        dispatched = dispatcher.dispatch([
            Notify(user_id=TUTOR, kind=NotificationKind.ADOPTION_FINALIZED, payload={"role": "tutor"}),
            AwardAdoptionPoints(tutor_id=TUTOR, adopter_id=ADOPTER),
        ])

        assert dispatched is True
        notifications.notify.assert_called_once_with(
            TUTOR, NotificationKind.ADOPTION_FINALIZED, {"role": "tutor"}
        )
        gamification.on_adoption_finalized.assert_called_once_with(TUTOR, ADOPTER)

    def test_empty_batch(self):
        notifications = MagicMock()
        dispatcher = SideEffectDispatcher(notifications, MagicMock(), background=False)

        assert dispatcher.dispatch([]) is False
        notifications.notify.assert_not_called()

    def test_one_failure_does_not_stop_the_batch(self):
        notifications = MagicMock()
        notifications.notify.side_effect = [RuntimeError("quota exceeded"), None]
        dispatcher = SideEffectDispatcher(notifications, MagicMock(), background=False)

        dispatcher.dispatch([
            Notify(user_id=TUTOR, kind=NotificationKind.ADOPTION_FINALIZED),
            Notify(user_id=ADOPTER, kind=NotificationKind.ADOPTION_FINALIZED),
        ])

        assert notifications.notify.call_count == 2

    def test_background_mode_runs_off_thread(self):
        delivered = threading.Event()
        caller = threading.current_thread()
        threads = []

        def notify(user_id, kind, payload):
            threads.append(threading.current_thread())
            delivered.set()

        notifications = MagicMock()
        notifications.notify.side_effect = notify
        dispatcher = SideEffectDispatcher(notifications, MagicMock())

        dispatcher.dispatch([Notify(user_id=TUTOR, kind=NotificationKind.ADOPTER_CONFIRMED)])

        assert delivered.wait(5)
        assert threads[0] is not caller


class TestFirestoreNotificationSink:
    """Tests for the Firestore inbox projection."""

    def test_writes_inbox_document(self):
        client = MagicMock()
        doc_ref = client.collection.return_value.document.return_value.collection.return_value.document.return_value
        sink = FirestoreNotificationSink(client=client)

        sink.notify(ADOPTER, NotificationKind.ADOPTION_NOMINATED, {"pet_name": "Rex"})

        client.collection.assert_called_once_with("users")
        client.collection.return_value.document.assert_called_once_with(str(ADOPTER))
        written = doc_ref.set.call_args[0][0]
        assert written["kind"] == NotificationKind.ADOPTION_NOMINATED
        assert written["payload"] == {"pet_name": "Rex"}
        assert written["read"] is False

    def test_disabled_firestore_is_a_noop(self):
        with patch("adopet.services.notifications.firestore_enabled", return_value=False), \
                patch("adopet.services.notifications.get_firestore_client") as get_client:
            sink = FirestoreNotificationSink()
            sink.notify(ADOPTER, NotificationKind.ADOPTION_NOMINATED, {})

        get_client.assert_not_called()
