"""
Notification sinks.

The lifecycle only decides whether and to whom a notification fires; a sink
delivers it. The default sink projects each notification into the user's
Firestore inbox (users/{user_id}/notifications/{id}) for the mobile app to
pick up, and falls back to logging when Firestore is disabled.
"""

import logging
import uuid
from typing import Any, Dict

from adopet.clock import utcnow
from adopet.db.firestore import get_firestore_client, firestore_enabled, firestore_available


class NotificationSink:
    """Collaborator interface: deliver one notification to one user."""

    def notify(self, user_id: uuid.UUID, kind: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    """Writes notifications to the log only."""

    def __init__(self):
        self.logger = logging.getLogger("sink.LoggingNotificationSink")

    def notify(self, user_id: uuid.UUID, kind: str, payload: Dict[str, Any]) -> None:
        self.logger.info(f"notify user={user_id} kind={kind} payload={payload}")


class FirestoreNotificationSink(NotificationSink):
    """
    Projects notifications into Firestore user inboxes.

    Runs in no-op (log only) mode if Firestore is disabled or unavailable.
    Delivery errors propagate; the dispatcher decides what to do with them.
    """

    def __init__(self, client=None):
        self._client = client
        self._enabled = True if client is not None else None
        self.logger = logging.getLogger("sink.FirestoreNotificationSink")

    @property
    def enabled(self) -> bool:
        if self._enabled is None:
            self._enabled = firestore_enabled() and firestore_available()
        return self._enabled

    @property
    def client(self):
        if self._client is None:
            self._client = get_firestore_client()
        return self._client

    def _get_inbox_ref(self, user_id: uuid.UUID):
        """Reference to a new document in the user's notification inbox."""
        if not self.client:
            return None
        return (
            self.client.collection("users")
            .document(str(user_id))
            .collection("notifications")
            .document()
        )

    def notify(self, user_id: uuid.UUID, kind: str, payload: Dict[str, Any]) -> None:
        if not self.enabled:
            self.logger.debug(f"Firestore disabled; dropping {kind} for user {user_id}")
            return

        ref = self._get_inbox_ref(user_id)
        if ref is None:
            return

        ref.set(
            {
                "kind": kind,
                "payload": payload,
                "read": False,
                "created_at": utcnow().isoformat(),
            }
        )
