"""
Post-commit side effect dispatch.

Side effects (notifications, gamification) are best-effort: they run after
the transition committed and a failure is logged, never raised. In
background mode each batch runs on its own daemon thread so the caller
never waits on delivery.
"""

import logging
import threading
from typing import Iterable, List

from adopet.lifecycle import AwardAdoptionPoints, Notify
from adopet.services.gamification import GamificationSink
from adopet.services.notifications import NotificationSink


class SideEffectDispatcher:
    """Fire-and-forget runner for lifecycle side effects."""

    def __init__(
        self,
        notification_sink: NotificationSink,
        gamification_sink: GamificationSink,
        background: bool = True,
    ):
        self.notification_sink = notification_sink
        self.gamification_sink = gamification_sink
        self.background = background
        self.logger = logging.getLogger("service.SideEffectDispatcher")

    def dispatch(self, effects: Iterable) -> bool:
        """
        Run a batch of side effects.

        Returns True if the batch was queued/run, False if it was empty.
        """
        batch: List = list(effects)
        if not batch:
            return False

        if self.background:
            thread = threading.Thread(
                target=self._run_batch, args=(batch,), name="adoption-side-effects", daemon=True
            )
            thread.start()
        else:
            self._run_batch(batch)
        return True

    def _run_batch(self, batch: List) -> None:
        for effect in batch:
            try:
                self._execute(effect)
            except Exception:
                self.logger.exception(f"Side effect failed: {effect!r}")

    def _execute(self, effect) -> None:
        if isinstance(effect, Notify):
            self.notification_sink.notify(effect.user_id, effect.kind, effect.payload)
        elif isinstance(effect, AwardAdoptionPoints):
            self.gamification_sink.on_adoption_finalized(effect.tutor_id, effect.adopter_id)
        else:
            self.logger.warning(f"Unknown side effect {effect!r}")
