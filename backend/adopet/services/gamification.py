"""
Gamification sink.

Point accounting lives elsewhere; the lifecycle only announces that an
adoption was finalized so tutor and adopter can be credited. Rejected
nominations never reach this sink.
"""

import logging
import uuid


class GamificationSink:
    """Collaborator interface for adoption credit."""

    def on_adoption_finalized(self, tutor_id: uuid.UUID, adopter_id: uuid.UUID) -> None:
        raise NotImplementedError


class LoggingGamificationSink(GamificationSink):
    """Default sink: records the trigger in the log for the stats job to pick up."""

    def __init__(self):
        self.logger = logging.getLogger("sink.GamificationSink")

    def on_adoption_finalized(self, tutor_id: uuid.UUID, adopter_id: uuid.UUID) -> None:
        self.logger.info(f"adoption finalized: tutor={tutor_id} adopter={adopter_id}")
