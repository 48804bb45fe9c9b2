"""
Backend services for Adopet.

- AdoptionService: transactional adoption lifecycle operations
- EscalationScheduler: periodic reconciliation of stalled adoptions
- EventLogService: append-only adoption audit events
- SideEffectDispatcher: post-commit notification/gamification dispatch
- NotificationSink / GamificationSink: collaborator interfaces
"""

from .adoption_service import AdoptionService, get_adoption_service
from .escalation import EscalationScheduler
from .event_log import EventLogService
from .dispatcher import SideEffectDispatcher
from .notifications import NotificationSink, LoggingNotificationSink, FirestoreNotificationSink
from .gamification import GamificationSink, LoggingGamificationSink

__all__ = [
    "AdoptionService",
    "get_adoption_service",
    "EscalationScheduler",
    "EventLogService",
    "SideEffectDispatcher",
    # Collaborators
    "NotificationSink",
    "LoggingNotificationSink",
    "FirestoreNotificationSink",
    "GamificationSink",
    "LoggingGamificationSink",
]
