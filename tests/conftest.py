"""
Pytest configuration for all tests.
Sets up Python path to find the backend adopet package, and provides an
in-memory database plus recording collaborators for the adoption service.
"""

import sys
import os
import uuid
from datetime import datetime, timedelta

import pytest

# Add backend directory to Python path
backend_path = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'backend'))
if backend_path not in sys.path:
    sys.path.insert(0, backend_path)

from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from adopet.clock import FrozenClock
from adopet.db.postgres import init_db, session_scope
from adopet.lifecycle import AdoptionLifecycle
from adopet.models import AdoptionRecord, AppUser, Favorite, PetRecord, PetStatus
from adopet.services.adoption_service import AdoptionService
from adopet.services.dispatcher import SideEffectDispatcher
from adopet.services.gamification import GamificationSink
from adopet.services.notifications import NotificationSink


T0 = datetime(2026, 3, 1, 12, 0, 0)


class RecordingNotificationSink(NotificationSink):
    """Keeps every notification in memory."""

    def __init__(self):
        self.sent = []

    def notify(self, user_id, kind, payload):
        self.sent.append((user_id, kind, payload))

    def kinds(self):
        return [kind for _, kind, _ in self.sent]

    def recipients(self, kind):
        return [user_id for user_id, sent_kind, _ in self.sent if sent_kind == kind]


class RecordingGamificationSink(GamificationSink):
    def __init__(self):
        self.finalized = []

    def on_adoption_finalized(self, tutor_id, adopter_id):
        self.finalized.append((tutor_id, adopter_id))


class Fixtures:
    """Row builders for tests; each call commits its own transaction."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def user(self, name: str = "user") -> uuid.UUID:
        user_id = uuid.uuid4()
        with session_scope(self.session_factory) as db:
            db.add(AppUser(user_id=user_id, display_name=name, email=f"{name}@example.org"))
        return user_id

    def pet(self, owner_id: uuid.UUID, name: str = "Rex", **fields) -> uuid.UUID:
        pet_id = uuid.uuid4()
        fields.setdefault("status", PetStatus.AVAILABLE)
        with session_scope(self.session_factory) as db:
            db.add(PetRecord(pet_id=pet_id, owner_id=owner_id, name=name, **fields))
        return pet_id

    def adoption(self, pet_id, tutor_id, adopter_id, adopted_at) -> uuid.UUID:
        adoption_id = uuid.uuid4()
        with session_scope(self.session_factory) as db:
            db.add(
                AdoptionRecord(
                    adoption_id=adoption_id,
                    pet_id=pet_id,
                    tutor_id=tutor_id,
                    adopter_id=adopter_id,
                    adopted_at=adopted_at,
                )
            )
        return adoption_id

    def favorite(self, user_id, pet_id) -> None:
        with session_scope(self.session_factory) as db:
            db.add(Favorite(user_id=user_id, pet_id=pet_id))

    def favorite_count(self, pet_id) -> int:
        with session_scope(self.session_factory) as db:
            return db.query(Favorite).filter(Favorite.pet_id == pet_id).count()

    def adoption_count(self, pet_id) -> int:
        with session_scope(self.session_factory) as db:
            return db.query(AdoptionRecord).filter(AdoptionRecord.pet_id == pet_id).count()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    factory = scoped_session(sessionmaker(bind=engine, autocommit=False, autoflush=False))
    yield factory
    factory.remove()


@pytest.fixture
def fixtures(session_factory):
    return Fixtures(session_factory)


@pytest.fixture
def clock():
    return FrozenClock(T0)


@pytest.fixture
def notifications():
    return RecordingNotificationSink()


@pytest.fixture
def gamification():
    return RecordingGamificationSink()


@pytest.fixture
def admin_ids():
    return [uuid.uuid4()]


@pytest.fixture
def service(session_factory, clock, notifications, gamification, admin_ids):
    return AdoptionService(
        session_factory=session_factory,
        lifecycle=AdoptionLifecycle(
            confirmation_window=timedelta(hours=48),
            admin_user_ids=admin_ids,
        ),
        clock=clock,
        dispatcher=SideEffectDispatcher(notifications, gamification, background=False),
    )


@pytest.fixture
def tutor(fixtures):
    return fixtures.user("tutor")


@pytest.fixture
def adopter(fixtures):
    return fixtures.user("adopter")


@pytest.fixture
def pet(fixtures, tutor):
    return fixtures.pet(tutor)
