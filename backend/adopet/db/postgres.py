"""
PostgreSQL connection via SQLAlchemy with psycopg3.

This is the authoritative system of record for pets, adoptions and the
adoption audit ledger.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, scoped_session, declarative_base

from adopet.config import config

# SQLAlchemy base for model declarations
Base = declarative_base()

# Engine and session factory (initialized lazily)
_engine = None
_session_factory = None


def get_engine():
    """Get or create the SQLAlchemy engine."""
    global _engine
    if _engine is None:
        db_url = config.get_database_url()
        if db_url.startswith("postgresql://"):
            # Use psycopg3 dialect
            db_url = db_url.replace("postgresql://", "postgresql+psycopg://")

        if db_url.startswith("postgresql"):
            _engine = create_engine(
                db_url,
                echo=config.DEBUG,  # Log SQL in debug mode
                pool_pre_ping=True,  # Verify connections before use
                pool_recycle=300,  # Recycle connections every 5 minutes
                pool_reset_on_return="rollback",
            )

            # Rollback any pending transaction when checking out
            @event.listens_for(_engine, "checkout")
            def checkout_listener(dbapi_conn, connection_record, connection_proxy):
                """Ensure connection is in clean state when checked out."""
                try:
                    cursor = dbapi_conn.cursor()
                    cursor.execute("ROLLBACK")
                    cursor.close()
                except Exception:
                    pass  # Connection already clean
        else:
            _engine = create_engine(db_url, echo=config.DEBUG)

    return _engine


def get_session_factory():
    """Get the thread-local session registry.

    Calling the registry returns the session bound to the current thread,
    so request handlers and the escalation thread never share a session.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = scoped_session(
            sessionmaker(bind=get_engine(), autocommit=False, autoflush=False)
        )
    return _session_factory


@contextmanager
def session_scope(session_factory=None):
    """Run a block in one transaction: commit on success, rollback on error."""
    factory = session_factory or get_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine=None):
    """Initialize database tables (for development/testing)."""
    # Import models so they register with Base.metadata
    from adopet import models  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())


def close_db_session(exception=None):
    """Remove the current session (call at end of request).

    Always rollback to ensure clean state for next request,
    then remove the session from the registry.
    """
    if _session_factory is not None:
        try:
            _session_factory.rollback()
        except Exception:
            pass
        finally:
            try:
                _session_factory.remove()
            except Exception:
                pass


def rollback_session():
    """Explicitly rollback the current session.

    Call this at the start of a request to ensure clean state.
    """
    if _session_factory is not None:
        try:
            session = _session_factory()
            if session.is_active:
                session.rollback()
        except Exception:
            # If the session is in a really bad state, remove it entirely
            try:
                _session_factory.remove()
            except Exception:
                pass

