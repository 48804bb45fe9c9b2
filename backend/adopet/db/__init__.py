"""
Database connections for Adopet.

- PostgreSQL: authoritative system of record (via SQLAlchemy)
- Firestore: notification inbox projection (optional, via google-cloud-firestore)
"""

from .postgres import init_db, get_session_factory, session_scope
from .firestore import get_firestore_client, firestore_enabled, firestore_available

__all__ = [
    "init_db",
    "get_session_factory",
    "session_scope",
    "get_firestore_client",
    "firestore_enabled",
    "firestore_available",
]
