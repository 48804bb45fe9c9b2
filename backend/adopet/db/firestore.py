"""
Firestore client wrapper for the notification inbox projection.

Supports multiple databases based on DATABASE_MODE:
- local: uses 'adopet-dev' database
- cloud: uses '(default)' database

Degrades to "unavailable" instead of raising when Firestore is disabled,
misconfigured or unreachable.
"""

import logging
import os
import threading
from pathlib import Path

from adopet.config import config

logger = logging.getLogger("db.firestore")

# Firestore client (initialized lazily)
_firestore_client = None
_firestore_available = None  # None = not tested, True/False = tested


def firestore_enabled() -> bool:
    """Check if Firestore is enabled in config."""
    return config.ENABLE_FIRESTORE


def firestore_available() -> bool:
    """
    Check if Firestore is both enabled AND reachable.

    Returns False if disabled or connection failed.
    """
    if not firestore_enabled():
        return False

    if _firestore_available is not None:
        return _firestore_available

    get_firestore_client()
    return bool(_firestore_available)


def test_firestore_connection(client, timeout: float = 3.0) -> bool:
    """
    Test Firestore connection with a quick read operation.

    Returns True if connection succeeds within timeout.
    """
    global _firestore_available

    result = {"success": False}

    def _probe():
        try:
            list(client.collections())
            result["success"] = True
        except Exception as e:
            logger.warning(f"Connection probe failed: {e}")

    thread = threading.Thread(target=_probe, daemon=True)
    thread.start()
    thread.join(timeout=timeout)

    if thread.is_alive():
        logger.warning(f"Connection test timed out ({timeout}s)")
        _firestore_available = False
        return False

    _firestore_available = result["success"]
    logger.info(f"Connection test {'passed' if result['success'] else 'failed'}")
    return result["success"]


def get_firestore_client():
    """
    Get or create Firestore client.

    Returns None if Firestore is disabled or unavailable.
    """
    global _firestore_client, _firestore_available

    if not firestore_enabled():
        return None

    # If we've tested and it's unavailable, don't retry
    if _firestore_available is False:
        return None

    if _firestore_client is not None:
        return _firestore_client

    # Resolve credentials path
    creds_path = config.GCP_CREDENTIALS_PATH
    if not os.path.isabs(creds_path):
        backend_dir = Path(__file__).parent.parent.parent
        creds_path = backend_dir / creds_path

    if not os.path.exists(creds_path):
        logger.warning(f"Credentials not found: {creds_path}")
        _firestore_available = False
        return None

    os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = str(creds_path)

    try:
        from google.cloud import firestore

        database_id = config.get_firestore_database()
        _firestore_client = firestore.Client(
            project=config.GCP_PROJECT_ID,
            database=database_id,
        )
        logger.info(
            f"Connected to project: {config.GCP_PROJECT_ID}, database: {database_id}"
        )

        test_firestore_connection(_firestore_client, timeout=3.0)
        return _firestore_client

    except Exception as e:
        logger.error(f"Connection error: {e}")
        _firestore_available = False
        return None

