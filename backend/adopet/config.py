"""
Application configuration loaded from environment variables.

Supports switching between local and cloud environments for both
PostgreSQL and Firestore via DATABASE_MODE. DATABASE_URL, when set,
overrides both (used by tests and one-off scripts).
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from backend directory
backend_dir = Path(__file__).parent.parent
load_dotenv(backend_dir / ".env")

logger = logging.getLogger("config")


def _split_ids(raw: str) -> list:
    return [part.strip() for part in raw.split(",") if part.strip()]


class Config:
    """Application configuration."""

    # Flask settings
    DEBUG = os.getenv("FLASK_DEBUG", "0") == "1"
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Environment mode: "local" or "cloud"
    # Controls both PostgreSQL and Firestore database selection
    DATABASE_MODE = os.getenv("DATABASE_MODE", "local")
    DATABASE_URL = os.getenv("DATABASE_URL", "")

    # PostgreSQL - Local
    POSTGRES_HOST_LOCAL = os.getenv("POSTGRES_HOST_LOCAL", "localhost")
    POSTGRES_PORT_LOCAL = os.getenv("POSTGRES_PORT_LOCAL", "5432")
    POSTGRES_DB_LOCAL = os.getenv("POSTGRES_DB_LOCAL", "adopet")
    POSTGRES_USER_LOCAL = os.getenv("POSTGRES_USER_LOCAL", "postgres")
    POSTGRES_PASSWORD_LOCAL = os.getenv("POSTGRES_PASSWORD_LOCAL", "")

    # PostgreSQL - Cloud (GCP Cloud SQL)
    POSTGRES_HOST_CLOUD = os.getenv("POSTGRES_HOST_CLOUD", "")
    POSTGRES_PORT_CLOUD = os.getenv("POSTGRES_PORT_CLOUD", "5432")
    POSTGRES_DB_CLOUD = os.getenv("POSTGRES_DB_CLOUD", "adopet")
    POSTGRES_USER_CLOUD = os.getenv("POSTGRES_USER_CLOUD", "postgres")
    POSTGRES_PASSWORD_CLOUD = os.getenv("POSTGRES_PASSWORD_CLOUD", "")

    # Firestore / GCP (notification inbox projection)
    GCP_CREDENTIALS_PATH = os.getenv("GCP_CREDENTIALS_PATH", "./gcp-credentials.json")
    GCP_PROJECT_ID = os.getenv("GCP_PROJECT_ID", "")
    FIRESTORE_DATABASE_LOCAL = os.getenv("FIRESTORE_DATABASE_LOCAL", "adopet-dev")
    FIRESTORE_DATABASE_CLOUD = os.getenv("FIRESTORE_DATABASE_CLOUD", "(default)")
    ENABLE_FIRESTORE = os.getenv("ENABLE_FIRESTORE", "false").lower() == "true"

    # Adoption lifecycle
    ADOPTION_CONFIRMATION_WINDOW_HOURS = int(
        os.getenv("ADOPTION_CONFIRMATION_WINDOW_HOURS", "48")
    )
    ESCALATION_INTERVAL_SECONDS = int(os.getenv("ESCALATION_INTERVAL_SECONDS", "3600"))
    ENABLE_ESCALATION_SCHEDULER = (
        os.getenv("ENABLE_ESCALATION_SCHEDULER", "true").lower() == "true"
    )

    # Admins notified when a tutor marks a pet as adopted
    ADMIN_USER_IDS = _split_ids(os.getenv("ADMIN_USER_IDS", ""))

    @classmethod
    def get_database_url(cls) -> str:
        """Build PostgreSQL connection URL based on DATABASE_MODE."""
        if cls.DATABASE_URL:
            return cls.DATABASE_URL

        if cls.DATABASE_MODE == "cloud":
            host = cls.POSTGRES_HOST_CLOUD
            port = cls.POSTGRES_PORT_CLOUD
            db = cls.POSTGRES_DB_CLOUD
            user = cls.POSTGRES_USER_CLOUD
            password = cls.POSTGRES_PASSWORD_CLOUD
            mode_label = "CLOUD"
        else:
            host = cls.POSTGRES_HOST_LOCAL
            port = cls.POSTGRES_PORT_LOCAL
            db = cls.POSTGRES_DB_LOCAL
            user = cls.POSTGRES_USER_LOCAL
            password = cls.POSTGRES_PASSWORD_LOCAL
            mode_label = "LOCAL"

        if password:
            url = f"postgresql://{user}:{password}@{host}:{port}/{db}"
        else:
            url = f"postgresql://{user}@{host}:{port}/{db}"

        logger.info(f"PostgreSQL: {mode_label} ({host})")
        return url

    @classmethod
    def get_firestore_database(cls) -> str:
        """Get Firestore database ID based on DATABASE_MODE."""
        if cls.DATABASE_MODE == "cloud":
            db = cls.FIRESTORE_DATABASE_CLOUD
            mode_label = "CLOUD"
        else:
            db = cls.FIRESTORE_DATABASE_LOCAL
            mode_label = "LOCAL"

        logger.info(f"Firestore: {mode_label} ({db})")
        return db


# Singleton instance
config = Config()
