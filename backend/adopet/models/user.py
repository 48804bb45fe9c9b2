"""
Minimal user table.

Accounts, auth and profiles live elsewhere; adoption rows only need a
resolvable user id for tutors, adopters and admins.
"""

import uuid
from sqlalchemy import Column, String, DateTime, Uuid

from adopet.clock import utcnow
from adopet.db.postgres import Base


class AppUser(Base):
    """Application user table."""

    __tablename__ = "app_user"

    user_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=True)
    display_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
