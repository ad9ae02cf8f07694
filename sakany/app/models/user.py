# sakany/app/models/user.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON

from sakany.app.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Always stored lower-cased, so lookups are case-insensitive
    email = Column(String(320), unique=True, index=True, nullable=False)

    # Argon2id PHC string, never plaintext
    password_hash = Column(String(255), nullable=False)

    display_name = Column(String(100), nullable=False)
    is_landlord = Column(Boolean, nullable=False, default=False)
    is_admin = Column(Boolean, nullable=False, default=False)

    two_factor_enabled = Column(Boolean, nullable=False, default=False)
    two_factor_secret = Column(String(64), nullable=True)
    # Time step of the last accepted TOTP code; older or equal steps are refused
    two_factor_last_counter = Column(Integer, nullable=True)

    # A token only matches while password_reset_expires is in the future
    password_reset_token = Column(String(128), nullable=True, index=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)

    # {location, budget, property_type, lifestyle: [...]}
    preferences = Column(JSON, nullable=True)

    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
