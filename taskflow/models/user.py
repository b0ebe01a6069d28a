"""User model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from taskflow.database import Base


class User(Base):
    """Account holder and credential record.

    ``refresh_token`` holds the single active session value; a new login
    overwrites it and logout clears it. ``reset_password_token`` stores only the
    sha256 digest of the emailed reset value.
    """

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    email = Column(String(256), unique=True, nullable=False, index=True)
    username = Column(String(64), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    refresh_token = Column(String(1024), nullable=True)
    reset_password_token = Column(String(64), nullable=True, index=True)
    reset_password_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
