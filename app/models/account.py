"""
Account model for the local identity backend.

Holds the credential that password resets overwrite when accounts are not
managed by Firebase.
"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Uuid, func
from app.core.database import Base


class Account(Base):
    """Locally stored login account"""
    __tablename__ = "accounts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)

    # Authentication credentials
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    password_changed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Account(id={self.id}, email='{self.email}')>"
