"""Contact channel records (email and phone)."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String, false, func
from sqlalchemy.dialects.postgresql import UUID

from loyalty_club_api.db.base import Base, utcnow


class CustomerEmail(Base):
    """Standalone email contact, verified independently of any account."""

    __tablename__ = "customer_emails"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)
    is_verified = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class CustomerPhone(Base):
    """Standalone phone contact, verified independently of any account."""

    __tablename__ = "customer_phones"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    phone = Column(String(32), nullable=False, unique=True, index=True)
    is_verified = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


__all__ = ["CustomerEmail", "CustomerPhone"]
