"""Customer login account with derived username and verification state."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Enum as SqlEnum, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import UUID

from loyalty_club_api.db.base import Base, utcnow


class AccountActivityStatus(str, Enum):
    """Operational account state."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class AccountVerificationStatus(str, Enum):
    """Which contact channels of the account are verified."""

    UNVERIFIED = "UNVERIFIED"
    EMAIL_VERIFIED = "EMAIL_VERIFIED"
    PHONE_VERIFIED = "PHONE_VERIFIED"
    FULLY_VERIFIED = "FULLY_VERIFIED"


def _enum_values(enum: type[Enum]) -> list[str]:
    return [member.value for member in enum]


class CustomerAccount(Base):
    """One account per customer.

    ``username`` and ``verification_status`` are derived from the customer's
    linked contacts and are only written through the consistency propagator.
    """

    __tablename__ = "customer_accounts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(
        UUID(as_uuid=True),
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    username = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    activity_status = Column(
        SqlEnum(
            AccountActivityStatus,
            name="customer_account_activity_status_enum",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=AccountActivityStatus.ACTIVE,
        server_default=AccountActivityStatus.ACTIVE.value,
        index=True,
    )
    verification_status = Column(
        SqlEnum(
            AccountVerificationStatus,
            name="customer_account_verification_status_enum",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=AccountVerificationStatus.UNVERIFIED,
        server_default=AccountVerificationStatus.UNVERIFIED.value,
        index=True,
    )
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


__all__ = ["AccountActivityStatus", "AccountVerificationStatus", "CustomerAccount"]
