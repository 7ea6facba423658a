"""One-time password and password reset token models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import UUID

from loyalty_club_api.db.base import Base, utcnow


class OtpPurpose(str, Enum):
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    PHONE_VERIFICATION = "PHONE_VERIFICATION"
    PASSWORD_RESET = "PASSWORD_RESET"

    @property
    def verifies_contact(self) -> bool:
        return self is not OtpPurpose.PASSWORD_RESET


class OtpDeliveryMethod(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"


@dataclass(frozen=True, slots=True)
class EmailOtpTarget:
    """OTP addressed to an email contact."""

    email_id: PyUUID

    @property
    def delivery_method(self) -> OtpDeliveryMethod:
        return OtpDeliveryMethod.EMAIL


@dataclass(frozen=True, slots=True)
class PhoneOtpTarget:
    """OTP addressed to a phone contact."""

    phone_id: PyUUID

    @property
    def delivery_method(self) -> OtpDeliveryMethod:
        return OtpDeliveryMethod.SMS


OtpTarget = EmailOtpTarget | PhoneOtpTarget


class OtpToken(Base):
    """OTP code addressed to exactly one contact.

    Build instances with :meth:`for_target`; the two nullable contact columns
    are a storage detail of the ``OtpTarget`` variant.
    """

    __tablename__ = "otp_tokens"
    __table_args__ = (
        CheckConstraint(
            "(customer_email_id IS NOT NULL AND customer_phone_id IS NULL) OR "
            "(customer_email_id IS NULL AND customer_phone_id IS NOT NULL)",
            name="ck_otp_tokens_single_contact",
        ),
        CheckConstraint(
            "(customer_email_id IS NOT NULL AND delivery_method = 'EMAIL') OR "
            "(customer_phone_id IS NOT NULL AND delivery_method = 'SMS')",
            name="ck_otp_tokens_delivery_method",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_email_id = Column(
        UUID(as_uuid=True),
        ForeignKey("customer_emails.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    customer_phone_id = Column(
        UUID(as_uuid=True),
        ForeignKey("customer_phones.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    otp_code = Column(String(6), nullable=False)
    purpose = Column(
        SqlEnum(OtpPurpose, name="otp_purpose_enum", values_callable=lambda enum: [m.value for m in enum]),
        nullable=False,
    )
    delivery_method = Column(
        SqlEnum(
            OtpDeliveryMethod,
            name="otp_delivery_method_enum",
            values_callable=lambda enum: [m.value for m in enum],
        ),
        nullable=False,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    attempts_count = Column(Integer, nullable=False, default=0, server_default="0")
    max_attempts = Column(Integer, nullable=False, default=3, server_default="3")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    @classmethod
    def for_target(cls, target: OtpTarget, **fields: object) -> "OtpToken":
        if isinstance(target, EmailOtpTarget):
            return cls(
                customer_email_id=target.email_id,
                customer_phone_id=None,
                delivery_method=target.delivery_method,
                **fields,
            )
        if isinstance(target, PhoneOtpTarget):
            return cls(
                customer_email_id=None,
                customer_phone_id=target.phone_id,
                delivery_method=target.delivery_method,
                **fields,
            )
        raise TypeError(f"Unsupported OTP target: {target!r}")

    @property
    def target(self) -> OtpTarget:
        if self.customer_email_id is not None:
            return EmailOtpTarget(email_id=self.customer_email_id)
        return PhoneOtpTarget(phone_id=self.customer_phone_id)


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    account_id = Column(
        UUID(as_uuid=True),
        ForeignKey("customer_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token = Column(String(255), nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


__all__ = [
    "EmailOtpTarget",
    "OtpDeliveryMethod",
    "OtpPurpose",
    "OtpTarget",
    "OtpToken",
    "PasswordResetToken",
    "PhoneOtpTarget",
]
