"""Pure derivations of account fields from the customer's linked contacts."""

from __future__ import annotations

from dataclasses import dataclass

from loyalty_club_api.models.account import AccountVerificationStatus
from .errors import NoContactMethodError


@dataclass(frozen=True, slots=True)
class ContactSnapshot:
    """Linked contacts of one customer at a point in time.

    ``None`` means the channel is not linked.
    """

    email_address: str | None = None
    email_verified: bool | None = None
    phone_number: str | None = None
    phone_verified: bool | None = None

    @property
    def has_email(self) -> bool:
        return self.email_address is not None

    @property
    def has_phone(self) -> bool:
        return self.phone_number is not None


@dataclass(frozen=True, slots=True)
class DerivedAccountFields:
    username: str
    verification_status: AccountVerificationStatus


def calculate_verification_status(
    email_verified: bool | None,
    phone_verified: bool | None,
) -> AccountVerificationStatus:
    """Map the verified flags of the linked contacts to an account status.

    ``None`` stands for an unlinked channel and counts as not verified.
    """

    email_ok = email_verified is True
    phone_ok = phone_verified is True
    if email_ok and phone_ok:
        return AccountVerificationStatus.FULLY_VERIFIED
    if email_ok:
        return AccountVerificationStatus.EMAIL_VERIFIED
    if phone_ok:
        return AccountVerificationStatus.PHONE_VERIFIED
    return AccountVerificationStatus.UNVERIFIED


def resolve_username(email_address: str | None, phone_number: str | None) -> str:
    """Return the email address if linked, else the phone number."""

    if email_address is not None:
        return email_address
    if phone_number is not None:
        return phone_number
    raise NoContactMethodError()


def derive_account_fields(snapshot: ContactSnapshot) -> DerivedAccountFields:
    return DerivedAccountFields(
        username=resolve_username(snapshot.email_address, snapshot.phone_number),
        verification_status=calculate_verification_status(
            snapshot.email_verified,
            snapshot.phone_verified,
        ),
    )


__all__ = [
    "ContactSnapshot",
    "DerivedAccountFields",
    "calculate_verification_status",
    "derive_account_fields",
    "resolve_username",
]
