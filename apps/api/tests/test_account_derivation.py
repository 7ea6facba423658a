import pytest

from loyalty_club_api.models.account import AccountVerificationStatus
from loyalty_club_api.services.accounts import (
    ContactSnapshot,
    NoContactMethodError,
    calculate_verification_status,
    derive_account_fields,
    resolve_username,
)


@pytest.mark.parametrize(
    ("email_verified", "phone_verified", "expected"),
    [
        (None, None, AccountVerificationStatus.UNVERIFIED),
        (False, None, AccountVerificationStatus.UNVERIFIED),
        (None, False, AccountVerificationStatus.UNVERIFIED),
        (False, False, AccountVerificationStatus.UNVERIFIED),
        (True, None, AccountVerificationStatus.EMAIL_VERIFIED),
        (True, False, AccountVerificationStatus.EMAIL_VERIFIED),
        (None, True, AccountVerificationStatus.PHONE_VERIFIED),
        (False, True, AccountVerificationStatus.PHONE_VERIFIED),
        (True, True, AccountVerificationStatus.FULLY_VERIFIED),
    ],
)
def test_calculate_verification_status_covers_every_combination(email_verified, phone_verified, expected) -> None:
    assert calculate_verification_status(email_verified, phone_verified) is expected


def test_resolve_username_prefers_email() -> None:
    assert resolve_username("a@x.com", "+15550001") == "a@x.com"
    assert resolve_username(None, "+15550001") == "+15550001"


def test_resolve_username_without_contacts_fails() -> None:
    with pytest.raises(NoContactMethodError) as excinfo:
        resolve_username(None, None)

    assert "contact method" in str(excinfo.value)
    assert excinfo.value.customer_id is None


def test_derive_account_fields_combines_both_derivations() -> None:
    snapshot = ContactSnapshot(
        email_address="a@x.com",
        email_verified=False,
        phone_number="+15550001",
        phone_verified=True,
    )

    derived = derive_account_fields(snapshot)

    assert derived.username == "a@x.com"
    assert derived.verification_status is AccountVerificationStatus.PHONE_VERIFIED
    assert snapshot.has_email and snapshot.has_phone
