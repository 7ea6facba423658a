from uuid import uuid4

import pytest
from sqlalchemy import select, text

from loyalty_club_api.models.account import AccountVerificationStatus, CustomerAccount
from loyalty_club_api.models.contact import CustomerEmail, CustomerPhone
from loyalty_club_api.models.customer import Customer
from loyalty_club_api.services.accounts import (
    ConsistencyPropagator,
    ContactService,
    CustomerAccountService,
    CustomerProfileService,
    DuplicateAccountError,
    NoContactMethodError,
    recompute_verification_and_username,
)


async def _load_account(session_factory, account_id) -> CustomerAccount:
    async with session_factory() as session:
        return await CustomerAccountService(session).get_account(account_id)


@pytest.mark.asyncio
async def test_email_verification_flows_into_account(session_factory) -> None:
    async with session_factory() as session:
        contacts = ContactService(session)
        email = await contacts.create_email("A@X.com", verified=False)
        customer = await CustomerProfileService(session).create_customer("Ada", "Lovelace", email_id=email.id)
        account = await CustomerAccountService(session).create_account(customer.id, password_hash="h")

    assert account.username == "a@x.com"
    assert account.verification_status is AccountVerificationStatus.UNVERIFIED

    async with session_factory() as session:
        await ContactService(session).set_email_verified(email.id, True)

    refreshed = await _load_account(session_factory, account.id)
    assert refreshed.verification_status is AccountVerificationStatus.EMAIL_VERIFIED
    assert refreshed.username == "a@x.com"


@pytest.mark.asyncio
async def test_unlinking_email_falls_back_to_phone(session_factory, create_account) -> None:
    account = await create_account(
        email="both@x.com",
        phone="+15550100",
        email_verified=True,
        phone_verified=True,
    )
    assert account.verification_status is AccountVerificationStatus.FULLY_VERIFIED
    assert account.username == "both@x.com"

    async with session_factory() as session:
        await CustomerProfileService(session).unlink_email(account.customer_id)

    refreshed = await _load_account(session_factory, account.id)
    assert refreshed.verification_status is AccountVerificationStatus.PHONE_VERIFIED
    assert refreshed.username == "+15550100"


@pytest.mark.asyncio
async def test_linking_email_later_takes_over_username(session_factory, create_account) -> None:
    account = await create_account(phone="+15550101", phone_verified=True)
    assert account.username == "+15550101"

    async with session_factory() as session:
        email = await ContactService(session).create_email("late@x.com", verified=True)
        await CustomerProfileService(session).link_email(account.customer_id, email.id)

    refreshed = await _load_account(session_factory, account.id)
    assert refreshed.username == "late@x.com"
    assert refreshed.verification_status is AccountVerificationStatus.FULLY_VERIFIED


@pytest.mark.asyncio
async def test_create_account_without_contacts_is_rejected(session_factory) -> None:
    async with session_factory() as session:
        customer = await CustomerProfileService(session).create_customer("No", "Contact")
        with pytest.raises(NoContactMethodError):
            await CustomerAccountService(session).create_account(customer.id, password_hash="h")

    async with session_factory() as session:
        accounts = (await session.execute(select(CustomerAccount))).scalars().all()
    assert accounts == []


@pytest.mark.asyncio
async def test_second_account_for_customer_is_rejected(session_factory, create_account) -> None:
    account = await create_account(email="dup@x.com")

    async with session_factory() as session:
        with pytest.raises(DuplicateAccountError):
            await CustomerAccountService(session).create_account(account.customer_id, password_hash="h")


@pytest.mark.asyncio
async def test_unlinking_last_contact_rolls_back(session_factory, create_account) -> None:
    account = await create_account(email="solo@x.com", email_verified=True)

    async with session_factory() as session:
        with pytest.raises(NoContactMethodError) as excinfo:
            await CustomerProfileService(session).unlink_email(account.customer_id)
    assert excinfo.value.customer_id == account.customer_id

    async with session_factory() as session:
        customer = await session.get(Customer, account.customer_id)
        assert customer.email_id is not None
    refreshed = await _load_account(session_factory, account.id)
    assert refreshed.username == "solo@x.com"
    assert refreshed.verification_status is AccountVerificationStatus.EMAIL_VERIFIED


@pytest.mark.asyncio
async def test_profile_without_account_may_drop_all_contacts(session_factory) -> None:
    async with session_factory() as session:
        email = await ContactService(session).create_email("free@x.com")
        profiles = CustomerProfileService(session)
        customer = await profiles.create_customer("Free", "Agent", email_id=email.id)
        customer = await profiles.unlink_email(customer.id)

    assert customer.email_id is None


@pytest.mark.asyncio
async def test_changing_email_address_resets_verification(session_factory, create_account) -> None:
    account = await create_account(email="old@x.com", email_verified=True, phone="+15550102")

    async with session_factory() as session:
        customer = await session.get(Customer, account.customer_id)
        email = await ContactService(session).change_email_address(customer.email_id, "New@X.com")

    assert email.email == "new@x.com"
    assert email.is_verified is False
    refreshed = await _load_account(session_factory, account.id)
    assert refreshed.username == "new@x.com"
    assert refreshed.verification_status is AccountVerificationStatus.UNVERIFIED


@pytest.mark.asyncio
async def test_deleting_linked_phone_unlinks_and_recomputes(session_factory, create_account) -> None:
    account = await create_account(email="keep@x.com", phone="+15550103", phone_verified=True)
    assert account.verification_status is AccountVerificationStatus.PHONE_VERIFIED

    async with session_factory() as session:
        customer = await session.get(Customer, account.customer_id)
        await ContactService(session).delete_phone(customer.phone_id)

    async with session_factory() as session:
        customer = await session.get(Customer, account.customer_id)
        assert customer.phone_id is None
    refreshed = await _load_account(session_factory, account.id)
    assert refreshed.verification_status is AccountVerificationStatus.UNVERIFIED
    assert refreshed.username == "keep@x.com"


@pytest.mark.asyncio
async def test_deleting_only_contact_is_rejected(session_factory, create_account) -> None:
    account = await create_account(email="last@x.com")

    async with session_factory() as session:
        customer = await session.get(Customer, account.customer_id)
        email_id = customer.email_id

    async with session_factory() as session:
        with pytest.raises(NoContactMethodError):
            await ContactService(session).delete_email(email_id)

    async with session_factory() as session:
        assert await session.get(CustomerEmail, email_id) is not None


@pytest.mark.asyncio
async def test_recompute_without_changes_mutates_nothing(session_factory, create_account) -> None:
    account = await create_account(email="stable@x.com", email_verified=True)
    before = await _load_account(session_factory, account.id)

    summary = await recompute_verification_and_username(account.customer_id, session_factory=session_factory)

    after = await _load_account(session_factory, account.id)
    assert summary == {"customer_id": str(account.customer_id), "records_processed": 0}
    assert after.username == before.username
    assert after.verification_status is before.verification_status
    assert after.updated_at == before.updated_at


@pytest.mark.asyncio
async def test_recompute_repairs_drifted_fields(session_factory, create_account) -> None:
    account = await create_account(email="drift@x.com", email_verified=True)

    async with session_factory() as session:
        stored = await session.get(CustomerAccount, account.id)
        stored.username = "stale-name"
        stored.verification_status = AccountVerificationStatus.UNVERIFIED
        await session.commit()

    summary = await recompute_verification_and_username(account.customer_id, session_factory=session_factory)

    refreshed = await _load_account(session_factory, account.id)
    assert summary["records_processed"] == 1
    assert refreshed.username == "drift@x.com"
    assert refreshed.verification_status is AccountVerificationStatus.EMAIL_VERIFIED


@pytest.mark.asyncio
async def test_recompute_for_unknown_customer_is_noop(session_factory) -> None:
    async with session_factory() as session:
        assert await ConsistencyPropagator(session).recompute_for_customer(uuid4()) is False


@pytest.mark.asyncio
async def test_contacts_inserted_outside_the_orm_default_to_unverified(session_factory) -> None:
    email_id = uuid4()
    phone_id = uuid4()
    async with session_factory() as session:
        await session.execute(
            text("INSERT INTO customer_emails (id, email) VALUES (:id, :email)"),
            {"id": email_id.hex, "email": "raw@x.com"},
        )
        await session.execute(
            text("INSERT INTO customer_phones (id, phone) VALUES (:id, :phone)"),
            {"id": phone_id.hex, "phone": "+15550999"},
        )
        await session.commit()

    async with session_factory() as session:
        email = await session.get(CustomerEmail, email_id)
        phone = await session.get(CustomerPhone, phone_id)
    assert email.is_verified is False
    assert phone.is_verified is False
