"""Central recomputation of derived account fields.

Every mutator of contacts, profile links, or OTP usage calls into the
:class:`ConsistencyPropagator` inside its own unit of work, before commit.
The propagator never commits; the caller's commit or rollback covers both the
triggering write and the recomputation.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_club_api.models.account import CustomerAccount
from loyalty_club_api.models.contact import CustomerEmail, CustomerPhone
from loyalty_club_api.models.customer import Customer
from loyalty_club_api.models.token import EmailOtpTarget, OtpToken
from .derivation import ContactSnapshot, DerivedAccountFields, derive_account_fields
from .errors import NoContactMethodError

SessionFactory = Callable[[], AsyncSession] | Callable[[], Awaitable[AsyncSession]]
Contact = CustomerEmail | CustomerPhone


class ConsistencyPropagator:
    """Keeps ``username`` and ``verification_status`` in step with contacts."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def snapshot_for(self, customer: Customer) -> ContactSnapshot:
        """Read the customer's currently linked contacts."""

        email = await self._session.get(CustomerEmail, customer.email_id) if customer.email_id else None
        phone = await self._session.get(CustomerPhone, customer.phone_id) if customer.phone_id else None
        return ContactSnapshot(
            email_address=email.email if email else None,
            email_verified=email.is_verified if email else None,
            phone_number=phone.phone if phone else None,
            phone_verified=phone.is_verified if phone else None,
        )

    async def derive_for_new_account(self, customer: Customer) -> DerivedAccountFields:
        """Derive fields for an account about to be created for ``customer``."""

        return await self._derive(customer)

    async def recompute_for_customer(self, customer_id: UUID) -> bool:
        """Re-derive the account of ``customer_id``; return True if anything changed.

        Customers without an account, and unknown customers, are a no-op.
        """

        customer = await self._session.get(Customer, customer_id)
        if customer is None:
            return False
        account = await self._account_for(customer.id)
        if account is None:
            return False
        return await self._apply(customer, account)

    async def profile_links_changed(self, customer: Customer) -> bool:
        """Handle an added, swapped or removed email/phone link."""

        await self._session.flush()
        account = await self._account_for(customer.id)
        if account is None:
            return False
        return await self._apply(customer, account)

    async def contact_changed(self, contact: Contact) -> int:
        """Recompute every account whose profile links ``contact``.

        Covers both verified-flag changes and address/number changes.
        """

        await self._session.flush()
        if isinstance(contact, CustomerEmail):
            stmt = select(Customer.id).where(Customer.email_id == contact.id)
        else:
            stmt = select(Customer.id).where(Customer.phone_id == contact.id)
        result = await self._session.execute(stmt)
        updated = 0
        for customer_id in result.scalars().all():
            if await self.recompute_for_customer(customer_id):
                updated += 1
        return updated

    async def otp_token_used(self, token: OtpToken) -> bool:
        """Verify the token's contact when a verification OTP is consumed.

        Returns True when a contact flipped to verified. Password reset tokens
        and already-verified contacts leave state untouched.
        """

        if not token.purpose.verifies_contact:
            return False

        target = token.target
        contact: Contact | None
        if isinstance(target, EmailOtpTarget):
            contact = await self._session.get(CustomerEmail, target.email_id)
        else:
            contact = await self._session.get(CustomerPhone, target.phone_id)
        if contact is None or contact.is_verified:
            return False

        contact.is_verified = True
        await self.contact_changed(contact)
        logger.info(
            "Contact verified through OTP",
            token_id=str(token.id),
            purpose=token.purpose.value,
            contact_id=str(contact.id),
        )
        return True

    async def _derive(self, customer: Customer) -> DerivedAccountFields:
        snapshot = await self.snapshot_for(customer)
        try:
            return derive_account_fields(snapshot)
        except NoContactMethodError:
            raise NoContactMethodError(customer.id) from None

    async def _apply(self, customer: Customer, account: CustomerAccount) -> bool:
        derived = await self._derive(customer)
        changes: Dict[str, Any] = {}
        if account.username != derived.username:
            changes["username"] = derived.username
        if account.verification_status != derived.verification_status:
            changes["verification_status"] = derived.verification_status
        if not changes:
            return False

        for field, value in changes.items():
            setattr(account, field, value)
        await self._session.flush()
        logger.info(
            "Account derived fields recomputed",
            account_id=str(account.id),
            customer_id=str(customer.id),
            changes={key: getattr(value, "value", value) for key, value in changes.items()},
        )
        return True

    async def _account_for(self, customer_id: UUID) -> CustomerAccount | None:
        stmt = select(CustomerAccount).where(CustomerAccount.customer_id == customer_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


async def recompute_verification_and_username(
    customer_id: UUID,
    *,
    session_factory: SessionFactory,
) -> Dict[str, Any]:
    """Recompute one customer's derived account fields in its own transaction."""

    maybe_session = session_factory()
    session = maybe_session if isinstance(maybe_session, AsyncSession) else await maybe_session

    async with session as managed_session:
        propagator = ConsistencyPropagator(managed_session)
        try:
            changed = await propagator.recompute_for_customer(customer_id)
        except NoContactMethodError:
            await managed_session.rollback()
            raise
        await managed_session.commit()

    summary = {"customer_id": str(customer_id), "records_processed": 1 if changed else 0}
    logger.bind(summary=summary).info("Account recomputation completed")
    return summary


__all__ = ["ConsistencyPropagator", "recompute_verification_and_username"]
