"""Email and phone contact mutations."""

from __future__ import annotations

from uuid import UUID

from loguru import logger
from sqlalchemy import delete, select

from loyalty_club_api.models.contact import CustomerEmail, CustomerPhone
from loyalty_club_api.models.customer import Customer
from loyalty_club_api.models.token import OtpToken
from .base import AccountUnitOfWorkService
from .errors import ContactNotFoundError


def _normalize_email(address: str) -> str:
    return address.strip().lower()


def _normalize_phone(number: str) -> str:
    return number.strip()


class ContactService(AccountUnitOfWorkService):
    """Create, verify, change and delete contacts.

    Every write that can affect a linked account runs the propagator in the
    same transaction.
    """

    async def create_email(self, address: str, *, verified: bool = False) -> CustomerEmail:
        async with self._atomic():
            email = CustomerEmail(email=_normalize_email(address), is_verified=verified)
            self._session.add(email)
            await self._session.flush()
        logger.info("Email contact created", email_id=str(email.id), verified=verified)
        return email

    async def create_phone(self, number: str, *, verified: bool = False) -> CustomerPhone:
        async with self._atomic():
            phone = CustomerPhone(phone=_normalize_phone(number), is_verified=verified)
            self._session.add(phone)
            await self._session.flush()
        logger.info("Phone contact created", phone_id=str(phone.id), verified=verified)
        return phone

    async def get_email(self, email_id: UUID) -> CustomerEmail:
        email = await self._session.get(CustomerEmail, email_id)
        if email is None:
            raise ContactNotFoundError(f"Email contact {email_id} not found")
        return email

    async def get_phone(self, phone_id: UUID) -> CustomerPhone:
        phone = await self._session.get(CustomerPhone, phone_id)
        if phone is None:
            raise ContactNotFoundError(f"Phone contact {phone_id} not found")
        return phone

    async def find_email(self, address: str) -> CustomerEmail | None:
        stmt = select(CustomerEmail).where(CustomerEmail.email == _normalize_email(address))
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def find_phone(self, number: str) -> CustomerPhone | None:
        stmt = select(CustomerPhone).where(CustomerPhone.phone == _normalize_phone(number))
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def set_email_verified(self, email_id: UUID, verified: bool) -> CustomerEmail:
        async with self._atomic():
            email = await self.get_email(email_id)
            if email.is_verified != verified:
                email.is_verified = verified
                await self._propagator.contact_changed(email)
        return email

    async def set_phone_verified(self, phone_id: UUID, verified: bool) -> CustomerPhone:
        async with self._atomic():
            phone = await self.get_phone(phone_id)
            if phone.is_verified != verified:
                phone.is_verified = verified
                await self._propagator.contact_changed(phone)
        return phone

    async def change_email_address(self, email_id: UUID, address: str) -> CustomerEmail:
        """Replace the address; the new address starts unverified."""

        async with self._atomic():
            email = await self.get_email(email_id)
            normalized = _normalize_email(address)
            if email.email != normalized:
                email.email = normalized
                email.is_verified = False
                await self._propagator.contact_changed(email)
        return email

    async def change_phone_number(self, phone_id: UUID, number: str) -> CustomerPhone:
        """Replace the number; the new number starts unverified."""

        async with self._atomic():
            phone = await self.get_phone(phone_id)
            normalized = _normalize_phone(number)
            if phone.phone != normalized:
                phone.phone = normalized
                phone.is_verified = False
                await self._propagator.contact_changed(phone)
        return phone

    async def delete_email(self, email_id: UUID) -> None:
        """Unlink the email from its profile, then delete it."""

        async with self._atomic():
            email = await self.get_email(email_id)
            stmt = select(Customer).where(Customer.email_id == email.id)
            for customer in (await self._session.execute(stmt)).scalars().all():
                customer.email_id = None
                await self._propagator.profile_links_changed(customer)
            await self._session.execute(delete(OtpToken).where(OtpToken.customer_email_id == email.id))
            await self._session.delete(email)
        logger.info("Email contact deleted", email_id=str(email_id))

    async def delete_phone(self, phone_id: UUID) -> None:
        """Unlink the phone from its profile, then delete it."""

        async with self._atomic():
            phone = await self.get_phone(phone_id)
            stmt = select(Customer).where(Customer.phone_id == phone.id)
            for customer in (await self._session.execute(stmt)).scalars().all():
                customer.phone_id = None
                await self._propagator.profile_links_changed(customer)
            await self._session.execute(delete(OtpToken).where(OtpToken.customer_phone_id == phone.id))
            await self._session.delete(phone)
        logger.info("Phone contact deleted", phone_id=str(phone_id))


__all__ = ["ContactService"]
