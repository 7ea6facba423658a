"""Customer profile creation and contact linking."""

from __future__ import annotations

from uuid import UUID

from loguru import logger

from loyalty_club_api.models.contact import CustomerEmail, CustomerPhone
from loyalty_club_api.models.customer import Customer
from .base import AccountUnitOfWorkService
from .errors import ContactNotFoundError, CustomerNotFoundError


class CustomerProfileService(AccountUnitOfWorkService):
    """Link and unlink contacts on a profile, re-deriving its account each time."""

    async def create_customer(
        self,
        first_name: str,
        last_name: str,
        *,
        email_id: UUID | None = None,
        phone_id: UUID | None = None,
    ) -> Customer:
        async with self._atomic():
            if email_id is not None:
                await self._require_email(email_id)
            if phone_id is not None:
                await self._require_phone(phone_id)
            customer = Customer(
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                email_id=email_id,
                phone_id=phone_id,
            )
            self._session.add(customer)
            await self._session.flush()
        logger.info(
            "Customer profile created",
            customer_id=str(customer.id),
            has_email=email_id is not None,
            has_phone=phone_id is not None,
        )
        return customer

    async def get_customer(self, customer_id: UUID) -> Customer:
        customer = await self._session.get(Customer, customer_id)
        if customer is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        return customer

    async def update_names(self, customer_id: UUID, first_name: str, last_name: str) -> Customer:
        async with self._atomic():
            customer = await self.get_customer(customer_id)
            customer.first_name = first_name.strip()
            customer.last_name = last_name.strip()
        return customer

    async def link_email(self, customer_id: UUID, email_id: UUID) -> Customer:
        """Add or swap the profile's email."""

        async with self._atomic():
            customer = await self.get_customer(customer_id)
            await self._require_email(email_id)
            if customer.email_id != email_id:
                customer.email_id = email_id
                await self._propagator.profile_links_changed(customer)
        return customer

    async def link_phone(self, customer_id: UUID, phone_id: UUID) -> Customer:
        """Add or swap the profile's phone."""

        async with self._atomic():
            customer = await self.get_customer(customer_id)
            await self._require_phone(phone_id)
            if customer.phone_id != phone_id:
                customer.phone_id = phone_id
                await self._propagator.profile_links_changed(customer)
        return customer

    async def unlink_email(self, customer_id: UUID) -> Customer:
        """Remove the email link; fails if it is the account's last contact."""

        async with self._atomic():
            customer = await self.get_customer(customer_id)
            if customer.email_id is not None:
                customer.email_id = None
                await self._propagator.profile_links_changed(customer)
        return customer

    async def unlink_phone(self, customer_id: UUID) -> Customer:
        """Remove the phone link; fails if it is the account's last contact."""

        async with self._atomic():
            customer = await self.get_customer(customer_id)
            if customer.phone_id is not None:
                customer.phone_id = None
                await self._propagator.profile_links_changed(customer)
        return customer

    async def _require_email(self, email_id: UUID) -> CustomerEmail:
        email = await self._session.get(CustomerEmail, email_id)
        if email is None:
            raise ContactNotFoundError(f"Email contact {email_id} not found")
        return email

    async def _require_phone(self, phone_id: UUID) -> CustomerPhone:
        phone = await self._session.get(CustomerPhone, phone_id)
        if phone is None:
            raise ContactNotFoundError(f"Phone contact {phone_id} not found")
        return phone


__all__ = ["CustomerProfileService"]
