"""Read-only projections over profiles, contacts and accounts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_club_api.db.base import ensure_utc, utcnow
from loyalty_club_api.models.account import (
    AccountActivityStatus,
    AccountVerificationStatus,
    CustomerAccount,
)
from loyalty_club_api.models.contact import CustomerEmail, CustomerPhone
from loyalty_club_api.models.customer import Customer
from .derivation import calculate_verification_status
from .errors import AccountNotFoundError, CustomerNotFoundError


class ContactType(str, Enum):
    BOTH = "BOTH"
    EMAIL_ONLY = "EMAIL_ONLY"
    PHONE_ONLY = "PHONE_ONLY"
    NONE = "NONE"


@dataclass(frozen=True, slots=True)
class CustomerContactLookup:
    customer_id: UUID
    first_name: str
    last_name: str
    email_id: UUID | None
    email: str | None
    email_verified: bool | None
    phone_id: UUID | None
    phone: str | None
    phone_verified: bool | None

    @property
    def has_email(self) -> bool:
        return self.email_id is not None

    @property
    def has_phone(self) -> bool:
        return self.phone_id is not None

    @property
    def preferred_username(self) -> str | None:
        return self.email if self.email is not None else self.phone

    @property
    def contact_type(self) -> ContactType:
        if self.has_email and self.has_phone:
            return ContactType.BOTH
        if self.has_email:
            return ContactType.EMAIL_ONLY
        if self.has_phone:
            return ContactType.PHONE_ONLY
        return ContactType.NONE


@dataclass(frozen=True, slots=True)
class AccountVerificationData:
    account_id: UUID
    customer_id: UUID
    username: str
    verification_status: AccountVerificationStatus
    email_verified: bool | None
    phone_verified: bool | None

    @property
    def calculated_status(self) -> AccountVerificationStatus:
        return calculate_verification_status(self.email_verified, self.phone_verified)

    @property
    def status_needs_update(self) -> bool:
        """Drift diagnostic; stays False while writes go through the services."""

        return self.verification_status != self.calculated_status


@dataclass(frozen=True, slots=True)
class AccountActivityData:
    account_id: UUID
    username: str
    activity_status: AccountActivityStatus
    last_login_at: datetime | None
    days_since_login: int | None

    @property
    def has_logged_in(self) -> bool:
        return self.last_login_at is not None


class AccountReportingService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def contact_lookup(self, customer_id: UUID) -> CustomerContactLookup:
        customer = await self._session.get(Customer, customer_id)
        if customer is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        email, phone = await self._contacts(customer)
        return CustomerContactLookup(
            customer_id=customer.id,
            first_name=customer.first_name,
            last_name=customer.last_name,
            email_id=email.id if email else None,
            email=email.email if email else None,
            email_verified=email.is_verified if email else None,
            phone_id=phone.id if phone else None,
            phone=phone.phone if phone else None,
            phone_verified=phone.is_verified if phone else None,
        )

    async def verification_data(self, account_id: UUID) -> AccountVerificationData:
        account = await self._account(account_id)
        customer = await self._session.get(Customer, account.customer_id)
        email, phone = await self._contacts(customer) if customer else (None, None)
        return AccountVerificationData(
            account_id=account.id,
            customer_id=account.customer_id,
            username=account.username,
            verification_status=account.verification_status,
            email_verified=email.is_verified if email else None,
            phone_verified=phone.is_verified if phone else None,
        )

    async def activity_data(
        self,
        account_id: UUID,
        *,
        now: datetime | None = None,
    ) -> AccountActivityData:
        account = await self._account(account_id)
        last_login = ensure_utc(account.last_login_at) if account.last_login_at else None
        days_since_login = None
        if last_login is not None:
            days_since_login = ((now or utcnow()) - last_login).days
        return AccountActivityData(
            account_id=account.id,
            username=account.username,
            activity_status=account.activity_status,
            last_login_at=last_login,
            days_since_login=days_since_login,
        )

    async def _account(self, account_id: UUID) -> CustomerAccount:
        account = await self._session.get(CustomerAccount, account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    async def _contacts(self, customer: Customer) -> tuple[CustomerEmail | None, CustomerPhone | None]:
        email = await self._session.get(CustomerEmail, customer.email_id) if customer.email_id else None
        phone = await self._session.get(CustomerPhone, customer.phone_id) if customer.phone_id else None
        return email, phone


__all__ = [
    "AccountActivityData",
    "AccountReportingService",
    "AccountVerificationData",
    "ContactType",
    "CustomerContactLookup",
]
