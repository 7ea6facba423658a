"""Customer account lifecycle: creation, activity status and logins."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from loguru import logger
from sqlalchemy import select

from loyalty_club_api.db.base import utcnow
from loyalty_club_api.models.account import AccountActivityStatus, CustomerAccount
from loyalty_club_api.models.customer import Customer
from .base import AccountUnitOfWorkService
from .errors import AccountNotFoundError, CustomerNotFoundError, DuplicateAccountError
from .status_audit import AccountStatusAuditLog


class CustomerAccountService(AccountUnitOfWorkService):
    """Single writer of ``activity_status``; derived fields come from the propagator."""

    async def create_account(self, customer_id: UUID, *, password_hash: str) -> CustomerAccount:
        """Create the customer's account with derived username and verification status.

        Raises ``NoContactMethodError`` if the customer has no linked contact.
        """

        async with self._atomic():
            customer = await self._session.get(Customer, customer_id)
            if customer is None:
                raise CustomerNotFoundError(f"Customer {customer_id} not found")
            if await self.get_by_customer(customer_id) is not None:
                raise DuplicateAccountError(f"Customer {customer_id} already has an account")

            derived = await self._propagator.derive_for_new_account(customer)
            account = CustomerAccount(
                customer_id=customer.id,
                username=derived.username,
                password_hash=password_hash,
                activity_status=AccountActivityStatus.ACTIVE,
                verification_status=derived.verification_status,
            )
            self._session.add(account)
            await self._session.flush()

        logger.info(
            "Customer account created",
            account_id=str(account.id),
            customer_id=str(customer_id),
            verification_status=account.verification_status.value,
        )
        return account

    async def get_account(self, account_id: UUID) -> CustomerAccount:
        account = await self._session.get(CustomerAccount, account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    async def get_by_customer(self, customer_id: UUID) -> CustomerAccount | None:
        stmt = select(CustomerAccount).where(CustomerAccount.customer_id == customer_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def find_by_username(self, username: str) -> CustomerAccount | None:
        stmt = select(CustomerAccount).where(CustomerAccount.username == username)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def apply_activity_status(
        self,
        account: CustomerAccount,
        status: AccountActivityStatus,
    ) -> bool:
        """Set ``status`` and queue its audit row without committing.

        Returns False, and writes nothing, when the status is unchanged.
        """

        previous = account.activity_status
        if previous == status:
            return False
        account.activity_status = status
        AccountStatusAuditLog(self._session).append(account.id, previous, status)
        return True

    async def update_activity_status(
        self,
        account_id: UUID,
        status: AccountActivityStatus,
    ) -> CustomerAccount:
        async with self._atomic():
            account = await self.get_account(account_id)
            previous = account.activity_status
            changed = await self.apply_activity_status(account, status)
        if changed:
            logger.info(
                "Account activity status changed",
                account_id=str(account_id),
                old_status=previous.value,
                new_status=status.value,
            )
        return account

    async def record_login(self, account_id: UUID, at: datetime | None = None) -> CustomerAccount:
        """Stamp ``last_login_at``; status is left to the caller and the jobs."""

        async with self._atomic():
            account = await self.get_account(account_id)
            account.last_login_at = at or utcnow()
        return account

    async def update_password_hash(self, account_id: UUID, password_hash: str) -> CustomerAccount:
        async with self._atomic():
            account = await self.get_account(account_id)
            account.password_hash = password_hash
        return account


__all__ = ["CustomerAccountService"]
