import sys
from datetime import datetime
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

import loyalty_club_api.models  # noqa: E402,F401
from loyalty_club_api.db.base import Base  # noqa: E402
from loyalty_club_api.models.account import CustomerAccount  # noqa: E402
from loyalty_club_api.services.accounts import (  # noqa: E402
    ContactService,
    CustomerAccountService,
    CustomerProfileService,
)
from loyalty_club_api.services.configuration import BusinessConfigService  # noqa: E402


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def seeded_config(session_factory):
    async with session_factory() as session:
        await BusinessConfigService(session).seed_defaults()
    return session_factory


@pytest.fixture
def create_account(session_factory):
    """Build contact(s), a profile and an account through the services."""

    async def _create(
        *,
        email: str | None = None,
        phone: str | None = None,
        email_verified: bool = False,
        phone_verified: bool = False,
        created_at: datetime | None = None,
        last_login_at: datetime | None = None,
    ) -> CustomerAccount:
        async with session_factory() as session:
            contacts = ContactService(session)
            email_id = None
            phone_id = None
            if email is not None:
                email_id = (await contacts.create_email(email, verified=email_verified)).id
            if phone is not None:
                phone_id = (await contacts.create_phone(phone, verified=phone_verified)).id

            customer = await CustomerProfileService(session).create_customer(
                "Ada",
                "Lovelace",
                email_id=email_id,
                phone_id=phone_id,
            )
            account = await CustomerAccountService(session).create_account(
                customer.id,
                password_hash="hashed-secret",
            )
            if created_at is not None or last_login_at is not None:
                if created_at is not None:
                    account.created_at = created_at
                account.last_login_at = last_login_at
                await session.commit()
            return account

    return _create
