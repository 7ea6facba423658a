"""Business configuration stored in the ``business_config`` table."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_club_api.models.business_config import BusinessConfig


ACCOUNT_INACTIVITY_DAYS = "account_inactivity_days"
INACTIVITY_BATCH_SIZE = "inactivity_batch_size"
PASSWORD_RESET_TOKEN_CLEANUP_DAYS = "password_reset_token_cleanup_days"
OTP_TOKEN_CLEANUP_DAYS = "otp_token_cleanup_days"
JOB_EXECUTION_AUDIT_CLEANUP_DAYS = "job_execution_audit_cleanup_days"
ACCOUNT_STATUS_AUDIT_CLEANUP_DAYS = "account_status_audit_cleanup_days"
UNVERIFIED_ACCOUNT_CLEANUP_DAYS = "unverified_account_cleanup_days"
CLEANUP_BATCH_SIZE = "cleanup_batch_size"

DEFAULT_BUSINESS_CONFIG: dict[str, tuple[str, str]] = {
    ACCOUNT_INACTIVITY_DAYS: ("60", "Days without login before an active account is marked inactive"),
    INACTIVITY_BATCH_SIZE: ("1000", "Accounts updated per batch by the inactivity job"),
    PASSWORD_RESET_TOKEN_CLEANUP_DAYS: ("7", "Age in days after which password reset tokens are purged"),
    OTP_TOKEN_CLEANUP_DAYS: ("7", "Age in days after which OTP tokens are purged"),
    JOB_EXECUTION_AUDIT_CLEANUP_DAYS: ("90", "Age in days after which job execution rows are purged"),
    ACCOUNT_STATUS_AUDIT_CLEANUP_DAYS: ("365", "Age in days after which status audit rows are purged"),
    UNVERIFIED_ACCOUNT_CLEANUP_DAYS: ("30", "Age in days after which unverified accounts are deleted"),
    CLEANUP_BATCH_SIZE: ("500", "Rows deleted per batch by cleanup jobs"),
}


class ConfigurationError(RuntimeError):
    """Base class for business configuration problems."""


class ConfigurationMissingError(ConfigurationError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Configuration missing: {key}")
        self.key = key


class ConfigurationInvalidError(ConfigurationError):
    def __init__(self, key: str, value: str) -> None:
        super().__init__(f"Configuration invalid: {key}={value}")
        self.key = key
        self.value = value


@dataclass(frozen=True, slots=True)
class ConfigSnapshot:
    """Immutable view of the config table, read once per job invocation."""

    values: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def require(self, key: str) -> str:
        value = self.values.get(key)
        if value is None:
            raise ConfigurationMissingError(key)
        return value

    def require_int(self, key: str) -> int:
        raw = self.require(key)
        try:
            return int(raw.strip())
        except ValueError:
            raise ConfigurationInvalidError(key, raw) from None

    def require_positive_int(self, key: str) -> int:
        value = self.require_int(key)
        if value <= 0:
            raise ConfigurationInvalidError(key, self.values[key])
        return value


async def load_config_snapshot(session: AsyncSession) -> ConfigSnapshot:
    result = await session.execute(select(BusinessConfig.key, BusinessConfig.value))
    return ConfigSnapshot({key: value for key, value in result.all()})


class BusinessConfigService:
    """Operator access to business thresholds."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def snapshot(self) -> ConfigSnapshot:
        return await load_config_snapshot(self._session)

    async def get(self, key: str) -> str | None:
        entry = await self._session.get(BusinessConfig, key)
        return entry.value if entry else None

    async def list_entries(self) -> list[BusinessConfig]:
        result = await self._session.execute(select(BusinessConfig).order_by(BusinessConfig.key))
        return list(result.scalars())

    async def set_value(self, key: str, value: object, *, description: str | None = None) -> BusinessConfig:
        entry = await self._session.get(BusinessConfig, key)
        if entry is None:
            entry = BusinessConfig(key=key, value=str(value), description=description)
            self._session.add(entry)
        else:
            entry.value = str(value)
            if description is not None:
                entry.description = description
        await self._session.commit()
        logger.info("Business config updated", key=key, value=str(value))
        return entry

    async def delete(self, key: str) -> bool:
        entry = await self._session.get(BusinessConfig, key)
        if entry is None:
            return False
        await self._session.delete(entry)
        await self._session.commit()
        logger.info("Business config removed", key=key)
        return True

    async def seed_defaults(self) -> int:
        """Insert default entries that are not present yet; existing values win."""

        existing = set((await self._session.execute(select(BusinessConfig.key))).scalars())
        inserted = 0
        for key, (value, description) in DEFAULT_BUSINESS_CONFIG.items():
            if key in existing:
                continue
            self._session.add(BusinessConfig(key=key, value=value, description=description))
            inserted += 1
        await self._session.commit()
        if inserted:
            logger.info("Business config defaults seeded", inserted=inserted)
        return inserted


__all__ = [
    "ACCOUNT_INACTIVITY_DAYS",
    "ACCOUNT_STATUS_AUDIT_CLEANUP_DAYS",
    "CLEANUP_BATCH_SIZE",
    "DEFAULT_BUSINESS_CONFIG",
    "INACTIVITY_BATCH_SIZE",
    "JOB_EXECUTION_AUDIT_CLEANUP_DAYS",
    "OTP_TOKEN_CLEANUP_DAYS",
    "PASSWORD_RESET_TOKEN_CLEANUP_DAYS",
    "UNVERIFIED_ACCOUNT_CLEANUP_DAYS",
    "BusinessConfigService",
    "ConfigSnapshot",
    "ConfigurationError",
    "ConfigurationInvalidError",
    "ConfigurationMissingError",
    "load_config_snapshot",
]
