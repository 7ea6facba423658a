"""OTP and password reset token issuance and consumption."""

from __future__ import annotations

import secrets
from datetime import datetime
from uuid import UUID

from loguru import logger
from sqlalchemy import select, update

from loyalty_club_api.core.settings import settings
from loyalty_club_api.db.base import ensure_utc, utcnow
from loyalty_club_api.models.account import CustomerAccount
from loyalty_club_api.models.token import (
    EmailOtpTarget,
    OtpPurpose,
    OtpTarget,
    OtpToken,
    PasswordResetToken,
)
from .base import AccountUnitOfWorkService
from .errors import (
    AccountNotFoundError,
    InvalidOtpCodeError,
    OtpAlreadyUsedError,
    OtpExpiredError,
    OtpMaxAttemptsExceededError,
    OtpTokenNotFoundError,
    PasswordResetTokenNotFoundError,
)


def _addressed_to(target: OtpTarget):
    if isinstance(target, EmailOtpTarget):
        return OtpToken.customer_email_id == target.email_id
    return OtpToken.customer_phone_id == target.phone_id


class OtpTokenService(AccountUnitOfWorkService):
    """Issue OTP codes and consume them.

    Only the newest code per target and purpose is live: issuing a code
    retires the earlier ones. Consuming a verification code marks its contact
    verified and re-derives the linked account in the same transaction.
    """

    async def issue(
        self,
        target: OtpTarget,
        code: str,
        purpose: OtpPurpose,
        expires_at: datetime,
        max_attempts: int | None = None,
    ) -> OtpToken:
        async with self._atomic():
            retired = await self._retire_active(target, purpose)
            token = OtpToken.for_target(
                target,
                otp_code=code,
                purpose=purpose,
                expires_at=expires_at,
                attempts_count=0,
                max_attempts=max_attempts if max_attempts is not None else settings.otp_default_max_attempts,
            )
            self._session.add(token)
            await self._session.flush()
        logger.info(
            "OTP token issued",
            token_id=str(token.id),
            purpose=purpose.value,
            delivery_method=token.delivery_method.value,
            retired=retired,
        )
        return token

    async def invalidate_active(self, target: OtpTarget, purpose: OtpPurpose) -> int:
        """Stamp ``used_at`` on every unused code; contacts stay as they are."""

        async with self._atomic():
            retired = await self._retire_active(target, purpose)
        return retired

    async def _retire_active(self, target: OtpTarget, purpose: OtpPurpose) -> int:
        stmt = (
            update(OtpToken)
            .where(_addressed_to(target), OtpToken.purpose == purpose, OtpToken.used_at.is_(None))
            .values(used_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return int(result.rowcount or 0)

    async def get(self, token_id: UUID) -> OtpToken:
        token = await self._session.get(OtpToken, token_id)
        if token is None:
            raise OtpTokenNotFoundError(f"OTP token {token_id} not found")
        return token

    async def latest(self, target: OtpTarget, purpose: OtpPurpose) -> OtpToken | None:
        stmt = (
            select(OtpToken)
            .where(_addressed_to(target), OtpToken.purpose == purpose)
            .order_by(OtpToken.created_at.desc())
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def increment_attempts(self, token_id: UUID) -> int:
        async with self._atomic():
            token = await self.get(token_id)
            token.attempts_count = (token.attempts_count or 0) + 1
            attempts = token.attempts_count
        return attempts

    async def verify(self, target: OtpTarget, code: str, purpose: OtpPurpose) -> OtpToken:
        """Check ``code`` against the newest token and consume it on a match.

        A wrong code costs one attempt and the increment is committed before
        ``InvalidOtpCodeError`` is raised.
        """

        token = await self.latest(target, purpose)
        if token is None:
            raise OtpTokenNotFoundError(f"No {purpose.value} code issued for {target!r}")
        if token.used_at is not None:
            raise OtpAlreadyUsedError(f"OTP token {token.id} was already used")
        if utcnow() > ensure_utc(token.expires_at):
            raise OtpExpiredError(f"OTP token {token.id} expired")
        if token.attempts_count >= token.max_attempts:
            raise OtpMaxAttemptsExceededError(f"OTP token {token.id} has no attempts left")

        if token.otp_code != code.strip():
            attempts = await self.increment_attempts(token.id)
            logger.info("OTP code rejected", token_id=str(token.id), attempts=attempts)
            raise InvalidOtpCodeError(max(token.max_attempts - attempts, 0))

        await self.mark_used(token.id)
        return token

    async def mark_used(self, token_id: UUID, *, at: datetime | None = None) -> bool:
        """Consume the token; returns False if it was already used."""

        async with self._atomic():
            token = await self.get(token_id)
            if token.used_at is not None:
                return False
            token.used_at = at or utcnow()
            await self._session.flush()
            await self._propagator.otp_token_used(token)
        return True


class PasswordResetTokenService(AccountUnitOfWorkService):
    """Password reset tokens never touch verification state."""

    async def issue(self, account_id: UUID, expires_at: datetime) -> PasswordResetToken:
        async with self._atomic():
            if await self._session.get(CustomerAccount, account_id) is None:
                raise AccountNotFoundError(f"Account {account_id} not found")
            token = PasswordResetToken(
                account_id=account_id,
                token=secrets.token_urlsafe(32),
                expires_at=expires_at,
            )
            self._session.add(token)
            await self._session.flush()
        logger.info("Password reset token issued", token_id=str(token.id), account_id=str(account_id))
        return token

    async def get_by_token(self, value: str) -> PasswordResetToken:
        stmt = select(PasswordResetToken).where(PasswordResetToken.token == value)
        token = (await self._session.execute(stmt)).scalar_one_or_none()
        if token is None:
            raise PasswordResetTokenNotFoundError("Password reset token not found")
        return token

    async def mark_used(self, value: str, *, at: datetime | None = None) -> bool:
        async with self._atomic():
            token = await self.get_by_token(value)
            if token.used_at is not None:
                return False
            token.used_at = at or utcnow()
        return True


__all__ = ["OtpTokenService", "PasswordResetTokenService"]
