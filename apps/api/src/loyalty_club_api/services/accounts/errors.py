"""Exceptions raised by the account consistency services."""

from __future__ import annotations

from uuid import UUID


class AccountConsistencyError(RuntimeError):
    """Base exception for account and contact mutations."""


class NoContactMethodError(AccountConsistencyError):
    """Raised when an account would be left without any linked contact."""

    def __init__(self, customer_id: UUID | None = None) -> None:
        if customer_id is None:
            message = "At least one contact method (email or phone) is required"
        else:
            message = f"Customer {customer_id} has no contact method (email or phone) linked"
        super().__init__(message)
        self.customer_id = customer_id


class CustomerNotFoundError(AccountConsistencyError):
    """Raised when a customer profile does not exist."""


class AccountNotFoundError(AccountConsistencyError):
    """Raised when a customer account does not exist."""


class ContactNotFoundError(AccountConsistencyError):
    """Raised when an email or phone contact does not exist."""


class DuplicateAccountError(AccountConsistencyError):
    """Raised when a customer already owns an account."""


class OtpTokenNotFoundError(AccountConsistencyError):
    """Raised when an OTP token does not exist."""


class PasswordResetTokenNotFoundError(AccountConsistencyError):
    """Raised when a password reset token does not exist."""


class OtpVerificationError(AccountConsistencyError):
    """Raised when a submitted OTP code cannot be accepted."""


class OtpExpiredError(OtpVerificationError):
    """Raised when the newest code has passed its expiry."""


class OtpAlreadyUsedError(OtpVerificationError):
    """Raised when the newest code was consumed or superseded."""


class OtpMaxAttemptsExceededError(OtpVerificationError):
    """Raised when the newest code has no attempts left."""


class InvalidOtpCodeError(OtpVerificationError):
    def __init__(self, remaining_attempts: int) -> None:
        super().__init__(f"Invalid OTP code; {remaining_attempts} attempt(s) remaining")
        self.remaining_attempts = remaining_attempts


__all__ = [
    "AccountConsistencyError",
    "AccountNotFoundError",
    "ContactNotFoundError",
    "CustomerNotFoundError",
    "DuplicateAccountError",
    "InvalidOtpCodeError",
    "NoContactMethodError",
    "OtpAlreadyUsedError",
    "OtpExpiredError",
    "OtpMaxAttemptsExceededError",
    "OtpTokenNotFoundError",
    "OtpVerificationError",
    "PasswordResetTokenNotFoundError",
]
