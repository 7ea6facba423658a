"""Account consistency services: contacts, profiles, accounts and tokens."""

from .accounts import CustomerAccountService
from .contacts import ContactService
from .derivation import (
    ContactSnapshot,
    DerivedAccountFields,
    calculate_verification_status,
    derive_account_fields,
    resolve_username,
)
from .errors import (
    AccountConsistencyError,
    AccountNotFoundError,
    ContactNotFoundError,
    CustomerNotFoundError,
    DuplicateAccountError,
    InvalidOtpCodeError,
    NoContactMethodError,
    OtpAlreadyUsedError,
    OtpExpiredError,
    OtpMaxAttemptsExceededError,
    OtpTokenNotFoundError,
    OtpVerificationError,
    PasswordResetTokenNotFoundError,
)
from .profiles import CustomerProfileService
from .propagation import ConsistencyPropagator, recompute_verification_and_username
from .reporting import (
    AccountActivityData,
    AccountReportingService,
    AccountVerificationData,
    ContactType,
    CustomerContactLookup,
)
from .status_audit import AccountStatusAuditLog
from .tokens import OtpTokenService, PasswordResetTokenService

__all__ = [
    "AccountActivityData",
    "AccountConsistencyError",
    "AccountNotFoundError",
    "AccountReportingService",
    "AccountStatusAuditLog",
    "AccountVerificationData",
    "ConsistencyPropagator",
    "ContactNotFoundError",
    "ContactService",
    "ContactSnapshot",
    "ContactType",
    "CustomerAccountService",
    "CustomerContactLookup",
    "CustomerNotFoundError",
    "CustomerProfileService",
    "DerivedAccountFields",
    "DuplicateAccountError",
    "InvalidOtpCodeError",
    "NoContactMethodError",
    "OtpAlreadyUsedError",
    "OtpExpiredError",
    "OtpMaxAttemptsExceededError",
    "OtpTokenNotFoundError",
    "OtpTokenService",
    "OtpVerificationError",
    "PasswordResetTokenNotFoundError",
    "PasswordResetTokenService",
    "calculate_verification_status",
    "derive_account_fields",
    "recompute_verification_and_username",
    "resolve_username",
]
