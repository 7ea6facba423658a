"""SQLAlchemy models package."""

# Import all models
from .contact import CustomerEmail, CustomerPhone  # noqa: F401
from .customer import Customer  # noqa: F401
from .account import (  # noqa: F401
    AccountActivityStatus,
    AccountVerificationStatus,
    CustomerAccount,
)
from .audit import AccountStatusAudit, JobExecutionAudit  # noqa: F401
from .business_config import BusinessConfig  # noqa: F401
from .token import (  # noqa: F401
    EmailOtpTarget,
    OtpDeliveryMethod,
    OtpPurpose,
    OtpTarget,
    OtpToken,
    PasswordResetToken,
    PhoneOtpTarget,
)
