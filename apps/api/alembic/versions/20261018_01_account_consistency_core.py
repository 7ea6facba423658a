"""Account consistency core: contacts, profiles, accounts, tokens, audit and config.

Revision ID: 20261018_01
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261018_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


activity_status_enum = postgresql.ENUM(
    "ACTIVE",
    "INACTIVE",
    "SUSPENDED",
    name="customer_account_activity_status_enum",
    create_type=False,
)
verification_status_enum = postgresql.ENUM(
    "UNVERIFIED",
    "EMAIL_VERIFIED",
    "PHONE_VERIFIED",
    "FULLY_VERIFIED",
    name="customer_account_verification_status_enum",
    create_type=False,
)
otp_purpose_enum = postgresql.ENUM(
    "EMAIL_VERIFICATION",
    "PHONE_VERIFICATION",
    "PASSWORD_RESET",
    name="otp_purpose_enum",
    create_type=False,
)
otp_delivery_method_enum = postgresql.ENUM("EMAIL", "SMS", name="otp_delivery_method_enum", create_type=False)

ENUMS = (activity_status_enum, verification_status_enum, otp_purpose_enum, otp_delivery_method_enum)

DEFAULT_BUSINESS_CONFIG = [
    ("account_inactivity_days", "60", "Days without login before an active account is marked inactive"),
    ("inactivity_batch_size", "1000", "Accounts updated per batch by the inactivity job"),
    ("password_reset_token_cleanup_days", "7", "Age in days after which password reset tokens are purged"),
    ("otp_token_cleanup_days", "7", "Age in days after which OTP tokens are purged"),
    ("job_execution_audit_cleanup_days", "90", "Age in days after which job execution rows are purged"),
    ("account_status_audit_cleanup_days", "365", "Age in days after which status audit rows are purged"),
    ("unverified_account_cleanup_days", "30", "Age in days after which unverified accounts are deleted"),
    ("cleanup_batch_size", "500", "Rows deleted per batch by cleanup jobs"),
]


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        "customer_emails",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_customer_emails_email", "customer_emails", ["email"], unique=True)

    op.create_table(
        "customer_phones",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_customer_phones_phone", "customer_phones", ["phone"], unique=True)

    op.create_table(
        "customers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column(
            "email_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("customer_emails.id", ondelete="RESTRICT"),
            nullable=True,
            unique=True,
        ),
        sa.Column(
            "phone_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("customer_phones.id", ondelete="RESTRICT"),
            nullable=True,
            unique=True,
        ),
        *_timestamps(),
    )

    op.create_table(
        "customer_accounts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "customer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("customers.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("activity_status", activity_status_enum, nullable=False, server_default="ACTIVE"),
        sa.Column("verification_status", verification_status_enum, nullable=False, server_default="UNVERIFIED"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_customer_accounts_username", "customer_accounts", ["username"], unique=True)
    op.create_index("ix_customer_accounts_activity_status", "customer_accounts", ["activity_status"])
    op.create_index("ix_customer_accounts_verification_status", "customer_accounts", ["verification_status"])

    op.create_table(
        "account_status_audit",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "account_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("customer_accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("old_status", activity_status_enum, nullable=False),
        sa.Column("new_status", activity_status_enum, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_account_status_audit_account_created",
        "account_status_audit",
        ["account_id", "created_at"],
    )

    op.create_table(
        "job_execution_audit",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("job_name", sa.String(length=100), nullable=False),
        sa.Column("execution_date", sa.Date(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("records_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("execution_time_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_job_execution_audit_job_date",
        "job_execution_audit",
        ["job_name", "execution_date"],
    )

    business_config = op.create_table(
        "business_config",
        sa.Column("key", sa.String(length=100), primary_key=True),
        sa.Column("value", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "password_reset_tokens",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "account_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("customer_accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token", sa.String(length=255), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_password_reset_tokens_account_id", "password_reset_tokens", ["account_id"])

    op.create_table(
        "otp_tokens",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "customer_email_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("customer_emails.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "customer_phone_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("customer_phones.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("otp_code", sa.String(length=6), nullable=False),
        sa.Column("purpose", otp_purpose_enum, nullable=False),
        sa.Column("delivery_method", otp_delivery_method_enum, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attempts_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_attempts", sa.Integer(), nullable=False, server_default="3"),
        *_timestamps(),
        sa.CheckConstraint(
            "(customer_email_id IS NOT NULL AND customer_phone_id IS NULL) OR "
            "(customer_email_id IS NULL AND customer_phone_id IS NOT NULL)",
            name="ck_otp_tokens_single_contact",
        ),
        sa.CheckConstraint(
            "(customer_email_id IS NOT NULL AND delivery_method = 'EMAIL') OR "
            "(customer_phone_id IS NOT NULL AND delivery_method = 'SMS')",
            name="ck_otp_tokens_delivery_method",
        ),
    )
    op.create_index("ix_otp_tokens_customer_email_id", "otp_tokens", ["customer_email_id"])
    op.create_index("ix_otp_tokens_customer_phone_id", "otp_tokens", ["customer_phone_id"])

    op.bulk_insert(
        business_config,
        [
            {"key": key, "value": value, "description": description}
            for key, value, description in DEFAULT_BUSINESS_CONFIG
        ],
    )


def downgrade() -> None:
    op.drop_index("ix_otp_tokens_customer_phone_id", table_name="otp_tokens")
    op.drop_index("ix_otp_tokens_customer_email_id", table_name="otp_tokens")
    op.drop_table("otp_tokens")
    op.drop_index("ix_password_reset_tokens_account_id", table_name="password_reset_tokens")
    op.drop_table("password_reset_tokens")
    op.drop_table("business_config")
    op.drop_index("ix_job_execution_audit_job_date", table_name="job_execution_audit")
    op.drop_table("job_execution_audit")
    op.drop_index("ix_account_status_audit_account_created", table_name="account_status_audit")
    op.drop_table("account_status_audit")
    op.drop_index("ix_customer_accounts_verification_status", table_name="customer_accounts")
    op.drop_index("ix_customer_accounts_activity_status", table_name="customer_accounts")
    op.drop_index("ix_customer_accounts_username", table_name="customer_accounts")
    op.drop_table("customer_accounts")
    op.drop_table("customers")
    op.drop_index("ix_customer_phones_phone", table_name="customer_phones")
    op.drop_table("customer_phones")
    op.drop_index("ix_customer_emails_email", table_name="customer_emails")
    op.drop_table("customer_emails")

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
