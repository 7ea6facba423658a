"""Append-only audit trails for account status transitions and job runs."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID

from loyalty_club_api.db.base import Base, utcnow
from loyalty_club_api.models.account import AccountActivityStatus


class AccountStatusAudit(Base):
    """One row per observed activity-status transition."""

    __tablename__ = "account_status_audit"
    __table_args__ = (
        Index("ix_account_status_audit_account_created", "account_id", "created_at"),
    )

    # Integer key keeps insertion order for rows sharing a timestamp.
    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(
        UUID(as_uuid=True),
        ForeignKey("customer_accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    old_status = Column(
        SqlEnum(
            AccountActivityStatus,
            name="customer_account_activity_status_enum",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    )
    new_status = Column(
        SqlEnum(
            AccountActivityStatus,
            name="customer_account_activity_status_enum",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class JobExecutionAudit(Base):
    """Durable log of maintenance job runs, one row per run."""

    __tablename__ = "job_execution_audit"
    __table_args__ = (
        Index("ix_job_execution_audit_job_date", "job_name", "execution_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_name = Column(String(100), nullable=False)
    execution_date = Column(Date(), nullable=False)
    success = Column(Boolean, nullable=False)
    records_processed = Column(Integer, nullable=False, default=0, server_default="0")
    error_message = Column(Text, nullable=True)
    execution_time_ms = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


__all__ = ["AccountStatusAudit", "JobExecutionAudit"]
