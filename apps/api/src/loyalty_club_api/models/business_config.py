"""Operator-editable business configuration table."""

from sqlalchemy import Column, DateTime, String, Text, func

from loyalty_club_api.db.base import Base, utcnow


class BusinessConfig(Base):
    """Flat key/value thresholds read by maintenance jobs."""

    __tablename__ = "business_config"

    key = Column(String(100), primary_key=True)
    value = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


__all__ = ["BusinessConfig"]
