"""SQLAlchemy model for stored notification preferences."""

from sqlalchemy import Column, DateTime, ForeignKey, JSON, String

from notification_engine.infrastructure.database import Base


class NotificationPreferenceModel(Base):
    """One row of preferences per user, stored as JSON documents."""

    __tablename__ = "notification_preference"

    user_id = Column(String(36), ForeignKey("user.id"), primary_key=True)
    notification_types = Column(JSON, nullable=False, default=dict)
    delivery_methods = Column(JSON, nullable=False, default=dict)
    quiet_hours = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(), nullable=False)
    updated_at = Column(DateTime(), nullable=True)


__all__ = ["NotificationPreferenceModel"]
