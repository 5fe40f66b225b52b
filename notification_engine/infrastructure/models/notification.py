"""SQLAlchemy model for persisted in-app notifications."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text

from notification_engine.infrastructure.database import Base


class NotificationModel(Base):
    """Database representation for in-app notifications."""

    __tablename__ = "notification"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("user.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    severity = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="unread", index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    actions = Column(JSON, nullable=False, default=list)
    read_at = Column(DateTime(), nullable=True)
    expires_at = Column(DateTime(), nullable=True, index=True)
    created_at = Column(DateTime(), nullable=False)
    updated_at = Column(DateTime(), nullable=True)


__all__ = ["NotificationModel"]
