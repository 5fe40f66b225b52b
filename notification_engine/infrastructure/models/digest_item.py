"""SQLAlchemy model for notifications queued for digest delivery."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text

from notification_engine.infrastructure.database import Base


class DigestItemModel(Base):
    """Queued digest row; ``sent_at`` stays empty until a flush delivers it."""

    __tablename__ = "notification_digest_item"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("user.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    severity = Column(String(20), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    actions = Column(JSON, nullable=False, default=list)
    method = Column(String(20), nullable=False)
    frequency = Column(String(20), nullable=False, index=True)
    address = Column(String(255), nullable=True)
    queued_at = Column(DateTime(), nullable=False)
    sent_at = Column(DateTime(), nullable=True, index=True)


__all__ = ["DigestItemModel"]
