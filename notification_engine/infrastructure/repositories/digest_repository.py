"""Persistence helpers for queued digest items."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session

from notification_engine.domain.entities import (
    DeliveryMethod,
    DigestItem,
    NotificationContent,
    NotificationFrequency,
    NotificationType,
    Severity,
)
from notification_engine.infrastructure.models import DigestItemModel
from notification_engine.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)

from .notification_repository import deserialize_actions, serialize_actions


class DigestRepository:
    """Store digest items until a flush for their frequency delivers them."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, item: DigestItem) -> DigestItem:
        model = DigestItemModel()
        model.user_id = item.user_id
        model.type = item.type.value
        model.severity = item.severity.value
        model.title = item.content.title
        model.message = item.content.message
        model.data = dict(item.content.data or {})
        model.actions = serialize_actions(item.content.actions)
        model.method = item.method.value
        model.frequency = item.frequency.value
        model.address = item.address
        model.queued_at = ensure_app_naive_datetime(
            item.queued_at or now_in_app_timezone()
        )
        model.sent_at = ensure_app_naive_datetime(item.sent_at)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_pending(self, frequency: NotificationFrequency) -> Sequence[DigestItem]:
        """Return unsent items for ``frequency`` in the order they were queued."""

        query = (
            self.session.query(DigestItemModel)
            .filter(DigestItemModel.frequency == frequency.value)
            .filter(DigestItemModel.sent_at.is_(None))
            .order_by(DigestItemModel.queued_at.asc(), DigestItemModel.id.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def mark_sent(self, item_ids: Iterable[int], sent_at: datetime) -> int:
        ids = [item_id for item_id in item_ids if item_id is not None]
        if not ids:
            return 0
        updated = (
            self.session.query(DigestItemModel)
            .filter(DigestItemModel.id.in_(ids))
            .filter(DigestItemModel.sent_at.is_(None))
            .update(
                {DigestItemModel.sent_at: ensure_app_naive_datetime(sent_at)},
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    @staticmethod
    def _to_entity(model: DigestItemModel) -> DigestItem:
        return DigestItem(
            id=model.id,
            user_id=model.user_id,
            type=NotificationType(model.type),
            severity=Severity(model.severity),
            content=NotificationContent(
                title=model.title,
                message=model.message,
                data=model.data or {},
                actions=deserialize_actions(model.actions),
            ),
            method=DeliveryMethod(model.method),
            frequency=NotificationFrequency(model.frequency),
            address=model.address,
            queued_at=ensure_app_timezone(model.queued_at),
            sent_at=ensure_app_timezone(model.sent_at),
        )


__all__ = ["DigestRepository"]
