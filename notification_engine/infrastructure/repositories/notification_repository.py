"""Persistence helpers for in-app notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from notification_engine.domain.entities import (
    InAppNotification,
    NotificationAction,
    NotificationContent,
    NotificationStatus,
    NotificationType,
    Severity,
)
from notification_engine.infrastructure.models import NotificationModel
from notification_engine.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class NotificationRepository:
    """Provide CRUD operations for :class:`InAppNotification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, notification_id: int) -> InAppNotification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model else None

    def list_for_user(
        self,
        user_id: str,
        *,
        unread_only: bool = False,
        limit: int | None = 50,
        now: datetime | None = None,
    ) -> Sequence[InAppNotification]:
        query = self._visible_query(user_id, now=now)
        if unread_only:
            query = query.filter(NotificationModel.status == NotificationStatus.UNREAD.value)
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def create(self, notification: InAppNotification) -> InAppNotification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification, include_creation_fields=True)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_as_read(self, notification_ids: Iterable[int], *, user_id: str) -> int:
        ids = [notification_id for notification_id in notification_ids if notification_id is not None]
        if not ids:
            return 0
        now = ensure_app_naive_datetime(now_in_app_timezone())
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id.in_(ids),
                NotificationModel.user_id == user_id,
                NotificationModel.status == NotificationStatus.UNREAD.value,
            )
            .update(
                {
                    NotificationModel.status: NotificationStatus.READ.value,
                    NotificationModel.read_at: now,
                    NotificationModel.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def mark_all_as_read(self, user_id: str) -> int:
        now = ensure_app_naive_datetime(now_in_app_timezone())
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.user_id == user_id,
                NotificationModel.status == NotificationStatus.UNREAD.value,
            )
            .update(
                {
                    NotificationModel.status: NotificationStatus.READ.value,
                    NotificationModel.read_at: now,
                    NotificationModel.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def count_for_user(self, user_id: str, *, now: datetime | None = None) -> dict[str, Any]:
        """Return total and unread counts plus unread breakdowns by type and severity."""

        base = self._visible_query(user_id, now=now)
        total = base.count()
        unread_query = base.filter(
            NotificationModel.status == NotificationStatus.UNREAD.value
        )
        unread = unread_query.count()

        by_type: dict[str, int] = {}
        for value, amount in (
            unread_query.with_entities(NotificationModel.type, func.count(NotificationModel.id))
            .group_by(NotificationModel.type)
            .all()
        ):
            by_type[value] = amount

        by_severity: dict[str, int] = {}
        for value, amount in (
            unread_query.with_entities(
                NotificationModel.severity, func.count(NotificationModel.id)
            )
            .group_by(NotificationModel.severity)
            .all()
        ):
            by_severity[value] = amount

        return {
            "total": total,
            "unread": unread,
            "by_type": by_type,
            "by_severity": by_severity,
        }

    def delete_expired(self, now: datetime | None = None) -> int:
        cutoff = ensure_app_naive_datetime(now or now_in_app_timezone())
        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.expires_at.is_not(None))
            .filter(NotificationModel.expires_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def _visible_query(self, user_id: str, *, now: datetime | None):
        cutoff = ensure_app_naive_datetime(now or now_in_app_timezone())
        return (
            self.session.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.status != NotificationStatus.DELETED.value)
            .filter(
                or_(
                    NotificationModel.expires_at.is_(None),
                    NotificationModel.expires_at > cutoff,
                )
            )
        )

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationModel,
        notification: InAppNotification,
        *,
        include_creation_fields: bool,
    ) -> None:
        if include_creation_fields:
            model.created_at = (
                ensure_app_naive_datetime(notification.created_at)
                or ensure_app_naive_datetime(now_in_app_timezone())
            )
        model.user_id = notification.user_id
        model.type = notification.type.value
        model.severity = notification.severity.value
        model.status = notification.status.value
        model.title = notification.content.title
        model.message = notification.content.message
        model.data = dict(notification.content.data or {})
        model.actions = serialize_actions(notification.content.actions)
        model.read_at = ensure_app_naive_datetime(notification.read_at)
        model.expires_at = ensure_app_naive_datetime(notification.expires_at)
        model.updated_at = ensure_app_naive_datetime(notification.updated_at)

    @staticmethod
    def _to_entity(model: NotificationModel) -> InAppNotification:
        return InAppNotification(
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
            status=NotificationStatus(model.status),
            read_at=ensure_app_timezone(model.read_at),
            expires_at=ensure_app_timezone(model.expires_at),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


def serialize_actions(actions: Iterable[NotificationAction]) -> list[dict[str, Any]]:
    return [
        {
            "label": action.label,
            "url": action.url,
            "type": action.action_type,
            "data": dict(action.data or {}),
        }
        for action in actions
    ]


def deserialize_actions(raw: Iterable[dict[str, Any]] | None) -> tuple[NotificationAction, ...]:
    actions = []
    for item in raw or []:
        if not isinstance(item, dict) or not item.get("label"):
            continue
        actions.append(
            NotificationAction(
                label=item["label"],
                url=item.get("url", ""),
                action_type=item.get("type") or "view",
                data=item.get("data") or {},
            )
        )
    return tuple(actions)


__all__ = ["NotificationRepository", "deserialize_actions", "serialize_actions"]
