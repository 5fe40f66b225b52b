"""Persistence layer for notification recipients."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Session

from notification_engine.domain.entities import User
from notification_engine.infrastructure.models import UserModel


class UserRepository:
    """Provide lookups for user entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str) -> User | None:
        model = self._get_model(id=user_id)
        return self._to_entity(model) if model else None

    def exists(self, user_id: str) -> bool:
        query = (
            self.session.query(UserModel.id)
            .filter(UserModel.id == user_id)
            .filter(UserModel.deleted.is_(False))
        )
        return query.first() is not None

    def create(self, user: User) -> User:
        model = UserModel()
        model.id = user.id
        self._apply_entity_to_model(model, user)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get_map_by_ids(self, user_ids: Sequence[str]) -> dict[str, User]:
        if not user_ids:
            return {}

        query = (
            self.session.query(UserModel)
            .filter(UserModel.id.in_(set(user_ids)))
            .filter(UserModel.deleted.is_(False))
        )
        return {model.id: self._to_entity(model) for model in query.all()}

    def _get_model(self, include_deleted: bool = False, **filters) -> UserModel | None:
        query = self.session.query(UserModel)
        if not include_deleted:
            query = query.filter(UserModel.deleted.is_(False))
        return query.filter_by(**filters).first()

    @staticmethod
    def _apply_entity_to_model(model: UserModel, user: User) -> None:
        model.name = user.name
        model.email = user.email
        model.phone_number = user.phone_number
        model.is_active = user.is_active
        model.deleted = user.deleted
        if user.created_at is not None:
            model.created_at = user.created_at

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            phone_number=model.phone_number,
            is_active=model.is_active,
            deleted=model.deleted,
            created_at=model.created_at,
        )


__all__ = ["UserRepository"]
