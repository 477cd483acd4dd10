"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from accounts_api.core.errors import ConfigurationError, PersistenceError
from accounts_api.db.models import COLLECTIONS, User, UserSession
from accounts_api.db.session import get_session


class SQLRepository:
    """Storage collaborator: generic record helpers plus session-table CRUD."""

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with get_session() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                session.rollback()
                raise PersistenceError(f"Storage operation failed: {exc.__class__.__name__}") from exc

    def _model(self, collection: str):
        model = COLLECTIONS.get(collection)
        if model is None:
            raise ConfigurationError(f"Unknown collection '{collection}'")
        return model

    def _column(self, model, field: str):
        column = getattr(model, field, None)
        if column is None or field not in model.__table__.columns:
            raise ConfigurationError(f"Unknown field '{field}' on {model.__tablename__}")
        return column

    # -------------------------- generic --------------------------
    def find_by_field(self, collection: str, field: str, value: Any) -> Optional[Any]:
        model = self._model(collection)
        column = self._column(model, field)
        with self._session() as session:
            stmt = select(model).where(column == value).limit(1)
            return session.execute(stmt).scalar_one_or_none()

    def create(self, collection: str, fields: Mapping[str, Any]) -> Any:
        model = self._model(collection)
        return self.add(model(**dict(fields)))

    def add(self, entity: Any) -> Any:
        now = datetime.now(timezone.utc)
        if hasattr(entity, "updated_at"):
            entity.created_at = now
            entity.updated_at = now
        with self._session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def save(self, record: Any) -> Any:
        if hasattr(record, "updated_at"):
            record.updated_at = datetime.now(timezone.utc)
        with self._session() as session:
            merged = session.merge(record)
            session.commit()
            return merged

    def exists_where(self, collection: str, filters: Mapping[str, Any]) -> bool:
        model = self._model(collection)
        stmt = select(model).limit(1)
        for field, value in filters.items():
            stmt = stmt.where(self._column(model, field) == value)
        with self._session() as session:
            return session.execute(stmt).first() is not None

    # -------------------------- users --------------------------
    def get_user(self, user_id: str) -> Optional[User]:
        with self._session() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.find_by_field("users", "email", email)

    # -------------------------- sessions --------------------------
    def create_session(
        self,
        user_id: str,
        token: str,
        refresh_token: str,
        expires_at: datetime,
        refresh_expires_at: datetime,
    ) -> UserSession:
        entity = UserSession(
            token=token,
            refresh_token=refresh_token,
            user_id=user_id,
            expires_at=expires_at,
            refresh_expires_at=refresh_expires_at,
            created_at=datetime.now(timezone.utc),
        )
        with self._session() as session:
            session.add(entity)
            session.commit()
            return entity

    def get_session(self, token: str) -> Optional[UserSession]:
        with self._session() as session:
            return session.get(UserSession, token)

    def get_session_by_refresh(self, refresh_token: str) -> Optional[UserSession]:
        with self._session() as session:
            stmt = select(UserSession).where(UserSession.refresh_token == refresh_token)
            return session.execute(stmt).scalar_one_or_none()

    def delete_session(self, token: str) -> None:
        with self._session() as session:
            session.execute(delete(UserSession).where(UserSession.token == token))
            session.commit()

    def delete_user_sessions(self, user_id: str) -> None:
        with self._session() as session:
            session.execute(delete(UserSession).where(UserSession.user_id == user_id))
            session.commit()
