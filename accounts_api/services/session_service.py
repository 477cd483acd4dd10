"""Session helpers (issue token pairs, resolve and revoke them)."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from accounts_api.core.config import Settings, get_settings
from accounts_api.core.errors import AuthenticationRequired, InvalidCredentials, InvalidToken
from accounts_api.core.security import Argon2Hasher, new_session_token
from accounts_api.db.models import User
from accounts_api.repositories.sql_repository import SQLRepository


@dataclass
class TokenPair:
    token: str
    refresh_token: str


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; treat them as UTC.
    if value is None:
        return None
    return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SessionAuthenticator:
    """Opaque access/refresh tokens persisted in the sessions table."""

    def __init__(
        self,
        repository: SQLRepository | None = None,
        hasher: Argon2Hasher | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.repository = repository or SQLRepository()
        self.hasher = hasher or Argon2Hasher()
        self.settings = settings or get_settings()

    def _issue(self, user: User) -> TokenPair:
        now = datetime.now(timezone.utc)
        access_ttl = max(60, self.settings.session_ttl_seconds)
        refresh_ttl = max(access_ttl, self.settings.refresh_ttl_seconds)
        pair = TokenPair(token=new_session_token(), refresh_token=new_session_token())
        self.repository.create_session(
            user.id,
            pair.token,
            pair.refresh_token,
            expires_at=now + timedelta(seconds=access_ttl),
            refresh_expires_at=now + timedelta(seconds=refresh_ttl),
        )
        return pair

    def attempt(self, email: str, password: str) -> TokenPair:
        """Check credentials and mint a token pair; raises InvalidCredentials."""
        if not isinstance(email, str) or not isinstance(password, str):
            raise InvalidCredentials("Invalid email or password")
        user = self.repository.get_user_by_email(email) if email else None
        if not user or not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentials("Invalid email or password")
        return self._issue(user)

    def generate(self, user: User) -> str:
        return self._issue(user).token

    def refresh(self, refresh_token: str) -> TokenPair:
        entity = self.repository.get_session_by_refresh(refresh_token) if refresh_token else None
        if not entity:
            raise InvalidToken("Invalid refresh token")
        self.repository.delete_session(entity.token)
        if _as_utc(entity.refresh_expires_at) < datetime.now(timezone.utc):
            raise InvalidToken("Refresh token expired")
        user = self.repository.get_user(entity.user_id)
        if not user:
            raise InvalidToken("Invalid refresh token")
        return self._issue(user)

    def logout(self, token: Optional[str]) -> None:
        if not token:
            return
        self.repository.delete_session(token)

    def current_user(self, token: Optional[str]) -> User:
        entity = self.repository.get_session(token) if token else None
        if not entity:
            raise AuthenticationRequired("Login required")
        if _as_utc(entity.expires_at) < datetime.now(timezone.utc):
            self.repository.delete_session(entity.token)
            raise AuthenticationRequired("Session expired")
        user = self.repository.get_user(entity.user_id)
        if not user:
            raise AuthenticationRequired("Login required")
        return user
