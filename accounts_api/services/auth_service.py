"""
Authentication and identity related use cases.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Optional
import uuid

from accounts_api.core.config import Settings, get_settings
from accounts_api.core.errors import (
    AccountNotVerified,
    InvalidSocialToken,
    InvalidToken,
    NotFound,
    PasswordMismatch,
    ValidationFailed,
)
from accounts_api.core.mailer import Envelope, Mailer
from accounts_api.core.security import Argon2Hasher, new_verification_token
from accounts_api.core.utils import token_url
from accounts_api.db.models import User
from accounts_api.repositories.sql_repository import SQLRepository
from accounts_api.services.session_service import SessionAuthenticator, TokenPair
from accounts_api.services.social_service import SOCIAL_PROVIDERS, SocialProfile, SocialTokenVerifier

logger = logging.getLogger("accounts_api.auth")

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 50

# Receives a callable plus its args and runs it later (e.g. BackgroundTasks.add_task).
Defer = Callable[..., Any]


@dataclass
class LoginResult:
    user: User
    token: str
    refresh_token: str


@dataclass
class SocialLoginResult:
    user: User
    token: str
    created: bool


def _ensure_string(value: Any, field_name: str) -> None:
    """JSON bodies may carry numbers or lists; only strings (or nothing) get through."""
    if value is not None and not isinstance(value, str):
        raise ValidationFailed.single(field_name, f"{field_name} must be a string", "string")


def _check_password_length(password: str | None, field_name: str) -> None:
    _ensure_string(password, field_name)
    size = len(password or "")
    if size < PASSWORD_MIN_LENGTH or size > PASSWORD_MAX_LENGTH:
        raise ValidationFailed.single(
            field_name,
            f"{field_name} must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters",
            "min" if size < PASSWORD_MIN_LENGTH else "max",
        )


@dataclass
class AuthService:
    """Handles registration, login, verification and password reset flows."""

    repository: Optional[SQLRepository] = None
    hasher: Optional[Argon2Hasher] = None
    sessions: Optional[SessionAuthenticator] = None
    mailer: Optional[Mailer] = None
    social: Optional[SocialTokenVerifier] = None
    settings: Optional[Settings] = field(default=None, repr=False)

    def __post_init__(self):
        self.settings = self.settings or get_settings()
        self.repository = self.repository or SQLRepository()
        self.hasher = self.hasher or Argon2Hasher()
        self.sessions = self.sessions or SessionAuthenticator(self.repository, self.hasher, self.settings)
        self.mailer = self.mailer or Mailer(self.settings)
        self.social = self.social or SocialTokenVerifier(self.settings)

    # -------------------------------------- helpers --------------------------------------
    def issue_verification_token(self, user: User) -> str:
        """Replace the user's pending token; the caller persists the record."""
        token = new_verification_token()
        user.verification_token = token
        return token

    def _find_by_token(self, token: str | None) -> Optional[User]:
        token = token.strip() if isinstance(token, str) else ""
        if not token:
            return None
        return self.repository.find_by_field("users", "verification_token", token)

    def _require_user_by_email(self, email: str | None) -> User:
        _ensure_string(email, "email")
        raw = (email or "").strip()
        user = self.repository.get_user_by_email(raw) if raw else None
        if not user:
            raise NotFound(f'Can not find user with email "{raw}"')
        return user

    def _send_mail(self, template: str, user: User, subject: str, url: str) -> None:
        envelope = Envelope(to_email=user.email, to_name=user.name or "", subject=subject, sender=self.settings.mail_sender)
        try:
            self.mailer.send(template, {"user": user, "url": url}, envelope)
        except Exception:
            logger.exception("Failed to deliver %s mail to %s", template, user.email)

    def _dispatch_mail(self, defer: Optional[Defer], template: str, user: User, subject: str, url: str) -> None:
        if defer is None:
            self._send_mail(template, user, subject, url)
        else:
            defer(self._send_mail, template, user, subject, url)

    # -------------------------------------- registration --------------------------------------
    def register(self, name: str, email: str, password: str) -> User:
        for field_name, value in (("name", name), ("email", email), ("password", password)):
            _ensure_string(value, field_name)
        if not password:
            raise ValidationFailed.single("password", "password is required", "required")
        user = User(
            name=(name or "").strip() or None,
            email=(email or "").strip(),
            password_hash=self.hasher.hash(password),
            verified=False,
        )
        self.issue_verification_token(user)
        return self.repository.add(user)

    # -------------------------------------- login --------------------------------------
    def login(self, email: str, password: str) -> LoginResult:
        _ensure_string(email, "email")
        _ensure_string(password, "password")
        raw_email = (email or "").strip()
        pair: TokenPair = self.sessions.attempt(raw_email, password)
        user = self.repository.get_user_by_email(raw_email)
        if not user.verified:
            self.sessions.logout(pair.token)
            logger.info("Login refused for unverified account %s", raw_email)
            raise AccountNotVerified("Email is not verified")
        return LoginResult(user=user, token=pair.token, refresh_token=pair.refresh_token)

    def refresh_session(self, refresh_token: str) -> TokenPair:
        _ensure_string(refresh_token, "refreshToken")
        return self.sessions.refresh((refresh_token or "").strip())

    def logout(self, session_token: Optional[str]) -> None:
        self.sessions.logout(session_token)

    def current_user(self, session_token: Optional[str]) -> User:
        return self.sessions.current_user(session_token)

    # -------------------------------------- social --------------------------------------
    def _avatar_for(self, provider: str, picture: Any) -> Optional[str]:
        if provider == "facebook":
            if isinstance(picture, dict):
                return (picture.get("data") or {}).get("url")
            return None
        return picture if isinstance(picture, str) else None

    def _create_social_user(self, provider: str, profile: SocialProfile) -> User:
        placeholder = f"{provider}:{uuid.uuid4()}"
        return self.repository.create(
            "users",
            {
                "name": profile.name or None,
                "email": profile.email,
                "language": (profile.locale or "")[:2] or None,
                "verified": True,
                "social_id": profile.provider_id,
                "password_hash": self.hasher.hash(placeholder),
                "avatar": self._avatar_for(provider, profile.picture),
            },
        )

    def social_login(self, provider: str, provider_token: str) -> SocialLoginResult:
        if provider not in SOCIAL_PROVIDERS:
            raise ValidationFailed.single("social", "social is not an accepted value", "in")
        if not provider_token or not isinstance(provider_token, str):
            raise ValidationFailed.single("socialToken", "socialToken is required", "required")
        profile = self.social.verify(provider, provider_token)
        if not profile:
            raise InvalidSocialToken("Invalid token")
        user = self.repository.get_user_by_email(profile.email)
        created = False
        if not user:
            user = self._create_social_user(provider, profile)
            created = True
        return SocialLoginResult(user=user, token=self.sessions.generate(user), created=created)

    # -------------------------------------- verification --------------------------------------
    def request_verification_resend(self, email: str, defer: Optional[Defer] = None) -> User:
        user = self._require_user_by_email(email)
        token = self.issue_verification_token(user)
        user = self.repository.save(user)
        self._dispatch_mail(defer, "verification", user, "Please Verify Your Email Address", token_url("/auth/verify", token))
        return user

    def verify_account(self, token: str) -> User:
        user = self._find_by_token(token)
        if not user:
            raise InvalidToken("Invalid token")
        user.verified = True
        user.verification_token = None
        return self.repository.save(user)

    # -------------------------------------- password reset --------------------------------------
    def request_password_reset(self, email: str, defer: Optional[Defer] = None) -> User:
        # Shares the single pending-token slot with verification; issuing one replaces the other.
        user = self._require_user_by_email(email)
        token = self.issue_verification_token(user)
        user = self.repository.save(user)
        self._dispatch_mail(defer, "reset", user, "Reset your password", token_url("/auth/reset", token))
        return user

    def resolve_reset_token(self, token: str) -> User:
        user = self._find_by_token(token)
        if not user:
            raise InvalidToken("Invalid token")
        return user

    def complete_password_reset(self, token: str, new_password: str, confirmation: str) -> User:
        _check_password_length(new_password, "password")
        if new_password != confirmation:
            raise ValidationFailed.single("passwordConfirmation", "passwordConfirmation does not match", "same")
        user = self._find_by_token(token)
        if not user:
            raise InvalidToken("Invalid token")
        user.password_hash = self.hasher.hash(new_password)
        user.verification_token = None
        user = self.repository.save(user)
        # Sessions opened with the forgotten password do not survive the reset.
        self.repository.delete_user_sessions(user.id)
        return user

    def change_password(self, session_token: Optional[str], old_password: str, new_password: str) -> User:
        _ensure_string(old_password, "password")
        _check_password_length(new_password, "newPassword")
        user = self.sessions.current_user(session_token)
        if not self.hasher.verify(old_password or "", user.password_hash):
            raise PasswordMismatch("Password does not match")
        user.password_hash = self.hasher.hash(new_password)
        user.verification_token = None
        return self.repository.save(user)
