"""
Configuration helpers for the accounts API.

Exposes a Settings object that reads environment variables (public base URL,
database, SMTP, token lifetimes, social providers) so that routers/services
do not fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    public_base_url: str
    database_url: str
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    mail_sender: str
    session_ttl_seconds: int
    refresh_ttl_seconds: int
    social_http_timeout: float
    facebook_graph_url: str
    google_userinfo_url: str
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _float(value: str, default: float = 0.0) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    return Settings(
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./accounts.db"),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT", "465"), 465),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        mail_sender=os.getenv("MAIL_SENDER", os.getenv("SMTP_USER", "")),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS", "86400"), 86400),
        refresh_ttl_seconds=_int(os.getenv("REFRESH_TTL_SECONDS", "2592000"), 2592000),
        social_http_timeout=_float(os.getenv("SOCIAL_HTTP_TIMEOUT", "5"), 5.0),
        facebook_graph_url=os.getenv("FACEBOOK_GRAPH_URL", "https://graph.facebook.com/me").rstrip("/"),
        google_userinfo_url=os.getenv("GOOGLE_USERINFO_URL", "https://www.googleapis.com/oauth2/v3/userinfo"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
