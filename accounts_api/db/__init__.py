"""Database helpers (engine/session export) and the mapped models."""

from .session import Base, get_engine, get_session
from .models import COLLECTIONS, User, UserSession

__all__ = ["Base", "get_engine", "get_session", "COLLECTIONS", "User", "UserSession"]
