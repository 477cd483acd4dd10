"""
Utility helpers shared across routers/services.
"""

from typing import Optional
from urllib.parse import quote

from .config import get_settings


def absolute_url(path: str, base: Optional[str] = None) -> str:
    """
    Turn a relative path into an absolute URL using PUBLIC_BASE_URL.
    """
    settings = get_settings()
    base_url = (base or settings.public_base_url).rstrip("/")
    if not path:
        return base_url + "/"
    if path.startswith("http://") or path.startswith("https://"):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return base_url + path


def token_url(path: str, token: str) -> str:
    return absolute_url(f"{path}?token={quote(token or '', safe='')}")
