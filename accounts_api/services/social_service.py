"""Social-provider token verification (Facebook Graph, Google userinfo)."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Optional

import httpx

from accounts_api.core.config import Settings, get_settings

logger = logging.getLogger("accounts_api.social")

SOCIAL_PROVIDERS = ("facebook", "google")


@dataclass
class SocialProfile:
    provider: str
    provider_id: str
    email: str
    name: str = ""
    locale: str = ""
    # Provider-shaped: facebook nests the URL under picture.data.url, google sends a string.
    picture: Any = None
    raw: dict = field(default_factory=dict)


class SocialTokenVerifier:
    """Exchanges a provider access token for the identity it belongs to."""

    def __init__(self, settings: Settings | None = None, transport: httpx.BaseTransport | None = None) -> None:
        self.settings = settings or get_settings()
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.settings.social_http_timeout, transport=self._transport)

    def _fetch(self, provider: str, token: str) -> httpx.Response:
        with self._client() as client:
            if provider == "facebook":
                return client.get(
                    self.settings.facebook_graph_url,
                    params={"fields": "id,name,email,locale,picture", "access_token": token},
                )
            return client.get(
                self.settings.google_userinfo_url,
                headers={"Authorization": f"Bearer {token}"},
            )

    def verify(self, provider: str, token: str) -> Optional[SocialProfile]:
        if provider not in SOCIAL_PROVIDERS or not token:
            return None
        try:
            response = self._fetch(provider, token)
        except httpx.HTTPError as exc:
            logger.warning("%s token verification failed: %s", provider, exc)
            return None
        if response.status_code != 200:
            logger.warning("%s rejected token (status %s)", provider, response.status_code)
            return None
        try:
            payload = response.json()
        except ValueError:
            logger.warning("%s returned a non-JSON body", provider)
            return None
        email = (payload.get("email") or "").strip()
        provider_id = str(payload.get("id") or payload.get("sub") or "")
        if not email or not provider_id:
            return None
        return SocialProfile(
            provider=provider,
            provider_id=provider_id,
            email=email,
            name=payload.get("name") or "",
            locale=payload.get("locale") or "",
            picture=payload.get("picture"),
            raw=payload,
        )
