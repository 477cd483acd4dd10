from __future__ import annotations

from dataclasses import replace

import httpx
import pytest

from accounts_api.core.config import get_settings
from accounts_api.services.social_service import SocialTokenVerifier


def _verifier(handler):
    settings = replace(
        get_settings(),
        facebook_graph_url="https://graph.test/me",
        google_userinfo_url="https://google.test/userinfo",
    )
    return SocialTokenVerifier(settings, transport=httpx.MockTransport(handler))


def test_facebook_profile_keeps_nested_picture():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        return httpx.Response(
            200,
            json={
                "id": "10",
                "email": "fan@example.com",
                "name": "Fan",
                "locale": "en_US",
                "picture": {"data": {"url": "https://cdn.fb.test/fan.png"}},
            },
        )

    profile = _verifier(handler).verify("facebook", "fb-token")

    assert seen["url"].host == "graph.test"
    assert seen["url"].params["access_token"] == "fb-token"
    assert profile.provider_id == "10"
    assert profile.picture == {"data": {"url": "https://cdn.fb.test/fan.png"}}


def test_google_profile_uses_bearer_and_sub():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["authorization"] == "Bearer g-token"
        return httpx.Response(200, json={"sub": "77", "email": "gal@example.com", "picture": "https://g.test/p.png"})

    profile = _verifier(handler).verify("google", "g-token")

    assert profile.provider_id == "77"
    assert profile.email == "gal@example.com"
    assert profile.picture == "https://g.test/p.png"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(401, json={"error": "invalid"}),
        httpx.Response(200, json={"id": "1"}),
        httpx.Response(200, text="not json"),
    ],
)
def test_rejected_or_incomplete_identity_is_none(response):
    assert _verifier(lambda request: response).verify("google", "tok") is None


def test_transport_error_is_none():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    assert _verifier(handler).verify("facebook", "tok") is None


def test_unknown_provider_never_calls_out():
    def handler(request):
        raise AssertionError("should not be called")

    assert _verifier(handler).verify("twitter", "tok") is None
