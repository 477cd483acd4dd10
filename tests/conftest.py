"""Shared pytest fixtures: temporary SQLite database and collaborator fakes."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest
from argon2 import PasswordHasher

# Make the accounts_api package importable when running from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from accounts_api.core import config as core_config  # noqa: E402
from accounts_api.core.mailer import MailDeliveryError  # noqa: E402
from accounts_api.core.security import Argon2Hasher  # noqa: E402
from accounts_api.db import models  # noqa: E402
from accounts_api.db import session as db_session  # noqa: E402
from accounts_api.repositories.sql_repository import SQLRepository  # noqa: E402
from accounts_api.services.auth_service import AuthService  # noqa: E402
from accounts_api.services.social_service import SocialProfile  # noqa: E402


class FakeMailer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send(self, template, context, envelope):
        if self.fail:
            raise MailDeliveryError("smtp down")
        self.sent.append((template, context, envelope))
        return True


class FakeSocial:
    def __init__(self, profiles=None):
        self.profiles = profiles or {}
        self.calls = []

    def verify(self, provider, token):
        self.calls.append((provider, token))
        return self.profiles.get((provider, token))


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Point DATABASE_URL at a temporary SQLite file and reset settings/engine caches."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://accounts.test")
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    core_config.get_settings.cache_clear()


@pytest.fixture()
def hasher():
    # Cheap parameters keep the suite fast.
    return Argon2Hasher(PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))


@pytest.fixture()
def repo(db_env):
    return SQLRepository()


@pytest.fixture()
def mailer():
    return FakeMailer()


@pytest.fixture()
def social():
    return FakeSocial(
        {
            ("facebook", "fb-good"): SocialProfile(
                provider="facebook",
                provider_id="fb-1",
                email="fan@example.com",
                name="Fan",
                locale="en_US",
                picture={"data": {"url": "https://cdn.fb.test/fan.png"}},
            ),
            ("google", "g-good"): SocialProfile(
                provider="google",
                provider_id="g-1",
                email="gal@example.com",
                name="Gal",
                locale="pt-BR",
                picture="https://lh3.google.test/gal.png",
            ),
        }
    )


@pytest.fixture()
def service(repo, hasher, mailer, social):
    return AuthService(repository=repo, hasher=hasher, mailer=mailer, social=social)


@pytest.fixture()
def failing_mailer():
    return FakeMailer(fail=True)
