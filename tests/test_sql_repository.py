"""
Smoke tests for the SQLRepository against a temporary SQLite database.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from accounts_api.core.errors import ConfigurationError, PersistenceError


def test_create_find_and_save_user(repo):
    user = repo.create("users", {"email": "alice@example.com", "password_hash": "hash", "verification_token": "tok"})
    assert user.id
    assert user.verified is False

    found = repo.find_by_field("users", "verification_token", "tok")
    assert found is not None and found.email == "alice@example.com"

    found.verification_token = None
    found.verified = True
    repo.save(found)

    reloaded = repo.get_user(user.id)
    assert reloaded.verified is True
    assert reloaded.verification_token is None
    assert repo.find_by_field("users", "verification_token", "tok") is None


def test_exists_where_with_multiple_filters(repo):
    repo.create("users", {"email": "bob@example.com", "password_hash": "hash", "verified": True})
    assert repo.exists_where("users", {"email": "bob@example.com"})
    assert repo.exists_where("users", {"email": "bob@example.com", "verified": True})
    assert not repo.exists_where("users", {"email": "bob@example.com", "verified": False})
    assert not repo.exists_where("users", {"email": "nobody@example.com"})


def test_unknown_collection_or_field_is_configuration_error(repo):
    with pytest.raises(ConfigurationError):
        repo.find_by_field("widgets", "email", "x")
    with pytest.raises(ConfigurationError):
        repo.exists_where("users", {"shoe_size": 42})


def test_unique_email_violation_is_persistence_error(repo):
    repo.create("users", {"email": "carol@example.com", "password_hash": "hash"})
    with pytest.raises(PersistenceError):
        repo.create("users", {"email": "carol@example.com", "password_hash": "hash"})


def test_session_rows(repo):
    user = repo.create("users", {"email": "dave@example.com", "password_hash": "hash"})
    now = datetime.now(timezone.utc)
    repo.create_session(user.id, "tok", "ref", expires_at=now + timedelta(hours=1), refresh_expires_at=now + timedelta(days=1))

    assert repo.get_session("tok").user_id == user.id
    assert repo.get_session_by_refresh("ref").token == "tok"
    repo.delete_user_sessions(user.id)
    assert repo.get_session("tok") is None
