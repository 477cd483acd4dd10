from __future__ import annotations

import pytest

from accounts_api.core.errors import ConfigurationError, ValidationFailed
from accounts_api.domain.validators import (
    SKIP,
    VALID,
    Validator,
    build_registry,
    digit,
    length,
    max_value,
    min_value,
    numeric,
    object_id,
    rule,
)


@pytest.fixture()
def registry():
    return build_registry()


def test_length_requires_exact_size():
    assert length("abcd", [4]) == VALID
    assert length("abcd", ["4"]) == VALID
    assert length("abcd", [3]).rejected
    assert length("abcd", []).rejected


def test_object_id_requires_mixed_hex():
    assert object_id("507f1f77bcf86cd799439011") == VALID
    assert object_id("507F1F77BCF86CD799439011") == VALID
    assert object_id("000000000000000000000000").rejected
    assert object_id("abcdefabcdefabcdefabcdef").rejected
    assert object_id("507f1f77bcf86cd79943901").rejected
    assert object_id("507f1f77bcf86cd79943901z").rejected


def test_min_and_max_value_bounds():
    assert min_value(5, [5]) == VALID
    assert min_value(4, [5]).rejected
    assert max_value(5, [4]).rejected
    assert max_value(5, ["5"]) == VALID
    assert min_value(5, []).rejected


def test_digit_only_checks_leading_digits():
    assert digit("123abc") == VALID
    assert digit(42) == VALID
    assert digit("abc123").rejected


def test_numeric_checks_runtime_type():
    assert numeric(3.5) == VALID
    assert numeric("3.5").rejected
    assert numeric(True).rejected


@pytest.mark.parametrize("fn", [digit, numeric, length, object_id, min_value, max_value])
@pytest.mark.parametrize("value", [None, "", 0])
def test_absent_values_are_skipped(fn, value):
    assert fn(value, [1]) == SKIP


def test_registry_renders_field_placeholder(registry):
    verdict = registry.validate("length", "abc", [4], field="pin")
    assert verdict.rejected
    assert verdict.message == "pin is not valid length"
    custom = registry.validate("length", "abc", [4], field="pin", message="{{field}} must have 4 chars")
    assert custom.message == "pin must have 4 chars"


def test_registry_unknown_rule_is_configuration_error(registry):
    with pytest.raises(ConfigurationError):
        registry.validate("nope", "x")


def test_exist_needs_repository(registry):
    assert "exist" not in registry.names()


def test_exist_rejects_taken_values(repo):
    repo.create("users", {"email": "taken@example.com", "password_hash": "x"})
    registry = build_registry(repo)

    taken = registry.validate("exist", "taken@example.com", ["users"], field="email")
    assert taken.rejected
    assert taken.message == "email is not exists"
    assert registry.validate("exist", "free@example.com", ["users", "email"], field="email") == VALID
    assert registry.validate("exist", "", ["users"], field="email") == SKIP


def test_exist_scope_filter_applies_only_with_both_args(repo):
    repo.create("users", {"email": "scoped@example.com", "password_hash": "x", "verified": False})
    registry = build_registry(repo)

    assert registry.validate("exist", "scoped@example.com", ["users", "email", "verified", True]) == VALID
    assert registry.validate("exist", "scoped@example.com", ["users", "email", "verified", None]).rejected


def test_exist_without_collection_fails_fast(repo):
    registry = build_registry(repo)
    with pytest.raises(ConfigurationError):
        registry.validate("exist", "someone@example.com", [], field="email")


def test_exist_unknown_collection_is_configuration_error(repo):
    registry = build_registry(repo)
    with pytest.raises(ConfigurationError):
        registry.validate("exist", "x", ["widgets"], field="email")


def test_validator_collects_first_failure_per_field(registry):
    validator = Validator(registry)
    schema = {
        "email": [rule("required"), rule("email")],
        "pin": [rule("required"), rule("digit"), rule("length", 4)],
        "password": [rule("min", 6)],
        "passwordConfirmation": [rule("same", "password")],
    }
    with pytest.raises(ValidationFailed) as info:
        validator.check({"pin": "12a", "password": "secret1", "passwordConfirmation": "other"}, schema)

    errors = info.value.errors
    assert [(e.field, e.rule) for e in errors] == [
        ("email", "required"),
        ("pin", "length"),
        ("passwordConfirmation", "same"),
    ]
    assert info.value.field == "email"
    assert info.value.message == "email is required"


def test_validator_passes_clean_payload(registry):
    Validator(registry).check(
        {"social": "google", "socialToken": "abc"},
        {"social": [rule("required"), rule("in", "facebook", "google")], "socialToken": [rule("string")]},
    )


def test_min_and_max_value_coerce_numeric_strings():
    assert min_value("10", [5]) == VALID
    assert max_value("10", [5]).rejected
    assert min_value(10, ["5"]) == VALID
    assert min_value("abc", [5]).rejected


def test_length_reads_leading_integer_of_bound():
    assert length("abcd", ["4x"]) == VALID
    assert length("abcd", [" 4"]) == VALID
    assert length("abcd", ["x4"]).rejected
