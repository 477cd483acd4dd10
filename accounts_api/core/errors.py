"""Error taxonomy shared by the services, validators and routers."""

from __future__ import annotations

from dataclasses import dataclass


class AuthError(Exception):
    """Base class for authentication-related exceptions."""

    status_code = 400
    code = "auth_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str
    rule: str = ""

    def as_dict(self) -> dict:
        return {"field": self.field, "message": self.message, "rule": self.rule}


class ValidationFailed(AuthError):
    """One or more fields were rejected; exposes the first failure directly."""

    status_code = 422
    code = "validation_failed"

    def __init__(self, errors: list[FieldError] | FieldError):
        if isinstance(errors, FieldError):
            errors = [errors]
        self.errors = list(errors)
        first = self.errors[0] if self.errors else FieldError("", "Validation failed")
        super().__init__(first.message)
        self.field = first.field

    @classmethod
    def single(cls, field: str, message: str, rule: str = "") -> "ValidationFailed":
        return cls(FieldError(field, message, rule))


class InvalidCredentials(AuthError):
    status_code = 401
    code = "invalid_credentials"


class AccountNotVerified(AuthError):
    status_code = 403
    code = "account_not_verified"


class InvalidToken(AuthError):
    status_code = 400
    code = "invalid_token"


class InvalidSocialToken(AuthError):
    status_code = 401
    code = "invalid_social_token"


class PasswordMismatch(AuthError):
    status_code = 422
    code = "password_mismatch"


class NotFound(AuthError):
    status_code = 404
    code = "not_found"


class AuthenticationRequired(AuthError):
    status_code = 401
    code = "authentication_required"


class PersistenceError(AuthError):
    status_code = 500
    code = "persistence_error"


class ConfigurationError(AuthError):
    status_code = 500
    code = "configuration_error"
