from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote, quote_plus

from fastapi import APIRouter, BackgroundTasks, Body, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from accounts_api.core.errors import InvalidToken, ValidationFailed
from accounts_api.db.models import User
from accounts_api.domain.validators import Validator, rule
from accounts_api.services.auth_service import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH, AuthService

router = APIRouter(tags=["auth"])

REGISTER_RULES = {
    "name": [rule("string")],
    "email": [
        rule("required"),
        rule("string"),
        rule("email"),
        rule("exist", "users", "email", message="{{field}} is already registered"),
    ],
    "password": [
        rule("required"),
        rule("string"),
        rule("min", PASSWORD_MIN_LENGTH),
        rule("max", PASSWORD_MAX_LENGTH),
    ],
}
LOGIN_RULES = {
    "email": [rule("required"), rule("string")],
    "password": [rule("required"), rule("string")],
}
SOCIAL_RULES = {
    "socialToken": [rule("required"), rule("string")],
    "social": [rule("required"), rule("in", "facebook", "google")],
}
EMAIL_RULES = {"email": [rule("required"), rule("string")]}
REFRESH_RULES = {"refreshToken": [rule("required"), rule("string")]}
RESET_RULES = {
    "password": [
        rule("required"),
        rule("string"),
        rule("min", PASSWORD_MIN_LENGTH),
        rule("max", PASSWORD_MAX_LENGTH),
    ],
    "passwordConfirmation": [rule("same", "password")],
}
CHANGE_PASSWORD_RULES = {
    "password": [rule("required"), rule("string")],
    "newPassword": [
        rule("required"),
        rule("string"),
        rule("min", PASSWORD_MIN_LENGTH),
        rule("max", PASSWORD_MAX_LENGTH),
    ],
}


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _validate(request: Request, data: dict, schema: dict) -> None:
    validator: Validator = request.app.state.validator
    validator.check(data, schema)


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return value.strip() or None


def public_user(user: User, **extra: Any) -> dict:
    """JSON view of a user; never exposes the password hash or pending token."""
    data = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "verified": bool(user.verified),
        "language": user.language,
        "avatar": user.avatar,
        "socialId": user.social_id,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }
    data.update(extra)
    return data


def api_success(data: Any = None, message: str = "success", status_code: int = 200) -> JSONResponse:
    return JSONResponse({"status": "success", "message": message, "data": data}, status_code=status_code)


def api_created(data: Any = None, message: str = "created") -> JSONResponse:
    return api_success(data, message, status_code=201)


def _invalid_link(request: Request) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(request, "invalid_link.html", {}, status_code=400)


# ------------------------------------------------------------------ JSON API
@router.post("/api/auth/register")
def register(request: Request, payload: dict = Body(default_factory=dict)):
    _validate(request, payload, REGISTER_RULES)
    user = _service(request).register(payload.get("name"), payload.get("email"), payload.get("password"))
    return api_created(public_user(user))


@router.post("/api/auth/login")
def login(request: Request, payload: dict = Body(default_factory=dict)):
    _validate(request, payload, LOGIN_RULES)
    result = _service(request).login(payload.get("email"), payload.get("password"))
    return api_success(public_user(result.user, token=result.token, refreshToken=result.refresh_token))


@router.post("/api/auth/refresh")
def refresh(request: Request, payload: dict = Body(default_factory=dict)):
    _validate(request, payload, REFRESH_RULES)
    pair = _service(request).refresh_session(payload.get("refreshToken"))
    return api_success({"token": pair.token, "refreshToken": pair.refresh_token})


@router.post("/api/auth/logout")
def logout(request: Request):
    _service(request).logout(_bearer_token(request))
    return api_success(None, "success")


@router.post("/api/auth/social/{social}")
def social_login(request: Request, social: str, payload: dict = Body(default_factory=dict)):
    _validate(request, {**payload, "social": social}, SOCIAL_RULES)
    result = _service(request).social_login(social, payload.get("socialToken"))
    return api_success(public_user(result.user, token=result.token))


@router.post("/api/auth/verification")
def send_verification(request: Request, background_tasks: BackgroundTasks, payload: dict = Body(default_factory=dict)):
    _validate(request, payload, EMAIL_RULES)
    _service(request).request_verification_resend(payload.get("email"), defer=background_tasks.add_task)
    return api_success(None, "Email sent successfully")


@router.get("/api/auth/me")
def me(request: Request):
    user = _service(request).current_user(_bearer_token(request))
    return api_success(public_user(user))


@router.post("/api/auth/forgot")
def forgot(request: Request, background_tasks: BackgroundTasks, payload: dict = Body(default_factory=dict)):
    _validate(request, payload, EMAIL_RULES)
    _service(request).request_password_reset(payload.get("email"), defer=background_tasks.add_task)
    return api_success(None, "Email sent successfully")


@router.put("/api/auth/password")
def change_password(request: Request, payload: dict = Body(default_factory=dict)):
    _validate(request, payload, CHANGE_PASSWORD_RULES)
    user = _service(request).change_password(
        _bearer_token(request),
        payload.get("password"),
        payload.get("newPassword"),
    )
    return api_success(public_user(user), "Change password successfully")


# ------------------------------------------------------------------ browser flows
@router.get("/auth/verify")
def verify(request: Request, token: str = ""):
    try:
        _service(request).verify_account(token)
    except InvalidToken:
        return _invalid_link(request)
    return RedirectResponse(f"/?message={quote_plus('Account verified successfully')}", status_code=303)


@router.get("/auth/reset", response_class=HTMLResponse)
def reset_form(request: Request, token: str = "", error: str = ""):
    try:
        _service(request).resolve_reset_token(token)
    except InvalidToken:
        return _invalid_link(request)
    templates = request.app.state.templates
    context = {
        "token": token,
        "error": error,
        "min_length": PASSWORD_MIN_LENGTH,
        "max_length": PASSWORD_MAX_LENGTH,
    }
    return templates.TemplateResponse(request, "reset.html", context)


@router.post("/auth/reset")
def reset_password(
    request: Request,
    token: str = Form(""),
    password: str = Form(""),
    passwordConfirmation: str = Form(""),
):
    data = {"password": password, "passwordConfirmation": passwordConfirmation}
    try:
        _validate(request, data, RESET_RULES)
        _service(request).complete_password_reset(token, password, passwordConfirmation)
    except ValidationFailed as exc:
        return RedirectResponse(
            f"/auth/reset?token={quote(token or '', safe='')}&error={quote_plus(exc.message)}",
            status_code=303,
        )
    except InvalidToken:
        return _invalid_link(request)
    return RedirectResponse(f"/?message={quote_plus('Reset password successfully')}", status_code=303)
