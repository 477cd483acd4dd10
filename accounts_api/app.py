"""Application factory for the accounts API."""
from __future__ import annotations

import html
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates

from accounts_api.core.config import get_settings
from accounts_api.core.errors import AuthError, PersistenceError, ValidationFailed
from accounts_api.core.mailer import TEMPLATES_DIR
from accounts_api.domain.validators import Validator, build_registry
from accounts_api.routers import auth as auth_router
from accounts_api.services.auth_service import AuthService

logger = logging.getLogger("accounts_api.app")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    if isinstance(exc, PersistenceError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.__cause__ or exc)
    body = {"status": "error", "code": exc.code, "message": exc.message}
    if isinstance(exc, ValidationFailed):
        body["errors"] = [error.as_dict() for error in exc.errors]
    return JSONResponse(body, status_code=exc.status_code)


def create_app(auth_service: Optional[AuthService] = None) -> FastAPI:
    """Factory compatible with uvicorn/gunicorn (``--factory``)."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Accounts API")
    service = auth_service or AuthService(settings=settings)
    app.state.auth_service = service
    app.state.validator = Validator(build_registry(service.repository))
    app.state.templates = Jinja2Templates(directory=TEMPLATES_DIR)
    app.add_exception_handler(AuthError, auth_error_handler)

    @app.get("/", response_class=HTMLResponse)
    def home(message: str = ""):
        banner = f"<p class='banner ok'>{html.escape(message)}</p>" if message else ""
        return HTMLResponse(f"<!doctype html><html lang='en'><body><main class='wrap'>{banner}</main></body></html>")

    app.include_router(auth_router.router)
    return app
