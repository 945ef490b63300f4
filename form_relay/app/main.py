from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from form_relay.app.config import get_settings
from form_relay.app.routes import envelope_response, router
from form_relay.errors import FormRelayError
from form_relay.utils.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title=settings.app_name, debug=settings.debug)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Content-Type"],
    max_age=86400,
)
app.include_router(router)


@app.exception_handler(FormRelayError)
async def form_relay_error_handler(request: Request, exc: FormRelayError) -> JSONResponse:
    # raised while building dependencies, e.g. an unreadable mappings file
    return envelope_response(exc.status_code, error=exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return envelope_response(404, error="API route not found")
    return envelope_response(exc.status_code, error=str(exc.detail), headers=exc.headers)
