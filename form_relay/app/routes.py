from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from form_relay.app.config import Settings
from form_relay.app.dependencies import get_settings, get_submission_service
from form_relay.errors import FormRelayError
from form_relay.schemas.submission import SubmissionEnvelope
from form_relay.services.submission import RECAPTCHA_FIELD, SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter()

UNKNOWN = "Unknown"


def resolve_routing(
    form: Optional[str],
    source: Optional[str],
    fall_back_to_source: bool = True,
) -> Tuple[str, str]:
    """Return (form name, source) for a request's query parameters."""
    resolved_source = source or UNKNOWN
    if form:
        return form, resolved_source
    if source and fall_back_to_source:
        logger.warning("No form parameter supplied; using source '%s' as the form name", source)
        return source, resolved_source
    return UNKNOWN, resolved_source


def collect_form_fields(items: Iterable[Tuple[str, Any]]) -> Dict[str, str]:
    """Flatten form items, keeping the first value of a repeated key and skipping uploads."""
    fields: Dict[str, str] = {}
    for key, value in items:
        if isinstance(value, str):
            fields.setdefault(key, value)
    return fields


def envelope_response(
    status_code: int,
    error: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
    **extra,
) -> JSONResponse:
    envelope = SubmissionEnvelope(data=None, error=error, status=status_code, **extra)
    return JSONResponse(envelope.model_dump(exclude_unset=True), status_code=status_code, headers=headers)


@router.get("/health", status_code=status.HTTP_200_OK)
def health(settings: Settings = Depends(get_settings)) -> dict:
    return {"app": settings.app_name, "status": "ok"}


@router.get("/api")
def api_root() -> dict:
    return {"message": "Hello from Form Relay!"}


@router.get("/api/hello")
def hello() -> dict:
    return {"message": "Hello from Form Relay API!"}


@router.post("/api/form-submission", response_model=SubmissionEnvelope)
async def form_submission(
    request: Request,
    form: Optional[str] = Query(default=None),
    source: Optional[str] = Query(default=None),
    settings: Settings = Depends(get_settings),
    service: SubmissionService = Depends(get_submission_service),
) -> JSONResponse:
    form_name, form_source = resolve_routing(form, source, settings.form_falls_back_to_source)
    try:
        body = await request.form()
        fields = collect_form_fields(body.multi_items())
        token = fields.pop(RECAPTCHA_FIELD, None)
        await run_in_threadpool(service.process, fields, form_name, form_source, token)
    except FormRelayError as exc:
        logger.error("Form submission failed for form %s: %s", form_name, exc.message)
        return envelope_response(exc.status_code, error=exc.message)
    except Exception as exc:
        logger.exception("Form submission failed for form %s", form_name)
        return envelope_response(status.HTTP_500_INTERNAL_SERVER_ERROR, error=str(exc) or "Unknown error occurred")

    return envelope_response(status.HTTP_200_OK, recaptcha_result="success")
