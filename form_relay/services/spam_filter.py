from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from form_relay.adapters.recaptcha_client import RecaptchaClient
from form_relay.errors import SpamCheckFailed

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    success: bool
    score: Optional[float] = None
    action: Optional[str] = None
    error_codes: List[str] = field(default_factory=list)


class SpamFilter:
    """Checks reCAPTCHA tokens before a submission is processed."""

    def __init__(
        self,
        client: RecaptchaClient,
        min_score: float = 0.0,
        expected_action: Optional[str] = None,
    ) -> None:
        self._client = client
        self._min_score = min_score
        self._expected_action = expected_action or None

    def verify(self, token: Optional[str]) -> VerificationResult:
        try:
            payload = self._client.siteverify(token or "")
        except (requests.RequestException, RuntimeError, ValueError) as exc:
            logger.warning("reCAPTCHA verification call failed: %s", exc)
            raise SpamCheckFailed(f"reCAPTCHA validation failed: {exc}") from exc

        result = self._to_result(payload)
        reason = self._rejection_reason(result)
        if reason:
            logger.info("reCAPTCHA rejected submission: %s", reason)
            raise SpamCheckFailed(f"reCAPTCHA validation failed: {json.dumps(payload)}")
        return result

    def _to_result(self, payload: Dict[str, Any]) -> VerificationResult:
        score = payload.get("score")
        return VerificationResult(
            success=payload.get("success") is True,
            score=float(score) if score is not None else None,
            action=payload.get("action"),
            error_codes=list(payload.get("error-codes") or []),
        )

    def _rejection_reason(self, result: VerificationResult) -> Optional[str]:
        if not result.success:
            return "unsuccessful verification " + ",".join(result.error_codes)
        if self._min_score > 0 and (result.score is None or result.score < self._min_score):
            return f"score {result.score} below {self._min_score}"
        if self._expected_action and result.action != self._expected_action:
            return f"action {result.action!r} does not match {self._expected_action!r}"
        return None
