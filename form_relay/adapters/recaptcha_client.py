from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import requests


@dataclass
class RecaptchaClient:
    secret_key: str
    verify_url: str = "https://www.google.com/recaptcha/api/siteverify"
    timeout: float = 10.0

    def siteverify(self, token: str) -> Dict[str, Any]:
        if not self.secret_key:
            raise RuntimeError("reCAPTCHA client configured without secret key")

        response = requests.get(
            self.verify_url,
            params={"secret": self.secret_key, "response": token},
            timeout=self.timeout,
        )
        if response.status_code != 200:
            raise RuntimeError(
                f"reCAPTCHA verification request failed (status {response.status_code}): {response.text}"
            )
        return response.json()
