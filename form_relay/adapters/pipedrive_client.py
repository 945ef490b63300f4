from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from form_relay.errors import CrmRequestError


@dataclass
class PipedriveClient:
    """Minimal Pipedrive REST client covering persons, leads and notes."""

    base_url: str
    api_token: str
    timeout: float = 10.0

    def search_persons(self, email: str) -> Dict[str, Any]:
        return self._request(
            "GET",
            "/persons/search",
            params={
                "term": email,
                "fields": "email",
                "exact_match": "true",
                "start": 0,
                "limit": 1,
            },
        )

    def add_person(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/persons", json=payload)

    def search_leads(self, title: str, person_id: int) -> Dict[str, Any]:
        return self._request(
            "GET",
            "/leads/search",
            params={
                "term": title,
                "fields": "title",
                "exact_match": "true",
                "start": 0,
                "limit": 1,
                "person_id": person_id,
            },
        )

    def add_lead(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/leads", json=payload)

    def add_note(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/notes", json=payload)

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not self.api_token:
            raise CrmRequestError("Pipedrive client configured without API token")

        url = self.base_url.rstrip("/") + path
        headers = {"x-api-token": self.api_token, "Accept": "application/json"}
        try:
            response = requests.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise CrmRequestError(f"Pipedrive request {method} {path} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise CrmRequestError(
                f"Pipedrive request {method} {path} failed (status {response.status_code}): {response.text}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise CrmRequestError(f"Pipedrive returned a non-JSON body for {method} {path}") from exc
