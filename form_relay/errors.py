"""Error taxonomy for the submission pipeline.

Every error carries the HTTP status the endpoint answers with; the message is
returned verbatim in the response envelope.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from form_relay.orchestrator.state import CrmSyncState


class FormRelayError(Exception):
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(FormRelayError):
    """A form name has no mapping, or the mapping file is unusable."""


class ValidationError(FormRelayError):
    """A required field is missing or blank after trimming."""

    status_code = 400


class SpamCheckFailed(FormRelayError):
    """The reCAPTCHA challenge was rejected or could not be verified."""


class PersistenceError(FormRelayError):
    """Writing the raw submission to the backup store failed."""


class UpstreamError(FormRelayError):
    status_code = 502

    def __init__(self, message: str, state: Optional["CrmSyncState"] = None) -> None:
        super().__init__(message)
        self.state = state


class CrmRequestError(UpstreamError):
    """Pipedrive could not be reached or answered with a non-2xx status."""


class CrmWriteError(UpstreamError):
    """Person or lead creation returned no usable id."""
