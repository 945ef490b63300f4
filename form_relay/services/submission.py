from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from form_relay.orchestrator.graph import CrmSyncOrchestrator
from form_relay.orchestrator.state import CrmSyncState
from form_relay.orchestrator.steps import SyncStep
from form_relay.schemas.submission import CanonicalSubmission
from form_relay.services.backup import BackupStore
from form_relay.services.field_mapper import FieldMapper
from form_relay.services.spam_filter import SpamFilter, VerificationResult

logger = logging.getLogger(__name__)

RECAPTCHA_FIELD = "g-recaptcha-response"
ROUTING_FIELDS = ("form", "source")


@dataclass
class SubmissionOutcome:
    verification: VerificationResult
    record: CanonicalSubmission
    backup_id: str
    crm_state: CrmSyncState


class SubmissionService:
    """Runs one form submission through spam check, mapping, backup and CRM sync."""

    def __init__(
        self,
        spam_filter: SpamFilter,
        field_mapper: FieldMapper,
        backup_store: BackupStore,
        orchestrator: CrmSyncOrchestrator,
    ) -> None:
        self._spam_filter = spam_filter
        self._field_mapper = field_mapper
        self._backup_store = backup_store
        self._orchestrator = orchestrator

    def process(
        self,
        form_data: Mapping[str, str],
        form_name: str,
        source: str,
        token: Optional[str] = None,
    ) -> SubmissionOutcome:
        # unknown forms fail before any outbound call, reCAPTCHA included
        self._field_mapper.mapping_for(form_name)
        verification = self._spam_filter.verify(token)

        record = self._field_mapper.standardize(form_data, form_name)
        backup_id = self._backup_store.append(build_raw_record(form_data, form_name, source))

        crm_state = self._orchestrator.sync(record, form_name=form_name, source=source)
        logger.info(
            "Processed submission for form %s from %s (person %s, lead %s, note added: %s)",
            form_name,
            source,
            crm_state.person_id,
            crm_state.lead_id,
            crm_state.has_completed(SyncStep.ADD_NOTE),
        )
        return SubmissionOutcome(
            verification=verification,
            record=record,
            backup_id=backup_id,
            crm_state=crm_state,
        )


def build_raw_record(form_data: Mapping[str, str], form_name: str, source: str) -> Dict[str, str]:
    """Keep every non-empty submitted field under its original name for backup."""
    raw: Dict[str, str] = {"form": form_name, "source": source}
    for key, value in form_data.items():
        if key == RECAPTCHA_FIELD or key in ROUTING_FIELDS:
            continue
        text = str(value).strip() if value is not None else ""
        if text:
            raw[key] = text
    return raw
