from __future__ import annotations

from types import SimpleNamespace

import pytest
from pymongo.errors import AutoReconnect

from form_relay.errors import ConfigurationError, PersistenceError, SpamCheckFailed, ValidationError
from form_relay.orchestrator.state import CrmSyncState
from form_relay.schemas.submission import FormMappingTable
from form_relay.services.backup import BackupStore
from form_relay.services.field_mapper import FieldMapper
from form_relay.services.spam_filter import VerificationResult
from form_relay.services.submission import SubmissionService, build_raw_record


class MemoryCollection:
    def __init__(self, error=None) -> None:
        self.inserted = []
        self.error = error

    def insert_one(self, payload):
        if self.error:
            raise self.error
        self.inserted.append(payload)
        return SimpleNamespace(inserted_id="backup-1")


class StubSpamFilter:
    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.tokens = []

    def verify(self, token):
        self.tokens.append(token)
        if not self.accept:
            raise SpamCheckFailed('reCAPTCHA validation failed: {"success": false}')
        return VerificationResult(success=True, score=0.9)


class RecordingOrchestrator:
    def __init__(self) -> None:
        self.synced = []

    def sync(self, record, form_name, source):
        self.synced.append((record, form_name, source))
        return CrmSyncState(person_id=1, lead_id="lead-1", note_added=True)


def _mapper():
    return FieldMapper(
        FormMappingTable.model_validate(
            {"contact": {"email": "Email", "fullName": "name", "message": "Message"}}
        )
    )


def _service(accept=True, collection=None):
    collection = collection or MemoryCollection()
    spam_filter = StubSpamFilter(accept=accept)
    orchestrator = RecordingOrchestrator()
    service = SubmissionService(
        spam_filter=spam_filter,
        field_mapper=_mapper(),
        backup_store=BackupStore(collection),
        orchestrator=orchestrator,
    )
    return service, spam_filter, collection, orchestrator


def test_process_runs_every_stage_in_order():
    service, spam_filter, collection, orchestrator = _service()

    outcome = service.process(
        {"Email": "a@x.com", "name": "Jane Doe", "Message": " Hi ", "Extra": " kept "},
        form_name="contact",
        source="homepage",
        token="tok",
    )

    assert spam_filter.tokens == ["tok"]
    assert len(collection.inserted) == 1
    assert orchestrator.synced[0][0].full_name == "Jane Doe"
    assert orchestrator.synced[0][1:] == ("contact", "homepage")
    assert outcome.backup_id == "backup-1"
    assert outcome.crm_state.lead_id == "lead-1"


def test_failed_spam_check_short_circuits():
    service, _, collection, orchestrator = _service(accept=False)

    with pytest.raises(SpamCheckFailed):
        service.process({"Email": "a@x.com", "name": "Jane"}, "contact", "homepage", token="bad")

    assert collection.inserted == []
    assert orchestrator.synced == []


def test_unknown_form_fails_before_any_external_call():
    service, spam_filter, collection, orchestrator = _service()

    with pytest.raises(ConfigurationError):
        service.process({"Email": "a@x.com", "name": "Jane"}, "careers", "homepage", token="tok")

    assert spam_filter.tokens == []
    assert collection.inserted == []
    assert orchestrator.synced == []


def test_invalid_submission_is_not_backed_up():
    service, _, collection, orchestrator = _service()

    with pytest.raises(ValidationError):
        service.process({"name": "Jane"}, "contact", "homepage", token="tok")

    assert collection.inserted == []
    assert orchestrator.synced == []


def test_raw_record_keeps_original_field_names():
    raw = build_raw_record(
        {
            "Email": " a@x.com ",
            "First-Name": "",
            "g-recaptcha-response": "tok",
            "source": "Contact Form",
            "Custom": "value",
        },
        form_name="contact",
        source="homepage",
    )

    assert raw == {"form": "contact", "source": "homepage", "Email": "a@x.com", "Custom": "value"}


def test_backup_failure_stops_before_crm_sync():
    failing = MemoryCollection(error=AutoReconnect("primary stepped down"))
    service, _, collection, orchestrator = _service(collection=failing)

    with pytest.raises(PersistenceError) as excinfo:
        service.process({"Email": "a@x.com", "name": "Jane"}, "contact", "homepage", token="tok")

    assert excinfo.value.message == "Database storage failed"
    assert collection.inserted == []
    assert orchestrator.synced == []
