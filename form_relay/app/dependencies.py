from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from form_relay.adapters.mongo_client import MongoClientFactory
from form_relay.adapters.pipedrive_client import PipedriveClient
from form_relay.adapters.recaptcha_client import RecaptchaClient
from form_relay.app.config import Settings, get_settings
from form_relay.orchestrator.graph import CrmSyncOrchestrator
from form_relay.services.backup import BackupStore
from form_relay.services.field_mapper import FieldMapper, load_form_mappings
from form_relay.services.spam_filter import SpamFilter
from form_relay.services.submission import SubmissionService


@lru_cache(maxsize=1)
def get_mongo_factory() -> MongoClientFactory:
    settings = get_settings()
    return MongoClientFactory(settings.mongo_uri, settings.mongo_database)


@lru_cache(maxsize=1)
def get_pipedrive_client() -> PipedriveClient:
    settings = get_settings()
    return PipedriveClient(
        base_url=settings.pipedrive_base_url,
        api_token=settings.pipedrive_api_key,
        timeout=settings.http_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_recaptcha_client() -> RecaptchaClient:
    settings = get_settings()
    return RecaptchaClient(
        secret_key=settings.recaptcha_secret_key,
        verify_url=settings.recaptcha_verify_url,
        timeout=settings.http_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_field_mapper() -> FieldMapper:
    settings = get_settings()
    return FieldMapper(load_form_mappings(settings.form_mappings_file))


@lru_cache(maxsize=1)
def get_orchestrator() -> CrmSyncOrchestrator:
    settings = get_settings()
    return CrmSyncOrchestrator(
        client=get_pipedrive_client(),
        owner_id=settings.pipedrive_owner_id,
        person_visible_to=settings.pipedrive_person_visible_to,
        lead_visible_to=settings.pipedrive_lead_visible_to,
    )


def get_spam_filter(
    settings: Settings = Depends(get_settings),
    client: RecaptchaClient = Depends(get_recaptcha_client),
) -> SpamFilter:
    return SpamFilter(
        client=client,
        min_score=settings.recaptcha_min_score,
        expected_action=settings.recaptcha_expected_action,
    )


def get_backup_store(
    settings: Settings = Depends(get_settings),
    mongo_factory: MongoClientFactory = Depends(get_mongo_factory),
) -> BackupStore:
    return BackupStore(collection=mongo_factory.get_collection(settings.submissions_collection))


def get_submission_service(
    spam_filter: SpamFilter = Depends(get_spam_filter),
    field_mapper: FieldMapper = Depends(get_field_mapper),
    backup_store: BackupStore = Depends(get_backup_store),
    orchestrator: CrmSyncOrchestrator = Depends(get_orchestrator),
) -> SubmissionService:
    return SubmissionService(
        spam_filter=spam_filter,
        field_mapper=field_mapper,
        backup_store=backup_store,
        orchestrator=orchestrator,
    )
