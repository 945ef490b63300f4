from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central application configuration."""

    app_name: str = Field(default="Form Relay")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    allowed_origins: List[str] = Field(
        default_factory=list,
        validation_alias="ALLOWED_ORIGINS",
    )

    # Form mappings
    form_mappings_file: str = Field(default="config/form_mappings.json")
    form_falls_back_to_source: bool = Field(default=True)

    # reCAPTCHA
    recaptcha_secret_key: str = Field(
        default="",
        validation_alias=AliasChoices("RECAPTCHA_SECRET_KEY", "RECAPTCHA_SECRET_KEY_V3"),
    )
    recaptcha_verify_url: str = Field(default="https://www.google.com/recaptcha/api/siteverify")
    recaptcha_min_score: float = Field(default=0.0)
    recaptcha_expected_action: str = Field(default="")

    # MongoDB
    mongo_uri: str = Field(default="mongodb://localhost:27017")
    mongo_database: str = Field(default="form_relay")
    submissions_collection: str = Field(default="form_submissions")

    # Pipedrive
    pipedrive_base_url: str = Field(default="https://api.pipedrive.com/v1")
    pipedrive_api_key: str = Field(default="")
    pipedrive_owner_id: Optional[int] = Field(default=None)
    pipedrive_person_visible_to: int = Field(default=3)
    pipedrive_lead_visible_to: str = Field(default="3")

    http_timeout_seconds: float = Field(default=10.0)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
