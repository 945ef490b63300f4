from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from form_relay.errors import ConfigurationError, ValidationError
from form_relay.schemas.submission import CanonicalSubmission, FieldMapping, FormMappingTable

logger = logging.getLogger(__name__)


def load_form_mappings(path: Union[str, Path]) -> FormMappingTable:
    """Read the form-name -> field mapping table from a JSON file."""
    mappings_path = Path(path)
    if not mappings_path.exists():
        raise ConfigurationError(f"Form mappings file not found: {mappings_path}")
    try:
        raw = json.loads(mappings_path.read_text(encoding="utf-8"))
        table = FormMappingTable.model_validate(raw)
    except (json.JSONDecodeError, PydanticValidationError) as exc:
        raise ConfigurationError(f"Invalid form mappings in {mappings_path}: {exc}") from exc
    logger.info("Loaded form mappings %s from %s", ", ".join(table.form_names()), mappings_path)
    return table


class FieldMapper:
    """Normalizes named form submissions into canonical contact records."""

    OPTIONAL_FIELDS = ("phone", "job_title", "company", "message")

    def __init__(self, mappings: FormMappingTable) -> None:
        self._mappings = mappings

    def mapping_for(self, form_name: str) -> FieldMapping:
        mapping = self._mappings.get(form_name)
        if mapping is None:
            raise ConfigurationError(f"No field mapping configured for form '{form_name}'")
        return mapping

    def standardize(self, form_data: Mapping[str, str], form_name: str) -> CanonicalSubmission:
        mapping = self.mapping_for(form_name)

        email = _clean(form_data.get(mapping.email))
        if not email:
            raise ValidationError("Email is required for form submission")

        full_name = self._resolve_full_name(form_data, mapping.full_name)
        if not full_name:
            raise ValidationError("Full name is required for form submission")

        optional: Dict[str, str] = {}
        for field in self.OPTIONAL_FIELDS:
            raw_field = getattr(mapping, field)
            if not raw_field:
                continue
            value = _clean(form_data.get(raw_field))
            if value:
                optional[field] = value

        return CanonicalSubmission(email=email, full_name=full_name, **optional)

    def _resolve_full_name(self, form_data: Mapping[str, str], source: Union[str, List[str]]) -> str:
        if isinstance(source, str):
            return _clean(form_data.get(source)) or ""
        parts = [_clean(form_data.get(name)) for name in source]
        return " ".join(part for part in parts if part)


def _clean(value: Optional[object]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
