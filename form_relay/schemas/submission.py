from __future__ import annotations

from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator


class FieldMapping(BaseModel):
    """Raw form field names feeding each canonical field of one form."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    email: str = Field(..., description="Raw field holding the email address")
    full_name: Union[str, List[str]] = Field(
        ...,
        alias="fullName",
        description="Raw field, or ordered raw fields joined with a space",
    )
    phone: Optional[str] = None
    job_title: Optional[str] = Field(default=None, alias="jobTitle")
    company: Optional[str] = None
    message: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email_field_named(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("email mapping must name a form field")
        return value

    @field_validator("full_name")
    @classmethod
    def _full_name_fields_named(cls, value: Union[str, List[str]]) -> Union[str, List[str]]:
        names = [value] if isinstance(value, str) else value
        if not names or not all(name.strip() for name in names):
            raise ValueError("fullName mapping must name at least one form field")
        return value


class FormMappingTable(RootModel[Dict[str, FieldMapping]]):
    def get(self, form_name: str) -> Optional[FieldMapping]:
        return self.root.get(form_name)

    def form_names(self) -> List[str]:
        return sorted(self.root)


class CanonicalSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    full_name: str = Field(..., alias="fullName")
    phone: Optional[str] = None
    job_title: Optional[str] = Field(default=None, alias="jobTitle")
    company: Optional[str] = None
    message: Optional[str] = None

    def note_fields(self) -> List[Tuple[str, Optional[str]]]:
        """Labelled values in the order they appear in CRM notes."""
        return [
            ("Email", self.email),
            ("Full Name", self.full_name),
            ("Phone", self.phone),
            ("Job Title", self.job_title),
            ("Company", self.company),
            ("Message", self.message),
        ]


class SubmissionEnvelope(BaseModel):
    data: Optional[dict] = None
    error: Optional[str] = None
    status: int
    recaptcha_result: Optional[str] = None
