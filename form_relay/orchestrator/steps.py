from __future__ import annotations

from enum import Enum


class SyncStep(str, Enum):
    FIND_PERSON = "find_person"
    CREATE_PERSON = "create_person"
    FIND_OR_CREATE_LEAD = "find_or_create_lead"
    ADD_NOTE = "add_note"
