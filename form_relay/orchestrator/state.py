from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from form_relay.orchestrator.steps import SyncStep


@dataclass
class CrmSyncState:
    """Progress of one submission through the CRM; doubles as the saga record."""

    submission: Dict[str, Any] = field(default_factory=dict)
    form_name: str = ""
    source: str = ""
    person_id: Optional[int] = None
    person_name: Optional[str] = None
    person_created: bool = False
    lead_id: Optional[str] = None
    lead_created: bool = False
    note_added: bool = False
    completed_steps: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def has_completed(self, step: SyncStep) -> bool:
        return step.value in self.completed_steps

