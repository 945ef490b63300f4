from __future__ import annotations

import logging
from dataclasses import asdict, fields
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from langgraph.graph import END, StateGraph

from form_relay.adapters.pipedrive_client import PipedriveClient
from form_relay.errors import CrmRequestError, CrmWriteError, UpstreamError
from form_relay.orchestrator.state import CrmSyncState
from form_relay.orchestrator.steps import SyncStep
from form_relay.schemas.submission import CanonicalSubmission
from form_relay.services.notes import format_submission_note

logger = logging.getLogger(__name__)

_ERROR_TYPES = {
    CrmRequestError.__name__: CrmRequestError,
    CrmWriteError.__name__: CrmWriteError,
}


class CrmSyncOrchestrator:
    """LangGraph state machine that upserts a person and lead, then adds a note.

    Persons are matched by email and leads by (person id, title), so repeat
    submissions reuse existing CRM entities. A failing person or lead step ends
    the graph early and is re-raised from :meth:`sync` with the partial state
    attached; a failing note is only logged.
    """

    def __init__(
        self,
        client: PipedriveClient,
        owner_id: Optional[int] = None,
        person_visible_to: Optional[int] = 3,
        lead_visible_to: Optional[str] = "3",
    ) -> None:
        self._client = client
        self._owner_id = owner_id
        self._person_visible_to = person_visible_to
        self._lead_visible_to = lead_visible_to
        self._graph = self._build_graph().compile()

    def _build_graph(self) -> StateGraph[CrmSyncState]:
        graph: StateGraph[CrmSyncState] = StateGraph(CrmSyncState)

        graph.add_node(SyncStep.FIND_PERSON.value, self._find_person_node)
        graph.add_node(SyncStep.CREATE_PERSON.value, self._create_person_node)
        graph.add_node(SyncStep.FIND_OR_CREATE_LEAD.value, self._lead_node)
        graph.add_node(SyncStep.ADD_NOTE.value, self._note_node)

        graph.set_entry_point(SyncStep.FIND_PERSON.value)

        graph.add_conditional_edges(
            SyncStep.FIND_PERSON.value,
            self._after_find_person,
            {
                "found": SyncStep.FIND_OR_CREATE_LEAD.value,
                "missing": SyncStep.CREATE_PERSON.value,
                "failed": END,
            },
        )
        graph.add_conditional_edges(
            SyncStep.CREATE_PERSON.value,
            self._continue_or_stop,
            {"continue": SyncStep.FIND_OR_CREATE_LEAD.value, "failed": END},
        )
        graph.add_conditional_edges(
            SyncStep.FIND_OR_CREATE_LEAD.value,
            self._continue_or_stop,
            {"continue": SyncStep.ADD_NOTE.value, "failed": END},
        )
        graph.add_edge(SyncStep.ADD_NOTE.value, END)

        return graph

    def sync(self, record: CanonicalSubmission, form_name: str, source: str) -> CrmSyncState:
        initial = CrmSyncState(
            submission=record.model_dump(),
            form_name=form_name,
            source=source,
        )
        final_state = self.run(initial)
        if final_state.failed:
            error_cls = _ERROR_TYPES.get(final_state.error_type or "", CrmWriteError)
            raise error_cls(final_state.error or "CRM sync failed", state=final_state)
        return final_state

    def run(self, state: CrmSyncState) -> CrmSyncState:
        result = self._graph.invoke(asdict(state))
        if isinstance(result, CrmSyncState):
            return result
        if isinstance(result, dict):
            known = {item.name for item in fields(CrmSyncState)}
            return CrmSyncState(**{key: value for key, value in result.items() if key in known})
        raise TypeError(f"Unsupported state result from graph: {type(result)!r}")

    def _find_person_node(self, state: CrmSyncState) -> Dict[str, Any]:
        email = state.submission["email"]
        try:
            response = self._client.search_persons(email)
        except UpstreamError as exc:
            return self._failure(SyncStep.FIND_PERSON, exc)

        items = (response.get("data") or {}).get("items") or []
        update: Dict[str, Any] = {"completed_steps": [*state.completed_steps, SyncStep.FIND_PERSON.value]}
        if items:
            person = items[0].get("item") or {}
            if not person.get("id"):
                return self._failure(
                    SyncStep.FIND_PERSON,
                    CrmWriteError("Pipedrive person search returned a match without an id"),
                )
            update["person_id"] = person["id"]
            update["person_name"] = person.get("name") or state.submission["full_name"]
            logger.info("Found existing Pipedrive person %s", update["person_id"])
        else:
            logger.info("No Pipedrive person matches the submitted email")
        return update

    def _create_person_node(self, state: CrmSyncState) -> Dict[str, Any]:
        payload = self._person_payload(state.submission)
        try:
            response = self._client.add_person(payload)
            person = response.get("data") or {}
            if not person.get("id"):
                raise CrmWriteError("Failed to create person in Pipedrive")
        except UpstreamError as exc:
            return self._failure(SyncStep.CREATE_PERSON, exc)

        logger.info("Created Pipedrive person %s", person["id"])
        return {
            "person_id": person["id"],
            "person_name": person.get("name") or payload["name"],
            "person_created": True,
            "completed_steps": [*state.completed_steps, SyncStep.CREATE_PERSON.value],
        }

    def _lead_node(self, state: CrmSyncState) -> Dict[str, Any]:
        title = state.person_name or state.submission["full_name"]
        created = False
        try:
            lead_id = self._find_lead_id(title, state.person_id)
            if lead_id is None:
                response = self._client.add_lead(self._lead_payload(title, state.person_id))
                lead_id = (response.get("data") or {}).get("id")
                created = True
            if not lead_id:
                raise CrmWriteError("Failed to get or create lead in Pipedrive")
        except UpstreamError as exc:
            return self._failure(SyncStep.FIND_OR_CREATE_LEAD, exc)

        logger.info("%s Pipedrive lead %s", "Created" if created else "Reusing", lead_id)
        return {
            "lead_id": str(lead_id),
            "lead_created": created,
            "completed_steps": [*state.completed_steps, SyncStep.FIND_OR_CREATE_LEAD.value],
        }

    def _note_node(self, state: CrmSyncState) -> Dict[str, Any]:
        record = CanonicalSubmission.model_validate(state.submission)
        content = format_submission_note(state.form_name, state.source, record.note_fields())
        try:
            self._client.add_note(
                {
                    "content": content,
                    "lead_id": state.lead_id,
                    "person_id": state.person_id,
                    "add_time": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
                }
            )
        except Exception:  # note delivery is best effort
            logger.exception("Error adding note to lead %s and person %s", state.lead_id, state.person_id)
            return {"note_added": False}
        return {
            "note_added": True,
            "completed_steps": [*state.completed_steps, SyncStep.ADD_NOTE.value],
        }

    def _find_lead_id(self, title: str, person_id: Optional[int]) -> Optional[str]:
        response = self._client.search_leads(title=title, person_id=person_id)
        if not response.get("success"):
            return None
        items = (response.get("data") or {}).get("items") or []
        if not items:
            return None
        return (items[0].get("item") or {}).get("id")

    def _person_payload(self, submission: Dict[str, Any]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": submission["full_name"],
            "email": [{"value": submission["email"], "primary": True, "label": "work"}],
        }
        if submission.get("phone"):
            payload["phone"] = [{"value": submission["phone"], "primary": True, "label": "mobile"}]
        if self._owner_id is not None:
            payload["owner_id"] = self._owner_id
        if self._person_visible_to is not None:
            payload["visible_to"] = self._person_visible_to
        return payload

    def _lead_payload(self, title: str, person_id: Optional[int]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"title": title, "person_id": person_id}
        if self._lead_visible_to is not None:
            payload["visible_to"] = self._lead_visible_to
        return payload

    def _failure(self, step: SyncStep, error: UpstreamError) -> Dict[str, Any]:
        logger.error("CRM sync failed at %s: %s", step.value, error)
        return {
            "failed_step": step.value,
            "error": str(error),
            "error_type": type(error).__name__,
        }

    def _after_find_person(self, state: CrmSyncState) -> str:
        if state.error:
            return "failed"
        return "found" if state.person_id else "missing"

    def _continue_or_stop(self, state: CrmSyncState) -> str:
        return "failed" if state.error else "continue"
