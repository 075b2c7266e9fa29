from __future__ import annotations

from dataclasses import dataclass, field

from loanops.core.errors import ValidationFailed
from loanops.core.logging import get_audit_logger
from loanops.schemas.activity import ChatMessage, ResponseCreate, ResponseRecord
from loanops.services.queries import require_query
from loanops.services.store import QueryStore, new_record_id, normalize_query_id
from loanops.utils.clock import as_utc, utcnow

audit_logger = get_audit_logger()


@dataclass(slots=True)
class ResponseListing:
    responses: list[ResponseRecord]
    unread_count: int
    messages: list[ChatMessage] | None = None
    filters: dict = field(default_factory=dict)


def submit_response(store: QueryStore, payload: ResponseCreate) -> tuple[ResponseRecord, ChatMessage]:
    query_id = normalize_query_id(payload.query_id)
    text = (payload.response_text or "").strip()
    team = (payload.team or "").strip()
    missing = [
        name
        for name, value in (("queryId", query_id), ("responseText", text), ("team", team))
        if not value
    ]
    if missing:
        raise ValidationFailed(
            f"Missing required fields: {', '.join(missing)}", fields=missing
        )

    responder = payload.responded_by or f"{team} Team"
    timestamp = as_utc(payload.timestamp) or utcnow()
    with store.lock:
        bundle = require_query(store, query_id)
        response = ResponseRecord(
            id=new_record_id("resp"),
            query_id=query_id,
            app_no=payload.app_no or bundle.app_no,
            response_text=text,
            team=team,
            responded_by=responder,
            timestamp=timestamp,
        )
        message = ChatMessage(
            id=new_record_id("msg"),
            query_id=query_id,
            message=text,
            response_text=text,
            sender=responder,
            sender_role=team.lower(),
            team=team,
            timestamp=timestamp,
        )
        store.append_response(response)
        store.append_message(message)

    audit_logger.info(
        "%s responded to query %s",
        team,
        query_id,
        extra={"event": "query.response_submitted"},
    )
    return response, message


def list_responses(
    store: QueryStore,
    *,
    query_id: str | None = None,
    app_no: str | None = None,
    team: str | None = None,
    unread_only: bool = False,
    include_messages: bool = False,
) -> ResponseListing:
    wanted = normalize_query_id(query_id)
    with store.lock:
        selected = [r.model_copy() for r in store.responses]
        messages = store.messages_for(wanted) if include_messages and wanted else None

    if wanted:
        selected = [r for r in selected if r.query_id == wanted]
    if app_no:
        selected = [r for r in selected if r.app_no == app_no]
    if team:
        selected = [r for r in selected if r.team.lower() == team.lower()]
    if unread_only:
        selected = [r for r in selected if not r.is_read]
    selected.sort(key=lambda r: r.timestamp, reverse=True)

    return ResponseListing(
        responses=selected,
        unread_count=sum(1 for r in selected if not r.is_read),
        messages=messages,
        filters={
            "queryId": wanted or None,
            "appNo": app_no,
            "team": team,
            "unreadOnly": unread_only,
        },
    )


def mark_responses_read(store: QueryStore, response_ids: object) -> int:
    if not isinstance(response_ids, list):
        raise ValidationFailed("responseIds must be an array", fields=["responseIds"])

    wanted = {str(value) for value in response_ids}
    updated = 0
    with store.lock:
        for response in store.responses:
            if response.id in wanted and not response.is_read:
                response.is_read = True
                updated += 1
    return updated
