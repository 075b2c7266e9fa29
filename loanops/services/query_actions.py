from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from loanops.core.errors import ValidationFailed
from loanops.core.logging import get_audit_logger
from loanops.schemas.activity import ActionRecord, ActionType, ChatMessage, QueryActionRequest
from loanops.schemas.queries import QueryStatus, QueryStatusUpdate
from loanops.services import queries
from loanops.services.store import QueryStore, new_record_id, normalize_query_id
from loanops.utils.clock import as_utc, format_display, utcnow

audit_logger = get_audit_logger()

DEFAULT_OPERATOR = "Operations Team"
DEFAULT_REVERTER = "Team Member"
NO_REMARKS = "No additional remarks"
NOT_SPECIFIED = "Not specified"

ACTION_STATUSES = {
    ActionType.APPROVE: QueryStatus.APPROVED,
    ActionType.DEFERRAL: QueryStatus.DEFERRED,
    ActionType.OTC: QueryStatus.OTC,
}


@dataclass(slots=True)
class ActivityResult:
    record: ActionRecord | ChatMessage
    narration: str
    system_message: ChatMessage | None = None


def _parse_action(value: str | None) -> ActionType:
    try:
        return ActionType((value or "").strip().lower())
    except ValueError as exc:
        allowed = ", ".join(a.value for a in ActionType)
        raise ValidationFailed(f"Unknown action. Allowed: {allowed}", fields=["action"]) from exc


def narrate_action(
    action: ActionType,
    actor: str,
    assigned_to: str | None,
    remarks: str | None,
    when: datetime,
) -> str:
    remarks_line = f"Remarks: {remarks or NO_REMARKS}"
    assignee_line = f"Assigned to: {assigned_to or NOT_SPECIFIED}"
    stamp = format_display(when)
    if action is ActionType.APPROVE:
        return (
            f"Query APPROVED by {actor}\n\n{remarks_line}\n\n"
            f"Approved on: {stamp}\n\n"
            "Query has been moved to Query Resolved section."
        )
    if action is ActionType.DEFERRAL:
        return (
            f"Query DEFERRED by {actor}\n\n{assignee_line}\n{remarks_line}\n\n"
            f"Deferred on: {stamp}\n\n"
            "Query has been moved to Query Resolved section with Deferral status."
        )
    return (
        f"Query marked as OTC by {actor}\n\n{assignee_line}\n{remarks_line}\n\n"
        f"OTC assigned on: {stamp}\n\n"
        "Query has been moved to Query Resolved section with OTC status."
    )


def narrate_revert(team_name: str, actor: str, reason: str, when: datetime) -> str:
    return (
        f"Query Reverted by {team_name}\n\n"
        f"Reverted by: {actor}\n"
        f"Reverted on: {format_display(when)}\n"
        f"Reason: {reason}\n\n"
        "This query has been reverted back to pending status and will need to be "
        "processed again by the appropriate team."
    )


def record_action(store: QueryStore, request: QueryActionRequest) -> ActivityResult:
    query_id = normalize_query_id(request.query_id)
    missing = [name for name, value in (("queryId", query_id), ("action", request.action)) if not value]
    if missing:
        raise ValidationFailed("Query ID and action are required", fields=missing)

    action = _parse_action(request.action)
    if action is ActionType.REVERT:
        return record_revert(store, request)

    actor = request.operation_team_member or request.action_by or DEFAULT_OPERATOR
    now = utcnow()
    with store.lock:
        queries.update_query_status(
            store,
            QueryStatusUpdate(
                query_id=query_id,
                status=ACTION_STATUSES[action],
                resolved_at=now,
                resolved_by=actor,
                resolution_reason=action.value,
                assigned_to=request.assigned_to,
                remarks=request.remarks,
                is_resolved=True,
                is_individual_query=True,
            ),
        )
        record = ActionRecord(
            id=new_record_id("act"),
            query_id=query_id,
            action=action,
            assigned_to=request.assigned_to,
            remarks=request.remarks,
            action_by=actor,
            team=request.team or "Operations",
            action_date=now,
        )
        store.append_action(record)

        narration = narrate_action(action, actor, request.assigned_to, request.remarks, now)
        system_message = ChatMessage(
            id=new_record_id("sys"),
            query_id=query_id,
            message=narration,
            response_text=narration,
            sender=actor,
            sender_role="operations",
            team="Operations",
            timestamp=now,
            is_system_message=True,
            action_type=action,
            assigned_to=request.assigned_to,
            remarks=request.remarks or "",
        )
        store.append_message(system_message)

    audit_logger.info(
        "Action %s on query %s by %s",
        action.value,
        query_id,
        actor,
        extra={"event": "query.action_recorded"},
    )
    return ActivityResult(record=record, narration=narration, system_message=system_message)


def record_revert(store: QueryStore, request: QueryActionRequest) -> ActivityResult:
    query_id = normalize_query_id(request.query_id)
    if not query_id:
        raise ValidationFailed("Query ID is required", fields=["queryId"])
    remarks = (request.remarks or "").strip()
    if not remarks:
        raise ValidationFailed("Remarks are required for revert action", fields=["remarks"])

    actor = request.action_by or request.operation_team_member or DEFAULT_REVERTER
    team_name = f"{request.team} Team" if request.team else "Team"
    now = utcnow()
    happened_at = as_utc(request.timestamp) or now
    with store.lock:
        queries.update_query_status(
            store,
            QueryStatusUpdate(
                query_id=query_id,
                status=QueryStatus.PENDING,
                reverted_at=happened_at,
                reverted_by=actor,
                revert_reason=remarks,
            ),
        )
        record = ActionRecord(
            id=new_record_id("act"),
            query_id=query_id,
            action=ActionType.REVERT,
            remarks=remarks,
            action_by=actor,
            team=request.team or "Unknown Team",
            action_date=happened_at,
        )
        store.append_action(record)

        narration = narrate_revert(team_name, actor, remarks, happened_at)
        system_message = ChatMessage(
            id=new_record_id("sys"),
            query_id=query_id,
            message=narration,
            response_text=narration,
            sender=actor,
            sender_role=request.team.lower() if request.team else "team",
            team=team_name,
            timestamp=happened_at,
            is_system_message=True,
            action_type=ActionType.REVERT,
            revert_reason=remarks,
            reverted_by=actor,
        )
        store.append_message(system_message)

    audit_logger.info(
        "Query %s reverted by %s: %s",
        query_id,
        actor,
        remarks,
        extra={"event": "query.reverted"},
    )
    return ActivityResult(record=record, narration=narration, system_message=system_message)


def record_message(store: QueryStore, request: QueryActionRequest) -> ActivityResult:
    query_id = normalize_query_id(request.query_id)
    text = (request.message or "").strip()
    missing = [name for name, value in (("queryId", query_id), ("message", text)) if not value]
    if missing:
        raise ValidationFailed("Query ID and message are required", fields=missing)

    team = request.team or "Operations"
    message = ChatMessage(
        id=new_record_id("msg"),
        query_id=query_id,
        message=text,
        response_text=text,
        sender=request.added_by or f"{team} Team Member",
        sender_role=team.lower(),
        team=team,
        timestamp=utcnow(),
    )
    with store.lock:
        queries.require_query(store, query_id)
        store.append_message(message)
    return ActivityResult(record=message, narration="Message added successfully")


def handle_query_action(store: QueryStore, request: QueryActionRequest) -> ActivityResult:
    handlers = {
        "action": record_action,
        "message": record_message,
        "revert": record_revert,
    }
    handler = handlers.get((request.type or "").strip().lower())
    if handler is None:
        raise ValidationFailed("Invalid request type", fields=["type"], allowed=sorted(handlers))
    return handler(store, request)


def list_activity(
    store: QueryStore, *, query_id: str | None = None, kind: str | None = None
) -> tuple[object, object]:
    """Return ``(data, count)`` for the actions view, the messages view, or both."""
    with store.lock:
        if query_id:
            actions = store.actions_for(query_id)
            messages = store.messages_for(query_id)
        else:
            actions = list(store.actions)
            messages = sorted(store.messages, key=lambda m: m.timestamp)

    kind_key = (kind or "").strip().lower()
    if kind_key == "actions":
        return actions, len(actions)
    if kind_key == "messages":
        return messages, len(messages)
    return (
        {"actions": actions, "messages": messages},
        {"actions": len(actions), "messages": len(messages)},
    )
