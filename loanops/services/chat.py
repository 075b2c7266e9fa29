from __future__ import annotations

from loanops.core.errors import ValidationFailed
from loanops.schemas.activity import ChatMessage, ChatMessageCreate
from loanops.services.queries import require_query
from loanops.services.store import QueryStore, new_record_id, normalize_query_id
from loanops.utils.clock import utcnow


def get_messages(store: QueryStore, query_id: str) -> list[ChatMessage]:
    return [m.model_copy() for m in store.messages_for(query_id)]


def post_chat_message(store: QueryStore, query_id: str, payload: ChatMessageCreate) -> ChatMessage:
    wanted = normalize_query_id(query_id)
    text = (payload.message or "").strip()
    sender = (payload.sender or "").strip()
    sender_role = (payload.sender_role or "").strip()
    missing = [
        name
        for name, value in (("message", text), ("sender", sender), ("senderRole", sender_role))
        if not value
    ]
    if missing:
        raise ValidationFailed("Message, sender, and senderRole are required", fields=missing)

    message = ChatMessage(
        id=new_record_id("msg"),
        query_id=wanted,
        message=text,
        response_text=text,
        sender=sender,
        sender_role=sender_role,
        team=payload.team or sender_role,
        timestamp=utcnow(),
    )
    with store.lock:
        require_query(store, wanted)
        store.append_message(message)
    return message
