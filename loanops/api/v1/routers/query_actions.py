from fastapi import APIRouter, Depends, Query

from loanops.api import deps
from loanops.core.response_envelope import success_envelope
from loanops.schemas.activity import ChatMessage, QueryActionRequest
from loanops.services import query_actions as action_service
from loanops.services.store import QueryStore

router = APIRouter(prefix="/query-actions", tags=["query-actions"])


@router.post("", summary="Record an action, revert or message on a query")
async def post_query_action(
    payload: QueryActionRequest,
    store: QueryStore = Depends(deps.get_query_store),
) -> dict:
    result = action_service.handle_query_action(store, payload)
    if isinstance(result.record, ChatMessage):
        return success_envelope(result.record, message=result.narration)
    return success_envelope(
        result.record,
        message=result.narration,
        systemMessage=result.system_message,
    )


@router.get("", summary="Actions and messages recorded against queries")
async def list_query_actions(
    query_id: str | None = Query(None, alias="queryId"),
    kind: str | None = Query(None, alias="type"),
    store: QueryStore = Depends(deps.get_query_store),
) -> dict:
    data, count = action_service.list_activity(store, query_id=query_id, kind=kind)
    return success_envelope(data, count=count)
