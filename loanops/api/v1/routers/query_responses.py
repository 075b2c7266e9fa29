from fastapi import APIRouter, Depends, Query, status

from loanops.api import deps
from loanops.core.response_envelope import success_envelope
from loanops.schemas.activity import ResponseCreate, ResponseReadUpdate
from loanops.services import query_responses as response_service
from loanops.services.store import QueryStore

router = APIRouter(tags=["query-responses"])


async def submit_response(
    payload: ResponseCreate,
    store: QueryStore = Depends(deps.get_query_store),
) -> dict:
    response, message = response_service.submit_response(store, payload)
    return success_envelope(
        response,
        status_code=status.HTTP_201_CREATED,
        message="Response submitted successfully",
        chatMessage=message,
    )


async def list_responses(
    query_id: str | None = Query(None, alias="queryId"),
    app_no: str | None = Query(None, alias="appNo"),
    team: str | None = Query(None),
    unread_only: bool = Query(False, alias="unreadOnly"),
    include_messages: bool = Query(False, alias="includeMessages"),
    store: QueryStore = Depends(deps.get_query_store),
) -> dict:
    listing = response_service.list_responses(
        store,
        query_id=query_id,
        app_no=app_no,
        team=team,
        unread_only=unread_only,
        include_messages=include_messages,
    )
    extra = {
        "count": len(listing.responses),
        "unreadCount": listing.unread_count,
        "filters": listing.filters,
    }
    if listing.messages is not None:
        extra["messages"] = listing.messages
    return success_envelope(listing.responses, **extra)


async def mark_read(
    payload: ResponseReadUpdate,
    store: QueryStore = Depends(deps.get_query_store),
) -> dict:
    updated = response_service.mark_responses_read(store, payload.response_ids)
    return success_envelope(
        None, message=f"{updated} responses marked as read", updatedCount=updated
    )


# Mounted twice: /query-responses and the shorter /responses.
for _prefix in ("/query-responses", "/responses"):
    router.add_api_route(
        _prefix,
        submit_response,
        methods=["POST"],
        status_code=status.HTTP_201_CREATED,
        summary="Submit a team response to a query",
    )
    router.add_api_route(_prefix, list_responses, methods=["GET"], summary="List responses")
    router.add_api_route(_prefix, mark_read, methods=["PATCH"], summary="Mark responses as read")
