from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from loanops.api import deps
from loanops.core.response_envelope import success_envelope
from loanops.schemas.activity import ChatMessageCreate
from loanops.schemas.queries import QueryStatusUpdate, QuerySubmission
from loanops.services import chat as chat_service
from loanops.services import queries as query_service
from loanops.services.store import QueryStore

router = APIRouter(prefix="/queries", tags=["queries"])


@router.post("", status_code=status.HTTP_201_CREATED, summary="Raise queries against an application")
async def submit_queries(
    payload: QuerySubmission,
    store: QueryStore = Depends(deps.get_query_store),
    db: AsyncSession = Depends(deps.get_db),
) -> dict:
    bundle = await query_service.submit_queries(store, db, payload)
    return success_envelope(
        bundle,
        status_code=status.HTTP_201_CREATED,
        message=f"Queries submitted for {bundle.app_no}",
    )


@router.get("", summary="List query bundles or their statistics")
async def list_queries(
    team: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    app_no: str | None = Query(None, alias="appNo"),
    stats: bool = Query(False),
    store: QueryStore = Depends(deps.get_query_store),
) -> dict:
    if stats:
        return success_envelope(query_service.query_stats(store, team=team))

    bundles = query_service.list_queries(store, team=team, status=status_filter, app_no=app_no)
    return success_envelope(
        bundles,
        count=len(bundles),
        filters={"team": team or "all", "status": status_filter or "all", "appNo": app_no},
    )


@router.patch("", summary="Update the status of a query or a whole bundle")
async def update_query(
    payload: QueryStatusUpdate,
    store: QueryStore = Depends(deps.get_query_store),
) -> dict:
    bundle = query_service.update_query_status(store, payload)
    return success_envelope(bundle, message=f"Query status updated to {payload.status.value}")


@router.get("/{query_id}/chat", summary="Conversation for a query, oldest first")
async def get_chat(
    query_id: str,
    store: QueryStore = Depends(deps.get_query_store),
) -> dict:
    messages = chat_service.get_messages(store, query_id)
    return success_envelope(messages, count=len(messages))


@router.post(
    "/{query_id}/chat",
    status_code=status.HTTP_201_CREATED,
    summary="Post a chat message on a query",
)
async def post_chat(
    query_id: str,
    payload: ChatMessageCreate,
    store: QueryStore = Depends(deps.get_query_store),
) -> dict:
    message = chat_service.post_chat_message(store, query_id, payload)
    return success_envelope(
        message, status_code=status.HTTP_201_CREATED, message="Message sent successfully"
    )
