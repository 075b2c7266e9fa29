from fastapi import APIRouter

from loanops.api.v1.routers import (
    applications,
    bulk_upload,
    health,
    queries,
    query_actions,
    query_responses,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(queries.router)
api_router.include_router(query_actions.router)
api_router.include_router(query_responses.router)
api_router.include_router(applications.router)
api_router.include_router(bulk_upload.router)

__all__ = ["api_router"]
