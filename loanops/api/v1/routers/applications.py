from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from loanops.api import deps
from loanops.core.errors import NotFound
from loanops.core.response_envelope import success_envelope
from loanops.services import applications as application_service

router = APIRouter(prefix="/applications", tags=["applications"])


@router.get("", summary="List imported applications")
async def list_applications(
    status_filter: str | None = Query(None, alias="status"),
    branch: str | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(deps.get_db),
) -> dict:
    items, total = await application_service.list_applications(
        db, status=status_filter, branch=branch, limit=limit, offset=offset
    )
    details = [application_service.to_detail(item) for item in items]
    return success_envelope(details, count=len(details), total=total)


@router.get("/{app_no}", summary="Look up an application by App.No")
async def get_application(
    app_no: str,
    db: AsyncSession = Depends(deps.get_db),
) -> dict:
    application = await application_service.find_application(db, app_no)
    if application is None:
        raise NotFound(f"Application {app_no} not found", searchedFor=app_no)
    return success_envelope(application_service.to_detail(application))
