from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from loanops.api import deps
from loanops.core.errors import ValidationFailed
from loanops.core.limiter import limiter
from loanops.core.response_envelope import success_envelope
from loanops.core.settings import settings
from loanops.services import bulk_upload as upload_service

router = APIRouter(prefix="/bulk-upload", tags=["bulk-upload"])


@router.post("", summary="Import sanctioned applications from a CSV export")
@limiter.limit("10/minute")
async def bulk_upload(
    request: Request,
    file: UploadFile | None = File(None),
    db: AsyncSession = Depends(deps.get_db),
) -> dict:
    if file is None or not file.filename:
        raise ValidationFailed(
            "No file provided", fields=["file"], help="Please select a CSV file to upload"
        )
    # One byte past the limit is enough to reject oversize uploads.
    raw = await file.read(settings.bulk_upload_max_bytes + 1)
    result, message = await upload_service.import_csv(
        db,
        filename=file.filename,
        content_type=file.content_type,
        content=raw,
    )
    return success_envelope(result, message=message)
