from __future__ import annotations

import logging
import re
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from loanops.models.application import Application
from loanops.schemas.applications import ApplicationDetail, BulkCreateResult, ImportedApplication

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def _collapse_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value).strip()


async def find_application(db: AsyncSession, app_no: str) -> Application | None:
    """Look an application up by App.No.

    Tries an exact match first, then a case-insensitive one, then one that
    ignores spacing differences (``"APP 001"`` vs ``"APP001"``).
    """
    cleaned = _collapse_whitespace(app_no or "")
    if not cleaned:
        return None

    result = await db.execute(select(Application).where(Application.app_id == cleaned))
    application = result.scalar_one_or_none()
    if application is not None:
        return application

    result = await db.execute(
        select(Application).where(func.lower(Application.app_id) == cleaned.lower())
    )
    application = result.scalar_one_or_none()
    if application is not None:
        return application

    compact = cleaned.replace(" ", "").lower()
    result = await db.execute(
        select(Application).where(func.lower(func.replace(Application.app_id, " ", "")) == compact)
    )
    return result.scalars().first()


async def list_applications(
    db: AsyncSession,
    *,
    status: str | None = None,
    branch: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[Sequence[Application], int]:
    conditions = []
    if status:
        conditions.append(Application.status == status)
    if branch:
        conditions.append(Application.branch == branch)

    count_stmt = select(func.count()).select_from(Application).where(*conditions)
    total = int((await db.execute(count_stmt)).scalar_one() or 0)

    stmt = (
        select(Application)
        .where(*conditions)
        .order_by(Application.uploaded_at.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(stmt)
    return result.scalars().all(), total


async def bulk_create_applications(
    db: AsyncSession, rows: Sequence[ImportedApplication]
) -> BulkCreateResult:
    """Insert every row whose App.No is not already stored.

    Rows that collide with an existing App.No, or with an earlier row of the
    same batch, are counted as failed rather than aborting the batch.
    """
    outcome = BulkCreateResult()
    if not rows:
        return outcome

    app_ids = [row.app_id for row in rows]
    existing_result = await db.execute(
        select(Application.app_id).where(Application.app_id.in_(app_ids))
    )
    taken = set(existing_result.scalars().all())

    pending: list[Application] = []
    for row in rows:
        if row.app_id in taken:
            outcome.failed += 1
            outcome.errors.append(f"{row.app_id}: Application with ID {row.app_id} already exists")
            continue
        taken.add(row.app_id)
        application = Application(**row.model_dump())
        db.add(application)
        pending.append(application)

    if not pending:
        return outcome

    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Bulk insert of %s applications rejected: %s", len(pending), exc)
        outcome.failed += len(pending)
        outcome.errors.append(f"Batch insert failed: {exc.orig if exc.orig else exc}")
        return outcome

    outcome.created = len(pending)
    return outcome


def to_detail(application: Application) -> ApplicationDetail:
    return ApplicationDetail(
        app_no=application.app_id,
        customer_name=application.customer_name,
        branch_name=application.branch,
        status=application.status,
        loan_amount=application.amount,
        loan_type=application.loan_type,
        customer_phone=application.customer_phone or None,
        customer_email=application.customer_email or None,
        document_status=application.document_status,
        priority=application.priority,
        applied_date=application.applied_date,
        sanctioned_date=application.sanctioned_date,
        uploaded_by=application.uploaded_by,
        uploaded_at=application.uploaded_at,
        last_updated=application.last_updated,
        remarks=application.remarks,
    )
