from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from loanops.core.errors import NotFound, ValidationFailed
from loanops.core.logging import get_audit_logger
from loanops.schemas.queries import (
    RESOLVED_STATUSES,
    QueryBundle,
    QueryStats,
    QueryStatus,
    QueryStatusCounts,
    QueryStatusUpdate,
    QuerySubmission,
    QueryTeamCounts,
    SubQuery,
)
from loanops.services import applications
from loanops.services.store import QueryStore, normalize_query_id
from loanops.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

DEFAULT_BRANCH = "Default Branch"
DEFAULT_BRANCH_CODE = "DEF"
DEFAULT_RESOLVER = "Operations Team"
ALL_RESOLVED_REASON = "All queries resolved"

# Fields copied from an update onto every entity it touches, when supplied.
_COPIED_FIELDS = (
    "resolved_by",
    "resolved_at",
    "resolution_reason",
    "assigned_to",
    "remarks",
    "reverted_at",
    "reverted_by",
    "revert_reason",
)


def _marked_for_team(send_to_sales: bool, send_to_credit: bool) -> str:
    if send_to_sales and not send_to_credit:
        return "sales"
    if send_to_credit and not send_to_sales:
        return "credit"
    return "both"


async def _customer_details(db: AsyncSession, app_no: str) -> tuple[str, str, str]:
    defaults = (f"Customer for {app_no}", DEFAULT_BRANCH, DEFAULT_BRANCH_CODE)
    try:
        application = await applications.find_application(db, app_no)
    except SQLAlchemyError as exc:
        logger.warning("Application lookup failed for %s, using defaults: %s", app_no, exc)
        return defaults
    if application is None:
        return defaults
    branch = application.branch or DEFAULT_BRANCH
    branch_code = application.branch[:3].upper() if application.branch else DEFAULT_BRANCH_CODE
    return application.customer_name, branch, branch_code


async def submit_queries(
    store: QueryStore, db: AsyncSession, payload: QuerySubmission
) -> QueryBundle:
    missing = []
    if not (payload.app_no or "").strip():
        missing.append("appNo")
    if not payload.queries:
        missing.append("queries")
    if not (payload.send_to or "").strip():
        missing.append("sendTo")
    if missing:
        raise ValidationFailed(
            f"Missing required fields: {', '.join(missing)}", fields=missing
        )

    texts = [text.strip() for text in payload.queries if text and text.strip()]
    if not texts:
        raise ValidationFailed("At least one query must be provided", fields=["queries"])

    app_no = payload.app_no.strip()
    teams = [team.strip() for team in payload.send_to.split(",") if team.strip()]
    lowered = {team.lower() for team in teams}
    send_to_sales = "sales" in lowered
    send_to_credit = "credit" in lowered
    customer_name, branch, branch_code = await _customer_details(db, app_no)

    now = utcnow()
    bundle_id = store.next_bundle_id()
    bundle = QueryBundle(
        id=bundle_id,
        app_no=app_no,
        queries=[
            SubQuery(id=f"{bundle_id}-{index}", text=text, timestamp=now)
            for index, text in enumerate(texts)
        ],
        send_to=teams,
        send_to_sales=send_to_sales,
        send_to_credit=send_to_credit,
        marked_for_team=_marked_for_team(send_to_sales, send_to_credit),
        submitted_at=now,
        customer_name=customer_name,
        branch=branch,
        branch_code=branch_code,
        last_updated=now,
    )
    store.add_bundle(bundle)
    audit_logger.info(
        "Query bundle %s submitted for %s with %s queries to %s",
        bundle.id,
        app_no,
        len(texts),
        bundle.marked_for_team,
        extra={"event": "query.submitted"},
    )
    return bundle


def _keep_sub_query(sub_query: SubQuery, status: str) -> bool:
    if status == QueryStatus.PENDING.value:
        return sub_query.status == QueryStatus.PENDING
    return sub_query.status in RESOLVED_STATUSES


def _matches_team(bundle: QueryBundle, team: str) -> bool:
    if team == "sales":
        return bundle.send_to_sales or bundle.marked_for_team in {"sales", "both"}
    if team == "credit":
        return bundle.send_to_credit or bundle.marked_for_team in {"credit", "both"}
    return True


def _filter_bundles(
    bundles: Iterable[QueryBundle],
    *,
    team: str | None = None,
    status: str | None = None,
    app_no: str | None = None,
) -> list[QueryBundle]:
    selected = list(bundles)
    if app_no:
        needle = app_no.strip().lower()
        selected = [b for b in selected if needle in b.app_no.lower()]

    status_key = (status or "all").strip().lower()
    if status_key in {QueryStatus.PENDING.value, QueryStatus.RESOLVED.value}:
        narrowed = []
        for bundle in selected:
            kept = [q for q in bundle.queries if _keep_sub_query(q, status_key)]
            if not kept:
                continue
            copy = bundle.model_copy(deep=True)
            copy.queries = [q.model_copy(deep=True) for q in kept]
            narrowed.append(copy)
        selected = narrowed
    else:
        selected = [b.model_copy(deep=True) for b in selected]

    team_key = (team or "all").strip().lower()
    if team_key != "all":
        selected = [b for b in selected if _matches_team(b, team_key)]
    return selected


def list_queries(
    store: QueryStore,
    *,
    team: str | None = None,
    status: str | None = None,
    app_no: str | None = None,
) -> list[QueryBundle]:
    """Return detached copies of the matching bundles, most recently touched first.

    With ``status`` of ``pending`` or ``resolved`` each bundle only carries the
    sub-queries in that state, and bundles left empty are dropped.
    """
    with store.lock:
        selected = _filter_bundles(store.bundles, team=team, status=status, app_no=app_no)
    selected.sort(key=lambda b: (b.last_updated or b.submitted_at, b.submitted_at), reverse=True)
    return selected


def query_stats(store: QueryStore, *, team: str | None = None) -> QueryStats:
    with store.lock:
        bundles = _filter_bundles(store.bundles, team=team)

    by_status = QueryStatusCounts()
    for bundle in bundles:
        for sub_query in bundle.queries:
            field = sub_query.status.value
            setattr(by_status, field, getattr(by_status, field) + 1)

    pending = sum(1 for b in bundles if b.status == QueryStatus.PENDING)
    return QueryStats(
        total=len(bundles),
        pending=pending,
        resolved=len(bundles) - pending,
        by_status=by_status,
        by_team=QueryTeamCounts(
            sales=sum(1 for b in bundles if b.send_to_sales),
            credit=sum(1 for b in bundles if b.send_to_credit),
            both=sum(1 for b in bundles if b.send_to_sales and b.send_to_credit),
        ),
        timestamp=utcnow(),
    )


def _guard_reopen(entities: Iterable[SubQuery], update: QueryStatusUpdate) -> None:
    if update.status != QueryStatus.PENDING:
        return
    if not any(entity.status in RESOLVED_STATUSES for entity in entities):
        return
    missing = []
    if not (update.reverted_by or "").strip():
        missing.append("revertedBy")
    if not (update.revert_reason or "").strip():
        missing.append("revertReason")
    if missing:
        raise ValidationFailed(
            "Moving a resolved query back to pending requires a revert with a reason",
            fields=missing,
        )


def _apply_update(entity: SubQuery | QueryBundle, update: QueryStatusUpdate, now: datetime) -> None:
    entity.status = update.status
    entity.last_updated = now
    for field in _COPIED_FIELDS:
        value = getattr(update, field)
        if value:
            setattr(entity, field, as_utc(value) if isinstance(value, datetime) else value)

    if update.status == QueryStatus.PENDING and update.reverted_by:
        entity.resolved_at = None
        entity.resolved_by = None
        entity.resolution_reason = None
        entity.is_resolved = False
    else:
        entity.is_resolved = update.status in RESOLVED_STATUSES


def _recompute_aggregate(bundle: QueryBundle, update: QueryStatusUpdate, now: datetime) -> None:
    all_resolved = bool(bundle.queries) and all(
        q.status in RESOLVED_STATUSES for q in bundle.queries
    )
    if all_resolved:
        bundle.status = QueryStatus.RESOLVED
        bundle.is_resolved = True
        bundle.resolved_at = as_utc(update.resolved_at) or now
        bundle.resolved_by = update.resolved_by or DEFAULT_RESOLVER
        bundle.resolution_reason = ALL_RESOLVED_REASON
    else:
        bundle.status = QueryStatus.PENDING
        bundle.is_resolved = False
        bundle.resolved_at = None
        bundle.resolved_by = None
        bundle.resolution_reason = None
    bundle.last_updated = now


def update_query_status(store: QueryStore, update: QueryStatusUpdate) -> QueryBundle:
    """Apply a status change to a sub-query or to a whole bundle.

    A sub-query update re-derives the bundle status from its siblings. A
    bundle update is copied onto every sub-query first, then re-derived the
    same way, so the bundle status is always ``resolved`` or ``pending``.
    """
    query_id = normalize_query_id(update.query_id)
    missing = []
    if not query_id:
        missing.append("queryId")
    if update.status is None:
        missing.append("status")
    if missing:
        raise ValidationFailed("Query ID and status are required", fields=missing)

    with store.lock:
        located = store.locate(query_id)
        if located is None:
            raise NotFound("Query not found", queryId=query_id)
        bundle, sub_query = located
        now = utcnow()

        if sub_query is not None:
            _guard_reopen([sub_query], update)
            _apply_update(sub_query, update, now)
        else:
            _guard_reopen(bundle.queries, update)
            _apply_update(bundle, update, now)
            for item in bundle.queries:
                _apply_update(item, update, now)
        _recompute_aggregate(bundle, update, now)
        result = bundle.model_copy(deep=True)

    audit_logger.info(
        "Query %s set to %s (%s update); bundle %s is %s",
        query_id,
        update.status.value,
        "individual" if sub_query is not None else "bundle",
        bundle.id,
        result.status.value,
        extra={"event": "query.status_updated"},
    )
    return result


def require_query(store: QueryStore, query_id: int | str | None) -> QueryBundle:
    """Return the bundle a query id belongs to or raise ``NotFound``."""
    located = store.locate(query_id)
    if located is None:
        raise NotFound("Query not found", queryId=normalize_query_id(query_id))
    return located[0]
