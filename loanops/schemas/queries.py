from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import Field

from loanops.schemas.common import CamelModel


class QueryStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DEFERRED = "deferred"
    OTC = "otc"
    RESOLVED = "resolved"


RESOLVED_STATUSES = frozenset(
    {QueryStatus.APPROVED, QueryStatus.DEFERRED, QueryStatus.OTC, QueryStatus.RESOLVED}
)

MarkedForTeam = Literal["sales", "credit", "both"]


class SubQuery(CamelModel):
    id: str
    text: str
    status: QueryStatus = QueryStatus.PENDING
    timestamp: datetime
    sender: str = "Operations Team"
    sender_role: str = "operations"
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    resolution_reason: str | None = None
    last_updated: datetime | None = None
    assigned_to: str | None = None
    remarks: str | None = None
    reverted_at: datetime | None = None
    reverted_by: str | None = None
    revert_reason: str | None = None
    is_resolved: bool = False


class QueryBundle(CamelModel):
    id: int
    app_no: str
    queries: list[SubQuery] = Field(default_factory=list)
    send_to: list[str] = Field(default_factory=list)
    send_to_sales: bool = False
    send_to_credit: bool = False
    marked_for_team: MarkedForTeam = "both"
    submitted_by: str = "Operations Team"
    submitted_at: datetime
    status: QueryStatus = QueryStatus.PENDING
    customer_name: str
    branch: str
    branch_code: str
    last_updated: datetime
    resolved_at: datetime | None = None
    resolved_by: str | None = None
    resolution_reason: str | None = None
    is_resolved: bool = False
    assigned_to: str | None = None
    remarks: str | None = None
    reverted_at: datetime | None = None
    reverted_by: str | None = None
    revert_reason: str | None = None


class QuerySubmission(CamelModel):
    app_no: str | None = None
    queries: list[str] | None = None
    send_to: str | None = None


class QueryStatusUpdate(CamelModel):
    query_id: int | str | None = None
    status: QueryStatus | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    resolution_reason: str | None = None
    assigned_to: str | None = None
    remarks: str | None = None
    reverted_at: datetime | None = None
    reverted_by: str | None = None
    revert_reason: str | None = None
    is_resolved: bool | None = None
    is_individual_query: bool | None = None


class QueryStatusCounts(CamelModel):
    pending: int = 0
    approved: int = 0
    deferred: int = 0
    otc: int = 0
    resolved: int = 0


class QueryTeamCounts(CamelModel):
    sales: int = 0
    credit: int = 0
    both: int = 0


class QueryStats(CamelModel):
    total: int
    pending: int
    resolved: int
    by_status: QueryStatusCounts
    by_team: QueryTeamCounts
    timestamp: datetime
