from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from loanops.schemas.common import CamelModel


class ActionType(str, Enum):
    APPROVE = "approve"
    DEFERRAL = "deferral"
    OTC = "otc"
    REVERT = "revert"


class ActionRecord(CamelModel):
    id: str
    query_id: str
    action: ActionType
    assigned_to: str | None = None
    remarks: str | None = None
    action_by: str
    team: str | None = None
    action_date: datetime
    status: Literal["completed"] = "completed"


class ChatMessage(CamelModel):
    id: str
    query_id: str
    message: str
    response_text: str
    sender: str
    sender_role: str
    team: str
    timestamp: datetime
    is_system_message: bool = False
    action_type: ActionType | None = None
    assigned_to: str | None = None
    remarks: str | None = None
    revert_reason: str | None = None
    reverted_by: str | None = None


class QueryActionRequest(CamelModel):
    """Body of ``POST /query-actions``; ``type`` selects action, message or revert."""

    type: str | None = None
    query_id: int | str | None = None
    action: str | None = None
    assigned_to: str | None = None
    remarks: str | None = None
    operation_team_member: str | None = None
    action_by: str | None = None
    team: str | None = None
    message: str | None = None
    added_by: str | None = None
    timestamp: datetime | None = None


class ResponseRecord(CamelModel):
    id: str
    query_id: str
    app_no: str | None = None
    response_text: str
    team: str
    responded_by: str
    timestamp: datetime
    is_read: bool = False


class ResponseCreate(CamelModel):
    query_id: int | str | None = None
    app_no: str | None = None
    response_text: str | None = None
    team: str | None = None
    responded_by: str | None = None
    timestamp: datetime | None = None


class ResponseReadUpdate(CamelModel):
    response_ids: Any = None


class ChatMessageCreate(CamelModel):
    message: str | None = None
    sender: str | None = None
    sender_role: str | None = None
    team: str | None = None
