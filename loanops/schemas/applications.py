from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from loanops.schemas.common import CamelModel


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    UNDER_REVIEW = "under_review"
    SANCTIONED = "sanctioned"


class ApplicationPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ImportedApplication(BaseModel):
    """One CSV row normalised for insertion into the applications table."""

    model_config = ConfigDict(use_enum_values=True)

    app_id: str
    customer_name: str
    branch: str
    status: ApplicationStatus = ApplicationStatus.SANCTIONED
    amount: Decimal | None = Field(default=None, ge=0)
    applied_date: date
    priority: ApplicationPriority = ApplicationPriority.MEDIUM
    loan_type: str = "Personal Loan"
    customer_phone: str = ""
    customer_email: str = ""
    document_status: str = "Completed"
    remarks: str = ""
    uploaded_by: str = "Bulk Upload System"


class ApplicationDetail(CamelModel):
    app_no: str
    customer_name: str
    branch_name: str
    status: str
    loan_amount: Decimal | None = None
    loan_type: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    document_status: str | None = None
    priority: str | None = None
    applied_date: date | None = None
    sanctioned_date: date | None = None
    uploaded_by: str | None = None
    uploaded_at: datetime | None = None
    last_updated: datetime | None = None
    remarks: str | None = None


class BulkCreateResult(BaseModel):
    created: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def duplicates(self) -> int:
        return sum(1 for error in self.errors if "already exists" in error)
