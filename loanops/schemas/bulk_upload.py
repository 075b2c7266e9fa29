from __future__ import annotations

from pydantic import Field

from loanops.schemas.common import CamelModel


class UploadSummary(CamelModel):
    uploaded: int
    failed: int
    skipped: int
    total: int
    valid_rows: int
    sanctioned_only: int


class ApplicationStats(CamelModel):
    created: int
    failed: int
    duplicates: int
    validation_errors: int
    non_sanctioned: int


class ColumnMapping(CamelModel):
    required: dict[str, int] = Field(default_factory=dict)
    optional: dict[str, int] = Field(default_factory=dict)
    detected: list[str] = Field(default_factory=list)


class BulkUploadResult(CamelModel):
    file_name: str
    file_size: int
    total_rows: int
    processed_rows: int
    sanctioned_rows: int
    skipped_rows: int
    created_applications: int
    failed_applications: int
    errors: int
    error_details: list[str] = Field(default_factory=list)
    summary: UploadSummary
    application_stats: ApplicationStats
    column_mapping: ColumnMapping
