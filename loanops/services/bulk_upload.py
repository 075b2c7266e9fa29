from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from loanops.core.errors import ValidationFailed
from loanops.core.logging import get_audit_logger
from loanops.core.settings import settings
from loanops.schemas.applications import ImportedApplication
from loanops.schemas.bulk_upload import (
    ApplicationStats,
    BulkUploadResult,
    ColumnMapping,
    UploadSummary,
)
from loanops.services import applications
from loanops.utils.clock import utcnow

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

REQUIRED_COLUMNS = {
    "app_no": ("app.no", "app_no", "appno", "application_no", "application_number", "app_id", "id"),
    "customer_name": ("name", "customer_name", "customer", "client_name", "applicant_name"),
    "branch_name": ("branchname", "branch_name", "branch", "location"),
    "task_name": ("taskname", "task_name", "status", "app_status", "application_status"),
}

OPTIONAL_COLUMNS = {
    "app_date": ("appdate", "app_date", "application_date", "date", "applied_date"),
    "loan_no": ("loanno", "loan_no", "loan_number", "loan_id"),
    "amount": ("amount", "loan_amount", "requested_amount"),
    "sanction_amount": ("sanction_amount", "sanctioned_amount", "approved_amount", "final_amount"),
    "email": ("email", "email_id", "customer_email"),
    "login": ("login", "employee_id", "user_id", "staff_id"),
    "asset_type": ("asset_type", "asset", "collateral_type", "security_type"),
    "app_status": ("app_status", "application_status", "current_status"),
}

SANCTION_KEYWORDS = (
    "sanction",
    "sanctioned",
    "approved",
    "disbursed",
    "disbursement",
    "documentation",
    "final approval",
    "completed",
    "ready for disbursement",
    "loan sanctioned",
    "sanctioned loan",
    "documentation complete",
    "approval",
    "approved loan",
    "loan approved",
)

DISPLAY_REQUIRED = ["App.No", "Name", "BranchName", "TaskName"]
DISPLAY_OPTIONAL = ["AppDate", "LoanNo", "Amount", "Email", "Login", "Asset Type", "Sanction Amount"]
DEFAULT_LOAN_TYPE = "Personal Loan"

_WHITESPACE_RE = re.compile(r"\s+")
_NON_NUMERIC_RE = re.compile(r"[^\d.\-]")
_ISO_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
# month, day, year
_US_DATE_RES = (
    re.compile(r"(\d{2})/(\d{2})/(\d{4})"),
    re.compile(r"(\d{2})-(\d{2})-(\d{4})"),
    re.compile(r"(\d{2})\.(\d{2})\.(\d{4})"),
)


@dataclass
class ParsedUpload:
    header: list[str]
    total_rows: int
    required: dict[str, int]
    optional: dict[str, int]
    rows: list[ImportedApplication] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def normalize_header(cell: str) -> str:
    return _WHITESPACE_RE.sub("_", cell.strip().lower())


def _map_columns(header: list[str], aliases: dict[str, tuple[str, ...]]) -> dict[str, int]:
    mapping: dict[str, int] = {}
    for name, candidates in aliases.items():
        for candidate in candidates:
            if candidate in header:
                mapping[name] = header.index(candidate)
                break
    return mapping


def is_sanctioned(task_name: str) -> bool:
    lowered = task_name.lower()
    return any(keyword in lowered for keyword in SANCTION_KEYWORDS)


def parse_date(value: str | None) -> date:
    """Parse the date formats seen in branch exports, falling back to today."""
    text = (value or "").strip()
    if not text:
        return utcnow().date()

    match = _ISO_DATE_RE.search(text)
    if match:
        try:
            return date(int(match[1]), int(match[2]), int(match[3]))
        except ValueError:
            pass
    for pattern in _US_DATE_RES:
        match = pattern.search(text)
        if match:
            try:
                return date(int(match[3]), int(match[1]), int(match[2]))
            except ValueError:
                break
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return utcnow().date()


def parse_amount(value: str | None) -> Decimal:
    cleaned = _NON_NUMERIC_RE.sub("", value or "")
    if not cleaned:
        return Decimal(0)
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return Decimal(0)


def _cell(row: list[str], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def _clean(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value).strip()


def _build_row(row: list[str], optional: dict[str, int], app_no: str, name: str, branch: str, task: str) -> ImportedApplication:
    loan_no = _cell(row, optional.get("loan_no"))
    login = _cell(row, optional.get("login"))
    asset_type = _cell(row, optional.get("asset_type"))
    amount = parse_amount(_cell(row, optional.get("amount")))
    sanction_amount = parse_amount(_cell(row, optional.get("sanction_amount")))
    if sanction_amount > 0:
        final_amount = sanction_amount
    elif amount > 0:
        final_amount = amount
    else:
        final_amount = None

    remarks = f"Imported from CSV - Original Status: {task}"
    if loan_no:
        remarks += f", Loan No: {loan_no}"
    if login:
        remarks += f", Employee: {login}"

    return ImportedApplication(
        app_id=app_no,
        customer_name=name,
        branch=branch,
        amount=final_amount,
        applied_date=parse_date(_cell(row, optional.get("app_date"))),
        loan_type=asset_type or DEFAULT_LOAN_TYPE,
        customer_email=_cell(row, optional.get("email")),
        remarks=remarks,
    )


def parse_csv(text: str) -> ParsedUpload:
    """Split an export into sanctioned applications, row errors and skipped rows."""
    records = [row for row in csv.reader(io.StringIO(text)) if any(cell.strip() for cell in row)]
    if len(records) < 2:
        raise ValidationFailed(
            "CSV file must contain header and at least one data row", fields=["file"]
        )

    header = [normalize_header(cell) for cell in records[0]]
    required = _map_columns(header, REQUIRED_COLUMNS)
    missing = [name for name in REQUIRED_COLUMNS if name not in required]
    if missing:
        raise ValidationFailed(
            f"Missing required columns: {', '.join(missing)}. Found columns: {', '.join(header)}",
            fields=missing,
            suggestion=(
                "Please ensure your CSV has columns: App.No, Name, BranchName, and TaskName. "
                "Column names are case-insensitive."
            ),
            availableColumns=header,
            requiredColumns=DISPLAY_REQUIRED,
            optionalColumns=DISPLAY_OPTIONAL,
        )

    parsed = ParsedUpload(
        header=header,
        total_rows=len(records) - 1,
        required=required,
        optional=_map_columns(header, OPTIONAL_COLUMNS),
    )
    min_cells = max(required.values()) + 1
    for line_no, row in enumerate(records[1:], start=2):
        if len(row) < min_cells:
            parsed.errors.append(
                f"Row {line_no}: Insufficient columns (expected at least {min_cells}, got {len(row)})"
            )
            continue

        app_no = _clean(_cell(row, required["app_no"]))
        name = _clean(_cell(row, required["customer_name"]))
        branch = _clean(_cell(row, required["branch_name"]))
        task = _cell(row, required["task_name"])
        if not (app_no and name and branch and task):
            parsed.errors.append(
                f'Row {line_no}: Missing required data - App.No: "{app_no}", Name: "{name}", '
                f'Branch: "{branch}", TaskName: "{task}"'
            )
            continue

        if not is_sanctioned(task):
            parsed.skipped.append(f'Row {line_no}: Non-sanctioned status "{task}" - skipped')
            continue

        try:
            parsed.rows.append(_build_row(row, parsed.optional, app_no, name, branch, task))
        except ValueError as exc:
            parsed.errors.append(f"Row {line_no}: {exc}")
    return parsed


def check_upload(filename: str | None, content_type: str | None, size: int) -> None:
    name = filename or ""
    if not name.lower().endswith(".csv") and content_type != "text/csv":
        raise ValidationFailed(
            f"Invalid file type: {content_type or 'unknown'}. Only CSV files are allowed",
            fields=["file"],
            help="Please upload a file with .csv extension",
        )
    limit = settings.bulk_upload_max_bytes
    if size > limit:
        raise ValidationFailed(
            f"File size too large: {size / 1024 / 1024:.2f}MB. "
            f"Maximum allowed size is {limit // (1024 * 1024)}MB",
            fields=["file"],
            help="Please reduce the file size or split it into smaller files",
        )


def _result_message(created: int, skipped: int, errors: int) -> str:
    skipped_note = f"{skipped} non-sanctioned applications were skipped. " if skipped else ""
    errors_note = f"{errors} rows had errors. " if errors else ""
    if created:
        return (
            f"Successfully uploaded {created} sanctioned applications. "
            f"{skipped_note}{errors_note}Only sanctioned applications are imported."
        )
    return (
        "Upload processed but no sanctioned applications were created. "
        f"{skipped_note}{errors_note}Only sanctioned applications are imported."
    )


async def import_csv(
    db: AsyncSession,
    *,
    filename: str | None,
    content_type: str | None,
    content: bytes,
) -> tuple[BulkUploadResult, str]:
    check_upload(filename, content_type, len(content))
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationFailed("Invalid encoding; expected UTF-8", fields=["file"]) from exc

    parsed = parse_csv(text)
    logger.info(
        "Parsed %s: %s rows, %s sanctioned, %s skipped, %s errors",
        filename,
        parsed.total_rows,
        len(parsed.rows),
        len(parsed.skipped),
        len(parsed.errors),
    )
    if not parsed.rows:
        raise ValidationFailed(
            "No sanctioned applications found in CSV file",
            notes=[
                "Only applications with sanction-related statuses are imported.",
                f"Sanction keywords: {', '.join(SANCTION_KEYWORDS[:7])}",
                *parsed.errors[:3],
                *parsed.skipped[:3],
            ],
            summary={
                "totalRows": parsed.total_rows,
                "processedRows": 0,
                "sanctionedFound": 0,
                "skippedNonSanctioned": len(parsed.skipped),
                "errors": len(parsed.errors),
            },
        )

    outcome = await applications.bulk_create_applications(db, parsed.rows)
    feedback = [*parsed.errors, *parsed.skipped]
    result = BulkUploadResult(
        file_name=filename or "",
        file_size=len(content),
        total_rows=parsed.total_rows,
        processed_rows=len(parsed.rows),
        sanctioned_rows=len(parsed.rows),
        skipped_rows=len(parsed.skipped),
        created_applications=outcome.created,
        failed_applications=outcome.failed,
        errors=len(parsed.errors),
        error_details=feedback[: settings.bulk_upload_feedback_limit],
        summary=UploadSummary(
            uploaded=outcome.created,
            failed=outcome.failed + len(parsed.errors),
            skipped=len(parsed.skipped),
            total=parsed.total_rows,
            valid_rows=len(parsed.rows),
            sanctioned_only=len(parsed.rows),
        ),
        application_stats=ApplicationStats(
            created=outcome.created,
            failed=outcome.failed,
            duplicates=outcome.duplicates,
            validation_errors=len(parsed.errors),
            non_sanctioned=len(parsed.skipped),
        ),
        column_mapping=ColumnMapping(
            required=parsed.required,
            optional=parsed.optional,
            detected=parsed.header,
        ),
    )
    audit_logger.info(
        "Bulk upload %s: %s created, %s failed, %s skipped",
        filename,
        outcome.created,
        outcome.failed,
        len(parsed.skipped),
        extra={"event": "applications.bulk_uploaded"},
    )
    return result, _result_message(outcome.created, len(parsed.skipped), len(parsed.errors))
