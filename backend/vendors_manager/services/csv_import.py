"""
Team member CSV import

preview: parse, map headers, validate rows and flag duplicates
confirm: re-run the preview and write the importable rows in one transaction
"""

import csv
import io
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email
from rapidfuzz import fuzz, process
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.logging_config import get_logger
from vendors_manager.models import Role, TeamMember, Vendor
from vendors_manager.models.team_member import TEAM_MEMBER_STATUSES

logger = get_logger(__name__)

EXPECTED_HEADERS = [
    "first_name",
    "last_name",
    "email",
    "role_name",
    "daily_rate",
    "currency",
    "start_date",
    "end_date",
    "status",
    "planned_utilization",
]
REQUIRED_HEADERS = ["first_name", "last_name", "email", "daily_rate", "start_date"]

# Keys are normalised headers
HEADER_ALIASES: Dict[str, str] = {
    "firstname": "first_name",
    "given_name": "first_name",
    "forename": "first_name",
    "lastname": "last_name",
    "surname": "last_name",
    "family_name": "last_name",
    "e_mail": "email",
    "email_address": "email",
    "role": "role_name",
    "position": "role_name",
    "title": "role_name",
    "job_title": "role_name",
    "rate": "daily_rate",
    "day_rate": "daily_rate",
    "currency_code": "currency",
    "start": "start_date",
    "join_date": "start_date",
    "end": "end_date",
    "leave_date": "end_date",
    "member_status": "status",
    "utilization": "planned_utilization",
    "target_utilization": "planned_utilization",
}

FUZZY_SCORE_CUTOFF = 85
DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%Y/%m/%d", "%d-%m-%Y", "%d.%m.%Y")

TEMPLATE_SAMPLE_ROW = [
    "John", "Doe", "john.doe@example.com", "Developer", "500", "GBP", "2024-01-15", "", "active", "80",
]


@dataclass
class FieldIssue:
    field: str
    message: str
    value: Optional[str] = None


@dataclass
class ImportRow:
    row_number: int
    original_data: Dict[str, str]
    parsed_data: dict
    status: str
    errors: List[FieldIssue] = field(default_factory=list)
    warnings: List[FieldIssue] = field(default_factory=list)
    is_duplicate: bool = False
    duplicate_info: Optional[dict] = None


@dataclass
class ImportPreview:
    rows: List[ImportRow]
    stats: Dict[str, int]
    headers: List[str]
    expected_headers: List[str]
    header_mappings: Dict[str, str]
    missing_required_headers: List[str]
    parse_errors: List[str] = field(default_factory=list)


@dataclass
class ImportResult:
    success: bool = False
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[dict] = field(default_factory=list)
    created_ids: List[int] = field(default_factory=list)


# ============================================================
# Parsing
# ============================================================

def parse_csv(content: str) -> Tuple[List[Dict[str, str]], List[str], List[str]]:
    """Return (rows, headers, errors); headers and values are trimmed, empty lines skipped"""
    errors: List[str] = []
    reader = csv.reader(io.StringIO(content.lstrip("\ufeff")))
    try:
        lines = [line for line in reader if any(cell.strip() for cell in line)]
    except csv.Error as e:
        return [], [], [f"Row {reader.line_num}: {e}"]
    if not lines:
        return [], [], errors

    headers = [h.strip() for h in lines[0]]
    rows = []
    for index, line in enumerate(lines[1:]):
        if len(line) > len(headers):
            errors.append(f"Row {index + 2}: Too many fields")
        values = [v.strip() for v in line] + [""] * (len(headers) - len(line))
        rows.append(dict(zip(headers, values)))
    return rows, headers, errors


def normalize_header(header: str) -> str:
    """'First Name', 'first-name' and 'firstName' all become 'first_name'"""
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", header.strip())
    value = re.sub(r"[\s\-]+", "_", value.lower())
    return value.strip("_")


def map_header(header: str) -> Optional[str]:
    normalized = normalize_header(header)
    if normalized in EXPECTED_HEADERS:
        return normalized
    if normalized in HEADER_ALIASES:
        return HEADER_ALIASES[normalized]

    candidates = EXPECTED_HEADERS + list(HEADER_ALIASES)
    match = process.extractOne(normalized, candidates, scorer=fuzz.WRatio, score_cutoff=FUZZY_SCORE_CUTOFF)
    if match is None:
        return None
    matched = match[0]
    return HEADER_ALIASES.get(matched, matched)


def map_headers(headers: List[str]) -> Dict[str, str]:
    """CSV header -> canonical field; the first header claiming a field wins"""
    mappings: Dict[str, str] = {}
    taken = set()
    for header in headers:
        target = map_header(header)
        if target is None or target in taken:
            mappings[header] = header
            continue
        mappings[header] = target
        taken.add(target)
    return mappings


# ============================================================
# Validation
# ============================================================

def parse_date(value: str) -> Optional[date]:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def parse_decimal(value: str) -> Optional[Decimal]:
    try:
        number = Decimal(value.replace(",", ""))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def validate_row(data: Dict[str, str]) -> Tuple[List[FieldIssue], List[FieldIssue], dict]:
    errors: List[FieldIssue] = []
    warnings: List[FieldIssue] = []
    parsed: dict = {}

    for name, label in (("first_name", "First name"), ("last_name", "Last name")):
        value = data.get(name, "")
        if not value:
            errors.append(FieldIssue(name, f"{label} is required", value))
        elif len(value) > 255:
            errors.append(FieldIssue(name, f"{label} must be at most 255 characters", value))
        parsed[name] = value

    email = data.get("email", "")
    try:
        validate_email(email, check_deliverability=False)
        parsed["email"] = email.lower()
    except EmailNotValidError:
        errors.append(FieldIssue("email", "Invalid email address", email))

    parsed["role_name"] = data.get("role_name") or None

    rate = parse_decimal(data.get("daily_rate", ""))
    if rate is None or rate <= 0:
        errors.append(FieldIssue("daily_rate", "Daily rate must be a positive number", data.get("daily_rate")))
    parsed["daily_rate"] = rate

    currency = data.get("currency", "")
    if not currency:
        warnings.append(FieldIssue("currency", "Currency not specified, defaulting to GBP"))
        currency = "GBP"
    elif len(currency) != 3:
        errors.append(FieldIssue("currency", "Currency must be a 3-letter code", currency))
    parsed["currency"] = currency.upper()

    start = parse_date(data.get("start_date", ""))
    if start is None:
        errors.append(FieldIssue("start_date", "Invalid start date format", data.get("start_date")))
    parsed["start_date"] = start

    end_value = data.get("end_date", "")
    end = parse_date(end_value) if end_value else None
    if end_value and end is None:
        errors.append(FieldIssue("end_date", "Invalid end date format", end_value))
    parsed["end_date"] = end

    status = data.get("status", "").lower()
    if not status:
        warnings.append(FieldIssue("status", "Status not specified, defaulting to active"))
        status = "active"
    elif status not in TEAM_MEMBER_STATUSES:
        errors.append(FieldIssue("status", f"Status must be one of: {', '.join(TEAM_MEMBER_STATUSES)}", status))
    parsed["status"] = status

    utilization_value = data.get("planned_utilization", "")
    utilization = parse_decimal(utilization_value) if utilization_value else None
    if utilization_value and (utilization is None or not 0 <= utilization <= 100):
        errors.append(FieldIssue("planned_utilization", "Utilization must be between 0 and 100", utilization_value))
    parsed["planned_utilization"] = utilization

    return errors, warnings, parsed


# ============================================================
# Preview / confirm
# ============================================================

async def generate_preview(db: AsyncSession, content: str) -> ImportPreview:
    rows, headers, parse_errors = parse_csv(content)
    mappings = map_headers(headers)
    mapped = set(mappings.values())
    missing = [h for h in REQUIRED_HEADERS if h not in mapped]

    if missing:
        return ImportPreview(
            rows=[],
            stats={"total": 0, "valid": 0, "invalid": 0, "warnings": 0, "duplicates": 0},
            headers=headers,
            expected_headers=list(EXPECTED_HEADERS),
            header_mappings=mappings,
            missing_required_headers=missing,
            parse_errors=parse_errors,
        )

    transformed = [{mappings[k]: v for k, v in row.items()} for row in rows]

    first_row_by_email: Dict[str, int] = {}
    for index, data in enumerate(transformed):
        email = data.get("email", "").lower()
        if email:
            first_row_by_email.setdefault(email, index + 2)

    existing: Dict[str, int] = {}
    if first_row_by_email:
        result = await db.execute(
            select(TeamMember.id, TeamMember.email).where(TeamMember.email.in_(list(first_row_by_email)))
        )
        existing = {email.lower(): member_id for member_id, email in result.all()}

    import_rows = []
    for index, (original, data) in enumerate(zip(rows, transformed)):
        row_number = index + 2
        errors, warnings, parsed = validate_row(data)
        email = data.get("email", "").lower()

        duplicate_info = None
        if email in existing:
            duplicate_info = {"type": "database", "matched_id": existing[email], "matched_email": email}
        elif email and first_row_by_email.get(email) != row_number:
            duplicate_info = {"type": "csv", "matched_row_number": first_row_by_email[email], "matched_email": email}

        if errors:
            status = "invalid"
        elif duplicate_info:
            status = "duplicate"
        elif warnings:
            status = "warning"
        else:
            status = "valid"

        import_rows.append(ImportRow(
            row_number=row_number,
            original_data=original,
            parsed_data=parsed if not errors else {},
            status=status,
            errors=errors,
            warnings=warnings,
            is_duplicate=duplicate_info is not None,
            duplicate_info=duplicate_info,
        ))

    stats = {
        "total": len(import_rows),
        "valid": sum(1 for r in import_rows if r.status == "valid"),
        "invalid": sum(1 for r in import_rows if r.status == "invalid"),
        "warnings": sum(1 for r in import_rows if r.status == "warning"),
        "duplicates": sum(1 for r in import_rows if r.status == "duplicate"),
    }
    return ImportPreview(
        rows=import_rows,
        stats=stats,
        headers=headers,
        expected_headers=list(EXPECTED_HEADERS),
        header_mappings=mappings,
        missing_required_headers=[],
        parse_errors=parse_errors,
    )


async def execute_import(
    db: AsyncSession,
    content: str,
    vendor_id: int,
    skip_duplicates: bool = True,
    update_existing: bool = False,
) -> ImportResult:
    result = ImportResult()

    vendor = await db.get(Vendor, vendor_id)
    if vendor is None:
        result.errors.append({"row_number": 0, "error": "Selected vendor not found"})
        return result

    preview = await generate_preview(db, content)
    if preview.missing_required_headers:
        result.errors.append({
            "row_number": 0,
            "error": f"Missing required columns: {', '.join(preview.missing_required_headers)}",
        })
        return result

    to_process = []
    for row in preview.rows:
        if row.status == "invalid" or (row.status == "duplicate" and skip_duplicates):
            result.skipped += 1
        else:
            to_process.append(row)
    if not to_process:
        result.success = True
        return result

    roles_result = await db.execute(select(Role).order_by(Role.id))
    roles = list(roles_result.scalars().all())
    role_by_name = {r.name.lower(): r for r in roles}
    default_role = roles[0] if roles else None

    created_members = []
    seen_emails = set()
    try:
        for row in to_process:
            data = row.parsed_data
            role = role_by_name.get(data["role_name"].lower()) if data["role_name"] else default_role
            if role is None:
                result.errors.append({"row_number": row.row_number, "error": f"Role \"{data['role_name']}\" not found"})
                result.failed += 1
                continue

            values = {
                "first_name": data["first_name"],
                "last_name": data["last_name"],
                "vendor_id": vendor.id,
                "role_id": role.id,
                "daily_rate": data["daily_rate"],
                "currency": data["currency"] or "GBP",
                "start_date": data["start_date"],
                "end_date": data["end_date"],
                "status": data["status"],
                "planned_utilization": data["planned_utilization"],
            }

            info = row.duplicate_info or {}
            if info.get("type") == "database":
                if not update_existing:
                    result.errors.append({"row_number": row.row_number, "error": "A team member with this email already exists"})
                    result.failed += 1
                    continue
                member = await db.get(TeamMember, info["matched_id"])
                for key, value in values.items():
                    setattr(member, key, value)
                result.updated += 1
                continue

            if data["email"] in seen_emails:
                result.errors.append({"row_number": row.row_number, "error": "Email appears earlier in this file"})
                result.failed += 1
                continue
            seen_emails.add(data["email"])

            member = TeamMember(email=data["email"], **values)
            db.add(member)
            created_members.append(member)
            result.created += 1

        await db.flush()
        result.created_ids = [m.id for m in created_members]
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"❌ Team member import rolled back: {e}")
        return ImportResult(
            skipped=result.skipped,
            failed=len(to_process),
            errors=[{"row_number": 0, "error": "Transaction failed"}],
        )

    result.success = result.failed == 0
    logger.info(
        f"📥 Imported team members for vendor {vendor.name}: "
        f"{result.created} created, {result.updated} updated, {result.skipped} skipped, {result.failed} failed"
    )
    return result


def generate_template() -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPECTED_HEADERS)
    writer.writerow(TEMPLATE_SAMPLE_ROW)
    return buffer.getvalue()
