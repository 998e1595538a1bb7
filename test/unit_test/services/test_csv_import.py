"""
Unit tests for the team member CSV import.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from vendors_manager.models import Role, TeamMember
from vendors_manager.services.csv_import import (
    EXPECTED_HEADERS,
    execute_import,
    generate_preview,
    generate_template,
    map_header,
    map_headers,
    normalize_header,
    parse_csv,
    parse_date,
    validate_row,
)

HEADER = "First Name,Last Name,Email,Role,Day Rate,Currency,Start Date,End Date,Status,Utilization\n"


class TestHeaders:
    @pytest.mark.parametrize(
        "raw,normalized",
        [("First Name", "first_name"), ("first-name", "first_name"), ("firstName", "first_name"), ("  EMAIL ", "email")],
    )
    def test_normalize(self, raw, normalized):
        assert normalize_header(raw) == normalized

    @pytest.mark.parametrize(
        "raw,target",
        [
            ("email", "email"),
            ("Given Name", "first_name"),
            ("Surname", "last_name"),
            ("Day Rate", "daily_rate"),
            ("Join Date", "start_date"),
            ("Job Title", "role_name"),
        ],
    )
    def test_exact_and_alias(self, raw, target):
        assert map_header(raw) == target

    def test_fuzzy_match(self):
        assert map_header("Daily Rates") == "daily_rate"

    def test_unrelated_header_is_unmapped(self):
        assert map_header("Notes") is None

    def test_first_header_claiming_a_field_wins(self):
        mappings = map_headers(["Email", "E-mail", "Notes"])
        assert mappings == {"Email": "email", "E-mail": "E-mail", "Notes": "Notes"}


class TestParsing:
    def test_bom_blank_lines_and_padding(self):
        content = "\ufeff first_name , email\n\n  Ada ,ada@example.com \n,\nAlan\n"
        rows, headers, errors = parse_csv(content)
        assert headers == ["first_name", "email"]
        assert rows == [
            {"first_name": "Ada", "email": "ada@example.com"},
            {"first_name": "Alan", "email": ""},
        ]
        assert errors == []

    def test_too_many_fields_is_reported(self):
        _, _, errors = parse_csv("a,b\n1,2,3\n")
        assert errors == ["Row 2: Too many fields"]

    @pytest.mark.parametrize("value", ["2024-01-15", "15/01/2024", "2024/01/15", "15-01-2024", "15.01.2024"])
    def test_date_formats(self, value):
        assert parse_date(value) == date(2024, 1, 15)

    def test_template_has_header_and_sample(self):
        lines = generate_template().strip().split("\n")
        assert lines[0].split(",") == EXPECTED_HEADERS
        assert len(lines) == 2


class TestValidateRow:
    def valid(self, **overrides):
        data = {
            "first_name": "Ada", "last_name": "Lovelace", "email": "Ada@Example.com", "role_name": "",
            "daily_rate": "500", "currency": "gbp", "start_date": "2024-01-15", "end_date": "",
            "status": "active", "planned_utilization": "80",
        }
        data.update(overrides)
        return data

    def test_valid_row(self):
        errors, warnings, parsed = validate_row(self.valid())
        assert errors == [] and warnings == []
        assert parsed["email"] == "ada@example.com"
        assert parsed["currency"] == "GBP"
        assert parsed["daily_rate"] == Decimal("500")
        assert parsed["end_date"] is None

    def test_defaults_are_warnings(self):
        _, warnings, parsed = validate_row(self.valid(currency="", status=""))
        assert [w.message for w in warnings] == [
            "Currency not specified, defaulting to GBP",
            "Status not specified, defaulting to active",
        ]
        assert parsed["status"] == "active"

    @pytest.mark.parametrize(
        "field,value,message",
        [
            ("email", "not-an-email", "Invalid email address"),
            ("daily_rate", "-5", "Daily rate must be a positive number"),
            ("daily_rate", "abc", "Daily rate must be a positive number"),
            ("planned_utilization", "120", "Utilization must be between 0 and 100"),
            ("start_date", "yesterday", "Invalid start date format"),
            ("first_name", "", "First name is required"),
        ],
    )
    def test_field_errors(self, field, value, message):
        errors, _, _ = validate_row(self.valid(**{field: value}))
        assert message in [e.message for e in errors]


class TestPreviewAndImport:
    @pytest.fixture
    async def existing_member(self, session, vendor, role):
        member = TeamMember(
            first_name="Grace", last_name="Hopper", email="grace@example.com", vendor_id=vendor.id,
            role_id=role.id, daily_rate=Decimal("450"), start_date=date(2023, 1, 1),
        )
        session.add(member)
        await session.commit()
        return member

    def csv(self):
        return HEADER + "\n".join([
            "Ada,Lovelace,ada@example.com,Developer,500,GBP,2024-01-15,,active,80",
            "Grace,Hopper,grace@example.com,Developer,520,GBP,2024-01-15,,active,",
            "Alan,Turing,alan@example.com,,600,,2024-02-01,,,",
            "Bad,Row,broken,Developer,0,GBP,2024-01-15,,active,",
            "Ada,Again,ADA@example.com,Developer,500,GBP,2024-01-15,,active,",
        ]) + "\n"

    async def test_missing_required_headers(self, session):
        preview = await generate_preview(session, "Email,Phone\nada@example.com,0123\n")
        assert preview.rows == []
        assert preview.missing_required_headers == ["first_name", "last_name", "daily_rate", "start_date"]

    async def test_preview_statuses(self, session, existing_member):
        preview = await generate_preview(session, self.csv())
        statuses = {row.row_number: row.status for row in preview.rows}
        assert statuses == {2: "valid", 3: "duplicate", 4: "warning", 5: "invalid", 6: "duplicate"}
        assert preview.rows[1].duplicate_info["type"] == "database"
        assert preview.rows[1].duplicate_info["matched_id"] == existing_member.id
        assert preview.rows[4].duplicate_info == {
            "type": "csv", "matched_row_number": 2, "matched_email": "ada@example.com",
        }
        assert preview.stats == {"total": 5, "valid": 1, "invalid": 1, "warnings": 1, "duplicates": 2}

    async def test_import_skips_invalid_and_duplicates(self, session, vendor, existing_member):
        result = await execute_import(session, self.csv(), vendor.id)
        assert result.success
        assert (result.created, result.updated, result.skipped, result.failed) == (2, 0, 3, 0)
        emails = (await session.execute(select(TeamMember.email).order_by(TeamMember.email))).scalars().all()
        assert emails == ["ada@example.com", "alan@example.com", "grace@example.com"]

    async def test_import_updates_existing(self, session, vendor, existing_member):
        result = await execute_import(session, self.csv(), vendor.id, skip_duplicates=False, update_existing=True)
        assert result.updated == 1
        assert result.created == 2
        # the repeated CSV row fails rather than creating a second member
        assert result.failed == 1
        await session.refresh(existing_member)
        assert existing_member.daily_rate == Decimal("520")

    async def test_database_duplicate_without_update_fails(self, session, vendor, existing_member):
        content = HEADER + "Grace,Hopper,grace@example.com,Developer,520,GBP,2024-01-15,,active,\n"
        result = await execute_import(session, content, vendor.id, skip_duplicates=False)
        assert result.failed == 1
        assert result.errors == [{"row_number": 2, "error": "A team member with this email already exists"}]

    async def test_unknown_role_fails_the_row(self, session, vendor, role):
        content = HEADER + "Ada,Lovelace,ada@example.com,Astronaut,500,GBP,2024-01-15,,active,\n"
        result = await execute_import(session, content, vendor.id)
        assert not result.success
        assert result.errors == [{"row_number": 2, "error": 'Role "Astronaut" not found'}]

    async def test_role_defaults_to_first_role(self, session, vendor, role):
        session.add(Role(name="Tester"))
        await session.commit()
        content = HEADER + "Ada,Lovelace,ada@example.com,,500,GBP,2024-01-15,,active,\n"
        result = await execute_import(session, content, vendor.id)
        member = await session.get(TeamMember, result.created_ids[0])
        assert member.role_id == role.id

    async def test_unknown_vendor(self, session):
        result = await execute_import(session, self.csv(), 999)
        assert not result.success
        assert result.errors == [{"row_number": 0, "error": "Selected vendor not found"}]
