from datetime import date
from decimal import Decimal

import pytest

from vendors_manager.models import RateCard, TeamMember


@pytest.fixture
async def member(session, vendor, role):
    member = TeamMember(
        first_name="Ada", last_name="Lovelace", email="ada@example.com", vendor_id=vendor.id,
        role_id=role.id, daily_rate=Decimal("500"), start_date=date(2024, 1, 1),
    )
    session.add(member)
    await session.commit()
    return member


class TestRoles:
    async def test_crud_and_duplicates(self, client, writer_headers):
        created = await client.post("/api/roles/", headers=writer_headers, json={"name": "Tester"})
        assert created.status_code == 201
        duplicate = await client.post("/api/roles/", headers=writer_headers, json={"name": "Tester"})
        assert duplicate.status_code == 409

        role_id = created.json()["data"]["id"]
        renamed = await client.put(f"/api/roles/{role_id}", headers=writer_headers, json={"name": "QA"})
        assert renamed.json()["data"]["name"] == "QA"
        deleted = await client.delete(f"/api/roles/{role_id}", headers=writer_headers)
        assert deleted.status_code == 200

    async def test_role_in_use_cannot_be_deleted(self, client, writer_headers, role, member):
        response = await client.delete(f"/api/roles/{role.id}", headers=writer_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "Role is in use by team members or rate cards"


class TestTeamMembers:
    def payload(self, vendor_id, role_id, **overrides):
        data = {
            "first_name": "Grace", "last_name": "Hopper", "email": "Grace@Example.com",
            "vendor_id": vendor_id, "role_id": role_id, "daily_rate": 650, "start_date": "2024-02-01",
        }
        data.update(overrides)
        return data

    async def test_create_and_list(self, client, writer_headers, vendor, role, member):
        created = await client.post("/api/team-members/", headers=writer_headers, json=self.payload(vendor.id, role.id))
        assert created.status_code == 201
        data = created.json()["data"]
        assert data["email"] == "grace@example.com"
        assert data["full_name"] == "Grace Hopper"
        assert data["vendor_name"] == "Acme Digital"
        assert data["role_name"] == "Developer"

        listed = await client.get("/api/team-members/", headers=writer_headers, params={"search": "Grace"})
        assert listed.json()["total"] == 1

        stats = await client.get("/api/team-members/stats", headers=writer_headers, params={"vendor_id": vendor.id})
        assert stats.json()["data"] == {"total": 2, "by_status": {"active": 2}, "average_daily_rate": 575.0}

    async def test_duplicate_email(self, client, writer_headers, vendor, role, member):
        response = await client.post(
            "/api/team-members/", headers=writer_headers,
            json=self.payload(vendor.id, role.id, email="ADA@example.com"),
        )
        assert response.status_code == 409

    async def test_unknown_role(self, client, writer_headers, vendor):
        response = await client.post("/api/team-members/", headers=writer_headers, json=self.payload(vendor.id, 999))
        assert response.status_code == 404
        assert response.json()["error"] == "Role not found"

    async def test_update_checks_dates(self, client, writer_headers, member):
        response = await client.put(
            f"/api/team-members/{member.id}", headers=writer_headers, json={"end_date": "2023-12-31"},
        )
        assert response.status_code == 400


class TestRateCards:
    async def test_current_card(self, client, session, viewer_headers, vendor, role):
        session.add_all([
            RateCard(vendor_id=vendor.id, role_id=role.id, rate=Decimal("450"), effective_from=date(2023, 1, 1),
                     effective_to=date(2023, 12, 31)),
            RateCard(vendor_id=vendor.id, role_id=role.id, rate=Decimal("500"), effective_from=date(2024, 1, 1)),
        ])
        await session.commit()
        params = {"vendor_id": vendor.id, "role_id": role.id}

        current = await client.get("/api/rate-cards/current", headers=viewer_headers, params={**params, "on": "2024-06-01"})
        assert current.json()["data"]["rate"] == 500.0
        older = await client.get("/api/rate-cards/current", headers=viewer_headers, params={**params, "on": "2023-06-01"})
        assert older.json()["data"]["rate"] == 450.0
        none = await client.get("/api/rate-cards/current", headers=viewer_headers, params={**params, "on": "2022-06-01"})
        assert none.status_code == 404

    async def test_effective_dates_are_ordered(self, client, writer_headers, vendor, role):
        response = await client.post("/api/rate-cards/", headers=writer_headers, json={
            "vendor_id": vendor.id, "role_id": role.id, "rate": 400,
            "effective_from": "2024-06-01", "effective_to": "2024-01-01",
        })
        assert response.status_code == 400


class TestTimesheets:
    async def test_upsert_and_clear(self, client, writer_headers, member):
        day = {"team_member_id": member.id, "date": "2024-03-04"}
        saved = await client.put("/api/timesheet-entries/", headers=writer_headers, json={**day, "hours": 7.5})
        assert saved.json()["message"] == "Entry saved"
        entry_id = saved.json()["data"]["id"]

        updated = await client.put("/api/timesheet-entries/", headers=writer_headers, json={**day, "time_off_code": "SICK"})
        assert updated.json()["data"]["id"] == entry_id
        assert updated.json()["data"]["hours"] is None

        cleared = await client.put("/api/timesheet-entries/", headers=writer_headers, json=day)
        assert cleared.json() == {"success": True, "data": None, "error": None, "message": "Entry cleared"}

        listed = await client.get(
            "/api/timesheet-entries/", headers=writer_headers,
            params={"team_member_id": member.id, "year": 2024, "month": 3},
        )
        assert listed.json()["total"] == 0

    async def test_bulk_last_entry_wins(self, client, writer_headers, member):
        response = await client.put("/api/timesheet-entries/bulk", headers=writer_headers, json={"entries": [
            {"team_member_id": member.id, "date": "2024-03-04", "hours": 8},
            {"team_member_id": member.id, "date": "2024-03-05", "hours": 8},
            {"team_member_id": member.id, "date": "2024-03-04", "hours": 4},
            {"team_member_id": member.id, "date": "2024-03-06", "time_off_code": "VAC"},
        ]})
        assert response.json()["message"] == "3 entries saved"

        calendar = await client.get(
            f"/api/timesheet-entries/calendar/{member.id}", headers=writer_headers, params={"year": 2024, "month": 3},
        )
        data = calendar.json()["data"]
        assert len(data["days"]) == 31
        assert data["total_hours"] == 12.0
        assert data["days_off"] == 1
        assert data["days"][3] == {
            "date": "2024-03-04", "weekday": 0, "is_weekend": False, "hours": 4.0, "time_off_code": None,
        }
        assert data["days"][1]["is_weekend"] is True

    async def test_unknown_member(self, client, writer_headers):
        response = await client.put(
            "/api/timesheet-entries/", headers=writer_headers, json={"team_member_id": 999, "date": "2024-03-04", "hours": 8},
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Team member not found: 999"


class TestCsvImport:
    CSV = (
        "First Name,Last Name,Email,Role,Day Rate,Start Date\n"
        "Grace,Hopper,grace@example.com,Developer,650,2024-02-01\n"
        "Ada,Lovelace,ada@example.com,Developer,500,2024-01-01\n"
        "Bad,Row,broken,Developer,abc,2024-01-01\n"
    )

    async def test_preview_then_confirm(self, client, writer_headers, vendor, member):
        preview = await client.post(
            "/api/import/team-members/preview", headers=writer_headers, json={"csv_content": self.CSV},
        )
        data = preview.json()["data"]
        assert data["header_mappings"]["Day Rate"] == "daily_rate"
        assert [r["status"] for r in data["rows"]] == ["warning", "duplicate", "invalid"]

        confirmed = await client.post("/api/import/team-members/confirm", headers=writer_headers, json={
            "csv_content": self.CSV, "vendor_id": vendor.id,
        })
        assert confirmed.json()["message"] == "Imported 1 new, updated 0, skipped 2, failed 0"
        assert confirmed.json()["data"]["success"] is True

    async def test_failed_rows_mark_the_envelope(self, client, writer_headers, vendor, member):
        confirmed = await client.post("/api/import/team-members/confirm", headers=writer_headers, json={
            "csv_content": self.CSV, "vendor_id": vendor.id, "skip_duplicates": False,
        })
        body = confirmed.json()
        assert confirmed.status_code == 200
        assert body["success"] is False
        assert body["message"] == "Import completed with 1 failures"
        assert body["data"]["created"] == 1
        assert body["data"]["errors"] == [
            {"row_number": 3, "error": "A team member with this email already exists"},
        ]

    async def test_unknown_vendor_is_not_a_success(self, client, writer_headers):
        confirmed = await client.post("/api/import/team-members/confirm", headers=writer_headers, json={
            "csv_content": self.CSV, "vendor_id": 999,
        })
        assert confirmed.json()["success"] is False
        assert confirmed.json()["message"] == "Selected vendor not found"

    async def test_confirm_needs_vendor(self, client, writer_headers):
        response = await client.post(
            "/api/import/team-members/confirm", headers=writer_headers, json={"csv_content": self.CSV},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Vendor ID is required"

    async def test_template_download(self, client, viewer_headers):
        response = await client.get("/api/import/team-members/template", headers=viewer_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "team_members_template.csv" in response.headers["content-disposition"]
        assert response.text.startswith("first_name,last_name,email,role_name")
